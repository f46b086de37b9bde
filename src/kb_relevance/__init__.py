"""Relevance and prioritization engine for a personal knowledge base."""

__version__ = "0.1.0"
