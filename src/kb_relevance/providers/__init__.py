"""Similarity and item collaborators for the relevance engine."""

from kb_relevance.providers.ollama import OllamaEmbedder
from kb_relevance.providers.protocol import ItemSource, SimilarityProvider
from kb_relevance.providers.similarity import EmbeddingSimilarityProvider

__all__ = ["EmbeddingSimilarityProvider", "ItemSource", "OllamaEmbedder", "SimilarityProvider"]
