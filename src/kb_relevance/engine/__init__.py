"""Scoring components: relevance scorer, priority calculator, link detector."""

from kb_relevance.engine.cache import ResultCache, fingerprint
from kb_relevance.engine.links import detect_links
from kb_relevance.engine.priority import daily_priorities
from kb_relevance.engine.scorer import RelevanceScorer

__all__ = ["RelevanceScorer", "ResultCache", "daily_priorities", "detect_links", "fingerprint"]
