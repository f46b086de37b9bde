"""Weighted, explainable relevance scoring for search candidates."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from kb_relevance.engine.cache import CacheBackend, fingerprint
from kb_relevance.engine.lexical import (
    coverage,
    highlight_spans,
    matched_tags,
    matched_terms,
    query_terms,
)
from kb_relevance.engine.topk import newest_first, top_k
from kb_relevance.models.item import KnowledgeItem
from kb_relevance.models.search import RankedPage, RankedResult, SearchQuery

logger = logging.getLogger(__name__)

# Score = 0.7 * similarity + 0.2 * term coverage + 0.1 * tag coverage
SIMILARITY_WEIGHT = 0.7
TERM_WEIGHT = 0.2
TAG_WEIGHT = 0.1

HIGH_SIMILARITY = 0.85
DEFAULT_PAGE_SIZE = 20
MAX_CANDIDATES = 50

Candidate = tuple[KnowledgeItem, float]


@dataclass(frozen=True)
class RelevanceBreakdown:
    """Per-signal contributions behind a relevance score."""

    similarity: float
    terms: list[str]
    tags: list[str]
    term_coverage: float
    tag_coverage: float

    @property
    def score(self) -> float:
        """Weighted total rounded to 4 places."""
        total = (
            SIMILARITY_WEIGHT * self.similarity
            + TERM_WEIGHT * self.term_coverage
            + TAG_WEIGHT * self.tag_coverage
        )
        return round(total, 4)

    def explain(self) -> str:
        """Describe contributing signals, strongest first."""
        if self.similarity >= HIGH_SIMILARITY:
            sim_text = f"high semantic similarity ({self.similarity:.2f})"
        else:
            sim_text = f"semantic similarity ({self.similarity:.2f})"
        parts: list[tuple[float, int, str]] = [
            (SIMILARITY_WEIGHT * self.similarity, 0, sim_text)
        ]
        if self.terms:
            parts.append(
                (TERM_WEIGHT * self.term_coverage, 1, "matched terms: " + ", ".join(self.terms))
            )
        if self.tags:
            tag_text = "matched tags: " + ", ".join(f"#{t}" for t in self.tags)
            parts.append((TAG_WEIGHT * self.tag_coverage, 2, tag_text))
        parts.sort(key=lambda p: (-p[0], p[1]))
        return "; ".join(text for _, _, text in parts)


def score_candidate(
    terms: list[str], item: KnowledgeItem, similarity: float
) -> RelevanceBreakdown:
    """Compute the relevance breakdown for one candidate."""
    sim = min(max(similarity, 0.0), 1.0)
    hit_terms = matched_terms(terms, f"{item.title} {item.content}")
    hit_tags = matched_tags(terms, item.tag_names)
    return RelevanceBreakdown(
        similarity=sim,
        terms=hit_terms,
        tags=hit_tags,
        term_coverage=coverage(hit_terms, terms),
        tag_coverage=coverage(hit_tags, terms),
    )


def _ranking_key(result: RankedResult) -> tuple[float, float, str]:
    return (-result.score, newest_first(result.item.updated_at), result.item.id)


class RelevanceScorer:
    """Ranks a similarity-filtered candidate set, reading and writing the result cache."""

    def __init__(
        self,
        cache: CacheBackend | None = None,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_candidates: int = MAX_CANDIDATES,
    ) -> None:
        """Initialize with an optional cache and paging limits."""
        self.cache = cache
        self.page_size = page_size
        self.max_candidates = max_candidates

    def lookup(self, query: SearchQuery) -> RankedPage | None:
        """Return a cached page for ``query``, or None on miss or cache failure."""
        page, _ = self._read_cache(query)
        return page

    def rank(self, query: SearchQuery, candidates: Sequence[Candidate]) -> RankedPage:
        """Rank candidates for ``query``.

        A cache hit returns immediately without scoring. Otherwise every
        candidate is scored, sorted by score, recency and id, truncated to a
        page, and the page is written back to the cache.
        """
        cached, degraded = self._read_cache(query)
        if cached is not None:
            return cached

        page = self._score(query, candidates)

        if self.cache is not None:
            try:
                self.cache.put(fingerprint(query), query.owner_id, page)
            except Exception:
                logger.warning("Result cache write failed", exc_info=True)
                degraded = True

        if degraded:
            page = page.model_copy(update={"degraded": True})
        return page

    def _read_cache(self, query: SearchQuery) -> tuple[RankedPage | None, bool]:
        """Return (page, degraded). A failing cache counts as a miss."""
        if self.cache is None:
            return None, False
        try:
            page = self.cache.get(fingerprint(query))
        except Exception:
            logger.warning("Result cache read failed, computing fresh results", exc_info=True)
            return None, True
        if page is None:
            logger.debug("Cache miss for owner %s query %r", query.owner_id, query.text)
            return None, False
        logger.debug("Cache hit for owner %s query %r", query.owner_id, query.text)
        return page.model_copy(update={"from_cache": True}), False

    def _score(self, query: SearchQuery, candidates: Sequence[Candidate]) -> RankedPage:
        owned: list[Candidate] = []
        for item, similarity in candidates:
            if item.owner_id != query.owner_id:
                logger.warning("Dropping candidate %s owned by another user", item.id)
                continue
            owned.append((item, similarity))

        if len(owned) > self.max_candidates:
            logger.debug("Trimming %d candidates to %d", len(owned), self.max_candidates)
            owned = top_k(owned, self.max_candidates, key=lambda c: -c[1])

        terms = query_terms(query.text)
        results: list[RankedResult] = []
        for item, similarity in owned:
            breakdown = score_candidate(terms, item, similarity)
            results.append(
                RankedResult(
                    item=item,
                    score=breakdown.score,
                    explanation=breakdown.explain(),
                    highlights=tuple(highlight_spans(item.content, terms)),
                )
            )

        ranked = top_k(results, self.page_size, key=_ranking_key)
        return RankedPage(results=tuple(ranked), total_count=len(results))
