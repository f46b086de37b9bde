"""Search, daily focus and link suggestion pipelines.

Each pipeline resolves candidates through the collaborators first, then
hands in-memory data to the pure scoring components. A whole pipeline runs
under a latency budget; the scoring itself never blocks.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import TypeVar

from pydantic import ValidationError

from kb_relevance.config import (
    get_focus_count,
    get_focus_timeout,
    get_link_similarity_floor,
    get_link_timeout,
    get_search_timeout,
)
from kb_relevance.engine.cache import ResultCache
from kb_relevance.engine.links import detect_links
from kb_relevance.engine.priority import daily_priorities
from kb_relevance.engine.scorer import Candidate, RelevanceScorer
from kb_relevance.errors import (
    EmbeddingUnavailableError,
    InputInvalidError,
    LatencyBudgetExceededError,
    RelevanceError,
    UpstreamUnavailableError,
)
from kb_relevance.models.item import KnowledgeItem
from kb_relevance.models.link import ContextLink
from kb_relevance.models.search import (
    FocusResponse,
    RankedPage,
    SearchFilters,
    SearchQuery,
    SearchResponse,
    SimilarityMatch,
)
from kb_relevance.providers.protocol import ItemSource, SimilarityProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_query(
    owner_id: str, query_text: str, filters: SearchFilters | None = None
) -> SearchQuery:
    """Validate and normalize a search request."""
    try:
        return SearchQuery(owner_id=owner_id, text=query_text, filters=filters or SearchFilters())
    except ValidationError as e:
        raise InputInvalidError(f"Invalid search query: {e.errors()[0]['msg']}") from e


def _require_owner(owner_id: str) -> str:
    if not owner_id or not owner_id.strip():
        raise InputInvalidError("owner_id must not be empty")
    return owner_id.strip()


class RelevanceEngine:
    """Entry point for search, daily focus and link suggestion."""

    def __init__(
        self,
        provider: SimilarityProvider,
        items: ItemSource,
        *,
        scorer: RelevanceScorer | None = None,
        search_timeout: float | None = None,
        focus_timeout: float | None = None,
        link_timeout: float | None = None,
        link_similarity_floor: float | None = None,
        default_focus_count: int | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        """Wire collaborators; unset limits come from the environment."""
        self.provider = provider
        self.items = items
        self.scorer = scorer if scorer is not None else RelevanceScorer(ResultCache())
        self.search_timeout = search_timeout if search_timeout is not None else get_search_timeout()
        self.focus_timeout = focus_timeout if focus_timeout is not None else get_focus_timeout()
        self.link_timeout = link_timeout if link_timeout is not None else get_link_timeout()
        self.link_similarity_floor = (
            link_similarity_floor
            if link_similarity_floor is not None
            else get_link_similarity_floor()
        )
        self.default_focus_count = (
            default_focus_count if default_focus_count is not None else get_focus_count()
        )
        self._now = now or (lambda: datetime.now(UTC))

    # -- search --

    async def search(
        self, owner_id: str, query_text: str, filters: SearchFilters | None = None
    ) -> SearchResponse:
        """Rank the owner's items for ``query_text``.

        Raises InputInvalidError for a bad query and UpstreamUnavailableError
        when the provider cannot produce candidates.
        """
        query = build_query(owner_id, query_text, filters)
        started = time.perf_counter()
        page = await self._within(self._search(query), self.search_timeout, "search")
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        return SearchResponse(
            items=list(page.results),
            total_count=page.total_count,
            query_time_ms=round(elapsed_ms, 2),
            from_cache=page.from_cache,
            degraded=page.degraded,
        )

    async def _search(self, query: SearchQuery) -> RankedPage:
        cached = self.scorer.lookup(query)
        if cached is not None:
            return cached

        vector = await self._embed(query.text)
        matches = await self._vector_search(
            vector, query.owner_id, query.filters, self.scorer.max_candidates
        )
        candidates = await self._resolve(matches)
        return self.scorer.rank(query, candidates)

    def invalidate_cache(self, owner_id: str) -> None:
        """Forget cached pages for an owner after their items change."""
        cache = self.scorer.cache
        if isinstance(cache, ResultCache):
            cache.invalidate_owner(owner_id)

    # -- daily focus --

    async def daily_focus(self, owner_id: str, focus_count: int | None = None) -> FocusResponse:
        """Pick today's top open tasks for the owner."""
        owner_id = _require_owner(owner_id)
        count = focus_count if focus_count is not None else self.default_focus_count
        if count < 1:
            raise InputInvalidError(f"focus_count must be at least 1, got {count}")
        return await self._within(self._daily_focus(owner_id, count), self.focus_timeout, "focus")

    async def _daily_focus(self, owner_id: str, focus_count: int) -> FocusResponse:
        try:
            tasks = await self.items.open_tasks(owner_id)
        except RelevanceError:
            raise
        except Exception as e:
            logger.warning("Loading open tasks failed for %s", owner_id, exc_info=True)
            raise UpstreamUnavailableError("Task lookup failed") from e

        now = self._now()
        priorities = daily_priorities(tasks, focus_count, now=now)
        return FocusResponse(priorities=priorities, generated_at=now)

    # -- link suggestion --

    async def suggest_links(
        self, new_item: KnowledgeItem, vector: list[float] | None = None
    ) -> list[ContextLink]:
        """Suggest links from a newly ingested item. Nothing is persisted.

        Pass ``vector`` when the item was just embedded to skip a second embed call.
        """
        _require_owner(new_item.owner_id)
        if not new_item.embedding_text:
            raise InputInvalidError(f"Item {new_item.id} has no text to compare")
        return await self._within(
            self._suggest_links(new_item, vector), self.link_timeout, "links"
        )

    async def _suggest_links(
        self, new_item: KnowledgeItem, vector: list[float] | None
    ) -> list[ContextLink]:
        if vector is None:
            vector = await self._embed(new_item.embedding_text)
        matches = await self._vector_search(
            vector, new_item.owner_id, None, self.scorer.max_candidates
        )
        matches = [
            m
            for m in matches
            if m.item_id != new_item.id and m.similarity >= self.link_similarity_floor
        ]
        if not matches:
            return []

        candidates = await self._resolve(matches)
        try:
            existing = await self.items.existing_links(new_item.owner_id, new_item.id)
        except Exception as e:
            logger.warning("Loading links failed for %s", new_item.id, exc_info=True)
            raise UpstreamUnavailableError("Link lookup failed") from e

        links = detect_links(
            new_item, candidates, existing, similarity_floor=self.link_similarity_floor
        )
        logger.debug("Suggested %d link(s) for %s", len(links), new_item.id)
        return links

    # -- collaborator calls --

    async def _embed(self, text: str) -> list[float]:
        try:
            return await self.provider.embed(text)
        except UpstreamUnavailableError:
            raise
        except Exception as e:
            logger.warning("Embedding failed", exc_info=True)
            raise EmbeddingUnavailableError("Embedding failed") from e

    async def _vector_search(
        self,
        vector: list[float],
        owner_id: str,
        filters: SearchFilters | None,
        limit: int,
    ) -> list[SimilarityMatch]:
        try:
            return await self.provider.vector_search(vector, owner_id, filters, limit)
        except UpstreamUnavailableError:
            raise
        except Exception as e:
            logger.warning("Vector search failed", exc_info=True)
            raise UpstreamUnavailableError("Vector search failed") from e

    async def _resolve(self, matches: list[SimilarityMatch]) -> list[Candidate]:
        """Pair matches with their items, in match order; vanished items are dropped."""
        if not matches:
            return []
        try:
            fetched = await self.items.fetch_items([m.item_id for m in matches])
        except Exception as e:
            logger.warning("Fetching candidate items failed", exc_info=True)
            raise UpstreamUnavailableError("Item fetch failed") from e
        by_id = {item.id: item for item in fetched}
        return [(by_id[m.item_id], m.similarity) for m in matches if m.item_id in by_id]

    @staticmethod
    async def _within(step: Awaitable[T], budget: float, name: str) -> T:
        try:
            return await asyncio.wait_for(step, timeout=budget)
        except TimeoutError as e:
            logger.warning("%s pipeline exceeded %.1fs budget", name, budget)
            raise LatencyBudgetExceededError(f"{name} exceeded {budget:.1f}s budget") from e
