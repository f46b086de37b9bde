"""Collaborator protocols consumed by the engine service."""

from typing import Protocol, runtime_checkable

from kb_relevance.models.item import KnowledgeItem, TaskItem
from kb_relevance.models.link import ContextLink
from kb_relevance.models.search import SearchFilters, SimilarityMatch


@runtime_checkable
class SimilarityProvider(Protocol):
    """Embeds text and retrieves nearest neighbors among stored vectors."""

    async def embed(self, text: str) -> list[float]:
        """Return a normalized vector. Raises EmbeddingUnavailableError on failure."""
        ...

    async def vector_search(
        self,
        vector: list[float],
        owner_id: str,
        filters: SearchFilters | None,
        limit: int,
    ) -> list[SimilarityMatch]:
        """Return the closest stored items for ``owner_id``, best first."""
        ...


@runtime_checkable
class ItemSource(Protocol):
    """Read access to items and links owned by the storage subsystem."""

    async def fetch_items(self, ids: list[str]) -> list[KnowledgeItem]:
        """Return the items for ``ids`` that exist, in any order."""
        ...

    async def open_tasks(self, owner_id: str) -> list[TaskItem]:
        """Return the owner's tasks that are not done."""
        ...

    async def existing_links(self, owner_id: str, item_id: str) -> list[ContextLink]:
        """Return every link touching ``item_id``, whatever its status."""
        ...
