"""Similarity provider combining an embedder with the vector index."""

import logging
from typing import Protocol

from kb_relevance.errors import UpstreamUnavailableError
from kb_relevance.models.search import SearchFilters, SimilarityMatch
from kb_relevance.store.vector_index import VectorIndex

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    """Anything that turns text into a normalized vector."""

    async def embed(self, text: str) -> list[float]:
        """Return a normalized vector. Raises EmbeddingUnavailableError on failure."""
        ...


class EmbeddingSimilarityProvider:
    """SimilarityProvider backed by an embedder and a sqlite-vec index."""

    def __init__(self, embedder: Embedder, index: VectorIndex) -> None:
        """Initialize with an embedder and vector index."""
        self.embedder = embedder
        self.index = index

    async def embed(self, text: str) -> list[float]:
        """Delegate to the embedder; EmbeddingUnavailableError propagates."""
        return await self.embedder.embed(text)

    async def vector_search(
        self,
        vector: list[float],
        owner_id: str,
        filters: SearchFilters | None,
        limit: int,
    ) -> list[SimilarityMatch]:
        """Search the index, reporting failures as UpstreamUnavailableError."""
        try:
            return await self.index.search(vector, owner_id, filters, limit)
        except Exception as e:
            logger.warning("Vector search failed", exc_info=True)
            raise UpstreamUnavailableError("Vector search failed") from e

    async def index_item(self, item_id: str, text: str) -> list[float]:
        """Embed ``text`` and store it as the vector for ``item_id``."""
        vector = await self.embed(text)
        await self.index.store_embedding(item_id, vector)
        return vector
