"""Owner-scoped KNN search over stored item embeddings."""

import logging

from kb_relevance.db.backend import Database
from kb_relevance.models.search import SearchFilters, SimilarityMatch
from kb_relevance.store.item_store import to_db_time

logger = logging.getLogger(__name__)

# vec0 KNN runs before owner/filter checks, so fetch extra neighbors
OVERFETCH_FACTOR = 4


class VectorIndex:
    """Stores embeddings and answers filtered nearest-neighbor queries."""

    def __init__(self, db: Database):
        """Initialize with a database connection."""
        self.db = db

    async def store_embedding(self, item_id: str, embedding: list[float]) -> None:
        """Store or replace an item's embedding."""
        await self.db.vector_store(item_id, embedding)
        await self.db.commit()

    async def delete_embedding(self, item_id: str) -> None:
        """Remove an item's embedding."""
        await self.db.vector_delete(item_id)
        await self.db.commit()

    async def search(
        self,
        embedding: list[float],
        owner_id: str,
        filters: SearchFilters | None = None,
        limit: int = 50,
    ) -> list[SimilarityMatch]:
        """Nearest items owned by ``owner_id`` that pass ``filters``, closest first.

        Similarity is 1 - cosine distance, clipped to [0, 1].
        """
        neighbors = await self.db.vector_search(embedding, limit=limit * OVERFETCH_FACTOR)
        if not neighbors:
            return []

        allowed = await self._filter_ids([item_id for item_id, _ in neighbors], owner_id, filters)
        matches: list[SimilarityMatch] = []
        for item_id, distance in neighbors:
            if item_id not in allowed:
                continue
            similarity = min(max(1.0 - distance, 0.0), 1.0)
            matches.append(SimilarityMatch(item_id=item_id, similarity=similarity))
            if len(matches) >= limit:
                break
        return matches

    async def _filter_ids(
        self, ids: list[str], owner_id: str, filters: SearchFilters | None
    ) -> set[str]:
        placeholders = ", ".join("?" for _ in ids)
        sql = f"SELECT id FROM items WHERE owner_id = ? AND id IN ({placeholders})"
        params: list[str] = [owner_id, *ids]

        if filters is not None:
            if filters.kinds:
                sql += f" AND kind IN ({', '.join('?' for _ in filters.kinds)})"
                params.extend(k.value for k in filters.kinds)
            if filters.tags:
                for tag in filters.tags:
                    sql += (
                        " AND EXISTS (SELECT 1 FROM item_tags"
                        " WHERE item_tags.item_id = items.id AND item_tags.name = ?)"
                    )
                    params.append(tag.casefold())
            if filters.created_after:
                sql += " AND created_at >= ?"
                params.append(to_db_time(filters.created_after))
            if filters.created_before:
                sql += " AND created_at <= ?"
                params.append(to_db_time(filters.created_before))

        cursor = await self.db.execute(sql, params)
        rows = await cursor.fetchall()
        return {row[0] for row in rows}
