"""SQLite implementation of the Database protocol.

Thin wrapper around aiosqlite.Connection plus sqlite-vec vector helpers.
"""

from __future__ import annotations

import logging
import struct
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import aiosqlite

    from kb_relevance.db.backend import Cursor, Row

logger = logging.getLogger(__name__)


def _serialize_f32(vec: list[float]) -> bytes:
    """Serialize a list of floats to a compact binary format for sqlite-vec."""
    return struct.pack(f"{len(vec)}f", *vec)


class SQLiteCursor:
    """Wraps aiosqlite.Cursor to satisfy the Cursor protocol."""

    def __init__(self, cursor: aiosqlite.Cursor) -> None:
        """Initialize with an aiosqlite cursor."""
        self._cursor = cursor

    @property
    def rowcount(self) -> int:
        """Number of rows affected by the last operation."""
        rc = self._cursor.rowcount
        return rc if rc is not None else -1

    async def fetchone(self) -> Row | None:
        """Fetch the next row, or None if exhausted."""
        return await self._cursor.fetchone()

    async def fetchall(self) -> list[Row]:
        """Fetch all remaining rows."""
        return list(await self._cursor.fetchall())


class SQLiteBackend:
    """SQLite implementation of the Database protocol.

    The raw connection is exposed as ``_conn`` for extension loading and
    PRAGMAs during connection setup.
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        """Initialize with an aiosqlite connection."""
        self._conn = conn
        self.has_vectors = False

    async def execute(self, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> Cursor:
        """Execute a single SQL statement and return a cursor."""
        cursor = await self._conn.execute(sql, params)
        return SQLiteCursor(cursor)

    async def executescript(self, sql: str) -> None:
        """Execute multiple SQL statements (DDL, migrations)."""
        await self._conn.executescript(sql)

    async def commit(self) -> None:
        """Commit the current transaction."""
        await self._conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        await self._conn.close()

    # -- Vector operations (sqlite-vec) --

    async def vector_store(self, item_id: str, embedding: list[float]) -> None:
        """Upsert an embedding in the vec0 table."""
        blob = _serialize_f32(embedding)
        # vec0 doesn't support ON CONFLICT, delete then insert
        await self._conn.execute("DELETE FROM item_vec WHERE item_id = ?", (item_id,))
        await self._conn.execute(
            "INSERT INTO item_vec (item_id, embedding) VALUES (?, ?)",
            (item_id, blob),
        )

    async def vector_search(
        self, embedding: list[float], limit: int = 20
    ) -> list[tuple[str, float]]:
        """KNN search via sqlite-vec cosine distance. Returns (item_id, distance) pairs."""
        blob = _serialize_f32(embedding)
        cursor = await self._conn.execute(
            """SELECT item_id, distance
            FROM item_vec
            WHERE embedding MATCH ? AND k = ?
            ORDER BY distance""",
            (blob, limit),
        )
        rows = await cursor.fetchall()
        return [(row[0], row[1]) for row in rows]

    async def vector_delete(self, item_id: str) -> None:
        """Delete the embedding for an item."""
        await self._conn.execute("DELETE FROM item_vec WHERE item_id = ?", (item_id,))

    # -- Schema --

    async def apply_schema(self, *, embedding_dim: int = 1024) -> None:
        """Apply tables, sequences and the vec0 table."""
        from kb_relevance.db.schema import apply_schema, apply_vec_schema

        await apply_schema(self)

        # vec0 may not be available if sqlite-vec failed to load
        try:
            await apply_vec_schema(self, dim=embedding_dim)
            self.has_vectors = True
        except Exception:
            logger.warning("sqlite-vec schema not applied, vector search disabled")
