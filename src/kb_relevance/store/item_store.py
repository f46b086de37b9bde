"""SQLite-backed items and links for the engine's collaborator protocols."""

import logging
from datetime import UTC, datetime

from kb_relevance.db.backend import Database, Row
from kb_relevance.engine.links import accept_link, break_links, reject_link, suppressed_pairs
from kb_relevance.errors import InputInvalidError
from kb_relevance.models.item import KnowledgeItem, TaskItem, TaskStatus, parse_item
from kb_relevance.models.link import ContextLink, LinkStatus, LinkType

logger = logging.getLogger(__name__)


def to_db_time(value: datetime) -> str:
    """Fixed-width ISO timestamp so text comparison matches time order."""
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def row_to_link(row: Row) -> ContextLink:
    """Convert a database row to a ContextLink."""
    return ContextLink(
        id=row["id"],
        owner_id=row["owner_id"],
        source_id=row["source_id"],
        target_id=row["target_id"],
        link_type=LinkType(row["link_type"]),
        confidence=row["confidence"],
        status=LinkStatus(row["status"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class ItemStore:
    """Item and link persistence implementing the ItemSource protocol."""

    def __init__(self, db: Database):
        """Initialize with a database connection."""
        self.db = db

    # -- Items --

    async def save_item(self, item: KnowledgeItem) -> KnowledgeItem:
        """Insert or replace an item."""
        status = item.status.value if isinstance(item, TaskItem) else None
        await self.db.execute(
            """INSERT INTO items
            (id, owner_id, kind, title, status, created_at, updated_at, payload)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                owner_id = excluded.owner_id,
                kind = excluded.kind,
                title = excluded.title,
                status = excluded.status,
                created_at = excluded.created_at,
                updated_at = excluded.updated_at,
                payload = excluded.payload""",
            (
                item.id,
                item.owner_id,
                item.kind,
                item.title,
                status,
                to_db_time(item.created_at),
                to_db_time(item.updated_at),
                item.model_dump_json(),
            ),
        )
        await self._replace_tags(item)
        await self.db.commit()
        logger.info("Saved %s item %s", item.kind, item.id)
        return item

    async def get_item(self, item_id: str) -> KnowledgeItem | None:
        """Get a single item by ID."""
        cursor = await self.db.execute("SELECT payload FROM items WHERE id = ?", (item_id,))
        row = await cursor.fetchone()
        return parse_item(row["payload"]) if row else None

    async def fetch_items(self, ids: list[str]) -> list[KnowledgeItem]:
        """Get the items that exist among ``ids``."""
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        cursor = await self.db.execute(
            f"SELECT payload FROM items WHERE id IN ({placeholders})", list(ids)
        )
        rows = await cursor.fetchall()
        return [parse_item(row["payload"]) for row in rows]

    async def open_tasks(self, owner_id: str) -> list[TaskItem]:
        """Tasks for ``owner_id`` whose status is not done."""
        cursor = await self.db.execute(
            "SELECT payload FROM items WHERE owner_id = ? AND kind = 'task' AND status != ?",
            (owner_id, TaskStatus.DONE.value),
        )
        rows = await cursor.fetchall()
        tasks: list[TaskItem] = []
        for row in rows:
            item = parse_item(row["payload"])
            if isinstance(item, TaskItem):
                tasks.append(item)
        return tasks

    async def delete_item(self, owner_id: str, item_id: str) -> bool:
        """Delete an item and its vector; links touching it become broken."""
        cursor = await self.db.execute(
            "SELECT id FROM items WHERE id = ? AND owner_id = ?", (item_id, owner_id)
        )
        if await cursor.fetchone() is None:
            return False

        broken = break_links(await self.existing_links(owner_id, item_id), item_id)
        for link in broken:
            await self._set_link_state(link)

        await self.db.execute("DELETE FROM items WHERE id = ?", (item_id,))
        await self.db.execute("DELETE FROM item_tags WHERE item_id = ?", (item_id,))
        try:
            await self.db.vector_delete(item_id)
        except Exception:
            logger.warning("Failed to delete vector for %s", item_id, exc_info=True)
        await self.db.commit()
        logger.info("Deleted item %s, broke %d link(s)", item_id, len(broken))
        return True

    async def _replace_tags(self, item: KnowledgeItem) -> None:
        await self.db.execute("DELETE FROM item_tags WHERE item_id = ?", (item.id,))
        for name in sorted(item.tag_names):
            await self.db.execute(
                "INSERT INTO item_tags (item_id, name) VALUES (?, ?)", (item.id, name)
            )

    # -- Links --

    async def existing_links(self, owner_id: str, item_id: str) -> list[ContextLink]:
        """Every link touching ``item_id`` in either direction."""
        cursor = await self.db.execute(
            """SELECT * FROM links
            WHERE owner_id = ? AND (source_id = ? OR target_id = ?)
            ORDER BY id""",
            (owner_id, item_id, item_id),
        )
        rows = await cursor.fetchall()
        return [row_to_link(row) for row in rows]

    async def get_link(self, owner_id: str, link_id: str) -> ContextLink | None:
        """Get a single link by ID."""
        cursor = await self.db.execute(
            "SELECT * FROM links WHERE id = ? AND owner_id = ?", (link_id, owner_id)
        )
        row = await cursor.fetchone()
        return row_to_link(row) if row else None

    async def save_suggestions(self, links: list[ContextLink]) -> list[ContextLink]:
        """Persist suggested links, assigning ids and timestamps.

        Pairs that already hold an active or rejected link are skipped, so
        saving the same suggestions twice stores them once.
        """
        saved: list[ContextLink] = []
        blocked_by_source: dict[tuple[str, str], set[frozenset[str]]] = {}
        now = datetime.now(UTC)

        for link in links:
            key = (link.owner_id, link.source_id)
            if key not in blocked_by_source:
                existing = await self.existing_links(link.owner_id, link.source_id)
                blocked_by_source[key] = suppressed_pairs(existing)
            blocked = blocked_by_source[key]
            if link.pair in blocked:
                continue

            stored = link.model_copy(
                update={"id": await self._next_link_id(), "created_at": now}
            )
            await self._insert_link(stored)
            blocked.add(stored.pair)
            saved.append(stored)

        await self.db.commit()
        if saved:
            logger.info("Saved %d link suggestion(s)", len(saved))
        return saved

    async def accept_link(self, owner_id: str, link_id: str) -> ContextLink:
        """Accept a suggested link."""
        link = await self._require_link(owner_id, link_id)
        accepted = accept_link(link)
        await self._set_link_state(accepted)
        await self.db.commit()
        return accepted

    async def reject_link(self, owner_id: str, link_id: str) -> ContextLink:
        """Reject a link; the pair will not be suggested again."""
        link = await self._require_link(owner_id, link_id)
        rejected = reject_link(link)
        await self._set_link_state(rejected)
        await self.db.commit()
        return rejected

    async def _require_link(self, owner_id: str, link_id: str) -> ContextLink:
        link = await self.get_link(owner_id, link_id)
        if link is None:
            raise InputInvalidError(f"Link {link_id} not found")
        return link

    async def next_item_id(self) -> str:
        """Get and increment the next item ID."""
        item_id = await self._next_id("item_id_seq", "it")
        await self.db.commit()
        return item_id

    async def _next_link_id(self) -> str:
        return await self._next_id("link_id_seq", "lk")

    async def _next_id(self, seq_table: str, prefix: str) -> str:
        cursor = await self.db.execute(f"SELECT next_id FROM {seq_table}")
        row = await cursor.fetchone()
        if row is None:
            raise RuntimeError(f"{seq_table} table is empty")
        next_id = row[0]
        await self.db.execute(f"UPDATE {seq_table} SET next_id = ?", (next_id + 1,))
        return f"{prefix}-{next_id:05d}"

    async def _insert_link(self, link: ContextLink) -> None:
        await self.db.execute(
            """INSERT INTO links
            (id, owner_id, source_id, target_id, link_type, confidence, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                link.id,
                link.owner_id,
                link.source_id,
                link.target_id,
                link.link_type.value,
                link.confidence,
                link.status.value,
                to_db_time(link.created_at or datetime.now(UTC)),
            ),
        )

    async def _set_link_state(self, link: ContextLink) -> None:
        await self.db.execute(
            "UPDATE links SET link_type = ?, status = ? WHERE id = ?",
            (link.link_type.value, link.status.value, link.id),
        )
