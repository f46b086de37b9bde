"""Shared test fixtures, fakes and item factories."""

import asyncio
import math
from datetime import UTC, datetime, timedelta

import pytest_asyncio

from kb_relevance.db.connection import create_connection
from kb_relevance.errors import EmbeddingUnavailableError, UpstreamUnavailableError
from kb_relevance.models.item import (
    KnowledgeItem,
    NoteItem,
    TaskItem,
    TaskPriority,
    TaskStatus,
)
from kb_relevance.models.link import ContextLink
from kb_relevance.models.search import SearchFilters, SimilarityMatch
from kb_relevance.store.item_store import ItemStore
from kb_relevance.store.vector_index import VectorIndex

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
TEST_DIM = 4


def make_note(
    item_id: str = "it-00001",
    *,
    owner_id: str = "alice",
    title: str = "",
    content: str = "",
    tags: list[str] | None = None,
    created_at: datetime = NOW,
    updated_at: datetime | None = None,
) -> NoteItem:
    return NoteItem(
        id=item_id,
        owner_id=owner_id,
        title=title,
        content=content,
        tags=tags or [],
        created_at=created_at,
        updated_at=updated_at or created_at,
    )


def make_task(
    item_id: str = "it-00001",
    *,
    owner_id: str = "alice",
    title: str = "",
    priority: TaskPriority | None = None,
    deadline_days: float | None = None,
    inactive_days: float = 0,
    status: TaskStatus = TaskStatus.TODO,
    now: datetime = NOW,
) -> TaskItem:
    return TaskItem(
        id=item_id,
        owner_id=owner_id,
        title=title or f"Task {item_id}",
        priority=priority,
        deadline=now + timedelta(days=deadline_days) if deadline_days is not None else None,
        last_activity_at=now - timedelta(days=inactive_days),
        status=status,
        created_at=now - timedelta(days=60),
        updated_at=now - timedelta(days=inactive_days),
    )


def unit(*values: float) -> list[float]:
    """Normalize a vector to unit length."""
    norm = math.sqrt(sum(v * v for v in values))
    return [v / norm for v in values]


class FakeEmbedder:
    """Embedder with pre-assigned vectors for deterministic tests.

    Registered texts get exact vectors; anything else gets a hash-based
    unit vector. Set ``available`` to False to simulate an outage.
    """

    def __init__(self, dim: int = TEST_DIM):
        self.dim = dim
        self.available = True
        self.calls = 0
        self._vectors: dict[str, list[float]] = {}

    def register(self, text: str, vector: list[float]) -> None:
        self._vectors[text] = vector

    async def embed(self, text: str) -> list[float]:
        self.calls += 1
        if not self.available:
            raise EmbeddingUnavailableError("fake embedder offline")
        if text in self._vectors:
            return self._vectors[text]
        h = hash(text) & 0xFFFFFFFF
        raw = [((h * (i + 1) * 2654435761) & 0xFFFF) / 0xFFFF + 0.01 for i in range(self.dim)]
        return unit(*raw)


class FakeProvider:
    """In-memory SimilarityProvider returning preset matches."""

    def __init__(self, matches: list[SimilarityMatch] | None = None):
        self.matches = matches or []
        self.embed_calls = 0
        self.search_calls = 0
        self.fail_embed = False
        self.fail_search = False
        self.delay = 0.0
        self.last_filters: SearchFilters | None = None

    async def embed(self, text: str) -> list[float]:
        self.embed_calls += 1
        if self.fail_embed:
            raise EmbeddingUnavailableError("embedding offline")
        return unit(1.0, 0.0, 0.0, 0.0)

    async def vector_search(
        self,
        vector: list[float],
        owner_id: str,
        filters: SearchFilters | None,
        limit: int,
    ) -> list[SimilarityMatch]:
        self.search_calls += 1
        self.last_filters = filters
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_search:
            raise UpstreamUnavailableError("vector index offline")
        return self.matches[:limit]


class FakeItemSource:
    """In-memory ItemSource."""

    def __init__(
        self,
        items: list[KnowledgeItem] | None = None,
        links: list[ContextLink] | None = None,
    ):
        self.items = {item.id: item for item in items or []}
        self.links = list(links or [])
        self.fetch_calls = 0

    async def fetch_items(self, ids: list[str]) -> list[KnowledgeItem]:
        self.fetch_calls += 1
        return [self.items[i] for i in ids if i in self.items]

    async def open_tasks(self, owner_id: str) -> list[TaskItem]:
        return [
            item
            for item in self.items.values()
            if isinstance(item, TaskItem)
            and item.owner_id == owner_id
            and item.status != TaskStatus.DONE
        ]

    async def existing_links(self, owner_id: str, item_id: str) -> list[ContextLink]:
        return [
            link for link in self.links if link.owner_id == owner_id and item_id in link.pair
        ]


@pytest_asyncio.fixture
async def db():
    """In-memory database with full schema and sqlite-vec."""
    conn = await create_connection(":memory:", embedding_dim=TEST_DIM)
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def store(db):
    """Item store backed by in-memory DB."""
    return ItemStore(db)


@pytest_asyncio.fixture
async def index(db):
    """Vector index backed by in-memory DB."""
    return VectorIndex(db)


@pytest_asyncio.fixture
async def fake_embedder():
    """Controllable fake embedder."""
    return FakeEmbedder()
