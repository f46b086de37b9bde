"""Tests for item and link persistence."""

from datetime import timedelta

import pytest

from kb_relevance.errors import InputInvalidError
from kb_relevance.models.item import CodeItem, TaskStatus
from kb_relevance.models.link import ContextLink, LinkStatus, LinkType
from tests.conftest import NOW, make_note, make_task


def _suggestion(source: str, target: str, confidence: float = 0.75) -> ContextLink:
    return ContextLink(
        owner_id="alice",
        source_id=source,
        target_id=target,
        link_type=LinkType.SUGGESTED,
        confidence=confidence,
    )


@pytest.mark.asyncio
async def test_save_and_get_item(store):
    note = make_note("it-1", title="Rust cache", content="LRU", tags=["Rust", "cache"])
    await store.save_item(note)
    loaded = await store.get_item("it-1")
    assert loaded == note
    assert loaded.tag_names == frozenset({"rust", "cache"})


@pytest.mark.asyncio
async def test_item_variants_round_trip_through_payload(store):
    code = CodeItem(
        id="it-2",
        owner_id="alice",
        title="cache.rs",
        content="fn evict() {}",
        language="rust",
        path="src/cache.rs",
        created_at=NOW,
        updated_at=NOW,
    )
    await store.save_item(code)
    loaded = await store.get_item("it-2")
    assert isinstance(loaded, CodeItem)
    assert loaded.path == "src/cache.rs"


@pytest.mark.asyncio
async def test_save_item_replaces_existing(store):
    await store.save_item(make_note("it-1", content="old"))
    await store.save_item(make_note("it-1", content="new"))
    assert (await store.get_item("it-1")).content == "new"


@pytest.mark.asyncio
async def test_get_missing_item(store):
    assert await store.get_item("nope") is None


@pytest.mark.asyncio
async def test_fetch_items_skips_unknown_ids(store):
    await store.save_item(make_note("it-1"))
    await store.save_item(make_note("it-2"))
    items = await store.fetch_items(["it-2", "missing", "it-1"])
    assert {item.id for item in items} == {"it-1", "it-2"}
    assert await store.fetch_items([]) == []


@pytest.mark.asyncio
async def test_open_tasks_excludes_done_and_other_owners(store):
    await store.save_item(make_task("t-1"))
    await store.save_item(make_task("t-2", status=TaskStatus.IN_PROGRESS))
    await store.save_item(make_task("t-3", status=TaskStatus.DONE))
    await store.save_item(make_task("t-4", owner_id="bob"))
    await store.save_item(make_note("n-1"))
    tasks = await store.open_tasks("alice")
    assert sorted(t.id for t in tasks) == ["t-1", "t-2"]


@pytest.mark.asyncio
async def test_item_ids_are_sequential(store):
    assert await store.next_item_id() == "it-00001"
    assert await store.next_item_id() == "it-00002"


@pytest.mark.asyncio
async def test_save_suggestions_assigns_ids(store):
    saved = await store.save_suggestions([_suggestion("a", "b"), _suggestion("a", "c", 0.7)])
    assert [link.id for link in saved] == ["lk-00001", "lk-00002"]
    assert all(link.created_at is not None for link in saved)
    loaded = await store.get_link("alice", "lk-00001")
    assert loaded.target_id == "b"
    assert loaded.confidence == pytest.approx(0.75)


@pytest.mark.asyncio
async def test_save_suggestions_skips_existing_pairs(store):
    await store.save_suggestions([_suggestion("a", "b")])
    # Same pair in either direction is skipped
    again = await store.save_suggestions([_suggestion("a", "b"), _suggestion("b", "a")])
    assert again == []
    assert len(await store.existing_links("alice", "a")) == 1


@pytest.mark.asyncio
async def test_existing_links_both_directions_and_owner_scoped(store):
    await store.save_suggestions([_suggestion("a", "b"), _suggestion("c", "a")])
    links = await store.existing_links("alice", "a")
    assert [(link.source_id, link.target_id) for link in links] == [("a", "b"), ("c", "a")]
    assert await store.existing_links("bob", "a") == []


@pytest.mark.asyncio
async def test_accept_link(store):
    [link] = await store.save_suggestions([_suggestion("a", "b")])
    accepted = await store.accept_link("alice", link.id)
    assert accepted.link_type == LinkType.ACCEPTED
    # Visible from the target side too
    [from_target] = await store.existing_links("alice", "b")
    assert from_target.link_type == LinkType.ACCEPTED


@pytest.mark.asyncio
async def test_rejected_pair_not_saved_again(store):
    [link] = await store.save_suggestions([_suggestion("a", "b")])
    rejected = await store.reject_link("alice", link.id)
    assert rejected.status == LinkStatus.REJECTED
    assert await store.save_suggestions([_suggestion("b", "a")]) == []


@pytest.mark.asyncio
async def test_accept_rejected_link_fails(store):
    [link] = await store.save_suggestions([_suggestion("a", "b")])
    await store.reject_link("alice", link.id)
    with pytest.raises(InputInvalidError):
        await store.accept_link("alice", link.id)


@pytest.mark.asyncio
async def test_review_unknown_link(store):
    with pytest.raises(InputInvalidError, match="not found"):
        await store.accept_link("alice", "lk-99999")


@pytest.mark.asyncio
async def test_other_owner_cannot_see_link(store):
    [link] = await store.save_suggestions([_suggestion("a", "b")])
    assert await store.get_link("bob", link.id) is None


@pytest.mark.asyncio
async def test_delete_item_breaks_links(store, index):
    await store.save_item(make_note("a"))
    await store.save_item(make_note("b", created_at=NOW - timedelta(days=1)))
    await index.store_embedding("a", [1.0, 0.0, 0.0, 0.0])
    await store.save_suggestions([_suggestion("a", "b")])

    assert await store.delete_item("alice", "a") is True
    assert await store.get_item("a") is None
    [link] = await store.existing_links("alice", "b")
    assert link.status == LinkStatus.BROKEN
    assert await index.search([1.0, 0.0, 0.0, 0.0], "alice") == []

    # A broken link no longer blocks a new suggestion for the pair
    assert len(await store.save_suggestions([_suggestion("b", "a")])) == 1


@pytest.mark.asyncio
async def test_delete_item_wrong_owner(store):
    await store.save_item(make_note("a"))
    assert await store.delete_item("bob", "a") is False
    assert await store.get_item("a") is not None


async def _tag_rows(db, item_id: str) -> list[str]:
    cursor = await db.execute(
        "SELECT name FROM item_tags WHERE item_id = ? ORDER BY name", (item_id,)
    )
    return [row[0] for row in await cursor.fetchall()]


@pytest.mark.asyncio
async def test_save_item_replaces_tag_rows(db, store):
    await store.save_item(make_note("it-1", tags=["Rust", "deep learning"]))
    assert await _tag_rows(db, "it-1") == ["deep learning", "rust"]
    await store.save_item(make_note("it-1", tags=["python"]))
    assert await _tag_rows(db, "it-1") == ["python"]


@pytest.mark.asyncio
async def test_delete_item_removes_tag_rows(db, store):
    await store.save_item(make_note("it-1", tags=["rust"]))
    assert await store.delete_item("alice", "it-1") is True
    assert await _tag_rows(db, "it-1") == []
