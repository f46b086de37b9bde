"""Tests for compact output formatters."""

from datetime import timedelta

from kb_relevance.models.item import TaskItem, TaskPriority
from kb_relevance.models.link import ContextLink, LinkStatus, LinkType
from kb_relevance.models.search import Highlight, RankedResult
from kb_relevance.tools.formatters import (
    format_focus,
    format_item_header,
    format_item_meta,
    format_link,
    format_ranked_result,
    format_result_list,
    format_snippet,
)
from tests.conftest import NOW, make_note


def _task(**kwargs) -> TaskItem:
    defaults = {
        "id": "t-1",
        "owner_id": "alice",
        "title": "Ship release",
        "tags": ["work"],
        "deadline": NOW + timedelta(days=2),
        "priority": TaskPriority.HIGH,
        "created_at": NOW,
        "updated_at": NOW,
    }
    defaults.update(kwargs)
    return TaskItem(**defaults)


def _link(**kwargs) -> ContextLink:
    defaults = {
        "id": "lk-00001",
        "owner_id": "alice",
        "source_id": "it-1",
        "target_id": "it-2",
        "link_type": LinkType.SUGGESTED,
        "confidence": 0.75,
    }
    defaults.update(kwargs)
    return ContextLink(**defaults)


# --- items ---


def test_header_with_score():
    note = make_note("it-1", title="Rust cache")
    assert format_item_header(note, 0.8123) == "[it-1] note | Rust cache (0.81)"


def test_header_untitled_without_score():
    assert format_item_header(make_note("it-1")) == "[it-1] note | (untitled)"


def test_task_meta():
    assert format_item_meta(_task()) == "#work | due 2026-03-12 | high"


def test_note_meta_only_tags():
    assert format_item_meta(make_note(tags=["rust", "lru"])) == "#rust #lru"
    assert format_item_meta(make_note()) == ""


# --- snippets and results ---


def test_snippet_short_content():
    assert format_snippet("a cache here", 2, 7) == "a **cache** here"


def test_snippet_long_content_is_trimmed():
    content = "x" * 50 + " cache " + "y" * 50
    snippet = format_snippet(content, 51, 56)
    assert snippet.startswith("...")
    assert snippet.endswith("...")
    assert "**cache**" in snippet


def test_ranked_result():
    note = make_note("it-1", title="LRU", content="a cache here", tags=["rust"])
    result = RankedResult(
        item=note,
        score=0.81,
        explanation="semantic similarity (0.80); matched terms: cache",
        highlights=(Highlight(start=2, end=7, text="cache"),),
    )
    assert format_ranked_result(result) == (
        "[it-1] note | LRU (0.81)\n"
        "  why: semantic similarity (0.80); matched terms: cache\n"
        "  #rust\n"
        "  > a **cache** here"
    )


# --- links ---


def test_link():
    assert format_link(_link()) == "[lk-00001] it-1 <-> it-2 suggested (75%)"


def test_link_with_status_and_target():
    link = _link(status=LinkStatus.REJECTED)
    target = make_note("it-2", title="Eviction")
    assert format_link(link, target) == (
        "[lk-00001] it-1 <-> it-2 suggested (75%) [REJECTED] Eviction"
    )


def test_unsaved_link():
    assert format_link(_link(id=None)).startswith("[unsaved]")


# --- focus ---


def test_focus_empty():
    assert format_focus([], NOW) == "No open tasks."


def test_focus_list():
    result = RankedResult(item=_task(), score=80.0, explanation="deadline in 2 days, high priority")
    assert format_focus([result], NOW) == (
        "Focus for 2026-03-10\n1. [t-1] Ship release (80)\n   deadline in 2 days, high priority"
    )


# --- result lists ---


def test_result_list_empty():
    assert format_result_list([]) == "No results found."


def test_result_list_with_total_and_note():
    assert format_result_list(["a", "b"], note="12 ms", total_count=5) == (
        "2 result(s) of 5\nNote: 12 ms\n\na\n\nb"
    )


def test_result_list_total_not_repeated():
    assert format_result_list(["a"], total_count=1).splitlines()[0] == "1 result(s)"
