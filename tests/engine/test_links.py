"""Tests for link suggestion and link lifecycle transitions."""

from datetime import timedelta

import pytest

from kb_relevance.engine.links import (
    LinkTransitionError,
    accept_link,
    break_links,
    detect_links,
    reject_link,
    score_link_candidate,
    tag_overlap,
)
from kb_relevance.errors import InputInvalidError
from kb_relevance.models.link import ContextLink, LinkStatus, LinkType
from tests.conftest import NOW, make_note

DAY_10 = NOW
DAY_12 = NOW + timedelta(days=2)


def _new_note(**kwargs):
    defaults = {"tags": ["rust", "cache"], "created_at": DAY_10}
    defaults.update(kwargs)
    return make_note("new", **defaults)


def _link(
    source: str,
    target: str,
    *,
    status: LinkStatus = LinkStatus.ACTIVE,
    link_type: LinkType = LinkType.SUGGESTED,
    owner: str = "alice",
) -> ContextLink:
    return ContextLink(
        id="lk-1",
        owner_id=owner,
        source_id=source,
        target_id=target,
        link_type=link_type,
        status=status,
        confidence=0.7,
    )


def test_rust_cache_scenario_is_suggested():
    n = _new_note()
    m = make_note("m", tags=["rust", "eviction"], created_at=DAY_12)

    score = score_link_candidate(n, m, 0.8)
    assert score.tag_overlap == pytest.approx(0.5)
    assert score.temporal == pytest.approx(1 - 2 / 30)
    assert score.confidence == pytest.approx(0.75, abs=1e-4)

    [link] = detect_links(n, [(m, 0.8)], [])
    assert link.source_id == "new"
    assert link.target_id == "m"
    assert link.link_type == LinkType.SUGGESTED
    assert link.status == LinkStatus.ACTIVE
    assert link.owner_id == "alice"
    assert link.id is None and link.created_at is None
    assert link.confidence == pytest.approx(0.75, abs=1e-4)


def test_tag_overlap_uses_larger_set():
    assert tag_overlap(frozenset({"a", "b"}), frozenset({"a", "c", "d", "e"})) == 0.25


def test_tag_overlap_zero_when_either_set_empty():
    assert tag_overlap(frozenset(), frozenset({"a"})) == 0.0
    assert tag_overlap(frozenset(), frozenset()) == 0.0


def test_tags_compared_case_insensitively():
    n = _new_note(tags=["Rust"])
    m = make_note("m", tags=["rust"], created_at=DAY_10)
    assert score_link_candidate(n, m, 0.9).tag_overlap == 1.0


def test_items_far_apart_in_time_get_no_temporal_credit():
    n = _new_note()
    m = make_note("m", tags=["rust", "cache"], created_at=DAY_10 - timedelta(days=45))
    score = score_link_candidate(n, m, 1.0)
    assert score.temporal == 0.0
    # 0.4 + 0.3 + 0 still clears the threshold
    assert score.confidence == pytest.approx(0.7)


def test_low_confidence_candidates_dropped():
    n = _new_note(tags=[])
    m = make_note("m", created_at=DAY_10 - timedelta(days=40))
    # 0.9 * 0.4 = 0.36 < 0.6
    assert detect_links(n, [(m, 0.9)], []) == []


def test_candidates_under_similarity_floor_dropped():
    n = _new_note()
    m = make_note("m", tags=["rust", "cache"], created_at=DAY_10)
    assert detect_links(n, [(m, 0.65)], []) == []
    assert len(detect_links(n, [(m, 0.65)], [], similarity_floor=0.5)) == 1


def test_self_and_foreign_candidates_skipped():
    n = _new_note()
    same = make_note("new", tags=["rust", "cache"], created_at=DAY_10)
    foreign = make_note("f", owner_id="bob", tags=["rust", "cache"], created_at=DAY_10)
    assert detect_links(n, [(same, 1.0), (foreign, 1.0)], []) == []


@pytest.mark.parametrize(
    ("status", "link_type", "suppressed"),
    [
        (LinkStatus.ACTIVE, LinkType.SUGGESTED, True),
        (LinkStatus.ACTIVE, LinkType.MANUAL, True),
        (LinkStatus.ACTIVE, LinkType.ACCEPTED, True),
        (LinkStatus.REJECTED, LinkType.SUGGESTED, True),
        (LinkStatus.BROKEN, LinkType.ACCEPTED, False),
    ],
)
def test_existing_links_suppress_pair(status, link_type, suppressed):
    n = _new_note()
    m = make_note("m", tags=["rust", "cache"], created_at=DAY_10)
    # Reverse direction: pairs are unordered
    existing = [_link("m", "new", status=status, link_type=link_type)]
    links = detect_links(n, [(m, 0.9)], existing)
    assert (links == []) is suppressed


def test_repeated_candidate_keeps_best_similarity():
    n = _new_note()
    m = make_note("m", tags=["rust", "cache"], created_at=DAY_10)
    [link] = detect_links(n, [(m, 0.75), (m, 0.95)], [])
    assert link.confidence == pytest.approx(0.95 * 0.4 + 0.3 + 0.3)


def test_suggestions_sorted_and_truncated():
    n = _new_note()
    candidates = [
        (make_note(f"m{i}", tags=["rust", "cache"], created_at=DAY_10), 0.7 + i * 0.03)
        for i in range(8)
    ]
    links = detect_links(n, candidates, [], limit=5)
    assert len(links) == 5
    assert [link.target_id for link in links] == ["m7", "m6", "m5", "m4", "m3"]
    confidences = [link.confidence for link in links]
    assert confidences == sorted(confidences, reverse=True)
    assert all(0.6 <= c <= 1.0 for c in confidences)


def test_equal_confidence_ordered_by_target_id():
    n = _new_note()
    b = make_note("b", tags=["rust", "cache"], created_at=DAY_10)
    a = make_note("a", tags=["rust", "cache"], created_at=DAY_10)
    links = detect_links(n, [(b, 0.8), (a, 0.8)], [])
    assert [link.target_id for link in links] == ["a", "b"]


def test_accept_suggested_link():
    accepted = accept_link(_link("a", "b"))
    assert accepted.link_type == LinkType.ACCEPTED
    assert accepted.status == LinkStatus.ACTIVE


def test_accept_rejected_link_fails():
    with pytest.raises(LinkTransitionError):
        accept_link(_link("a", "b", status=LinkStatus.REJECTED))


def test_transition_error_is_input_invalid():
    assert issubclass(LinkTransitionError, InputInvalidError)


def test_reject_link():
    assert reject_link(_link("a", "b")).status == LinkStatus.REJECTED
    with pytest.raises(LinkTransitionError):
        reject_link(_link("a", "b", status=LinkStatus.BROKEN))


def test_break_links_only_touches_deleted_item():
    links = [
        _link("a", "b"),
        _link("c", "a", status=LinkStatus.REJECTED),
        _link("c", "d"),
        _link("a", "e", status=LinkStatus.BROKEN),
    ]
    broken = break_links(links, "a")
    assert [(link.source_id, link.target_id) for link in broken] == [("a", "b"), ("c", "a")]
    assert all(link.status == LinkStatus.BROKEN for link in broken)


def test_link_cannot_point_at_itself():
    with pytest.raises(ValueError):
        _link("a", "a")
