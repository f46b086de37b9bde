"""Context link suggestion and link lifecycle transitions."""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from kb_relevance.engine.topk import top_k
from kb_relevance.errors import InputInvalidError
from kb_relevance.models.item import KnowledgeItem
from kb_relevance.models.link import ContextLink, LinkStatus, LinkType

logger = logging.getLogger(__name__)

SIMILARITY_WEIGHT = 0.4
TAG_OVERLAP_WEIGHT = 0.3
TEMPORAL_WEIGHT = 0.3

TEMPORAL_WINDOW_DAYS = 30.0
MIN_CONFIDENCE = 0.6
SIMILARITY_FLOOR = 0.7
MAX_SUGGESTIONS = 5

# Statuses that block a new suggestion for the same pair
_SUPPRESSING_STATUSES = frozenset({LinkStatus.ACTIVE, LinkStatus.REJECTED})


class LinkTransitionError(InputInvalidError):
    """A lifecycle transition that the link's current state does not allow."""


@dataclass(frozen=True)
class LinkScore:
    """Signal values (each in [0, 1]) behind a link confidence."""

    target: KnowledgeItem
    similarity: float
    tag_overlap: float
    temporal: float

    @property
    def confidence(self) -> float:
        """Weighted sum rounded to 4 places."""
        total = (
            SIMILARITY_WEIGHT * self.similarity
            + TAG_OVERLAP_WEIGHT * self.tag_overlap
            + TEMPORAL_WEIGHT * self.temporal
        )
        return round(min(total, 1.0), 4)


def _clip(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def tag_overlap(a: frozenset[str], b: frozenset[str]) -> float:
    """Shared tags over the larger tag set; 0 when either set is empty."""
    if not a or not b:
        return 0.0
    return len(a & b) / max(len(a), len(b))


def temporal_proximity(a: KnowledgeItem, b: KnowledgeItem) -> float:
    """Linear decay from 1 (same moment) to 0 at 30 days apart."""
    days = abs((a.created_at - b.created_at).total_seconds()) / 86400.0
    return max(0.0, 1.0 - days / TEMPORAL_WINDOW_DAYS)


def score_link_candidate(
    new_item: KnowledgeItem, candidate: KnowledgeItem, similarity: float
) -> LinkScore:
    """Compute the three link signals between ``new_item`` and ``candidate``."""
    return LinkScore(
        target=candidate,
        similarity=_clip(similarity),
        tag_overlap=_clip(tag_overlap(new_item.tag_names, candidate.tag_names)),
        temporal=_clip(temporal_proximity(new_item, candidate)),
    )


def suppressed_pairs(links: Iterable[ContextLink]) -> set[frozenset[str]]:
    """Unordered pairs that already hold an active or rejected link."""
    return {link.pair for link in links if link.status in _SUPPRESSING_STATUSES}


def detect_links(
    new_item: KnowledgeItem,
    candidates: Sequence[tuple[KnowledgeItem, float]],
    existing_links: Iterable[ContextLink],
    *,
    limit: int = MAX_SUGGESTIONS,
    min_confidence: float = MIN_CONFIDENCE,
    similarity_floor: float = SIMILARITY_FLOOR,
) -> list[ContextLink]:
    """Suggest links from ``new_item`` to similar items.

    Candidates that are the item itself, belong to another owner, fall under
    the similarity floor, or already share an active or rejected link with
    the item are skipped. Survivors at or above ``min_confidence`` are
    returned best first, at most ``limit`` of them. The result is not
    persisted; ids and timestamps are left for the caller.
    """
    blocked = suppressed_pairs(existing_links)

    best: dict[str, tuple[KnowledgeItem, float]] = {}
    for item, similarity in candidates:
        if item.id == new_item.id or item.owner_id != new_item.owner_id:
            continue
        if similarity < similarity_floor:
            continue
        if frozenset((new_item.id, item.id)) in blocked:
            logger.debug("Skipping %s <-> %s: link already exists", new_item.id, item.id)
            continue
        previous = best.get(item.id)
        if previous is None or similarity > previous[1]:
            best[item.id] = (item, similarity)

    scored = [score_link_candidate(new_item, item, sim) for item, sim in best.values()]
    passing = [s for s in scored if s.confidence >= min_confidence]
    ranked = top_k(
        passing,
        limit,
        key=lambda s: (-s.confidence, -s.similarity, s.target.id),
    )

    return [
        ContextLink(
            owner_id=new_item.owner_id,
            source_id=new_item.id,
            target_id=s.target.id,
            link_type=LinkType.SUGGESTED,
            confidence=s.confidence,
            status=LinkStatus.ACTIVE,
        )
        for s in ranked
    ]


def accept_link(link: ContextLink) -> ContextLink:
    """Accept an active suggested or manual link.

    An accepted link connects both endpoints; it is found from either side.
    """
    if link.status != LinkStatus.ACTIVE or link.link_type == LinkType.ACCEPTED:
        raise LinkTransitionError(
            f"Cannot accept a {link.status.value} {link.link_type.value} link"
        )
    return link.model_copy(update={"link_type": LinkType.ACCEPTED})


def reject_link(link: ContextLink) -> ContextLink:
    """Reject an active link so the pair is never suggested again."""
    if link.status != LinkStatus.ACTIVE:
        raise LinkTransitionError(f"Cannot reject a {link.status.value} link")
    return link.model_copy(update={"status": LinkStatus.REJECTED})


def break_links(links: Iterable[ContextLink], deleted_item_id: str) -> list[ContextLink]:
    """Return broken copies of the links touching a deleted item."""
    return [
        link.model_copy(update={"status": LinkStatus.BROKEN})
        for link in links
        if deleted_item_id in link.pair and link.status != LinkStatus.BROKEN
    ]
