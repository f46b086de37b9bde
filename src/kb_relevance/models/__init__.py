"""Pydantic models for items, links and ranking results."""

from kb_relevance.models.item import (
    CodeItem,
    ItemKind,
    KnowledgeItem,
    NoteItem,
    RepositoryItem,
    Tag,
    TagOrigin,
    TaskItem,
    TaskPriority,
    TaskStatus,
    parse_item,
)
from kb_relevance.models.link import ContextLink, LinkStatus, LinkType
from kb_relevance.models.search import (
    FocusResponse,
    Highlight,
    RankedPage,
    RankedResult,
    SearchFilters,
    SearchQuery,
    SearchResponse,
    SimilarityMatch,
)

__all__ = [
    "CodeItem",
    "ContextLink",
    "FocusResponse",
    "Highlight",
    "ItemKind",
    "KnowledgeItem",
    "LinkStatus",
    "LinkType",
    "NoteItem",
    "RankedPage",
    "RankedResult",
    "RepositoryItem",
    "SearchFilters",
    "SearchQuery",
    "SearchResponse",
    "SimilarityMatch",
    "Tag",
    "TagOrigin",
    "TaskItem",
    "TaskPriority",
    "TaskStatus",
    "parse_item",
]
