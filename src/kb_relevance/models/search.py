"""Search, ranking and focus models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kb_relevance.models.item import ItemKind, KnowledgeItem, UtcDatetime


class SearchFilters(BaseModel):
    """Optional filters applied by the similarity provider before scoring."""

    model_config = ConfigDict(frozen=True)

    kinds: list[ItemKind] | None = None
    tags: list[str] | None = None
    created_after: UtcDatetime | None = None
    created_before: UtcDatetime | None = None


class SearchQuery(BaseModel):
    """A normalized, owner-scoped search request."""

    model_config = ConfigDict(frozen=True)

    owner_id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    filters: SearchFilters = Field(default_factory=SearchFilters)

    @field_validator("owner_id", mode="before")
    @classmethod
    def _strip_owner(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("text", mode="before")
    @classmethod
    def _normalize_text(cls, value: object) -> object:
        """Lowercase and collapse whitespace."""
        if isinstance(value, str):
            return " ".join(value.split()).lower()
        return value


class SimilarityMatch(BaseModel):
    """One nearest-neighbor hit from the similarity provider."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    similarity: float = Field(ge=0.0, le=1.0)


class Highlight(BaseModel):
    """A span of item content containing query terms."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)
    text: str


class RankedResult(BaseModel):
    """A scored item with a human-readable explanation."""

    model_config = ConfigDict(frozen=True)

    item: KnowledgeItem
    score: float
    explanation: str = Field(min_length=1)
    highlights: tuple[Highlight, ...] = ()


class RankedPage(BaseModel):
    """One page of ranked results plus the untruncated count."""

    model_config = ConfigDict(frozen=True)

    results: tuple[RankedResult, ...] = ()
    total_count: int = 0
    from_cache: bool = False
    degraded: bool = False


class SearchResponse(BaseModel):
    """Result of the search operation."""

    items: list[RankedResult]
    total_count: int
    query_time_ms: float
    from_cache: bool = False
    degraded: bool = False


class FocusResponse(BaseModel):
    """Result of the daily focus operation."""

    priorities: list[RankedResult]
    generated_at: datetime
