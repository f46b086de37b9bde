"""Knowledge item models, one variant per item kind."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, TypeAdapter, field_validator


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class ItemKind(StrEnum):
    """Kinds of content a knowledge item can hold."""

    NOTE = "note"
    CODE = "code"
    TASK = "task"
    REPOSITORY = "repository"


class TagOrigin(StrEnum):
    """Where a tag came from."""

    AUTO = "auto"
    MANUAL = "manual"


class TaskStatus(StrEnum):
    """Task workflow status."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class TaskPriority(StrEnum):
    """User-assigned task priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Tag(BaseModel):
    """A tag attached to an item, either extracted or user-assigned."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    origin: TagOrigin = TagOrigin.MANUAL
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    @property
    def key(self) -> str:
        """Case-folded name used for tag comparisons."""
        return self.name.casefold()


class _ItemBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    owner_id: str = Field(min_length=1)
    title: str = ""
    content: str = ""
    tags: list[Tag] = Field(default_factory=list)
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> Any:
        """Accept bare tag names alongside full tag objects."""
        if isinstance(value, list | tuple):
            return [{"name": v} if isinstance(v, str) else v for v in value]
        return value

    @property
    def tag_names(self) -> frozenset[str]:
        """Case-folded tag names."""
        return frozenset(tag.key for tag in self.tags)

    @property
    def embedding_text(self) -> str:
        """Text used for generating embeddings."""
        return f"{self.title} {self.content}".strip()


class NoteItem(_ItemBase):
    """A free-form note."""

    kind: Literal["note"] = "note"


class CodeItem(_ItemBase):
    """A file or snippet imported from a repository."""

    kind: Literal["code"] = "code"
    language: str | None = None
    path: str | None = None


class RepositoryItem(_ItemBase):
    """An imported repository."""

    kind: Literal["repository"] = "repository"
    url: str | None = None
    default_branch: str | None = None


class TaskItem(_ItemBase):
    """A task with scheduling metadata."""

    kind: Literal["task"] = "task"
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority | None = None
    deadline: UtcDatetime | None = None
    last_activity_at: UtcDatetime | None = None

    @property
    def activity_anchor(self) -> datetime:
        """Timestamp inactivity is measured from."""
        return self.last_activity_at or self.updated_at


KnowledgeItem = Annotated[
    NoteItem | CodeItem | TaskItem | RepositoryItem, Field(discriminator="kind")
]

_ITEM_ADAPTER: TypeAdapter[KnowledgeItem] = TypeAdapter(KnowledgeItem)


def parse_item(data: Any) -> KnowledgeItem:
    """Validate a mapping (or JSON string) into the matching item variant."""
    if isinstance(data, str | bytes):
        return _ITEM_ADAPTER.validate_json(data)
    return _ITEM_ADAPTER.validate_python(data)
