"""Context link models."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from kb_relevance.models.item import UtcDatetime


class LinkType(StrEnum):
    """How a link came to exist."""

    MANUAL = "manual"
    SUGGESTED = "suggested"
    ACCEPTED = "accepted"


class LinkStatus(StrEnum):
    """Lifecycle status of a link."""

    ACTIVE = "active"
    REJECTED = "rejected"
    BROKEN = "broken"


class ContextLink(BaseModel):
    """A relationship between two items owned by the same user.

    Links are undirected for identity purposes: ``pair`` is the same for
    (a, b) and (b, a).
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    owner_id: str = Field(min_length=1)
    source_id: str = Field(min_length=1)
    target_id: str = Field(min_length=1)
    link_type: LinkType = LinkType.SUGGESTED
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    status: LinkStatus = LinkStatus.ACTIVE
    created_at: UtcDatetime | None = None

    @model_validator(mode="after")
    def _distinct_endpoints(self) -> "ContextLink":
        if self.source_id == self.target_id:
            raise ValueError("A link cannot connect an item to itself")
        return self

    @property
    def pair(self) -> frozenset[str]:
        """Unordered endpoint pair."""
        return frozenset((self.source_id, self.target_id))

    def other_end(self, item_id: str) -> str:
        """Return the endpoint opposite ``item_id``."""
        return self.target_id if item_id == self.source_id else self.source_id
