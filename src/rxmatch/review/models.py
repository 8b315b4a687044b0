"""Pydantic models for the manual review queue.

This module defines the review item entity, the externally owned
calculation record it points at, listing filters, the closed set of
audit events, and the request/response models used by the API layer.
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .errors import InvalidInputError


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


# =============================================================================
# Enumerations
# =============================================================================


class ReviewPriority(str, Enum):
    """Priority band of a review item."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: "ReviewPriority | str") -> "ReviewPriority":
        """Parse a priority, case-insensitively.

        Raises:
            InvalidInputError: If the value is not a known priority
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(p.value for p in cls)
            raise InvalidInputError(
                f"Unknown priority {value!r} (expected one of: {allowed})",
                field="priority",
            ) from None


class ReviewStatus(str, Enum):
    """Lifecycle state of a review item."""

    PENDING = "pending"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"


class CalculationStatus(str, Enum):
    """Status of a prescription calculation record."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AuditEventType(str, Enum):
    """Audit events emitted by the review queue, one per mutation."""

    REVIEW_ITEM_CREATED = "review_item_created"
    REVIEW_ITEM_ASSIGNED = "review_item_assigned"
    REVIEW_APPROVED = "review_approved"
    REVIEW_REJECTED = "review_rejected"
    REVIEW_NOTES_ADDED = "review_notes_added"
    REVIEW_PRIORITY_CHANGED = "review_priority_changed"


# =============================================================================
# Core Entity Models
# =============================================================================


class CalculationRecord(BaseModel):
    """A parsed and scored prescription calculation.

    Owned by the parsing pipeline; the review queue only reads it and
    writes ``status`` when a review item is resolved.
    """

    id: UUID = Field(default_factory=uuid4)
    status: CalculationStatus = CalculationStatus.PENDING
    confidence_score: float | None = Field(default=None, ge=0.0, le=1.0)
    created_at: datetime = Field(default_factory=utcnow)


class ReviewItem(BaseModel):
    """A calculation awaiting (or having received) human review.

    ``notes`` is an append-only log: entries are only ever concatenated,
    each one starting with an ISO-8601 timestamp. ``assigned_to`` is set
    exactly once, when the item moves to ``in_review``, and is kept after
    completion.
    """

    id: UUID = Field(default_factory=uuid4)
    calculation_id: UUID
    priority: ReviewPriority = ReviewPriority.MEDIUM
    status: ReviewStatus = ReviewStatus.PENDING
    assigned_to: str | None = Field(default=None, description="Reviewer identifier")
    notes: str = ""
    reviewed_by: str | None = Field(default=None, description="Reviewer who resolved the item")
    reviewed_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_open(self) -> bool:
        """Whether the item still occupies its calculation's queue slot."""
        return self.status != ReviewStatus.COMPLETED


class ReviewItemDetails(BaseModel):
    """A review item joined with its calculation record."""

    item: ReviewItem
    calculation: CalculationRecord | None = None


class ReviewItemFilter(BaseModel):
    """Predicate for listing review items. Unset fields match anything."""

    status: ReviewStatus | None = None
    priority: ReviewPriority | None = None
    assigned_to: str | None = None
    unassigned_only: bool = False
    calculation_id: UUID | None = None
    open_only: bool = False

    def matches(self, item: ReviewItem) -> bool:
        """Evaluate the filter against an item."""
        if self.status is not None and item.status != self.status:
            return False
        if self.priority is not None and item.priority != self.priority:
            return False
        if self.assigned_to is not None and item.assigned_to != self.assigned_to:
            return False
        if self.unassigned_only and item.assigned_to is not None:
            return False
        if self.calculation_id is not None and item.calculation_id != self.calculation_id:
            return False
        if self.open_only and not item.is_open:
            return False
        return True


# =============================================================================
# Audit Models
# =============================================================================


class AuditMetadata(BaseModel):
    """Structured payload attached to every audit event."""

    review_item_id: UUID
    calculation_id: UUID | None = None
    reviewer_id: str | None = None
    previous_assignee: str | None = None
    priority: ReviewPriority | None = None
    previous_priority: ReviewPriority | None = None
    reason: str | None = None
    notes: str | None = None
    notes_length: int | None = None
    timestamp: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# API Request Models
# =============================================================================


class EnqueueRequest(BaseModel):
    """Request to queue a calculation for review."""

    calculation_id: UUID
    priority: str = ReviewPriority.MEDIUM.value


class AssignRequest(BaseModel):
    """Request to claim a review item."""

    reviewer_id: str


class ApproveRequest(BaseModel):
    """Request to approve the calculation behind a review item."""

    reviewer_id: str
    notes: str | None = None


class RejectRequest(BaseModel):
    """Request to reject the calculation behind a review item."""

    reviewer_id: str
    reason: str
    notes: str | None = None


class AnnotateRequest(BaseModel):
    """Request to append a note to a review item."""

    note: str = Field(..., validation_alias=AliasChoices("note", "notes"))
    reviewer_id: str | None = None


class ReprioritizeRequest(BaseModel):
    """Request to change the priority of an open review item."""

    priority: str
    reviewer_id: str | None = None


class ReviewItemListResponse(BaseModel):
    """Response for the review item list endpoint."""

    items: list[ReviewItem]
    count: int
