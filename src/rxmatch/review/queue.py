"""Manual review queue.

Routes prescription calculations that scored below the automated
confidence threshold to human reviewers and carries them through
pending -> in_review -> completed.
"""

from uuid import UUID

from ..config import get_settings
from ..logging import get_context_logger
from .assignment import AssignmentManager
from .audit import AuditDispatcher, AuditEmitter, get_audit_emitter
from .errors import InvalidInputError, NotFoundError
from .models import (
    AuditEventType,
    AuditMetadata,
    ReviewItem,
    ReviewItemDetails,
    ReviewItemFilter,
    ReviewPriority,
    ReviewStatus,
)
from .selection import select_next
from .store import QueueStore
from .transitions import TransitionEngine

logger = get_context_logger(__name__, component="queue")


def priority_for_confidence(confidence: float) -> ReviewPriority:
    """Map a confidence score to a review priority band.

    Lower confidence means the calculation is more likely wrong, so it
    is reviewed sooner.
    """
    settings = get_settings()
    if confidence < settings.review_high_priority_below:
        return ReviewPriority.HIGH
    if confidence < settings.review_medium_priority_below:
        return ReviewPriority.MEDIUM
    return ReviewPriority.LOW


class ReviewQueue:
    """Queue of calculations awaiting human review.

    Manages the lifecycle of review items:
    - Enqueue low-confidence calculations
    - List and select items for reviewers
    - Assign, approve, reject and annotate items
    - Emit one audit event per mutation
    """

    def __init__(self, store: QueueStore, emitter: AuditEmitter | None = None):
        """Initialize the queue.

        Args:
            store: Persistence for review items and calculation records
            emitter: Audit sink (defaults to the one selected in settings)
        """
        self.store = store
        self.audit = AuditDispatcher(emitter or get_audit_emitter())
        self.assignments = AssignmentManager(store, self.audit)
        self.transitions = TransitionEngine(store, self.audit)

    async def enqueue(
        self,
        calculation_id: UUID,
        priority: ReviewPriority | str = ReviewPriority.MEDIUM,
    ) -> ReviewItem:
        """Create a pending review item for a calculation.

        Args:
            calculation_id: Calculation to review
            priority: low, medium or high

        Returns:
            The new pending, unassigned item

        Raises:
            InvalidInputError: If the priority is unknown
            NotFoundError: If the calculation does not exist
            DuplicateError: If the calculation already has an open item
        """
        review_priority = ReviewPriority.parse(priority)

        calculation = await self.store.get_calculation(calculation_id)
        if calculation is None:
            raise NotFoundError("Calculation record", calculation_id)

        item = await self.store.put(
            ReviewItem(calculation_id=calculation_id, priority=review_priority)
        )

        logger.info(
            f"Queued calculation {calculation_id} for review as {item.id} "
            f"(priority: {review_priority.value})"
        )
        self.audit.dispatch(
            AuditEventType.REVIEW_ITEM_CREATED,
            AuditMetadata(
                review_item_id=item.id,
                calculation_id=calculation_id,
                priority=review_priority,
            ),
        )
        return item

    async def enqueue_if_low_confidence(
        self,
        calculation_id: UUID,
        confidence: float,
    ) -> ReviewItem | None:
        """Queue a calculation only when its confidence is below threshold.

        Returns:
            The new item, or None if the calculation needs no review

        Raises:
            InvalidInputError: If confidence is not a score between 0 and 1
        """
        if not 0.0 <= confidence <= 1.0:
            raise InvalidInputError(
                f"Confidence must be between 0 and 1, got {confidence!r}",
                field="confidence",
            )

        threshold =get_settings().review_confidence_threshold
        if confidence >= threshold:
            logger.debug(
                f"Calculation {calculation_id} confidence {confidence:.2f} "
                f">= {threshold:.2f}, skipping review"
            )
            return None
        return await self.enqueue(calculation_id, priority_for_confidence(confidence))

    async def get_by_id(self, item_id: UUID) -> ReviewItem:
        """Get a review item.

        Raises:
            NotFoundError: If the item does not exist
        """
        item = await self.store.get(item_id)
        if item is None:
            raise NotFoundError("Review item", item_id)
        return item

    async def get_details(self, item_id: UUID) -> ReviewItemDetails:
        """Get a review item together with its calculation record."""
        item = await self.get_by_id(item_id)
        calculation = await self.store.get_calculation(item.calculation_id)
        if calculation is None:
            logger.warning(
                f"Review item {item_id} references missing calculation {item.calculation_id}"
            )
        return ReviewItemDetails(item=item, calculation=calculation)

    async def list_pending(self) -> list[ReviewItem]:
        """List pending items, unordered."""
        return await self.store.list_by_predicate(
            ReviewItemFilter(status=ReviewStatus.PENDING)
        )

    async def list_items(self, item_filter: ReviewItemFilter | None = None) -> list[ReviewItem]:
        """List items matching a filter, unordered."""
        return await self.store.list_by_predicate(item_filter or ReviewItemFilter())

    async def select_next(self) -> ReviewItem | None:
        """The unassigned pending item a reviewer should pick up next."""
        candidates = await self.store.list_by_predicate(
            ReviewItemFilter(status=ReviewStatus.PENDING, unassigned_only=True)
        )
        return select_next(candidates)

    async def assign(self, item_id: UUID, reviewer_id: str) -> ReviewItem:
        """Claim a pending, unassigned item. See ``AssignmentManager.assign``."""
        return await self.assignments.assign(item_id, reviewer_id)

    async def approve(
        self,
        item_id: UUID,
        reviewer_id: str,
        notes: str | None = None,
    ) -> ReviewItem:
        """Approve an item's calculation. See ``TransitionEngine.approve``."""
        return await self.transitions.approve(item_id, reviewer_id, notes)

    async def reject(
        self,
        item_id: UUID,
        reviewer_id: str,
        reason: str,
        notes: str | None = None,
    ) -> ReviewItem:
        """Reject an item's calculation. See ``TransitionEngine.reject``."""
        return await self.transitions.reject(item_id, reviewer_id, reason, notes)

    async def annotate(
        self,
        item_id: UUID,
        note: str,
        author: str | None = None,
    ) -> ReviewItem:
        """Append a note to an item. See ``TransitionEngine.annotate``."""
        return await self.transitions.annotate(item_id, note, author)

    async def reprioritize(
        self,
        item_id: UUID,
        priority: ReviewPriority | str,
        actor: str | None = None,
    ) -> ReviewItem:
        """Change an open item's priority. See ``TransitionEngine.reprioritize``."""
        return await self.transitions.reprioritize(item_id, priority, actor)

    async def close(self) -> None:
        """Wait for in-flight audit events (for shutdown)."""
        await self.audit.drain()


# Singleton instance
_queue: ReviewQueue | None = None


def get_review_queue() -> ReviewQueue:
    """Get the review queue singleton backed by PostgreSQL."""
    global _queue
    if _queue is None:
        from .sql_store import SQLQueueStore

        _queue = ReviewQueue(SQLQueueStore())
    return _queue
