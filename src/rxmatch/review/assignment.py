"""Claiming review items.

Assignment is the only transition into ``in_review`` and the one place
where two reviewers can race for the same item. The claim is a single
conditional update on ``status`` and ``assigned_to``, so exactly one of
the racing callers succeeds and the other sees a conflict.
"""

from uuid import UUID

from ..logging import log_review_conflict, log_review_transition
from .audit import AuditDispatcher
from .errors import ConflictError, NotFoundError
from .models import AuditEventType, AuditMetadata, ReviewItem, ReviewStatus
from .notes import require_text
from .store import QueueStore


class AssignmentManager:
    """Assigns pending, unassigned review items to reviewers."""

    def __init__(self, store: QueueStore, audit: AuditDispatcher):
        self.store = store
        self.audit = audit

    async def assign(self, item_id: UUID, reviewer_id: str) -> ReviewItem:
        """Claim an item for a reviewer.

        Any pending, unassigned item may be claimed, not only the one at
        the head of the queue.

        Args:
            item_id: Item to claim
            reviewer_id: Reviewer taking the item

        Returns:
            The item, now ``in_review`` and assigned to ``reviewer_id``

        Raises:
            InvalidInputError: If reviewer_id is blank
            NotFoundError: If the item does not exist
            ConflictError: If the item is not pending or already assigned
        """
        reviewer_id = require_text(reviewer_id, "reviewer_id")

        updated = await self.store.compare_and_set(
            item_id,
            expected={"status": ReviewStatus.PENDING, "assigned_to": None},
            changes={"status": ReviewStatus.IN_REVIEW, "assigned_to": reviewer_id},
        )

        if updated is None:
            current = await self.store.get(item_id)
            if current is None:
                raise NotFoundError("Review item", item_id)
            reason = (
                f"status is {current.status.value}"
                if current.assigned_to is None
                else f"already assigned to {current.assigned_to}"
            )
            log_review_conflict(str(item_id), "assign", reason)
            raise ConflictError(f"Review item {item_id} cannot be assigned: {reason}")

        log_review_transition(
            str(item_id),
            ReviewStatus.PENDING.value,
            ReviewStatus.IN_REVIEW.value,
            actor=reviewer_id,
            calculation_id=str(updated.calculation_id),
        )
        self.audit.dispatch(
            AuditEventType.REVIEW_ITEM_ASSIGNED,
            AuditMetadata(
                review_item_id=updated.id,
                calculation_id=updated.calculation_id,
                reviewer_id=reviewer_id,
                previous_assignee=None,
            ),
        )
        return updated
