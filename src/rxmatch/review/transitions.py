"""Review item state machine.

    pending ──assign──▶ in_review ──approve/reject──▶ completed
       └─────────────approve/reject (override)────────▲

``completed`` is terminal. Annotation is a self-loop allowed in every
state. Resolution writes the linked calculation record's status and the
review item in one atomic store update; the audit event follows once that
update has committed.

Every write here is a compare-and-set keyed on the values just read, most
importantly the previous ``notes``. A writer that loses a race re-reads and
tries again, so concurrent appends never drop an entry.
"""

from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from ..config import get_settings
from ..logging import get_context_logger, log_review_conflict, log_review_transition
from . import notes as note_log
from .audit import AuditDispatcher
from .errors import ConflictError, NotFoundError
from .models import (
    AuditEventType,
    AuditMetadata,
    CalculationStatus,
    ReviewItem,
    ReviewPriority,
    ReviewStatus,
    utcnow,
)
from .store import QueueStore

logger = get_context_logger(__name__, component="transitions")


class TransitionEngine:
    """Applies resolution, annotation and re-prioritization to review items."""

    def __init__(
        self,
        store: QueueStore,
        audit: AuditDispatcher,
        max_attempts: int | None = None,
    ):
        self.store = store
        self.audit = audit
        if max_attempts is None:
            max_attempts = get_settings().review_cas_max_attempts
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.max_attempts = max_attempts

    async def _load(self, item_id: UUID) -> ReviewItem:
        item = await self.store.get(item_id)
        if item is None:
            raise NotFoundError("Review item", item_id)
        return item

    def _exhausted(self, item_id: UUID, operation: str) -> ConflictError:
        reason = f"concurrent updates after {self.max_attempts} attempts"
        log_review_conflict(str(item_id), operation, reason)
        return ConflictError(f"Review item {item_id} could not be updated: {reason}")

    async def approve(
        self,
        item_id: UUID,
        reviewer_id: str,
        notes: str | None = None,
    ) -> ReviewItem:
        """Approve the calculation behind a review item.

        Args:
            item_id: Item to resolve
            reviewer_id: Reviewer making the decision
            notes: Optional text recorded after the ``[APPROVED]`` tag

        Returns:
            The completed item

        Raises:
            InvalidInputError: If reviewer_id is blank
            NotFoundError: If the item or its calculation does not exist
            ConflictError: If the item is already completed
        """
        reviewer_id = note_log.require_text(reviewer_id, "reviewer_id")
        return await self._resolve(
            item_id,
            reviewer_id,
            entry=lambda at: note_log.approval(notes, at),
            calculation_status=CalculationStatus.APPROVED,
            event_type=AuditEventType.REVIEW_APPROVED,
            metadata={"notes": notes},
        )

    async def reject(
        self,
        item_id: UUID,
        reviewer_id: str,
        reason: str,
        notes: str | None = None,
    ) -> ReviewItem:
        """Reject the calculation behind a review item.

        Args:
            item_id: Item to resolve
            reviewer_id: Reviewer making the decision
            reason: Why the calculation was rejected (required)
            notes: Optional extra detail recorded under the reason

        Returns:
            The completed item

        Raises:
            InvalidInputError: If reviewer_id or reason is blank
            NotFoundError: If the item or its calculation does not exist
            ConflictError: If the item is already completed
        """
        reviewer_id = note_log.require_text(reviewer_id, "reviewer_id")
        reason = note_log.require_text(reason, "reason")
        return await self._resolve(
            item_id,
            reviewer_id,
            entry=lambda at: note_log.rejection(reason, notes, at),
            calculation_status=CalculationStatus.REJECTED,
            event_type=AuditEventType.REVIEW_REJECTED,
            metadata={"reason": reason, "notes": notes},
        )

    async def _resolve(
        self,
        item_id: UUID,
        reviewer_id: str,
        entry: Callable[[datetime], note_log.NoteEntry],
        calculation_status: CalculationStatus,
        event_type: AuditEventType,
        metadata: dict,
    ) -> ReviewItem:
        operation = event_type.value
        for _ in range(self.max_attempts):
            current = await self._load(item_id)
            if current.status == ReviewStatus.COMPLETED:
                log_review_conflict(str(item_id), operation, "item is already completed")
                raise ConflictError(f"Review item {item_id} is already completed")

            now = utcnow()
            updated = await self.store.compare_and_set(
                item_id,
                expected={
                    "status": current.status,
                    "assigned_to": current.assigned_to,
                    "notes": current.notes,
                },
                changes={
                    "status": ReviewStatus.COMPLETED,
                    "notes": note_log.append_entry(current.notes, entry(now)),
                    "reviewed_by": reviewer_id,
                    "reviewed_at": now,
                },
                calculation_status=calculation_status,
            )
            if updated is None:
                logger.debug(f"Lost update race on {item_id} during {operation}, retrying")
                continue

            log_review_transition(
                str(item_id),
                current.status.value,
                updated.status.value,
                actor=reviewer_id,
                calculation_id=str(updated.calculation_id),
            )
            self.audit.dispatch(
                event_type,
                AuditMetadata(
                    review_item_id=updated.id,
                    calculation_id=updated.calculation_id,
                    reviewer_id=reviewer_id,
                    **metadata,
                ),
            )
            return updated

        raise self._exhausted(item_id, operation)

    async def annotate(
        self,
        item_id: UUID,
        note: str,
        author: str | None = None,
    ) -> ReviewItem:
        """Append a timestamped note without changing status.

        Allowed in every state, including ``completed``.

        Raises:
            InvalidInputError: If the note is blank after trimming
            NotFoundError: If the item does not exist
            ConflictError: If concurrent writers kept winning the race
        """
        text = note_log.require_text(note, "note")
        for _ in range(self.max_attempts):
            current = await self._load(item_id)
            entry = note_log.annotation(text, utcnow())
            updated = await self.store.compare_and_set(
                item_id,
                expected={"notes": current.notes},
                changes={"notes": note_log.append_entry(current.notes, entry)},
            )
            if updated is None:
                continue

            self.audit.dispatch(
                AuditEventType.REVIEW_NOTES_ADDED,
                AuditMetadata(
                    review_item_id=updated.id,
                    calculation_id=updated.calculation_id,
                    reviewer_id=author,
                    notes_length=len(text),
                    timestamp=entry.timestamp,
                ),
            )
            return updated

        raise self._exhausted(item_id, "annotate")

    async def reprioritize(
        self,
        item_id: UUID,
        priority: ReviewPriority | str,
        actor: str | None = None,
    ) -> ReviewItem:
        """Move an open item to another priority band.

        Setting the current priority again is a no-op and emits nothing.

        Raises:
            InvalidInputError: If the priority is unknown
            NotFoundError: If the item does not exist
            ConflictError: If the item is completed
        """
        new_priority = ReviewPriority.parse(priority)
        for _ in range(self.max_attempts):
            current = await self._load(item_id)
            if current.status == ReviewStatus.COMPLETED:
                log_review_conflict(str(item_id), "reprioritize", "item is already completed")
                raise ConflictError(f"Review item {item_id} is already completed")
            if current.priority == new_priority:
                return current

            updated = await self.store.compare_and_set(
                item_id,
                expected={"status": current.status, "priority": current.priority},
                changes={"priority": new_priority},
            )
            if updated is None:
                continue

            logger.info(
                f"Review item {item_id} priority {current.priority.value} -> {new_priority.value}"
            )
            self.audit.dispatch(
                AuditEventType.REVIEW_PRIORITY_CHANGED,
                AuditMetadata(
                    review_item_id=updated.id,
                    calculation_id=updated.calculation_id,
                    reviewer_id=actor,
                    priority=new_priority,
                    previous_priority=current.priority,
                ),
            )
            return updated

        raise self._exhausted(item_id, "reprioritize")
