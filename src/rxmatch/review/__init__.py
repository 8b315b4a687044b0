"""Manual review queue for low-confidence prescription calculations.

Components:
- ReviewQueue: enqueue, list, select, assign, resolve and annotate items
- AssignmentManager: atomic claim of pending items
- TransitionEngine: pending -> in_review -> completed state machine
- QueueStore: persistence contract (in-memory and PostgreSQL implementations)
- AuditDispatcher: best-effort audit event delivery

Usage:
    from rxmatch.review import get_review_queue

    queue = get_review_queue()
    item = await queue.enqueue(calculation_id, "high")
    item = await queue.assign(item.id, "pharm-1")
    item = await queue.reject(item.id, "pharm-1", "wrong dosage form")
"""

from .errors import (
    ConflictError,
    DuplicateError,
    InvalidInputError,
    NotFoundError,
    ReviewQueueError,
)
from .models import (
    AuditEventType,
    AuditMetadata,
    CalculationRecord,
    CalculationStatus,
    ReviewItem,
    ReviewItemDetails,
    ReviewItemFilter,
    ReviewPriority,
    ReviewStatus,
)
from .queue import ReviewQueue, get_review_queue, priority_for_confidence
from .selection import select_next, sort_queue
from .store import InMemoryQueueStore, QueueStore

__all__ = [
    # Errors
    "ConflictError",
    "DuplicateError",
    "InvalidInputError",
    "NotFoundError",
    "ReviewQueueError",
    # Models
    "AuditEventType",
    "AuditMetadata",
    "CalculationRecord",
    "CalculationStatus",
    "ReviewItem",
    "ReviewItemDetails",
    "ReviewItemFilter",
    "ReviewPriority",
    "ReviewStatus",
    # Queue
    "ReviewQueue",
    "get_review_queue",
    "priority_for_confidence",
    "select_next",
    "sort_queue",
    "InMemoryQueueStore",
    "QueueStore",
]
