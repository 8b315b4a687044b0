"""Selection policy for the review queue.

Orders candidates by priority (high first) and, within a priority band,
oldest first. Pure functions only: which items are candidates is decided
by the store query, not here.
"""

from collections.abc import Iterable

from .models import ReviewItem, ReviewPriority

PRIORITY_RANK: dict[ReviewPriority, int] = {
    ReviewPriority.HIGH: 0,
    ReviewPriority.MEDIUM: 1,
    ReviewPriority.LOW: 2,
}


def queue_order_key(item: ReviewItem) -> tuple[int, object, str]:
    """Sort key: priority descending, then created_at ascending, then id."""
    return (PRIORITY_RANK[item.priority], item.created_at, str(item.id))


def sort_queue(items: Iterable[ReviewItem]) -> list[ReviewItem]:
    """Return items in the order reviewers should pick them up."""
    return sorted(items, key=queue_order_key)


def select_next(candidates: Iterable[ReviewItem]) -> ReviewItem | None:
    """Choose the next item to review.

    Args:
        candidates: Unassigned pending items

    Returns:
        The highest-priority, oldest candidate, or None if there are none
    """
    return min(candidates, key=queue_order_key, default=None)
