"""Persistence contract for the review queue.

The queue keeps no authoritative state in process; every operation reads
and writes through a ``QueueStore``. Correctness of assignment and note
appends depends on one guarantee from the store: ``compare_and_set`` is a
single atomic conditional update. Implementations must never emulate it
with an unguarded read followed by a write.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from .errors import DuplicateError, NotFoundError
from .models import (
    CalculationRecord,
    CalculationStatus,
    ReviewItem,
    ReviewItemFilter,
    utcnow,
)

# Fields a conditional update may test or write. id, calculation_id and
# created_at are immutable after creation.
MUTABLE_FIELDS = frozenset(
    {"priority", "status", "assigned_to", "notes", "reviewed_by", "reviewed_at"}
)


def check_fields(expected: Mapping[str, Any], changes: Mapping[str, Any]) -> None:
    """Reject conditional updates touching unknown or immutable fields."""
    unknown = (set(expected) | set(changes)) - MUTABLE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported review item fields: {sorted(unknown)}")
    if not changes:
        raise ValueError("compare_and_set requires at least one change")


class QueueStore(ABC):
    """Durable keyed store of review items and the calculations they reference."""

    @abstractmethod
    async def put(self, item: ReviewItem) -> ReviewItem:
        """Atomically insert a new review item.

        Raises:
            DuplicateError: If an open item already references the same
                calculation
        """

    @abstractmethod
    async def get(self, item_id: UUID) -> ReviewItem | None:
        """Fetch an item by id, observing every previously committed write."""

    @abstractmethod
    async def list_by_predicate(self, item_filter: ReviewItemFilter) -> list[ReviewItem]:
        """List items matching the filter. Order is unspecified."""

    @abstractmethod
    async def compare_and_set(
        self,
        item_id: UUID,
        expected: Mapping[str, Any],
        changes: Mapping[str, Any],
        *,
        calculation_status: CalculationStatus | None = None,
    ) -> ReviewItem | None:
        """Apply ``changes`` only if every field in ``expected`` still holds.

        ``updated_at`` is refreshed on success. When ``calculation_status``
        is given, the linked calculation record's status is written in the
        same atomic unit.

        Returns:
            The updated item, or None if the precondition no longer held
            (nothing is written in that case)

        Raises:
            NotFoundError: If the item, or the linked calculation when
                ``calculation_status`` is given, does not exist
        """

    @abstractmethod
    async def get_calculation(self, calculation_id: UUID) -> CalculationRecord | None:
        """Fetch a calculation record by id."""

    @abstractmethod
    async def put_calculation(self, record: CalculationRecord) -> CalculationRecord:
        """Insert or replace a calculation record."""


class InMemoryQueueStore(QueueStore):
    """Process-local store guarded by a single lock.

    Suitable for tests and single-process tooling. Records are copied on
    the way in and out so callers never hold a reference to stored state.
    """

    def __init__(self) -> None:
        self._items: dict[UUID, ReviewItem] = {}
        self._calculations: dict[UUID, CalculationRecord] = {}
        self._lock = asyncio.Lock()

    async def put(self, item: ReviewItem) -> ReviewItem:
        async with self._lock:
            if item.id in self._items:
                raise ValueError(f"Review item {item.id} already exists")
            if item.is_open:
                for existing in self._items.values():
                    if existing.calculation_id == item.calculation_id and existing.is_open:
                        raise DuplicateError(item.calculation_id, existing.id)
            self._items[item.id] = item.model_copy(deep=True)
            return item.model_copy(deep=True)

    async def get(self, item_id: UUID) -> ReviewItem | None:
        async with self._lock:
            item = self._items.get(item_id)
            return item.model_copy(deep=True) if item is not None else None

    async def list_by_predicate(self, item_filter: ReviewItemFilter) -> list[ReviewItem]:
        async with self._lock:
            return [
                item.model_copy(deep=True)
                for item in self._items.values()
                if item_filter.matches(item)
            ]

    async def compare_and_set(
        self,
        item_id: UUID,
        expected: Mapping[str, Any],
        changes: Mapping[str, Any],
        *,
        calculation_status: CalculationStatus | None = None,
    ) -> ReviewItem | None:
        check_fields(expected, changes)
        async with self._lock:
            current = self._items.get(item_id)
            if current is None:
                raise NotFoundError("Review item", item_id)
            if any(getattr(current, name) != value for name, value in expected.items()):
                return None

            calculation = None
            if calculation_status is not None:
                calculation = self._calculations.get(current.calculation_id)
                if calculation is None:
                    raise NotFoundError("Calculation record", current.calculation_id)

            updated = current.model_copy(update={**changes, "updated_at": utcnow()}, deep=True)
            self._items[item_id] = updated
            if calculation is not None:
                self._calculations[calculation.id] = calculation.model_copy(
                    update={"status": calculation_status}
                )
            return updated.model_copy(deep=True)

    async def get_calculation(self, calculation_id: UUID) -> CalculationRecord | None:
        async with self._lock:
            record = self._calculations.get(calculation_id)
            return record.model_copy() if record is not None else None

    async def put_calculation(self, record: CalculationRecord) -> CalculationRecord:
        async with self._lock:
            self._calculations[record.id] = record.model_copy()
            return record.model_copy()
