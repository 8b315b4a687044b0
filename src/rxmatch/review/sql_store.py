"""PostgreSQL-backed review queue store.

Each call runs in its own transaction. Conditional updates are issued as a
single ``UPDATE ... WHERE <expected> RETURNING *`` so the database, not the
caller, decides which of two concurrent writers wins. The duplicate-enqueue
guard is backed by a partial unique index on open items.
"""

import logging
from collections.abc import Callable, Mapping
from contextlib import AbstractAsyncContextManager
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db_session
from .errors import DuplicateError, NotFoundError
from .models import (
    CalculationRecord,
    CalculationStatus,
    ReviewItem,
    ReviewItemFilter,
    ReviewStatus,
    utcnow,
)
from .store import QueueStore, check_fields

logger = logging.getLogger(__name__)

OPEN_ITEM_INDEX = "uq_review_items_open_calculation"

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def _bind(value: Any) -> Any:
    """Convert model values into driver parameters."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    return value


def _row_to_item(row: Any) -> ReviewItem:
    return ReviewItem.model_validate(dict(row._mapping))


def _row_to_calculation(row: Any) -> CalculationRecord:
    return CalculationRecord.model_validate(dict(row._mapping))


class SQLQueueStore(QueueStore):
    """Queue store over the ``review_items`` and ``calculation_records`` tables."""

    def __init__(self, session_factory: SessionFactory | None = None):
        """Initialize the store.

        Args:
            session_factory: Callable returning an async session context
                manager that commits on clean exit (defaults to
                ``get_db_session``)
        """
        self._session = session_factory or get_db_session

    async def put(self, item: ReviewItem) -> ReviewItem:
        try:
            async with self._session() as session:
                result = await session.execute(
                    text("""
                        INSERT INTO review_items (
                            id, calculation_id, priority, status, assigned_to,
                            notes, reviewed_by, reviewed_at, created_at, updated_at
                        ) VALUES (
                            :id, :calculation_id, :priority, :status, :assigned_to,
                            :notes, :reviewed_by, :reviewed_at, :created_at, :updated_at
                        )
                        RETURNING *
                    """),
                    {key: _bind(value) for key, value in item.model_dump().items()},
                )
                row = result.fetchone()
        except IntegrityError as e:
            if OPEN_ITEM_INDEX in str(e.orig):
                raise DuplicateError(item.calculation_id) from e
            raise

        return _row_to_item(row)

    async def get(self, item_id: UUID) -> ReviewItem | None:
        async with self._session() as session:
            result = await session.execute(
                text("SELECT * FROM review_items WHERE id = :id"),
                {"id": str(item_id)},
            )
            row = result.fetchone()
        if row is None:
            return None
        return _row_to_item(row)

    async def list_by_predicate(self, item_filter: ReviewItemFilter) -> list[ReviewItem]:
        conditions = []
        params: dict[str, Any] = {}

        if item_filter.status is not None:
            conditions.append("status = :status")
            params["status"] = item_filter.status.value
        if item_filter.priority is not None:
            conditions.append("priority = :priority")
            params["priority"] = item_filter.priority.value
        if item_filter.assigned_to is not None:
            conditions.append("assigned_to = :assigned_to")
            params["assigned_to"] = item_filter.assigned_to
        if item_filter.unassigned_only:
            conditions.append("assigned_to IS NULL")
        if item_filter.calculation_id is not None:
            conditions.append("calculation_id = :calculation_id")
            params["calculation_id"] = str(item_filter.calculation_id)
        if item_filter.open_only:
            conditions.append("status <> :completed")
            params["completed"] = ReviewStatus.COMPLETED.value

        query = "SELECT * FROM review_items"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)

        async with self._session() as session:
            result = await session.execute(text(query), params)
            rows = result.fetchall()
        return [_row_to_item(row) for row in rows]

    async def compare_and_set(
        self,
        item_id: UUID,
        expected: Mapping[str, Any],
        changes: Mapping[str, Any],
        *,
        calculation_status: CalculationStatus | None = None,
    ) -> ReviewItem | None:
        check_fields(expected, changes)

        params: dict[str, Any] = {"id": str(item_id), "updated_at": utcnow()}
        assignments = ["updated_at = :updated_at"]
        for name, value in changes.items():
            assignments.append(f"{name} = :set_{name}")
            params[f"set_{name}"] = _bind(value)

        conditions = ["id = :id"]
        for name, value in expected.items():
            if value is None:
                conditions.append(f"{name} IS NULL")
            else:
                conditions.append(f"{name} = :expect_{name}")
                params[f"expect_{name}"] = _bind(value)

        async with self._session() as session:
            result = await session.execute(
                text(
                    f"UPDATE review_items SET {', '.join(assignments)} "
                    f"WHERE {' AND '.join(conditions)} RETURNING *"
                ),
                params,
            )
            row = result.fetchone()

            if row is None:
                exists = await session.execute(
                    text("SELECT 1 FROM review_items WHERE id = :id"),
                    {"id": str(item_id)},
                )
                if exists.fetchone() is None:
                    raise NotFoundError("Review item", item_id)
                return None

            updated = _row_to_item(row)

            if calculation_status is not None:
                # Raising here rolls back the review item update as well.
                calc_result = await session.execute(
                    text("""
                        UPDATE calculation_records SET status = :status
                        WHERE id = :id
                        RETURNING id
                    """),
                    {"id": str(updated.calculation_id), "status": calculation_status.value},
                )
                if calc_result.fetchone() is None:
                    raise NotFoundError("Calculation record", updated.calculation_id)

        return updated

    async def get_calculation(self, calculation_id: UUID) -> CalculationRecord | None:
        async with self._session() as session:
            result = await session.execute(
                text("SELECT * FROM calculation_records WHERE id = :id"),
                {"id": str(calculation_id)},
            )
            row = result.fetchone()
        if row is None:
            return None
        return _row_to_calculation(row)

    async def put_calculation(self, record: CalculationRecord) -> CalculationRecord:
        async with self._session() as session:
            result = await session.execute(
                text("""
                    INSERT INTO calculation_records (id, status, confidence_score, created_at)
                    VALUES (:id, :status, :confidence_score, :created_at)
                    ON CONFLICT (id) DO UPDATE SET
                        status = EXCLUDED.status,
                        confidence_score = EXCLUDED.confidence_score
                    RETURNING *
                """),
                {key: _bind(value) for key, value in record.model_dump().items()},
            )
            row = result.fetchone()

        logger.debug(f"Stored calculation record {record.id} ({record.status.value})")
        return _row_to_calculation(row)
