"""Shared pytest fixtures for review queue tests."""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio

from rxmatch.review.audit import AuditEmitter
from rxmatch.review.models import (
    AuditEventType,
    AuditMetadata,
    CalculationRecord,
    ReviewItem,
    ReviewPriority,
)
from rxmatch.review.queue import ReviewQueue
from rxmatch.review.store import InMemoryQueueStore


# =========================
# Audit Fixtures
# =========================


class RecordingAuditEmitter(AuditEmitter):
    """Keeps every emitted event in memory."""

    def __init__(self):
        self.events: list[tuple[AuditEventType, AuditMetadata]] = []

    async def emit(self, event_type: AuditEventType, metadata: AuditMetadata) -> None:
        self.events.append((event_type, metadata))

    def types(self) -> list[AuditEventType]:
        return [event_type for event_type, _ in self.events]


class FailingAuditEmitter(AuditEmitter):
    """Audit sink that is always down."""

    def __init__(self):
        self.calls = 0

    async def emit(self, event_type: AuditEventType, metadata: AuditMetadata) -> None:
        self.calls += 1
        raise RuntimeError("audit sink unavailable")


@pytest.fixture
def audit_emitter() -> RecordingAuditEmitter:
    return RecordingAuditEmitter()


@pytest.fixture
def failing_emitter() -> FailingAuditEmitter:
    return FailingAuditEmitter()


# =========================
# Queue Fixtures
# =========================


@pytest.fixture
def store() -> InMemoryQueueStore:
    return InMemoryQueueStore()


@pytest.fixture
def queue(store, audit_emitter) -> ReviewQueue:
    return ReviewQueue(store, audit_emitter)


@pytest_asyncio.fixture
async def calculation(store) -> CalculationRecord:
    """A low-confidence calculation stored and awaiting review."""
    return await store.put_calculation(CalculationRecord(confidence_score=0.62))


@pytest_asyncio.fixture
async def make_calculation(store):
    """Factory storing additional calculation records."""

    async def _make(confidence: float = 0.5) -> CalculationRecord:
        return await store.put_calculation(CalculationRecord(confidence_score=confidence))

    return _make


@pytest.fixture
def base_time() -> datetime:
    return datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_item(base_time):
    """Factory for detached review items with controlled timestamps."""

    def _make(priority: ReviewPriority, minutes: int = 0, **kwargs) -> ReviewItem:
        created = base_time + timedelta(minutes=minutes)
        return ReviewItem(
            calculation_id=uuid4(),
            priority=priority,
            created_at=created,
            updated_at=created,
            **kwargs,
        )

    return _make


# =========================
# Mock Database Fixtures
# =========================


def _row(**values):
    """Imitate a SQLAlchemy Row exposing ``_mapping``."""
    return SimpleNamespace(_mapping=values)


def _result(row=None, rows=None):
    """Imitate a SQLAlchemy Result."""
    result = MagicMock()
    result.fetchone.return_value = row
    result.fetchall.return_value = rows or []
    return result


@pytest.fixture
def make_row():
    return _row


@pytest.fixture
def make_result():
    return _result


@pytest.fixture
def mock_db_session():
    """Mock database session for testing without actual DB."""
    session = AsyncMock()
    session.execute = AsyncMock(return_value=_result())
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def session_factory(mock_db_session):
    """Session factory yielding the mock session."""

    @asynccontextmanager
    async def _factory():
        yield mock_db_session

    return _factory
