"""Audit trail for review queue mutations.

Every committed mutation produces exactly one audit event. Emission is
best-effort: it happens after the mutation, runs in the background, and a
failure is logged but never reported to the caller or used to undo the
mutation.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from uuid import uuid4

from sqlalchemy import text

from ..config import get_settings
from ..db import get_db_session
from ..logging import get_context_logger, log_audit_failure
from .models import AuditEventType, AuditMetadata, utcnow

logger = get_context_logger(__name__, component="audit")


class AuditEmitter(ABC):
    """Receives one structured event per review queue mutation."""

    @abstractmethod
    async def emit(self, event_type: AuditEventType, metadata: AuditMetadata) -> None:
        """Record an audit event. May raise; callers treat failures as non-fatal."""


class LoggingAuditEmitter(AuditEmitter):
    """Writes audit events to the structured log."""

    async def emit(self, event_type: AuditEventType, metadata: AuditMetadata) -> None:
        logger.info(
            f"audit_event {event_type.value}",
            extra={
                "audit_event_type": event_type.value,
                "audit_metadata": metadata.model_dump(mode="json", exclude_none=True),
                "event": "audit_event",
            },
        )


class SQLAuditEmitter(AuditEmitter):
    """Stores audit events in the ``review_audit_log`` table.

    Failed inserts are retried with a linearly growing delay; the last
    failure is re-raised for the dispatcher to log.
    """

    def __init__(
        self,
        retry_attempts: int | None = None,
        retry_delay_seconds: float | None = None,
        session_factory=None,
    ):
        settings = get_settings()
        self.retry_attempts = retry_attempts or settings.audit_retry_attempts
        self.retry_delay_seconds = (
            settings.audit_retry_delay_seconds
            if retry_delay_seconds is None
            else retry_delay_seconds
        )
        self._session = session_factory or get_db_session

    async def emit(self, event_type: AuditEventType, metadata: AuditMetadata) -> None:
        params = {
            "id": str(uuid4()),
            "timestamp": utcnow(),
            "event_type": event_type.value,
            "review_item_id": str(metadata.review_item_id),
            "metadata": json.dumps(metadata.model_dump(mode="json", exclude_none=True)),
        }

        for attempt in range(1, self.retry_attempts + 1):
            try:
                async with self._session() as session:
                    await session.execute(
                        text("""
                            INSERT INTO review_audit_log (
                                id, timestamp, event_type, review_item_id, metadata
                            ) VALUES (
                                :id, :timestamp, :event_type, :review_item_id,
                                CAST(:metadata AS jsonb)
                            )
                        """),
                        params,
                    )
                return
            except Exception as e:
                logger.warning(
                    f"Failed to store audit event {event_type.value} "
                    f"(attempt {attempt}/{self.retry_attempts}): {e}"
                )
                if attempt == self.retry_attempts:
                    raise
                await asyncio.sleep(self.retry_delay_seconds * attempt)


class AuditDispatcher:
    """Fire-and-forget delivery of audit events.

    ``dispatch`` schedules the emission on the running loop and returns
    immediately. References to in-flight tasks are kept until they finish
    so they are not garbage collected; ``drain`` waits for them.
    """

    def __init__(self, emitter: AuditEmitter):
        self.emitter = emitter
        self._pending: set[asyncio.Task] = set()

    def dispatch(self, event_type: AuditEventType, metadata: AuditMetadata) -> None:
        task = asyncio.create_task(self._deliver(event_type, metadata))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, event_type: AuditEventType, metadata: AuditMetadata) -> None:
        try:
            await self.emitter.emit(event_type, metadata)
        except Exception as e:
            log_audit_failure(event_type.value, str(metadata.review_item_id), str(e))

    @property
    def pending(self) -> int:
        """Number of events still being delivered."""
        return len(self._pending)

    async def drain(self) -> None:
        """Wait until every dispatched event has been delivered or has failed."""
        while self._pending:
            await asyncio.gather(*list(self._pending))


def get_audit_emitter() -> AuditEmitter:
    """Build the emitter selected by ``settings.audit_sink``."""
    settings = get_settings()
    if settings.audit_sink == "database":
        return SQLAuditEmitter()
    return LoggingAuditEmitter()
