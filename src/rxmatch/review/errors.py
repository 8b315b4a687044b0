"""Typed failures raised by the review queue.

Every failure is reported to the immediate caller; none is retried by the
queue itself. The API layer maps ``NotFoundError`` to 404 and the rest to
400.
"""

from uuid import UUID


class ReviewQueueError(Exception):
    """Base class for review queue failures."""

    error_code = "REVIEW_QUEUE_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ReviewQueueError):
    """A referenced review item or calculation record does not exist."""

    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: str | UUID):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class ConflictError(ReviewQueueError):
    """The item's current status or assignment does not permit the operation."""

    error_code = "CONFLICT"


class DuplicateError(ReviewQueueError):
    """An open review item already exists for the calculation."""

    error_code = "DUPLICATE"

    def __init__(self, calculation_id: str | UUID, existing_item_id: str | UUID | None = None):
        self.calculation_id = calculation_id
        self.existing_item_id = existing_item_id
        message = f"Calculation {calculation_id} already has an open review item"
        if existing_item_id is not None:
            message += f" ({existing_item_id})"
        super().__init__(message)


class InvalidInputError(ReviewQueueError, ValueError):
    """An argument failed validation (blank id, reason or note, unknown priority)."""

    error_code = "INVALID_INPUT"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)
