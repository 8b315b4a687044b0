"""FastAPI routes and API modules for RxMatch.

Provides common response models, error handlers, and utilities.
"""

from typing import Any, Generic, TypeVar

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..logging import get_logger
from ..review.errors import InvalidInputError, NotFoundError, ReviewQueueError

T = TypeVar("T")


# =========================
# Response Models
# =========================


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = True
    data: T | None = None
    error: str | None = None
    message: str | None = None


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    error: str
    error_code: str
    details: list[ErrorDetail] | None = None


# =========================
# Exception Handlers
# =========================


def review_error_status(exc: ReviewQueueError) -> int:
    """HTTP status for a review queue failure."""
    if isinstance(exc, NotFoundError):
        return 404
    return 400


async def review_error_handler(request: Request, exc: ReviewQueueError) -> JSONResponse:
    """Handle review queue failures (not found, conflict, duplicate, invalid input)."""
    details = None
    field = getattr(exc, "field", None)
    if field:
        details = [ErrorDetail(code=exc.error_code, message=exc.message, field=field)]

    return JSONResponse(
        status_code=review_error_status(exc),
        content=ErrorResponse(
            error=exc.message,
            error_code=exc.error_code,
            details=details,
        ).model_dump(),
        headers={"X-Error-Code": exc.error_code},
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed or missing request fields as invalid input."""
    details = []
    for error in exc.errors():
        location = [
            str(part)
            for part in error.get("loc", ())
            if part not in ("body", "query", "path")
        ]
        details.append(
            ErrorDetail(
                code=InvalidInputError.error_code,
                message=error.get("msg", "Invalid value"),
                field=".".join(location) or None,
            )
        )

    fields = ", ".join(d.field for d in details if d.field)
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=f"Invalid request: {fields}" if fields else "Invalid request",
            error_code=InvalidInputError.error_code,
            details=details,
        ).model_dump(),
        headers={"X-Error-Code": InvalidInputError.error_code},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle generic HTTPException."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=str(exc.detail),
            error_code="HTTP_ERROR",
        ).model_dump(),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger = get_logger(__name__)
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="An unexpected error occurred",
            error_code="INTERNAL_ERROR",
        ).model_dump(),
    )


def register_exception_handlers(app):
    """Register exception handlers with the FastAPI app."""
    app.add_exception_handler(ReviewQueueError, review_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
