"""FastAPI application entry point for RxMatch.

Manual review queue REST API.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from rxmatch.api import register_exception_handlers
from rxmatch.api.review_queue import router as review_queue_router
from rxmatch.config import get_settings
from rxmatch.db import close_all_connections, get_db_session
from rxmatch.logging import get_logger, log_api_request, setup_logging
from rxmatch.review.queue import get_review_queue

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    settings = get_settings()
    logger.info(
        "Starting RxMatch API",
        extra={
            "environment": settings.environment,
            "debug": settings.api_debug,
            "audit_sink": settings.audit_sink,
        },
    )

    yield

    logger.info("Shutting down RxMatch API")
    # Let queued audit events land before the pool closes.
    await get_review_queue().close()
    await close_all_connections()


settings = get_settings()

app = FastAPI(
    title="RxMatch Review Queue API",
    description="Manual review of low-confidence prescription calculations",
    version="1.0.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration of every request."""
    start = time.perf_counter()
    response = await call_next(request)
    log_api_request(
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - start) * 1000,
        request_id=request.headers.get("X-Request-ID"),
    )
    return response


# =========================
# Health Check Endpoints
# =========================


@app.get("/health", tags=["Health"])
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "rxmatch-review"}


@app.get("/health/ready", tags=["Health"])
async def readiness_check():
    """Readiness check that verifies database connectivity."""
    checks = {"postgres": "unknown"}

    try:
        async with get_db_session() as session:
            await session.execute(text("SELECT 1"))
            checks["postgres"] = "healthy"
    except Exception as e:
        checks["postgres"] = f"unhealthy: {str(e)}"

    all_healthy = all(v == "healthy" for v in checks.values())
    return JSONResponse(
        status_code=200 if all_healthy else 503,
        content={
            "status": "ready" if all_healthy else "not_ready",
            "checks": checks,
        },
    )


@app.get("/health/live", tags=["Health"])
async def liveness_check():
    """Liveness check - just confirms the service is running."""
    return {"status": "alive"}


# =========================
# API Routers
# =========================

app.include_router(review_queue_router, prefix="/api/v1", tags=["Review Queue"])


@app.get("/", tags=["Root"])
async def root():
    """API root endpoint."""
    return {
        "name": "RxMatch Review Queue API",
        "version": "1.0.0",
        "docs": "/docs" if settings.is_development else None,
    }
