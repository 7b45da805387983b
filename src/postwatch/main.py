# src/postwatch/main.py
"""Main entry point for the Postwatch application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from postwatch.api.v1 import (
    appeals_router,
    approver_router,
    likes_router,
    reports_router,
    users_router,
    views_router,
)
from postwatch.core.errors import (
    ConflictError,
    InternalError,
    InvalidStateError,
    NotFoundError,
    PostwatchError,
    RateLimitedError,
)
from postwatch.core.settings import settings
from postwatch.services.sweep import ModerationSweepWorker

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Most specific first; subclasses inherit their parent's status.
_STATUS_BY_ERROR: tuple[tuple[type[PostwatchError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (RateLimitedError, status.HTTP_429_TOO_MANY_REQUESTS),
    (InternalError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for_error(exc: PostwatchError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


# Initialize FastAPI app
app = FastAPI(
    title="Postwatch API",
    description="Post moderation and engagement core",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(reports_router, prefix="/api/v1")
app.include_router(appeals_router, prefix="/api/v1")
app.include_router(approver_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(likes_router, prefix="/api/v1")
app.include_router(views_router, prefix="/api/v1")


@app.exception_handler(PostwatchError)
async def handle_domain_error(request: Request, exc: PostwatchError) -> JSONResponse:
    code = status_for_error(exc)
    if code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=code, content={"detail": exc.message, "code": exc.code})


@app.on_event("startup")
async def on_startup() -> None:
    if settings.sweep_enabled:
        worker = ModerationSweepWorker()
        await worker.start()
        app.state.sweep_worker = worker
    else:
        app.state.sweep_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: ModerationSweepWorker | None = getattr(app.state, "sweep_worker", None)
    if worker:
        await worker.stop()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("postwatch.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
