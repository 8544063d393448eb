"""FastAPI application exposing migration, search and health endpoints."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.api.health import router as health_router
from src.api.routes import router as api_router
from src.errors import (
    ForbiddenError,
    NotFoundError,
    NotionMigratorError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from src.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: configure logging on startup."""
    configure_logging()
    logger.info("api_started")
    yield


app = FastAPI(title="Notion Migrator", lifespan=lifespan)
app.include_router(health_router)
app.include_router(api_router)


def _status_for(exc: NotionMigratorError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (UnauthorizedError, ForbiddenError)):
        return 502
    if exc.retryable:
        return 503
    if isinstance(exc, StorageError):
        return 500
    return 502


@app.exception_handler(NotionMigratorError)
async def migrator_error_handler(request: Request, exc: NotionMigratorError) -> JSONResponse:
    """Translate pipeline errors into JSON responses."""
    status_code = _status_for(exc)
    logger.warning(
        "request_failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        status_code=status_code,
    )
    return JSONResponse(
        status_code=status_code,
        content={
            "error": exc.message,
            "type": type(exc).__name__,
            "retryable": exc.retryable,
        },
    )
