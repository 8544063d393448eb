"""Health probes for the service and its collaborators."""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.api.schemas import EmbeddingsHealthRequest
from src.errors import NotionMigratorError
from src.retrieval.embeddings import EmbeddingClient, get_embedding_client
from src.storage.gateway import StorageGateway, get_storage_gateway
from src.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/health")

SERVICE_NAME = "notion-migrator"
SERVICE_VERSION = "0.1.0"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


@router.get("")
def health():
    """Liveness check."""
    return {"status": "ok", "service": SERVICE_NAME, "version": SERVICE_VERSION}


@router.get("/database")
def database_health(gateway: StorageGateway = Depends(get_storage_gateway)):
    """Report whether each required table can be read; 503 if any cannot."""
    start = time.monotonic()
    tables_status = gateway.check_tables()
    accessible = all(status["accessible"] for status in tables_status.values())

    if not accessible:
        logger.warning("database_health_degraded", tables=tables_status)

    return JSONResponse(
        status_code=200 if accessible else 503,
        content={
            "tables_accessible": accessible,
            "tables_status": tables_status,
            "connection_time_ms": _elapsed_ms(start),
            "timestamp": _now(),
        },
    )


@router.post("/embeddings")
def embeddings_health(
    body: EmbeddingsHealthRequest | None = None,
    client: EmbeddingClient = Depends(get_embedding_client),
):
    """
    Check the embedding provider.

    Dry-run mode only confirms the client is configured; live mode
    generates one embedding and reports its dimension.
    """
    body = body or EmbeddingsHealthRequest()
    start = time.monotonic()

    if body.dry_run:
        return {
            "success": True,
            "service_available": True,
            "processing_time_ms": _elapsed_ms(start),
            "timestamp": _now(),
        }

    try:
        embedding = client.embed(body.test_text)
    except NotionMigratorError as e:
        logger.error("embeddings_health_failed", error=e.message)
        return JSONResponse(
            status_code=503,
            content={
                "success": False,
                "service_available": False,
                "processing_time_ms": _elapsed_ms(start),
                "error": e.message,
                "timestamp": _now(),
            },
        )

    return {
        "success": True,
        "service_available": True,
        "processing_time_ms": _elapsed_ms(start),
        "embedding_dimensions": len(embedding),
        "timestamp": _now(),
    }
