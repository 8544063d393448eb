"""Migration, content, search and chat endpoints."""

from fastapi import APIRouter, Depends

from src.api.schemas import (
    BatchMigrationRequest,
    ChatRequest,
    DatabaseMigrationRequest,
    SearchRequest,
)
from src.retrieval.query import RAGQueryEngine, get_rag_engine
from src.retrieval.search import SearchCoordinator, get_search_coordinator
from src.sync.migration import MigrationOrchestrator, get_orchestrator

router = APIRouter()


@router.post("/migration/pages")
def migrate_pages(
    body: BatchMigrationRequest,
    orchestrator: MigrationOrchestrator = Depends(get_orchestrator),
):
    """Migrate a list of pages and return per-page results plus a summary."""
    return orchestrator.migrate_multiple_pages(body.page_ids, body.batch_size).to_dict()


@router.post("/migration/pages/{page_id}")
def migrate_page(
    page_id: str,
    orchestrator: MigrationOrchestrator = Depends(get_orchestrator),
):
    """Migrate a single page."""
    return orchestrator.migrate_page(page_id).to_dict()


@router.post("/migration/databases/{database_id}")
def migrate_database(
    database_id: str,
    body: DatabaseMigrationRequest | None = None,
    orchestrator: MigrationOrchestrator = Depends(get_orchestrator),
):
    """Migrate every page of a Notion database."""
    batch_size = body.batch_size if body else None
    return orchestrator.migrate_database(database_id, batch_size).to_dict()


@router.get("/migration/stats")
def migration_stats(orchestrator: MigrationOrchestrator = Depends(get_orchestrator)):
    """Counts of migrated pages, blocks and embeddings."""
    return {"stats": orchestrator.get_migration_stats()}


@router.get("/pages/{page_id}/content")
def page_content(
    page_id: str,
    format: str = "json",
    orchestrator: MigrationOrchestrator = Depends(get_orchestrator),
):
    """Render a migrated page as json, markdown, html or plain text."""
    content = orchestrator.get_content_in_format(page_id, format)
    return {"content": content, "format": format}


@router.post("/search")
def search(
    body: SearchRequest,
    coordinator: SearchCoordinator = Depends(get_search_coordinator),
):
    """Search migrated content by text and, optionally, by similarity."""
    results = coordinator.search(
        body.query,
        use_embeddings=body.use_embeddings,
        limit=body.limit,
        threshold=body.threshold,
    )
    return {"results": results.to_dict()}


@router.post("/chat")
def chat(body: ChatRequest, engine: RAGQueryEngine = Depends(get_rag_engine)):
    """Answer a question from migrated content."""
    history = [message.model_dump() for message in body.history]
    return engine.query(body.question, history=history or None)
