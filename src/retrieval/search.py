"""Search over migrated Notion content."""

from dataclasses import dataclass, field
from typing import Any

from src.config import get_settings
from src.errors import EmbeddingError, StorageError, ValidationError
from src.retrieval.embeddings import get_embedding_client
from src.storage.gateway import StorageGateway, get_storage_gateway
from src.sync.models import BlockRecord, EmbeddingMatch, PageRecord
from src.utils.cache import EmbeddingCache
from src.utils.logging import get_logger

logger = get_logger(__name__)


def embed_query(query: str) -> list[float]:
    """Embed a search query, reusing a cached vector when Redis has one."""
    cache = EmbeddingCache()
    vector = cache.get(query)
    if vector is None:
        vector = get_embedding_client().embed(query)
        cache.set(query, vector)
    return vector


@dataclass
class SearchResults:
    """Text, page-title and (optionally) similarity results, kept separate."""

    text_results: list[BlockRecord] = field(default_factory=list)
    page_results: list[PageRecord] = field(default_factory=list)
    embedding_results: list[EmbeddingMatch] | None = None
    embedding_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "text_results": [block.to_dict() for block in self.text_results],
            "page_results": [page.to_row() for page in self.page_results],
            "embedding_results": (
                [match.to_dict() for match in self.embedding_results]
                if self.embedding_results is not None
                else None
            ),
            "embedding_error": self.embedding_error,
        }


class SearchCoordinator:
    """Runs text and similarity lookups against the storage gateway."""

    def __init__(self, gateway: StorageGateway | None = None) -> None:
        self.settings = get_settings()
        self.gateway = gateway or get_storage_gateway()

    def search(
        self,
        query: str,
        use_embeddings: bool = False,
        limit: int | None = None,
        threshold: float | None = None,
    ) -> SearchResults:
        """
        Search migrated content.

        Text and page-title lookups always run. With ``use_embeddings`` the
        query is also embedded and matched against block embeddings; if
        that step fails the text results are still returned and the failure
        is reported in ``embedding_error``.

        Args:
            query: Search text
            use_embeddings: Also run a similarity search
            limit: Maximum results per source
            threshold: Minimum similarity for embedding results

        Returns:
            SearchResults with each source's results in its own list
        """
        if not query or not query.strip():
            raise ValidationError("query is required")
        if limit is None:
            limit = self.settings.search_limit
        if threshold is None:
            threshold = self.settings.similarity_threshold
        if limit < 1:
            raise ValidationError("limit must be at least 1")

        logger.info(
            "search_started",
            query=query[:100],
            use_embeddings=use_embeddings,
            limit=limit,
            threshold=threshold,
        )

        results = SearchResults(
            text_results=self.gateway.query_text(query, limit),
            page_results=self.gateway.query_pages(query, limit),
        )

        if use_embeddings:
            try:
                vector = embed_query(query)
                results.embedding_results = self.gateway.query_embeddings(vector, limit, threshold)
            except (EmbeddingError, StorageError) as e:
                logger.warning("embedding_search_degraded", error=e.message)
                results.embedding_results = []
                results.embedding_error = e.message

        logger.info(
            "search_completed",
            text_results=len(results.text_results),
            page_results=len(results.page_results),
            embedding_results=len(results.embedding_results or []),
        )
        return results


# Singleton instance
_coordinator: SearchCoordinator | None = None


def get_search_coordinator() -> SearchCoordinator:
    """Get or create search coordinator instance."""
    global _coordinator
    if _coordinator is None:
        _coordinator = SearchCoordinator()
    return _coordinator
