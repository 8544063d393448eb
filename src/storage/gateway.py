"""Storage gateway combining Supabase tables with the Pinecone index.

Pages and blocks live in Postgres; each block's embedding lives in Pinecone
under the block's Notion ID. Removing a block from storage always removes
its vector too.
"""

from functools import lru_cache
from typing import Any

from src.errors import StorageError
from src.retrieval.vectorstore import VectorStore, get_vector_store
from src.storage.supabase_store import (
    BLOCKS_TABLE,
    PAGES_TABLE,
    SupabaseStore,
    get_supabase_store,
)
from src.sync.models import (
    BlockRecord,
    EmbeddingMatch,
    EmbeddingRecord,
    PageRecord,
    UpsertReport,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)


class StorageGateway:
    """Idempotent persistence and lookup for migrated content."""

    def __init__(
        self,
        store: SupabaseStore | None = None,
        vector_store: VectorStore | None = None,
    ) -> None:
        self.store = store or get_supabase_store()
        self.vector_store = vector_store or get_vector_store()

    def upsert_page(self, record: PageRecord) -> None:
        """Insert or replace a page record."""
        self.store.upsert_page(record)

    def upsert_blocks(self, page_id: str, records: list[BlockRecord]) -> UpsertReport:
        """
        Replace a page's blocks with ``records``.

        Blocks are upserted by Notion ID. Previously stored blocks of the
        page that are absent from ``records`` are deleted along with their
        embeddings. Stale blocks are only removed when every new block was
        written, so a failed write never loses the previous content.

        Returns:
            UpsertReport with per-block failures
        """
        existing_ids = set(self.store.get_block_ids(page_id))
        report = self.store.upsert_blocks(records)

        if not report.ok:
            logger.warning(
                "stale_block_cleanup_skipped",
                page_id=page_id,
                failed=len(report.failed),
            )
            return report

        current_ids = {record.notion_id for record in records}
        stale_ids = sorted(existing_ids - current_ids)
        if stale_ids:
            self.delete_embeddings(stale_ids)
            self.store.delete_blocks(page_id, stale_ids)
            logger.info("stale_blocks_removed", page_id=page_id, count=len(stale_ids))

        return report

    def upsert_embeddings(self, records: list[EmbeddingRecord]) -> UpsertReport:
        """Insert or replace block embeddings."""
        return self.vector_store.upsert_embeddings(records)

    def delete_embeddings(self, block_ids: list[str]) -> None:
        """Remove the embeddings of the given blocks, if any."""
        if not block_ids:
            return
        try:
            self.vector_store.delete_by_ids(block_ids)
        except Exception as e:
            logger.error("vector_delete_error", error=str(e), count=len(block_ids))
            raise StorageError(f"Failed to delete embeddings: {e}") from e

    def query_text(self, query: str, limit: int) -> list[BlockRecord]:
        """Blocks matching ``query`` by full-text relevance."""
        return self.store.search_blocks(query, limit)

    def query_pages(self, query: str, limit: int) -> list[PageRecord]:
        """Pages whose title contains ``query``."""
        return self.store.search_pages_by_title(query, limit)

    def query_embeddings(
        self, vector: list[float], limit: int, threshold: float
    ) -> list[EmbeddingMatch]:
        """
        Blocks whose embedding is similar to ``vector``.

        Args:
            vector: Query embedding
            limit: Maximum number of matches
            threshold: Minimum similarity to include

        Returns:
            Matches with similarity >= threshold, most similar first
        """
        try:
            matches = self.vector_store.query(vector, top_k=limit, threshold=threshold)
        except Exception as e:
            logger.error("vector_query_error", error=str(e))
            raise StorageError(f"Failed to query embeddings: {e}") from e

        blocks = {
            block.notion_id: block
            for block in self.store.get_blocks_by_ids([match["id"] for match in matches])
        }

        results = []
        for match in matches:
            block = blocks.get(match["id"])
            if block is None:
                logger.warning("orphan_embedding", block_id=match["id"])
                continue
            results.append(EmbeddingMatch(block=block, similarity=match["score"]))
        return results[:limit]

    def get_page(self, page_id: str) -> PageRecord | None:
        return self.store.get_page(page_id)

    def get_page_blocks(self, page_id: str) -> list[BlockRecord]:
        return self.store.get_page_blocks(page_id)

    def get_stats(self) -> dict[str, Any]:
        """Counts of stored pages, blocks and embeddings."""
        try:
            vector_stats = self.vector_store.get_stats()
        except Exception as e:
            logger.error("vector_stats_error", error=str(e))
            raise StorageError(f"Failed to read vector index stats: {e}") from e

        return {
            "total_pages": self.store.count_rows(PAGES_TABLE),
            "total_blocks": self.store.count_rows(BLOCKS_TABLE),
            "total_embeddings": vector_stats.get("total_vectors", 0),
        }

    def check_tables(self) -> dict[str, dict[str, Any]]:
        """Per-table accessibility of the relational store."""
        return self.store.check_tables()


@lru_cache(maxsize=1)
def get_storage_gateway() -> StorageGateway:
    """Get or create storage gateway instance."""
    return StorageGateway()
