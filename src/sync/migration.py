"""Notion to Supabase migration orchestration."""

import time
from typing import Any

from src.config import get_settings
from src.context.notion import NotionClient, get_notion_client
from src.errors import NotFoundError, NotionMigratorError, ValidationError
from src.retrieval.embeddings import EmbeddingClient, get_embedding_client
from src.storage.gateway import StorageGateway, get_storage_gateway
from src.sync.formatting import render
from src.sync.models import (
    BatchMigrationResult,
    BatchSummary,
    BlockRecord,
    EmbeddingRecord,
    MigrationResult,
    MigrationState,
    PageRecord,
)
from src.sync.normalizer import flatten, normalize_notion_id
from src.utils.logging import get_logger

logger = get_logger(__name__)


class PersistenceError(NotionMigratorError):
    """Some rows of a page could not be written."""

    def __init__(self, what: str, messages: list[str]) -> None:
        super().__init__(f"{len(messages)} {what} failed to persist")
        self.messages = messages


class MigrationOrchestrator:
    """Migrates Notion pages into storage, one page at a time."""

    def __init__(
        self,
        notion_client: NotionClient | None = None,
        embedding_client: EmbeddingClient | None = None,
        gateway: StorageGateway | None = None,
    ) -> None:
        self.settings = get_settings()
        self.notion_client = notion_client or get_notion_client()
        self.embedding_client = embedding_client or get_embedding_client()
        self.gateway = gateway or get_storage_gateway()

    def migrate_page(self, page_id: str) -> MigrationResult:
        """
        Migrate one page: fetch, normalize, embed, persist.

        Any failure stops this page and is reported in the result rather
        than raised, so callers migrating many pages can carry on.

        Args:
            page_id: Notion page ID

        Returns:
            MigrationResult with block and embedding counts

        Raises:
            ValidationError: If page_id is empty
        """
        if not page_id or not page_id.strip():
            raise ValidationError("page_id is required")

        page_id = normalize_notion_id(page_id)
        state = MigrationState.FETCHING
        logger.info("page_migration_started", page_id=page_id)

        try:
            page = self.notion_client.fetch_page(page_id)
            raw_blocks = self.notion_client.fetch_blocks(page_id)

            state = MigrationState.NORMALIZING
            blocks = flatten(page.notion_id, raw_blocks)

            state = MigrationState.EMBEDDING
            embeddings, skipped_ids = self._generate_embeddings(blocks)

            state = MigrationState.PERSISTING
            self._persist(page, blocks, embeddings, skipped_ids)

        except PersistenceError as e:
            logger.error("page_migration_failed", page_id=page_id, state=state.value, error=e.message)
            return MigrationResult(
                page_id=page_id,
                success=False,
                errors=[f"{state.value}: {e.message}", *e.messages],
                state=MigrationState.FAILED,
            )
        except NotionMigratorError as e:
            logger.error(
                "page_migration_failed",
                page_id=page_id,
                state=state.value,
                error=e.message,
                retryable=e.retryable,
            )
            return MigrationResult(
                page_id=page_id,
                success=False,
                errors=[f"{state.value}: {e.message}"],
                state=MigrationState.FAILED,
            )
        except Exception as e:
            logger.exception("page_migration_crashed", page_id=page_id, state=state.value)
            return MigrationResult(
                page_id=page_id,
                success=False,
                errors=[f"{state.value}: {e}"],
                state=MigrationState.FAILED,
            )

        logger.info(
            "page_migration_completed",
            page_id=page_id,
            blocks_processed=len(blocks),
            embeddings_generated=len(embeddings),
        )
        return MigrationResult(
            page_id=page_id,
            success=True,
            blocks_processed=len(blocks),
            embeddings_generated=len(embeddings),
            state=MigrationState.DONE,
        )

    def _generate_embeddings(
        self, blocks: list[BlockRecord]
    ) -> tuple[list[EmbeddingRecord], list[str]]:
        """
        Embed every block with non-empty text.

        Returns:
            The embedding records, and the IDs of blocks left without one
        """
        embeddable = [block for block in blocks if block.plain_text.strip()]
        skipped_ids = [block.notion_id for block in blocks if not block.plain_text.strip()]

        vectors = self.embedding_client.embed_batch(
            [block.plain_text for block in embeddable], skip_transient=True
        )

        records = []
        for block, vector in zip(embeddable, vectors, strict=True):
            if vector is None:
                skipped_ids.append(block.notion_id)
                continue
            records.append(
                EmbeddingRecord(
                    block_id=block.notion_id,
                    page_id=block.page_id,
                    values=vector,
                    text=block.plain_text,
                )
            )

        logger.debug(
            "page_embeddings_generated",
            embedded=len(records),
            skipped=len(skipped_ids),
        )
        return records, skipped_ids

    def _persist(
        self,
        page: PageRecord,
        blocks: list[BlockRecord],
        embeddings: list[EmbeddingRecord],
        skipped_ids: list[str],
    ) -> None:
        self.gateway.upsert_page(page)

        block_report = self.gateway.upsert_blocks(page.notion_id, blocks)
        if not block_report.ok:
            raise PersistenceError("blocks", block_report.error_messages())

        # Blocks that lost their text must not keep an old vector
        self.gateway.delete_embeddings(skipped_ids)

        embedding_report = self.gateway.upsert_embeddings(embeddings)
        if not embedding_report.ok:
            raise PersistenceError("embeddings", embedding_report.error_messages())

    def migrate_multiple_pages(
        self, page_ids: list[str], batch_size: int | None = None
    ) -> BatchMigrationResult:
        """
        Migrate pages in groups of at most ``batch_size``.

        Every page is attempted and reported, whatever happens to the
        others.

        Args:
            page_ids: Notion page IDs, in processing order
            batch_size: Pages per group (defaults to settings)

        Returns:
            BatchMigrationResult with one result per page ID and a summary
        """
        if batch_size is None:
            batch_size = self.settings.migration_batch_size
        if batch_size < 1:
            raise ValidationError("batch_size must be at least 1")

        total = len(page_ids)
        total_batches = (total + batch_size - 1) // batch_size
        results: list[MigrationResult] = []

        logger.info("batch_migration_started", total_pages=total, batch_size=batch_size)

        for i in range(0, total, batch_size):
            batch = page_ids[i : i + batch_size]
            logger.info(
                "migration_batch_started",
                batch=i // batch_size + 1,
                total_batches=total_batches,
                pages=len(batch),
            )

            for page_id in batch:
                try:
                    results.append(self.migrate_page(page_id))
                except ValidationError as e:
                    results.append(
                        MigrationResult(
                            page_id=page_id,
                            success=False,
                            errors=[e.message],
                            state=MigrationState.FAILED,
                        )
                    )

            pause = self.settings.migration_batch_pause_seconds
            if pause > 0 and i + batch_size < total:
                logger.debug("pausing_between_batches", seconds=pause)
                time.sleep(pause)

        summary = BatchSummary.from_results(results)
        logger.info(
            "batch_migration_completed",
            total=summary.total,
            successful=summary.successful,
            failed=summary.failed,
            total_blocks=summary.total_blocks,
            total_embeddings=summary.total_embeddings,
        )
        return BatchMigrationResult(results=results, summary=summary)

    def migrate_database(
        self, database_id: str, batch_size: int | None = None
    ) -> BatchMigrationResult:
        """Migrate every page of a Notion database."""
        page_ids = self.notion_client.query_database(database_id)
        return self.migrate_multiple_pages(page_ids, batch_size)

    def migrate_configured_databases(
        self, batch_size: int | None = None
    ) -> dict[str, BatchMigrationResult]:
        """
        Migrate all databases listed in settings.

        A database whose page list cannot be read is reported with its
        error and the remaining databases still run.

        Returns:
            Dict mapping database IDs to their batch results
        """
        logger.info("full_migration_started")

        results = {}
        for database_id in self.settings.notion_database_id_list:
            try:
                results[database_id] = self.migrate_database(database_id, batch_size)
            except NotionMigratorError as e:
                logger.error("database_migration_failed", database_id=database_id, error=e.message)
                results[database_id] = BatchMigrationResult.failed(e.message)

        logger.info(
            "full_migration_completed",
            databases=len(results),
            pages=sum(r.summary.total for r in results.values()),
        )
        return results

    def get_content_in_format(self, page_id: str, content_format: str) -> str:
        """
        Render a migrated page from storage.

        Args:
            page_id: Notion page ID
            content_format: One of json, markdown, html, plain

        Returns:
            The rendered content

        Raises:
            NotFoundError: If the page has not been migrated
            ValidationError: If the format is not supported
        """
        if not page_id or not page_id.strip():
            raise ValidationError("page_id is required")

        page_id = normalize_notion_id(page_id)
        page = self.gateway.get_page(page_id)
        if page is None:
            raise NotFoundError(f"Page not found: {page_id}")

        blocks = self.gateway.get_page_blocks(page_id)
        logger.debug("content_rendered", page_id=page_id, format=content_format, blocks=len(blocks))
        return render(page, blocks, content_format)

    def get_migration_stats(self) -> dict[str, Any]:
        """Storage counts for migrated content."""
        stats = self.gateway.get_stats()
        logger.info("migration_stats_retrieved", **stats)
        return stats


# Singleton instance
_orchestrator: MigrationOrchestrator | None = None


def get_orchestrator() -> MigrationOrchestrator:
    """Get or create migration orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = MigrationOrchestrator()
    return _orchestrator
