"""Supabase tables holding migrated pages and blocks."""

from collections.abc import Callable
from functools import lru_cache
from typing import Any, TypeVar

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from src.config import get_settings
from src.errors import StorageConnectionError, StorageConstraintError, StorageError
from src.sync.models import BlockRecord, PageRecord, UpsertReport
from src.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

PAGES_TABLE = "notion_pages"
BLOCKS_TABLE = "notion_blocks"
REQUIRED_TABLES = (PAGES_TABLE, BLOCKS_TABLE)

# Postgres integrity constraint violations (class 23)
CONSTRAINT_CODE_PREFIX = "23"


def translate_error(error: Exception, action: str) -> StorageError:
    """Map a postgrest or transport error onto the storage error taxonomy."""
    if isinstance(error, APIError):
        code = str(error.code or "")
        message = f"Failed to {action}: {error.message}"
        if code.startswith(CONSTRAINT_CODE_PREFIX):
            return StorageConstraintError(message, code=code)
        return StorageError(message, code=code or None)
    if isinstance(error, httpx.HTTPError):
        return StorageConnectionError(f"Failed to {action}: {error}")
    return StorageError(f"Failed to {action}: {error}")


class SupabaseStore:
    """Relational storage for Notion pages and blocks."""

    def __init__(self, client: Client | None = None) -> None:
        self.settings = get_settings()
        self.client = client or create_client(self.settings.supabase_url, self.settings.supabase_key)
        self.batch_size = max(1, self.settings.storage_batch_size)

    def _run(self, action: str, operation: Callable[[], T]) -> T:
        try:
            return operation()
        except (APIError, httpx.HTTPError) as e:
            error = translate_error(e, action)
            logger.error("supabase_error", action=action, error=error.message, code=error.code)
            raise error from e

    # Pages

    def upsert_page(self, record: PageRecord) -> None:
        """Insert or replace a page, keyed by its Notion ID."""
        self._run(
            "save page",
            lambda: self.client.table(PAGES_TABLE)
            .upsert(record.to_row(), on_conflict="notion_id")
            .execute(),
        )
        logger.debug("page_upserted", page_id=record.notion_id)

    def get_page(self, notion_id: str) -> PageRecord | None:
        """Get a page by its Notion ID."""
        response = self._run(
            "get page",
            lambda: self.client.table(PAGES_TABLE)
            .select("*")
            .eq("notion_id", notion_id)
            .limit(1)
            .execute(),
        )
        if not response.data:
            return None
        return PageRecord.from_row(response.data[0])

    def search_pages_by_title(self, query: str, limit: int) -> list[PageRecord]:
        """Case-insensitive substring match on page titles."""
        response = self._run(
            "search pages",
            lambda: self.client.table(PAGES_TABLE)
            .select("*")
            .ilike("title", f"%{query}%")
            .eq("archived", False)
            .limit(limit)
            .execute(),
        )
        return [PageRecord.from_row(row) for row in response.data or []]

    # Blocks

    def upsert_blocks(self, records: list[BlockRecord]) -> UpsertReport:
        """
        Insert or replace blocks, keyed by their Notion IDs.

        Rows are written in chunks. When a chunk is rejected it is retried
        row by row so that failures are attributed to individual blocks.
        Connection errors are not retried and abort the write.
        """
        report = UpsertReport()

        for start in range(0, len(records), self.batch_size):
            chunk = records[start : start + self.batch_size]
            try:
                self._upsert_block_rows([record.to_row() for record in chunk])
                report.written.extend(record.notion_id for record in chunk)
                continue
            except StorageConnectionError:
                raise
            except StorageError as e:
                logger.warning("block_chunk_rejected", count=len(chunk), error=e.message)

            for record in chunk:
                try:
                    self._upsert_block_rows([record.to_row()])
                    report.written.append(record.notion_id)
                except StorageConnectionError:
                    raise
                except StorageError as e:
                    report.failed[record.notion_id] = e.message

        logger.info("blocks_upserted", written=len(report.written), failed=len(report.failed))
        return report

    def _upsert_block_rows(self, rows: list[dict[str, Any]]) -> None:
        self._run(
            "save blocks",
            lambda: self.client.table(BLOCKS_TABLE).upsert(rows, on_conflict="notion_id").execute(),
        )

    def get_block_ids(self, page_id: str) -> list[str]:
        """Get the Notion IDs of all stored blocks of a page."""
        response = self._run(
            "get block ids",
            lambda: self.client.table(BLOCKS_TABLE)
            .select("notion_id")
            .eq("page_id", page_id)
            .execute(),
        )
        return [row["notion_id"] for row in response.data or []]

    def get_page_blocks(self, page_id: str) -> list[BlockRecord]:
        """Get a page's blocks ordered by position."""
        response = self._run(
            "get blocks",
            lambda: self.client.table(BLOCKS_TABLE)
            .select("*")
            .eq("page_id", page_id)
            .eq("archived", False)
            .order("position")
            .execute(),
        )
        return [BlockRecord.from_row(row) for row in response.data or []]

    def get_blocks_by_ids(self, block_ids: list[str]) -> list[BlockRecord]:
        """Get blocks by Notion ID, in no particular order."""
        if not block_ids:
            return []
        response = self._run(
            "get blocks",
            lambda: self.client.table(BLOCKS_TABLE)
            .select("*")
            .in_("notion_id", block_ids)
            .execute(),
        )
        return [BlockRecord.from_row(row) for row in response.data or []]

    def delete_blocks(self, page_id: str, block_ids: list[str]) -> None:
        """Delete specific blocks of a page."""
        if not block_ids:
            return
        self._run(
            "delete blocks",
            lambda: self.client.table(BLOCKS_TABLE)
            .delete()
            .eq("page_id", page_id)
            .in_("notion_id", block_ids)
            .execute(),
        )
        logger.info("blocks_deleted", page_id=page_id, count=len(block_ids))

    def search_blocks(self, query: str, limit: int) -> list[BlockRecord]:
        """Full-text search over block plain text."""
        response = self._run(
            "search blocks",
            lambda: self.client.table(BLOCKS_TABLE)
            .select("*")
            .text_search(
                "plain_text",
                query,
                options={"type": "websearch", "config": self.settings.text_search_config},
            )
            .eq("archived", False)
            .limit(limit)
            .execute(),
        )
        return [BlockRecord.from_row(row) for row in response.data or []]

    # Health & stats

    def count_rows(self, table: str) -> int:
        """Exact row count of a table."""
        response = self._run(
            f"count {table}",
            lambda: self.client.table(table).select("notion_id", count="exact").limit(1).execute(),
        )
        return response.count or 0

    def check_tables(self) -> dict[str, dict[str, Any]]:
        """Report whether each required table can be read."""
        status: dict[str, dict[str, Any]] = {}
        for table in REQUIRED_TABLES:
            try:
                self._run(
                    f"read {table}",
                    lambda table=table: self.client.table(table).select("notion_id").limit(1).execute(),
                )
                status[table] = {"accessible": True}
            except StorageError as e:
                status[table] = {"accessible": False, "error": e.message}
        return status


@lru_cache(maxsize=1)
def get_supabase_store() -> SupabaseStore:
    """Get or create Supabase store instance."""
    return SupabaseStore()
