"""Notion API integration for fetching pages and block trees."""

from typing import Any

import httpx
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from src.config import get_settings
from src.errors import (
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    SourceError,
    TransientSourceError,
    UnauthorizedError,
    ValidationError,
)
from src.sync.models import PageRecord
from src.sync.normalizer import build_page_record
from src.utils.logging import get_logger

logger = get_logger(__name__)

NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
PAGE_SIZE = 100


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, SourceError) and exc.retryable


def _error_from_response(response: httpx.Response, endpoint: str) -> SourceError:
    """Map a failed Notion response onto the error taxonomy."""
    status = response.status_code
    try:
        message = response.json().get("message") or response.text
    except ValueError:
        message = response.text
    message = f"Notion {status} on {endpoint}: {message}"

    if status == 404:
        return NotFoundError(message, status)
    if status == 401:
        return UnauthorizedError(message, status)
    if status == 403:
        return ForbiddenError(message, status)
    if status == 429:
        retry_after = response.headers.get("Retry-After")
        return RateLimitedError(
            message,
            status,
            retry_after=float(retry_after) if retry_after else None,
        )
    if status >= 500:
        return TransientSourceError(message, status)
    return SourceError(message, status)


class NotionClient:
    """Client for Notion API."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.headers = {
            "Authorization": f"Bearer {self.settings.notion_api_key}",
            "Content-Type": "application/json",
            "Notion-Version": NOTION_VERSION,
        }

    def _send(self, method: str, endpoint: str, json_data: dict | None = None) -> dict[str, Any]:
        """Make a single request to Notion API."""
        try:
            with httpx.Client(timeout=self.settings.notion_timeout_seconds) as client:
                response = client.request(
                    method,
                    f"{NOTION_API_URL}{endpoint}",
                    headers=self.headers,
                    json=json_data,
                )
        except httpx.TransportError as e:
            raise TransientSourceError(f"Notion request to {endpoint} failed: {e}") from e

        if response.is_error:
            raise _error_from_response(response, endpoint)
        return response.json()

    def _request(
        self, method: str, endpoint: str, json_data: dict | None = None
    ) -> dict[str, Any]:
        """
        Make a request, retrying retryable errors only when configured to.

        With the default of one attempt, rate limits and transient errors
        surface to the caller unchanged.
        """
        retrying = Retrying(
            stop=stop_after_attempt(max(1, self.settings.notion_request_attempts)),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        return retrying(self._send, method, endpoint, json_data)

    def _paginate(
        self, method: str, endpoint: str, json_data: dict | None = None
    ) -> list[dict[str, Any]]:
        """Follow ``next_cursor`` until Notion reports no further pages."""
        results: list[dict[str, Any]] = []
        cursor: str | None = None

        while True:
            if method == "GET":
                path = f"{endpoint}?page_size={PAGE_SIZE}"
                if cursor:
                    path += f"&start_cursor={cursor}"
                response = self._request(method, path)
            else:
                body = {**(json_data or {}), "page_size": PAGE_SIZE}
                if cursor:
                    body["start_cursor"] = cursor
                response = self._request(method, endpoint, json_data=body)

            results.extend(response.get("results", []))
            cursor = response.get("next_cursor")
            if not response.get("has_more") or not cursor:
                return results

    def fetch_page(self, page_id: str) -> PageRecord:
        """
        Fetch a page's metadata.

        Args:
            page_id: Notion page ID

        Returns:
            PageRecord for the page

        Raises:
            NotFoundError: If the page does not exist or is not shared
        """
        if not page_id or not page_id.strip():
            raise ValidationError("page_id is required")

        page = self._request("GET", f"/pages/{page_id}")
        logger.debug("notion_page_fetched", page_id=page_id)
        return build_page_record(page)

    def fetch_children(self, block_id: str) -> list[dict[str, Any]]:
        """Fetch all direct children of a page or block."""
        return self._paginate("GET", f"/blocks/{block_id}/children")

    def fetch_blocks(self, page_id: str, max_depth: int | None = None) -> list[dict[str, Any]]:
        """
        Fetch a page's block tree.

        Blocks with children get them attached under a ``children`` key,
        expanded recursively up to ``max_depth`` levels.

        Args:
            page_id: Notion page ID
            max_depth: Maximum nesting to expand (defaults to settings)

        Returns:
            Top-level blocks in source order
        """
        if not page_id or not page_id.strip():
            raise ValidationError("page_id is required")

        if max_depth is None:
            max_depth = self.settings.notion_max_depth

        blocks = self._expand(page_id, depth=0, max_depth=max_depth)
        logger.info("notion_blocks_fetched", page_id=page_id, top_level=len(blocks))
        return blocks

    def _expand(self, block_id: str, depth: int, max_depth: int) -> list[dict[str, Any]]:
        blocks = self.fetch_children(block_id)
        for block in blocks:
            if not block.get("has_children"):
                continue
            if depth + 1 >= max_depth:
                logger.warning("notion_max_depth_reached", block_id=block["id"], depth=depth + 1)
                continue
            block["children"] = self._expand(block["id"], depth + 1, max_depth)
        return blocks

    def query_database(self, database_id: str) -> list[str]:
        """
        List the IDs of all pages in a database.

        Args:
            database_id: Notion database ID

        Returns:
            Page IDs in the order Notion returns them
        """
        if not database_id or not database_id.strip():
            raise ValidationError("database_id is required")

        pages = self._paginate("POST", f"/databases/{database_id}/query", json_data={})
        page_ids = [page["id"] for page in pages if not page.get("archived")]
        logger.info("notion_database_queried", database_id=database_id, count=len(page_ids))
        return page_ids

    def get_current_user(self) -> dict[str, Any]:
        """Fetch the integration's bot user, used to verify the token."""
        return self._request("GET", "/users/me")


# Singleton instance
_client: NotionClient | None = None


def get_notion_client() -> NotionClient:
    """Get or create Notion client instance."""
    global _client
    if _client is None:
        _client = NotionClient()
    return _client
