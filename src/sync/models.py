"""Records produced and persisted by the migration pipeline."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class MigrationState(str, Enum):
    """Stages a single page migration passes through, in order."""

    FETCHING = "fetching"
    NORMALIZING = "normalizing"
    EMBEDDING = "embedding"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PageRecord:
    """A Notion page as stored in the ``notion_pages`` table."""

    notion_id: str
    title: str
    properties: dict[str, Any] = field(default_factory=dict)
    url: str | None = None
    parent_id: str | None = None
    database_id: str | None = None
    icon_emoji: str | None = None
    created_time: str | None = None
    last_edited_time: str | None = None
    archived: bool = False

    def to_row(self) -> dict[str, Any]:
        """Convert to a table row."""
        return {
            "notion_id": self.notion_id,
            "title": self.title,
            "properties": self.properties,
            "url": self.url,
            "parent_id": self.parent_id,
            "database_id": self.database_id,
            "icon_emoji": self.icon_emoji,
            "notion_created_time": self.created_time,
            "notion_last_edited_time": self.last_edited_time,
            "archived": self.archived,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "PageRecord":
        """Build a record from a table row."""
        return cls(
            notion_id=row["notion_id"],
            title=row.get("title") or "",
            properties=row.get("properties") or {},
            url=row.get("url"),
            parent_id=row.get("parent_id"),
            database_id=row.get("database_id"),
            icon_emoji=row.get("icon_emoji"),
            created_time=row.get("notion_created_time"),
            last_edited_time=row.get("notion_last_edited_time"),
            archived=bool(row.get("archived", False)),
        )


@dataclass
class BlockRecord:
    """A single flattened block as stored in the ``notion_blocks`` table."""

    notion_id: str
    page_id: str
    type: str
    content: dict[str, Any] = field(default_factory=dict)
    plain_text: str = ""
    parent_block_id: str | None = None
    child_ids: list[str] = field(default_factory=list)
    has_children: bool = False
    position: int = 0
    depth: int = 0
    created_time: str | None = None
    last_edited_time: str | None = None
    archived: bool = False

    def to_row(self) -> dict[str, Any]:
        """Convert to a table row."""
        return {
            "notion_id": self.notion_id,
            "page_id": self.page_id,
            "parent_block_id": self.parent_block_id,
            "type": self.type,
            "content": self.content,
            "plain_text": self.plain_text,
            "child_ids": self.child_ids,
            "has_children": self.has_children,
            "position": self.position,
            "depth": self.depth,
            "notion_created_time": self.created_time,
            "notion_last_edited_time": self.last_edited_time,
            "archived": self.archived,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "BlockRecord":
        """Build a record from a table row."""
        return cls(
            notion_id=row["notion_id"],
            page_id=row["page_id"],
            type=row.get("type") or "unsupported",
            content=row.get("content") or {},
            plain_text=row.get("plain_text") or "",
            parent_block_id=row.get("parent_block_id"),
            child_ids=list(row.get("child_ids") or []),
            has_children=bool(row.get("has_children", False)),
            position=row.get("position") or 0,
            depth=row.get("depth") or 0,
            created_time=row.get("notion_created_time"),
            last_edited_time=row.get("notion_last_edited_time"),
            archived=bool(row.get("archived", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)


@dataclass
class EmbeddingRecord:
    """Vector for one block's text."""

    block_id: str
    page_id: str
    values: list[float]
    text: str = ""


@dataclass
class EmbeddingMatch:
    """A block returned by a similarity query."""

    block: BlockRecord
    similarity: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"block": self.block.to_dict(), "similarity": self.similarity}


@dataclass
class UpsertReport:
    """Per-item outcome of a bulk write."""

    written: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def error_messages(self) -> list[str]:
        return [f"{item_id}: {message}" for item_id, message in self.failed.items()]


@dataclass
class MigrationResult:
    """Outcome of migrating one page."""

    page_id: str
    success: bool
    blocks_processed: int = 0
    embeddings_generated: int = 0
    errors: list[str] = field(default_factory=list)
    state: MigrationState = MigrationState.DONE

    @property
    def error(self) -> str | None:
        """First error message, if any."""
        return self.errors[0] if self.errors else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "page_id": self.page_id,
            "success": self.success,
            "blocks_processed": self.blocks_processed,
            "embeddings_generated": self.embeddings_generated,
            "errors": self.errors,
            "state": self.state.value,
        }


@dataclass
class BatchSummary:
    """Aggregate counts over a sequence of migration results."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    total_blocks: int = 0
    total_embeddings: int = 0

    @classmethod
    def from_results(cls, results: list[MigrationResult]) -> "BatchSummary":
        summary = cls(total=len(results))
        for result in results:
            if result.success:
                summary.successful += 1
                summary.total_blocks += result.blocks_processed
                summary.total_embeddings += result.embeddings_generated
            else:
                summary.failed += 1
        return summary

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class BatchMigrationResult:
    """Per-page results plus their summary."""

    results: list[MigrationResult]
    summary: BatchSummary
    # Set when the page list itself could not be read
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> "BatchMigrationResult":
        return cls(results=[], summary=BatchSummary(), error=error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [result.to_dict() for result in self.results],
            "summary": self.summary.to_dict(),
            "error": self.error,
        }
