"""Content source adapters and the passages built from migrated content."""

from dataclasses import dataclass
from typing import Any

from src.sync.models import BlockRecord, PageRecord


@dataclass
class Passage:
    """One stored block, with its page, used as chat context."""

    block_id: str
    page_id: str
    page_title: str
    text: str
    block_type: str = "paragraph"
    page_url: str | None = None
    similarity: float | None = None

    @classmethod
    def from_block(
        cls,
        block: BlockRecord,
        page: PageRecord | None,
        similarity: float | None = None,
        max_chars: int | None = None,
    ) -> "Passage":
        text = block.plain_text if max_chars is None else block.plain_text[:max_chars]
        return cls(
            block_id=block.notion_id,
            page_id=block.page_id,
            page_title=page.title if page else "Untitled",
            text=text,
            block_type=block.type,
            page_url=page.url if page else None,
            similarity=similarity,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "block_id": self.block_id,
            "page_id": self.page_id,
            "page_title": self.page_title,
            "page_url": self.page_url,
            "block_type": self.block_type,
            "text": self.text,
            "similarity": self.similarity,
        }

    def to_context_string(self) -> str:
        """Format for the prompt: page title, link, then the block text."""
        header = f"[Page: {self.page_title}]"
        if self.page_url:
            header += f" ({self.page_url})"
        return f"{header}\n{self.text}"
