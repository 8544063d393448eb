"""Flatten Notion block trees into ordered block records.

Everything here is pure: raw API dictionaries in, records out.
"""

import re
from typing import Any

from src.sync.models import BlockRecord, PageRecord
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Block types whose text lives in a ``rich_text`` array
RICH_TEXT_TYPES = {
    "paragraph",
    "heading_1",
    "heading_2",
    "heading_3",
    "bulleted_list_item",
    "numbered_list_item",
    "quote",
    "toggle",
    "callout",
    "to_do",
    "code",
    "template",
}

CAPTION_TYPES = {"image", "video", "file", "pdf", "audio"}
LINK_TYPES = {"bookmark", "embed", "link_preview"}

# Types that carry no content of their own
LEAF_ONLY_TYPES = {"divider", "breadcrumb", "table_of_contents", "column_list", "column"}

HEX_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{32}$")


def normalize_notion_id(notion_id: str) -> str:
    """
    Canonical dashed form of a Notion ID.

    Notion URLs carry IDs as 32 bare hex characters while the API returns
    them as 8-4-4-4-12 UUIDs. Anything that is not a UUID is returned
    stripped but otherwise unchanged.
    """
    notion_id = notion_id.strip()
    compact = notion_id.replace("-", "")
    if not HEX_ID_PATTERN.match(compact):
        return notion_id
    compact = compact.lower()
    return f"{compact[:8]}-{compact[8:12]}-{compact[12:16]}-{compact[16:20]}-{compact[20:]}"


def extract_rich_text(rich_text: list[dict] | None) -> str:
    """Concatenate the plain text of a rich text array."""
    parts = []
    for item in rich_text or []:
        text = item.get("plain_text")
        if text is None:
            text = (item.get("text") or {}).get("content", "")
        parts.append(text)
    return "".join(parts)


def extract_plain_text(block: dict[str, Any]) -> str:
    """
    Project a raw block onto plain text.

    Unknown and leaf-only block types yield an empty string.
    """
    block_type = block.get("type", "")
    payload = block.get(block_type) or {}

    if block_type in RICH_TEXT_TYPES:
        return extract_rich_text(payload.get("rich_text"))

    if block_type == "table_row":
        cells = [extract_rich_text(cell) for cell in payload.get("cells", [])]
        return "\t".join(cells).strip()

    if block_type == "equation":
        return payload.get("expression", "")

    if block_type in LINK_TYPES:
        return extract_rich_text(payload.get("caption")) or payload.get("url", "")

    if block_type in CAPTION_TYPES:
        return extract_rich_text(payload.get("caption"))

    if block_type in ("child_page", "child_database"):
        return payload.get("title", "")

    return ""


def _block_content(block: dict[str, Any]) -> dict[str, Any]:
    block_type = block.get("type", "")
    if block_type in LEAF_ONLY_TYPES:
        return {}
    payload = block.get(block_type)
    if not isinstance(payload, dict):
        return {}
    return {block_type: payload}


def flatten(page_id: str, raw_blocks: list[dict[str, Any]]) -> list[BlockRecord]:
    """
    Flatten a block tree depth-first, preserving source order.

    Children are read from the ``children`` key that the Notion client
    attaches during expansion. Each parent is emitted immediately before
    its descendants, so ``[A, [B, C], D]`` becomes ``[A, B, C, D]``.

    Args:
        page_id: Notion ID of the owning page
        raw_blocks: Top-level blocks as returned by the Notion client

    Returns:
        Ordered list of BlockRecord objects with positions assigned
    """
    records: list[BlockRecord] = []

    def visit(block: dict[str, Any], parent_id: str | None, depth: int) -> None:
        children = block.get("children") or []
        if block.get("has_children") and not children:
            logger.debug("block_children_not_expanded", block_id=block.get("id"))

        record = BlockRecord(
            notion_id=block["id"],
            page_id=page_id,
            type=block.get("type", "unsupported"),
            content=_block_content(block),
            plain_text=extract_plain_text(block),
            parent_block_id=parent_id,
            child_ids=[child["id"] for child in children],
            has_children=bool(children),
            position=len(records),
            depth=depth,
            created_time=block.get("created_time"),
            last_edited_time=block.get("last_edited_time"),
            archived=bool(block.get("archived", False)),
        )
        records.append(record)

        for child in children:
            visit(child, block["id"], depth + 1)

    for block in raw_blocks:
        visit(block, None, 0)

    return records


def extract_page_title(page: dict[str, Any]) -> str:
    """Extract title from page properties."""
    for prop_value in page.get("properties", {}).values():
        if prop_value.get("type") == "title":
            title = extract_rich_text(prop_value.get("title"))
            if title:
                return title
    return "Untitled"


def build_page_record(page: dict[str, Any]) -> PageRecord:
    """Build a PageRecord from a raw Notion page object."""
    parent = page.get("parent") or {}
    icon = page.get("icon") or {}

    return PageRecord(
        notion_id=page["id"],
        title=extract_page_title(page),
        properties=page.get("properties", {}),
        url=page.get("url"),
        parent_id=parent.get("page_id") or parent.get("database_id"),
        database_id=parent.get("database_id") if parent.get("type") == "database_id" else None,
        icon_emoji=icon.get("emoji") if icon.get("type") == "emoji" else None,
        created_time=page.get("created_time"),
        last_edited_time=page.get("last_edited_time"),
        archived=bool(page.get("archived", False)),
    )
