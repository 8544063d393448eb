"""Render stored pages as JSON, Markdown, HTML or plain text."""

import html
import json
from typing import Literal

from src.errors import ValidationError
from src.sync.models import BlockRecord, PageRecord

ContentFormat = Literal["json", "markdown", "html", "plain"]
CONTENT_FORMATS = ("json", "markdown", "html", "plain")


def to_plain(blocks: list[BlockRecord]) -> str:
    """Plain text, one block per line."""
    return "\n".join(block.plain_text for block in blocks)


def _markdown_line(block: BlockRecord) -> str:
    text = block.plain_text
    indent = "  " * block.depth

    if block.type.startswith("heading_"):
        level = int(block.type[-1])
        return f"{'#' * level} {text}"
    if block.type == "bulleted_list_item":
        return f"{indent}- {text}"
    if block.type == "numbered_list_item":
        return f"{indent}1. {text}"
    if block.type == "to_do":
        checked = block.content.get("to_do", {}).get("checked", False)
        return f"{indent}- [{'x' if checked else ' '}] {text}"
    if block.type == "code":
        language = block.content.get("code", {}).get("language", "")
        return f"```{language}\n{text}\n```"
    if block.type in ("quote", "callout"):
        return f"> {text}"
    if block.type == "divider":
        return "---"
    if block.type == "equation":
        return f"$${text}$$"
    return text


def to_markdown(page: PageRecord, blocks: list[BlockRecord]) -> str:
    """Markdown with the page title as a top-level heading."""
    lines = [f"# {page.title}"]
    lines.extend(_markdown_line(block) for block in blocks)
    return "\n\n".join(line for line in lines if line)


def _html_element(block: BlockRecord) -> str:
    text = html.escape(block.plain_text)

    if block.type.startswith("heading_"):
        level = block.type[-1]
        return f"<h{level}>{text}</h{level}>"
    if block.type == "paragraph":
        return f"<p>{text}</p>"
    if block.type in ("bulleted_list_item", "numbered_list_item"):
        return f"<li>{text}</li>"
    if block.type == "to_do":
        checked = " checked" if block.content.get("to_do", {}).get("checked") else ""
        return f'<div class="notion-todo"><input type="checkbox"{checked} disabled> {text}</div>'
    if block.type == "code":
        language = html.escape(block.content.get("code", {}).get("language", "text"))
        return f'<pre><code class="language-{language}">{text}</code></pre>'
    if block.type == "quote":
        return f"<blockquote>{text}</blockquote>"
    if block.type == "callout":
        return f'<div class="notion-callout">{text}</div>'
    if block.type == "divider":
        return '<hr class="notion-divider">'
    if not text:
        return ""
    return f'<div class="notion-{html.escape(block.type)}">{text}</div>'


def to_html(page: PageRecord, blocks: list[BlockRecord]) -> str:
    """An HTML fragment with the page title as ``<h1>``."""
    elements = [f"<h1>{html.escape(page.title)}</h1>"]
    elements.extend(_html_element(block) for block in blocks)
    return "\n".join(element for element in elements if element)


def to_json(page: PageRecord, blocks: list[BlockRecord]) -> str:
    """The stored page and block rows as indented JSON."""
    return json.dumps(
        {"page": page.to_row(), "blocks": [block.to_row() for block in blocks]},
        indent=2,
        default=str,
    )


def render(page: PageRecord, blocks: list[BlockRecord], content_format: str) -> str:
    """
    Render a page in the requested format.

    Raises:
        ValidationError: If the format is not supported
    """
    if content_format == "json":
        return to_json(page, blocks)
    if content_format == "markdown":
        return to_markdown(page, blocks)
    if content_format == "html":
        return to_html(page, blocks)
    if content_format == "plain":
        return to_plain(blocks)
    raise ValidationError(
        f"Unsupported format: {content_format}. Expected one of {', '.join(CONTENT_FORMATS)}"
    )
