"""Tests for block flattening and text extraction."""

from conftest import make_block


class TestFlatten:
    """Tests for depth-first flattening."""

    def test_parent_precedes_descendants(self):
        """[A, [B, C], D] flattens to [A, B, C, D]."""
        from src.sync.normalizer import flatten

        raw = [
            make_block("A", text="a", children=[make_block("B", text="b"), make_block("C", text="c")]),
            make_block("D", text="d"),
        ]

        records = flatten("page-1", raw)

        assert [r.notion_id for r in records] == ["A", "B", "C", "D"]
        assert [r.position for r in records] == [0, 1, 2, 3]
        assert [r.depth for r in records] == [0, 1, 1, 0]

    def test_parent_links_and_child_ids(self):
        """Children point at their parent and parents list their children."""
        from src.sync.normalizer import flatten

        raw = [make_block("A", children=[make_block("B"), make_block("C")])]

        a, b, c = flatten("page-1", raw)

        assert a.child_ids == ["B", "C"]
        assert a.has_children is True
        assert b.parent_block_id == "A"
        assert c.parent_block_id == "A"
        assert b.has_children is False
        assert all(r.page_id == "page-1" for r in (a, b, c))

    def test_unexpanded_children_clear_flag(self):
        """A block whose children were not fetched reports no children."""
        from src.sync.normalizer import flatten

        raw = [make_block("A", text="deep", has_children=True)]

        (record,) = flatten("page-1", raw)

        assert record.has_children is False
        assert record.child_ids == []

    def test_empty_page(self):
        """No blocks flatten to no records."""
        from src.sync.normalizer import flatten

        assert flatten("page-1", []) == []


class TestExtractPlainText:
    """Tests for plain text projection."""

    def test_paragraph(self):
        from src.sync.normalizer import extract_plain_text

        block = {
            "type": "paragraph",
            "paragraph": {"rich_text": [{"plain_text": "Hello "}, {"plain_text": "world"}]},
        }
        assert extract_plain_text(block) == "Hello world"

    def test_rich_text_falls_back_to_text_content(self):
        from src.sync.normalizer import extract_plain_text

        block = {
            "type": "heading_1",
            "heading_1": {"rich_text": [{"text": {"content": "Title"}}]},
        }
        assert extract_plain_text(block) == "Title"

    def test_divider_is_empty(self):
        """Leaf-only blocks have no text and no payload."""
        from src.sync.normalizer import extract_plain_text, flatten

        block = make_block("div", "divider")

        assert extract_plain_text(block) == ""
        (record,) = flatten("page-1", [block])
        assert record.content == {}

    def test_unknown_type_is_empty(self):
        from src.sync.normalizer import extract_plain_text

        assert extract_plain_text({"type": "synced_block", "synced_block": {}}) == ""

    def test_table_row_joins_cells(self):
        from src.sync.normalizer import extract_plain_text

        block = {
            "type": "table_row",
            "table_row": {"cells": [[{"plain_text": "a"}], [{"plain_text": "b"}]]},
        }
        assert extract_plain_text(block) == "a\tb"

    def test_bookmark_uses_url_without_caption(self):
        from src.sync.normalizer import extract_plain_text

        block = {"type": "bookmark", "bookmark": {"caption": [], "url": "https://example.com"}}
        assert extract_plain_text(block) == "https://example.com"

    def test_child_page_uses_title(self):
        from src.sync.normalizer import extract_plain_text

        block = {"type": "child_page", "child_page": {"title": "Sub page"}}
        assert extract_plain_text(block) == "Sub page"


class TestBuildPageRecord:
    """Tests for page record construction."""

    def test_database_page(self):
        from src.sync.normalizer import build_page_record

        page = {
            "id": "page-1",
            "url": "https://www.notion.so/page-1",
            "parent": {"type": "database_id", "database_id": "db-1"},
            "icon": {"type": "emoji", "emoji": "📘"},
            "properties": {
                "Name": {"type": "title", "title": [{"plain_text": "Handbook"}]},
            },
            "archived": False,
        }

        record = build_page_record(page)

        assert record.title == "Handbook"
        assert record.database_id == "db-1"
        assert record.parent_id == "db-1"
        assert record.icon_emoji == "📘"

    def test_untitled_page(self):
        from src.sync.normalizer import build_page_record

        record = build_page_record({"id": "page-1", "properties": {}})

        assert record.title == "Untitled"
        assert record.database_id is None


class TestNormalizeNotionId:
    """Tests for canonical Notion IDs."""

    def test_bare_hex_gets_dashes(self):
        from src.sync.normalizer import normalize_notion_id

        assert normalize_notion_id("1234ABCD00004000800000000000BEEF") == "1234abcd-0000-4000-8000-00000000beef"

    def test_dashed_id_unchanged(self):
        from src.sync.normalizer import normalize_notion_id

        assert normalize_notion_id(" 1234abcd-0000-4000-8000-00000000beef ") == "1234abcd-0000-4000-8000-00000000beef"

    def test_non_uuid_only_stripped(self):
        from src.sync.normalizer import normalize_notion_id

        assert normalize_notion_id(" page-1 ") == "page-1"
