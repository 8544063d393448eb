"""Pytest configuration and fixtures."""

import math
from unittest.mock import MagicMock, patch

import pytest

from src.errors import StorageError
from src.sync.models import BlockRecord, PageRecord, UpsertReport


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Set up test environment variables."""
    env_vars = {
        "NOTION_API_KEY": "test-notion-key",
        "OPENAI_API_KEY": "test-openai-key",
        "SUPABASE_URL": "https://test.supabase.co",
        "SUPABASE_KEY": "test-supabase-key",
        "PINECONE_API_KEY": "test-pinecone-key",
        "PINECONE_INDEX_NAME": "test-index",
        "ANTHROPIC_API_KEY": "test-anthropic-key",
        "REDIS_URL": "redis://localhost:6379",
        "MIGRATION_BATCH_PAUSE_SECONDS": "0",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    from src.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_singletons():
    """Drop cached clients so each test builds its own."""
    yield

    import src.context.notion as notion
    import src.llm.client as llm_client
    import src.retrieval.query as query
    import src.retrieval.search as search
    import src.sync.migration as migration
    from src.retrieval.embeddings import get_embedding_client
    from src.retrieval.vectorstore import get_vector_store
    from src.storage.gateway import get_storage_gateway
    from src.storage.supabase_store import get_supabase_store
    from src.utils.cache import reset_redis_client

    for getter in (get_embedding_client, get_vector_store, get_storage_gateway, get_supabase_store):
        getter.cache_clear()
    notion._client = None
    llm_client._client = None
    query._engine = None
    search._coordinator = None
    migration._orchestrator = None
    reset_redis_client()


class FakeTokenizer:
    """Whitespace tokenizer standing in for tiktoken."""

    def encode(self, text):
        return text.split()

    def decode(self, tokens):
        return " ".join(tokens)


@pytest.fixture
def mock_openai():
    """Mock the OpenAI client used for embeddings."""
    with (
        patch("src.retrieval.embeddings.OpenAI") as mock,
        patch("src.retrieval.embeddings.tiktoken") as mock_tiktoken,
    ):
        client = MagicMock()
        mock.return_value = client
        mock_tiktoken.encoding_for_model.return_value = FakeTokenizer()

        # Mock embedding creation
        embedding_response = MagicMock()
        embedding_data = MagicMock()
        embedding_data.embedding = [0.1] * 1536
        embedding_response.data = [embedding_data]
        embedding_response.usage = MagicMock(total_tokens=10)
        client.embeddings.create.return_value = embedding_response

        yield client


@pytest.fixture
def mock_pinecone():
    """Mock the Pinecone client."""
    with patch("src.retrieval.vectorstore.Pinecone") as mock:
        client = MagicMock()
        mock.return_value = client

        # Mock index operations
        index = MagicMock()
        client.Index.return_value = index
        existing = MagicMock()
        existing.name = "test-index"
        client.list_indexes.return_value = [existing]

        yield client


@pytest.fixture
def mock_anthropic():
    """Mock the Anthropic client."""
    with patch("anthropic.Anthropic") as mock:
        client = MagicMock()
        mock.return_value = client

        # Mock message creation
        message = MagicMock()
        message.content = [MagicMock(text="Test response")]
        message.usage = MagicMock(input_tokens=100, output_tokens=50)
        client.messages.create.return_value = message

        yield client


@pytest.fixture
def mock_redis():
    """Mock the Redis client."""
    with patch("redis.from_url") as mock:
        client = MagicMock()
        mock.return_value = client
        client.get.return_value = None  # Cache miss by default
        yield client


class FakeSupabaseStore:
    """In-memory stand-in for SupabaseStore."""

    def __init__(self):
        self.pages: dict[str, PageRecord] = {}
        self.blocks: dict[str, BlockRecord] = {}
        self.reject_ids: set[str] = set()
        self.inaccessible: set[str] = set()

    def upsert_page(self, record):
        self.pages[record.notion_id] = record

    def get_page(self, notion_id):
        return self.pages.get(notion_id)

    def search_pages_by_title(self, query, limit):
        matches = [p for p in self.pages.values() if query.lower() in p.title.lower()]
        return matches[:limit]

    def upsert_blocks(self, records):
        report = UpsertReport()
        for record in records:
            if record.notion_id in self.reject_ids:
                report.failed[record.notion_id] = "Failed to save blocks: rejected"
                continue
            self.blocks[record.notion_id] = record
            report.written.append(record.notion_id)
        return report

    def get_block_ids(self, page_id):
        return [b.notion_id for b in self.blocks.values() if b.page_id == page_id]

    def get_page_blocks(self, page_id):
        blocks = [b for b in self.blocks.values() if b.page_id == page_id and not b.archived]
        return sorted(blocks, key=lambda b: b.position)

    def get_blocks_by_ids(self, block_ids):
        return [self.blocks[i] for i in block_ids if i in self.blocks]

    def delete_blocks(self, page_id, block_ids):
        for block_id in block_ids:
            self.blocks.pop(block_id, None)

    def search_blocks(self, query, limit):
        matches = [b for b in self.blocks.values() if query.lower() in b.plain_text.lower()]
        return matches[:limit]

    def count_rows(self, table):
        return len(self.pages) if table == "notion_pages" else len(self.blocks)

    def check_tables(self):
        status = {}
        for table in ("notion_pages", "notion_blocks"):
            if table in self.inaccessible:
                status[table] = {"accessible": False, "error": "permission denied"}
            else:
                status[table] = {"accessible": True}
        return status


class FakeVectorStore:
    """In-memory stand-in for the Pinecone VectorStore, scored by cosine."""

    def __init__(self):
        self.vectors: dict[str, dict] = {}
        self.fail_queries = False

    def upsert_embeddings(self, records, batch_size=100):
        report = UpsertReport()
        for record in records:
            self.vectors[record.block_id] = {"values": record.values, "page_id": record.page_id}
            report.written.append(record.block_id)
        return report

    def query(self, vector, top_k, threshold, filter_dict=None):
        if self.fail_queries:
            raise StorageError("index unavailable")
        matches = []
        for vector_id, item in self.vectors.items():
            score = _cosine(vector, item["values"])
            if score >= threshold:
                matches.append({"id": vector_id, "score": score, "metadata": {}})
        matches.sort(key=lambda m: m["score"], reverse=True)
        return matches[:top_k]

    def delete_by_ids(self, ids):
        for vector_id in ids:
            self.vectors.pop(vector_id, None)

    def get_stats(self):
        return {"total_vectors": len(self.vectors), "dimension": 3}


def _cosine(a, b):
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if not norm:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / norm


@pytest.fixture
def fake_store():
    return FakeSupabaseStore()


@pytest.fixture
def fake_vector_store():
    return FakeVectorStore()


@pytest.fixture
def gateway(fake_store, fake_vector_store):
    """A real StorageGateway over in-memory stores."""
    from src.storage.gateway import StorageGateway

    return StorageGateway(store=fake_store, vector_store=fake_vector_store)


def make_block(block_id, block_type="paragraph", text="", children=None, **extra):
    """Build a raw Notion block dictionary."""
    if block_type == "divider":
        payload = {}
    else:
        payload = {"rich_text": [{"plain_text": text}] if text else []}
    block = {
        "id": block_id,
        "type": block_type,
        block_type: payload,
        "has_children": bool(children),
        "archived": False,
        "created_time": "2024-01-01T00:00:00.000Z",
        "last_edited_time": "2024-01-02T00:00:00.000Z",
    }
    if children:
        block["children"] = children
    block.update(extra)
    return block


def make_page(page_id, title="Test Page"):
    """Build a PageRecord."""
    return PageRecord(
        notion_id=page_id,
        title=title,
        url=f"https://www.notion.so/{page_id}",
    )
