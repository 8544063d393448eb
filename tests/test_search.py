"""Tests for search over migrated content and chat."""

from unittest.mock import patch

import pytest

from conftest import make_page
from src.errors import FatalEmbeddingError
from src.sync.models import BlockRecord, EmbeddingRecord


@pytest.fixture
def populated_gateway(gateway):
    """Gateway holding one page with three embedded blocks."""
    gateway.upsert_page(make_page("page-1", title="Engineering Handbook"))
    gateway.upsert_blocks(
        "page-1",
        [
            BlockRecord(notion_id="b1", page_id="page-1", type="paragraph", plain_text="Deploys run on Fridays", position=0),
            BlockRecord(notion_id="b2", page_id="page-1", type="paragraph", plain_text="On-call rotation is weekly", position=1),
            BlockRecord(notion_id="b3", page_id="page-1", type="paragraph", plain_text="Lunch is at noon", position=2),
        ],
    )
    gateway.upsert_embeddings(
        [
            EmbeddingRecord(block_id="b1", page_id="page-1", values=[1.0, 0.0, 0.0]),
            EmbeddingRecord(block_id="b2", page_id="page-1", values=[0.9, 0.1, 0.0]),
            EmbeddingRecord(block_id="b3", page_id="page-1", values=[0.0, 0.0, 1.0]),
        ]
    )
    return gateway


class TestSearchCoordinator:
    """Tests for combined text and similarity search."""

    def test_text_only_by_default(self, mock_env_vars, populated_gateway):
        from src.retrieval.search import SearchCoordinator

        with patch("src.retrieval.search.embed_query") as mock_embed:
            results = SearchCoordinator(gateway=populated_gateway).search("deploys")

        mock_embed.assert_not_called()
        assert [b.notion_id for b in results.text_results] == ["b1"]
        assert results.page_results == []
        assert results.embedding_results is None

    def test_page_title_matches(self, mock_env_vars, populated_gateway):
        from src.retrieval.search import SearchCoordinator

        results = SearchCoordinator(gateway=populated_gateway).search("handbook")

        assert [p.notion_id for p in results.page_results] == ["page-1"]

    @patch("src.retrieval.search.embed_query")
    def test_embedding_results_respect_threshold(self, mock_embed, mock_env_vars, populated_gateway):
        mock_embed.return_value = [1.0, 0.0, 0.0]

        from src.retrieval.search import SearchCoordinator

        results = SearchCoordinator(gateway=populated_gateway).search(
            "release schedule", use_embeddings=True, threshold=0.9
        )

        assert [m.block.notion_id for m in results.embedding_results] == ["b1", "b2"]
        assert all(m.similarity >= 0.9 for m in results.embedding_results)
        assert results.embedding_results[0].similarity >= results.embedding_results[1].similarity
        assert results.embedding_error is None

    @patch("src.retrieval.search.embed_query")
    def test_embedding_failure_degrades_to_text(self, mock_embed, mock_env_vars, populated_gateway):
        mock_embed.side_effect = FatalEmbeddingError("Embedding request rejected: bad key")

        from src.retrieval.search import SearchCoordinator

        results = SearchCoordinator(gateway=populated_gateway).search("deploys", use_embeddings=True)

        assert [b.notion_id for b in results.text_results] == ["b1"]
        assert results.embedding_results == []
        assert "bad key" in results.embedding_error

    @patch("src.retrieval.search.embed_query")
    def test_vector_store_failure_degrades(
        self, mock_embed, mock_env_vars, populated_gateway, fake_vector_store
    ):
        mock_embed.return_value = [1.0, 0.0, 0.0]
        fake_vector_store.fail_queries = True

        from src.retrieval.search import SearchCoordinator

        results = SearchCoordinator(gateway=populated_gateway).search("deploys", use_embeddings=True)

        assert results.embedding_results == []
        assert results.embedding_error is not None

    def test_empty_query_rejected(self, mock_env_vars, populated_gateway):
        from src.errors import ValidationError
        from src.retrieval.search import SearchCoordinator

        with pytest.raises(ValidationError):
            SearchCoordinator(gateway=populated_gateway).search("   ")

    def test_limit_caps_results(self, mock_env_vars, populated_gateway):
        from src.retrieval.search import SearchCoordinator

        results = SearchCoordinator(gateway=populated_gateway).search("o", limit=1)

        assert len(results.text_results) == 1

    def test_to_dict_shape(self, mock_env_vars, populated_gateway):
        from src.retrieval.search import SearchCoordinator

        data = SearchCoordinator(gateway=populated_gateway).search("deploys").to_dict()

        assert data["text_results"][0]["notion_id"] == "b1"
        assert data["embedding_results"] is None
        assert data["embedding_error"] is None


class TestRAGQueryEngine:
    """Tests for answering questions from migrated content."""

    @patch("src.retrieval.search.embed_query")
    def test_query_builds_context_and_cites_pages(
        self, mock_embed, mock_env_vars, mock_anthropic, populated_gateway
    ):
        mock_embed.return_value = [1.0, 0.0, 0.0]

        from src.retrieval.query import RAGQueryEngine
        from src.retrieval.search import SearchCoordinator

        engine = RAGQueryEngine(search=SearchCoordinator(gateway=populated_gateway))
        result = engine.query("When do deploys run?")

        assert result["answer"] == "Test response"
        assert result["fallback"] is False
        assert result["sources"] == ["https://www.notion.so/page-1"]
        assert result["context_documents"] == 2
        assert [p["block_id"] for p in result["passages"]] == ["b1", "b2"]

        prompt = mock_anthropic.messages.create.call_args.kwargs["messages"][-1]["content"]
        assert "[Page: Engineering Handbook]" in prompt
        assert "Deploys run on Fridays" in prompt

    @patch("src.retrieval.search.embed_query")
    def test_history_precedes_question(
        self, mock_embed, mock_env_vars, mock_anthropic, populated_gateway
    ):
        mock_embed.return_value = [1.0, 0.0, 0.0]
        history = [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello"},
        ]

        from src.retrieval.query import RAGQueryEngine
        from src.retrieval.search import SearchCoordinator

        engine = RAGQueryEngine(search=SearchCoordinator(gateway=populated_gateway))
        engine.query("When do deploys run?", history=history)

        messages = mock_anthropic.messages.create.call_args.kwargs["messages"]
        assert messages[:2] == history
        assert messages[2]["role"] == "user"

    def test_empty_question_rejected(self, mock_env_vars, mock_anthropic, populated_gateway):
        from src.errors import ValidationError
        from src.retrieval.query import RAGQueryEngine
        from src.retrieval.search import SearchCoordinator

        engine = RAGQueryEngine(search=SearchCoordinator(gateway=populated_gateway))

        with pytest.raises(ValidationError):
            engine.query("")


class TestClaudeClient:
    """Tests for the answer generator."""

    def test_api_error_returns_fallback(self, mock_env_vars, mock_anthropic):
        import anthropic
        import httpx

        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        mock_anthropic.messages.create.side_effect = anthropic.APIConnectionError(request=request)

        from src.llm.client import FALLBACK_ANSWER, ClaudeClient

        answer = ClaudeClient().answer("question", "context")

        assert answer.text == FALLBACK_ANSWER
        assert answer.fallback is True

    def test_missing_key_skips_request(self, mock_env_vars, mock_anthropic, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "")

        from src.config import get_settings
        from src.llm.client import ClaudeClient

        get_settings.cache_clear()
        answer = ClaudeClient().answer("question", "context")

        assert answer.fallback is True
        mock_anthropic.messages.create.assert_not_called()

    def test_usage_reported(self, mock_env_vars, mock_anthropic):
        from src.llm.client import ClaudeClient

        answer = ClaudeClient().answer("question", "")

        assert answer.text == "Test response"
        assert (answer.input_tokens, answer.output_tokens) == (100, 50)
        prompt = mock_anthropic.messages.create.call_args.kwargs["messages"][-1]["content"]
        assert "No relevant passages found." in prompt
