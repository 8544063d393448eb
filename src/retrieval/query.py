"""RAG question answering over migrated Notion content."""

from typing import Any

from src.config import get_settings
from src.context import Passage
from src.errors import ValidationError
from src.llm.client import get_claude_client
from src.retrieval.search import SearchCoordinator, SearchResults, get_search_coordinator
from src.sync.models import PageRecord
from src.utils.logging import get_logger

logger = get_logger(__name__)

MAX_PASSAGE_CHARS = 2000


class RAGQueryEngine:
    """Engine for RAG-based question answering."""

    def __init__(self, search: SearchCoordinator | None = None) -> None:
        self.settings = get_settings()
        self.search = search or get_search_coordinator()
        self.claude_client = get_claude_client()

    def _collect_passages(self, results: SearchResults) -> list[Passage]:
        """
        Turn search hits into passages, best matches first.

        Similarity matches come first; text matches fill the remaining
        slots up to ``retrieval_top_k``. Blocks without text are skipped.
        """
        hits = [(match.block, match.similarity) for match in results.embedding_results or []]
        hits.extend((block, None) for block in results.text_results)

        passages: list[Passage] = []
        seen: set[str] = set()
        pages: dict[str, PageRecord | None] = {}

        for block, similarity in hits:
            if block.notion_id in seen or not block.plain_text.strip():
                continue
            seen.add(block.notion_id)

            if block.page_id not in pages:
                pages[block.page_id] = self.search.gateway.get_page(block.page_id)

            passages.append(
                Passage.from_block(
                    block,
                    pages[block.page_id],
                    similarity=similarity,
                    max_chars=MAX_PASSAGE_CHARS,
                )
            )
            if len(passages) >= self.settings.retrieval_top_k:
                break

        return passages

    def query(self, question: str, history: list[dict] | None = None) -> dict[str, Any]:
        """
        Answer a question from migrated content.

        Args:
            question: User's question
            history: Earlier user/assistant turns, oldest first

        Returns:
            Dict with 'answer', 'sources', 'passages' and 'context_documents'
        """
        if not question or not question.strip():
            raise ValidationError("question is required")

        logger.info("rag_query_started", question=question[:100])

        results = self.search.search(
            question,
            use_embeddings=True,
            limit=self.settings.retrieval_top_k,
        )
        passages = self._collect_passages(results)
        context = "\n\n---\n\n".join(
            f"[{i}] {passage.to_context_string()}" for i, passage in enumerate(passages, 1)
        )

        answer = self.claude_client.answer(question, context, history)

        sources: list[str] = []
        for passage in passages:
            if passage.page_url and passage.page_url not in sources:
                sources.append(passage.page_url)

        logger.info(
            "rag_query_completed",
            passages=len(passages),
            degraded=results.embedding_error is not None,
            fallback=answer.fallback,
        )

        return {
            "answer": answer.text,
            "sources": sources,
            "passages": [passage.to_dict() for passage in passages],
            "context_documents": len(passages),
            "fallback": answer.fallback,
        }


# Singleton instance
_engine: RAGQueryEngine | None = None


def get_rag_engine() -> RAGQueryEngine:
    """Get or create RAG query engine instance."""
    global _engine
    if _engine is None:
        _engine = RAGQueryEngine()
    return _engine
