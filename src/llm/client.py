"""Claude client for answering questions over migrated content."""

from dataclasses import dataclass

import anthropic

from src.config import get_settings
from src.llm.prompts import ANSWER_WITH_CONTEXT_PROMPT, NO_PASSAGES, SYSTEM_PROMPT
from src.utils.logging import get_logger

logger = get_logger(__name__)

FALLBACK_ANSWER = (
    "I'm sorry, I encountered an error while processing your question. "
    "Please try again in a moment."
)
NOT_CONFIGURED_ANSWER = "Chat is not configured for this workspace."


@dataclass
class Answer:
    """Model output plus usage; ``fallback`` marks a canned reply."""

    text: str
    input_tokens: int = 0
    output_tokens: int = 0
    fallback: bool = False


class ClaudeClient:
    """Client for interacting with Claude API."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.client = anthropic.Anthropic(api_key=self.settings.anthropic_api_key)

    @property
    def configured(self) -> bool:
        return bool(self.settings.anthropic_api_key)

    def answer(
        self,
        question: str,
        context: str,
        history: list[dict] | None = None,
    ) -> Answer:
        """
        Answer a question from retrieved passages.

        Provider errors are logged and turned into a fallback answer so a
        chat request never fails on the model call alone.

        Args:
            question: The user's question
            context: Numbered passages from migrated pages
            history: Earlier user/assistant turns, oldest first

        Returns:
            Answer with the generated text
        """
        if not self.configured:
            logger.warning("claude_not_configured")
            return Answer(text=NOT_CONFIGURED_ANSWER, fallback=True)

        logger.info("generating_answer", question=question[:100], has_context=bool(context))

        messages = [*(history or [])]
        messages.append(
            {
                "role": "user",
                "content": ANSWER_WITH_CONTEXT_PROMPT.format(
                    question=question,
                    context=context or NO_PASSAGES,
                ),
            }
        )

        try:
            response = self.client.messages.create(
                model=self.settings.claude_model,
                max_tokens=self.settings.claude_max_tokens,
                system=SYSTEM_PROMPT,
                messages=messages,
            )
        except anthropic.APIError as e:
            logger.error("claude_api_error", error=str(e))
            return Answer(text=FALLBACK_ANSWER, fallback=True)

        answer = Answer(
            text=response.content[0].text,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        logger.info(
            "answer_generated",
            input_tokens=answer.input_tokens,
            output_tokens=answer.output_tokens,
        )
        return answer


# Singleton instance
_client: ClaudeClient | None = None


def get_claude_client() -> ClaudeClient:
    """Get or create Claude client instance."""
    global _client
    if _client is None:
        _client = ClaudeClient()
    return _client
