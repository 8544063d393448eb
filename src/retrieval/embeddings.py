"""OpenAI embeddings for block and query text."""

import re
from functools import lru_cache

import openai
import tiktoken
from openai import OpenAI

from src.config import get_settings
from src.errors import EmbeddingError, FatalEmbeddingError, TransientEmbeddingError
from src.utils.logging import get_logger

logger = get_logger(__name__)

TRANSIENT_ERRORS = (
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)
FATAL_ERRORS = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    openai.BadRequestError,
    openai.NotFoundError,
)


def _classify(error: openai.OpenAIError) -> EmbeddingError:
    """Map an OpenAI SDK error onto the embedding error taxonomy."""
    if isinstance(error, TRANSIENT_ERRORS):
        return TransientEmbeddingError(f"Embedding provider unavailable: {error}")
    if isinstance(error, FATAL_ERRORS):
        return FatalEmbeddingError(f"Embedding request rejected: {error}")
    return EmbeddingError(f"Embedding request failed: {error}")


class EmbeddingClient:
    """Client for generating text embeddings using OpenAI."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.client = OpenAI(api_key=self.settings.openai_api_key)
        self.model = self.settings.embedding_model
        self.dimensions = self.settings.embedding_dimensions
        self.batch_size = max(1, self.settings.embedding_batch_size)
        self.max_tokens = self.settings.embedding_max_tokens
        try:
            self.tokenizer = tiktoken.encoding_for_model(self.model)
        except KeyError:
            self.tokenizer = tiktoken.get_encoding("cl100k_base")

    @property
    def zero_vector(self) -> list[float]:
        return [0.0] * self.dimensions

    def count_tokens(self, text: str) -> int:
        """Count tokens in text."""
        return len(self.tokenizer.encode(text))

    def clean_text(self, text: str) -> str:
        """Collapse whitespace and truncate to the model's token budget."""
        cleaned = re.sub(r"\s+", " ", text or "").strip()
        tokens = self.tokenizer.encode(cleaned)
        if len(tokens) > self.max_tokens:
            cleaned = self.tokenizer.decode(tokens[: self.max_tokens])
        return cleaned

    def _create(self, texts: list[str]):
        try:
            return self.client.embeddings.create(model=self.model, input=texts)
        except openai.OpenAIError as e:
            error = _classify(e)
            logger.error(
                "embedding_error",
                error=str(e),
                retryable=error.retryable,
                count=len(texts),
            )
            raise error from e

    def embed(self, text: str) -> list[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats; the zero vector for empty text
        """
        cleaned = self.clean_text(text)
        if not cleaned:
            logger.warning("empty_text_for_embedding")
            return self.zero_vector

        response = self._create([cleaned])
        if not response.data:
            raise EmbeddingError("Embedding provider returned no data")

        logger.debug("text_embedded", tokens=response.usage.total_tokens)
        return list(response.data[0].embedding)

    def embed_batch(
        self, texts: list[str], skip_transient: bool = False
    ) -> list[list[float] | None]:
        """
        Generate embeddings for multiple texts.

        Output has the same length and order as ``texts``. Empty texts get
        the zero vector. When ``skip_transient`` is set, a sub-batch that
        fails with a transient error leaves ``None`` in its slots instead
        of aborting the remaining sub-batches.

        Args:
            texts: List of texts to embed
            skip_transient: Continue past transient sub-batch failures

        Returns:
            List of embedding vectors (or None for skipped slots)
        """
        if not texts:
            return []

        embeddings: list[list[float] | None] = [self.zero_vector for _ in texts]

        valid_texts = [(i, self.clean_text(t)) for i, t in enumerate(texts)]
        valid_texts = [(i, t) for i, t in valid_texts if t]
        if not valid_texts:
            return embeddings

        embedded = 0
        for start in range(0, len(valid_texts), self.batch_size):
            batch = valid_texts[start : start + self.batch_size]
            indices = [i for i, _ in batch]

            try:
                response = self._create([t for _, t in batch])
            except TransientEmbeddingError:
                if not skip_transient:
                    raise
                logger.warning("embedding_batch_skipped", start=start, count=len(batch))
                for original_idx in indices:
                    embeddings[original_idx] = None
                continue

            if len(response.data) != len(batch):
                raise EmbeddingError(
                    f"Expected {len(batch)} embeddings, provider returned {len(response.data)}"
                )

            # Map embeddings back to original positions
            for item, original_idx in zip(response.data, indices, strict=True):
                embeddings[original_idx] = list(item.embedding)
            embedded += len(batch)

        logger.info("batch_embedded", count=embedded, requested=len(texts))
        return embeddings


@lru_cache(maxsize=1)
def get_embedding_client() -> EmbeddingClient:
    """Get or create embedding client instance."""
    return EmbeddingClient()
