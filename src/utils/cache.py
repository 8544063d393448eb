"""Redis cache for query embeddings."""

import hashlib
import json
import re

import redis

from src.config import get_settings
from src.utils.logging import get_logger

logger = get_logger(__name__)

KEY_PREFIX = "query_embedding"

# Lazy redis client initialization
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Get or create Redis client."""
    global _redis_client
    if _redis_client is None:
        settings = get_settings()
        _redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client


def reset_redis_client() -> None:
    """Drop the cached client. Used for testing."""
    global _redis_client
    _redis_client = None


def normalize_query(text: str) -> str:
    """Case- and whitespace-insensitive form of a query."""
    return re.sub(r"\s+", " ", text).strip().lower()


class EmbeddingCache:
    """
    Query vectors stored in Redis.

    Keys include the embedding model and dimension, so changing either
    never serves a vector of the wrong shape. Redis being unavailable is
    treated as a miss.
    """

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self.settings = get_settings()
        self.ttl_seconds = ttl_seconds or self.settings.query_embedding_ttl_seconds

    def key_for(self, text: str) -> str:
        digest = hashlib.sha256(normalize_query(text).encode()).hexdigest()[:16]
        model = self.settings.embedding_model
        return f"{KEY_PREFIX}:{model}:{self.settings.embedding_dimensions}:{digest}"

    def get(self, text: str) -> list[float] | None:
        key = self.key_for(text)
        try:
            cached_value = get_redis_client().get(key)
        except redis.RedisError as e:
            logger.warning("cache_read_error", error=str(e), key=key)
            return None

        if cached_value is None:
            return None

        try:
            vector = json.loads(cached_value)
        except ValueError:
            logger.warning("cache_value_invalid", key=key)
            return None

        if len(vector) != self.settings.embedding_dimensions:
            logger.warning("cache_value_wrong_dimension", key=key, dimension=len(vector))
            return None

        logger.debug("cache_hit", key=key)
        return vector

    def set(self, text: str, vector: list[float]) -> None:
        key = self.key_for(text)
        try:
            get_redis_client().setex(key, self.ttl_seconds, json.dumps(vector))
            logger.debug("cache_set", key=key, ttl=self.ttl_seconds)
        except redis.RedisError as e:
            logger.warning("cache_write_error", error=str(e), key=key)
