"""Application configuration using Pydantic settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App
    environment: str = Field(default="development", description="Deployment environment")
    log_level: str = Field(default="INFO", description="Root log level")
    port: int = Field(default=8080, description="HTTP port")

    # Notion
    notion_api_key: str = Field(..., description="Notion Integration Token")
    notion_database_ids: str = Field(default="", description="Comma-separated Notion database IDs")
    notion_max_depth: int = Field(default=10, description="Maximum block nesting depth to expand")
    notion_request_attempts: int = Field(
        default=1, description="Attempts per Notion request for retryable errors (1 = no retry)"
    )
    notion_timeout_seconds: float = Field(default=30.0, description="Notion HTTP timeout")

    # OpenAI (for embeddings)
    openai_api_key: str = Field(..., description="OpenAI API Key")
    embedding_model: str = Field(
        default="text-embedding-3-small", description="OpenAI embedding model"
    )
    embedding_dimensions: int = Field(default=1536, description="Embedding vector dimension")
    embedding_batch_size: int = Field(default=100, description="Texts per embedding request")
    embedding_max_tokens: int = Field(default=8000, description="Token limit per embedded text")

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_key: str = Field(..., description="Supabase service role key")
    storage_batch_size: int = Field(default=100, description="Rows per upsert request")
    text_search_config: str = Field(default="english", description="Postgres text search config")

    # Pinecone
    pinecone_api_key: str = Field(..., description="Pinecone API Key")
    pinecone_index_name: str = Field(default="notion-blocks", description="Pinecone index name")
    pinecone_namespace: str = Field(default="default", description="Pinecone namespace")

    # Anthropic (chat over migrated content)
    anthropic_api_key: str = Field(default="", description="Anthropic API Key")
    claude_model: str = Field(
        default="claude-sonnet-4-5-20250929", description="Claude model to use"
    )
    claude_max_tokens: int = Field(default=2048, description="Maximum tokens per answer")

    # Redis
    redis_url: str = Field(default="redis://localhost:6379", description="Redis connection URL")
    query_embedding_ttl_seconds: int = Field(
        default=3600, description="How long query embeddings stay cached"
    )

    # Migration settings
    migration_batch_size: int = Field(default=5, description="Pages per migration batch")
    migration_batch_pause_seconds: float = Field(
        default=1.0, description="Pause between migration batches"
    )

    # Search settings
    search_limit: int = Field(default=20, description="Results per search source")
    similarity_threshold: float = Field(default=0.7, description="Minimum similarity score")
    retrieval_top_k: int = Field(default=5, description="Blocks used as chat context")

    @property
    def notion_database_id_list(self) -> list[str]:
        """Parse comma-separated Notion database IDs."""
        if not self.notion_database_ids:
            return []
        return [db_id.strip() for db_id in self.notion_database_ids.split(",") if db_id.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
