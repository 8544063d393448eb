"""Request bodies for the HTTP API."""

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class BatchMigrationRequest(BaseModel):
    page_ids: list[str] = Field(..., min_length=1)
    batch_size: int | None = Field(default=None, ge=1)


class DatabaseMigrationRequest(BaseModel):
    batch_size: int | None = Field(default=None, ge=1)


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    use_embeddings: bool = False
    limit: int | None = Field(default=None, ge=1, le=100)
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    question: str = Field(..., min_length=1)
    history: list[ChatMessage] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_history_turns(self) -> "ChatRequest":
        # The question is sent as the next user turn
        for i, message in enumerate(self.history):
            expected = "user" if i % 2 == 0 else "assistant"
            if message.role != expected:
                raise ValueError(f"history[{i}] must be a {expected} turn")
        if self.history and self.history[-1].role != "assistant":
            raise ValueError("history must end with an assistant turn")
        return self


class EmbeddingsHealthRequest(BaseModel):
    test_text: str = "Health check test text"
    dry_run: bool = True
