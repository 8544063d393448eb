"""Error taxonomy shared by the migration and search pipeline."""


class NotionMigratorError(Exception):
    """Base class for all pipeline errors."""

    retryable = False

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(NotionMigratorError):
    """Missing or malformed caller input, raised before any I/O."""


# Content source


class SourceError(NotionMigratorError):
    """Error returned by the content provider."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(SourceError):
    """Requested page, block or database does not exist (or is not shared)."""


class UnauthorizedError(SourceError):
    """Credentials were rejected."""


class ForbiddenError(SourceError):
    """Credentials are valid but lack access to the resource."""


class RateLimitedError(SourceError):
    """Provider asked us to slow down."""

    retryable = True

    def __init__(
        self,
        message: str,
        status_code: int | None = 429,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, status_code)
        self.retry_after = retry_after


class TransientSourceError(SourceError):
    """Timeout, connection failure or 5xx from the provider."""

    retryable = True


# Embeddings


class EmbeddingError(NotionMigratorError):
    """Error from the embedding provider."""


class TransientEmbeddingError(EmbeddingError):
    """Timeout, rate limit or server error; safe to retry later."""

    retryable = True


class FatalEmbeddingError(EmbeddingError):
    """Invalid input or rejected credentials."""


# Storage


class StorageError(NotionMigratorError):
    """Error from the relational or vector store."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class StorageConstraintError(StorageError):
    """A row violated a database constraint."""


class StorageConnectionError(StorageError):
    """The store could not be reached."""

    retryable = True
