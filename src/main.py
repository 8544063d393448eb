"""Main entry point for the Notion migrator API."""

import uvicorn

from src.config import get_settings
from src.utils.logging import configure_logging, get_logger


def main() -> None:
    """Start the HTTP API."""
    configure_logging()
    logger = get_logger(__name__)

    settings = get_settings()
    logger.info("starting_notion_migrator", port=settings.port, environment=settings.environment)

    uvicorn.run(
        "src.api.app:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.environment == "development",
    )


if __name__ == "__main__":
    main()
