#!/usr/bin/env python3
"""Migrate Notion pages from the command line.

Pass page ids to migrate specific pages; with no arguments every page of
the configured NOTION_DATABASE_IDS is migrated.
"""

import argparse
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.sync.migration import get_orchestrator
from src.utils.logging import configure_logging, get_logger


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("page_ids", nargs="*", help="Notion page ids to migrate")
    parser.add_argument("--batch-size", type=int, default=None, help="pages per group")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run a migration and print a summary."""
    configure_logging()
    logger = get_logger(__name__)
    args = parse_args(argv)

    logger.info("starting_migration", pages=len(args.page_ids))
    orchestrator = get_orchestrator()

    try:
        if args.page_ids:
            batches = {"pages": orchestrator.migrate_multiple_pages(args.page_ids, args.batch_size)}
        else:
            batches = orchestrator.migrate_configured_databases(args.batch_size)
    except Exception as e:
        logger.error("migration_failed", error=str(e))
        print(f"\nError: {e}")
        return 1

    failed = 0
    print("\nMigration Results:")
    print("-" * 40)
    for source, batch in batches.items():
        if batch.error:
            print(f"  {source}: FAILED ({batch.error})")
            failed += 1
            continue
        for result in batch.results:
            status = "ok" if result.success else f"FAILED ({result.error})"
            print(f"  {result.page_id}: {result.blocks_processed} blocks, {status}")
        failed += batch.summary.failed
    print("-" * 40)
    total = sum(batch.summary.total for batch in batches.values())
    print(f"  Total: {total} pages, {failed} failed")

    logger.info("migration_completed", total=total, failed=failed)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
