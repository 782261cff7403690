#!/usr/bin/env python3
"""Command-line importer for Internet Archive movies.

Runs the same import pipeline as the API against the configured database.

Usage:
    # Import one item
    python scripts/import_vod.py --id night_of_the_living_dead

    # Import several items
    python scripts/import_vod.py --batch his_girl_friday charade_1963

    # Import the 20 most downloaded items of a collection
    python scripts/import_vod.py --collection film_noir --limit 20

    # Search and import the top results
    python scripts/import_vod.py --search "buster keaton" --limit 5

Run ``alembic upgrade head`` from ``backend/`` first so the tables exist.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Let the script run from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from app.core.logging import setup_logging  # noqa: E402
from app.services.outcomes import BatchResult, ImportOptions  # noqa: E402
from app.services.pipeline import VodPipeline  # noqa: E402


def print_result(result: BatchResult) -> None:
    """Print a batch result summary."""
    print(f"\n{'=' * 60}")
    print("Import Summary")
    print(f"{'=' * 60}")
    print(f"  Imported: {len(result.imported)}")
    print(f"  Skipped:  {len(result.skipped)}")
    print(f"  Failed:   {len(result.failed)}")

    for outcome in result.imported:
        print(f"  + {outcome.source_id}: {outcome.video.title} [{outcome.video.category}]")
    for outcome in result.skipped:
        print(f"  = {outcome.source_id}: {outcome.reason}")
    for outcome in result.failed:
        print(f"  ! {outcome.source_id}: {outcome.reason.value} {outcome.message}")
    print()


async def run(args: argparse.Namespace) -> int:
    """Run the requested import. Returns the process exit code."""
    options = ImportOptions(
        skip_existing=args.skip_existing,
        sync_subtitles=args.sync_subtitles,
    )
    pipeline = VodPipeline.from_settings()

    try:
        if args.collection:
            print(f"Importing up to {args.limit} items from collection {args.collection}...")
            job_id = await pipeline.jobs.import_from_collection(
                args.collection, args.limit, options
            )
            job = await pipeline.jobs.wait(job_id)

            print(f"\n{'=' * 60}")
            print(f"Job {job.id}: {job.status.value}")
            print(f"{'=' * 60}")
            print(f"  Processed: {job.items_processed}/{job.requested_limit}")
            print(f"  Imported:  {job.imported_count}")
            print(f"  Skipped:   {job.skipped_count}")
            print(f"  Failed:    {job.failed_count}")
            if job.error:
                print(f"  Error:     {job.error}")
            for failure in job.failures[:10]:
                print(f"  ! {failure.source_id}: {failure.reason.value} {failure.message}")
            return 0 if job.error is None else 1

        if args.search:
            items = await pipeline.source.search(args.search, limit=args.limit)
            if not items:
                print(f"No results for {args.search!r}")
                return 1
            print(f"Found {len(items)} results for {args.search!r}")
            source_ids = [item.source_id for item in items]
        elif args.id:
            source_ids = [args.id]
        else:
            source_ids = args.batch

        result = await pipeline.coordinator.import_batch(source_ids, options)
        print_result(result)
        return 0 if not result.failed else 1
    finally:
        await pipeline.close()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Import Internet Archive movies into the VOD catalog",
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--id", help="Archive identifier to import")
    mode.add_argument("--batch", nargs="+", metavar="ID", help="Archive identifiers to import")
    mode.add_argument("--collection", help="Collection key to import from")
    mode.add_argument("--search", help="Search terms; imports the top results")
    parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Items to import for --collection and --search (default: 20)",
    )
    parser.add_argument(
        "--skip-existing",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Skip items already in the catalog (default: on)",
    )
    parser.add_argument(
        "--sync-subtitles",
        action="store_true",
        help="Download advertised subtitle tracks",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the configured log level",
    )

    args = parser.parse_args()
    if args.limit < 1:
        parser.error("--limit must be at least 1")

    setup_logging(args.log_level)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
