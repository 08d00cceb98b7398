# src/main.py - v1
"""CLI entry point: merge, top, submit, purge and stats commands.

Usage:
    commentrank merge
    commentrank top [-k K]
    commentrank submit <payload.json> [--scores-file reply.txt] [--no-merge]
    commentrank purge
    commentrank stats
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from commentrank.version import __version__

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 100


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="commentrank",
        description=f"commentrank v{__version__} - scored comment aggregation",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--batch-dir", type=Path, default=None,
        help="Directory of batch files (default: BATCH_DIR setting)",
    )
    parser.add_argument(
        "--snapshot-dir", type=Path, default=None,
        help="Directory of snapshot files (default: SNAPSHOT_DIR setting)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- merge ---
    p_merge = subparsers.add_parser(
        "merge", help="Merge all stored batches into a new snapshot",
    )
    p_merge.set_defaults(func=_cmd_merge)

    # --- top ---
    p_top = subparsers.add_parser(
        "top", help="Show the best comments from the latest snapshot",
    )
    p_top.add_argument(
        "-k", "--count", type=int, default=None,
        help="Number of comments to show (default: TOP_PREVIEW_COUNT setting)",
    )
    p_top.add_argument(
        "--json", action="store_true", dest="as_json",
        help="Print the items as JSON",
    )
    p_top.set_defaults(func=_cmd_top)

    # --- submit ---
    p_submit = subparsers.add_parser(
        "submit", help="Store a scored batch from a JSON file",
    )
    p_submit.add_argument("payload", type=Path, help="Submission JSON file")
    p_submit.add_argument(
        "--scores-file", type=Path, default=None,
        help="Raw scorer reply to use as the score map",
    )
    p_submit.add_argument(
        "--no-merge", action="store_true",
        help="Do not merge after storing the batch",
    )
    p_submit.set_defaults(func=_cmd_submit)

    # --- purge ---
    p_purge = subparsers.add_parser(
        "purge", help="Delete all batches and snapshots",
    )
    p_purge.set_defaults(func=_cmd_purge)

    # --- stats ---
    p_stats = subparsers.add_parser(
        "stats", help="Show stored batch and snapshot counts",
    )
    p_stats.set_defaults(func=_cmd_stats)

    return parser


def _make_aggregator(args: argparse.Namespace):
    """Build an Aggregator from settings plus CLI directory overrides."""
    from commentrank.api.facade import Aggregator
    from commentrank.config.settings import load_settings

    overrides: dict[str, object] = {"merge_on_submit": False}
    if args.batch_dir is not None:
        overrides["batch_dir"] = args.batch_dir
    if args.snapshot_dir is not None:
        overrides["snapshot_dir"] = args.snapshot_dir
    return Aggregator(load_settings(**overrides))


async def _cmd_merge(args: argparse.Namespace) -> int:
    """Run one merge and print the result."""
    aggregator = _make_aggregator(args)
    outcome = await aggregator.run_merge()

    if outcome.status == "empty":
        print("No scored comments found; no snapshot written.")
        return 0
    if outcome.status == "failed":
        print(f"Merge failed: {outcome.error}", file=sys.stderr)
        return 1

    snapshot = await aggregator.latest_snapshot()
    _print_merge_summary(outcome, snapshot, aggregator.settings.top_preview_count)
    return 0


async def _cmd_top(args: argparse.Namespace) -> int:
    """Print the first K items of the latest snapshot."""
    aggregator = _make_aggregator(args)
    k = args.count if args.count is not None else aggregator.settings.top_preview_count
    if k < 1:
        logger.error("Count must be >= 1, got %d", k)
        return 1

    snapshot = await aggregator.latest_snapshot()
    if snapshot is None:
        print("No snapshot available. Run 'commentrank merge' first.")
        return 1

    items = snapshot.top(k)
    if args.as_json:
        print(json.dumps(
            [i.model_dump(mode="json", by_alias=True) for i in items], indent=2,
        ))
    else:
        _print_items(items)
    return 0


async def _cmd_submit(args: argparse.Namespace) -> int:
    """Validate and store one batch from disk."""
    from commentrank.batch.intake import parse_score_payload

    payload_path: Path = args.payload
    if not payload_path.is_file():
        logger.error("File not found: %s", payload_path)
        return 1

    payload = json.loads(payload_path.read_text(encoding="utf-8"))
    if args.scores_file is not None:
        payload["scores"] = parse_score_payload(
            args.scores_file.read_text(encoding="utf-8")
        )

    aggregator = _make_aggregator(args)
    batch_id = await aggregator.submit(payload)
    print(f"Stored batch {batch_id}")

    if not args.no_merge:
        outcome = await aggregator.run_merge()
        print(f"Merge: {outcome.status}"
              + (f" ({outcome.snapshot_id})" if outcome.snapshot_id else ""))
    return 0


async def _cmd_purge(args: argparse.Namespace) -> int:
    """Clear both stores."""
    aggregator = _make_aggregator(args)
    result = await aggregator.purge()
    print(f"Removed {result.batches_removed} batch(es) "
          f"and {result.snapshots_removed} snapshot(s)")
    for store, error in result.errors.items():
        print(f"  {store}: {error}", file=sys.stderr)
    return 0 if result.ok else 1


async def _cmd_stats(args: argparse.Namespace) -> int:
    """Display store statistics."""
    aggregator = _make_aggregator(args)
    batch_ids = await aggregator.batch_store.list_ids()
    snapshot_ids = await aggregator.snapshot_store.list_ids()

    print("\nStore statistics:")
    print(f"  Batches:         {len(batch_ids)}")
    print(f"  Snapshots:       {len(snapshot_ids)}")
    if snapshot_ids:
        print(f"  Latest snapshot: {snapshot_ids[-1]}")
    return 0


def _print_merge_summary(outcome: object, snapshot: object, preview: int) -> None:
    """Print a human-readable summary of a merge run."""
    summary = outcome.summary
    print("\nMerge complete:")
    print(f"  Snapshot:        {outcome.snapshot_id}")
    print(f"  Total comments:  {summary.total_items}")
    print(f"  Batches merged:  {summary.processed_batches}")
    if summary.failed_batches:
        print(f"  Unreadable:      {summary.failed_batches}")
    print(f"  Unscored:        {summary.skipped_items}")
    print(f"  Duplicates:      {summary.duplicates_removed}")
    print(f"  Highest score:   {summary.score_range.highest}")
    print(f"  Lowest score:    {summary.score_range.lowest}")
    if snapshot is not None:
        print(f"\nTop {preview} comments:")
        _print_items(snapshot.top(preview))


def _print_items(items: list) -> None:
    for index, item in enumerate(items, start=1):
        text = item.content
        if len(text) > PREVIEW_CHARS:
            text = text[:PREVIEW_CHARS] + "..."
        print(f"{index}. Score: {item.final_score} | ID: {item.id}")
        print(f"   Comment: {text}")
        print(f"   Likes: {item.likes}, Replies: {item.replies}, "
              f"Time: {item.time_ago_days}d\n")


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from commentrank.logging.logger import setup_logging

    setup_logging(level="DEBUG" if verbose else "INFO", log_format="text")


if __name__ == "__main__":
    sys.exit(main())
