#!/usr/bin/env python3
"""
Full location snapshot synchronization for a Shopify store.

Rewrites the ``custom.locations`` metafield of every variant from the current
inventory levels, in the foreground. Safe to re-run from scratch after an
interruption; designed to be run on a schedule (e.g. cron) or by hand.

Usage:
    python scripts/full_sync.py [--config CONFIG_PATH] [--json]
"""

import argparse
import asyncio
import json
import sys

import structlog

from metafield_sync.ingestion.shopify_client import ShopifyAdminClient
from metafield_sync.models.config import AppConfig
from metafield_sync.sync.models import ProgressState, SyncSummary
from metafield_sync.sync.orchestrator import SyncOrchestrator
from metafield_sync.sync.progress import ProgressTracker
from metafield_sync.utils.config_loader import ConfigLoader, ConfigurationError
from metafield_sync.utils.logging_config import configure_logging

log = structlog.stdlib.get_logger()


async def perform_sync(config: AppConfig) -> tuple[SyncSummary, ProgressState]:
    """
    Run one full synchronization to completion.

    Args:
        config: Loaded application configuration

    Returns:
        Tuple of (run summary, final progress state)
    """
    progress = ProgressTracker()
    async with ShopifyAdminClient(config.shopify, config.sync) as client:
        orchestrator = SyncOrchestrator(client, progress, config.sync)
        summary = await orchestrator.run()
    return summary, progress.snapshot()


def print_summary(summary: SyncSummary, state: ProgressState) -> None:
    print("\n" + "=" * 60)
    print("SYNCHRONIZATION SUMMARY")
    print("=" * 60)
    print(f"Status: {'✓ SUCCESS' if summary.success else '✗ FAILED'}")
    print(f"Variants Processed: {summary.processed_count}")
    print(f"Variants Estimated: {summary.total_count or 'unknown'}")
    print(f"Batches: {summary.batch_count}")
    print(f"Errors: {len(state.errors)}")
    print(f"Message: {summary.message}")
    if state.started_at and state.completed_at:
        duration = (state.completed_at - state.started_at).total_seconds()
        print(f"Duration: {duration:.2f} seconds")
    print("=" * 60)


def main() -> None:
    """Main entry point for the full sync script."""
    parser = argparse.ArgumentParser(
        description="Rewrite the location snapshot metafield of every variant"
    )
    parser.add_argument("--config", type=str, help="Path to configuration file", default=None)
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the summary and errors as JSON instead of a table",
    )
    args = parser.parse_args()

    try:
        config = ConfigLoader().load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    configure_logging(
        log_level=config.logging.log_level,
        json_logs=config.logging.json_logs,
        log_file=config.logging.log_file,
    )

    summary, state = asyncio.run(perform_sync(config))

    if args.json:
        print(
            json.dumps(
                {
                    "summary": summary.model_dump(mode="json"),
                    "errors": [error.model_dump(mode="json") for error in state.errors],
                },
                indent=2,
            )
        )
    else:
        print_summary(summary, state)

    sys.exit(0 if summary.success else 1)


if __name__ == "__main__":
    main()
