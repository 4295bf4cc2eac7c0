#!/usr/bin/env python3
"""
Incremental synchronization between two Akeneo instances.

Every product model and product updated since the given boundary is resolved
to the root of its hierarchy, and each distinct hierarchy is copied once from
the source to the destination.

Designed to be run by hand or on a schedule (cron, CI job, Airflow).

Usage:
    python scripts/sync_since.py "2024-01-15 00:00:00" [--config CONFIG_PATH] [--batch-size N]
"""

import argparse
import sys

import structlog
from pydantic import ValidationError as PydanticValidationError

from akeneo_migrator.errors import ChangeStreamError, TransportError
from akeneo_migrator.providers import get_sync_coordinator
from akeneo_migrator.sync.models import SyncResult
from akeneo_migrator.sync.sync_coordinator import parse_timestamp
from akeneo_migrator.utils.config_loader import ConfigLoader, ConfigurationError
from akeneo_migrator.utils.logging_config import configure_from_config, configure_logging

log = structlog.stdlib.get_logger()


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Sync every product hierarchy updated since a date",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/sync_since.py 2024-01-15
  python scripts/sync_since.py "2024-01-15 08:30:00" --config config/production.yaml
  python scripts/sync_since.py 2024-01-15T08:30:00Z --batch-size 50 --verbose
        """,
    )
    parser.add_argument(
        "updated_since",
        type=str,
        help="Change boundary: YYYY-MM-DD, 'YYYY-MM-DD HH:MM:SS' or ISO-8601",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        help="Override sync.batch_size (1-100)",
        default=None,
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging, including the payload of every write",
    )
    return parser.parse_args()


def print_summary(result: SyncResult) -> None:
    print("\n" + "=" * 60)
    print("SYNCHRONIZATION SUMMARY")
    print("=" * 60)
    print(f"Status: {'✓ SUCCESS' if result.success else '✗ ' + result.phase.value.upper()}")
    print(f"Updated Since: {result.updated_since}")
    print(f"Hierarchies: {result.roots_synced}")
    print(f"Product Models Synced: {result.groups_synced}")
    print(f"Products Synced: {result.leaves_synced}")
    print(f"Total Synced: {result.total_synced}")
    print(f"Duration: {result.duration_seconds:.2f} seconds")

    if result.warnings:
        print(f"\nWarnings ({len(result.warnings)}):")
        for warning in result.warnings:
            print(f"  - {warning}")

    if result.errors:
        print(f"\nErrors ({len(result.errors)}):")
        for error in result.errors:
            print(f"  - {error}")

    print("=" * 60)


def main() -> int:
    args = parse_arguments()

    try:
        updated_since = parse_timestamp(args.updated_since)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        config = ConfigLoader().load_config(args.config)
    except ConfigurationError as e:
        configure_logging(log_level="INFO", json_logs=False)
        log.error("configuration_error", error=str(e))
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if args.batch_size is not None:
        try:
            config = config.with_sync_overrides(batch_size=args.batch_size)
        except PydanticValidationError as e:
            message = e.errors()[0]["msg"]
            print(f"Error: invalid --batch-size {args.batch_size}: {message}", file=sys.stderr)
            return 2

    configure_from_config(config.logging, verbose=args.verbose)
    ConfigLoader().validate_config(config)

    try:
        coordinator = get_sync_coordinator(config)
        result = coordinator.sync_since(updated_since)
    except (ChangeStreamError, TransportError, ValueError) as e:
        log.error("sync_since_failed", updated_since=args.updated_since, error=str(e))
        print(f"Synchronization failed: {e}", file=sys.stderr)
        return 1

    print_summary(result)
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
