#!/usr/bin/env python3
"""
Copy the complete hierarchy that contains one product or product model.

The key may name any member of the tree; the root is resolved first and the
whole tree is copied, root model first, then sub-models, then variants.

Usage:
    python scripts/sync_hierarchy.py KEY [--config CONFIG_PATH] [--verbose]
"""

import argparse
import sys

import structlog

from akeneo_migrator.providers import get_sync_coordinator
from akeneo_migrator.utils.config_loader import ConfigLoader, ConfigurationError
from akeneo_migrator.utils.logging_config import configure_from_config

log = structlog.stdlib.get_logger()


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Copy the product hierarchy containing a product or product model"
    )
    parser.add_argument("key", type=str, help="Product identifier or product model code")
    parser.add_argument("--config", type=str, help="Path to configuration file", default=None)
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    args = parser.parse_args()

    try:
        config = ConfigLoader().load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    configure_from_config(config.logging, verbose=args.verbose)

    result = get_sync_coordinator(config).sync_hierarchy(args.key)

    print(f"Product Models Synced: {result.groups_synced}")
    print(f"Products Synced: {result.leaves_synced}")
    for warning in result.warnings:
        print(f"Warning: {warning}")
    for error in result.errors:
        print(f"Error: {error}")
    print("✓ SUCCESS" if result.success else "✗ FAILED")

    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
