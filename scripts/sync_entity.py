#!/usr/bin/env python3
"""
Copy catalog structure between two Akeneo instances, one entity at a time.

- family: the family, then each of its variants
- attribute: the attribute, then its options for simple and multi select types
- category: the category
- reference-entity: the definition, its attributes, then every record

Usage:
    python scripts/sync_entity.py {family,attribute,category,reference-entity} CODE [CODE ...]
        [--config CONFIG_PATH] [--verbose]
"""

import argparse
import sys

import structlog

from akeneo_migrator.providers import get_entity_syncer
from akeneo_migrator.sync.models import EntitySyncResult, EntityType
from akeneo_migrator.utils.config_loader import ConfigLoader, ConfigurationError
from akeneo_migrator.utils.logging_config import configure_from_config, configure_logging

log = structlog.stdlib.get_logger()

ENTITY_CHOICES = {entity_type.value.replace("_", "-"): entity_type for entity_type in EntityType}

CHILD_LABELS = {
    EntityType.FAMILY: "Variants",
    EntityType.ATTRIBUTE: "Options",
    EntityType.CATEGORY: None,
    EntityType.REFERENCE_ENTITY: "Records",
}


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Copy families, attributes, categories or reference entities by code",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/sync_entity.py family shoes
  python scripts/sync_entity.py attribute color size --config config/production.yaml
  python scripts/sync_entity.py reference-entity brands --verbose
        """,
    )
    parser.add_argument("entity_type", choices=sorted(ENTITY_CHOICES), help="Kind of entity to copy")
    parser.add_argument("codes", nargs="+", help="Codes of the entities to copy")
    parser.add_argument("--config", type=str, help="Path to configuration file", default=None)
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def print_summary(result: EntitySyncResult) -> None:
    print("\n" + "=" * 60)
    print(f"{result.entity_type.value.replace('_', ' ').upper()}: {result.code}")
    print("=" * 60)
    status = "✓ SUCCESS" if result.success else ("✗ CANCELLED" if result.cancelled else "✗ FAILED")
    print(f"Status: {status}")
    print(f"Definition Synced: {'yes' if result.definition_synced else 'no'}")
    if result.entity_type is EntityType.REFERENCE_ENTITY:
        print(f"Attributes Synced: {result.attributes_synced}")
    label = CHILD_LABELS[result.entity_type]
    if label is not None:
        print(f"{label} Synced: {result.children_synced}/{result.children_total}")
    print(f"Duration: {result.duration_seconds:.2f} seconds")

    if result.errors:
        print(f"\nErrors ({len(result.errors)}):")
        for error in result.errors:
            print(f"  - {error}")


def main() -> int:
    args = parse_arguments()

    try:
        config = ConfigLoader().load_config(args.config)
    except ConfigurationError as e:
        configure_logging(log_level="INFO", json_logs=False)
        log.error("configuration_error", error=str(e))
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    configure_from_config(config.logging, verbose=args.verbose)
    ConfigLoader().validate_config(config)

    results = get_entity_syncer(config).sync_all(ENTITY_CHOICES[args.entity_type], args.codes)

    for result in results:
        print_summary(result)
    print("=" * 60)

    return 0 if all(result.success for result in results) else 1


if __name__ == "__main__":
    sys.exit(main())
