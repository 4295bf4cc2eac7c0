"""Synchronization engine for product hierarchies and catalog structure."""

from akeneo_migrator.sync.change_stream import ChangeFeed, ChangeStreamProcessor
from akeneo_migrator.sync.entity_sync import EntitySyncer
from akeneo_migrator.sync.hierarchy_copier import HierarchyCopier
from akeneo_migrator.sync.hierarchy_resolver import HierarchyResolver
from akeneo_migrator.sync.models import (
    CancellationToken,
    EntitySyncResult,
    EntityType,
    HierarchyResult,
    SyncError,
    SyncPhase,
    SyncResult,
)
from akeneo_migrator.sync.root_tracker import RootSyncSet
from akeneo_migrator.sync.sync_coordinator import SyncCoordinator, parse_timestamp

__all__ = [
    "CancellationToken",
    "ChangeFeed",
    "ChangeStreamProcessor",
    "EntitySyncResult",
    "EntitySyncer",
    "EntityType",
    "HierarchyCopier",
    "HierarchyResolver",
    "HierarchyResult",
    "RootSyncSet",
    "SyncCoordinator",
    "SyncError",
    "SyncPhase",
    "SyncResult",
    "parse_timestamp",
]
