"""Data models for the Akeneo migrator."""

from akeneo_migrator.models.config import (
    AkeneoConnectionConfig,
    AppConfig,
    LoggingConfig,
    SyncConfig,
)
from akeneo_migrator.models.node import DEFAULT_VOLATILE_FIELDS, Node, NodeKind

__all__ = [
    "Node",
    "NodeKind",
    "DEFAULT_VOLATILE_FIELDS",
    "AppConfig",
    "AkeneoConnectionConfig",
    "LoggingConfig",
    "SyncConfig",
]
