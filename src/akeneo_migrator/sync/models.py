"""Data models for synchronization operations."""

import threading
import time
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from akeneo_migrator.errors import SyncCancelledError
from akeneo_migrator.models.node import NodeKind


class SyncPhase(str, Enum):
    """Lifecycle of one incremental sync run."""

    IDLE = "idle"
    STREAMING_GROUPS = "streaming_groups"
    STREAMING_LEAVES = "streaming_leaves"
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    CANCELLED = "cancelled"


class SyncError(BaseModel):
    """A failure attributed to one node."""

    node_key: str | None = Field(
        default=None, description="Key of the failed node, None if it could not be identified"
    )
    message: str = Field(default=..., description="Human readable failure description")

    def __str__(self) -> str:
        if self.node_key is None:
            return self.message
        return f"{self.node_key}: {self.message}"


class HierarchyResult(BaseModel):
    """Outcome of copying one hierarchy."""

    root_key: str = Field(default=..., description="Key the copy was started from")
    root_kind: NodeKind | None = Field(
        default=None, description="Kind the root resolved to, None if it was not found"
    )
    groups_synced: int = Field(default=0, ge=0, description="Product models written")
    leaves_synced: int = Field(default=0, ge=0, description="Products written")
    errors: list[SyncError] = Field(default_factory=list, description="Per-node failures")
    cancelled: bool = Field(default=False, description="True if the copy stopped on cancellation")

    @property
    def total_synced(self) -> int:
        return self.groups_synced + self.leaves_synced

    @property
    def success(self) -> bool:
        return len(self.errors) == 0 and not self.cancelled


class SyncResult(BaseModel):
    """Aggregate report of an incremental synchronization run."""

    updated_since: str | None = Field(
        default=None, description="Change boundary the run was started with"
    )
    groups_synced: int = Field(default=0, ge=0, description="Product models written")
    leaves_synced: int = Field(default=0, ge=0, description="Products written")
    roots_synced: int = Field(default=0, ge=0, description="Distinct hierarchies copied")
    errors: list[SyncError] = Field(
        default_factory=list, description="Per-node failures, in the order they occurred"
    )
    warnings: list[str] = Field(
        default_factory=list, description="Non-fatal anomalies such as orphans or parent cycles"
    )
    phase: SyncPhase = Field(default=SyncPhase.IDLE, description="Lifecycle phase of the run")
    start_time: datetime | None = Field(default=None, description="Run start timestamp")
    end_time: datetime | None = Field(default=None, description="Run end timestamp")
    duration_seconds: float = Field(default=0.0, ge=0.0, description="Run duration in seconds")

    @property
    def total_synced(self) -> int:
        return self.groups_synced + self.leaves_synced

    @property
    def success(self) -> bool:
        """Check if the run completed without errors."""
        return len(self.errors) == 0

    def add_error(self, node_key: str | None, message: str) -> None:
        self.errors.append(SyncError(node_key=node_key, message=message))

    def merge(self, partial: HierarchyResult) -> None:
        """Fold the outcome of one hierarchy copy into the aggregate."""
        self.groups_synced += partial.groups_synced
        self.leaves_synced += partial.leaves_synced
        self.errors.extend(partial.errors)
        if partial.root_kind is not None:
            self.roots_synced += 1


class CancellationToken:
    """Cooperative cancellation signal with an optional deadline.

    The engine checks the token between nodes; a caller on another thread
    cancels with ``cancel()``.
    """

    def __init__(self, timeout_seconds: float | None = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout_seconds if timeout_seconds is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled:
            raise SyncCancelledError("sync cancelled")


class EntityType(str, Enum):
    """Catalog structure that can be copied on its own, by code."""

    FAMILY = "family"
    ATTRIBUTE = "attribute"
    CATEGORY = "category"
    REFERENCE_ENTITY = "reference_entity"


class EntitySyncResult(BaseModel):
    """Outcome of copying one family, attribute, category or reference entity.

    Children are family variants, attribute options or reference entity
    records, depending on ``entity_type``.
    """

    entity_type: EntityType = Field(default=..., description="Kind of entity copied")
    code: str = Field(default=..., description="Code the copy was started from")
    definition_synced: bool = Field(
        default=False, description="True once the entity itself was written"
    )
    attributes_synced: int = Field(
        default=0, ge=0, description="Reference entity attribute definitions written"
    )
    children_total: int = Field(default=0, ge=0, description="Children read from the source")
    children_synced: int = Field(default=0, ge=0, description="Children written")
    errors: list[SyncError] = Field(
        default_factory=list, description="Failures, in the order they occurred"
    )
    cancelled: bool = Field(default=False, description="True if the copy stopped on cancellation")
    duration_seconds: float = Field(default=0.0, ge=0.0, description="Copy duration in seconds")

    @property
    def success(self) -> bool:
        return self.definition_synced and len(self.errors) == 0 and not self.cancelled

    def add_error(self, node_key: str | None, message: str) -> None:
        self.errors.append(SyncError(node_key=node_key, message=message))
