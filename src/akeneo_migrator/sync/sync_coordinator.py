"""Synchronization coordinator for incremental hierarchy migration."""

from datetime import datetime, timezone

import structlog

from akeneo_migrator.errors import (
    MalformedDataError,
    NotFoundError,
    SyncCancelledError,
    TransportError,
)
from akeneo_migrator.models.node import Node
from akeneo_migrator.repository.base import DestinationRepository, SourceRepository
from akeneo_migrator.sync.change_stream import ChangeFeed, ChangeStreamProcessor
from akeneo_migrator.sync.hierarchy_copier import HierarchyCopier
from akeneo_migrator.sync.hierarchy_resolver import DEFAULT_MAX_DEPTH, HierarchyResolver
from akeneo_migrator.sync.models import CancellationToken, SyncPhase, SyncResult
from akeneo_migrator.sync.root_tracker import RootSyncSet

log = structlog.stdlib.get_logger()

DEFAULT_BATCH_SIZE = 100

TIMESTAMP_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d")


def parse_timestamp(value: str) -> datetime:
    """
    Parse a change boundary given on the command line.

    Accepts ``YYYY-MM-DD``, ``YYYY-MM-DD HH:MM:SS`` and ISO-8601.

    Raises:
        ValueError: If the string matches none of the formats
    """
    text = value.strip()
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(
            f"invalid timestamp '{value}': expected YYYY-MM-DD, YYYY-MM-DD HH:MM:SS or ISO-8601"
        ) from None


class _SyncRun:
    """State owned by a single run: dedup set, resolver and running result."""

    def __init__(
        self,
        coordinator: "SyncCoordinator",
        result: SyncResult,
        cancel_token: CancellationToken | None,
    ):
        self.result = result
        self.roots = RootSyncSet()
        self.resolver = HierarchyResolver(coordinator._source, coordinator._max_parent_depth)
        self._copier = coordinator._copier
        self._cancel_token = cancel_token

    def check_cancelled(self) -> None:
        if self._cancel_token is not None:
            self._cancel_token.raise_if_cancelled()

    def visit_batch(self, batch: list[Node]) -> None:
        for node in batch:
            self.check_cancelled()
            self.visit_node(node)

    def visit_node(self, node: Node) -> None:
        try:
            key = node.key
        except MalformedDataError as e:
            log.warning("node_without_identifier", kind=node.kind.value)
            self.result.add_error(None, str(e))
            return

        try:
            root_key = self.resolver.resolve_root(node)
        except (MalformedDataError, TransportError) as e:
            log.warning("root_resolution_failed", key=key, error=str(e))
            self.result.add_error(key, f"error resolving root of {key}: {e}")
            return

        if not self.roots.should_sync(root_key):
            return

        log.info("syncing_hierarchy", root_key=root_key, triggered_by=key, kind=node.kind.value)
        self.copy(root_key)

    def copy(self, root_key: str) -> None:
        partial = self._copier.copy_hierarchy(root_key, self._cancel_token)
        self.result.merge(partial)
        if partial.cancelled:
            raise SyncCancelledError("sync cancelled")

    def finish(self, phase: SyncPhase) -> SyncResult:
        end_time = datetime.now(timezone.utc)
        self.result.phase = phase
        self.result.warnings.extend(self.resolver.anomalies)
        self.result.end_time = end_time
        if self.result.start_time is not None:
            self.result.duration_seconds = (end_time - self.result.start_time).total_seconds()
        return self.result


class SyncCoordinator:
    """Orchestrates incremental synchronization between two catalogs.

    For every node changed since a boundary (product models first, then
    products) the coordinator resolves the hierarchy root and copies each
    distinct root once per run. All per-run state is created fresh on every
    call, so re-running with the same boundary is safe: writes are upserts
    and no dedup state carries over.
    """

    def __init__(
        self,
        source: SourceRepository,
        destination: DestinationRepository,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_parent_depth: int = DEFAULT_MAX_DEPTH,
    ):
        """
        Initialize sync coordinator.

        Args:
            source: Repository to read from
            destination: Repository to write to
            batch_size: Nodes per change-feed batch
            max_parent_depth: Hop bound for root resolution

        Raises:
            ValueError: If batch_size or max_parent_depth is lower than 1
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        if max_parent_depth < 1:
            raise ValueError(f"max_parent_depth must be at least 1, got {max_parent_depth}")

        self._source = source
        self._destination = destination
        self._batch_size = batch_size
        self._max_parent_depth = max_parent_depth
        self._copier = HierarchyCopier(source, destination)
        self._change_stream = ChangeStreamProcessor(source)

        log.info(
            "sync_coordinator_initialized",
            batch_size=batch_size,
            max_parent_depth=max_parent_depth,
        )

    def synchronize_since(
        self, timestamp: str, cancel_token: CancellationToken | None = None
    ) -> SyncResult:
        """
        Entry point for callers holding the boundary as a string.

        Raises:
            ValueError: If ``timestamp`` cannot be parsed
            ChangeStreamError: If a change feed cannot be paged
        """
        return self.sync_since(parse_timestamp(timestamp), cancel_token)

    def sync_since(
        self, updated_since: datetime, cancel_token: CancellationToken | None = None
    ) -> SyncResult:
        """
        Copy every hierarchy touched since ``updated_since``.

        Per-node failures are recorded in the result and processing goes on.
        Cancellation stops between nodes and returns the partial result.

        Args:
            updated_since: Change boundary (inclusive)
            cancel_token: Optional cancellation signal

        Returns:
            SyncResult with counts, ordered per-node errors and warnings

        Raises:
            ChangeStreamError: If a change feed cannot be paged; fatal to the run
        """
        start_time = datetime.now(timezone.utc)
        result = SyncResult(
            updated_since=updated_since.strftime(TIMESTAMP_FORMATS[0]),
            start_time=start_time,
        )
        run = _SyncRun(self, result, cancel_token)

        log.info("sync_since_started", updated_since=result.updated_since)

        try:
            result.phase = SyncPhase.STREAMING_GROUPS
            self._change_stream.stream_since(
                ChangeFeed.GROUPS, updated_since, self._batch_size, run.visit_batch
            )

            result.phase = SyncPhase.STREAMING_LEAVES
            self._change_stream.stream_since(
                ChangeFeed.LEAVES, updated_since, self._batch_size, run.visit_batch
            )
        except SyncCancelledError as e:
            result.add_error(None, str(e))
            run.finish(SyncPhase.CANCELLED)
            log.warning(
                "sync_since_cancelled",
                updated_since=result.updated_since,
                roots_synced=result.roots_synced,
            )
            return result

        run.finish(SyncPhase.SUCCESS if result.success else SyncPhase.PARTIAL_FAILURE)

        log.info(
            "sync_since_completed",
            updated_since=result.updated_since,
            roots_synced=result.roots_synced,
            groups_synced=result.groups_synced,
            leaves_synced=result.leaves_synced,
            errors=len(result.errors),
            warnings=len(result.warnings),
            duration_seconds=result.duration_seconds,
            success=result.success,
        )
        return result

    def sync_hierarchy(
        self, key: str, cancel_token: CancellationToken | None = None
    ) -> SyncResult:
        """
        Copy the whole hierarchy that contains ``key``.

        ``key`` may name any product or product model of the tree; its root
        is resolved first.

        Args:
            key: Identifier of a product or code of a product model
            cancel_token: Optional cancellation signal

        Returns:
            SyncResult for the single hierarchy
        """
        result = SyncResult(start_time=datetime.now(timezone.utc))
        run = _SyncRun(self, result, cancel_token)

        log.info("sync_hierarchy_started", key=key)

        try:
            node = self._find_entry_node(key)
        except NotFoundError as e:
            result.add_error(key, f"'{key}' not found as product or product model: {e}")
            return run.finish(SyncPhase.PARTIAL_FAILURE)
        except TransportError as e:
            result.add_error(key, f"error fetching {key}: {e}")
            return run.finish(SyncPhase.PARTIAL_FAILURE)

        try:
            root_key = run.resolver.resolve_root(node)
        except (MalformedDataError, TransportError) as e:
            result.add_error(key, f"error resolving root of {key}: {e}")
            return run.finish(SyncPhase.PARTIAL_FAILURE)

        run.roots.mark_synced(root_key)
        try:
            run.copy(root_key)
        except SyncCancelledError as e:
            result.add_error(None, str(e))
            return run.finish(SyncPhase.CANCELLED)

        run.finish(SyncPhase.SUCCESS if result.success else SyncPhase.PARTIAL_FAILURE)
        log.info(
            "sync_hierarchy_completed",
            key=key,
            root_key=root_key,
            groups_synced=result.groups_synced,
            leaves_synced=result.leaves_synced,
            errors=len(result.errors),
        )
        return result

    def _find_entry_node(self, key: str) -> Node:
        try:
            return self._source.find_group(key)
        except NotFoundError:
            return self._source.find_leaf(key)
