"""Root resolution by walking a node's parent chain."""

import structlog

from akeneo_migrator.errors import NotFoundError
from akeneo_migrator.models.node import Node
from akeneo_migrator.repository.base import SourceRepository

log = structlog.stdlib.get_logger()

DEFAULT_MAX_DEPTH = 50


class HierarchyResolver:
    """Finds the root of the hierarchy a node belongs to.

    The walk is an explicit loop bounded by ``max_depth`` hops and guarded by
    a visited set, so malformed cyclic data ends the walk instead of looping.
    Orphans, cycles and over-long chains are not errors: the walk stops at the
    last node it could reach, logs a warning and records an anomaly.
    """

    def __init__(self, source: SourceRepository, max_depth: int = DEFAULT_MAX_DEPTH):
        """
        Args:
            source: Repository used to look up parents
            max_depth: Maximum number of parent hops before the walk is aborted

        Raises:
            ValueError: If max_depth is lower than 1
        """
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")
        self._source = source
        self._max_depth = max_depth
        self.anomalies: list[str] = []

    def resolve_root(self, node: Node) -> str:
        """
        Return the key of the ancestor-most node reachable from ``node``.

        Args:
            node: Node to start from

        Returns:
            Key of the root (``node.key`` itself when it has no parent)

        Raises:
            MalformedDataError: If a node on the chain has no identity field
            TransportError: If a parent lookup fails for reasons other than not-found
        """
        current = node
        visited: set[str] = {current.key}
        hops = 0

        while True:
            parent_key = current.parent
            if parent_key is None:
                return current.key

            if hops >= self._max_depth:
                self._record_anomaly(
                    "parent_chain_too_long",
                    f"parent chain of '{node.key}' exceeds {self._max_depth} hops, "
                    f"treating '{current.key}' as root",
                    node_key=node.key,
                    root_key=current.key,
                )
                return current.key

            if parent_key in visited:
                self._record_anomaly(
                    "parent_cycle_detected",
                    f"parent cycle through '{parent_key}' while resolving '{node.key}', "
                    f"treating '{current.key}' as root",
                    node_key=node.key,
                    root_key=current.key,
                )
                return current.key

            parent = self._find_parent(parent_key)
            if parent is None:
                self._record_anomaly(
                    "orphaned_node",
                    f"parent '{parent_key}' of '{current.key}' not found, "
                    f"treating '{current.key}' as root",
                    node_key=node.key,
                    root_key=current.key,
                )
                return current.key

            visited.add(parent.key)
            current = parent
            hops += 1

    def _find_parent(self, parent_key: str) -> Node | None:
        # A bare key does not say whether it names a product model or a product
        try:
            return self._source.find_group(parent_key)
        except NotFoundError:
            pass
        try:
            return self._source.find_leaf(parent_key)
        except NotFoundError:
            return None

    def _record_anomaly(self, event: str, message: str, **context: str) -> None:
        log.warning(event, **context)
        self.anomalies.append(message)
