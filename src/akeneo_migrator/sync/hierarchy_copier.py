"""Copies one complete product hierarchy from the source to the destination."""

import structlog

from akeneo_migrator.errors import (
    MalformedDataError,
    NotFoundError,
    SyncCancelledError,
    TransportError,
    ValidationError,
)
from akeneo_migrator.models.node import Node, NodeKind
from akeneo_migrator.repository.base import DestinationRepository, SourceRepository
from akeneo_migrator.sync.models import CancellationToken, HierarchyResult, SyncError

log = structlog.stdlib.get_logger()


class HierarchyCopier:
    """Transfers a root and all of its descendants, parents before children.

    Two shapes are supported:

    - a product root (simple product) with products attached directly to it
    - a product model root with child product models, and variant products
      attached to the root model or to any of its child models

    Each write is isolated: a rejected node is recorded in the result and the
    copy continues with its next sibling.
    """

    def __init__(self, source: SourceRepository, destination: DestinationRepository):
        self._source = source
        self._destination = destination

    def copy_hierarchy(
        self, root_key: str, cancel_token: CancellationToken | None = None
    ) -> HierarchyResult:
        """
        Copy the hierarchy rooted at ``root_key``.

        Args:
            root_key: Key of a parentless product or product model
            cancel_token: Optional token checked before every write

        Returns:
            HierarchyResult with write counts and per-node errors. ``cancelled``
            is set when the token fired part-way through.
        """
        result = HierarchyResult(root_key=root_key)
        log.info("copying_hierarchy", root_key=root_key)

        try:
            root = self._probe_root(root_key, result)
            if root is None:
                return result

            result.root_kind = root.kind
            if root.kind is NodeKind.LEAF:
                self._copy_flat_tree(root, result, cancel_token)
            else:
                self._copy_model_tree(root, result, cancel_token)
        except SyncCancelledError:
            result.cancelled = True
            log.warning("hierarchy_copy_cancelled", root_key=root_key)

        log.info(
            "hierarchy_copied",
            root_key=root_key,
            root_kind=result.root_kind,
            groups_synced=result.groups_synced,
            leaves_synced=result.leaves_synced,
            errors=len(result.errors),
        )
        return result

    def _probe_root(self, root_key: str, result: HierarchyResult) -> Node | None:
        """Decide once whether ``root_key`` names a product or a product model."""
        root = self._find_root(root_key, result)
        if root is not None and not root.has_key:
            # Children are listed by the root's own key, so a keyless root cannot be copied
            self._record(result, root_key, "could not extract identifier")
            return None
        return root

    def _find_root(self, root_key: str, result: HierarchyResult) -> Node | None:
        try:
            return self._source.find_leaf(root_key)
        except NotFoundError:
            pass
        except TransportError as e:
            self._record(result, root_key, f"error fetching root: {e}")
            return None

        try:
            return self._source.find_group(root_key)
        except NotFoundError as e:
            self._record(result, root_key, f"'{root_key}' not found as product or product model: {e}")
        except TransportError as e:
            self._record(result, root_key, f"error fetching root: {e}")
        return None

    def _copy_flat_tree(
        self, root: Node, result: HierarchyResult, cancel_token: CancellationToken | None
    ) -> None:
        self._write(root, result, cancel_token)
        for leaf in self._list_children(root.key, NodeKind.LEAF, result):
            self._write(leaf, result, cancel_token)

    def _copy_model_tree(
        self, root: Node, result: HierarchyResult, cancel_token: CancellationToken | None
    ) -> None:
        self._write(root, result, cancel_token)

        # Variants can hang off the root model as well as off its sub-models
        parent_keys = [root.key]
        for group in self._list_children(root.key, NodeKind.GROUP, result):
            group_key = self._write(group, result, cancel_token)
            if group_key is not None:
                parent_keys.append(group_key)

        for parent_key in parent_keys:
            leaves = self._list_children(parent_key, NodeKind.LEAF, result)
            log.debug("variants_found", parent_key=parent_key, count=len(leaves))
            for leaf in leaves:
                self._write(leaf, result, cancel_token)

    def _list_children(self, parent_key: str, kind: NodeKind, result: HierarchyResult) -> list[Node]:
        try:
            if kind is NodeKind.GROUP:
                return self._source.list_groups_by_parent(parent_key)
            return self._source.list_leaves_by_parent(parent_key)
        except TransportError as e:
            self._record(result, parent_key, f"error fetching child {kind.value}s: {e}")
            return []

    def _write(
        self, node: Node, result: HierarchyResult, cancel_token: CancellationToken | None
    ) -> str | None:
        """
        Upsert one node and count it.

        Returns:
            The node's key once a write was attempted, None if the node has no key
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        try:
            key = node.key
        except MalformedDataError as e:
            self._record(result, None, str(e))
            return None

        try:
            if node.kind is NodeKind.GROUP:
                self._destination.save_group(key, node)
                result.groups_synced += 1
            else:
                self._destination.save_leaf(key, node)
                result.leaves_synced += 1
        except (ValidationError, TransportError) as e:
            self._record(result, key, str(e))
            return key

        log.debug("node_synced", key=key, kind=node.kind.value)
        return key

    def _record(self, result: HierarchyResult, node_key: str | None, message: str) -> None:
        log.warning("node_sync_failed", root_key=result.root_key, node_key=node_key, error=message)
        result.errors.append(SyncError(node_key=node_key, message=message))
