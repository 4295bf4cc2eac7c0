"""Akeneo-backed implementations of the source and destination repositories."""

from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from akeneo_migrator.client.akeneo_client import AkeneoClient
from akeneo_migrator.models.node import DEFAULT_VOLATILE_FIELDS, Node
from akeneo_migrator.repository.base import BatchCallback, DestinationRepository, SourceRepository

log = structlog.stdlib.get_logger()

AKENEO_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def parent_filter(parent_key: str) -> dict[str, Any]:
    return {"parent": [{"operator": "IN", "value": [parent_key]}]}


def updated_since_filter(since: datetime) -> dict[str, Any]:
    """Build an "updated at or after ``since``" filter.

    The API only offers a strict ``>`` on second-resolution timestamps, so the
    boundary is moved back by one second.
    """
    if since.tzinfo is not None:
        since = since.astimezone(timezone.utc).replace(tzinfo=None)
    boundary = since.replace(microsecond=0) - timedelta(seconds=1)
    return {"updated": [{"operator": ">", "value": boundary.strftime(AKENEO_DATETIME_FORMAT)}]}


class AkeneoSourceRepository(SourceRepository):
    """Reads products and product models from the source instance."""

    def __init__(self, client: AkeneoClient):
        self._client = client

    def find_leaf(self, key: str) -> Node:
        return Node.leaf(self._client.get_product(key))

    def find_group(self, key: str) -> Node:
        return Node.group(self._client.get_product_model(key))

    def list_leaves_by_parent(self, parent_key: str) -> list[Node]:
        return [
            Node.leaf(item)
            for page in self._client.iter_products(parent_filter(parent_key))
            for item in page
        ]

    def list_groups_by_parent(self, parent_key: str) -> list[Node]:
        return [
            Node.group(item)
            for page in self._client.iter_product_models(parent_filter(parent_key))
            for item in page
        ]

    def stream_changed_groups(
        self, since: datetime, batch_size: int, callback: BatchCallback
    ) -> None:
        for page in self._client.iter_product_models(updated_since_filter(since), batch_size):
            callback([Node.group(item) for item in page])

    def stream_changed_leaves(
        self, since: datetime, batch_size: int, callback: BatchCallback
    ) -> None:
        for page in self._client.iter_products(updated_since_filter(since), batch_size):
            callback([Node.leaf(item) for item in page])


class AkeneoDestinationRepository(DestinationRepository):
    """Upserts products and product models into the destination instance."""

    def __init__(
        self,
        client: AkeneoClient,
        volatile_fields: tuple[str, ...] = DEFAULT_VOLATILE_FIELDS,
    ):
        """
        Args:
            client: Client for the destination instance
            volatile_fields: Attributes stripped from every payload before it is sent
        """
        self._client = client
        self._volatile_fields = tuple(volatile_fields)

    def save_leaf(self, key: str, node: Node) -> None:
        payload = node.to_payload(self._volatile_fields)
        log.debug("saving_product", identifier=key, payload=payload)
        self._client.patch_product(key, payload)

    def save_group(self, key: str, node: Node) -> None:
        payload = node.to_payload(self._volatile_fields)
        log.debug("saving_product_model", code=key, payload=payload)
        self._client.patch_product_model(key, payload)
