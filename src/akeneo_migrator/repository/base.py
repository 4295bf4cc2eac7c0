"""Repository interfaces consumed by the sync engine."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Iterator

from akeneo_migrator.models.node import Node

BatchCallback = Callable[[list[Node]], None]


class SourceRepository(ABC):
    """Read-only view of the catalog being migrated from.

    Implementations raise NotFoundError for missing nodes and TransportError
    for network or authentication failures.
    """

    @abstractmethod
    def find_leaf(self, key: str) -> Node:
        """Fetch a product by identifier.

        Raises:
            NotFoundError: If no product has this identifier
        """

    @abstractmethod
    def find_group(self, key: str) -> Node:
        """Fetch a product model by code.

        Raises:
            NotFoundError: If no product model has this code
        """

    @abstractmethod
    def list_leaves_by_parent(self, parent_key: str) -> list[Node]:
        """Return every product whose parent is ``parent_key``."""

    @abstractmethod
    def list_groups_by_parent(self, parent_key: str) -> list[Node]:
        """Return every product model whose parent is ``parent_key``."""

    @abstractmethod
    def stream_changed_groups(
        self, since: datetime, batch_size: int, callback: BatchCallback
    ) -> None:
        """Call ``callback`` with successive pages of product models updated at or after ``since``.

        Exceptions raised by ``callback`` propagate and stop the stream.
        """

    @abstractmethod
    def stream_changed_leaves(
        self, since: datetime, batch_size: int, callback: BatchCallback
    ) -> None:
        """Call ``callback`` with successive pages of products updated at or after ``since``.

        Exceptions raised by ``callback`` propagate and stop the stream.
        """


class DestinationRepository(ABC):
    """Write side of the migration. Both operations are upserts."""

    @abstractmethod
    def save_leaf(self, key: str, node: Node) -> None:
        """Create or update a product.

        Raises:
            ValidationError: If the destination rejects the payload
            TransportError: On network or authentication failures
        """

    @abstractmethod
    def save_group(self, key: str, node: Node) -> None:
        """Create or update a product model.

        Raises:
            ValidationError: If the destination rejects the payload
            TransportError: On network or authentication failures
        """


class CatalogSourceRepository(ABC):
    """Read side for the catalog structure: families, attributes, categories
    and reference entities.

    Items are raw API payloads keyed by ``code``. Implementations raise
    NotFoundError for missing entities and TransportError for network or
    authentication failures.
    """

    @abstractmethod
    def find_family(self, code: str) -> dict[str, Any]:
        """Fetch a family by code."""

    @abstractmethod
    def list_family_variants(self, family_code: str) -> list[dict[str, Any]]:
        """Return every variant of a family."""

    @abstractmethod
    def find_attribute(self, code: str) -> dict[str, Any]:
        """Fetch an attribute by code."""

    @abstractmethod
    def list_attribute_options(self, attribute_code: str) -> list[dict[str, Any]]:
        """Return every option of a select attribute."""

    @abstractmethod
    def find_category(self, code: str) -> dict[str, Any]:
        """Fetch a category by code."""

    @abstractmethod
    def find_reference_entity(self, code: str) -> dict[str, Any]:
        """Fetch a reference entity definition by code."""

    @abstractmethod
    def list_reference_entity_attributes(self, entity_code: str) -> list[dict[str, Any]]:
        """Return the attribute definitions of a reference entity."""

    @abstractmethod
    def iter_reference_entity_records(self, entity_code: str) -> Iterator[list[dict[str, Any]]]:
        """Yield the records of a reference entity one page at a time."""


class CatalogDestinationRepository(ABC):
    """Write side for the catalog structure. Every operation is an upsert.

    Each method raises ValidationError if the destination rejects the
    payload and TransportError on network or authentication failures.
    """

    @abstractmethod
    def save_family(self, code: str, family: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def save_family_variant(self, family_code: str, variant_code: str, variant: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def save_attribute(self, code: str, attribute: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def save_attribute_option(self, attribute_code: str, option_code: str, option: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def save_category(self, code: str, category: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def save_reference_entity(self, code: str, entity: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def save_reference_entity_attribute(
        self, entity_code: str, attribute_code: str, attribute: dict[str, Any]
    ) -> None:
        pass

    @abstractmethod
    def save_reference_entity_record(
        self, entity_code: str, record_code: str, record: dict[str, Any]
    ) -> None:
        pass
