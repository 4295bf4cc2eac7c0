"""Pydantic envelope for catalog tree members (products and product models)."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from akeneo_migrator.errors import MalformedDataError

DEFAULT_VOLATILE_FIELDS: tuple[str, ...] = ("_links", "created", "updated")

PARENT_FIELD = "parent"


class NodeKind(str, Enum):
    """Type of a catalog node.

    A group is a product model, a leaf is a product. Either can be the root
    of a hierarchy when it has no parent.
    """

    GROUP = "group"
    LEAF = "leaf"

    @property
    def identity_field(self) -> str:
        """Name of the attribute holding the node's key."""
        return "code" if self is NodeKind.GROUP else "identifier"


class Node(BaseModel):
    """A catalog node: a typed kind wrapping an open attribute payload.

    Only the identity and parent fields are inspected by the sync engine;
    every other attribute is opaque and copied verbatim.
    """

    kind: NodeKind = Field(default=..., description="Product model (group) or product (leaf)")
    attributes: dict[str, Any] = Field(
        default_factory=dict, description="Raw attribute mapping as returned by the API"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "kind": "leaf",
                "attributes": {
                    "identifier": "SHOE-42-RED",
                    "family": "shoes",
                    "parent": "SHOE-RED",
                    "enabled": True,
                    "values": {},
                },
            }
        }
    }

    @classmethod
    def group(cls, attributes: dict[str, Any]) -> "Node":
        return cls(kind=NodeKind.GROUP, attributes=attributes)

    @classmethod
    def leaf(cls, attributes: dict[str, Any]) -> "Node":
        return cls(kind=NodeKind.LEAF, attributes=attributes)

    @property
    def key(self) -> str:
        """Identity of the node.

        Raises:
            MalformedDataError: If the identity field is missing or not a non-empty string
        """
        value = self.attributes.get(self.kind.identity_field)
        if not isinstance(value, str) or not value:
            raise MalformedDataError("could not extract identifier")
        return value

    @property
    def has_key(self) -> bool:
        value = self.attributes.get(self.kind.identity_field)
        return isinstance(value, str) and bool(value)

    @property
    def parent(self) -> str | None:
        """Key of the parent node, or None when this node is a root."""
        value = self.attributes.get(PARENT_FIELD)
        if not isinstance(value, str) or value in ("", "null"):
            return None
        return value

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def to_payload(self, excluded_fields: tuple[str, ...] = DEFAULT_VOLATILE_FIELDS) -> dict[str, Any]:
        """Return the attributes with volatile fields removed, ready for an upsert."""
        excluded = set(excluded_fields)
        return {name: value for name, value in self.attributes.items() if name not in excluded}
