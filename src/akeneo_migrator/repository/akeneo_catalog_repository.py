"""Akeneo-backed repositories for families, attributes, categories and reference entities."""

from typing import Any, Iterator

import structlog

from akeneo_migrator.client.akeneo_client import AkeneoClient
from akeneo_migrator.models.node import DEFAULT_VOLATILE_FIELDS
from akeneo_migrator.repository.base import CatalogDestinationRepository, CatalogSourceRepository

log = structlog.stdlib.get_logger()

# Read-only metadata echoed back in record listings; the API rejects it on write
RECORD_METADATA_FIELDS = ("reference_entity_code",)


def strip_fields(payload: dict[str, Any], excluded_fields: tuple[str, ...]) -> dict[str, Any]:
    excluded = set(excluded_fields)
    return {name: value for name, value in payload.items() if name not in excluded}


def clean_record(record: dict[str, Any], excluded_fields: tuple[str, ...]) -> dict[str, Any]:
    """Prepare a reference entity record for an upsert.

    Drops the volatile fields, the read-only record metadata and every
    top-level null value.
    """
    cleaned = strip_fields(record, tuple(excluded_fields) + RECORD_METADATA_FIELDS)
    return {name: value for name, value in cleaned.items() if value is not None}


class AkeneoCatalogSource(CatalogSourceRepository):
    """Reads catalog structure from the source instance."""

    def __init__(self, client: AkeneoClient):
        self._client = client

    def find_family(self, code: str) -> dict[str, Any]:
        return self._client.get_family(code)

    def list_family_variants(self, family_code: str) -> list[dict[str, Any]]:
        return [item for page in self._client.iter_family_variants(family_code) for item in page]

    def find_attribute(self, code: str) -> dict[str, Any]:
        return self._client.get_attribute(code)

    def list_attribute_options(self, attribute_code: str) -> list[dict[str, Any]]:
        return [item for page in self._client.iter_attribute_options(attribute_code) for item in page]

    def find_category(self, code: str) -> dict[str, Any]:
        return self._client.get_category(code)

    def find_reference_entity(self, code: str) -> dict[str, Any]:
        return self._client.get_reference_entity(code)

    def list_reference_entity_attributes(self, entity_code: str) -> list[dict[str, Any]]:
        return self._client.get_reference_entity_attributes(entity_code)

    def iter_reference_entity_records(self, entity_code: str) -> Iterator[list[dict[str, Any]]]:
        return self._client.iter_reference_entity_records(entity_code)


class AkeneoCatalogDestination(CatalogDestinationRepository):
    """Upserts catalog structure into the destination instance."""

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

    def _payload(self, item: dict[str, Any]) -> dict[str, Any]:
        return strip_fields(item, self._volatile_fields)

    def save_family(self, code: str, family: dict[str, Any]) -> None:
        log.debug("saving_family", code=code)
        self._client.patch_family(code, self._payload(family))

    def save_family_variant(self, family_code: str, variant_code: str, variant: dict[str, Any]) -> None:
        log.debug("saving_family_variant", family_code=family_code, code=variant_code)
        self._client.patch_family_variant(family_code, variant_code, self._payload(variant))

    def save_attribute(self, code: str, attribute: dict[str, Any]) -> None:
        log.debug("saving_attribute", code=code)
        self._client.patch_attribute(code, self._payload(attribute))

    def save_attribute_option(self, attribute_code: str, option_code: str, option: dict[str, Any]) -> None:
        log.debug("saving_attribute_option", attribute_code=attribute_code, code=option_code)
        self._client.patch_attribute_option(attribute_code, option_code, self._payload(option))

    def save_category(self, code: str, category: dict[str, Any]) -> None:
        log.debug("saving_category", code=code)
        self._client.patch_category(code, self._payload(category))

    def save_reference_entity(self, code: str, entity: dict[str, Any]) -> None:
        log.debug("saving_reference_entity", code=code)
        self._client.patch_reference_entity(code, self._payload(entity))

    def save_reference_entity_attribute(
        self, entity_code: str, attribute_code: str, attribute: dict[str, Any]
    ) -> None:
        log.debug("saving_reference_entity_attribute", entity_code=entity_code, code=attribute_code)
        self._client.patch_reference_entity_attribute(entity_code, attribute_code, self._payload(attribute))

    def save_reference_entity_record(
        self, entity_code: str, record_code: str, record: dict[str, Any]
    ) -> None:
        payload = clean_record(record, self._volatile_fields)
        log.debug("saving_reference_entity_record", entity_code=entity_code, code=record_code, payload=payload)
        self._client.patch_reference_entity_record(entity_code, record_code, payload)
