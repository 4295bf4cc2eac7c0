"""Copies catalog structure: families, attributes, categories and reference entities."""

import time
from typing import Any, Callable, Iterable

import structlog

from akeneo_migrator.errors import (
    NotFoundError,
    SyncCancelledError,
    TransportError,
    ValidationError,
)
from akeneo_migrator.repository.base import CatalogDestinationRepository, CatalogSourceRepository
from akeneo_migrator.sync.models import CancellationToken, EntitySyncResult, EntityType

log = structlog.stdlib.get_logger()

# Only these attribute types carry options
SELECT_ATTRIBUTE_TYPES = ("pim_catalog_simpleselect", "pim_catalog_multiselect")

READ_ERRORS = (NotFoundError, TransportError)
WRITE_ERRORS = (ValidationError, TransportError)

ChildWriter = Callable[[str, str, dict[str, Any]], None]


def item_code(item: dict[str, Any]) -> str | None:
    code = item.get("code")
    if isinstance(code, str) and code:
        return code
    return None


class EntitySyncer:
    """Copies one catalog entity and its children from the source to the destination.

    The entity itself is written first; if that fails nothing else is
    attempted. Children (family variants, attribute options, reference
    entity records) are isolated from each other: a rejected child is
    recorded in the result and the copy continues with the next one.
    Reference entity attribute definitions are the exception. Records are
    validated against them, so the first attribute failure ends the copy
    before any record is written.
    """

    def __init__(self, source: CatalogSourceRepository, destination: CatalogDestinationRepository):
        self._source = source
        self._destination = destination
        self._copiers = {
            EntityType.FAMILY: self._copy_family,
            EntityType.ATTRIBUTE: self._copy_attribute,
            EntityType.CATEGORY: self._copy_category,
            EntityType.REFERENCE_ENTITY: self._copy_reference_entity,
        }

    def sync(
        self,
        entity_type: EntityType | str,
        code: str,
        cancel_token: CancellationToken | None = None,
    ) -> EntitySyncResult:
        """
        Copy the entity named ``code``.

        Args:
            entity_type: Kind of entity (``EntityType`` or its value)
            code: Entity code
            cancel_token: Optional token checked before every read of the
                definition and every write

        Returns:
            EntitySyncResult with counts and failures. Failures never raise.

        Raises:
            ValueError: If ``entity_type`` is not a known entity type
        """
        entity_type = EntityType(entity_type)
        result = EntitySyncResult(entity_type=entity_type, code=code)
        started = time.monotonic()
        log.info("entity_sync_started", entity_type=entity_type.value, code=code)

        try:
            self._copiers[entity_type](result, cancel_token)
        except SyncCancelledError:
            result.cancelled = True
            log.warning("entity_sync_cancelled", entity_type=entity_type.value, code=code)

        result.duration_seconds = time.monotonic() - started
        log.info(
            "entity_synced",
            entity_type=entity_type.value,
            code=code,
            definition_synced=result.definition_synced,
            attributes_synced=result.attributes_synced,
            children_synced=result.children_synced,
            children_total=result.children_total,
            errors=len(result.errors),
            duration_seconds=result.duration_seconds,
        )
        return result

    def sync_all(
        self,
        entity_type: EntityType | str,
        codes: Iterable[str],
        cancel_token: CancellationToken | None = None,
    ) -> list[EntitySyncResult]:
        """Copy several entities of one type in order, stopping on cancellation."""
        results = []
        for code in codes:
            result = self.sync(entity_type, code, cancel_token)
            results.append(result)
            if result.cancelled:
                break
        return results

    def sync_family(self, code: str, cancel_token: CancellationToken | None = None) -> EntitySyncResult:
        return self.sync(EntityType.FAMILY, code, cancel_token)

    def sync_attribute(self, code: str, cancel_token: CancellationToken | None = None) -> EntitySyncResult:
        return self.sync(EntityType.ATTRIBUTE, code, cancel_token)

    def sync_category(self, code: str, cancel_token: CancellationToken | None = None) -> EntitySyncResult:
        return self.sync(EntityType.CATEGORY, code, cancel_token)

    def sync_reference_entity(
        self, code: str, cancel_token: CancellationToken | None = None
    ) -> EntitySyncResult:
        return self.sync(EntityType.REFERENCE_ENTITY, code, cancel_token)

    def _copy_family(self, result: EntitySyncResult, cancel_token: CancellationToken | None) -> None:
        family = self._copy_definition(
            result, "family", self._source.find_family, self._destination.save_family, cancel_token
        )
        if family is None:
            return

        try:
            variants = self._source.list_family_variants(result.code)
        except READ_ERRORS as e:
            self._record(result, result.code, f"error fetching variants: {e}")
            return
        self._copy_children(
            result, "variant", variants, self._destination.save_family_variant, cancel_token
        )

    def _copy_attribute(self, result: EntitySyncResult, cancel_token: CancellationToken | None) -> None:
        attribute = self._copy_definition(
            result,
            "attribute",
            self._source.find_attribute,
            self._destination.save_attribute,
            cancel_token,
        )
        if attribute is None or attribute.get("type") not in SELECT_ATTRIBUTE_TYPES:
            return

        try:
            options = self._source.list_attribute_options(result.code)
        except READ_ERRORS as e:
            self._record(result, result.code, f"error fetching options: {e}")
            return
        self._copy_children(
            result, "option", options, self._destination.save_attribute_option, cancel_token
        )

    def _copy_category(self, result: EntitySyncResult, cancel_token: CancellationToken | None) -> None:
        self._copy_definition(
            result, "category", self._source.find_category, self._destination.save_category, cancel_token
        )

    def _copy_reference_entity(
        self, result: EntitySyncResult, cancel_token: CancellationToken | None
    ) -> None:
        entity = self._copy_definition(
            result,
            "reference entity",
            self._source.find_reference_entity,
            self._destination.save_reference_entity,
            cancel_token,
        )
        if entity is None:
            return

        code = result.code
        try:
            attributes = self._source.list_reference_entity_attributes(code)
        except READ_ERRORS as e:
            self._record(result, code, f"error fetching attributes from source: {e}")
            return

        for attribute in attributes:
            self._check_cancelled(cancel_token)
            attribute_code = item_code(attribute)
            if attribute_code is None:
                self._record(result, None, "could not extract attribute code")
                return
            try:
                self._destination.save_reference_entity_attribute(code, attribute_code, attribute)
            except WRITE_ERRORS as e:
                self._record(result, attribute_code, f"error saving attribute {attribute_code}: {e}")
                return
            result.attributes_synced += 1

        try:
            for page in self._source.iter_reference_entity_records(code):
                self._copy_children(
                    result, "record", page, self._destination.save_reference_entity_record, cancel_token
                )
        except READ_ERRORS as e:
            self._record(result, code, f"error fetching records from source: {e}")

    def _copy_definition(
        self,
        result: EntitySyncResult,
        label: str,
        find: Callable[[str], dict[str, Any]],
        save: Callable[[str, dict[str, Any]], None],
        cancel_token: CancellationToken | None,
    ) -> dict[str, Any] | None:
        """Read the entity from the source and write it; None if either step failed."""
        code = result.code
        self._check_cancelled(cancel_token)
        try:
            item = find(code)
        except READ_ERRORS as e:
            self._record(result, code, f"error fetching {label} from source: {e}")
            return None

        self._check_cancelled(cancel_token)
        try:
            save(code, item)
        except WRITE_ERRORS as e:
            self._record(result, code, f"error saving {label} to destination: {e}")
            return None

        result.definition_synced = True
        return item

    def _copy_children(
        self,
        result: EntitySyncResult,
        label: str,
        items: list[dict[str, Any]],
        save: ChildWriter,
        cancel_token: CancellationToken | None,
    ) -> None:
        for item in items:
            result.children_total += 1
            self._check_cancelled(cancel_token)

            code = item_code(item)
            if code is None:
                self._record(result, None, f"could not extract {label} code")
                continue

            try:
                save(result.code, code, item)
            except WRITE_ERRORS as e:
                self._record(result, code, str(e))
                continue

            result.children_synced += 1
            log.debug(
                "entity_child_synced",
                entity_type=result.entity_type.value,
                parent=result.code,
                code=code,
            )

    def _check_cancelled(self, cancel_token: CancellationToken | None) -> None:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

    def _record(self, result: EntitySyncResult, node_key: str | None, message: str) -> None:
        log.warning(
            "entity_sync_failed",
            entity_type=result.entity_type.value,
            code=result.code,
            node_key=node_key,
            error=message,
        )
        result.add_error(node_key, message)
