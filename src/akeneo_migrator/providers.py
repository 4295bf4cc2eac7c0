"""Factory functions wiring configuration to clients, repositories and the coordinator.

Scripts build everything through this module so that swapping an
implementation (for example an in-memory repository for a dry run) only
touches one place.

Default implementations:
- Client: AkeneoClient (requests, OAuth2 password grant)
- Repositories: AkeneoSourceRepository / AkeneoDestinationRepository for
  product hierarchies, AkeneoCatalogSource / AkeneoCatalogDestination for
  families, attributes, categories and reference entities
"""

import structlog

from akeneo_migrator.client.akeneo_client import AkeneoClient
from akeneo_migrator.models.config import AkeneoConnectionConfig, AppConfig
from akeneo_migrator.repository.akeneo_catalog_repository import (
    AkeneoCatalogDestination,
    AkeneoCatalogSource,
)
from akeneo_migrator.repository.akeneo_repository import (
    AkeneoDestinationRepository,
    AkeneoSourceRepository,
)
from akeneo_migrator.repository.base import (
    CatalogDestinationRepository,
    CatalogSourceRepository,
    DestinationRepository,
    SourceRepository,
)
from akeneo_migrator.sync.entity_sync import EntitySyncer
from akeneo_migrator.sync.sync_coordinator import SyncCoordinator

log = structlog.stdlib.get_logger()


def get_client(connection: AkeneoConnectionConfig) -> AkeneoClient:
    """Create a client for one Akeneo instance.

    Args:
        connection: Connection settings

    Returns:
        AkeneoClient instance (authenticates lazily on first request)
    """
    log.info("initializing_akeneo_client", host=connection.host)
    return AkeneoClient(
        host=connection.host,
        client_id=connection.client_id,
        secret=connection.secret,
        username=connection.username,
        password=connection.password,
        timeout=connection.timeout_seconds,
    )


def get_source_repository(config: AppConfig) -> SourceRepository:
    return AkeneoSourceRepository(get_client(config.source))


def get_destination_repository(config: AppConfig) -> DestinationRepository:
    return AkeneoDestinationRepository(
        get_client(config.destination),
        volatile_fields=tuple(config.sync.volatile_fields),
    )


def get_sync_coordinator(
    config: AppConfig,
    source: SourceRepository | None = None,
    destination: DestinationRepository | None = None,
) -> SyncCoordinator:
    """Build a coordinator from configuration.

    Args:
        config: Application configuration
        source: Optional source repository (built from config if None)
        destination: Optional destination repository (built from config if None)

    Returns:
        SyncCoordinator ready to run
    """
    return SyncCoordinator(
        source=source if source is not None else get_source_repository(config),
        destination=destination if destination is not None else get_destination_repository(config),
        batch_size=config.sync.batch_size,
        max_parent_depth=config.sync.max_parent_depth,
    )


def get_catalog_source_repository(config: AppConfig) -> CatalogSourceRepository:
    return AkeneoCatalogSource(get_client(config.source))


def get_catalog_destination_repository(config: AppConfig) -> CatalogDestinationRepository:
    return AkeneoCatalogDestination(
        get_client(config.destination),
        volatile_fields=tuple(config.sync.volatile_fields),
    )


def get_entity_syncer(
    config: AppConfig,
    source: CatalogSourceRepository | None = None,
    destination: CatalogDestinationRepository | None = None,
) -> EntitySyncer:
    """Build a syncer for families, attributes, categories and reference entities.

    Args:
        config: Application configuration
        source: Optional catalog source (built from config if None)
        destination: Optional catalog destination (built from config if None)
    """
    return EntitySyncer(
        source=source if source is not None else get_catalog_source_repository(config),
        destination=(
            destination if destination is not None else get_catalog_destination_repository(config)
        ),
    )
