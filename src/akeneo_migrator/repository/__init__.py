"""Source and destination repositories for catalog nodes and catalog structure."""

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

__all__ = [
    "SourceRepository",
    "DestinationRepository",
    "CatalogSourceRepository",
    "CatalogDestinationRepository",
    "AkeneoSourceRepository",
    "AkeneoDestinationRepository",
    "AkeneoCatalogSource",
    "AkeneoCatalogDestination",
]
