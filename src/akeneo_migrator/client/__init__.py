"""HTTP client for the Akeneo REST API."""

from akeneo_migrator.client.akeneo_client import AkeneoClient

__all__ = ["AkeneoClient"]
