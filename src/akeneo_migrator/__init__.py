"""Incremental migration of product hierarchies between Akeneo PIM instances."""

__version__ = "0.1.0"
