"""Remote storage collaborators: interfaces and the Azure implementation."""

from .base import CatalogEntry, RemoteDirectoryAdapter, ScopeCatalog

__all__ = ["CatalogEntry", "RemoteDirectoryAdapter", "ScopeCatalog"]
