# FILE: recursive_search/remote/base.py
"""
Interfaces to the remote storage service.

The search core only talks to these two seams; the Azure implementations
live in remote/azure.py and tests provide in-memory ones.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from ..models import DirectoryItem, ShareScope


@dataclass(frozen=True)
class CatalogEntry:
    """A scope as reported by the management plane, with its deletion flag."""
    scope: ShareScope
    deleted: bool = False


class ScopeCatalog(ABC):
    """Management-plane lookup of a share and its snapshots."""

    @abstractmethod
    def list_scopes(self, share_name: str) -> List[CatalogEntry]:
        """
        Scopes whose share name starts with share_name, including deleted ones.

        Implementations may return names that only share the prefix; callers
        filter down to exact matches.

        Raises:
            ScopeNotFoundError: if the containing account does not exist
            ScopeLookupError: on any other lookup failure
        """


class RemoteDirectoryAdapter(ABC):
    """Lists the immediate children of a directory within one scope."""

    @abstractmethod
    def list_directory(self, scope: ShareScope, path: str) -> List[DirectoryItem]:
        """
        Immediate children of path ('/'-rooted, trailing separator) in scope.

        Raises:
            RemoteListingError: on any transport or auth failure
        """
