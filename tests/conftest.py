# FILE: tests/conftest.py
"""
Pytest configuration for the recursive search test suite.

Provides in-memory stand-ins for the remote collaborators:
- FakeCatalog: management lookup over a fixed list of scopes
- FakeAdapter: directory listings from nested dicts (dict = directory,
  None = file), in insertion order
"""
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple
from uuid import NAMESPACE_URL, uuid5

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest

from recursive_search.config import Settings
from recursive_search.errors import RemoteListingError, ScopeLookupError
from recursive_search.models import DirectoryItem, ResourceType, ShareScope
from recursive_search.remote import CatalogEntry, RemoteDirectoryAdapter, ScopeCatalog

ACCOUNT_URL = "https://testaccount.file.core.windows.net"


def build_scope(share_name: str = "share", snapshot_time: Optional[datetime] = None) -> ShareScope:
    endpoint = f"{ACCOUNT_URL}/{share_name}"
    if snapshot_time is not None:
        endpoint += f"?sharesnapshot={snapshot_time.strftime('%Y-%m-%dT%H:%M:%S.0000000Z')}"
    return ShareScope(
        file_share_id=uuid5(NAMESPACE_URL, f"{ACCOUNT_URL}/{share_name}"),
        data_plane_endpoint=endpoint,
        resource_name="testaccount",
        resource_type=ResourceType.STORAGE_ACCOUNT,
        resource_create_time=datetime(2020, 1, 1, tzinfo=timezone.utc),
        share_name=share_name,
        is_snapshot=snapshot_time is not None,
        snapshot_time=snapshot_time,
    )


class FakeCatalog(ScopeCatalog):
    def __init__(self, entries: List[CatalogEntry], fail: bool = False):
        self.entries = entries
        self.fail = fail
        self.calls: List[str] = []

    def list_scopes(self, share_name: str) -> List[CatalogEntry]:
        self.calls.append(share_name)
        if self.fail:
            raise ScopeLookupError(share_name, cause=RuntimeError("management plane unavailable"))
        # Prefix match, like the real service filter
        return [e for e in self.entries if e.scope.share_name.startswith(share_name)]


class FakeAdapter(RemoteDirectoryAdapter):
    def __init__(self, trees: Dict[str, dict], failing_paths: Optional[Set[str]] = None):
        self.trees = trees
        self.failing_paths = failing_paths or set()
        self.calls: List[Tuple[str, str]] = []

    def list_directory(self, scope: ShareScope, path: str) -> List[DirectoryItem]:
        self.calls.append((scope.data_plane_endpoint, path))
        if path in self.failing_paths:
            raise RemoteListingError(scope.data_plane_endpoint, path, cause=OSError("connection reset"))

        node = self.trees[scope.data_plane_endpoint]
        for segment in [s for s in path.split("/") if s]:
            node = node[segment]
        return [DirectoryItem(name=name, is_directory=isinstance(child, dict)) for name, child in node.items()]

    def paths_listed(self, scope: ShareScope) -> List[str]:
        return [path for endpoint, path in self.calls if endpoint == scope.data_plane_endpoint]


@pytest.fixture
def make_scope():
    return build_scope


@pytest.fixture
def make_catalog():
    def _make(*scopes: ShareScope, deleted: Tuple[ShareScope, ...] = (), fail: bool = False) -> FakeCatalog:
        entries = [CatalogEntry(scope=s) for s in scopes]
        entries += [CatalogEntry(scope=s, deleted=True) for s in deleted]
        return FakeCatalog(entries, fail=fail)
    return _make


@pytest.fixture
def make_adapter():
    def _make(trees: Dict[ShareScope, dict], failing_paths: Optional[Set[str]] = None) -> FakeAdapter:
        return FakeAdapter({scope.data_plane_endpoint: tree for scope, tree in trees.items()}, failing_paths)
    return _make


@pytest.fixture
def cache_path(tmp_path):
    return tmp_path / "cache" / "cache.db"


@pytest.fixture
def settings(cache_path):
    return Settings(cache_path=cache_path)


@pytest.fixture
def live_scope():
    return build_scope()


@pytest.fixture
def snapshots():
    """Two snapshots of 'share', deliberately oldest first."""
    return [
        build_scope(snapshot_time=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)),
        build_scope(snapshot_time=datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)),
    ]
