# FILE: recursive_search/scopes.py
"""
Scope resolution: which trees to search, and in what order.

The live share always comes first. Snapshots follow newest first, so the
most recently diverged history is searched before older copies.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from .cache import CacheStore
from .errors import CacheWriteError, NoSnapshotsError, ScopeNotFoundError
from .models import SearchScope, ShareScope
from .remote import ScopeCatalog

logger = logging.getLogger(__name__)


class ScopeResolver:
    """Turns a share name and a search breadth into an ordered scope list."""

    def __init__(
        self,
        catalog: ScopeCatalog,
        cache: Optional[CacheStore] = None,
        strict_cache_writes: bool = False,
    ):
        self.catalog = catalog
        self.cache = cache
        self.strict_cache_writes = strict_cache_writes

    def resolve(self, share_name: str, breadth: SearchScope) -> List[ShareScope]:
        """
        Ordered scopes to traverse.

        Raises:
            ScopeNotFoundError: no live (non-deleted) share with exactly this name
            NoSnapshotsError: snapshots only were requested and there are none
        """
        candidates = self.catalog.list_scopes(share_name)

        # The catalog may prefix-match; only exact names count
        exact = [
            entry.scope for entry in candidates
            if not entry.deleted and entry.scope.share_name == share_name
        ]
        live = [scope for scope in exact if not scope.is_snapshot]
        snapshots = sorted(
            (scope for scope in exact if scope.is_snapshot),
            key=lambda scope: scope.snapshot_time,
            reverse=True,
        )

        if not live:
            raise ScopeNotFoundError(share_name)
        if len(live) > 1:
            logger.warning(f"[scopes] {len(live)} live shares named '{share_name}', using the first")

        self._record_scopes([live[0], *snapshots])

        if breadth is SearchScope.FILE_SHARE_SNAPSHOTS and not snapshots:
            raise NoSnapshotsError(share_name)

        scopes: List[ShareScope] = []
        if breadth.includes_live:
            scopes.append(live[0])
        if breadth.includes_snapshots:
            scopes.extend(snapshots)

        logger.info(
            f"[scopes] Resolved {len(scopes)} scope(s) for '{share_name}' "
            f"(breadth={breadth.value}, snapshots available={len(snapshots)})"
        )
        return scopes

    def _record_scopes(self, scopes: List[ShareScope]) -> None:
        if self.cache is None:
            return
        try:
            self.cache.record_scopes(scopes)
        except CacheWriteError as e:
            if self.strict_cache_writes:
                raise
            logger.warning(f"[scopes] Continuing without caching scopes: {e.cause or e}")
