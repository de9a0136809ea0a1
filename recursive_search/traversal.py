# FILE: recursive_search/traversal.py
"""
Breadth-first traversal of one scope.

Each directory listing is written to the cache before it is matched or
expanded, so an interrupted run still leaves a consistent partial cache.

Match termination is explicit state (TraversalState) rather than nested
breaks, so the policy can be tested on its own:

    End       -> stop this listing, drop the queue, stop the whole run
    ScopeEnd  -> finish this scope, then stop the run
    Continue  -> no change
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .cache import CacheStore
from .errors import CacheWriteError
from .models import (
    ROOT_PATH,
    DirectoryItem,
    MatchBehavior,
    MatchRecord,
    ShareScope,
    as_directory_path,
    join_path,
)
from .remote import RemoteDirectoryAdapter

logger = logging.getLogger(__name__)


@dataclass
class TraversalState:
    """How much more work the search should do."""
    continue_scope: bool = True
    continue_run: bool = True
    scope_matches: int = 0
    total_matches: int = 0
    directories_listed: int = 0

    def record_match(self, behavior: MatchBehavior) -> None:
        self.scope_matches += 1
        self.total_matches += 1
        if behavior is MatchBehavior.END:
            self.continue_scope = False
            self.continue_run = False
        elif behavior is MatchBehavior.SCOPE_END:
            self.continue_run = False

    def reset_scope(self) -> None:
        self.continue_scope = True
        self.scope_matches = 0


class TraversalEngine:
    """Searches scopes for entries named target_name."""

    def __init__(
        self,
        adapter: RemoteDirectoryAdapter,
        target_name: str,
        match_behavior: MatchBehavior,
        cache: Optional[CacheStore] = None,
        reuse_snapshot_cache: bool = True,
        strict_cache_writes: bool = False,
    ):
        self.adapter = adapter
        self.target_name = target_name
        self.match_behavior = match_behavior
        self.cache = cache
        self.reuse_snapshot_cache = reuse_snapshot_cache
        self.strict_cache_writes = strict_cache_writes
        self.state = TraversalState()
        self._scope_cached = False

    def search_scope(self, scope: ShareScope) -> Iterator[MatchRecord]:
        """Yield every match in scope, subject to the match behavior."""
        self.state.reset_scope()
        self._scope_cached = self._reads_cache(scope)
        queue: Deque[str] = deque([ROOT_PATH])
        listed_before = self.state.directories_listed

        while queue and self.state.continue_scope:
            parent_path = queue.popleft()
            for item in self._list_directory(scope, parent_path):
                child_path = join_path(parent_path, item.name)

                if item.name == self.target_name:
                    self.state.record_match(self.match_behavior)
                    yield MatchRecord(
                        share_name=scope.share_name,
                        snapshot_time=scope.snapshot_time,
                        full_path=child_path,
                    )
                    if not self.state.continue_scope:
                        break

                # Matched directories are still searched for nested matches
                if item.is_directory:
                    queue.append(as_directory_path(child_path))

        if not self.state.continue_scope:
            queue.clear()

        logger.info(
            f"[traversal] {scope.label}: {self.state.scope_matches} match(es), "
            f"{self.state.directories_listed - listed_before} director(ies) listed"
        )

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def _list_directory(self, scope: ShareScope, path: str) -> List[DirectoryItem]:
        cached = self._cached_listing(scope, path)
        if cached is not None:
            return cached

        items = self.adapter.list_directory(scope, path)
        self.state.directories_listed += 1
        self._record_listing(scope, path, items)
        return items

    def _reads_cache(self, scope: ShareScope) -> bool:
        """
        Whether listings of this scope may come from the cache.

        Snapshot scopes only; the live share is always re-listed. Decided
        once per scope: a scope whose root listing was never cached is
        listed remotely throughout without per-directory cache lookups.
        """
        return self.cache is not None and self.reuse_snapshot_cache and scope.is_snapshot

    def _cached_listing(self, scope: ShareScope, path: str) -> Optional[List[DirectoryItem]]:
        """
        Cached children of path, or None to list remotely.

        An empty cached listing is indistinguishable from an unlisted
        directory, so it falls back to the remote listing.
        """
        if not self._scope_cached:
            return None
        try:
            entries = self.cache.cached_children(scope, path)
        except SQLAlchemyError as e:
            logger.warning(f"[traversal] Cache read failed for {scope.label}:{path}, listing remotely: {e}")
            self._scope_cached = False
            return None
        if not entries:
            if path == ROOT_PATH:
                logger.debug(f"[traversal] {scope.label} not cached yet, listing remotely")
                self._scope_cached = False
            return None
        logger.debug(f"[traversal] {scope.label}:{path} served from cache ({len(entries)} entries)")
        return [entry.to_item() for entry in entries]

    def _record_listing(self, scope: ShareScope, path: str, items: List[DirectoryItem]) -> None:
        if self.cache is None:
            return
        try:
            self.cache.record_entries(scope, path, items)
        except CacheWriteError as e:
            if self.strict_cache_writes:
                raise
            logger.warning(f"[traversal] Continuing without caching {scope.label}:{path}: {e.cause or e}")
