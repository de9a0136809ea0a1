# FILE: recursive_search/search.py
"""
Search orchestration.

Validates a request, opens the cache, resolves scopes and drives the
traversal engine across them, yielding matches as they are found.

The result is a plain generator: it is not resumable mid-stream, and
closing it early (or an exception) still closes the cache store.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

from .cache import CacheStore
from .config import Settings, load_settings
from .models import MatchRecord
from .remote import RemoteDirectoryAdapter, ScopeCatalog
from .schemas import SearchRequest, parse_search_request
from .scopes import ScopeResolver
from .traversal import TraversalEngine

logger = logging.getLogger(__name__)


class SearchOrchestrator:
    """Composes scope resolution, caching and traversal for one request."""

    def __init__(
        self,
        catalog: ScopeCatalog,
        adapter: RemoteDirectoryAdapter,
        cache_path: Optional[Union[str, Path]] = None,
        settings: Optional[Settings] = None,
    ):
        self.catalog = catalog
        self.adapter = adapter
        self.settings = settings or load_settings()
        if cache_path is not None:
            self.settings = replace(self.settings, cache_path=Path(cache_path))
        self.last_engine: Optional[TraversalEngine] = None

    @property
    def cache_path(self) -> Path:
        return self.settings.cache_path

    def search(self, request: Union[SearchRequest, Dict[str, Any]]) -> Iterator[MatchRecord]:
        """
        Yield every match for the request, honoring its match behavior.

        Validation happens on the first next(); no I/O is done for an
        invalid request.

        Raises:
            RequestValidationError, ScopeResolutionError, CacheInitError,
            RemoteListingError, CacheWriteError (strict mode only)
        """
        if not isinstance(request, SearchRequest):
            request = parse_search_request(request)

        logger.info(
            f"[search] '{request.target_item}' in {request.storage_account}/{request.file_share} "
            f"(scope={request.search_scope.value}, behavior={request.match_behavior.value})"
        )

        with CacheStore(self.cache_path) as cache:
            resolver = ScopeResolver(self.catalog, cache, strict_cache_writes=self.settings.strict_cache_writes)
            scopes = resolver.resolve(request.file_share, request.search_scope)

            engine = TraversalEngine(
                self.adapter,
                target_name=request.target_item,
                match_behavior=request.match_behavior,
                cache=cache,
                reuse_snapshot_cache=self.settings.reuse_snapshot_cache,
                strict_cache_writes=self.settings.strict_cache_writes,
            )
            self.last_engine = engine

            for scope in scopes:
                yield from engine.search_scope(scope)
                if not engine.state.continue_run:
                    logger.info(f"[search] Stopping after {scope.label} ({request.match_behavior.value})")
                    break

            logger.info(
                f"[search] Done: {engine.state.total_matches} match(es), "
                f"{engine.state.directories_listed} remote listing(s)"
            )
