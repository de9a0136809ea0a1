"""
recursive_search - find every occurrence of a named file or directory in an
Azure file share and its snapshots.

Public surface:
- SearchOrchestrator: runs one search request, yields MatchRecords
- ScopeResolver / TraversalEngine / CacheStore: the pieces it composes
"""

__version__ = "0.1.0"

from .cache import CacheStore
from .models import MatchBehavior, MatchRecord, SearchScope, ShareScope
from .scopes import ScopeResolver
from .search import SearchOrchestrator
from .traversal import TraversalEngine

__all__ = [
    "__version__",
    "CacheStore",
    "MatchBehavior",
    "MatchRecord",
    "ScopeResolver",
    "SearchOrchestrator",
    "SearchScope",
    "ShareScope",
    "TraversalEngine",
]
