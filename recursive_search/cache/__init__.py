"""Persistent cache of observed scopes and directory entries."""

from .columns import (
    DIRECTORY_ENTRIES_COLUMNS,
    DIRECTORY_ENTRIES_TABLE,
    FILE_SHARES_COLUMNS,
    FILE_SHARES_TABLE,
    SqliteColumn,
    SqliteType,
    build_create_table_query,
    columns_match,
)
from .store import CacheStore, ReconcileReport

__all__ = [
    "CacheStore",
    "ReconcileReport",
    "SqliteColumn",
    "SqliteType",
    "FILE_SHARES_TABLE",
    "FILE_SHARES_COLUMNS",
    "DIRECTORY_ENTRIES_TABLE",
    "DIRECTORY_ENTRIES_COLUMNS",
    "build_create_table_query",
    "columns_match",
]
