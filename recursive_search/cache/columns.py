# FILE: recursive_search/cache/columns.py
"""
Expected cache schema as data, plus the pure functions that compare it
against what SQLite reports and build the DDL for it.

Tables:
- file_shares: one row per observed scope (live share or snapshot)
- directory_entries: one row per observed child of a listed directory

Nothing here touches a database connection.
"""
from __future__ import annotations

import sqlite3
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Tuple

from ..schemas import SqliteColumnInfo


class SqliteType(str, Enum):
    INTEGER = "INTEGER"
    REAL = "REAL"
    TEXT = "TEXT"
    BLOB = "BLOB"


class SqliteColumn(NamedTuple):
    name: str
    type: SqliteType
    nullable: bool
    primary_key: bool


FILE_SHARES_TABLE = "file_shares"
DIRECTORY_ENTRIES_TABLE = "directory_entries"

FILE_SHARES_COLUMNS: Tuple[SqliteColumn, ...] = (
    SqliteColumn("file_share_id", SqliteType.TEXT, False, True),
    SqliteColumn("data_plane_endpoint", SqliteType.TEXT, False, True),
    SqliteColumn("resource_name", SqliteType.TEXT, False, False),
    SqliteColumn("resource_type", SqliteType.TEXT, False, False),
    SqliteColumn("resource_create_time", SqliteType.INTEGER, False, False),
    SqliteColumn("share_name", SqliteType.TEXT, False, False),
    SqliteColumn("is_snapshot", SqliteType.INTEGER, False, False),
    SqliteColumn("snapshot_time", SqliteType.INTEGER, True, False),
)

DIRECTORY_ENTRIES_COLUMNS: Tuple[SqliteColumn, ...] = (
    SqliteColumn("file_share_id", SqliteType.TEXT, False, True),
    SqliteColumn("data_plane_endpoint", SqliteType.TEXT, False, True),
    SqliteColumn("path", SqliteType.TEXT, False, True),
    SqliteColumn("entry_name", SqliteType.TEXT, False, False),
    SqliteColumn("is_directory", SqliteType.INTEGER, False, False),
)

EXPECTED_SCHEMA: Dict[str, Tuple[SqliteColumn, ...]] = {
    FILE_SHARES_TABLE: FILE_SHARES_COLUMNS,
    DIRECTORY_ENTRIES_TABLE: DIRECTORY_ENTRIES_COLUMNS,
}

# STRICT tables need SQLite 3.37+
SUPPORTS_STRICT_TABLES = sqlite3.sqlite_version_info >= (3, 37, 0)


def to_column(info: SqliteColumnInfo) -> SqliteColumn | None:
    """Normalize a PRAGMA table_info row; None when its declared type is not one we use."""
    declared = (info.type or "").strip().upper()
    try:
        column_type = SqliteType(declared)
    except ValueError:
        return None
    return SqliteColumn(
        name=info.name,
        type=column_type,
        nullable=not info.notnull,
        primary_key=info.pk > 0,
    )


def columns_match(expected: Iterable[SqliteColumn], actual: Iterable[SqliteColumnInfo]) -> bool:
    """
    True when the persisted columns are compatible with the expected ones.

    - A missing table (no actual columns) never matches.
    - An actual column with no usable declared type never matches.
    - Extra actual columns are tolerated only when nullable.
    - Every expected column must exist with the same type, nullability
      and primary-key membership.
    """
    expected_by_name = {column.name: column for column in expected}
    found: Dict[str, SqliteColumn] = {}

    actual_rows = list(actual)
    if not actual_rows:
        return False

    for info in actual_rows:
        column = to_column(info)
        if column is None:
            return False

        wanted = expected_by_name.get(column.name)
        if wanted is None:
            if not column.nullable:
                return False
            continue

        if column != wanted:
            return False
        found[column.name] = column

    return all(name in found for name in expected_by_name)


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def build_create_table_query(table_name: str, columns: Iterable[SqliteColumn]) -> str:
    """CREATE TABLE statement declaring every column and the composite primary key."""
    definitions: List[str] = []
    primary_keys: List[str] = []
    for column in columns:
        definition = f"{_quote(column.name)} {column.type.value}"
        if not column.nullable:
            definition += " NOT NULL"
        definitions.append(definition)
        if column.primary_key:
            primary_keys.append(_quote(column.name))

    if primary_keys:
        definitions.append(f"PRIMARY KEY ({', '.join(primary_keys)})")

    query = f"CREATE TABLE {_quote(table_name)} ({', '.join(definitions)})"
    if SUPPORTS_STRICT_TABLES:
        query += " STRICT"
    return query


def build_drop_table_query(table_name: str) -> str:
    return f"DROP TABLE IF EXISTS {_quote(table_name)}"


def build_table_info_query(table_name: str) -> str:
    return f"PRAGMA table_info({_quote(table_name)})"


# Parent directory of a directory_entries row, with its trailing separator
PARENT_PATH_EXPRESSION = "substr(path, 1, length(path) - length(entry_name))"
DIRECTORY_ENTRIES_PARENT_INDEX = "ix_directory_entries_parent"


def build_parent_index_query() -> str:
    """Expression index serving cached_children lookups by parent path."""
    return (
        f"CREATE INDEX IF NOT EXISTS {_quote(DIRECTORY_ENTRIES_PARENT_INDEX)} "
        f"ON {_quote(DIRECTORY_ENTRIES_TABLE)} "
        f"(file_share_id, data_plane_endpoint, {PARENT_PATH_EXPRESSION})"
    )
