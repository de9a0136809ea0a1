# FILE: recursive_search/cache/store.py
"""
SQLite-backed cache of observed scopes and directory entries.

On open the persisted table layout is compared with the expected one and
reset when it drifts (see reconcile()). There is no incremental migration:
a schema change discards the cached data, which is always safe to lose.

Single writer per cache file. WAL journaling lets other processes read
while a search is writing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..errors import CacheInitError, CacheInitFailureKind, CacheWriteError
from ..models import (
    DirectoryEntry,
    DirectoryItem,
    ShareScope,
    as_directory_path,
    to_unix_seconds,
)
from ..schemas import SqliteColumnInfo, parse_table_info
from .columns import (
    DIRECTORY_ENTRIES_COLUMNS,
    DIRECTORY_ENTRIES_TABLE,
    FILE_SHARES_COLUMNS,
    FILE_SHARES_TABLE,
    PARENT_PATH_EXPRESSION,
    build_create_table_query,
    build_drop_table_query,
    build_parent_index_query,
    build_table_info_query,
    columns_match,
)

logger = logging.getLogger(__name__)


INSERT_SCOPE_QUERY = (
    f'INSERT OR REPLACE INTO "{FILE_SHARES_TABLE}" '
    "(file_share_id, data_plane_endpoint, resource_name, resource_type, "
    "resource_create_time, share_name, is_snapshot, snapshot_time) "
    "VALUES (:file_share_id, :data_plane_endpoint, :resource_name, :resource_type, "
    ":resource_create_time, :share_name, :is_snapshot, :snapshot_time)"
)

INSERT_ENTRY_QUERY = (
    f'INSERT OR REPLACE INTO "{DIRECTORY_ENTRIES_TABLE}" '
    "(file_share_id, data_plane_endpoint, path, entry_name, is_directory) "
    "VALUES (:file_share_id, :data_plane_endpoint, :path, :entry_name, :is_directory)"
)

# Matches the expression of the parent-path index so the lookup is an index search
SELECT_CHILDREN_QUERY = (
    f'SELECT file_share_id, data_plane_endpoint, path, entry_name, is_directory '
    f'FROM "{DIRECTORY_ENTRIES_TABLE}" '
    "WHERE file_share_id = :file_share_id AND data_plane_endpoint = :data_plane_endpoint "
    f"AND {PARENT_PATH_EXPRESSION} = :parent_path "
    "ORDER BY rowid"
)

SELECT_SCOPES_QUERY = (
    f'SELECT * FROM "{FILE_SHARES_TABLE}" WHERE share_name = :share_name '
    "ORDER BY is_snapshot ASC, snapshot_time DESC"
)


@dataclass
class ReconcileReport:
    """Which tables were (re)created when the store was opened."""
    recreated: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.recreated)


def _scope_row(scope: ShareScope) -> Dict[str, Any]:
    return {
        "file_share_id": str(scope.file_share_id),
        "data_plane_endpoint": scope.data_plane_endpoint,
        "resource_name": scope.resource_name,
        "resource_type": scope.resource_type.value,
        "resource_create_time": to_unix_seconds(scope.resource_create_time),
        "share_name": scope.share_name,
        "is_snapshot": int(scope.is_snapshot),
        "snapshot_time": to_unix_seconds(scope.snapshot_time) if scope.snapshot_time else None,
    }


def _entry_row(entry: DirectoryEntry) -> Dict[str, Any]:
    return {
        "file_share_id": str(entry.file_share_id),
        "data_plane_endpoint": entry.data_plane_endpoint,
        "path": entry.path,
        "entry_name": entry.entry_name,
        "is_directory": int(entry.is_directory),
    }


class CacheStore:
    """
    Persistent mirror of observed share metadata and directory listings.

    Usage:
        with CacheStore(path) as cache:
            cache.record_scopes(scopes)
            cache.record_entries(scope, "/", items)
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self._engine: Optional[Engine] = None
        self.last_reconcile: Optional[ReconcileReport] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> ReconcileReport:
        """
        Create the containing directory, connect, and reconcile the schema.

        Raises:
            CacheInitError: on any failure; the store is left closed
        """
        if self._engine is not None:
            raise RuntimeError(f"CacheStore has already been opened (db path: {self.db_path})")

        parent = self.db_path.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheInitError(
                CacheInitFailureKind.PATH,
                f"Could not create cache directory {parent}",
                db_path=str(parent),
                cause=e,
            ) from e

        engine = create_engine(URL.create("sqlite", database=str(self.db_path)), echo=False)
        event.listen(engine, "connect", _set_sqlite_pragma)

        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            engine.dispose()
            raise CacheInitError(
                CacheInitFailureKind.CONNECTION,
                f"Could not open cache database {self.db_path}",
                db_path=str(self.db_path),
                cause=e,
            ) from e

        self._engine = engine
        try:
            report = self.reconcile()
        except CacheInitError:
            self.close()
            raise

        self.last_reconcile = report
        if report.changed:
            logger.info(f"[cache] Recreated tables {report.recreated} in {self.db_path}")
        else:
            logger.debug(f"[cache] Schema up to date in {self.db_path}")
        return report

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> "CacheStore":
        if not self.is_open:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("CacheStore is not open")
        return self._engine

    # ------------------------------------------------------------------
    # Schema reconciliation
    # ------------------------------------------------------------------

    def reconcile(self) -> ReconcileReport:
        """
        Bring the persisted tables in line with the expected columns.

        A drifted file_shares table drops both tables, since entries
        without their scope are meaningless. directory_entries is then
        checked on its own and recreated if missing or drifted.
        """
        report = ReconcileReport()

        shares_info = self._table_info(FILE_SHARES_TABLE)
        if not columns_match(FILE_SHARES_COLUMNS, shares_info):
            if shares_info:
                logger.warning(f"[cache] Table {FILE_SHARES_TABLE} does not match the expected schema, resetting cache")
            self._execute_ddl(
                build_drop_table_query(FILE_SHARES_TABLE),
                build_drop_table_query(DIRECTORY_ENTRIES_TABLE),
                build_create_table_query(FILE_SHARES_TABLE, FILE_SHARES_COLUMNS),
            )
            report.recreated.append(FILE_SHARES_TABLE)

        entries_info = self._table_info(DIRECTORY_ENTRIES_TABLE)
        if not columns_match(DIRECTORY_ENTRIES_COLUMNS, entries_info):
            if entries_info:
                logger.warning(f"[cache] Table {DIRECTORY_ENTRIES_TABLE} does not match the expected schema, resetting it")
            self._execute_ddl(
                build_drop_table_query(DIRECTORY_ENTRIES_TABLE),
                build_create_table_query(DIRECTORY_ENTRIES_TABLE, DIRECTORY_ENTRIES_COLUMNS),
            )
            report.recreated.append(DIRECTORY_ENTRIES_TABLE)

        # Idempotent; recreated after a directory_entries reset
        self._execute_ddl(build_parent_index_query())
        return report

    def _table_info(self, table_name: str) -> List[SqliteColumnInfo]:
        query = build_table_info_query(table_name)
        try:
            with self._require_engine().connect() as conn:
                rows = [dict(row) for row in conn.execute(text(query)).mappings().all()]
        except SQLAlchemyError as e:
            raise CacheInitError(
                CacheInitFailureKind.QUERY,
                f"Failed to inspect table {table_name}",
                db_path=str(self.db_path),
                query=query,
                cause=e,
            ) from e

        try:
            return parse_table_info(rows)
        except ValidationError as e:
            raise CacheInitError(
                CacheInitFailureKind.RESULT_SCHEMA,
                f"Unexpected table_info result for {table_name}",
                db_path=str(self.db_path),
                query=query,
                cause=e,
            ) from e

    def _execute_ddl(self, *queries: str) -> None:
        with self._require_engine().connect() as conn:
            for query in queries:
                try:
                    conn.execute(text(query))
                except SQLAlchemyError as e:
                    raise CacheInitError(
                        CacheInitFailureKind.QUERY,
                        "Failed to update cache schema",
                        db_path=str(self.db_path),
                        query=query,
                        cause=e,
                    ) from e
            conn.commit()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_scopes(self, scopes: Iterable[ShareScope]) -> int:
        rows = [_scope_row(scope) for scope in scopes]
        self._write(INSERT_SCOPE_QUERY, rows)
        return len(rows)

    def record_entries(
        self,
        scope: ShareScope,
        parent_path: str,
        items: Sequence[DirectoryItem],
    ) -> List[DirectoryEntry]:
        """Write one directory listing as a single batch; last observation wins."""
        parent_path = as_directory_path(parent_path)
        entries = [DirectoryEntry.from_item(scope, parent_path, item) for item in items]
        self._write(INSERT_ENTRY_QUERY, [_entry_row(entry) for entry in entries])
        return entries

    def _write(self, query: str, rows: List[Dict[str, Any]]) -> None:
        if not rows:
            return
        try:
            with self._require_engine().begin() as conn:
                conn.execute(text(query), rows)
        except SQLAlchemyError as e:
            raise CacheWriteError(str(self.db_path), query, cause=e) from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def cached_children(self, scope: ShareScope, parent_path: str) -> List[DirectoryEntry]:
        """Cached children of a directory, in the order they were written."""
        params = {
            "file_share_id": str(scope.file_share_id),
            "data_plane_endpoint": scope.data_plane_endpoint,
            "parent_path": as_directory_path(parent_path),
        }
        with self._require_engine().connect() as conn:
            rows = conn.execute(text(SELECT_CHILDREN_QUERY), params).mappings().all()
        return [
            DirectoryEntry(
                file_share_id=scope.file_share_id,
                data_plane_endpoint=row["data_plane_endpoint"],
                path=row["path"],
                entry_name=row["entry_name"],
                is_directory=bool(row["is_directory"]),
            )
            for row in rows
        ]

    def get_scopes(self, share_name: str) -> List[ShareScope]:
        """Cached scopes for a share, live first then newest snapshot first."""
        with self._require_engine().connect() as conn:
            rows = conn.execute(text(SELECT_SCOPES_QUERY), {"share_name": share_name}).mappings().all()
        return [ShareScope.model_validate(dict(row)) for row in rows]

    def count_entries(self, scope: Optional[ShareScope] = None) -> int:
        query = f'SELECT COUNT(*) FROM "{DIRECTORY_ENTRIES_TABLE}"'
        params: Dict[str, Any] = {}
        if scope is not None:
            query += " WHERE file_share_id = :file_share_id AND data_plane_endpoint = :data_plane_endpoint"
            params = {
                "file_share_id": str(scope.file_share_id),
                "data_plane_endpoint": scope.data_plane_endpoint,
            }
        with self._require_engine().connect() as conn:
            return int(conn.execute(text(query), params).scalar_one())


def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()
