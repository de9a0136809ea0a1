# FILE: recursive_search/models.py
"""
Domain types for recursive search.

- ShareScope: one traversable tree (the live share or one snapshot)
- DirectoryItem: one child as returned by a remote listing
- DirectoryEntry: one observed child as persisted in the cache
- MatchRecord: one occurrence of the target item

ShareScope is a pydantic model because it is built from untrusted remote
and cache data; the rest are plain dataclasses.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# 3-63 chars, lowercase alphanumerics and single hyphens, alphanumeric at both ends
SHARE_NAME_PATTERN = r"^[a-z0-9](?:[a-z0-9]|-(?!-)){1,61}[a-z0-9]$"
SHARE_NAME_RE = re.compile(SHARE_NAME_PATTERN)

PATH_SEPARATOR = "/"
ROOT_PATH = PATH_SEPARATOR


# =============================================================================
# ENUMS
# =============================================================================

class SearchScope(str, Enum):
    """Which scopes of a share to search."""
    FILE_SHARE = "FileShare"
    FILE_SHARE_SNAPSHOTS = "FileShareSnapshots"
    BOTH = "Both"

    @property
    def includes_live(self) -> bool:
        return self in (SearchScope.FILE_SHARE, SearchScope.BOTH)

    @property
    def includes_snapshots(self) -> bool:
        return self in (SearchScope.FILE_SHARE_SNAPSHOTS, SearchScope.BOTH)


class MatchBehavior(str, Enum):
    """
    How much more traversal happens once a match is found.

    END stops everything immediately, SCOPE_END finishes the current scope
    and then stops, CONTINUE searches every scope to completion.
    """
    END = "End"
    SCOPE_END = "ScopeEnd"
    CONTINUE = "Continue"


class ResourceType(str, Enum):
    STORAGE_ACCOUNT = "Microsoft.Storage/storageAccounts"


# =============================================================================
# TIME HELPERS
# =============================================================================

def to_unix_seconds(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def from_unix_seconds(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


# =============================================================================
# SCOPES
# =============================================================================

class ShareScope(BaseModel):
    """One traversable tree: the live share or one of its snapshots."""

    # Share name pattern needs lookahead, which the default rust engine lacks
    model_config = ConfigDict(frozen=True, regex_engine="python-re")

    file_share_id: UUID
    data_plane_endpoint: str = Field(min_length=1)
    resource_name: str = Field(min_length=3)
    resource_type: ResourceType = ResourceType.STORAGE_ACCOUNT
    resource_create_time: datetime
    share_name: str = Field(pattern=SHARE_NAME_PATTERN)
    is_snapshot: bool = False
    snapshot_time: Optional[datetime] = None

    @field_validator("data_plane_endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"Data plane endpoint must be an http(s) URI: '{v}'")
        return v

    @field_validator("resource_create_time", "snapshot_time", mode="before")
    @classmethod
    def coerce_unix_time(cls, v):
        """Cache rows carry unix seconds; remote data carries datetimes."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return from_unix_seconds(int(v))
        return v

    @model_validator(mode="after")
    def check_snapshot_consistency(self) -> "ShareScope":
        if self.is_snapshot != (self.snapshot_time is not None):
            raise ValueError(
                "is_snapshot must be true exactly when snapshot_time is set "
                f"(is_snapshot={self.is_snapshot}, snapshot_time={self.snapshot_time})"
            )
        return self

    @property
    def label(self) -> str:
        if self.snapshot_time is None:
            return self.share_name
        return f"{self.share_name}@{self.snapshot_time.isoformat()}"


# =============================================================================
# ENTRIES AND MATCHES
# =============================================================================

@dataclass(frozen=True)
class DirectoryItem:
    """Immediate child of a directory as returned by a remote listing."""
    name: str
    is_directory: bool


@dataclass(frozen=True)
class DirectoryEntry:
    """Observed child of a directory within one scope, as cached."""
    file_share_id: UUID
    data_plane_endpoint: str
    path: str
    entry_name: str
    is_directory: bool

    @classmethod
    def from_item(cls, scope: ShareScope, parent_path: str, item: DirectoryItem) -> "DirectoryEntry":
        return cls(
            file_share_id=scope.file_share_id,
            data_plane_endpoint=scope.data_plane_endpoint,
            path=join_path(parent_path, item.name),
            entry_name=item.name,
            is_directory=item.is_directory,
        )

    def to_item(self) -> DirectoryItem:
        return DirectoryItem(name=self.entry_name, is_directory=self.is_directory)


@dataclass(frozen=True)
class MatchRecord:
    """One occurrence of the target item."""
    share_name: str
    snapshot_time: Optional[datetime]
    full_path: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fileShareName": self.share_name,
            "snapshotTime": self.snapshot_time.isoformat() if self.snapshot_time else None,
            "path": self.full_path,
        }

    def __str__(self) -> str:
        if self.snapshot_time is None:
            return f"{self.share_name}:{self.full_path}"
        return f"{self.share_name}@{self.snapshot_time.isoformat()}:{self.full_path}"


# =============================================================================
# PATHS
# =============================================================================

def join_path(parent_path: str, name: str) -> str:
    """Absolute child path: '/' + 'foo' -> '/foo', '/foo/' + 'bar' -> '/foo/bar'."""
    if not parent_path.endswith(PATH_SEPARATOR):
        parent_path += PATH_SEPARATOR
    return parent_path + name


def as_directory_path(path: str) -> str:
    """Queue form of a directory path, always with a trailing separator."""
    return path if path.endswith(PATH_SEPARATOR) else path + PATH_SEPARATOR
