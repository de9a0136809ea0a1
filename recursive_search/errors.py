# FILE: recursive_search/errors.py
"""
Error taxonomy for recursive search.

Every failure the search can surface maps to exactly one failure type.
Errors carry enough context (path, query text, underlying cause) to
reproduce the failure, and serialize to a JSON-friendly payload via
to_dict() for the CLI error stream.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional


class FailureType(str, Enum):
    """Discriminant for every failure category."""
    REQUEST_VALIDATION = "RequestValidationFailure"
    SCOPE_NOT_FOUND = "ScopeNotFoundFailure"
    NO_SNAPSHOTS = "NoSnapshotsFailure"
    SCOPE_LOOKUP = "GetFileShareDetailsFailure"
    CACHE_INIT = "CacheDbInitFailure"
    CACHE_WRITE = "CacheDbWriteFailure"
    REMOTE_LISTING = "RemoteListingFailure"
    CONFIGURATION = "ConfigurationFailure"


class CacheInitFailureKind(str, Enum):
    """Sub-kinds of cache initialization failure."""
    PATH = "CacheDbPathFailure"
    CONNECTION = "CacheDbConnectionFailure"
    QUERY = "CacheDbQueryFailure"
    RESULT_SCHEMA = "CacheDbResultSchemaFailure"


class RecursiveSearchError(Exception):
    """Base class for recursive search errors."""

    failure_type: FailureType

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

    def details(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "failureType": self.failure_type.value,
            "message": str(self),
        }
        payload.update(self.details())
        if self.cause is not None:
            payload["failureDetail"] = f"{type(self.cause).__name__}: {self.cause}"
        return payload


class RequestValidationError(RecursiveSearchError):
    """Raised for malformed search arguments, before any I/O happens."""

    failure_type = FailureType.REQUEST_VALIDATION

    def __init__(self, errors: List[Dict[str, Any]]):
        self.errors = errors
        summary = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ())) or '<request>'}: {e.get('msg', '')}"
            for e in errors
        )
        super().__init__(f"Invalid search request: {summary}")

    def details(self) -> Dict[str, Any]:
        return {"issues": self.errors}


# =============================================================================
# Scope resolution
# =============================================================================

class ScopeResolutionError(RecursiveSearchError):
    """Base class for failures while resolving the scopes to search."""

    def __init__(self, message: str, share_name: str, cause: Optional[BaseException] = None):
        super().__init__(message, cause)
        self.share_name = share_name

    def details(self) -> Dict[str, Any]:
        return {"fileShareName": self.share_name}


class ScopeNotFoundError(ScopeResolutionError):
    failure_type = FailureType.SCOPE_NOT_FOUND

    def __init__(self, share_name: str, cause: Optional[BaseException] = None):
        super().__init__(f"File share '{share_name}' was not found", share_name, cause)


class NoSnapshotsError(ScopeResolutionError):
    failure_type = FailureType.NO_SNAPSHOTS

    def __init__(self, share_name: str):
        super().__init__(f"File share '{share_name}' has no snapshots to search", share_name)


class ScopeLookupError(ScopeResolutionError):
    """The management lookup itself failed (auth, transport, throttling)."""

    failure_type = FailureType.SCOPE_LOOKUP

    def __init__(self, share_name: str, cause: Optional[BaseException] = None):
        super().__init__(f"Could not get details for file share '{share_name}'", share_name, cause)


# =============================================================================
# Cache store
# =============================================================================

class CacheInitError(RecursiveSearchError):
    """Cache store could not be opened or reconciled. Always fatal."""

    failure_type = FailureType.CACHE_INIT

    def __init__(
        self,
        kind: CacheInitFailureKind,
        message: str,
        db_path: Optional[str] = None,
        query: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause)
        self.kind = kind
        self.db_path = db_path
        self.query = query

    def details(self) -> Dict[str, Any]:
        detail: Dict[str, Any] = {"failureKind": self.kind.value}
        if self.db_path is not None:
            detail["dbPath"] = self.db_path
        if self.query is not None:
            detail["query"] = self.query
        return detail


class CacheWriteError(RecursiveSearchError):
    """A batch of cache rows could not be written."""

    failure_type = FailureType.CACHE_WRITE

    def __init__(self, db_path: str, query: str, cause: Optional[BaseException] = None):
        super().__init__(f"Failed to write to cache database {db_path}", cause)
        self.db_path = db_path
        self.query = query

    def details(self) -> Dict[str, Any]:
        return {"dbPath": self.db_path, "query": self.query}


# =============================================================================
# Remote listing
# =============================================================================

class RemoteListingError(RecursiveSearchError):
    """Transport or auth failure while listing a remote directory."""

    failure_type = FailureType.REMOTE_LISTING

    def __init__(self, endpoint: str, path: str, cause: Optional[BaseException] = None):
        super().__init__(f"Failed to list '{path}' on {endpoint}", cause)
        self.endpoint = endpoint
        self.path = path

    def details(self) -> Dict[str, Any]:
        return {"dataPlaneEndpoint": self.endpoint, "path": self.path}


# =============================================================================
# Configuration
# =============================================================================

class ConfigurationError(RecursiveSearchError):
    """An environment setting has a value that cannot be used."""

    failure_type = FailureType.CONFIGURATION

    def __init__(self, name: str, value: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(f"Invalid {name}={value!r}: {reason}", cause)
        self.name = name
        self.value = value

    def details(self) -> Dict[str, Any]:
        return {"setting": self.name, "value": self.value}
