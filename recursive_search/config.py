# FILE: recursive_search/config.py
"""
Configuration for recursive search.

All tunables in one place. Every value can be overridden through the
environment (a .env file is loaded by the CLI before this is read).
"""
from __future__ import annotations

import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError

# =============================================================================
# CACHE LOCATION
# =============================================================================

CACHE_DIR_NAME = ".recursiveSearch"
CACHE_FILE_NAME = "cache.db"


def default_cache_path() -> Path:
    """
    Per-user cache location.

    %LOCALAPPDATA%\\.recursiveSearch\\cache.db on Windows,
    ~/.recursiveSearch/cache.db everywhere else.
    """
    local_app_data = os.getenv("LOCALAPPDATA")
    if platform.system() == "Windows" and local_app_data:
        base = Path(local_app_data)
    else:
        base = Path.home()
    return base / CACHE_DIR_NAME / CACHE_FILE_NAME


# =============================================================================
# ENVIRONMENT
# =============================================================================

ENV_CACHE_PATH = "RECURSIVE_SEARCH_CACHE_PATH"
ENV_LOG_LEVEL = "RECURSIVE_SEARCH_LOG_LEVEL"
ENV_STRICT_CACHE = "RECURSIVE_SEARCH_STRICT_CACHE"
ENV_REUSE_SNAPSHOT_CACHE = "RECURSIVE_SEARCH_REUSE_SNAPSHOT_CACHE"
ENV_LIST_PAGE_SIZE = "RECURSIVE_SEARCH_LIST_PAGE_SIZE"

DEFAULT_LOG_LEVEL = "WARNING"

# Azure Files returns at most 5000 items per listing page
DEFAULT_LIST_PAGE_SIZE = 5000

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class Settings:
    """Snapshot of the environment-driven configuration."""
    cache_path: Path
    log_level: str = DEFAULT_LOG_LEVEL
    # Cache write failures abort the search when set; otherwise they are logged
    strict_cache_writes: bool = False
    # Snapshots are immutable, so their cached listings may replace remote calls
    reuse_snapshot_cache: bool = True
    list_page_size: int = DEFAULT_LIST_PAGE_SIZE


def _env_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as e:
        raise ConfigurationError(name, raw, "expected a whole number", cause=e) from e
    if value < 1:
        raise ConfigurationError(name, raw, "must be at least 1")
    return value


def load_settings(cache_path: Optional[str] = None) -> Settings:
    """
    Build Settings from the environment; an explicit cache_path wins.

    Raises:
        ConfigurationError: a numeric setting is malformed
    """
    path = cache_path or os.getenv(ENV_CACHE_PATH)
    return Settings(
        cache_path=Path(path).expanduser() if path else default_cache_path(),
        log_level=os.getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper(),
        strict_cache_writes=_env_flag(ENV_STRICT_CACHE, False),
        reuse_snapshot_cache=_env_flag(ENV_REUSE_SNAPSHOT_CACHE, True),
        list_page_size=_env_positive_int(ENV_LIST_PAGE_SIZE, DEFAULT_LIST_PAGE_SIZE),
    )
