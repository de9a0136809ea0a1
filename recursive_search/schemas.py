# FILE: recursive_search/schemas.py
"""
Pydantic schemas.

- SearchRequest: validated shape of one search invocation
- SqliteColumnInfo: one row of PRAGMA table_info(...)
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import RequestValidationError
from .models import SHARE_NAME_PATTERN, PATH_SEPARATOR, MatchBehavior, SearchScope

STORAGE_ACCOUNT_PATTERN = r"^[a-z0-9]{3,24}$"


class SearchRequest(BaseModel):
    """One search invocation, validated before any I/O."""

    model_config = ConfigDict(regex_engine="python-re")

    subscription: UUID
    resource_group: str = Field(min_length=1, max_length=90)
    storage_account: str = Field(pattern=STORAGE_ACCOUNT_PATTERN)
    file_share: str = Field(pattern=SHARE_NAME_PATTERN)
    target_item: str = Field(min_length=1)
    search_scope: SearchScope = SearchScope.BOTH
    match_behavior: MatchBehavior = MatchBehavior.SCOPE_END

    @field_validator("target_item")
    @classmethod
    def validate_target_item(cls, v: str) -> str:
        if PATH_SEPARATOR in v:
            raise ValueError(f"Target item must be a single name, not a path: '{v}'")
        return v

    @field_validator("search_scope", "match_behavior", mode="before")
    @classmethod
    def validate_choice(cls, v, info):
        """Give enum errors the list of accepted values."""
        enum_type = SearchScope if info.field_name == "search_scope" else MatchBehavior
        if isinstance(v, str):
            try:
                return enum_type(v)
            except ValueError:
                raise ValueError(
                    f"Invalid {info.field_name}: '{v}'. Must be one of: {[e.value for e in enum_type]}"
                )
        return v


def parse_search_request(data: Dict[str, Any]) -> SearchRequest:
    """
    Validate raw arguments into a SearchRequest.

    Raises:
        RequestValidationError: carrying pydantic's error list
    """
    try:
        return SearchRequest.model_validate(data)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False)) from e


class SqliteColumnInfo(BaseModel):
    """One row of PRAGMA table_info(<table>)."""

    cid: int = Field(ge=0)
    name: str
    type: Optional[str] = None
    notnull: bool
    dflt_value: Any = None
    pk: int = Field(ge=0)


def parse_table_info(rows: List[Dict[str, Any]]) -> List[SqliteColumnInfo]:
    return [SqliteColumnInfo.model_validate(row) for row in rows]
