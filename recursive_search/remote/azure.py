# FILE: recursive_search/remote/azure.py
"""
Azure Files implementations of the remote seams.

- AzureScopeCatalog: management plane (azure-mgmt-storage), lists a share
  and its snapshots with their data-plane endpoints
- AzureDirectoryAdapter: data plane (azure-storage-file-share, FileREST),
  lists one directory of one scope

Credentials come from azure-identity and are never inspected here.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

from azure.core.credentials import TokenCredential
from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.identity import DefaultAzureCredential
from azure.mgmt.storage import StorageManagementClient
from azure.storage.fileshare import ShareClient
from pydantic import ValidationError

from ..config import DEFAULT_LIST_PAGE_SIZE
from ..errors import RemoteListingError, ScopeLookupError, ScopeNotFoundError
from ..models import DirectoryItem, ResourceType, ShareScope
from .base import CatalogEntry, RemoteDirectoryAdapter, ScopeCatalog

logger = logging.getLogger(__name__)

SNAPSHOT_QUERY_PARAM = "sharesnapshot"


def format_snapshot_time(value: datetime) -> str:
    """Share snapshot identifier, e.g. 2024-05-10T17:52:33.9551860Z (100ns precision)."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond:06d}0Z"


def build_endpoint(file_endpoint: str, share_name: str, snapshot: Optional[str] = None) -> str:
    endpoint = f"{file_endpoint.rstrip('/')}/{share_name}"
    if snapshot:
        endpoint += f"?{SNAPSHOT_QUERY_PARAM}={snapshot}"
    return endpoint


def split_endpoint(endpoint: str) -> Tuple[str, Optional[str]]:
    """(account_url, snapshot) from a scope's data-plane endpoint."""
    parts = urlsplit(endpoint)
    snapshot = parse_qs(parts.query).get(SNAPSHOT_QUERY_PARAM, [None])[0]
    return f"{parts.scheme}://{parts.netloc}", snapshot


class AzureScopeCatalog(ScopeCatalog):
    """Looks up a file share and its snapshots through the management plane."""

    def __init__(
        self,
        subscription_id: str,
        resource_group: str,
        storage_account: str,
        credential: Optional[TokenCredential] = None,
    ):
        self.subscription_id = subscription_id
        self.resource_group = resource_group
        self.storage_account = storage_account
        self.credential = credential or DefaultAzureCredential()
        self._client: Optional[StorageManagementClient] = None

    @property
    def client(self) -> StorageManagementClient:
        if self._client is None:
            self._client = StorageManagementClient(self.credential, self.subscription_id)
        return self._client

    def list_scopes(self, share_name: str) -> List[CatalogEntry]:
        try:
            account = self.client.storage_accounts.get_properties(self.resource_group, self.storage_account)
            # filter is a name prefix on the service side
            items = list(self.client.file_shares.list(
                self.resource_group,
                self.storage_account,
                filter=share_name,
                expand="deleted,snapshots",
            ))
        except ResourceNotFoundError as e:
            raise ScopeNotFoundError(share_name, cause=e) from e
        except AzureError as e:
            raise ScopeLookupError(share_name, cause=e) from e

        file_endpoint = account.primary_endpoints.file if account.primary_endpoints else None
        if not file_endpoint:
            raise ScopeLookupError(
                share_name,
                cause=ValueError(f"Storage account {self.storage_account} has no file endpoint"),
            )

        try:
            entries = [self._to_entry(account, file_endpoint, item) for item in items]
        except ValidationError as e:
            raise ScopeLookupError(share_name, cause=e) from e
        logger.debug(f"[azure] {len(entries)} candidate scope(s) for prefix '{share_name}'")
        return entries

    def _to_entry(self, account, file_endpoint: str, item) -> CatalogEntry:
        snapshot = format_snapshot_time(item.snapshot_time) if item.snapshot_time else None
        scope = ShareScope(
            # Stable id per share resource; snapshots differ by endpoint
            file_share_id=uuid.uuid5(uuid.NAMESPACE_URL, (item.id or item.name).lower()),
            data_plane_endpoint=build_endpoint(file_endpoint, item.name, snapshot),
            resource_name=account.name,
            resource_type=ResourceType.STORAGE_ACCOUNT,
            resource_create_time=account.creation_time,
            share_name=item.name,
            is_snapshot=item.snapshot_time is not None,
            snapshot_time=item.snapshot_time,
        )
        return CatalogEntry(scope=scope, deleted=bool(item.deleted))


class AzureDirectoryAdapter(RemoteDirectoryAdapter):
    """Lists directories over FileREST with an OAuth token."""

    def __init__(
        self,
        credential: Optional[TokenCredential] = None,
        page_size: int = DEFAULT_LIST_PAGE_SIZE,
    ):
        self.credential = credential or DefaultAzureCredential()
        self.page_size = page_size
        self._shares: Dict[str, ShareClient] = {}

    def _share_client(self, scope: ShareScope) -> ShareClient:
        client = self._shares.get(scope.data_plane_endpoint)
        if client is None:
            account_url, snapshot = split_endpoint(scope.data_plane_endpoint)
            client = ShareClient(
                account_url=account_url,
                share_name=scope.share_name,
                snapshot=snapshot,
                credential=self.credential,
                token_intent="backup",
            )
            self._shares[scope.data_plane_endpoint] = client
        return client

    def list_directory(self, scope: ShareScope, path: str) -> List[DirectoryItem]:
        directory_path = path.strip("/")
        try:
            directory = self._share_client(scope).get_directory_client(directory_path)
            return [
                DirectoryItem(name=item["name"], is_directory=bool(item["is_directory"]))
                for item in directory.list_directories_and_files(results_per_page=self.page_size)
            ]
        except AzureError as e:
            raise RemoteListingError(scope.data_plane_endpoint, path, cause=e) from e


def build_azure_collaborators(
    subscription_id: str,
    resource_group: str,
    storage_account: str,
    page_size: int = DEFAULT_LIST_PAGE_SIZE,
) -> Tuple[AzureScopeCatalog, AzureDirectoryAdapter]:
    """Catalog and adapter sharing one DefaultAzureCredential."""
    credential = DefaultAzureCredential()
    catalog = AzureScopeCatalog(subscription_id, resource_group, storage_account, credential)
    adapter = AzureDirectoryAdapter(credential, page_size=page_size)
    return catalog, adapter
