"""
Google Drive Remote Store Implementation

DESIGN DECISION: Google Drive is used as the remote store because:
1. Every user already has one, no server to run
2. The appDataFolder gives a private per-app document
3. Regular files can be shared with exactly one other account
4. Permission grants are a single API call

TRADEOFFS:
- No conditional writes are used: overwrites are last-writer-wins
- Search by name can return several files; the first one is used
- Shared-with-me search cannot prove who a stranger's file belongs to
  beyond the owner list Drive reports

Every response is validated against a pydantic schema before use, so
an unexpected payload surfaces as RemoteSchemaError rather than a
KeyError deep inside the merge.
"""

import asyncio
import json
from typing import Any, Optional
from uuid import uuid4

import google.auth.credentials
import google.auth.exceptions
import httpx
import structlog
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from expense_sync.config import DriveSettings, get_settings
from expense_sync.models.transaction import Transaction, transactions_to_wire
from expense_sync.services.storage.interface import (
    DriveScope,
    RemoteNotFoundError,
    RemoteSchemaError,
    RemoteStoreError,
    RemoteStoreInterface,
    SharedFile,
)
from expense_sync.services.storage.transactions import parse_transactions


logger = structlog.get_logger(__name__)

DRIVE_SCOPES = [
    "https://www.googleapis.com/auth/drive.appdata",
    "https://www.googleapis.com/auth/drive.file",
]


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class DriveOwner(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    email_address: Optional[str] = Field(default=None, alias="emailAddress")
    display_name: Optional[str] = Field(default=None, alias="displayName")


class DriveFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = ""
    trashed: bool = False
    owners: list[DriveOwner] = Field(default_factory=list)


class DriveFileList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    files: list[DriveFile] = Field(default_factory=list)


class DriveErrorDetail(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: Optional[int] = None
    message: str = ""


class DriveErrorBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    error: DriveErrorDetail


# =============================================================================
# QUERY HELPERS
# =============================================================================

def _quote(value: str) -> str:
    """Escape a literal for the Drive query language."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def build_query(name: str, scope: DriveScope) -> str:
    """Drive search expression for an exact name within a scope."""
    base = f"name='{_quote(name)}'"
    if scope == DriveScope.APP_DATA:
        return f"{base} and 'appDataFolder' in parents and trashed=false"
    if scope == DriveScope.SHARED_WITH_ME:
        return f"{base} and sharedWithMe=true and trashed=false"
    return f"{base} and 'me' in owners and trashed=false"


def build_multipart_body(metadata: dict[str, Any], content: Any) -> tuple[bytes, str]:
    """
    Build a multipart/related upload body.

    Returns:
        (body, content_type_header)
    """
    boundary = f"expense_sync_{uuid4().hex}"
    body = (
        f"--{boundary}\r\n"
        "Content-Type: application/json; charset=UTF-8\r\n\r\n"
        f"{json.dumps(metadata)}\r\n"
        f"--{boundary}\r\n"
        "Content-Type: application/json\r\n\r\n"
        f"{json.dumps(content)}\r\n"
        f"--{boundary}--\r\n"
    )
    return body.encode("utf-8"), f"multipart/related; boundary={boundary}"


class GoogleDriveClient(RemoteStoreInterface):
    """
    Drive v3 REST client over httpx.

    Authorization is either a bearer token obtained by the app's sign-in
    flow, or google-auth credentials (a service account file from
    DriveSettings) that are refreshed when expired.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        credentials: Optional[google.auth.credentials.Credentials] = None,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[DriveSettings] = None,
    ):
        self._settings = settings or get_settings().drive
        self._access_token = access_token
        self._credentials = credentials
        self._client = client

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._settings.request_timeout_seconds,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    def _load_credentials(self) -> google.auth.credentials.Credentials:
        if self._credentials is None:
            path = self._settings.credentials_path
            if not path:
                raise RemoteStoreError("No Drive access token or credentials configured")
            try:
                self._credentials = service_account.Credentials.from_service_account_file(
                    path,
                    scopes=DRIVE_SCOPES,
                )
            except (OSError, ValueError) as e:
                raise RemoteStoreError(f"Failed to load Drive credentials: {e}")
        return self._credentials

    async def _auth_headers(self) -> dict[str, str]:
        if self._access_token:
            return {"Authorization": f"Bearer {self._access_token}"}

        credentials = self._load_credentials()
        if not credentials.valid:
            try:
                await asyncio.to_thread(credentials.refresh, Request())
            except google.auth.exceptions.GoogleAuthError as e:
                raise RemoteStoreError(f"Failed to refresh Drive credentials: {e}")
        return {"Authorization": f"Bearer {credentials.token}"}

    # -------------------------------------------------------------------------
    # Request plumbing
    # -------------------------------------------------------------------------

    @staticmethod
    def _error_reason(response: httpx.Response) -> str:
        """Prefer Drive's own error message over the status phrase."""
        try:
            body = DriveErrorBody.model_validate(response.json())
            if body.error.message:
                return body.error.message
        except (ValueError, ValidationError):
            pass
        return response.reason_phrase or f"HTTP {response.status_code}"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[dict[str, str]] = None,
        json_body: Optional[dict[str, Any]] = None,
        content: Optional[bytes] = None,
        content_type: Optional[str] = None,
    ) -> httpx.Response:
        headers = await self._auth_headers()
        if content_type:
            headers["Content-Type"] = content_type

        try:
            response = await self._get_client().request(
                method,
                url,
                params=params,
                json=json_body,
                content=content,
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"Drive request failed: {e}")

        if response.status_code == 404:
            raise RemoteNotFoundError(self._error_reason(response), 404)
        if not response.is_success:
            raise RemoteStoreError(self._error_reason(response), response.status_code)
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RemoteSchemaError(f"Drive returned invalid JSON: {e}")

    def _parse(self, model: type[BaseModel], response: httpx.Response):
        try:
            return model.model_validate(self._json(response))
        except ValidationError as e:
            raise RemoteSchemaError(f"Unexpected Drive response: {e}")

    @property
    def _files_url(self) -> str:
        return f"{self._settings.api_base}/files"

    @property
    def _upload_url(self) -> str:
        return f"{self._settings.upload_base}/files"

    async def _search(self, name: str, scope: DriveScope, fields: str) -> list[DriveFile]:
        params = {"q": build_query(name, scope), "fields": fields}
        if scope == DriveScope.APP_DATA:
            params["spaces"] = "appDataFolder"
        response = await self._request("GET", self._files_url, params=params)
        return self._parse(DriveFileList, response).files

    # -------------------------------------------------------------------------
    # RemoteStoreInterface
    # -------------------------------------------------------------------------

    async def find_file(self, name: str, scope: DriveScope) -> Optional[str]:
        files = await self._search(name, scope, "files(id,name)")
        if not files:
            return None
        return files[0].id

    async def create_file(
        self,
        name: str,
        scope: DriveScope,
        content: list[Transaction],
    ) -> str:
        if scope == DriveScope.SHARED_WITH_ME:
            raise RemoteStoreError("Cannot create a file in another user's scope")

        metadata: dict[str, Any] = {"name": name, "mimeType": "application/json"}
        if scope == DriveScope.APP_DATA:
            metadata["parents"] = ["appDataFolder"]

        body, content_type = build_multipart_body(metadata, transactions_to_wire(content))
        response = await self._request(
            "POST",
            self._upload_url,
            params={"uploadType": "multipart", "fields": "id"},
            content=body,
            content_type=content_type,
        )
        created = self._parse(DriveFile, response)
        logger.info("drive_file_created", name=name, scope=scope.value, file_id=created.id)
        return created.id

    async def read_file(self, handle: str) -> list[Transaction]:
        response = await self._request(
            "GET",
            f"{self._files_url}/{handle}",
            params={"alt": "media"},
        )
        if not response.content:
            return []
        data = self._json(response)
        if data is None:
            return []
        try:
            return parse_transactions(data, source=f"drive:{handle}")
        except ValidationError as e:
            raise RemoteSchemaError(f"Document {handle} is not a transaction list: {e}")

    async def overwrite_file(self, handle: str, content: list[Transaction]) -> bool:
        await self._request(
            "PATCH",
            f"{self._upload_url}/{handle}",
            params={"uploadType": "media"},
            content=json.dumps(transactions_to_wire(content)).encode("utf-8"),
            content_type="application/json",
        )
        return True

    async def grant_reader_permission(self, handle: str, email: str) -> bool:
        await self._request(
            "POST",
            f"{self._files_url}/{handle}/permissions",
            json_body={
                "role": "reader",
                "type": "user",
                "emailAddress": email,
            },
        )
        return True

    async def list_shared_with_me(self, name: str) -> list[SharedFile]:
        files = await self._search(
            name,
            DriveScope.SHARED_WITH_ME,
            "files(id,name,owners)",
        )
        return [
            SharedFile(
                handle=f.id,
                name=f.name,
                owner_emails=[o.email_address for o in f.owners if o.email_address],
            )
            for f in files
        ]

    async def file_exists(self, handle: str) -> bool:
        try:
            response = await self._request(
                "GET",
                f"{self._files_url}/{handle}",
                params={"fields": "id,trashed"},
            )
        except RemoteNotFoundError:
            return False
        return not self._parse(DriveFile, response).trashed
