"""Google Drive v3 client — the remote side of the mirror.

Only the four calls the caches need are implemented:

* ``list_all()``          – every non-trashed file visible to the account,
                            accumulated across ``nextPageToken`` pages.
* ``list_children(id)``   – one page of a folder's immediate children.
* ``get_metadata(id)``    – id / name / mimeType of a single file.
* ``export_document(id)`` – a Google Docs document exported as HTML.

HTTP 404 surfaces as ``NotFoundError``; every other HTTP or transport failure
(including timeouts) surfaces as ``RemoteFetchError``.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import httpx
from google.auth.transport.requests import Request as AuthRequest
from google.oauth2 import service_account

from app.errors import ConfigurationError, NotFoundError, RemoteFetchError

logger = logging.getLogger(__name__)

DRIVE_API = "https://www.googleapis.com/drive/v3"
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.readonly"]

FOLDER_MIME = "application/vnd.google-apps.folder"
DOCUMENT_MIME = "application/vnd.google-apps.document"

_PAGE_SIZE = 1000
_LIST_FIELDS = "nextPageToken, files(id, name, mimeType, parents, webViewLink, webContentLink)"
_CHILD_FIELDS = "files(id, name, mimeType, parents, webViewLink, webContentLink)"


@dataclass(frozen=True)
class RemoteNode:
    """One file or folder as reported by Drive."""

    id: str
    mime_type: str
    name: str | None = None
    parents: tuple[str, ...] = field(default=())
    web_view_link: str | None = None
    web_content_link: str | None = None

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RemoteNode":
        return cls(
            id=data["id"],
            mime_type=data.get("mimeType", ""),
            name=data.get("name"),
            parents=tuple(data.get("parents") or ()),
            web_view_link=data.get("webViewLink"),
            web_content_link=data.get("webContentLink"),
        )


class TreeClient(Protocol):
    """What the caches need from the remote tree."""

    async def list_all(self) -> list[RemoteNode]:
        ...

    async def list_children(self, folder_id: str) -> list[RemoteNode]:
        ...

    async def get_metadata(self, file_id: str) -> RemoteNode:
        ...

    async def export_document(self, file_id: str) -> str:
        ...


def _quote(value: str) -> str:
    """Escape *value* for use inside a single-quoted Drive query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:
    """Async Drive client authenticated with a service-account key."""

    def __init__(
        self,
        credentials: Any,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._credentials = credentials
        self._http = httpx.AsyncClient(
            base_url=DRIVE_API, timeout=timeout, transport=transport
        )

    @classmethod
    def from_key_file(cls, key_path: Path, *, timeout: float = 30.0) -> "DriveClient":
        """Build a client from a service-account JSON key file.

        Raises
        ------
        ConfigurationError – the key file is missing or malformed.
        """
        try:
            credentials = service_account.Credentials.from_service_account_file(
                str(key_path), scopes=DRIVE_SCOPES
            )
        except (OSError, ValueError) as exc:
            raise ConfigurationError(
                f"Cannot load Drive credentials from {key_path}: {exc}"
            ) from exc
        return cls(credentials, timeout=timeout)

    async def aclose(self) -> None:
        await self._http.aclose()

    # ── transport ────────────────────────────────────────────────────────

    async def _auth_headers(self) -> dict[str, str]:
        if not self._credentials.valid:
            # google-auth refresh is blocking; keep it off the event loop
            await asyncio.to_thread(self._credentials.refresh, AuthRequest())
        return {"Authorization": f"Bearer {self._credentials.token}"}

    async def _get(self, path: str, params: dict[str, Any]) -> httpx.Response:
        try:
            headers = await self._auth_headers()
            response = await self._http.get(path, params=params, headers=headers)
        except httpx.TimeoutException as exc:
            raise RemoteFetchError(f"Drive request timed out: {path}") from exc
        except httpx.HTTPError as exc:
            raise RemoteFetchError(f"Drive request failed: {path}: {exc}") from exc

        if response.status_code == 404:
            raise NotFoundError(f"Drive item not found: {path}")
        if response.is_error:
            logger.warning(
                "Drive call %s failed with %d: %s",
                path, response.status_code, response.text[:200],
            )
            raise RemoteFetchError(
                f"Drive request failed: {path} ({response.status_code})"
            )
        return response

    # ── public API ───────────────────────────────────────────────────────

    async def list_all(self) -> list[RemoteNode]:
        """Return every non-trashed node, following pagination to the end."""
        nodes: list[RemoteNode] = []
        page_token: str | None = None
        pages = 0
        while True:
            params: dict[str, Any] = {
                "q": "trashed = false",
                "fields": _LIST_FIELDS,
                "pageSize": _PAGE_SIZE,
            }
            if page_token:
                params["pageToken"] = page_token
            payload = (await self._get("/files", params)).json()
            nodes.extend(RemoteNode.from_api(f) for f in payload.get("files") or [])
            pages += 1
            page_token = payload.get("nextPageToken")
            if not page_token:
                break
        logger.info("Listed %d Drive nodes in %d page(s)", len(nodes), pages)
        return nodes

    async def list_children(self, folder_id: str) -> list[RemoteNode]:
        """Return a single page of *folder_id*'s immediate children."""
        params = {
            "q": f"'{_quote(folder_id)}' in parents and trashed = false",
            "fields": _CHILD_FIELDS,
            "pageSize": _PAGE_SIZE,
        }
        payload = (await self._get("/files", params)).json()
        return [RemoteNode.from_api(f) for f in payload.get("files") or []]

    async def get_metadata(self, file_id: str) -> RemoteNode:
        response = await self._get(f"/files/{file_id}", {"fields": "id, name, mimeType"})
        return RemoteNode.from_api(response.json())

    async def export_document(self, file_id: str) -> str:
        response = await self._get(f"/files/{file_id}/export", {"mimeType": "text/html"})
        return response.text
