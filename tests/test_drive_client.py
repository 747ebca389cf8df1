"""Tests for app.drive_client — pagination, error mapping, auth headers."""

import asyncio
from pathlib import Path

import httpx
import pytest

from app.drive_client import DOCUMENT_MIME, FOLDER_MIME, DriveClient, RemoteNode
from app.errors import ConfigurationError, NotFoundError, RemoteFetchError


class FakeCredentials:
    def __init__(self, valid: bool = True) -> None:
        self.valid = valid
        self.token = "tok-1" if valid else None
        self.refreshed = 0

    def refresh(self, _request) -> None:
        self.refreshed += 1
        self.valid = True
        self.token = f"tok-{self.refreshed + 1}"


def _client(handler, credentials=None) -> DriveClient:
    return DriveClient(
        credentials or FakeCredentials(), transport=httpx.MockTransport(handler)
    )


def _run(client: DriveClient, coro_fn):
    async def scenario():
        try:
            return await coro_fn(client)
        finally:
            await client.aclose()

    return asyncio.run(scenario())


# ════════════════════════════════════════════════════════════════════════════════
# Listing
# ════════════════════════════════════════════════════════════════════════════════


class TestListAll:
    def test_follows_page_tokens(self):
        pages = {
            None: {"files": [{"id": "a", "mimeType": FOLDER_MIME, "parents": ["r"]}],
                   "nextPageToken": "p2"},
            "p2": {"files": [{"id": "b", "mimeType": DOCUMENT_MIME, "name": "B"}],
                   "nextPageToken": "p3"},
            "p3": {"files": []},
        }
        seen: list[str | None] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/drive/v3/files"
            assert request.url.params["q"] == "trashed = false"
            assert request.headers["Authorization"] == "Bearer tok-1"
            token = request.url.params.get("pageToken")
            seen.append(token)
            return httpx.Response(200, json=pages[token])

        nodes = _run(_client(handler), lambda c: c.list_all())

        assert seen == [None, "p2", "p3"]
        assert [n.id for n in nodes] == ["a", "b"]
        assert nodes[0].is_folder
        assert nodes[0].parents == ("r",)
        assert nodes[1].parents == ()

    def test_server_error_is_remote_fetch_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        with pytest.raises(RemoteFetchError) as exc:
            _run(_client(handler), lambda c: c.list_all())
        assert exc.value.status_code == 502

    def test_timeout_is_remote_fetch_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(RemoteFetchError):
            _run(_client(handler), lambda c: c.list_all())


class TestListChildren:
    def test_single_page_query(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(
                200,
                json={"files": [{"id": "c", "mimeType": DOCUMENT_MIME,
                                 "webViewLink": "https://view/c"}],
                      "nextPageToken": "ignored"},
            )

        nodes = _run(_client(handler), lambda c: c.list_children("F'1"))

        assert len(calls) == 1
        assert calls[0].url.params["q"] == "'F\\'1' in parents and trashed = false"
        assert nodes == [RemoteNode(id="c", mime_type=DOCUMENT_MIME,
                                    web_view_link="https://view/c")]

    def test_not_found(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": {"message": "File not found"}})

        with pytest.raises(NotFoundError):
            _run(_client(handler), lambda c: c.list_children("missing"))


# ════════════════════════════════════════════════════════════════════════════════
# Metadata / export / auth
# ════════════════════════════════════════════════════════════════════════════════


class TestExport:
    def test_metadata_and_export(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/drive/v3/files/D1":
                return httpx.Response(
                    200, json={"id": "D1", "name": "Heart", "mimeType": DOCUMENT_MIME}
                )
            assert request.url.path == "/drive/v3/files/D1/export"
            assert request.url.params["mimeType"] == "text/html"
            return httpx.Response(200, text="<p>beat</p>")

        async def both(client: DriveClient):
            return await client.get_metadata("D1"), await client.export_document("D1")

        meta, html = _run(_client(handler), both)
        assert meta.mime_type == DOCUMENT_MIME
        assert meta.name == "Heart"
        assert html == "<p>beat</p>"


class TestAuth:
    def test_expired_credentials_are_refreshed(self):
        credentials = FakeCredentials(valid=False)

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer tok-2"
            return httpx.Response(200, json={"files": []})

        _run(_client(handler, credentials), lambda c: c.list_all())
        assert credentials.refreshed == 1

    def test_bad_key_file_is_configuration_error(self, tmp_path: Path):
        key = tmp_path / "key.json"
        key.write_text("{not json")
        with pytest.raises(ConfigurationError):
            DriveClient.from_key_file(key)

    def test_missing_key_file_is_configuration_error(self, tmp_path: Path):
        with pytest.raises(ConfigurationError):
            DriveClient.from_key_file(tmp_path / "absent.json")
