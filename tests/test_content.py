"""Tests for app.content — FIFO byte-budget cache and document export."""

import asyncio

import pytest

from app.content import ContentCache, DocumentService
from app.drive_client import RemoteNode
from app.errors import NotFoundError, TypeMismatchError
from tests.fakes import FakeTreeClient, doc


# ════════════════════════════════════════════════════════════════════════════════
# ContentCache
# ════════════════════════════════════════════════════════════════════════════════


class TestEviction:
    def test_oldest_evicted_to_make_room(self):
        cache = ContentCache(max_size=10)
        cache.put("A", "x" * 6)
        cache.put("B", "y" * 6)
        assert cache.keys() == ["B"]
        assert cache.current_size == 6

    def test_evicts_only_what_is_needed(self):
        cache = ContentCache(max_size=10)
        cache.put("A", "aaa")
        cache.put("B", "bbb")
        cache.put("C", "ccc")
        cache.put("D", "dd")
        assert cache.keys() == ["B", "C", "D"]
        assert cache.current_size == 8

    def test_budget_holds_after_many_inserts(self):
        cache = ContentCache(max_size=100)
        for i in range(50):
            cache.put(f"id{i}", "z" * (i % 17 + 1))
            assert cache.current_size <= 100

    def test_fifo_not_lru(self):
        cache = ContentCache(max_size=6)
        cache.put("A", "aaa")
        cache.put("B", "bbb")
        assert cache.get("A") == "aaa"  # reading does not refresh A
        cache.put("C", "ccc")
        assert "A" not in cache
        assert cache.keys() == ["B", "C"]

    def test_oversized_item_empties_cache_and_is_kept(self):
        cache = ContentCache(max_size=10)
        cache.put("A", "aaaa")
        cache.put("BIG", "b" * 25)
        assert cache.keys() == ["BIG"]
        assert cache.current_size == 25

    def test_size_is_utf8_bytes(self):
        cache = ContentCache(max_size=100)
        cache.put("A", "é€")
        assert cache.current_size == 5

    def test_replacing_key_does_not_double_count(self):
        cache = ContentCache(max_size=100)
        cache.put("A", "aaaa")
        cache.put("B", "bb")
        cache.put("A", "a")
        assert cache.current_size == 3
        assert cache.keys() == ["B", "A"]

    def test_clear(self):
        cache = ContentCache(max_size=100)
        cache.put("A", "aaaa")
        cache.clear()
        assert len(cache) == 0
        assert cache.current_size == 0
        assert cache.get("A") is None


# ════════════════════════════════════════════════════════════════════════════════
# DocumentService
# ════════════════════════════════════════════════════════════════════════════════


@pytest.fixture()
def client() -> FakeTreeClient:
    client = FakeTreeClient()
    client.documents["D1"] = "<h1>Heart</h1>"
    client.nodes.append(
        RemoteNode(id="P1", mime_type="application/pdf", name="scan.pdf", parents=("F1",))
    )
    return client


class TestDocumentService:
    def test_exports_and_caches(self, client):
        service = DocumentService(client, ContentCache(1024))
        assert asyncio.run(service.get_html("D1")) == "<h1>Heart</h1>"
        assert asyncio.run(service.get_html("D1")) == "<h1>Heart</h1>"
        assert client.count("export_document") == 1
        assert client.count("get_metadata") == 1
        assert "D1" in service.cache

    def test_non_document_is_rejected(self, client):
        service = DocumentService(client, ContentCache(1024))
        with pytest.raises(TypeMismatchError):
            asyncio.run(service.get_html("P1"))
        assert client.count("export_document") == 0
        assert "P1" not in service.cache

    def test_folder_is_rejected(self, client):
        service = DocumentService(client, ContentCache(1024))
        with pytest.raises(TypeMismatchError):
            asyncio.run(service.get_html("F1"))

    def test_unknown_file(self, client):
        service = DocumentService(client, ContentCache(1024))
        with pytest.raises(NotFoundError):
            asyncio.run(service.get_html("nope"))

    def test_export_respects_budget(self, client):
        client.nodes.append(doc("D7", "Big.docx", "F1"))
        client.documents["D7"] = "x" * 20
        service = DocumentService(client, ContentCache(24))
        asyncio.run(service.get_html("D1"))
        asyncio.run(service.get_html("D7"))
        assert service.cache.keys() == ["D7"]
