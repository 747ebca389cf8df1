"""Exported document bodies — bounded FIFO cache + export service.

Eviction is by insertion order, not by access: re-reading a cached document
does not protect it.  The byte budget holds in the steady state; a single
document larger than the whole budget empties the cache and is stored anyway.
"""

import logging
from collections import OrderedDict

from app.drive_client import DOCUMENT_MIME, TreeClient
from app.errors import TypeMismatchError

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 10 * 1024 * 1024


def _byte_length(content: str) -> int:
    return len(content.encode("utf-8"))


class ContentCache:
    """Node id → exported text, bounded by total UTF-8 size."""

    def __init__(self, max_size: int = DEFAULT_MAX_BYTES) -> None:
        self.max_size = max_size
        self.current_size = 0
        self._entries: OrderedDict[str, str] = OrderedDict()

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        """Cached ids, oldest first."""
        return list(self._entries)

    def get(self, node_id: str) -> str | None:
        return self._entries.get(node_id)

    def put(self, node_id: str, content: str) -> None:
        size = _byte_length(content)

        # replacing an entry re-queues it at the back
        previous = self._entries.pop(node_id, None)
        if previous is not None:
            self.current_size -= _byte_length(previous)

        while self._entries and self.current_size + size > self.max_size:
            oldest_id, oldest = self._entries.popitem(last=False)
            self.current_size -= _byte_length(oldest)
            logger.info("Evicted file with ID: %s from cache.", oldest_id)

        self._entries[node_id] = content
        self.current_size += size
        logger.debug("Added file with ID: %s to cache (%d bytes).", node_id, size)

    def clear(self) -> None:
        self._entries = OrderedDict()
        self.current_size = 0


class DocumentService:
    """Serve Google Docs as HTML, going to Drive only on a cache miss."""

    def __init__(self, client: TreeClient, cache: ContentCache) -> None:
        self._client = client
        self.cache = cache

    async def get_html(self, file_id: str) -> str:
        """Return *file_id* exported as HTML.

        Raises
        ------
        TypeMismatchError – the file is not a Google Docs document.
        NotFoundError     – Drive does not know the file.
        RemoteFetchError  – metadata or export call failed.
        """
        cached = self.cache.get(file_id)
        if cached is not None:
            logger.info("Serving file with ID: %s from cache.", file_id)
            return cached

        logger.info("Fetching file metadata for ID: %s", file_id)
        metadata = await self._client.get_metadata(file_id)
        if metadata.mime_type != DOCUMENT_MIME:
            raise TypeMismatchError(
                f"File with ID {file_id} is not a Google Docs document."
            )

        content = await self._client.export_document(file_id)
        self.cache.put(file_id, content)
        return content
