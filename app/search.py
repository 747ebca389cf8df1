"""Name search over the cached Drive tree.

Search never fetches: it runs against whatever the structure cache currently
holds and reports ``CacheUnavailableError`` when nothing has been cached yet,
so callers can tell "try again later" apart from "no matches".

Matching
--------
Case-insensitive substring match on *file* names.  Folders are descended
into, never returned.

Labels
------
* ``topic``       – name of the nearest enclosing named folder (``"Root"`` for
                    files directly below the root).
* ``folder_path`` – enclosing folder names from the root, joined with ``/``.
                    A file placed under several folders is reported once per
                    placement, each with its own path.
"""

import logging
from dataclasses import dataclass

from app.errors import CacheUnavailableError
from app.tree import DriveTree

logger = logging.getLogger(__name__)

ROOT_TOPIC = "Root"
PATH_SEPARATOR = "/"


@dataclass(frozen=True)
class SearchResult:
    name: str
    node_id: str
    url: str
    topic: str
    folder_path: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "fileId": self.node_id,
            "url": self.url,
            "topic": self.topic,
            "folder": self.folder_path,
        }


def search_tree(query: str, tree: DriveTree | None) -> list[SearchResult]:
    """Return every file in *tree* whose name contains *query*.

    Results follow depth-first tree order.

    Raises
    ------
    CacheUnavailableError – *tree* is absent or has no root items.
    """
    if tree is None or not tree.roots:
        raise CacheUnavailableError()

    needle = query.lower()
    results: list[SearchResult] = []

    stack: list[tuple[str, str, tuple[str, ...]]] = [
        (rid, ROOT_TOPIC, ()) for rid in reversed(tree.roots)
    ]
    while stack:
        node_id, topic, path = stack.pop()
        record = tree.nodes[node_id]
        if record.is_folder:
            if record.child_ids:
                child_topic = record.name or topic
                child_path = path + (record.name,) if record.name else path
                stack.extend(
                    (cid, child_topic, child_path) for cid in reversed(record.child_ids)
                )
            continue
        if record.name and needle in record.name.lower():
            results.append(
                SearchResult(
                    name=record.name,
                    node_id=record.id,
                    url=record.link or "",
                    topic=topic,
                    folder_path=PATH_SEPARATOR.join(path),
                )
            )

    logger.debug("Search %r matched %d file(s)", needle, len(results))
    return results
