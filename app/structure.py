"""Structure cache — the mirrored Drive tree and its refresh policy.

States
------
* empty   – ``tree is None`` (process start, after ``invalidate()``).
* fresh   – younger than the refresh interval; reads are served as-is.
* stale   – older; the next ``get_structure()`` rebuilds it.

A full rebuild lists every Drive node (many pages) and builds the tree from
the configured root.  The new tree is computed completely before it replaces
the old one, so a failed rebuild leaves the previous state untouched.
Concurrent callers that find the cache stale share one in-flight rebuild.

``get_folder_contents()`` can patch a single folder in place with a one-level
listing; that patch does not touch ``fetched_at``.
"""

import asyncio
import logging
import time
from typing import Callable

from app.content import ContentCache
from app.drive_client import TreeClient
from app.tree import DriveTree, TreeNode, build_tree, flat_records

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 15 * 60  # seconds


class StructureCache:
    def __init__(
        self,
        client: TreeClient,
        root_folder_id: str,
        content_cache: ContentCache,
        *,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self.root_folder_id = root_folder_id
        self.content_cache = content_cache
        self.refresh_interval = refresh_interval
        self._clock = clock

        self.tree: DriveTree | None = None
        self.fetched_at: float | None = None
        self._pending: asyncio.Task | None = None

    # ── freshness ────────────────────────────────────────────────────────

    def is_fresh(self) -> bool:
        if self.tree is None or self.fetched_at is None:
            return False
        return self._clock() - self.fetched_at < self.refresh_interval

    # ── full rebuild ─────────────────────────────────────────────────────

    async def _fetch_tree(self) -> tuple[DriveTree, float]:
        started = self._clock()
        nodes = await self._client.list_all()
        tree = build_tree(nodes, self.root_folder_id)
        logger.info(
            "Built Drive tree: %d nodes under %d root item(s)",
            len(tree), len(tree.roots),
        )
        return tree, started

    async def _shared_rebuild(self) -> tuple[DriveTree, float]:
        task = self._pending
        if task is None or task.done():
            task = asyncio.ensure_future(self._fetch_tree())
            self._pending = task
        try:
            # shield: one cancelled caller must not abort the others' rebuild
            return await asyncio.shield(task)
        finally:
            if self._pending is task and task.done():
                self._pending = None

    # ── public API ───────────────────────────────────────────────────────

    async def get_structure(self) -> DriveTree:
        """Return the cached tree, rebuilding it when absent or stale."""
        if self.is_fresh():
            return self.tree

        logger.info("Refreshing root folder structure cache...")
        tree, fetched_at = await self._shared_rebuild()
        # a refresh_cache() that finished meanwhile holds a newer tree
        if self.fetched_at is None or fetched_at >= self.fetched_at:
            self.tree, self.fetched_at = tree, fetched_at
        return self.tree

    def get_cached_structure(self) -> DriveTree | None:
        """Return whatever is cached right now; never fetches."""
        return self.tree

    async def get_folder_contents(self, folder_id: str) -> list[TreeNode]:
        """Return one level of *folder_id*'s children.

        Served from the cache when the folder is cached and expanded (a cached
        file has no children and yields an empty list);
        otherwise the folder's immediate children are listed from Drive and,
        if the folder is in the cached tree, patched into it.
        """
        tree = self.tree
        if tree is not None:
            record = tree.get(folder_id)
            if record is not None and record.expanded:
                logger.info("Found folder contents for folder ID: %s in cache.", folder_id)
                return tree.nested(record.child_ids, depth=1)

        logger.info("Fetching contents of folder ID: %s from Google Drive.", folder_id)
        records = flat_records(await self._client.list_children(folder_id))

        # the tree may have been swapped or invalidated while we were waiting
        tree = self.tree
        if tree is not None and folder_id in tree:
            tree.replace_children(folder_id, records)
            logger.info("Patched %d child(ren) into folder %s", len(records), folder_id)
            return tree.nested([r.id for r in records], depth=1)
        return DriveTree(nodes={r.id: r for r in records}).nested(
            [r.id for r in records], depth=1
        )

    async def refresh_cache(self) -> dict:
        """Rebuild the tree unconditionally and drop every cached document."""
        logger.info("Refreshing entire cache...")
        tree, fetched_at = await self._fetch_tree()
        # no await between these: readers never see a half-refreshed cache
        self.tree, self.fetched_at = tree, fetched_at
        self.content_cache.clear()
        logger.info("Cache refreshed successfully.")
        return {"message": "Cache refreshed successfully."}

    def invalidate(self) -> None:
        """Forget the tree; the next ``get_structure()`` rebuilds it."""
        self.tree = None
        self.fetched_at = None
        logger.info("Cache invalidated.")
