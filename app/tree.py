"""Drive tree model and hierarchy builder.

The cached tree is an arena: a ``DriveTree`` maps every node id to a
``NodeRecord`` holding the ids of its children, plus the ordered list of
root ids (the children of the configured root folder).  Replacing one
folder's children is therefore a single record update.

Expansion
---------
Folders built by a full listing know all of their children.  Folders that
only appeared as the children of a partial refresh have never been listed;
they are ``NOT_EXPANDED`` and must not be mistaken for empty folders.

Ordering
--------
Children keep the relative order in which Drive returned them.  Nothing is
re-sorted.

Sharing
-------
A node with several parents appears under each of them.  The arena holds
one record per id, so every placement refers to the same record.

All walks use explicit stacks; tree depth is bounded only by Drive.
"""

from collections import defaultdict, deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator

from app.drive_client import RemoteNode


class NodeKind(str, Enum):
    FOLDER = "folder"
    FILE = "file"


class ExpansionState(Enum):
    NOT_EXPANDED = "not_expanded"
    EMPTY = "empty"
    POPULATED = "populated"


@dataclass
class NodeRecord:
    """One arena entry."""

    id: str
    kind: NodeKind
    name: str | None = None
    link: str | None = None
    child_ids: list[str] = field(default_factory=list)
    expanded: bool = True

    @property
    def is_folder(self) -> bool:
        return self.kind is NodeKind.FOLDER

    @property
    def state(self) -> ExpansionState:
        if not self.expanded:
            return ExpansionState.NOT_EXPANDED
        return ExpansionState.POPULATED if self.child_ids else ExpansionState.EMPTY


@dataclass
class TreeNode:
    """Nested view of a node, as handed to consumers."""

    id: str
    kind: NodeKind
    name: str | None = None
    link: str | None = None
    children: list["TreeNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name or "",
            "type": self.kind.value,
            "link": self.link,
            "contents": [child.to_dict() for child in self.children],
        }


def record_from_remote(remote: RemoteNode, *, expanded: bool = True) -> NodeRecord:
    """Map a Drive node onto an arena record (no children yet)."""
    kind = NodeKind.FOLDER if remote.is_folder else NodeKind.FILE
    return NodeRecord(
        id=remote.id,
        kind=kind,
        name=remote.name,
        link=remote.web_view_link or remote.web_content_link or None,
        # files have nothing to expand
        expanded=expanded or kind is NodeKind.FILE,
    )


class DriveTree:
    """Arena of ``NodeRecord`` addressed by id."""

    def __init__(self, roots: list[str] | None = None,
                 nodes: dict[str, NodeRecord] | None = None) -> None:
        self.roots: list[str] = roots if roots is not None else []
        self.nodes: dict[str, NodeRecord] = nodes if nodes is not None else {}

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, node_id: str) -> NodeRecord | None:
        return self.nodes.get(node_id)

    def children(self, node_id: str) -> list[NodeRecord]:
        return [self.nodes[cid] for cid in self.nodes[node_id].child_ids]

    def root_records(self) -> list[NodeRecord]:
        return [self.nodes[rid] for rid in self.roots]

    def walk(self) -> Iterator[NodeRecord]:
        """Yield every placement in depth-first pre-order.

        A record shared by several parents is yielded once per parent.
        """
        stack = list(reversed(self.roots))
        while stack:
            record = self.nodes[stack.pop()]
            yield record
            stack.extend(reversed(record.child_ids))

    def reachable_ids(self) -> set[str]:
        """Ids of every record reachable from the roots."""
        seen: set[str] = set()
        stack = list(self.roots)
        while stack:
            node_id = stack.pop()
            if node_id in seen:
                continue
            seen.add(node_id)
            stack.extend(self.nodes[node_id].child_ids)
        return seen

    def reaches(self, start: str, target: str) -> bool:
        """True when *target* is *start* or one of its descendants."""
        seen: set[str] = set()
        stack = [start]
        while stack:
            node_id = stack.pop()
            if node_id == target:
                return True
            if node_id in seen or node_id not in self.nodes:
                continue
            seen.add(node_id)
            stack.extend(self.nodes[node_id].child_ids)
        return False

    def nested(self, ids: Iterable[str] | None = None, *, depth: int | None = None) -> list[TreeNode]:
        """Materialise nested ``TreeNode``s below *ids* (default: the roots).

        *depth* limits how many levels are expanded; ``depth=1`` returns the
        given nodes with empty ``children``.
        """
        top = [self._shallow(i) for i in (self.roots if ids is None else ids)]
        stack: list[tuple[TreeNode, int]] = [(node, 1) for node in top]
        while stack:
            node, level = stack.pop()
            if depth is not None and level >= depth:
                continue
            for cid in self.nodes[node.id].child_ids:
                child = self._shallow(cid)
                node.children.append(child)
                stack.append((child, level + 1))
        return top

    def replace_children(self, folder_id: str, records: list[NodeRecord]) -> None:
        """Swap *folder_id*'s children for *records* and mark it expanded.

        Records of the replaced sub-tree are dropped from the arena so that
        lookups never hit stale descendants.  Records still placed under
        another parent are kept.
        """
        folder = self.nodes[folder_id]
        stale: set[str] = set()
        stack = list(folder.child_ids)
        while stack:
            node_id = stack.pop()
            if node_id in stale:
                continue
            stale.add(node_id)
            stack.extend(self.nodes[node_id].child_ids)

        for record in records:
            self.nodes[record.id] = record
        # one assignment: readers see either the old or the new list
        folder.child_ids = [record.id for record in records]
        folder.expanded = True

        stale -= self.reachable_ids() | {record.id for record in records}
        for node_id in stale:
            del self.nodes[node_id]

    def _shallow(self, node_id: str) -> TreeNode:
        record = self.nodes[node_id]
        return TreeNode(id=record.id, kind=record.kind, name=record.name, link=record.link)


# ── builder ──────────────────────────────────────────────────────────────────


def build_tree(nodes: list[RemoteNode], parent_id: str) -> DriveTree:
    """Build the tree below *parent_id* from a flat Drive listing.

    Nodes are indexed by parent once.  Folders are expanded breadth-first in
    listing order, each exactly once.  A node with several parents is placed
    under every one of them, except where the placement would make a folder
    its own descendant.
    """
    by_parent: dict[str, list[RemoteNode]] = defaultdict(list)
    for node in nodes:
        for parent in dict.fromkeys(node.parents):
            by_parent[parent].append(node)

    tree = DriveTree()
    pending: deque[tuple[str, list[str]]] = deque([(parent_id, tree.roots)])
    while pending:
        current, child_ids = pending.popleft()
        for remote in by_parent.get(current, ()):
            if remote.id == parent_id:
                continue
            if remote.id in tree.nodes:
                if remote.id not in child_ids and not tree.reaches(remote.id, current):
                    child_ids.append(remote.id)
                continue
            record = record_from_remote(remote)
            tree.nodes[remote.id] = record
            child_ids.append(remote.id)
            if record.is_folder:
                pending.append((remote.id, record.child_ids))
    return tree


def flat_records(nodes: list[RemoteNode]) -> list[NodeRecord]:
    """Records for one folder listing; child folders stay unexpanded."""
    return [record_from_remote(node, expanded=False) for node in nodes]
