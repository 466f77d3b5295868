"""
Parent/child tree reconstruction for content items.

Records reference their parent through ``parentId``. A reference that does
not resolve inside the working set makes the record a root. Parent loops
are rejected with HierarchyCycleError. All walks are iterative so deep
trees cannot exhaust the interpreter stack.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from jobfinder_sync.exceptions import HierarchyCycleError
from jobfinder_sync.models.firestore_types import ContentItemDoc
from jobfinder_sync.models.util_types import ContentItemStats

_VISITING = 1
_DONE = 2


@dataclass
class ContentItemNode:
    """A content item with its ordered children."""
    item: ContentItemDoc
    children: List["ContentItemNode"] = field(default_factory=list)

    @property
    def id(self) -> Optional[str]:
        return self.item.id

    @property
    def order(self) -> int:
        return self.item.order

    @property
    def type(self) -> str:
        return self.item.type


def _order_key(node: ContentItemNode) -> int:
    return node.order


def _check_cycles(index: Dict[str, ContentItemNode]) -> None:
    """Follow every parent chain once; a chain that revisits itself is a cycle."""
    marks: Dict[str, int] = {}
    for start in index:
        path: List[str] = []
        current: Optional[str] = start
        while current is not None and marks.get(current) != _DONE:
            if marks.get(current) == _VISITING:
                raise HierarchyCycleError(path[path.index(current):] + [current])
            marks[current] = _VISITING
            path.append(current)
            parent_id = index[current].item.parentId
            current = parent_id if parent_id in index else None
        for node_id in path:
            marks[node_id] = _DONE


def build_hierarchy(items: Sequence[ContentItemDoc]) -> List[ContentItemNode]:
    """
    Build the ordered content tree from a flat record set.

    Siblings are sorted ascending by ``order``; ties keep input order.

    Returns:
        Root nodes

    Raises:
        HierarchyCycleError: If parentId references form a loop
    """
    nodes = [ContentItemNode(item) for item in items]
    index: Dict[str, ContentItemNode] = {}
    for node in nodes:
        if node.id is not None:
            index.setdefault(node.id, node)

    _check_cycles(index)

    roots: List[ContentItemNode] = []
    for node in nodes:
        parent = index.get(node.item.parentId) if node.item.parentId else None
        if parent is not None and parent is not node:
            parent.children.append(node)
        else:
            roots.append(node)

    pending = [roots]
    while pending:
        siblings = pending.pop()
        siblings.sort(key=_order_key)
        pending.extend(node.children for node in siblings if node.children)

    return roots


def iter_preorder(tree: Iterable[ContentItemNode]):
    """Yield every node once, parents before children, siblings in order."""
    seen = set()
    stack = list(reversed(list(tree)))
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        yield node
        stack.extend(reversed(node.children))


def calculate_stats(tree: Iterable[ContentItemNode]) -> ContentItemStats:
    """Count nodes per content type plus the grand total."""
    stats = ContentItemStats()
    for node in iter_preorder(tree):
        stats.by_type[node.type] = stats.by_type.get(node.type, 0) + 1
        stats.total += 1
    return stats


def collect_descendant_ids(items: Sequence[ContentItemDoc], root_id: str) -> List[str]:
    """Ids of every record below ``root_id``, breadth first, excluding the root."""
    children: Dict[str, List[str]] = {}
    for item in items:
        if item.parentId and item.id:
            children.setdefault(item.parentId, []).append(item.id)

    result: List[str] = []
    seen = {root_id}
    queue = deque(children.get(root_id, []))
    while queue:
        child_id = queue.popleft()
        if child_id in seen:
            continue
        seen.add(child_id)
        result.append(child_id)
        queue.extend(children.get(child_id, []))
    return result
