"""Tree helpers for the two-level subject hierarchy.

Subjects arrive as a flat list where children reference their parent through
``parent_id``. :func:`build_tree` groups them, :func:`flatten` walks the tree
depth-first and the ``assign_*`` helpers rewrite ``order`` after a move.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Hashable, Iterable, List, Optional, Sequence


@dataclass(frozen=True)
class Item:
    """A reorderable subject."""

    id: Hashable
    parent_id: Optional[Hashable] = None
    order: int = 0
    name: str = ""

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def with_order(self, order: int) -> "Item":
        if order == self.order:
            return self
        return replace(self, order=order)


@dataclass
class TreeNode:
    """A root item together with its ordered children."""

    item: Item
    children: List[Item] = field(default_factory=list)


def build_tree(items: Iterable[Item]) -> List[TreeNode]:
    """Group ``items`` by parent.

    Roots and each parent's children are sorted by ``order`` (stable, so ties
    keep their input position). A child whose parent is missing is shown as a
    root rather than dropped.
    """

    items = list(items)
    root_ids = {item.id for item in items if item.parent_id is None}
    nodes: Dict[Hashable, TreeNode] = {}
    roots: List[TreeNode] = []

    for item in sorted(items, key=lambda i: i.order):
        if item.parent_id is None or item.parent_id not in root_ids:
            node = TreeNode(item)
            nodes[item.id] = node
            roots.append(node)

    for item in sorted(items, key=lambda i: i.order):
        if item.parent_id is not None and item.parent_id in nodes:
            nodes[item.parent_id].children.append(item)

    return roots


def flatten(roots: Sequence[TreeNode]) -> List[Item]:
    """Return roots in order, each immediately followed by its children."""
    result: List[Item] = []
    for node in roots:
        result.append(node.item)
        result.extend(node.children)
    return result


def flatten_items(items: Iterable[Item]) -> List[Item]:
    return flatten(build_tree(items))


def assign_sequential_order(items: Sequence[Item]) -> List[Item]:
    """Rewrite ``order`` to the 1-based position of each item.

    Numbering is one global sequence across the whole list, parents and
    children alike.
    """
    return [item.with_order(index) for index, item in enumerate(items, start=1)]


def assign_sibling_order(items: Sequence[Item]) -> List[Item]:
    """Rewrite ``order`` so it restarts at 1 inside each sibling group.

    Roots form one group and each parent's children another. List positions
    are left as they are.
    """
    counters: Dict[Optional[Hashable], int] = {}
    result: List[Item] = []
    for item in items:
        counters[item.parent_id] = counters.get(item.parent_id, 0) + 1
        result.append(item.with_order(counters[item.parent_id]))
    return result


def order_map(items: Iterable[Item]) -> Dict[Hashable, int]:
    return {item.id: item.order for item in items}
