"""Pure helpers for subject drag-and-drop workflows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Hashable, List, Literal, Optional, Sequence

from .hierarchy import (
    Item,
    assign_sequential_order,
    assign_sibling_order,
    build_tree,
    flatten,
)

logger = logging.getLogger(__name__)

HierarchyMode = Literal["global", "sibling"]


@dataclass(frozen=True)
class MovePlan:
    """Immutable container for the reordered item list."""

    items: List[Item]
    changed: bool


class DragSession:
    """Tracks the item being dragged and the item currently hovered.

    Nothing here is persisted; ``is_dragging`` only drives visual feedback.
    """

    def __init__(self):
        self._source: Optional[Item] = None
        self._target_id: Optional[Hashable] = None

    @property
    def source(self) -> Optional[Item]:
        return self._source

    @property
    def target_id(self) -> Optional[Hashable]:
        return self._target_id

    @property
    def is_dragging(self) -> bool:
        return self._source is not None

    def begin(self, item: Item) -> None:
        self._source = item
        self._target_id = None

    def over(self, target_id: Hashable) -> None:
        self._target_id = target_id

    def end(self) -> None:
        self._source = None
        self._target_id = None


def renumber(items: Sequence[Item], mode: HierarchyMode = "global") -> List[Item]:
    if mode == "sibling":
        return assign_sibling_order(items)
    return assign_sequential_order(items)


def plan_move(
    items: Sequence[Item],
    source_id: Hashable,
    target_id: Hashable,
    mode: HierarchyMode = "global",
) -> MovePlan:
    """Return ``items`` with the source moved into the target's slot.

    The source is removed and re-inserted at the index the target held before
    the removal, then the list is renumbered. Identical ids, unknown ids and
    (in ``sibling`` mode) a source and target with different parents leave the
    list untouched and report ``changed=False``. The input is never mutated.
    In ``sibling`` mode a root is moved together with its children.
    """

    base = list(items)
    if source_id == target_id:
        return MovePlan(base, changed=False)

    source_index = _index_of(base, source_id)
    target_index = _index_of(base, target_id)
    if source_index is None or target_index is None:
        logger.debug("Ignoring move %r -> %r: unknown item", source_id, target_id)
        return MovePlan(base, changed=False)

    if mode == "sibling" and base[source_index].parent_id != base[target_index].parent_id:
        logger.debug("Ignoring move %r -> %r: different parents", source_id, target_id)
        return MovePlan(base, changed=False)

    if mode == "sibling" and base[source_index].parent_id is None:
        # Roots move as blocks so children stay under their parent
        roots = build_tree(base)
        root_ids = [node.item.id for node in roots]
        node = roots.pop(root_ids.index(source_id))
        roots.insert(root_ids.index(target_id), node)
        moved = flatten(roots)
    else:
        moved = list(base)
        source = moved.pop(source_index)
        moved.insert(target_index, source)
    moved = renumber(moved, mode)

    return MovePlan(moved, changed=moved != base)


def plan_root_step(
    items: Sequence[Item],
    root_index: int,
    delta: int,
    mode: HierarchyMode = "global",
) -> MovePlan:
    """Move the root at ``root_index`` by ``delta`` places among the roots.

    Roots are taken from :func:`build_tree`, so each root's children travel
    with it. Out-of-range destinations are a no-op.
    """

    base = list(items)
    roots = build_tree(base)

    destination = root_index + delta
    if delta == 0 or not 0 <= root_index < len(roots) or not 0 <= destination < len(roots):
        return MovePlan(base, changed=False)

    node = roots.pop(root_index)
    roots.insert(destination, node)
    moved = renumber(flatten(roots), mode)
    return MovePlan(moved, changed=moved != base)


def _index_of(items: Sequence[Item], item_id: Hashable) -> Optional[int]:
    for index, item in enumerate(items):
        if item.id == item_id:
            return index
    return None
