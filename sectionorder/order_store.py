"""Local, not yet confirmed ordering of the subjects of one class section."""

from __future__ import annotations

import logging
from typing import Hashable, Iterable, List, Optional

from .dnd import HierarchyMode, MovePlan, plan_move, plan_root_step
from .hierarchy import Item, flatten_items
from .state import EngineState

logger = logging.getLogger(__name__)


class OptimisticOrderStore:
    """Holds the order the user currently sees.

    Moves are applied immediately; whether the backend accepted them is
    tracked by the runner. Every change replaces ``state.local_items`` with a
    new list so lists handed out earlier stay valid for rollback.
    """

    def __init__(
        self,
        state: Optional[EngineState] = None,
        mode: HierarchyMode = "global",
        items: Iterable[Item] = (),
    ):
        self.state = state if state is not None else EngineState()
        self.mode = mode
        if items:
            self.reset(flatten_items(items))

    @property
    def items(self) -> List[Item]:
        return list(self.state.local_items)

    @property
    def pending_changes(self) -> bool:
        return self.state.pending_changes

    def reset(self, items: Iterable[Item]) -> None:
        """Adopt ``items``, already in display order, and clear the pending flag."""
        self.state.local_items = list(items)
        self.state.pending_changes = False

    def apply_move(self, source_id: Hashable, target_id: Hashable) -> Optional[List[Item]]:
        """Move ``source_id`` into ``target_id``'s slot.

        Returns the new list, or ``None`` when the move was refused (same id,
        unknown id, or a cross-level move in ``sibling`` mode).
        """
        return self._commit(plan_move(self.state.local_items, source_id, target_id, self.mode))

    def move_root(self, index: int, delta: int) -> Optional[List[Item]]:
        """Shift the root at ``index`` up (negative) or down (positive)."""
        return self._commit(plan_root_step(self.state.local_items, index, delta, self.mode))

    def _commit(self, plan: MovePlan) -> Optional[List[Item]]:
        if not plan.changed:
            return None
        self.state.local_items = plan.items
        self.state.pending_changes = True
        logger.debug("Local order now %s", [item.id for item in plan.items])
        return list(plan.items)
