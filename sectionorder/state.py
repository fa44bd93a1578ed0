"""Per-engine state shared by the store, the runner and the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .hierarchy import Item


class EngineStatus(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    SAVING = "saving"


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    message: str


@dataclass
class EngineState:
    """State of one mounted reorder view.

    ``local_items`` is what the user sees; ``source_items`` is the last order
    supplied from outside or confirmed by the backend. When neither
    ``pending_changes`` nor ``is_saving`` is set the two lists are equal.
    ``source_refreshed`` marks a source list that arrived while local changes
    were outstanding and still has to be shown.
    """

    local_items: List[Item] = field(default_factory=list)
    source_items: List[Item] = field(default_factory=list)
    pending_changes: bool = False
    is_saving: bool = False
    source_refreshed: bool = False
    notification: Optional[Notification] = None

    @property
    def status(self) -> EngineStatus:
        if self.pending_changes:
            return EngineStatus.DIRTY
        if self.is_saving:
            return EngineStatus.SAVING
        return EngineStatus.CLEAN

    @property
    def is_clean(self) -> bool:
        return not self.pending_changes and not self.is_saving
