"""Submitting reorder batches to the backend and handling the outcome."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Hashable, List, Optional, Protocol, Sequence, Tuple

from .hierarchy import Item
from .state import EngineState, Notification, NotificationKind

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Subjects reordered successfully"
FAILURE_MESSAGE = "Failed to reorder subjects. Please try again."


@dataclass(frozen=True)
class BatchEntry:
    id: Hashable
    order: int


@dataclass(frozen=True)
class ReorderBatch:
    """The full proposed ordering at the moment of submission."""

    entries: Tuple[BatchEntry, ...]
    items: Tuple[Item, ...] = field(default=(), compare=False, repr=False)

    @classmethod
    def from_items(cls, items: Sequence[Item]) -> "ReorderBatch":
        return cls(
            entries=tuple(BatchEntry(item.id, item.order) for item in items),
            items=tuple(items),
        )

    def to_payload(self) -> List[Dict[str, Any]]:
        return [{"id": entry.id, "order": entry.order} for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)


class ReorderGateway(Protocol):
    async def submit_reorder(self, batch: ReorderBatch) -> None:
        ...


class SaveOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class PersistRunner:
    """Runs gateway calls for one engine, one at a time.

    A batch submitted while a call is in flight is queued; only the newest
    queued batch survives and it runs as soon as the current call resolves.
    A failed call rolls ``state`` back to ``state.source_items`` and discards
    anything queued behind it.
    A successful call confirms the batch, unless the source was refreshed
    while it ran; that list is then kept and shown once nothing is pending.
    """

    def __init__(
        self,
        state: EngineState,
        gateway: Any,
        *,
        notify: Optional[Callable[[Notification], None]] = None,
        on_change: Optional[Callable[[], None]] = None,
        on_rollback: Optional[Callable[[], None]] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.state = state
        self.gateway = gateway
        self._notify = notify
        self._on_change = on_change
        self._on_rollback = on_rollback
        self._loop = loop
        self._task: Optional[asyncio.Task] = None
        self._queued: Optional[ReorderBatch] = None
        self.last_outcome: Optional[SaveOutcome] = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def submit(self, batch: ReorderBatch) -> asyncio.Task:
        """Start saving ``batch``, or queue it behind the call in flight."""
        if self.in_flight:
            logger.debug("Save in flight; queueing batch of %d entries", len(batch))
            self._queued = batch
            return self._task

        loop = self._loop or asyncio.get_running_loop()
        self._task = loop.create_task(self._drain(batch))
        return self._task

    async def wait(self) -> None:
        """Wait until no call is in flight and nothing is queued."""
        while self.in_flight:
            await asyncio.shield(self._task)

    async def _drain(self, batch: Optional[ReorderBatch]) -> None:
        while batch is not None:
            await self.run(batch)
            batch, self._queued = self._queued, None

    async def run(self, batch: ReorderBatch) -> SaveOutcome:
        state = self.state
        state.is_saving = True
        if state.local_items == list(batch.items):
            state.pending_changes = False
        self._changed()

        logger.info("Saving order of %d subjects", len(batch))
        try:
            await self._call_gateway(batch)
        except Exception as exc:
            logger.error(f"Failed to reorder subjects: {exc}")
            logger.debug("Reorder failure details", exc_info=True)
            state.is_saving = False
            self._rollback()
            self._emit(Notification(NotificationKind.ERROR, FAILURE_MESSAGE))
            self.last_outcome = SaveOutcome.FAILURE
            self._changed()
            return SaveOutcome.FAILURE

        state.is_saving = False
        if not state.source_refreshed:
            state.source_items = list(batch.items)
        elif not state.pending_changes and self._queued is None:
            # The source was refreshed mid-save; show it now that nothing is outstanding
            state.local_items = list(state.source_items)
            state.source_refreshed = False
            logger.debug("Adopted source refreshed during save")
        if state.local_items == state.source_items:
            state.pending_changes = False
        logger.info("Order of %d subjects saved", len(batch))
        self._emit(Notification(NotificationKind.SUCCESS, SUCCESS_MESSAGE))
        self.last_outcome = SaveOutcome.SUCCESS
        self._changed()
        return SaveOutcome.SUCCESS

    async def _call_gateway(self, batch: ReorderBatch) -> None:
        submit = getattr(self.gateway, "submit_reorder", None)
        if submit is None:
            submit = self.gateway
        result = submit(batch)
        if inspect.isawaitable(result):
            await result

    def _rollback(self) -> None:
        self._queued = None
        self.state.local_items = list(self.state.source_items)
        self.state.pending_changes = False
        self.state.source_refreshed = False
        if self._on_rollback is not None:
            self._on_rollback()
        logger.info("Reverted to last confirmed order; queued batches dropped")

    def _emit(self, notification: Notification) -> None:
        if self._notify is not None:
            self._notify(notification)

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
