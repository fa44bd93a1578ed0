"""Reorder engine wiring drag events, local ordering, debouncing and saving.

State machine::

    CLEAN --drop--> DIRTY --quiet period--> SAVING --ok--> CLEAN
                      ^                        |
                      +--------drop------------+--fail--> CLEAN (rolled back)

A drop while SAVING goes back to DIRTY and re-arms the timer; the call in
flight is left alone. Only one gateway call runs at a time.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Hashable, Iterable, List, Optional

from .config import ReorderSettings
from .debounce import DebounceScheduler
from .dnd import DragSession
from .hierarchy import Item, TreeNode, build_tree, flatten_items
from .order_store import OptimisticOrderStore
from .persist import PersistRunner, ReorderBatch, SaveOutcome
from .state import EngineState, EngineStatus, Notification, NotificationKind

logger = logging.getLogger(__name__)

REFRESH_FAILURE_MESSAGE = "Subjects were saved but could not be reloaded."

NotificationSink = Callable[[Notification], None]
StateListener = Callable[["ReorderEngine"], None]


class ReorderEngine:
    """Composition root for one mounted subject list."""

    def __init__(
        self,
        items: Iterable[Item],
        gateway: Any,
        *,
        settings: Optional[ReorderSettings] = None,
        notify: Optional[NotificationSink] = None,
        on_saved: Optional[Callable[[], Any]] = None,
        loop: Optional[Any] = None,
    ):
        self.settings = settings or ReorderSettings()
        self.state = EngineState()
        self.drag = DragSession()
        self.store = OptimisticOrderStore(self.state, mode=self.settings.hierarchy_mode)
        self.scheduler: DebounceScheduler[ReorderBatch] = DebounceScheduler(
            self.settings.quiet_period, loop=loop
        )
        self.runner = PersistRunner(
            self.state,
            gateway,
            notify=self._show_notification,
            on_change=self._changed,
            on_rollback=self.scheduler.cancel,
            loop=loop,
        )
        self._loop = loop
        self._sink = notify
        self._on_saved = on_saved
        self._listeners: List[StateListener] = []
        self._notification_handle = None
        self._watched_task = None
        self._refresh_task = None
        self._closed = False

        initial = flatten_items(items)
        self.state.source_items = list(initial)
        self.store.reset(initial)

    # ------------------------------------------------------------ properties
    @property
    def items(self) -> List[Item]:
        return self.store.items

    @property
    def status(self) -> EngineStatus:
        return self.state.status

    @property
    def pending_changes(self) -> bool:
        return self.state.pending_changes

    @property
    def is_saving(self) -> bool:
        return self.state.is_saving

    @property
    def closed(self) -> bool:
        return self._closed

    def tree(self) -> List[TreeNode]:
        return build_tree(self.state.local_items)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener(engine)`` after every state change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ---------------------------------------------------------- drag surface
    def on_drag_start(self, item: Item) -> None:
        if self._closed:
            return
        self.drag.begin(item)
        self._changed()

    def on_drag_over(self, target_id: Hashable) -> None:
        if self._closed or not self.drag.is_dragging or self.drag.target_id == target_id:
            return
        self.drag.over(target_id)
        self._changed()

    def on_drop(self, target_id: Hashable) -> bool:
        """Apply the pending drag onto ``target_id``. Returns True if the order changed."""
        if self._closed:
            return False
        source = self.drag.source
        self.drag.end()
        if source is None:
            self._changed()
            return False
        moved = self.store.apply_move(source.id, target_id)
        return self._after_local_change(moved)

    def on_drag_end(self) -> None:
        if self._closed:
            return
        self.drag.end()
        self._changed()

    def move_root(self, index: int, delta: int) -> bool:
        """Step a root subject up or down without a drag gesture."""
        if self._closed:
            return False
        return self._after_local_change(self.store.move_root(index, delta))

    # --------------------------------------------------------- data source
    def sync_source(self, items: Iterable[Item]) -> bool:
        """Take a fresh list from the data source.

        The list is always remembered as the rollback target, but it only
        replaces what the user sees when no save is pending. A deferred list
        is shown once the outstanding saves succeed. Returns True if it was
        adopted immediately.
        """
        fresh = flatten_items(items)
        self.state.source_items = list(fresh)
        if self.state.pending_changes or self.state.is_saving:
            self.state.source_refreshed = True
            logger.debug("Source refreshed during pending save; keeping local order")
            return False
        self.store.reset(fresh)
        self.state.source_refreshed = False
        self._changed()
        return True

    # ------------------------------------------------------------ lifecycle
    async def flush(self) -> None:
        """Save pending changes now instead of waiting for the quiet period."""
        self.scheduler.fire_now()
        await self.runner.wait()

    def close(self) -> None:
        """Tear down: cancel timers so nothing fires into a disposed view."""
        self._closed = True
        self.scheduler.cancel()
        self._cancel_notification_timer()
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            self._refresh_task = None
        self.drag.end()
        self._listeners.clear()
        logger.debug("Reorder engine closed")

    # -------------------------------------------------------------- helpers
    def _after_local_change(self, moved: Optional[List[Item]]) -> bool:
        if moved is None:
            self._changed()
            return False
        self.scheduler.schedule(ReorderBatch.from_items(moved), self._start_save)
        self._changed()
        return True

    def _start_save(self, batch: ReorderBatch) -> None:
        if self._closed:
            return
        task = self.runner.submit(batch)
        if self._on_saved is not None and task is not self._watched_task:
            self._watched_task = task
            task.add_done_callback(self._saved_callback)

    def _saved_callback(self, task: asyncio.Task) -> None:
        if self._closed or task.cancelled() or task.exception() is not None:
            return
        if self.runner.last_outcome is not SaveOutcome.SUCCESS or not self.state.is_clean:
            return
        try:
            result = self._on_saved()
        except Exception:
            logger.exception("Post-save refresh failed")
            self._show_notification(Notification(NotificationKind.ERROR, REFRESH_FAILURE_MESSAGE))
            self._changed()
            return
        if inspect.isawaitable(result):
            self._refresh_task = asyncio.ensure_future(result)
            self._refresh_task.add_done_callback(self._refresh_done)

    def _refresh_done(self, task: asyncio.Future) -> None:
        if task is self._refresh_task:
            self._refresh_task = None
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error(f"Post-save refresh failed: {exc}", exc_info=exc)
        if not self._closed:
            self._show_notification(Notification(NotificationKind.ERROR, REFRESH_FAILURE_MESSAGE))
            self._changed()

    def _show_notification(self, notification: Notification) -> None:
        self.state.notification = notification
        self._cancel_notification_timer()
        if not self._closed:
            loop = self._loop or asyncio.get_running_loop()
            self._notification_handle = loop.call_later(
                self.settings.notification_duration, self._clear_notification
            )
            if self._sink is not None:
                try:
                    self._sink(notification)
                except Exception:
                    logger.exception("Notification sink failed")

    def _clear_notification(self) -> None:
        self._notification_handle = None
        self.state.notification = None
        self._changed()

    def _cancel_notification_timer(self) -> None:
        if self._notification_handle is not None:
            self._notification_handle.cancel()
            self._notification_handle = None

    def _changed(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Reorder state listener failed")
