import asyncio
import os
import sys
from typing import Any, Callable, List, Optional

import pytest

# Ensure project root is on sys.path
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from sectionorder.hierarchy import Item  # noqa: E402


class _TimerHandle:
    def __init__(self, when: float, callback: Callable, args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualLoop:
    """``call_later`` on a manually advanced clock.

    Tasks are handed to the running asyncio loop so coroutines still execute;
    only timers are virtual.
    """

    def __init__(self):
        self.now = 0.0
        self._handles: List[_TimerHandle] = []

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable, *args: Any) -> _TimerHandle:
        handle = _TimerHandle(self.now + delay, callback, args)
        self._handles.append(handle)
        return handle

    def create_task(self, coro):
        return asyncio.get_running_loop().create_task(coro)

    @property
    def timers(self) -> List[_TimerHandle]:
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self._handles if not h.cancelled and h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self._handles.remove(handle)
            self.now = handle.when
            handle.callback(*handle.args)
        self._handles = [h for h in self._handles if not h.cancelled]
        self.now = target


class RecordingGateway:
    """Gateway double that records batches and can fail or hold calls open."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[list] = []
        self.active = 0
        self.max_active = 0
        self.gate: Optional[asyncio.Event] = None

    def hold(self) -> asyncio.Event:
        self.gate = asyncio.Event()
        return self.gate

    async def submit_reorder(self, batch) -> None:
        self.calls.append(batch.to_payload())
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.fail:
                raise RuntimeError("server said no")
        finally:
            self.active -= 1


async def settle(rounds: int = 10) -> None:
    """Let pending tasks run to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def virtual_loop() -> VirtualLoop:
    return VirtualLoop()


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def subjects() -> List[Item]:
    """Math (parent) with Algebra and Geometry, then English and Science."""
    return [
        Item("math", None, 1, "Math"),
        Item("algebra", "math", 2, "Algebra"),
        Item("geometry", "math", 3, "Geometry"),
        Item("english", None, 4, "English"),
        Item("science", None, 5, "Science"),
    ]


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    monkeypatch.setenv("SECTIONORDER_CONFIG_DIR", str(tmp_path / "config"))
    return tmp_path / "config" / "config.json"
