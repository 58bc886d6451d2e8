"""Periodic signal scheduling for gravity and fast-drop ticks.

The engine never owns timing: it asks a Scheduler for repeating callbacks
and cancels them through the returned handle. ManualScheduler drives time
by hand for tests; AsyncioScheduler runs on an asyncio event loop for the
server.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class Scheduler(ABC):
    """Interface for repeating timers."""

    @abstractmethod
    def schedule_repeating(self, interval_ms: int, callback: Callback) -> int:
        """Call ``callback`` every ``interval_ms`` until cancelled.

        Args:
            interval_ms: Period in milliseconds, must be positive
            callback: Zero-argument callable

        Returns:
            Handle to pass to cancel()
        """

    @abstractmethod
    def cancel(self, handle: Optional[int]) -> None:
        """Stop a repeating timer.

        Unknown, None, or already-cancelled handles are ignored.
        """


class _Timer:
    __slots__ = ("interval_ms", "callback", "due_ms")

    def __init__(self, interval_ms: int, callback: Callback, due_ms: int):
        self.interval_ms = interval_ms
        self.callback = callback
        self.due_ms = due_ms


class ManualScheduler(Scheduler):
    """Deterministic scheduler on a virtual millisecond clock.

    Nothing fires on its own; tests call advance() or fire().
    """

    def __init__(self):
        self.now_ms = 0
        self._timers: Dict[int, _Timer] = {}
        self._next_handle = 1

    def schedule_repeating(self, interval_ms: int, callback: Callback) -> int:
        if interval_ms <= 0:
            raise ValueError(f"Interval must be positive, got {interval_ms}")
        handle = self._next_handle
        self._next_handle += 1
        self._timers[handle] = _Timer(interval_ms, callback, self.now_ms + interval_ms)
        return handle

    def cancel(self, handle: Optional[int]) -> None:
        if handle is not None:
            self._timers.pop(handle, None)

    def advance(self, ms: int) -> int:
        """Move the clock forward, firing due callbacks one at a time.

        Callbacks fire in due-time order (ties in scheduling order). A timer
        cancelled by an earlier callback does not fire.

        Args:
            ms: Milliseconds to advance

        Returns:
            Number of callbacks fired
        """
        target = self.now_ms + ms
        fired = 0
        while True:
            due = [(t.due_ms, h) for h, t in self._timers.items() if t.due_ms <= target]
            if not due:
                break
            due_ms, handle = min(due)
            timer = self._timers[handle]
            self.now_ms = due_ms
            timer.due_ms += timer.interval_ms
            timer.callback()
            fired += 1
        self.now_ms = target
        return fired

    def fire(self, handle: int) -> None:
        """Run one timer's callback immediately, without moving the clock."""
        self._timers[handle].callback()

    def active_handles(self) -> List[int]:
        return list(self._timers)

    def interval_of(self, handle: int) -> Optional[int]:
        timer = self._timers.get(handle)
        return timer.interval_ms if timer else None

    def is_active(self, handle: Optional[int]) -> bool:
        return handle in self._timers


class AsyncioScheduler(Scheduler):
    """Scheduler running each timer as a task on an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        """Initialize the scheduler.

        Args:
            loop: Event loop to run on; the running loop is used when None
        """
        self.loop = loop
        self._tasks: Dict[int, asyncio.Task] = {}
        self._next_handle = 1

    def schedule_repeating(self, interval_ms: int, callback: Callback) -> int:
        if interval_ms <= 0:
            raise ValueError(f"Interval must be positive, got {interval_ms}")
        loop = self.loop or asyncio.get_running_loop()
        handle = self._next_handle
        self._next_handle += 1
        self._tasks[handle] = loop.create_task(self._run(handle, interval_ms, callback))
        return handle

    def cancel(self, handle: Optional[int]) -> None:
        task = self._tasks.pop(handle, None) if handle is not None else None
        if task and not task.done():
            task.cancel()

    def close(self) -> None:
        """Cancel every timer."""
        for handle in list(self._tasks):
            self.cancel(handle)

    def active_handles(self) -> List[int]:
        return list(self._tasks)

    async def _run(self, handle: int, interval_ms: int, callback: Callback) -> None:
        interval = interval_ms / 1000.0
        while handle in self._tasks:
            await asyncio.sleep(interval)
            if handle not in self._tasks:
                break
            try:
                callback()
            except Exception as e:
                logger.error(f"[Scheduler] Timer {handle} callback failed: {e}", exc_info=True)
