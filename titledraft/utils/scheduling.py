"""
Cancellable scheduled tasks for the deed table sync protocol.

`Debouncer` coalesces writes: scheduling a key that already has a pending
task cancels it, so only the last write scheduled inside the quiet period
runs. A key stays pending from scheduling until its write has finished, which
is what lets the live feed tell a user's in-flight edit from a stale echo.

`call_later` is the fire-and-forget variant used for suppression windows.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Hashable, Set

from titledraft.utils.logging import get_logger

log = get_logger(__name__)

WriteFactory = Callable[[], Awaitable[None]]


class Debouncer:
    """
    Keyed debounce over the running event loop.

    Parameters
    ----------
    delay : float
        Quiet period in seconds before a scheduled task fires.
    """

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._timers: Dict[Hashable, asyncio.TimerHandle] = {}
        self._factories: Dict[Hashable, WriteFactory] = {}
        self._running: Dict[Hashable, asyncio.Task[None]] = {}
        self._all_running: Set[asyncio.Task[None]] = set()

    def schedule(self, key: Hashable, factory: WriteFactory) -> None:
        """Schedule `factory()` to run after the quiet period, replacing any pending task for `key`."""
        self.cancel(key)
        loop = asyncio.get_running_loop()
        self._factories[key] = factory
        self._timers[key] = loop.call_later(self.delay, self._fire, key)

    def cancel(self, key: Hashable) -> bool:
        """Cancel a scheduled (not yet running) task; returns True if one was pending."""
        timer = self._timers.pop(key, None)
        self._factories.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def _fire(self, key: Hashable) -> None:
        self._timers.pop(key, None)
        factory = self._factories.pop(key, None)
        if factory is None:
            return
        task = asyncio.ensure_future(factory())
        self._running[key] = task
        self._all_running.add(task)
        task.add_done_callback(lambda done, key=key: self._finished(key, done))

    def _finished(self, key: Hashable, task: asyncio.Task[None]) -> None:
        self._all_running.discard(task)
        if self._running.get(key) is task:
            del self._running[key]
        if not task.cancelled() and task.exception() is not None:
            log.error(
                "Debounced task failed",
                exc_info=task.exception(),
                extra={"debounce_key": repr(key)},
            )

    def cancel_matching(self, predicate: Callable[[Hashable], bool]) -> int:
        """Cancel every scheduled key satisfying `predicate`; returns how many were cancelled."""
        keys = [key for key in self._timers if predicate(key)]
        for key in keys:
            self.cancel(key)
        return len(keys)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._timers or key in self._running

    def has_pending(self, predicate: Callable[[Hashable], bool]) -> bool:
        """Whether any scheduled or running key satisfies `predicate`."""
        return any(predicate(key) for key in list(self._timers) + list(self._running))

    async def flush(self) -> None:
        """Fire every scheduled task now and wait for all running tasks."""
        for key in list(self._timers):
            timer = self._timers.get(key)
            if timer is not None:
                timer.cancel()
                self._fire(key)
        await self.wait()

    async def wait(self) -> None:
        """Wait until nothing is running (tasks scheduled meanwhile are included)."""
        while self._all_running:
            await asyncio.gather(*list(self._all_running), return_exceptions=True)

    def cancel_all(self) -> None:
        for key in list(self._timers):
            self.cancel(key)


def call_later(delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
    """Run `callback(*args)` after `delay` seconds on the running loop."""
    loop = asyncio.get_running_loop()
    return loop.call_later(delay, callback, *args)


__all__ = ["Debouncer", "call_later"]
