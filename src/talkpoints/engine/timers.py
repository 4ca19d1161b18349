"""Cancellable one-shot and fixed-interval timers on the running event loop.

Callbacks may be plain functions or coroutine functions; coroutines are
scheduled as tasks and tracked so :meth:`Timer.cancel` also cancels work that
already started.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

Callback = Callable[[], Awaitable[Any] | None]


class Timer:
    """A rearmable one-shot timer (debounce, silence timeout, warm-up)."""

    def __init__(self, delay: float, callback: Callback, *, name: str = "timer") -> None:
        self.delay = delay
        self.name = name
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[Any] | None = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self) -> None:
        """(Re)start the countdown, discarding any pending fire."""
        self.cancel_pending()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel_pending(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def cancel(self) -> None:
        """Cancel the countdown and any callback task still running."""
        self.cancel_pending()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _fire(self) -> None:
        self._handle = None
        result = self._callback()
        if inspect.isawaitable(result):
            self._task = asyncio.ensure_future(result)


class PeriodicTimer:
    """Fixed-interval timer, independent of transcript activity."""

    def __init__(self, interval: float, callback: Callable[[], Any], *, name: str = "periodic") -> None:
        self.interval = interval
        self.name = name
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self._callback()


__all__ = ["PeriodicTimer", "Timer"]
