"""
Asyncio debounce helper.

Each ``trigger`` restarts the quiet period; the callback runs once, with the
arguments of the last trigger, after ``delay`` seconds without a new one.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple


class Debouncer:
    def __init__(self, delay: float, callback: Callable[..., Awaitable[Any]]):
        self.delay = delay
        self._callback = callback
        self._task: Optional[asyncio.Task] = None
        self._running: Optional[asyncio.Task] = None
        # One callback at a time, in the order the calls were fired
        self._lock = asyncio.Lock()
        self._args: Tuple[Any, ...] = ()
        self._kwargs: Dict[str, Any] = {}

    @property
    def pending(self) -> bool:
        """True while a call is scheduled but has not started yet."""
        return self._task is not None and not self._task.done()

    def trigger(self, *args, **kwargs) -> None:
        """(Re)start the quiet period with the latest arguments."""
        self._args, self._kwargs = args, kwargs
        self._cancel_task()
        self._task = asyncio.get_running_loop().create_task(self._run_later())

    async def flush(self) -> None:
        """Run a pending call now; a call that is already writing finishes first."""
        if not self.pending:
            return
        self._cancel_task()
        await self._fire()

    def cancel(self) -> None:
        """Drop a pending call without running it."""
        self._cancel_task()

    async def wait_idle(self) -> None:
        """Wait for a call that already started to finish."""
        running = self._running
        if running is not None and running is not asyncio.current_task():
            await asyncio.wait({running})

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run_later(self) -> None:
        await asyncio.sleep(self.delay)
        # Past the sleep the call can no longer be cancelled, only awaited
        self._task = None
        self._running = asyncio.current_task()
        try:
            await self._fire()
        finally:
            self._running = None

    async def _fire(self) -> None:
        args, kwargs = self._args, self._kwargs
        self._args, self._kwargs = (), {}
        async with self._lock:
            await self._callback(*args, **kwargs)
