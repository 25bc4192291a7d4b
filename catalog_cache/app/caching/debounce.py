"""
Cancel-and-reschedule delayed task runner.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from shared.logging import get_logger


class Debouncer:
    """Runs ``action`` once ``delay`` seconds after the last ``schedule()``.

    Each ``schedule()`` drops the pending run and starts a new countdown, so a
    burst of updates produces a single run. ``action`` is a coroutine function
    taking no arguments; it should read whatever state is current when it
    fires. A run that has started is never cancelled by a later
    ``schedule()``.
    """

    def __init__(self, delay: float, action: Callable[[], Awaitable[None]], *, name: str = "debouncer"):
        self.delay = delay
        self._action = action
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self._running: Optional[asyncio.Task] = None
        self.logger = get_logger("catalog_cache.debounce")

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self) -> None:
        """(Re)start the countdown. Must be called from a running event loop."""
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        previous = self._running
        current, self._task = self._task, None
        self._running = current
        try:
            # Runs never overlap, so writes land in schedule order
            if previous is not None:
                await asyncio.shield(previous)
            await self._fire()
        finally:
            if self._running is current:
                self._running = None

    async def _fire(self) -> None:
        try:
            await self._action()
        except Exception as exc:
            self.logger.error("Debounced action failed", name=self._name, error=str(exc))

    def cancel(self) -> None:
        """Drop the pending run, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def flush(self) -> bool:
        """Finish a run in progress, then run the pending action now.

        Returns whether a run was pending.
        """
        running = self._running
        if running is not None:
            await asyncio.shield(running)

        if not self.pending:
            return False
        self.cancel()
        await self._fire()
        return True
