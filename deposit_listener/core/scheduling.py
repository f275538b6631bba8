"""
Cancellable scheduled tasks on the running asyncio loop.

A ScheduledTask runs an async body once after a delay, or repeatedly with a
fixed delay between the end of one run and the start of the next. Each
component owns its tasks and cancels them as a unit on shutdown.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from deposit_listener.deposit_logging import get_logger

_default_logger = get_logger(__name__)


class ScheduledTask:
    """
    One-shot or fixed-delay repeating async job.

    Exceptions raised by a repeating body are logged and the schedule
    continues; a one-shot body's exception is logged and the task ends.
    """

    def __init__(
        self,
        name: str,
        body: Callable[[], Awaitable[Any]],
        *,
        delay_sec: float,
        repeat: bool = False,
        initial_delay_sec: float | None = None,
        logger: Any = None,
    ) -> None:
        if delay_sec < 0:
            raise ValueError("delay_sec must be non-negative")
        self.name = name
        self._body = body
        self._delay = delay_sec
        self._repeat = repeat
        self._initial_delay = delay_sec if initial_delay_sec is None else initial_delay_sec
        self._logger = logger or _default_logger
        self._task: asyncio.Task[None] | None = None
        self._runs = 0

    @property
    def pending(self) -> bool:
        """True while the task is scheduled or running."""
        return self._task is not None and not self._task.done()

    @property
    def runs(self) -> int:
        """Number of completed body invocations."""
        return self._runs

    def start(self) -> "ScheduledTask":
        """Schedule on the running loop. Starting an already pending task is a no-op."""
        if not self.pending:
            self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        return self

    def cancel(self) -> None:
        """Cancel the pending sleep or in-flight run. Safe to call repeatedly."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        delay = self._initial_delay
        while True:
            if delay > 0:
                await asyncio.sleep(delay)
            try:
                await self._body()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._logger.exception("scheduled_task_failed", task=self.name, error=str(e))
            self._runs += 1
            if not self._repeat:
                return
            delay = self._delay
