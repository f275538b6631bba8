"""
Fan-out of deposit events to registered consumer callbacks.

Each callback is isolated: a failure is logged as CallbackError and the
remaining callbacks still run. Dispatch iterates over a snapshot, so
callbacks may register or remove callbacks (including themselves) while an
event is in flight; new registrations see the next event.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any

from deposit_listener.core.exceptions import CallbackError
from deposit_listener.deposit_logging import get_logger
from deposit_listener.listener.models import CallbackHandle, DepositCallback, DepositEvent

_default_logger = get_logger(__name__)


class Dispatcher:
    def __init__(self, *, logger: Any = None) -> None:
        self._logger = logger or _default_logger
        # Keyed by the callable; dict keeps registration order
        self._handles: dict[DepositCallback, CallbackHandle] = {}
        self._failures = 0

    def __len__(self) -> int:
        return len(self._handles)

    @property
    def failures(self) -> int:
        """Total callback failures seen since construction."""
        return self._failures

    def register(self, callback: DepositCallback) -> CallbackHandle:
        """Register a callback; registering the same callable again returns its existing handle."""
        if not callable(callback):
            raise TypeError("callback must be callable")
        existing = self._handles.get(callback)
        if existing is not None:
            return existing
        handle = CallbackHandle.create(callback)
        self._handles[callback] = handle
        self._logger.debug("callback_registered", handle_id=handle.id, total=len(self._handles))
        return handle

    def remove(self, handle_or_callback: CallbackHandle | DepositCallback) -> bool:
        """Remove by handle or by the callable itself. Returns True if something was removed."""
        if isinstance(handle_or_callback, CallbackHandle):
            callback = handle_or_callback.callback
            current = self._handles.get(callback)
            if current is None or current.id != handle_or_callback.id:
                return False
        else:
            callback = handle_or_callback
        handle = self._handles.pop(callback, None)
        if handle is None:
            return False
        self._logger.debug("callback_removed", handle_id=handle.id, total=len(self._handles))
        return True

    def clear(self) -> None:
        self._handles.clear()

    async def dispatch(self, event: DepositEvent) -> int:
        """Invoke every callback registered at call time. Returns the number that succeeded."""
        delivered = 0
        for handle in list(self._handles.values()):
            try:
                await self._invoke(handle.callback, event)
                delivered += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._failures += 1
                err = CallbackError(handle.callback, e)
                self._logger.error(
                    "callback_failed",
                    handle_id=handle.id,
                    tx_hash=event.transaction.hash,
                    error=str(err),
                    exc_info=e,
                )
        return delivered

    async def _invoke(self, callback: DepositCallback, event: DepositEvent) -> None:
        """Await coroutine callbacks; run plain callables in the default executor."""
        if inspect.iscoroutinefunction(callback):
            await callback(event)
            return
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, callback, event)
        if inspect.isawaitable(result):
            await result
