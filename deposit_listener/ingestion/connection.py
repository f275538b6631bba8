"""
Live WebSocket channel lifecycle.

DISCONNECTED → CONNECTING → SUBSCRIBED; any error or close returns to
DISCONNECTED and a reconnect is scheduled after a fixed delay while the
supervisor is running. stop() enters CLOSED, which is terminal: the socket
is closed, the pending reconnect is cancelled and nothing is rescheduled.

The Tendermint endpoint has no per-address filter, so the supervisor
subscribes to every Tx event and leaves narrowing to the parser.
"""

from __future__ import annotations

import asyncio
import json
from enum import Enum
from typing import Any, AsyncContextManager, Awaitable, Callable

import websockets
from websockets.exceptions import ConnectionClosed

from deposit_listener.config.settings import DEFAULT_RECONNECT_DELAY_SEC
from deposit_listener.core.scheduling import ScheduledTask
from deposit_listener.deposit_logging import get_logger

_default_logger = get_logger(__name__)

SUBSCRIBE_REQUEST: dict[str, Any] = {
    "jsonrpc": "2.0",
    "method": "subscribe",
    "id": 1,
    "params": {"query": "tm.event='Tx'"},
}

DEFAULT_WS_PING_INTERVAL = 30.0
DEFAULT_WS_PING_TIMEOUT = 10.0
_WS_CLOSE_TIMEOUT = 5.0
# Block-sized Tx events can exceed the websockets 1 MiB default
_WS_MAX_MESSAGE_SIZE = 16 * 1024 * 1024

MessageHandler = Callable[[Any], Awaitable[Any]]
ConnectFactory = Callable[[str], AsyncContextManager[Any]]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    CLOSED = "closed"


def default_connect(
    ping_interval: float | None = DEFAULT_WS_PING_INTERVAL,
    ping_timeout: float | None = DEFAULT_WS_PING_TIMEOUT,
) -> ConnectFactory:
    def _connect(url: str) -> AsyncContextManager[Any]:
        return websockets.connect(
            url,
            ping_interval=ping_interval,
            ping_timeout=ping_timeout,
            close_timeout=_WS_CLOSE_TIMEOUT,
            max_size=_WS_MAX_MESSAGE_SIZE,
        )

    return _connect


class ConnectionSupervisor:
    """
    Owns one WebSocket subscription and its reconnect timer.

    on_message is awaited for every inbound frame; its exceptions are logged
    and never tear down the connection.
    """

    def __init__(
        self,
        url: str,
        on_message: MessageHandler,
        *,
        reconnect_delay_sec: float = DEFAULT_RECONNECT_DELAY_SEC,
        connect: ConnectFactory | None = None,
        logger: Any = None,
    ) -> None:
        if not url.strip():
            raise ValueError("url must be non-empty")
        self._url = url
        self._on_message = on_message
        self._reconnect_delay = reconnect_delay_sec
        self._connect = connect or default_connect()
        self._logger = logger or _default_logger
        self._state = ConnectionState.DISCONNECTED
        self._running = False
        self._connect_task: asyncio.Task[None] | None = None
        self._reconnect_timer: ScheduledTask | None = None
        self._attempts = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def running(self) -> bool:
        return self._running

    @property
    def attempts(self) -> int:
        """Connection attempts made so far (first connect included)."""
        return self._attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None and self._reconnect_timer.pending

    def start(self) -> None:
        """Begin connecting on the running loop. No-op when already running."""
        if self._state is ConnectionState.CLOSED:
            raise RuntimeError("ConnectionSupervisor is closed")
        if self._running:
            return
        self._running = True
        self._open()

    def stop(self) -> None:
        """Close the channel for good; cancels the reconnect timer and the live socket."""
        self._running = False
        self._set_state(ConnectionState.CLOSED)
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None
        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
        self._connect_task = None

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        self._logger.debug("stream_state", previous=self._state.value, state=state.value)
        self._state = state

    def _open(self) -> None:
        self._connect_task = asyncio.get_running_loop().create_task(
            self._run_connection(), name="deposit-stream"
        )

    async def _run_connection(self) -> None:
        self._attempts += 1
        run_id = self._attempts
        self._set_state(ConnectionState.CONNECTING)
        self._logger.info("stream_connecting", run_id=run_id, url=self._url)
        try:
            async with self._connect(self._url) as ws:
                await ws.send(json.dumps(SUBSCRIBE_REQUEST))
                self._set_state(ConnectionState.SUBSCRIBED)
                self._logger.info("stream_connected", run_id=run_id)
                async for raw in ws:
                    if not self._running:
                        return
                    try:
                        await self._on_message(raw)
                    except asyncio.CancelledError:
                        raise
                    except Exception as e:
                        self._logger.exception("stream_message_handler_failed", run_id=run_id, error=str(e))
            self._logger.warning("stream_closed_by_server", run_id=run_id)
        except asyncio.CancelledError:
            raise
        except ConnectionClosed as e:
            self._logger.warning(
                "stream_disconnected",
                run_id=run_id,
                code=getattr(e.rcvd, "code", None),
                reason=getattr(e.rcvd, "reason", None),
            )
        except Exception as e:
            self._logger.warning("stream_error", run_id=run_id, error=str(e))
        self._schedule_reconnect(run_id)

    def _schedule_reconnect(self, run_id: int) -> None:
        if not self._running:
            return
        self._set_state(ConnectionState.DISCONNECTED)
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
        self._logger.info("stream_reconnect_scheduled", run_id=run_id, delay_sec=self._reconnect_delay)
        self._reconnect_timer = ScheduledTask(
            "deposit-stream-reconnect",
            self._reconnect,
            delay_sec=self._reconnect_delay,
            logger=self._logger,
        ).start()

    async def _reconnect(self) -> None:
        if self._running:
            self._open()
