"""
DepositMonitor: public entry point.

Resolves the watch target once, then runs the live WebSocket channel and the
REST reconciliation poll side by side on the current event loop. Both feed
one pipeline that parses, classifies, deduplicates and dispatches deposit
events to registered callbacks.

Usage:
    monitor = DepositMonitor(MonitorConfig(ws_endpoint=..., rest_endpoint=...), "0x...")
    monitor.on_deposit(handle_deposit)
    await monitor.start()
    ...
    monitor.stop()
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import httpx

from deposit_listener.address.resolver import AddressResolver
from deposit_listener.config.settings import MonitorConfig
from deposit_listener.deposit_logging import bind_target, make_logger
from deposit_listener.ingestion.connection import ConnectFactory, ConnectionState, ConnectionSupervisor
from deposit_listener.ingestion.ingestor import EventIngestor
from deposit_listener.ingestion.poller import ReconciliationPoller
from deposit_listener.listener.dispatcher import Dispatcher
from deposit_listener.listener.models import (
    CallbackHandle,
    DepositCallback,
    DepositEvent,
    EventSource,
    WatchTarget,
)
from deposit_listener.listener.pipeline import DepositPipeline


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class DepositMonitor:
    """
    Watches one account for incoming transfers.

    config: endpoints, prefix, verbosity and timing.
    target: 0x hex identifier or chain-native address to watch.
    logger: structlog logger; built from config.log_level when omitted.
    http_client: shared httpx.AsyncClient; created (and closed on stop) when omitted.
    transport: httpx transport for the client the monitor creates itself.
    connect: WebSocket connect factory; defaults to websockets.connect.
    """

    def __init__(
        self,
        config: MonitorConfig,
        target: str,
        *,
        logger: Any = None,
        http_client: httpx.AsyncClient | None = None,
        connect: ConnectFactory | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not (target or "").strip():
            raise ValueError("target must be non-empty")
        self._config = config
        self._raw_target = target.strip()
        self._logger = logger or make_logger("deposit_listener", config.log_level)
        self._client = http_client
        self._owns_client = http_client is None
        self._connect = connect
        self._transport = transport
        self._loop: asyncio.AbstractEventLoop | None = None
        self._close_task: asyncio.Task[None] | None = None
        self._dispatcher = Dispatcher(logger=self._logger)
        self._target: WatchTarget | None = None
        self._pipeline: DepositPipeline | None = None
        self._supervisor: ConnectionSupervisor | None = None
        self._ingestor: EventIngestor | None = None
        self._poller: ReconciliationPoller | None = None
        self._running = False

    @property
    def config(self) -> MonitorConfig:
        return self._config

    @property
    def target(self) -> WatchTarget | None:
        """Resolved watch target; None until start() has resolved it."""
        return self._target

    @property
    def running(self) -> bool:
        return self._running

    @property
    def connection_state(self) -> ConnectionState:
        if self._supervisor is None:
            return ConnectionState.DISCONNECTED
        return self._supervisor.state

    @property
    def last_checked_height(self) -> int | None:
        return self._poller.last_checked_height if self._poller else None

    def on_deposit(self, callback: DepositCallback) -> CallbackHandle:
        """Register a callback for every DepositEvent. Sync or async callables are accepted."""
        return self._on_loop(self._dispatcher.register, callback)

    def remove_callback(self, handle_or_callback: CallbackHandle | DepositCallback) -> bool:
        return self._on_loop(self._dispatcher.remove, handle_or_callback)

    async def resolve_target(self) -> WatchTarget:
        """Resolve the raw identifier (once per monitor) and return the watch target."""
        if self._target is None:
            resolver = AddressResolver(
                self._http_client(),
                rest_endpoint=self._config.rest_endpoint,
                evm_rpc_endpoint=self._config.evm_rpc_endpoint or "",
                prefix=self._config.prefix,
                logger=self._logger,
            )
            self._target = await resolver.resolve(self._raw_target)
        return self._target

    async def start(self) -> None:
        """Resolve the target, then start the live channel and the reconciliation poll."""
        if self._running:
            return
        self._running = True
        self._loop = asyncio.get_running_loop()
        target = await self.resolve_target()
        if not self._running:
            # stop() was called while resolving
            return
        log = bind_target(self._logger, target.resolved_address)
        log.info(
            "monitor_starting",
            identifier=target.raw_identifier,
            state=target.state.value,
            retry_recommended=target.retry_recommended,
        )

        self._pipeline = DepositPipeline(
            target,
            self._dispatcher,
            evm_message_type=self._config.evm_message_type,
            dedupe_capacity=self._config.dedupe_capacity,
            logger=log,
        )
        self._ingestor = EventIngestor(self._process, logger=log)
        self._supervisor = ConnectionSupervisor(
            self._config.ws_endpoint,
            self._ingestor.handle_message,
            reconnect_delay_sec=self._config.reconnect_delay_sec,
            connect=self._connect,
            logger=log,
        )
        self._poller = ReconciliationPoller(
            self._http_client(),
            self._config.rest_endpoint,
            target.resolved_address,
            self._process,
            interval_sec=self._config.poll_interval_sec,
            page_limit=self._config.tx_page_limit,
            logger=log,
        )
        self._supervisor.start()
        await self._poller.start()
        if not self._running:
            # stop() was called while seeding the poll height
            self._poller.stop()

    def stop(self) -> None:
        """
        Stop monitoring. Synchronous: clears the running flag, closes the live
        channel, cancels the reconnect timer and the poll schedule, and drops
        all callback registrations. In-flight work is not awaited; await
        wait_closed() to let the owned HTTP client finish closing.

        Safe to call from a sync callback running on an executor thread: the
        call is handed to the event loop the monitor was started on.
        """
        loop = self._foreign_loop()
        if loop is not None:
            loop.call_soon_threadsafe(self.stop)
            return
        was_running = self._running
        self._running = False
        if self._supervisor is not None:
            self._supervisor.stop()
        if self._poller is not None:
            self._poller.stop()
        self._dispatcher.clear()
        if self._owns_client and self._client is not None:
            client, self._client = self._client, None
            try:
                self._close_task = asyncio.get_running_loop().create_task(client.aclose())
            except RuntimeError:
                # No running loop to close on; the client is released with the monitor
                pass
        if was_running:
            self._logger.info("monitor_stopped")

    async def wait_closed(self) -> None:
        """Await the HTTP client close scheduled by stop(), if any."""
        task, self._close_task = self._close_task, None
        if task is not None:
            await task

    def _foreign_loop(self) -> asyncio.AbstractEventLoop | None:
        """The monitor's loop when it is running and this call comes from another thread."""
        loop = self._loop
        if loop is not None and loop.is_running() and _running_loop() is not loop:
            return loop
        return None

    def _on_loop(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run a registry mutation on the monitor's loop thread and return its result."""
        loop = self._foreign_loop()
        if loop is None:
            return fn(*args)

        async def _call() -> Any:
            return fn(*args)

        return asyncio.run_coroutine_threadsafe(_call(), loop).result()

    async def _process(self, raw: Any, source: EventSource) -> list[DepositEvent]:
        if self._pipeline is None or not self._running:
            return []
        return await self._pipeline.process(raw, source)

    def _http_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.request_timeout_sec),
                transport=self._transport,
            )
        return self._client

    async def __aenter__(self) -> "DepositMonitor":
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.stop()
        await self.wait_closed()
