"""
Reconciliation poller: periodic REST re-scan for the watch address.

Backstops gaps in the live channel. Each tick compares the chain head with
last_checked_height; when the head moved, it runs the coin_received receiver
filter query and forwards every transaction above last_checked_height and
at or below the head. last_checked_height then jumps to the head whether or
not every transaction parsed: at most one pass per height range, never a
second one.

Ticks are fixed-delay: the next tick is scheduled after the current one,
network calls included, has finished.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping

import httpx

from deposit_listener.config.settings import DEFAULT_POLL_INTERVAL_SEC, DEFAULT_TX_PAGE_LIMIT
from deposit_listener.core.exceptions import NetworkError
from deposit_listener.core.http import get_json
from deposit_listener.core.scheduling import ScheduledTask
from deposit_listener.deposit_logging import get_logger
from deposit_listener.listener.models import EventSource

_default_logger = get_logger(__name__)

LATEST_BLOCK_PATH = "/cosmos/base/tendermint/v1beta1/blocks/latest"
TX_SEARCH_PATH = "/cosmos/tx/v1beta1/txs"

PayloadSink = Callable[[Any, EventSource], Awaitable[Any]]


def receiver_query(address: str) -> str:
    return f"coin_received.receiver='{address}'"


def _header_height(data: Any) -> int:
    """block.header.height, or sdk_block.header.height on newer SDKs."""
    if isinstance(data, Mapping):
        for key in ("block", "sdk_block"):
            block = data.get(key)
            header = block.get("header") if isinstance(block, Mapping) else None
            if isinstance(header, Mapping) and header.get("height") is not None:
                try:
                    return int(header["height"])
                except (TypeError, ValueError):
                    break
    raise NetworkError("Latest block response has no header height")


def _tx_height(tx: Any) -> int | None:
    if not isinstance(tx, Mapping):
        return None
    try:
        return int(tx.get("height"))
    except (TypeError, ValueError):
        return None


class ReconciliationPoller:
    def __init__(
        self,
        client: httpx.AsyncClient,
        rest_endpoint: str,
        watch_address: str,
        sink: PayloadSink,
        *,
        interval_sec: float = DEFAULT_POLL_INTERVAL_SEC,
        page_limit: int = DEFAULT_TX_PAGE_LIMIT,
        logger: Any = None,
    ) -> None:
        if interval_sec <= 0:
            raise ValueError("interval_sec must be positive")
        self._client = client
        self._rest = rest_endpoint.rstrip("/")
        self._watch_address = watch_address
        self._sink = sink
        self._interval = interval_sec
        self._page_limit = page_limit
        self._logger = logger or _default_logger
        self._last_checked_height: int | None = None
        self._running = False
        self._task: ScheduledTask | None = None

    @property
    def last_checked_height(self) -> int | None:
        return self._last_checked_height

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Seed the height from the chain head, then begin ticking. No backfill."""
        if self._running:
            return
        self._running = True
        await self._seed()
        if not self._running:
            # stop() was called while seeding
            return
        self._task = ScheduledTask(
            "deposit-poll",
            self.tick,
            delay_sec=self._interval,
            repeat=True,
            logger=self._logger,
        ).start()
        self._logger.info(
            "poll_started",
            interval_sec=self._interval,
            last_checked_height=self._last_checked_height,
        )

    def stop(self) -> None:
        """Stop scheduling; an in-flight tick is cancelled at its next await."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _seed(self) -> bool:
        try:
            self._last_checked_height = await self.latest_height()
        except NetworkError as e:
            self._logger.warning("poll_seed_failed", error=str(e))
            return False
        return True

    async def latest_height(self) -> int:
        data = await get_json(self._client, self._rest + LATEST_BLOCK_PATH)
        return _header_height(data)

    async def fetch_transactions(self) -> list[Any]:
        params = {
            "events": receiver_query(self._watch_address),
            "pagination.limit": str(self._page_limit),
            "order_by": "ORDER_BY_DESC",
        }
        data = await get_json(self._client, self._rest + TX_SEARCH_PATH, params=params)
        txs = data.get("tx_responses") if isinstance(data, Mapping) else None
        return txs if isinstance(txs, list) else []

    async def tick(self) -> int:
        """
        One reconciliation pass. Returns the number of transactions forwarded.

        A tick whose seed or network calls fail leaves last_checked_height
        untouched; the next tick retries.
        """
        if not self._running:
            return 0
        if self._last_checked_height is None:
            # Seeding only; scanning now would be a backfill
            await self._seed()
            return 0
        try:
            head = await self.latest_height()
        except NetworkError as e:
            self._logger.warning("poll_head_failed", error=str(e))
            return 0
        last = self._last_checked_height
        if head <= last:
            self._logger.debug("poll_no_new_blocks", head=head, last_checked_height=last)
            return 0
        try:
            txs = await self.fetch_transactions()
        except NetworkError as e:
            self._logger.warning("poll_tx_search_failed", head=head, error=str(e))
            return 0

        forwarded = 0
        for tx in txs:
            height = _tx_height(tx)
            if height is not None and not (last < height <= head):
                continue
            try:
                await self._sink(tx, EventSource.POLL)
            except Exception as e:
                self._logger.exception(
                    "poll_forward_failed",
                    tx_hash=tx.get("txhash") if isinstance(tx, Mapping) else None,
                    error=str(e),
                )
                continue
            forwarded += 1
        # Concurrent stop or reseed must not move the height backwards
        if self._last_checked_height is None or head > self._last_checked_height:
            self._last_checked_height = head
        self._logger.info(
            "poll_tick",
            head=head,
            previous_height=last,
            fetched=len(txs),
            forwarded=forwarded,
        )
        return forwarded
