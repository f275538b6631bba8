"""
Shared deposit pipeline: parse → classify → dedupe → dispatch.

The live stream and the reconciliation poll both feed raw payloads here.
Deposits are deduplicated by (hash, receiver, amount) over a bounded window
so a transaction seen on both channels reaches consumers once.
"""

from __future__ import annotations

from collections import deque
from typing import Any

from deposit_listener.config.settings import DEFAULT_DEDUPE_CAPACITY, EVM_TX_MESSAGE_TYPE
from deposit_listener.core.exceptions import ParseError
from deposit_listener.deposit_logging import get_logger
from deposit_listener.listener.classifier import classify
from deposit_listener.listener.dispatcher import Dispatcher
from deposit_listener.listener.models import DepositEvent, EventSource, WatchTarget
from deposit_listener.listener.parser import TransactionLogParser

_default_logger = get_logger(__name__)


class DepositPipeline:
    def __init__(
        self,
        target: WatchTarget,
        dispatcher: Dispatcher,
        *,
        evm_message_type: str = EVM_TX_MESSAGE_TYPE,
        dedupe_capacity: int = DEFAULT_DEDUPE_CAPACITY,
        logger: Any = None,
    ) -> None:
        self._target = target
        self._parser = TransactionLogParser(target.resolved_address)
        self._dispatcher = dispatcher
        self._evm_message_type = evm_message_type
        self._max_seen = max(1, dedupe_capacity)
        self._logger = logger or _default_logger
        # set for O(1) lookup + deque for FIFO eviction when over capacity
        self._seen: set[tuple[str, str, str]] = set()
        self._seen_order: deque[tuple[str, str, str]] = deque()

    @property
    def target(self) -> WatchTarget:
        return self._target

    def _mark_seen(self, key: tuple[str, str, str]) -> bool:
        """Record key; False if it was already seen. Evicts oldest when over capacity."""
        if key in self._seen:
            return False
        if len(self._seen) >= self._max_seen:
            oldest = self._seen_order.popleft()
            self._seen.discard(oldest)
        self._seen.add(key)
        self._seen_order.append(key)
        return True

    async def process(self, raw: Any, source: EventSource) -> list[DepositEvent]:
        """Run one raw payload through the pipeline. Returns the events dispatched."""
        try:
            candidates = self._parser.parse(raw)
        except ParseError as e:
            self._logger.warning("payload_parse_failed", source=source.value, error=str(e))
            return []

        dispatched: list[DepositEvent] = []
        for candidate in candidates:
            # Without a hash two different deposits could share a key
            if candidate.hash and not self._mark_seen(candidate.dedupe_key):
                self._logger.debug(
                    "deposit_duplicate_skipped",
                    source=source.value,
                    tx_hash=candidate.hash,
                    amount=candidate.amount,
                )
                continue
            event = DepositEvent(
                category=classify(candidate, self._target, self._evm_message_type),
                transaction=candidate,
                source=source,
            )
            self._logger.info(
                "deposit_detected",
                source=source.value,
                category=event.category.value,
                tx_hash=candidate.hash,
                height=candidate.height,
                amount=candidate.amount,
                sender=candidate.sender,
            )
            await self._dispatcher.dispatch(event)
            dispatched.append(event)
        return dispatched
