"""
Data models for the deposit listener.

WatchTarget is produced once by the resolver and never changes while the
monitor runs. DepositCandidate and DepositEvent are built fresh per payload
and never mutated afterwards, so both ingestion channels can share them
without locking.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Union


class ResolutionState(str, Enum):
    """How the watch address was obtained from the raw identifier."""

    CONTRACT = "contract"
    REGISTERED = "registered"
    CAST = "cast"
    UNRESOLVED = "unresolved"


class DepositCategory(str, Enum):
    DIRECT = "direct"
    EVM = "evm"
    CAST = "cast"


class EventSource(str, Enum):
    STREAM = "stream"
    POLL = "poll"


@dataclass(frozen=True)
class WatchTarget:
    """
    Account being watched.

    raw_identifier is what the caller passed (0x hex or chain-native);
    resolved_address is the chain-native address every coin_received
    receiver is compared against.
    """

    raw_identifier: str
    resolved_address: str
    state: ResolutionState
    prefix: str
    retry_recommended: bool = False
    """True when the account has transacted but no final address was registered yet."""

    @property
    def is_cast(self) -> bool:
        return self.state is ResolutionState.CAST


@dataclass(frozen=True)
class DepositCandidate:
    """One coin_received (receiver, amount) pair addressed to the watch address."""

    hash: str
    height: int | None
    action_type: str
    amount: str
    receiver: str
    sender: str | None = None
    gas_used: int | None = None
    gas_wanted: int | None = None
    timestamp: str | None = None
    raw: Any = field(default=None, compare=False, repr=False)
    """Source payload; forwarded to consumers, never inspected by the pipeline."""

    @property
    def dedupe_key(self) -> tuple[str, str, str]:
        return (self.hash, self.receiver, self.amount)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict without the raw payload."""
        return {
            "hash": self.hash,
            "height": self.height,
            "type": self.action_type,
            "amount": self.amount,
            "sender": self.sender,
            "receiver": self.receiver,
            "gas_used": self.gas_used,
            "gas_wanted": self.gas_wanted,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class DepositEvent:
    category: DepositCategory
    transaction: DepositCandidate
    source: EventSource = EventSource.STREAM

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.category.value,
            "source": self.source.value,
            "transaction": self.transaction.to_dict(),
        }


DepositCallback = Callable[[DepositEvent], Union[None, Awaitable[None]]]

_handle_ids = itertools.count(1)


@dataclass(frozen=True)
class CallbackHandle:
    """Opaque registration token returned by DepositMonitor.on_deposit()."""

    id: int
    callback: DepositCallback = field(compare=False, repr=False)

    @classmethod
    def create(cls, callback: DepositCallback) -> "CallbackHandle":
        return cls(id=next(_handle_ids), callback=callback)
