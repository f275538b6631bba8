"""
deposit-listener: deposit monitoring for Sei (Cosmos SDK + EVM).

Watches one account for incoming transfers over a live Tendermint WebSocket
subscription backed by a periodic REST reconciliation poll, and delivers
classified deposit events (direct / evm / cast) to application callbacks.
Hex EVM identifiers are resolved to their chain-native address first,
falling back to the deterministic cast address for accounts that have not
been registered yet.
"""

from deposit_listener.address import hex_to_address, pubkey_to_address
from deposit_listener.config import MonitorConfig, get_settings
from deposit_listener.core.exceptions import (
    CallbackError,
    DepositListenerError,
    FormatError,
    NetworkError,
    ParseError,
)
from deposit_listener.deposit_logging import get_logger, make_logger
from deposit_listener.listener.models import (
    CallbackHandle,
    DepositCandidate,
    DepositCategory,
    DepositEvent,
    ResolutionState,
    WatchTarget,
)
from deposit_listener.monitor import DepositMonitor

__version__ = "0.1.0"

__all__ = [
    "CallbackError",
    "CallbackHandle",
    "DepositCandidate",
    "DepositCategory",
    "DepositEvent",
    "DepositListenerError",
    "DepositMonitor",
    "FormatError",
    "MonitorConfig",
    "NetworkError",
    "ParseError",
    "ResolutionState",
    "WatchTarget",
    "get_logger",
    "get_settings",
    "hex_to_address",
    "make_logger",
    "pubkey_to_address",
]
