"""
Application-level exceptions.

FormatError fails the single derivation call that raised it. NetworkError is
recovered internally (reconnect, next poll tick, resolver fallback) and never
reaches consumers. ParseError drops one payload. CallbackError isolates one
consumer callback failure.
"""

from __future__ import annotations

from typing import Any


class DepositListenerError(Exception):
    """Base class for all deposit-listener errors."""


class FormatError(DepositListenerError, ValueError):
    """Malformed address, public key or identifier input."""


class NetworkError(DepositListenerError):
    """Transport failure talking to a WebSocket, REST or JSON-RPC endpoint."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class ParseError(DepositListenerError):
    """Malformed inbound payload; the payload is dropped."""


class CallbackError(DepositListenerError):
    """A consumer callback raised while handling a deposit event."""

    def __init__(self, callback: Any, cause: BaseException) -> None:
        name = getattr(callback, "__qualname__", None) or repr(callback)
        super().__init__(f"Deposit callback {name} failed: {cause}")
        self.callback = callback
        self.cause = cause
