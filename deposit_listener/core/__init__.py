"""
Core utilities: the error taxonomy and cancellable scheduled tasks shared by
the resolver, the ingestion channels and the dispatcher.
"""

from deposit_listener.core.exceptions import (
    CallbackError,
    DepositListenerError,
    FormatError,
    NetworkError,
    ParseError,
)
from deposit_listener.core.scheduling import ScheduledTask

__all__ = [
    "CallbackError",
    "DepositListenerError",
    "FormatError",
    "NetworkError",
    "ParseError",
    "ScheduledTask",
]
