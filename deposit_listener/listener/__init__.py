"""
Deposit listener core: data models, transaction log parsing, classification
and callback dispatch. Both ingestion channels feed DepositPipeline.
"""

from deposit_listener.listener.classifier import classify
from deposit_listener.listener.dispatcher import Dispatcher
from deposit_listener.listener.models import (
    CallbackHandle,
    DepositCandidate,
    DepositCategory,
    DepositEvent,
    EventSource,
    ResolutionState,
    WatchTarget,
)
from deposit_listener.listener.parser import (
    NormalizedPayload,
    PayloadShape,
    TransactionLogParser,
    normalize,
)
from deposit_listener.listener.pipeline import DepositPipeline

__all__ = [
    "CallbackHandle",
    "DepositCandidate",
    "DepositCategory",
    "DepositEvent",
    "DepositPipeline",
    "Dispatcher",
    "EventSource",
    "NormalizedPayload",
    "PayloadShape",
    "ResolutionState",
    "TransactionLogParser",
    "WatchTarget",
    "classify",
    "normalize",
]
