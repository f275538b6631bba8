"""
Ingestion channels: the live WebSocket subscription and the periodic REST
reconciliation poll. Both forward raw payloads into the shared pipeline.
"""

from deposit_listener.ingestion.connection import (
    SUBSCRIBE_REQUEST,
    ConnectionState,
    ConnectionSupervisor,
)
from deposit_listener.ingestion.ingestor import EventIngestor
from deposit_listener.ingestion.poller import ReconciliationPoller

__all__ = [
    "ConnectionState",
    "ConnectionSupervisor",
    "EventIngestor",
    "ReconciliationPoller",
    "SUBSCRIBE_REQUEST",
]
