"""
Live-channel message handling: raw WebSocket frames to pipeline payloads.

Frames are decoded best-effort. Malformed frames are logged and dropped;
subscription acknowledgements and non-Tx messages are ignored. Tx results
are forwarded with the transaction hash attached, since Tendermint only
reports it in the event index, not in the TxResult itself.
"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Mapping

from deposit_listener.core.exceptions import ParseError
from deposit_listener.deposit_logging import get_logger
from deposit_listener.listener.models import EventSource

_default_logger = get_logger(__name__)

PayloadSink = Callable[[Any, EventSource], Awaitable[Any]]


def decode_message(raw: str | bytes) -> Mapping[str, Any]:
    """Decode one WebSocket frame into a JSON object; raise ParseError otherwise."""
    try:
        text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw
        msg = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as e:
        raise ParseError(f"Undecodable stream message: {e}") from e
    if not isinstance(msg, Mapping):
        raise ParseError(f"Stream message must be an object, got {type(msg).__name__}")
    return msg


def extract_tx_result(msg: Mapping[str, Any]) -> dict[str, Any] | None:
    """
    Return the TxResult carried by a subscription message, or None for
    messages that are not transaction events.
    """
    result = msg.get("result")
    if not isinstance(result, Mapping):
        return None
    data = result.get("data")
    value = data.get("value") if isinstance(data, Mapping) else None
    tx_result = value.get("TxResult") if isinstance(value, Mapping) else None
    if tx_result is None:
        return None
    if not isinstance(tx_result, Mapping):
        raise ParseError("TxResult must be an object")
    payload = dict(tx_result)
    if not payload.get("hash") and not payload.get("txhash"):
        events = result.get("events")
        hashes = events.get("tx.hash") if isinstance(events, Mapping) else None
        if isinstance(hashes, list) and hashes:
            payload["hash"] = str(hashes[0])
    return payload


class EventIngestor:
    """Feeds recognised transaction payloads from the live channel into the pipeline sink."""

    def __init__(self, sink: PayloadSink, *, logger: Any = None) -> None:
        self._sink = sink
        self._logger = logger or _default_logger
        self._received = 0
        self._dropped = 0

    @property
    def received(self) -> int:
        return self._received

    @property
    def dropped(self) -> int:
        return self._dropped

    async def handle_message(self, raw: str | bytes) -> bool:
        """Process one frame. Returns True when a transaction payload was forwarded."""
        self._received += 1
        try:
            msg = decode_message(raw)
            tx_result = extract_tx_result(msg)
        except ParseError as e:
            self._dropped += 1
            self._logger.warning("stream_message_dropped", error=str(e))
            return False
        if tx_result is None:
            if msg.get("error"):
                self._logger.warning("stream_rpc_error", error=str(msg.get("error")))
            else:
                self._logger.debug("stream_message_ignored", id=msg.get("id"))
            return False
        await self._sink(tx_result, EventSource.STREAM)
        return True
