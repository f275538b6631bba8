"""
Transaction log parser: raw Cosmos tx payloads to deposit candidates.

Three payload shapes reach the parser: a REST tx_response with per-message
log groups, a live-channel TxResult whose events sit under "result", and a
flat top-level event list. normalize() decides the shape once and returns
ordered event groups; the rest of the parser only sees those groups.

Purely structural: no classification or dispatch here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from deposit_listener.core.exceptions import ParseError
from deposit_listener.listener.models import DepositCandidate

EVENT_MESSAGE = "message"
EVENT_TRANSFER = "transfer"
EVENT_COIN_RECEIVED = "coin_received"
ATTR_ACTION = "action"
ATTR_SENDER = "sender"
ATTR_RECEIVER = "receiver"
ATTR_AMOUNT = "amount"
UNKNOWN_ACTION = "unknown"


class PayloadShape(str, Enum):
    REST_LOGS = "rest_logs"
    STREAM_RESULT = "stream_result"
    FLAT_EVENTS = "flat_events"
    EMPTY = "empty"


@dataclass(frozen=True)
class TxHeader:
    """Transaction-level fields shared by every candidate from one payload."""

    hash: str
    height: int | None
    gas_used: int | None
    gas_wanted: int | None
    timestamp: str | None


@dataclass(frozen=True)
class NormalizedPayload:
    shape: PayloadShape
    groups: tuple[tuple[Mapping[str, Any], ...], ...]
    header: TxHeader


def _to_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_event_list(value: Any, where: str) -> tuple[Mapping[str, Any], ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ParseError(f"{where}: events must be a list, got {type(value).__name__}")
    for ev in value:
        if not isinstance(ev, Mapping):
            raise ParseError(f"{where}: event entries must be objects")
    return tuple(value)


def _rest_log_groups(raw: Mapping[str, Any]) -> tuple[tuple[Mapping[str, Any], ...], ...]:
    logs = raw.get("logs")
    if not logs:
        return ()
    if not isinstance(logs, list):
        raise ParseError("logs must be a list")
    groups = []
    for i, log in enumerate(logs):
        if not isinstance(log, Mapping):
            raise ParseError(f"logs[{i}] must be an object")
        events = _as_event_list(log.get("events"), f"logs[{i}]")
        if events:
            groups.append(events)
    return tuple(groups)


def _stream_result_events(raw: Mapping[str, Any]) -> tuple[Mapping[str, Any], ...]:
    result = raw.get("result")
    if not isinstance(result, Mapping):
        return ()
    return _as_event_list(result.get("events"), "result")


def _header(raw: Mapping[str, Any]) -> TxHeader:
    result = raw.get("result") if isinstance(raw.get("result"), Mapping) else {}
    tx_hash = raw.get("txhash") or raw.get("hash") or ""
    gas_used = raw.get("gas_used", result.get("gas_used"))
    gas_wanted = raw.get("gas_wanted", result.get("gas_wanted"))
    timestamp = raw.get("timestamp")
    return TxHeader(
        hash=str(tx_hash),
        height=_to_int(raw.get("height")),
        gas_used=_to_int(gas_used),
        gas_wanted=_to_int(gas_wanted),
        timestamp=str(timestamp) if timestamp else None,
    )


def normalize(raw: Any) -> NormalizedPayload:
    """
    Classify a raw payload and return its event groups.

    Sources are tried in fixed order (REST log groups, stream result events,
    flat top-level events) and the first non-empty one wins. Raises
    ParseError for payloads that are not objects or have malformed event
    containers.
    """
    if not isinstance(raw, Mapping):
        raise ParseError(f"Transaction payload must be an object, got {type(raw).__name__}")
    header = _header(raw)

    log_groups = _rest_log_groups(raw)
    if log_groups:
        return NormalizedPayload(PayloadShape.REST_LOGS, log_groups, header)

    stream_events = _stream_result_events(raw)
    if stream_events:
        return NormalizedPayload(PayloadShape.STREAM_RESULT, (stream_events,), header)

    flat_events = _as_event_list(raw.get("events"), "events")
    if flat_events:
        return NormalizedPayload(PayloadShape.FLAT_EVENTS, (flat_events,), header)

    return NormalizedPayload(PayloadShape.EMPTY, (), header)


def _attributes(event: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    attrs = event.get("attributes") or []
    if not isinstance(attrs, list):
        raise ParseError(f"{event.get('type')}: attributes must be a list")
    for attr in attrs:
        if not isinstance(attr, Mapping):
            raise ParseError(f"{event.get('type')}: attribute entries must be objects")
    return attrs


def _find_attribute(events: tuple[Mapping[str, Any], ...], event_type: str, key: str) -> str | None:
    """First value of `key` across events of `event_type`, in group order."""
    for ev in events:
        if ev.get("type") != event_type:
            continue
        for attr in _attributes(ev):
            if attr.get("key") == key and attr.get("value"):
                return str(attr["value"])
    return None


def received_pairs(event: Mapping[str, Any]) -> list[tuple[str, str]]:
    """
    (receiver, amount) pairs from a coin_received event.

    Attributes are positional: [receiver, amount, receiver, amount, ...].
    Pairs whose keys are not receiver then amount are skipped; a trailing
    unpaired attribute is ignored.
    """
    attrs = _attributes(event)
    pairs: list[tuple[str, str]] = []
    for i in range(0, len(attrs) - 1, 2):
        receiver_attr, amount_attr = attrs[i], attrs[i + 1]
        if receiver_attr.get("key") != ATTR_RECEIVER or amount_attr.get("key") != ATTR_AMOUNT:
            continue
        pairs.append((str(receiver_attr.get("value") or ""), str(amount_attr.get("value") or "")))
    return pairs


class TransactionLogParser:
    """Extracts deposit candidates addressed to one watch address."""

    def __init__(self, watch_address: str) -> None:
        if not watch_address:
            raise ValueError("watch_address must be non-empty")
        self._watch_address = watch_address

    @property
    def watch_address(self) -> str:
        return self._watch_address

    def parse(self, raw: Any) -> list[DepositCandidate]:
        """Parse one payload. Returns [] when nothing is addressed to the watch address."""
        return self.parse_normalized(normalize(raw), raw)

    def parse_normalized(self, payload: NormalizedPayload, raw: Any = None) -> list[DepositCandidate]:
        h = payload.header
        out: list[DepositCandidate] = []
        for events in payload.groups:
            matches = [
                (receiver, amount)
                for ev in events
                if ev.get("type") == EVENT_COIN_RECEIVED
                for receiver, amount in received_pairs(ev)
                if receiver == self._watch_address
            ]
            if not matches:
                continue
            action = _find_attribute(events, EVENT_MESSAGE, ATTR_ACTION) or UNKNOWN_ACTION
            sender = (
                _find_attribute(events, EVENT_MESSAGE, ATTR_SENDER)
                or _find_attribute(events, EVENT_TRANSFER, ATTR_SENDER)
            )
            for receiver, amount in matches:
                out.append(
                    DepositCandidate(
                        hash=h.hash,
                        height=h.height,
                        action_type=action,
                        amount=amount,
                        receiver=receiver,
                        sender=sender,
                        gas_used=h.gas_used,
                        gas_wanted=h.gas_wanted,
                        timestamp=h.timestamp,
                        raw=raw,
                    )
                )
        return out
