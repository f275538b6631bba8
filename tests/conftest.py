"""
Pytest fixtures for deposit-listener tests.

HTTP endpoints are served by httpx.MockTransport and the WebSocket by an
in-memory fake, so no test touches the network.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest

from deposit_listener.address.derivation import hex_to_address
from deposit_listener.config.settings import MonitorConfig
from deposit_listener.deposit_logging import make_logger

WATCH_HEX = "0x" + "11" * 20
SENDER_ADDRESS = "sei1sender"
MSG_SEND = "/cosmos.bank.v1beta1.MsgSend"


@pytest.fixture
def quiet_logger():
    """Component logger that only prints errors."""
    return make_logger("tests", "error")


@pytest.fixture
def watch_address() -> str:
    """Chain-native address derived from 0x1111…11."""
    return hex_to_address(WATCH_HEX, "sei")


@pytest.fixture
def config() -> MonitorConfig:
    return MonitorConfig(
        ws_endpoint="wss://ws.test.com",
        rest_endpoint="https://rest.test.com",
        evm_rpc_endpoint="https://evm.test.com",
        prefix="sei",
        log_level="error",
        reconnect_delay_sec=0.01,
        poll_interval_sec=60.0,
    )


@pytest.fixture
def make_tx() -> Callable[..., dict[str, Any]]:
    """Build a REST tx_response with one coin_received event."""

    def _make_tx(
        receiver: str,
        amount: str = "100000usei",
        *,
        txhash: str = "ABC123",
        height: int = 101,
        action: str | None = MSG_SEND,
        sender: str | None = SENDER_ADDRESS,
    ) -> dict[str, Any]:
        message_attrs = []
        if action is not None:
            message_attrs.append({"key": "action", "value": action})
        if sender is not None:
            message_attrs.append({"key": "sender", "value": sender})
        return {
            "txhash": txhash,
            "height": str(height),
            "gas_used": "50000",
            "gas_wanted": "75000",
            "timestamp": "2024-02-09T12:00:00Z",
            "logs": [
                {
                    "msg_index": 0,
                    "events": [
                        {
                            "type": "coin_received",
                            "attributes": [
                                {"key": "receiver", "value": receiver},
                                {"key": "amount", "value": amount},
                            ],
                        },
                        {"type": "message", "attributes": message_attrs},
                    ],
                }
            ],
        }

    return _make_tx


@pytest.fixture
def stream_frame() -> Callable[..., str]:
    """Wrap a TxResult the way Tendermint delivers it on a Tx subscription."""

    def _frame(receiver: str, amount: str = "100000usei", *, txhash: str = "ABC123", height: int = 101,
               action: str = MSG_SEND) -> str:
        msg = {
            "jsonrpc": "2.0",
            "id": 1,
            "result": {
                "query": "tm.event='Tx'",
                "data": {
                    "type": "tendermint/event/Tx",
                    "value": {
                        "TxResult": {
                            "height": str(height),
                            "index": 0,
                            "tx": "CpABCo0BChwvY29zbW9z",
                            "result": {
                                "gas_wanted": "75000",
                                "gas_used": "50000",
                                "events": [
                                    {
                                        "type": "message",
                                        "attributes": [
                                            {"key": "action", "value": action},
                                            {"key": "sender", "value": SENDER_ADDRESS},
                                        ],
                                    },
                                    {
                                        "type": "coin_received",
                                        "attributes": [
                                            {"key": "receiver", "value": receiver},
                                            {"key": "amount", "value": amount},
                                        ],
                                    },
                                ],
                            },
                        }
                    },
                },
                "events": {"tx.hash": [txhash], "tx.height": [str(height)]},
            },
        }
        return json.dumps(msg)

    return _frame


@pytest.fixture
def mock_client():
    """
    Factory for an httpx.AsyncClient whose requests go to `handler`.

    handler(request) -> httpx.Response; JSON-RPC bodies can be read with
    json.loads(request.content).
    """
    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


def rpc_result(request: httpx.Request, result: Any) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body.get("id"), "result": result})


@pytest.fixture
def rpc_response():
    """Build a JSON-RPC success response echoing the request id."""
    return rpc_result


class FakeSocket:
    """In-memory WebSocket: yields queued frames, then closes or stays open."""

    def __init__(self, frames: list[Any] | None = None, *, hold_open: bool = False) -> None:
        self.frames = list(frames or [])
        self.sent: list[str] = []
        self.closed = False
        self._hold_open = hold_open

    async def send(self, data: str) -> None:
        self.sent.append(data)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            yield frame
            await asyncio.sleep(0)
        if self._hold_open:
            await asyncio.Event().wait()

    async def __aenter__(self) -> "FakeSocket":
        return self

    async def __aexit__(self, *exc: Any) -> bool:
        self.closed = True
        return False


class FakeConnector:
    """Hands out prepared sockets in order; refuses once they run out."""

    def __init__(self, sockets: list[FakeSocket]) -> None:
        self.sockets = list(sockets)
        self.urls: list[str] = []

    def __call__(self, url: str) -> FakeSocket:
        self.urls.append(url)
        if not self.sockets:
            raise OSError("connection refused")
        return self.sockets.pop(0)


@pytest.fixture
def fake_socket():
    return FakeSocket


@pytest.fixture
def fake_connector():
    return FakeConnector


@pytest.fixture
def eventually():
    """Await until predicate() is truthy or fail after timeout seconds."""

    async def _eventually(predicate: Callable[[], Any], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.005)

    return _eventually
