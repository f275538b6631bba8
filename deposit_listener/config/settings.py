"""
Monitor settings.

MonitorConfig is the single source of truth for endpoints, address prefix,
verbosity and timing. Build it directly or from the environment via
get_settings().
"""

from __future__ import annotations

from dataclasses import dataclass

from deposit_listener.config.env import (
    DEFAULT_EVM_RPC_URL,
    DEFAULT_PREFIX,
    DEFAULT_REST_URL,
    DEFAULT_WS_URL,
    env_float,
    env_str,
)

EVM_TX_MESSAGE_TYPE = "/seiprotocol.seichain.evm.MsgEVMTransaction"

DEFAULT_RECONNECT_DELAY_SEC = 5.0
DEFAULT_POLL_INTERVAL_SEC = 6.0
DEFAULT_REQUEST_TIMEOUT_SEC = 10.0
DEFAULT_TX_PAGE_LIMIT = 100
DEFAULT_DEDUPE_CAPACITY = 10_000
WEBSOCKET_PATH = "/websocket"


def normalize_ws_endpoint(url: str) -> str:
    """Strip trailing slashes and make sure the path ends in /websocket."""
    s = url.strip().rstrip("/")
    if not s.endswith(WEBSOCKET_PATH):
        s += WEBSOCKET_PATH
    return s


@dataclass
class MonitorConfig:
    """
    Network and runtime configuration for one deposit monitor.

    ws_endpoint: Tendermint WebSocket endpoint; /websocket is appended when missing.
    rest_endpoint: Cosmos REST endpoint for block height, tx search and the EVM address registry.
    prefix: bech32 prefix of chain-native addresses.
    evm_rpc_endpoint: EVM JSON-RPC endpoint for eth_getCode / eth_getTransactionCount.
    log_level: error | warn | info | debug | trace, or a stdlib logging int.
    """

    ws_endpoint: str
    rest_endpoint: str
    prefix: str = DEFAULT_PREFIX
    evm_rpc_endpoint: str | None = None
    log_level: str | int = "info"
    reconnect_delay_sec: float = DEFAULT_RECONNECT_DELAY_SEC
    poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC
    request_timeout_sec: float = DEFAULT_REQUEST_TIMEOUT_SEC
    tx_page_limit: int = DEFAULT_TX_PAGE_LIMIT
    dedupe_capacity: int = DEFAULT_DEDUPE_CAPACITY
    evm_message_type: str = EVM_TX_MESSAGE_TYPE

    def __post_init__(self) -> None:
        if not (self.ws_endpoint or "").strip():
            raise ValueError("ws_endpoint must be non-empty")
        if not (self.rest_endpoint or "").strip():
            raise ValueError("rest_endpoint must be non-empty")
        if not (self.prefix or "").strip():
            raise ValueError("prefix must be non-empty")
        if self.reconnect_delay_sec <= 0:
            raise ValueError("reconnect_delay_sec must be positive")
        if self.poll_interval_sec <= 0:
            raise ValueError("poll_interval_sec must be positive")
        if self.request_timeout_sec <= 0:
            raise ValueError("request_timeout_sec must be positive")
        if not (1 <= self.tx_page_limit <= 1000):
            raise ValueError("tx_page_limit must be between 1 and 1000")
        self.ws_endpoint = normalize_ws_endpoint(self.ws_endpoint)
        self.rest_endpoint = self.rest_endpoint.strip().rstrip("/")
        self.prefix = self.prefix.strip().lower()
        self.evm_rpc_endpoint = (self.evm_rpc_endpoint or "").strip() or DEFAULT_EVM_RPC_URL
        self.dedupe_capacity = max(1, int(self.dedupe_capacity))

    @classmethod
    def from_env(cls) -> "MonitorConfig":
        """Build from SEI_* / LOG_LEVEL env vars (after loading .env)."""
        return cls(
            ws_endpoint=env_str("SEI_WS_ENDPOINT", DEFAULT_WS_URL),
            rest_endpoint=env_str("SEI_REST_ENDPOINT", DEFAULT_REST_URL),
            prefix=env_str("SEI_ADDRESS_PREFIX", DEFAULT_PREFIX),
            evm_rpc_endpoint=env_str("SEI_EVM_RPC_ENDPOINT") or None,
            log_level=env_str("LOG_LEVEL", "info"),
            reconnect_delay_sec=env_float("RECONNECT_DELAY_SEC", DEFAULT_RECONNECT_DELAY_SEC),
            poll_interval_sec=env_float("POLL_INTERVAL_SEC", DEFAULT_POLL_INTERVAL_SEC),
            request_timeout_sec=env_float("REQUEST_TIMEOUT_SEC", DEFAULT_REQUEST_TIMEOUT_SEC),
        )


def get_settings() -> MonitorConfig:
    """Return monitor settings built from the current environment."""
    return MonitorConfig.from_env()
