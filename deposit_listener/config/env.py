"""
Environment variable loading for deposit-listener.

- SEI_WS_ENDPOINT: Tendermint WebSocket endpoint (wss://.../websocket)
- SEI_REST_ENDPOINT: Cosmos REST (LCD) endpoint
- SEI_ADDRESS_PREFIX: bech32 human-readable prefix (default: sei)
- SEI_EVM_RPC_ENDPOINT: EVM JSON-RPC endpoint (default: public Sei EVM RPC)
- LOG_LEVEL: error | warn | info | debug | trace
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is deposit_listener/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_PREFIX = "sei"
DEFAULT_EVM_RPC_URL = "https://evm-rpc.sei-apis.com"
DEFAULT_WS_URL = "wss://rpc.sei-apis.com/websocket"
DEFAULT_REST_URL = "https://rest.sei-apis.com"


def load_listener_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str = "") -> str:
    """Return a stripped env value, or default when unset or blank."""
    load_listener_env()
    raw = (os.getenv(name) or "").strip()
    return raw or default


def env_float(name: str, default: float) -> float:
    """Return a float env value; unparseable values fall back to default."""
    raw = env_str(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default
