"""
Thin httpx helpers for REST and JSON-RPC calls.

Every transport, status or protocol failure is raised as NetworkError so
callers have a single exception to recover from.
"""

from __future__ import annotations

import itertools
from typing import Any

import httpx

from deposit_listener.core.exceptions import NetworkError

# JSON-RPC request id counter
_request_ids = itertools.count(1)


def _ensure_open(client: httpx.AsyncClient, url: str) -> None:
    if client.is_closed:
        raise NetworkError(f"HTTP client is closed; request to {url} not sent", url=url)


def build_rpc_body(method: str, params: list[Any]) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": next(_request_ids),
        "method": method,
        "params": params,
    }


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    params: dict[str, Any] | None = None,
) -> Any:
    """GET url and decode the JSON body; raise NetworkError on any failure."""
    _ensure_open(client, url)
    try:
        resp = await client.get(url, params=params)
        resp.raise_for_status()
        return resp.json()
    except httpx.HTTPStatusError as e:
        raise NetworkError(f"HTTP {e.response.status_code} from {url}", url=url) from e
    except httpx.HTTPError as e:
        raise NetworkError(f"Request to {url} failed: {e}", url=url) from e
    except ValueError as e:
        raise NetworkError(f"Invalid JSON from {url}: {e}", url=url) from e


async def rpc_call(
    client: httpx.AsyncClient,
    url: str,
    method: str,
    params: list[Any],
) -> Any:
    """Perform one JSON-RPC call and return `result`; raise NetworkError on transport or RPC error."""
    body = build_rpc_body(method, params)
    _ensure_open(client, url)
    try:
        resp = await client.post(url, json=body)
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPStatusError as e:
        raise NetworkError(f"HTTP {e.response.status_code} from {url}", url=url) from e
    except httpx.HTTPError as e:
        raise NetworkError(f"RPC {method} to {url} failed: {e}", url=url) from e
    except ValueError as e:
        raise NetworkError(f"Invalid JSON from {url}: {e}", url=url) from e
    if not isinstance(data, dict):
        raise NetworkError(f"RPC {method} returned a non-object response", url=url)
    if data.get("error"):
        err = data["error"]
        message = err.get("message", err) if isinstance(err, dict) else err
        code = err.get("code") if isinstance(err, dict) else None
        raise NetworkError(f"RPC {method} error: {message} (code={code})", url=url)
    if "result" not in data:
        raise NetworkError(f"RPC {method} returned no result", url=url)
    return data["result"]
