"""
Tests for watch-address resolution against mocked EVM RPC and registry
endpoints.
"""

from __future__ import annotations

import json

import httpx
import pytest

from deposit_listener.address.derivation import hex_to_address
from deposit_listener.address.resolver import EVM_ADDRESS_REGISTRY_PATH, AddressResolver
from deposit_listener.listener.models import ResolutionState

WATCH_HEX = "0x" + "11" * 20
REST = "https://rest.test.com"
EVM_RPC = "https://evm.test.com"


def _router(rpc_response, *, code="0x", nonce="0x0", registry=None, registry_status=200, calls=None):
    """
    Route JSON-RPC calls by method and registry GETs by path.

    A value of None for code or nonce answers that method with HTTP 500.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if request.url.host == "evm.test.com":
            method = json.loads(request.content)["method"]
            result = {"eth_getCode": code, "eth_getTransactionCount": nonce}[method]
            if result is None:
                return httpx.Response(500)
            return rpc_response(request, result)
        if request.url.path == EVM_ADDRESS_REGISTRY_PATH:
            return httpx.Response(registry_status, json=registry or {})
        return httpx.Response(404)

    return handler


def _resolver(client, quiet_logger):
    return AddressResolver(
        client,
        rest_endpoint=REST,
        evm_rpc_endpoint=EVM_RPC,
        prefix="sei",
        logger=quiet_logger,
    )


@pytest.mark.asyncio
async def test_fresh_account_resolves_to_cast(mock_client, rpc_response, quiet_logger):
    """No code, no registry entry, nonce 0: the deterministic cast address."""
    async with mock_client(_router(rpc_response, registry_status=404)) as client:
        target = await _resolver(client, quiet_logger).resolve(WATCH_HEX)

    assert target.state is ResolutionState.CAST
    assert target.resolved_address == hex_to_address(WATCH_HEX, "sei")
    assert target.raw_identifier == WATCH_HEX
    assert target.retry_recommended is False


@pytest.mark.asyncio
async def test_contract_resolves_to_derived_address(mock_client, rpc_response, quiet_logger):
    calls = []
    handler = _router(rpc_response, code="0x6080604052", calls=calls)
    async with mock_client(handler) as client:
        target = await _resolver(client, quiet_logger).resolve(WATCH_HEX)

    assert target.state is ResolutionState.CONTRACT
    assert target.resolved_address == hex_to_address(WATCH_HEX, "sei")
    # Registry and nonce are not consulted for contracts
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_registered_account_uses_registry_address(mock_client, rpc_response, quiet_logger):
    registered = hex_to_address("0x" + "22" * 20, "sei")
    handler = _router(rpc_response, registry={"sei_address": registered, "associated": True})
    async with mock_client(handler) as client:
        target = await _resolver(client, quiet_logger).resolve(WATCH_HEX)

    assert target.state is ResolutionState.REGISTERED
    assert target.resolved_address == registered


@pytest.mark.asyncio
async def test_unassociated_registry_entry_is_ignored(mock_client, rpc_response, quiet_logger):
    registered = hex_to_address("0x" + "22" * 20, "sei")
    handler = _router(rpc_response, registry={"sei_address": registered, "associated": False})
    async with mock_client(handler) as client:
        target = await _resolver(client, quiet_logger).resolve(WATCH_HEX)

    assert target.state is ResolutionState.CAST


@pytest.mark.asyncio
async def test_invalid_registry_address_is_ignored(mock_client, rpc_response, quiet_logger):
    handler = _router(rpc_response, registry={"sei_address": "cosmos1notours"})
    async with mock_client(handler) as client:
        target = await _resolver(client, quiet_logger).resolve(WATCH_HEX)

    assert target.state is ResolutionState.CAST


@pytest.mark.asyncio
async def test_active_unregistered_account_recommends_retry(mock_client, rpc_response, quiet_logger):
    """Nonzero nonce without a registry entry: cast address, flagged for retry."""
    async with mock_client(_router(rpc_response, nonce="0x5")) as client:
        target = await _resolver(client, quiet_logger).resolve(WATCH_HEX)

    assert target.state is ResolutionState.CAST
    assert target.resolved_address == hex_to_address(WATCH_HEX, "sei")
    assert target.retry_recommended is True


@pytest.mark.asyncio
async def test_network_failures_fall_back_to_cast(mock_client, rpc_response, quiet_logger):
    handler = _router(rpc_response, code=None, nonce=None, registry_status=503)
    async with mock_client(handler) as client:
        target = await _resolver(client, quiet_logger).resolve(WATCH_HEX)

    assert target.state is ResolutionState.CAST
    assert target.retry_recommended is False


@pytest.mark.asyncio
async def test_transport_errors_fall_back_to_cast(mock_client, quiet_logger):
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    async with mock_client(handler) as client:
        target = await _resolver(client, quiet_logger).resolve(WATCH_HEX)

    assert target.state is ResolutionState.CAST


@pytest.mark.asyncio
async def test_rpc_error_object_counts_as_failure(mock_client, quiet_logger):
    def handler(request):
        if request.url.host == "evm.test.com":
            body = json.loads(request.content)
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32000, "message": "nope"}},
            )
        return httpx.Response(404)

    async with mock_client(handler) as client:
        target = await _resolver(client, quiet_logger).resolve(WATCH_HEX)

    assert target.state is ResolutionState.CAST
    assert target.retry_recommended is False


@pytest.mark.asyncio
async def test_native_address_passes_through_without_lookups(mock_client, quiet_logger):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    native = hex_to_address(WATCH_HEX, "sei")
    async with mock_client(handler) as client:
        target = await _resolver(client, quiet_logger).resolve(native)

    assert target.state is ResolutionState.REGISTERED
    assert target.resolved_address == native
    assert calls == []


@pytest.mark.asyncio
async def test_unrecognized_identifier_is_unresolved(mock_client, quiet_logger):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    async with mock_client(handler) as client:
        target = await _resolver(client, quiet_logger).resolve("not-an-address")

    assert target.state is ResolutionState.UNRESOLVED
    assert target.resolved_address == "not-an-address"
    assert calls == []


@pytest.mark.asyncio
async def test_uppercase_native_address_is_watched_lowercase(mock_client, quiet_logger):
    native = hex_to_address(WATCH_HEX, "sei")

    def handler(request):
        return httpx.Response(500)

    async with mock_client(handler) as client:
        target = await _resolver(client, quiet_logger).resolve(native.upper())

    assert target.state is ResolutionState.REGISTERED
    assert target.resolved_address == native
    assert target.raw_identifier == native.upper()


@pytest.mark.asyncio
async def test_closed_client_falls_back_to_cast(mock_client, rpc_response, quiet_logger):
    """Lookups on an already closed client count as failures, not crashes."""
    client = mock_client(_router(rpc_response, code="0x6080"))
    await client.aclose()

    target = await _resolver(client, quiet_logger).resolve(WATCH_HEX)

    assert target.state is ResolutionState.CAST
    assert target.resolved_address == hex_to_address(WATCH_HEX, "sei")
