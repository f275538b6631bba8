"""
Watch-address resolution.

Turns the identifier a caller wants to watch into the chain-native address
that coin_received events will carry. Hex identifiers are classified as
contract, registered EOA or brand-new EOA; the latter two fall back to the
deterministic cast address when no final address is registered.

Lookups favour availability: a failed lookup counts as "not found" (or
empty code / zero nonce) and resolution continues.
"""

from __future__ import annotations

from typing import Any

import httpx

from deposit_listener.address.derivation import (
    hex_to_address,
    is_hex_address,
    is_native_address,
)
from deposit_listener.core.exceptions import NetworkError
from deposit_listener.core.http import get_json, rpc_call
from deposit_listener.deposit_logging import get_logger
from deposit_listener.listener.models import ResolutionState, WatchTarget

_default_logger = get_logger(__name__)

EVM_ADDRESS_REGISTRY_PATH = "/sei-protocol/seichain/evm/sei_address"
_EMPTY_CODE = frozenset({"", "0x", "0x0"})


class AddressResolver:
    """
    Resolves a raw identifier once, before ingestion starts.

    client: shared httpx.AsyncClient; per-request timeout comes from the client.
    rest_endpoint: Cosmos REST endpoint hosting the EVM address registry.
    evm_rpc_endpoint: EVM JSON-RPC endpoint for code and nonce lookups.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        rest_endpoint: str,
        evm_rpc_endpoint: str,
        prefix: str,
        logger: Any = None,
    ) -> None:
        self._client = client
        self._rest = rest_endpoint.rstrip("/")
        self._evm_rpc = evm_rpc_endpoint
        self._prefix = prefix
        self._logger = logger or _default_logger

    async def resolve(self, identifier: str) -> WatchTarget:
        raw = (identifier or "").strip()
        if is_native_address(raw, self._prefix):
            # Event receivers are always lowercase bech32
            address = raw.lower()
            self._logger.info("resolve_native", address=address)
            return self._target(raw, address, ResolutionState.REGISTERED)

        if not is_hex_address(raw):
            self._logger.warning("resolve_unrecognized_identifier", identifier=raw)
            return self._target(raw, raw, ResolutionState.UNRESOLVED)

        derived = hex_to_address(raw, self._prefix)

        if await self._has_code(raw):
            self._logger.info("resolve_contract", identifier=raw, address=derived)
            return self._target(raw, derived, ResolutionState.CONTRACT)

        registered = await self._registered_address(raw)
        if registered:
            self._logger.info("resolve_registered", identifier=raw, address=registered)
            return self._target(raw, registered, ResolutionState.REGISTERED)

        nonce = await self._transaction_count(raw)
        if nonce == 0:
            self._logger.info("resolve_cast", identifier=raw, address=derived)
            return self._target(raw, derived, ResolutionState.CAST)

        # Has transacted yet no registry entry: watch the cast address and flag for retry
        self._logger.warning(
            "resolve_cast_unregistered_active",
            identifier=raw,
            address=derived,
            nonce=nonce,
        )
        return self._target(raw, derived, ResolutionState.CAST, retry_recommended=True)

    def _target(
        self,
        raw: str,
        address: str,
        state: ResolutionState,
        *,
        retry_recommended: bool = False,
    ) -> WatchTarget:
        return WatchTarget(
            raw_identifier=raw,
            resolved_address=address,
            state=state,
            prefix=self._prefix,
            retry_recommended=retry_recommended,
        )

    async def _has_code(self, hex_address: str) -> bool:
        try:
            code = await rpc_call(self._client, self._evm_rpc, "eth_getCode", [hex_address, "latest"])
        except NetworkError as e:
            self._logger.warning("resolve_code_lookup_failed", identifier=hex_address, error=str(e))
            return False
        return isinstance(code, str) and code.strip().lower() not in _EMPTY_CODE

    async def _registered_address(self, hex_address: str) -> str | None:
        url = self._rest + EVM_ADDRESS_REGISTRY_PATH
        try:
            data = await get_json(self._client, url, params={"evm_address": hex_address})
        except NetworkError as e:
            self._logger.warning("resolve_registry_lookup_failed", identifier=hex_address, error=str(e))
            return None
        if not isinstance(data, dict):
            return None
        address = (data.get("sei_address") or "").strip()
        if not address or data.get("associated") is False:
            return None
        if not is_native_address(address, self._prefix):
            self._logger.warning("resolve_registry_bad_address", identifier=hex_address, address=address)
            return None
        return address

    async def _transaction_count(self, hex_address: str) -> int:
        try:
            result = await rpc_call(
                self._client, self._evm_rpc, "eth_getTransactionCount", [hex_address, "latest"]
            )
        except NetworkError as e:
            self._logger.warning("resolve_nonce_lookup_failed", identifier=hex_address, error=str(e))
            return 0
        try:
            return int(result, 16) if isinstance(result, str) else int(result)
        except (TypeError, ValueError):
            self._logger.warning("resolve_nonce_unparseable", identifier=hex_address, result=str(result))
            return 0
