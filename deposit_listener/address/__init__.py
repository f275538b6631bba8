"""
Address handling: deterministic bech32 derivation and watch-target resolution.
"""

from deposit_listener.address.derivation import (
    address_to_bytes,
    bytes_to_address,
    convert_bits,
    hex_to_address,
    is_hex_address,
    is_native_address,
    pubkey_to_address,
)
from deposit_listener.address.resolver import AddressResolver

__all__ = [
    "AddressResolver",
    "address_to_bytes",
    "bytes_to_address",
    "convert_bits",
    "hex_to_address",
    "is_hex_address",
    "is_native_address",
    "pubkey_to_address",
]
