"""
Address derivation: raw bytes and public keys to bech32 chain addresses.

Pure and deterministic: the same bytes and prefix always give the same
address, whatever text encoding (hex, 0x-hex, base64) the caller started
from. Account identifiers (20-byte EVM addresses) are repacked directly;
public keys are hashed SHA-256 then RIPEMD-160 first. All malformed input
raises FormatError.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import re

import bech32
from Crypto.Hash import RIPEMD160

from deposit_listener.core.exceptions import FormatError

ACCOUNT_ID_LENGTH = 20
# secp256k1 compressed / uncompressed
PUBKEY_LENGTHS = frozenset({33, 65})

_HEX_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def convert_bits(data: bytes | list[int], from_bits: int, to_bits: int, pad: bool) -> list[int]:
    """
    Regroup a sequence of from_bits-wide values into to_bits-wide values.

    With pad=True a final partial group is zero-padded. With pad=False any
    leftover group of from_bits or more, or any non-zero leftover bit, is an
    error: the input was not produced by a padded 8->5 regrouping.
    """
    acc = 0
    bits = 0
    result: list[int] = []
    maxv = (1 << to_bits) - 1
    max_acc = (1 << (from_bits + to_bits - 1)) - 1
    for value in data:
        if value < 0 or (value >> from_bits):
            raise FormatError(f"Value {value} out of range for {from_bits}-bit groups")
        acc = ((acc << from_bits) | value) & max_acc
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            result.append((acc >> bits) & maxv)
    if pad:
        if bits > 0:
            result.append((acc << (to_bits - bits)) & maxv)
    elif bits >= from_bits or ((acc << (to_bits - bits)) & maxv):
        raise FormatError("Unable to convert bits: invalid padding")
    return result


def is_hex_address(value: str) -> bool:
    """True for 0x followed by exactly 40 hex characters."""
    return bool(_HEX_ADDRESS_RE.match(value or ""))


def is_native_address(value: str, prefix: str) -> bool:
    """True when value is a valid bech32 string with the given prefix."""
    if not value or not value.lower().startswith(prefix.lower() + "1"):
        return False
    hrp, data = bech32.bech32_decode(value)
    return hrp == prefix.lower() and data is not None


def bytes_to_address(data: bytes, prefix: str) -> str:
    """Encode a 20-byte account identifier as a bech32 address without hashing."""
    if len(data) != ACCOUNT_ID_LENGTH:
        raise FormatError(
            f"Invalid account identifier length: {len(data)} bytes (expected {ACCOUNT_ID_LENGTH})"
        )
    return _encode(prefix, data)


def hex_to_address(hex_identifier: str, prefix: str) -> str:
    """
    Encode a 0x-prefixed 20-byte hex identifier as a bech32 address.

    Contracts and not-yet-registered accounts share this encoding: the cast
    address of an EOA is exactly these bytes under the chain prefix.
    """
    if not isinstance(hex_identifier, str) or not hex_identifier.startswith("0x"):
        raise FormatError("Invalid hex identifier: missing 0x prefix")
    body = hex_identifier[2:]
    if not _HEX_RE.match(body):
        raise FormatError("Invalid hex identifier: non-hex characters")
    if len(body) != ACCOUNT_ID_LENGTH * 2:
        raise FormatError(
            f"Invalid hex identifier length: {len(body)} hex chars (expected {ACCOUNT_ID_LENGTH * 2})"
        )
    return bytes_to_address(bytes.fromhex(body), prefix)


def decode_public_key(public_key: bytes | str) -> bytes:
    """Decode a public key given as raw bytes, hex, 0x-hex or base64."""
    if isinstance(public_key, (bytes, bytearray)):
        raw = bytes(public_key)
    elif isinstance(public_key, str):
        text = public_key.strip()
        try:
            if text.startswith("0x"):
                raw = bytes.fromhex(text[2:])
            elif _HEX_RE.match(text) and len(text) % 2 == 0:
                raw = bytes.fromhex(text)
            else:
                raw = base64.b64decode(text, validate=True)
        except (ValueError, binascii.Error) as e:
            raise FormatError(f"Invalid public key format: {e}") from e
    else:
        raise FormatError(f"Invalid public key type: {type(public_key).__name__}")
    if len(raw) not in PUBKEY_LENGTHS:
        raise FormatError(f"Invalid public key length: {len(raw)} bytes")
    return raw


def pubkey_to_address(public_key: bytes | str, prefix: str) -> str:
    """Derive the bech32 account address of a secp256k1 public key."""
    raw = decode_public_key(public_key)
    sha = hashlib.sha256(raw).digest()
    digest = RIPEMD160.new(sha).digest()
    return _encode(prefix, digest)


def address_to_bytes(address: str, prefix: str | None = None) -> bytes:
    """Decode a bech32 address back to its raw bytes; inverse of bytes_to_address."""
    hrp, data = bech32.bech32_decode(address or "")
    if hrp is None or data is None:
        raise FormatError(f"Invalid bech32 address: {address!r}")
    if prefix is not None and hrp != prefix.lower():
        raise FormatError(f"Unexpected address prefix {hrp!r} (expected {prefix!r})")
    return bytes(convert_bits(data, 5, 8, False))


def _encode(prefix: str, data: bytes) -> str:
    if not prefix:
        raise FormatError("Address prefix must be non-empty")
    words = convert_bits(data, 8, 5, True)
    encoded = bech32.bech32_encode(prefix.lower(), words)
    if encoded is None:
        raise FormatError(f"Could not bech32-encode with prefix {prefix!r}")
    return encoded
