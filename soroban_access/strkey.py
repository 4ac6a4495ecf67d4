"""
StrKey codec for Stellar / Soroban addresses.

A StrKey is the RFC 4648 base32 encoding (no padding) of::

    version_byte || payload (32 bytes) || crc16_xmodem(version_byte || payload) [little-endian]

The version byte selects the leading character of the text form:

- ``G`` account (ed25519 public key)  version byte 6 << 3
- ``C`` contract                      version byte 2 << 3

Typical usage
-------------
>>> addr = encode_contract(bytes(32))
>>> addr.startswith("C") and decode_contract(addr) == bytes(32)
True

Helpers
-------
- encode(version, payload) -> str
- decode(strkey) -> (version, payload)
- encode_account / decode_account, encode_contract / decode_contract
- is_valid_account(s), is_valid_contract(s)

Notes
-----
- Only the canonical uppercase 56-character form is accepted.
- Muxed accounts (``M``) and secret seeds (``S``) are rejected.
"""

from __future__ import annotations

import base64
from typing import Tuple

__all__ = [
    "StrKeyError",
    "VERSION_ACCOUNT",
    "VERSION_CONTRACT",
    "STRKEY_LENGTH",
    "crc16_xmodem",
    "encode",
    "decode",
    "encode_account",
    "decode_account",
    "encode_contract",
    "decode_contract",
    "is_valid_account",
    "is_valid_contract",
]

VERSION_ACCOUNT = 6 << 3  # 'G'
VERSION_CONTRACT = 2 << 3  # 'C'

PAYLOAD_LENGTH = 32
STRKEY_LENGTH = 56  # base32 of 1 + 32 + 2 bytes

_ALPHABET = set("ABCDEFGHIJKLMNOPQRSTUVWXYZ234567")


class StrKeyError(ValueError):
    pass


def crc16_xmodem(data: bytes) -> int:
    """CRC-16/XMODEM (poly 0x1021, init 0x0000, no reflection)."""
    crc = 0
    for byte in data:
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return crc


def encode(version: int, payload: bytes) -> str:
    if not 0 <= version <= 0xFF:
        raise StrKeyError(f"version byte out of range: {version}")
    if len(payload) != PAYLOAD_LENGTH:
        raise StrKeyError(f"payload must be {PAYLOAD_LENGTH} bytes, got {len(payload)}")
    body = bytes([version]) + bytes(payload)
    raw = body + crc16_xmodem(body).to_bytes(2, "little")
    return base64.b32encode(raw).decode("ascii").rstrip("=")


def decode(strkey: str) -> Tuple[int, bytes]:
    if not isinstance(strkey, str):
        raise StrKeyError("strkey must be a string")
    if len(strkey) != STRKEY_LENGTH:
        raise StrKeyError(f"invalid strkey length {len(strkey)} (expected {STRKEY_LENGTH})")
    if not set(strkey) <= _ALPHABET:
        raise StrKeyError("strkey contains characters outside the base32 alphabet")
    # 56 chars = 35 bytes exactly; pad to a multiple of 8 for the stdlib decoder
    try:
        raw = base64.b32decode(strkey + "=" * (-len(strkey) % 8))
    except (ValueError, TypeError) as e:
        raise StrKeyError("invalid base32 encoding") from e
    if base64.b32encode(raw).decode("ascii").rstrip("=") != strkey:
        raise StrKeyError("non-canonical strkey encoding")
    body, checksum = raw[:-2], raw[-2:]
    if crc16_xmodem(body).to_bytes(2, "little") != checksum:
        raise StrKeyError("invalid strkey checksum")
    return body[0], body[1:]


def _decode_expect(strkey: str, version: int) -> bytes:
    got, payload = decode(strkey)
    if got != version:
        raise StrKeyError(f"unexpected version byte {got} (expected {version})")
    return payload


def encode_account(pubkey: bytes) -> str:
    return encode(VERSION_ACCOUNT, pubkey)


def decode_account(strkey: str) -> bytes:
    return _decode_expect(strkey, VERSION_ACCOUNT)


def encode_contract(contract_id: bytes) -> str:
    return encode(VERSION_CONTRACT, contract_id)


def decode_contract(strkey: str) -> bytes:
    return _decode_expect(strkey, VERSION_CONTRACT)


def is_valid_account(s: str) -> bool:
    try:
        decode_account(s)
        return True
    except StrKeyError:
        return False


def is_valid_contract(s: str) -> bool:
    try:
        decode_contract(s)
        return True
    except StrKeyError:
        return False
