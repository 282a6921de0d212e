"""Addresses and keys: sizes, hashing and hex parsing."""

from __future__ import annotations

import hashlib

from .config import ADDRESS_SIZE, KEY_SIZE

BytesLike = bytes | bytearray | memoryview

_SHORT_HEX = 16


def compute_address(encrypted: BytesLike) -> bytes:
    """Content address of an encrypted chunk: sha256 over the stored bytes."""
    return hashlib.sha256(encrypted).digest()


def short_address(address: BytesLike) -> str:
    """First 16 hex chars, safe to log (the redacting formatter hides full digests)."""
    return bytes(address).hex()[:_SHORT_HEX]


def _from_hex(value: str, size: int, what: str) -> bytes:
    text = value.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    try:
        raw = bytes.fromhex(text)
    except ValueError as exc:
        raise ValueError(f"{what} is not valid hex") from exc
    if len(raw) != size:
        raise ValueError(f"{what} must be {size} bytes, got {len(raw)}")
    return raw


def parse_address(value: str | BytesLike) -> bytes:
    """Accept a hex string or raw bytes and return a 32-byte address."""
    if isinstance(value, str):
        return _from_hex(value, ADDRESS_SIZE, "Address")
    raw = bytes(value)
    if len(raw) != ADDRESS_SIZE:
        raise ValueError(f"Address must be {ADDRESS_SIZE} bytes, got {len(raw)}")
    return raw


def parse_key(value: str) -> bytearray:
    """Hex string -> mutable key buffer (the caller owns and wipes it)."""
    return bytearray(_from_hex(value, KEY_SIZE, "Key"))


__all__ = ["compute_address", "short_address", "parse_address", "parse_key", "BytesLike"]
