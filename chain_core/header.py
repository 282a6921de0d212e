"""
Decrypted chunk layout.

Plaintext (everything below is inside the AEAD, big-endian):

    VERSION(u8=1) | FLAGS(u8) | SELF_HASH(32) | NEXT(32) | NEXT_KEY(32) | PADDING(u32) | PAYLOAD | FILLER

FLAGS bit 0 marks the terminal chunk. SELF_HASH = sha256(PAYLOAD): a chunk
cannot carry the hash of its own ciphertext, so self-verification is split.
The store client re-hashes the encrypted bytes against the address, and
SELF_HASH checks the decrypted payload.
PADDING counts the FILLER bytes after PAYLOAD. For a terminal chunk
NEXT and NEXT_KEY are zero-filled and ignored.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass

from .config import ADDRESS_SIZE, KEY_SIZE
from .errors import MalformedHeader
from .secure_bytes import secure_memzero

VERSION = 0x01
FLAG_LAST = 0x01

_PREFIX = struct.Struct(">BB")
_PADDING = struct.Struct(">I")

HEADER_SIZE = _PREFIX.size + 32 + ADDRESS_SIZE + KEY_SIZE + _PADDING.size  # 102
MAX_PADDING = 0xFFFFFFFF


@dataclass(frozen=True)
class ChunkHeader:
    self_hash: bytes
    next: bytes | None
    next_key: bytearray | None
    padding: int
    is_last: bool

    def __post_init__(self) -> None:
        if len(self.self_hash) != 32:
            raise ValueError("self_hash must be 32 bytes")
        if not 0 <= self.padding <= MAX_PADDING:
            raise ValueError(f"padding out of range: {self.padding}")
        if not self.is_last:
            if self.next is None or len(self.next) != ADDRESS_SIZE:
                raise ValueError(f"next must be {ADDRESS_SIZE} bytes for a non-terminal chunk")
            if self.next_key is None or len(self.next_key) != KEY_SIZE:
                raise ValueError(f"next_key must be {KEY_SIZE} bytes for a non-terminal chunk")

    def __repr__(self) -> str:
        nxt = self.next.hex()[:16] if self.next else None
        return (
            f"ChunkHeader(self_hash={self.self_hash.hex()[:16]}, next={nxt}, "
            f"next_key=***, padding={self.padding}, is_last={self.is_last})"
        )


@dataclass(frozen=True)
class Chunk:
    payload: bytes
    header: ChunkHeader

    @property
    def is_last(self) -> bool:
        return self.header.is_last


def pack_plaintext(
    payload: bytes,
    *,
    next_address: bytes | None,
    next_key: bytes | bytearray | None,
    padding: int = 0,
    is_last: bool = False,
) -> bytearray:
    """Build the plaintext for one chunk (header + payload + zero filler)."""
    if is_last:
        next_address = bytes(ADDRESS_SIZE)
        next_key = bytes(KEY_SIZE)
    if next_address is None or len(next_address) != ADDRESS_SIZE:
        raise ValueError(f"next_address must be {ADDRESS_SIZE} bytes")
    if next_key is None or len(next_key) != KEY_SIZE:
        raise ValueError(f"next_key must be {KEY_SIZE} bytes")
    if not 0 <= padding <= MAX_PADDING:
        raise ValueError(f"padding out of range: {padding}")

    out = bytearray()
    out += _PREFIX.pack(VERSION, FLAG_LAST if is_last else 0)
    out += hashlib.sha256(payload).digest()
    out += next_address
    out += next_key
    out += _PADDING.pack(padding)
    out += payload
    out += bytes(padding)
    return out


def parse_plaintext(plain: bytes | bytearray) -> Chunk:
    """
    Split authenticated plaintext into header + un-padded payload.

    Raises:
        MalformedHeader: short buffer, unknown version or flags, padding larger
            than what follows the header, or a self-hash mismatch.
    """
    mv = memoryview(plain)
    if len(mv) < HEADER_SIZE:
        raise MalformedHeader(f"Truncated header: {len(mv)} < {HEADER_SIZE} bytes")

    version, flags = _PREFIX.unpack_from(mv, 0)
    if version != VERSION:
        raise MalformedHeader(f"Unsupported chunk version: {version}")
    if flags & ~FLAG_LAST:
        raise MalformedHeader(f"Unknown header flags: {flags:#04x}")
    off = _PREFIX.size

    self_hash = mv[off : off + 32].tobytes()
    off += 32
    next_address = mv[off : off + ADDRESS_SIZE].tobytes()
    off += ADDRESS_SIZE
    next_key = bytearray(mv[off : off + KEY_SIZE])
    off += KEY_SIZE
    (padding,) = _PADDING.unpack_from(mv, off)
    off += _PADDING.size

    body_len = len(mv) - off
    if padding > body_len:
        secure_memzero(next_key)
        raise MalformedHeader(f"Padding {padding} exceeds body length {body_len}")
    payload = mv[off : len(mv) - padding].tobytes()

    if hashlib.sha256(payload).digest() != self_hash:
        secure_memzero(next_key)
        raise MalformedHeader("Payload does not match header self-hash")

    is_last = bool(flags & FLAG_LAST)
    if is_last:
        secure_memzero(next_key)
        header = ChunkHeader(self_hash=self_hash, next=None, next_key=None, padding=padding, is_last=True)
    else:
        header = ChunkHeader(
            self_hash=self_hash,
            next=next_address,
            next_key=next_key,
            padding=padding,
            is_last=False,
        )
    return Chunk(payload=payload, header=header)


__all__ = [
    "VERSION",
    "HEADER_SIZE",
    "ChunkHeader",
    "Chunk",
    "pack_plaintext",
    "parse_plaintext",
]
