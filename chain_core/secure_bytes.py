# secure_bytes.py
"""Key buffers with guaranteed zeroing on every exit path."""
from __future__ import annotations

import contextlib
import ctypes
import threading
from collections.abc import Iterator
from typing import Final

from .log_utils import log_best_effort

BytesLike = bytes | bytearray | memoryview

_ZERO_CHUNK: Final[int] = 4096


def secure_memzero(buf: bytearray) -> None:
    """
    Overwrite a mutable buffer with zeros in place.

    Tries ctypes.memset on the buffer address first, then verifies and falls
    back to an explicit loop, so the result does not depend on the garbage
    collector or on the memset path being available.

    Args:
        buf: Buffer to zero. Safe to pass an empty buffer.
    """
    if not buf:
        return
    if not isinstance(buf, bytearray):
        raise TypeError(f"secure_memzero requires bytearray, got {type(buf).__name__}")

    n = len(buf)
    try:
        addr = ctypes.addressof(ctypes.c_char.from_buffer(buf))
        ctypes.memset(addr, 0, n)
    except (TypeError, ValueError, OSError) as exc:
        log_best_effort(__name__, exc, message="memset zeroing unavailable")

    if buf.count(0) == n:
        return
    # Last resort: explicit overwrite
    for i in range(0, n, _ZERO_CHUNK):
        end = min(i + _ZERO_CHUNK, n)
        buf[i:end] = bytes(end - i)


def is_zeroed(buf: BytesLike) -> bool:
    return all(b == 0 for b in bytes(buf))


@contextlib.contextmanager
def wiped(buf: bytearray) -> Iterator[bytearray]:
    """
    Scope a key buffer: whatever happens inside the block, the buffer is
    zeroed on exit.

    Usage:
        with wiped(key) as k:
            chunk = cipher.decrypt(blob, k)
        # key is all zeros here, also after an exception
    """
    try:
        yield buf
    finally:
        secure_memzero(buf)


class SecureKey:
    """
    Owning container for one symmetric key.

    Unlike a plain bytearray it refuses to leak through repr/str and can be
    used as a context manager. The buffer passed in is taken over, not copied,
    so clearing the SecureKey zeroes the caller's bytearray as well.

    Usage:
        with SecureKey(parse_key(hex_key)) as key:
            assembler.reconstruct(tail, key.buffer, dest)
    """

    __slots__ = ("_buf", "_cleared", "_lock")

    def __init__(self, data: BytesLike) -> None:
        if isinstance(data, bytearray):
            buf = data
        elif isinstance(data, bytes | memoryview):
            buf = bytearray(data)
        else:
            raise TypeError(f"SecureKey requires bytes/bytearray/memoryview, got {type(data).__name__}")
        if len(buf) == 0:
            raise ValueError("SecureKey cannot be empty")
        self._buf = buf
        self._cleared = False
        self._lock = threading.RLock()

    @property
    def buffer(self) -> bytearray:
        """The live key buffer; consumers are expected to wipe it after use."""
        with self._lock:
            if self._cleared:
                raise ValueError("SecureKey already cleared")
            return self._buf

    def clear(self) -> None:
        """Zero the buffer. Idempotent."""
        with self._lock:
            if not self._cleared:
                secure_memzero(self._buf)
                self._cleared = True

    @property
    def cleared(self) -> bool:
        with self._lock:
            return self._cleared

    def __enter__(self) -> SecureKey:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.clear()

    def __len__(self) -> int:
        with self._lock:
            return 0 if self._cleared else len(self._buf)

    def __repr__(self) -> str:
        return "<SecureKey ***>"

    __str__ = __repr__


__all__ = ["SecureKey", "secure_memzero", "wiped", "is_zeroed"]
