"""
Chunk store client and backends.

The client is a pure lookup: address in, encrypted bytes out. It performs no
decryption and no retries. Backends only need `get(address) -> bytes` and
signal a miss with KeyError (or NotFound); any OSError counts as a fault.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from .address import compute_address, parse_address, short_address
from .errors import AuthenticationFailed, NotFound, StoreUnavailable
from .logger import logger
from .safe_io import atomic_write_bytes, secure_mkdir


@runtime_checkable
class ChunkBackend(Protocol):
    def get(self, address: bytes) -> bytes: ...


class ChunkStoreClient:
    """
    Thin, substitutable lookup in front of a backend.

    Args:
        backend: anything with `get(address) -> bytes`
        verify_addresses: re-hash fetched bytes and reject a mismatch
    """

    def __init__(self, backend: ChunkBackend, *, verify_addresses: bool = True):
        self.backend = backend
        self.verify_addresses = verify_addresses

    def fetch(self, address: bytes) -> bytes:
        """
        Return the encrypted chunk stored at `address`.

        Raises:
            NotFound: no entry for the address
            StoreUnavailable: the backend failed with an I/O error
            AuthenticationFailed: stored bytes do not hash to the address
        """
        try:
            data = self.backend.get(address)
        except NotFound:
            raise
        except KeyError as exc:
            raise NotFound("Chunk not found in store", address=address) from exc
        except OSError as exc:
            raise StoreUnavailable(f"Chunk store I/O error: {exc}", address=address) from exc

        if self.verify_addresses and compute_address(data) != address:
            raise AuthenticationFailed("Stored chunk does not match its address", address=address)
        return bytes(data)


class MemoryChunkStore:
    """In-memory backend; safe for concurrent lookups."""

    def __init__(self) -> None:
        self._data: dict[bytes, bytes] = {}
        self._lock = threading.Lock()

    def put(self, data: bytes) -> bytes:
        address = compute_address(data)
        with self._lock:
            self._data[address] = bytes(data)
        return address

    def get(self, address: bytes) -> bytes:
        with self._lock:
            return self._data[bytes(address)]

    def delete(self, address: bytes) -> None:
        with self._lock:
            self._data.pop(bytes(address), None)

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, bytes | bytearray):
            return False
        with self._lock:
            return bytes(address) in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class DirectoryChunkStore:
    """
    One file per chunk, named by the lowercase hex address, in a flat directory.
    Reads need no locking; writes are atomic renames.
    """

    def __init__(self, root: str | Path, *, create: bool = False):
        self.root = Path(root)
        if create:
            secure_mkdir(self.root)

    def _chunk_path(self, address: bytes) -> Path:
        return self.root / parse_address(address).hex()

    def put(self, data: bytes) -> bytes:
        address = compute_address(data)
        path = self._chunk_path(address)
        if path.exists():
            logger.debug("Chunk %s already stored, skipping", short_address(address))
            return address
        atomic_write_bytes(path, data)
        return address

    def get(self, address: bytes) -> bytes:
        path = self._chunk_path(address)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise KeyError(address) from exc

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, bytes | bytearray):
            return False
        return self._chunk_path(bytes(address)).is_file()


class FallbackChunkStore:
    """
    Query several backends in order; only a miss moves on to the next one.
    Faults propagate immediately.
    """

    def __init__(self, *stores: ChunkBackend):
        if not stores:
            raise ValueError("FallbackChunkStore needs at least one store")
        self.stores = stores

    def get(self, address: bytes) -> bytes:
        for idx, store in enumerate(self.stores):
            try:
                return store.get(address)
            except (KeyError, NotFound):
                logger.debug(
                    "Chunk %s missing in store #%d, trying next", short_address(address), idx
                )
        raise KeyError(address)


__all__ = [
    "ChunkBackend",
    "ChunkStoreClient",
    "MemoryChunkStore",
    "DirectoryChunkStore",
    "FallbackChunkStore",
]
