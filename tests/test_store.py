import sys
import os
import pytest
from unittest.mock import MagicMock

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from chain_core.address import compute_address
from chain_core.errors import AuthenticationFailed, NotFound, StoreUnavailable
from chain_core.store import (
    ChunkBackend,
    ChunkStoreClient,
    DirectoryChunkStore,
    FallbackChunkStore,
    MemoryChunkStore,
)

BLOB = b"\x01" * 80


def test_memory_store_fetch(memory_store, client):
    address = memory_store.put(BLOB)
    assert address == compute_address(BLOB)
    assert address in memory_store
    assert len(memory_store) == 1
    assert client.fetch(address) == BLOB


def test_memory_store_missing(client):
    """Endereço ausente vira NotFound com o endereço anexado."""
    address = compute_address(b"never stored")
    with pytest.raises(NotFound) as exc_info:
        client.fetch(address)
    assert exc_info.value.address == address


def test_memory_store_delete(memory_store, client):
    address = memory_store.put(BLOB)
    memory_store.delete(address)
    with pytest.raises(NotFound):
        client.fetch(address)


def test_directory_store_roundtrip(tmp_path):
    store = DirectoryChunkStore(tmp_path / "chunks", create=True)
    address = store.put(BLOB)
    assert (tmp_path / "chunks" / address.hex()).read_bytes() == BLOB
    assert address in store
    assert store.put(BLOB) == address
    assert ChunkStoreClient(store).fetch(address) == BLOB


def test_directory_store_missing(tmp_path):
    store = DirectoryChunkStore(tmp_path)
    with pytest.raises(NotFound):
        ChunkStoreClient(store).fetch(compute_address(b"nothing"))


def test_io_error_is_store_unavailable():
    """Falha de I/O no backend é StoreUnavailable, não NotFound."""
    backend = MagicMock()
    backend.get.side_effect = PermissionError("denied")
    with pytest.raises(StoreUnavailable, match="denied"):
        ChunkStoreClient(backend).fetch(compute_address(BLOB))


def test_backend_not_found_passes_through():
    address = compute_address(BLOB)
    backend = MagicMock()
    backend.get.side_effect = NotFound("gone", address=address)
    with pytest.raises(NotFound, match="gone"):
        ChunkStoreClient(backend).fetch(address)


def test_address_mismatch_rejected():
    """Bytes que não batem com o endereço são tratados como adulteração."""
    address = compute_address(BLOB)
    backend = {address: b"\x02" * 80}
    with pytest.raises(AuthenticationFailed):
        ChunkStoreClient(backend).fetch(address)
    assert ChunkStoreClient(backend, verify_addresses=False).fetch(address) == b"\x02" * 80


def test_fallback_store_moves_on_after_miss():
    first, second = MemoryChunkStore(), MemoryChunkStore()
    address = second.put(BLOB)
    client = ChunkStoreClient(FallbackChunkStore(first, second))
    assert client.fetch(address) == BLOB


def test_fallback_store_all_missing():
    client = ChunkStoreClient(FallbackChunkStore(MemoryChunkStore(), MemoryChunkStore()))
    with pytest.raises(NotFound):
        client.fetch(compute_address(BLOB))


def test_fallback_store_fault_propagates():
    broken = MagicMock()
    broken.get.side_effect = OSError("disk gone")
    second = MemoryChunkStore()
    address = second.put(BLOB)
    with pytest.raises(StoreUnavailable):
        ChunkStoreClient(FallbackChunkStore(broken, second)).fetch(address)


def test_fallback_store_needs_stores():
    with pytest.raises(ValueError):
        FallbackChunkStore()


def test_backends_satisfy_protocol(tmp_path):
    assert isinstance(MemoryChunkStore(), ChunkBackend)
    assert isinstance(DirectoryChunkStore(tmp_path), ChunkBackend)


def test_memory_store_membership_accepts_bytearray(memory_store):
    address = memory_store.put(BLOB)
    assert bytearray(address) in memory_store
    assert "not an address" not in memory_store
    assert compute_address(b"other") not in memory_store
