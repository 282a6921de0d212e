import io
import os
import secrets
import sys
import tarfile
import tempfile

import pytest

# Keep test runs away from the user's settings and log file.
os.environ["CHAIN_LOG_TO_FILE"] = "0"
os.environ["CHAIN_HOME"] = tempfile.mkdtemp(prefix="chain-home-")

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from chain_core.cipher import ChunkCipher
from chain_core.store import ChunkStoreClient, MemoryChunkStore


def build_chain(data, chunk_size, store, cipher, *, short_tail=False):
    """
    Test producer: split `data` into a chain and put every chunk in `store`.

    By default the first file segment is the short one and becomes the
    terminal chunk, padded up to `chunk_size`; the last segment becomes the
    tail. With `short_tail` the last segment is the short, padded one.
    Returns (tail_address, tail_key, addresses in file order).
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if short_tail:
        segments = [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)] or [b""]
    else:
        rem = len(data) % chunk_size
        first_len = rem if rem else min(chunk_size, len(data))
        segments = [data[:first_len]]
        segments += [data[i:i + chunk_size] for i in range(first_len, len(data), chunk_size)]

    next_address = None
    next_key = None
    addresses = []
    for idx, segment in enumerate(segments):
        key = secrets.token_bytes(32)
        padding = chunk_size - len(segment)
        if idx == 0:
            blob = cipher.encrypt(segment, key, padding=padding, is_last=True)
        else:
            blob = cipher.encrypt(
                segment, key, next_address=next_address, next_key=next_key, padding=padding
            )
        next_address = store.put(blob)
        next_key = key
        addresses.append(next_address)
    return next_address, next_key, addresses


def make_targz(files):
    """{relative name: bytes} -> .tar.gz bytes"""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o644
            tf.addfile(info, io.BytesIO(content))
    return buf.getvalue()


@pytest.fixture
def cipher():
    return ChunkCipher("AES-256-GCM")


@pytest.fixture
def memory_store():
    return MemoryChunkStore()


@pytest.fixture
def client(memory_store):
    return ChunkStoreClient(memory_store)


@pytest.fixture
def chain_factory(memory_store, cipher):
    def _make(data, chunk_size=4, **kwargs):
        return build_chain(data, chunk_size, memory_store, cipher, **kwargs)
    return _make
