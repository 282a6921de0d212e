"""
Chain walker: fetch → decrypt → wipe key → follow the header, from the tail
until the terminal chunk.

Payloads are collected in traversal order, which is the reverse of their
order in the original file.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from .address import parse_address, short_address
from .cipher import ChunkCipher
from .config import DEFAULT_MAX_CHUNKS
from .errors import ChainCycle, ChainError, ChainTooLong, ReconstructionCancelled
from .logger import logger
from .secure_bytes import secure_memzero, wiped
from .store import ChunkStoreClient


@dataclass
class WalkResult:
    payloads: list[bytes] = field(default_factory=list)
    paddings: list[int] = field(default_factory=list)
    addresses: list[bytes] = field(default_factory=list)
    terminal_length: int = 0
    terminal_padding: int = 0

    @property
    def chunk_count(self) -> int:
        return len(self.payloads)

    @property
    def total_length(self) -> int:
        return sum(len(p) for p in self.payloads)


class ChainWalker:
    """
    Sequential walk over an (address, key) cursor.

    Args:
        client: chunk store client
        cipher: chunk cipher
        max_chunks: abort with ChainTooLong past this many steps
        cancel_event: checked between steps; when set the walk raises
            ReconstructionCancelled
    """

    def __init__(
        self,
        client: ChunkStoreClient,
        cipher: ChunkCipher,
        *,
        max_chunks: int = DEFAULT_MAX_CHUNKS,
        cancel_event: threading.Event | None = None,
    ):
        if max_chunks <= 0:
            raise ValueError("max_chunks must be positive")
        self.client = client
        self.cipher = cipher
        self.max_chunks = max_chunks
        self.cancel_event = cancel_event

    def walk(self, tail_address: bytes, tail_key: bytes | bytearray) -> WalkResult:
        """
        Walk the chain starting at the tail.

        A bytearray tail key is wiped in place; a bytes key is copied into a
        buffer that is wiped. Every key taken from a header is wiped right
        after the decryption that uses it, and on any abort.
        """
        key = tail_key if isinstance(tail_key, bytearray) else bytearray(tail_key)
        result = WalkResult()
        visited: set[bytes] = set()
        step = 0

        try:
            tail = addr = parse_address(tail_address)
            while True:
                if self.cancel_event is not None and self.cancel_event.is_set():
                    raise ReconstructionCancelled("Reconstruction cancelled", address=addr, step=step)
                if step >= self.max_chunks:
                    raise ChainTooLong(
                        f"Chain longer than {self.max_chunks} chunks", address=addr, step=step
                    )
                if addr in visited:
                    raise ChainCycle("Chain revisits an address", address=addr, step=step)
                visited.add(addr)

                try:
                    encrypted = self.client.fetch(addr)
                    with wiped(key):
                        chunk = self.cipher.decrypt(encrypted, key)
                except ChainError as exc:
                    if exc.step is None:
                        exc.step = step
                    if exc.address is None:
                        exc.address = addr
                    raise

                header = chunk.header
                result.payloads.append(chunk.payload)
                result.paddings.append(header.padding)
                result.addresses.append(addr)
                logger.debug(
                    "Step %d: chunk %s (%d bytes, padding=%d, last=%s)",
                    step,
                    short_address(addr),
                    len(chunk.payload),
                    header.padding,
                    header.is_last,
                )

                if header.is_last:
                    result.terminal_length = len(chunk.payload)
                    result.terminal_padding = header.padding
                    break

                addr, key = header.next, header.next_key
                step += 1
        finally:
            # also covers a bad tail address and any key not yet consumed
            secure_memzero(key)

        logger.info("Walked %d chunk(s) from tail %s", result.chunk_count, short_address(tail))
        return result


__all__ = ["ChainWalker", "WalkResult"]
