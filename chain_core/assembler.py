"""
Assembler: entry point for rebuilding a file from its chunk chain.

    tail address + tail key
        → ChainWalker (store client + cipher)   payloads, traversal order
        → reassemble()                          byte-exact original stream
        → extractor                             destination written last

Nothing is written before the stream is complete, so a failed
reconstruction leaves the destination as it was.
"""

from __future__ import annotations

import concurrent.futures
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from .address import parse_address, parse_key, short_address
from .archive import ArchiveExtractor, RawFileWriter, TarArchiveExtractor
from .cipher import ChunkCipher
from .config import AssemblerSettings, load_settings
from .errors import ChainError
from .logger import logger
from .reassembler import reassemble
from .secure_bytes import secure_memzero
from .store import ChunkBackend, ChunkStoreClient, DirectoryChunkStore
from .walker import ChainWalker, WalkResult


@dataclass(frozen=True)
class ReconstructJob:
    tail_address: bytes
    tail_key: bytes | bytearray
    destination: Path


@dataclass(frozen=True)
class JobOutcome:
    job: ReconstructJob
    destination: Path | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Assembler:
    """
    Args:
        client: chunk store client
        cipher: chunk cipher
        extractor: archive handoff (tar extraction by default)
        settings: walk limits; cipher suite is taken from `cipher`
    """

    def __init__(
        self,
        client: ChunkStoreClient,
        cipher: ChunkCipher | None = None,
        extractor: ArchiveExtractor | None = None,
        settings: AssemblerSettings | None = None,
    ):
        self.settings = settings or AssemblerSettings()
        self.client = client
        self.cipher = cipher or ChunkCipher(self.settings.cipher)
        self.extractor = extractor or TarArchiveExtractor()

    @classmethod
    def from_backend(
        cls,
        backend: ChunkBackend,
        *,
        settings: AssemblerSettings | None = None,
        extractor: ArchiveExtractor | None = None,
    ) -> Assembler:
        settings = settings or AssemblerSettings()
        client = ChunkStoreClient(backend, verify_addresses=settings.verify_addresses)
        return cls(client, ChunkCipher(settings.cipher), extractor, settings)

    def walk(
        self,
        tail_address: bytes,
        tail_key: bytes | bytearray,
        *,
        cancel_event: threading.Event | None = None,
    ) -> WalkResult:
        walker = ChainWalker(
            self.client,
            self.cipher,
            max_chunks=self.settings.max_chunks,
            cancel_event=cancel_event,
        )
        return walker.walk(tail_address, tail_key)

    def reconstruct_bytes(
        self,
        tail_address: bytes,
        tail_key: bytes | bytearray,
        *,
        cancel_event: threading.Event | None = None,
    ) -> bytes:
        """Walk + reassemble, without the destination handoff."""
        result = self.walk(tail_address, tail_key, cancel_event=cancel_event)
        return reassemble(result.payloads, result.paddings, result.terminal_padding)

    def reconstruct(
        self,
        tail_address: bytes,
        tail_key: bytes | bytearray,
        destination: str | Path,
        *,
        cancel_event: threading.Event | None = None,
    ) -> Path:
        """
        Rebuild the original stream and hand it to the extractor.

        Raises:
            ChainError subclasses (NotFound, StoreUnavailable, AuthenticationFailed,
            MalformedHeader, DegenerateChain, InconsistentChain, ChainCycle,
            ChainTooLong, ReconstructionCancelled, ExtractionFailed)
            ValueError: malformed tail address; a bytearray key is wiped first
        """
        destination = Path(destination)
        try:
            tail = parse_address(tail_address)
        except ValueError:
            # the walker never runs, so it cannot wipe the key
            if isinstance(tail_key, bytearray):
                secure_memzero(tail_key)
            raise
        try:
            stream = self.reconstruct_bytes(tail, tail_key, cancel_event=cancel_event)
            out = self.extractor.extract(stream, destination)
        except ChainError as exc:
            logger.chain_error(
                "reconstruct",
                exc,
                {"tail": short_address(tail), "destination": destination},
            )
            raise
        logger.info(
            "Reconstructed %d byte(s) from tail %s into %s", len(stream), short_address(tail), out
        )
        return out


def reconstruct_many(
    assembler: Assembler,
    jobs: Iterable[ReconstructJob],
    *,
    max_workers: int | None = None,
    cancel_event: threading.Event | None = None,
) -> list[JobOutcome]:
    """
    Run independent reconstructions in parallel. Chains share nothing but the
    (read-only) store, so each job succeeds or fails on its own: a chain
    error, a malformed job (bad address or key) or an I/O error lands in that
    job's outcome. Outcomes come back in job order.
    """
    job_list = list(jobs)
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [
            pool.submit(
                assembler.reconstruct,
                job.tail_address,
                job.tail_key,
                job.destination,
                cancel_event=cancel_event,
            )
            for job in job_list
        ]
        outcomes = []
        for job, fut in zip(job_list, futures):
            try:
                outcomes.append(JobOutcome(job=job, destination=fut.result()))
            except (ChainError, ValueError, OSError) as exc:
                logger.warning("Job for %s failed: %s", job.destination, exc)
                outcomes.append(JobOutcome(job=job, error=exc))
    return outcomes


def reconstruct(
    tail_address: str | bytes,
    tail_key: str | bytes | bytearray,
    destination: str | Path,
    *,
    store_dir: str | Path | None = None,
    raw: bool = False,
    settings: AssemblerSettings | None = None,
) -> Path:
    """
    Convenience entry point over a directory store.

    `tail_key` may be hex; it is turned into a buffer that is wiped after use.
    """
    if isinstance(tail_key, str):
        key = parse_key(tail_key)
    elif isinstance(tail_key, bytearray):
        key = tail_key
    else:
        key = bytearray(tail_key)
    try:
        settings = settings or load_settings(store_dir=store_dir)
        root = store_dir or settings.store_dir
        if root is None:
            raise ValueError("No chunk store directory configured (store_dir / CHAIN_STORE_DIR)")
        assembler = Assembler.from_backend(
            DirectoryChunkStore(root),
            settings=settings,
            extractor=RawFileWriter() if raw else TarArchiveExtractor(),
        )
        return assembler.reconstruct(parse_address(tail_address), key, destination)
    finally:
        secure_memzero(key)


__all__ = ["Assembler", "ReconstructJob", "JobOutcome", "reconstruct", "reconstruct_many"]
