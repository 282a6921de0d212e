"""chain_core: public API.

Exports:
- reconstruct (rebuild a file from tail address + tail key)
- Assembler / reconstruct_many for embedding
- the chunk store client and backends
- the error taxonomy
"""

from __future__ import annotations

from .address import compute_address, parse_address, parse_key
from .archive import RawFileWriter, TarArchiveExtractor
from .assembler import Assembler, JobOutcome, ReconstructJob, reconstruct, reconstruct_many
from .cipher import ChunkCipher
from .config import AssemblerSettings, load_settings
from .errors import (
    AuthenticationFailed,
    ChainCycle,
    ChainError,
    ChainTooLong,
    DegenerateChain,
    ExtractionFailed,
    InconsistentChain,
    MalformedHeader,
    NotFound,
    ReconstructionCancelled,
    StoreUnavailable,
)
from .secure_bytes import SecureKey
from .store import ChunkStoreClient, DirectoryChunkStore, FallbackChunkStore, MemoryChunkStore

__version__ = "1.0.0"

__all__ = [
    "reconstruct",
    "reconstruct_many",
    "Assembler",
    "ReconstructJob",
    "JobOutcome",
    "AssemblerSettings",
    "load_settings",
    "ChunkCipher",
    "ChunkStoreClient",
    "MemoryChunkStore",
    "DirectoryChunkStore",
    "FallbackChunkStore",
    "TarArchiveExtractor",
    "RawFileWriter",
    "SecureKey",
    "compute_address",
    "parse_address",
    "parse_key",
    "ChainError",
    "NotFound",
    "StoreUnavailable",
    "AuthenticationFailed",
    "MalformedHeader",
    "DegenerateChain",
    "InconsistentChain",
    "ChainCycle",
    "ChainTooLong",
    "ReconstructionCancelled",
    "ExtractionFailed",
]
