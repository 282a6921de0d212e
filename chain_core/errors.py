"""Error taxonomy for chain reconstruction.

Every error aborts the whole reconstruction. `address` and `step` (0 = tail)
identify where the walk stopped when that is known.
"""

from __future__ import annotations

from .address import short_address


class ChainError(Exception):
    """Base class for reconstruction failures."""

    def __init__(self, message: str, *, address: bytes | None = None, step: int | None = None):
        self.address = address
        self.step = step
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        where = []
        if self.step is not None:
            where.append(f"step={self.step}")
        if self.address is not None:
            where.append(f"address={short_address(self.address)}")
        return f"{base} ({', '.join(where)})" if where else base


class NotFound(ChainError):
    """The store has no entry for the address."""


class StoreUnavailable(ChainError):
    """The store failed with an I/O fault."""


class AuthenticationFailed(ChainError):
    """Wrong key, or corrupted / tampered / truncated ciphertext."""


class MalformedHeader(ChainError):
    """Authenticated plaintext does not parse into header + payload."""


class DegenerateChain(ChainError):
    """Inferred nominal chunk size is zero while more than one chunk exists."""


class InconsistentChain(ChainError):
    """A chunk's payload length plus padding disagrees with the nominal size."""


class ChainCycle(ChainError):
    """The walk reached an address it had already visited."""


class ChainTooLong(ChainError):
    """The walk exceeded the configured chunk limit."""


class ReconstructionCancelled(ChainError):
    """Cancelled cooperatively between two walk steps."""


class ExtractionFailed(ChainError):
    """The archive handoff could not write the destination."""


__all__ = [
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
