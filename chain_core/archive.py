"""
Handoff of the reassembled stream to the destination.

- TarArchiveExtractor: the stream is a (usually gzip-compressed) tar archive.
  Entries are checked for path traversal, links and devices are skipped, and
  everything lands in a staging directory next to the destination that is
  moved into place only after the whole archive extracted.
- RawFileWriter: the stream is written as one file, atomically.

Either way a failure leaves the destination untouched. Merging into an
existing directory moves entries one by one; if a move fails, the entries
already moved are moved back (best effort).
"""

from __future__ import annotations

import io
import os
import shutil
import tarfile
import tempfile
from pathlib import Path, PurePosixPath
from typing import Protocol

from .errors import ExtractionFailed
from .log_utils import log_best_effort
from .logger import logger
from .safe_io import atomic_write_bytes, fsync_dir

_COPY_BLOCK = 1024 * 1024


class ArchiveExtractor(Protocol):
    def extract(self, stream: bytes, destination: Path) -> Path: ...


def is_within_dir(base: Path, target: Path) -> bool:
    """True if target is inside base (after resolve())."""
    try:
        Path(target).resolve().relative_to(Path(base).resolve())
        return True
    except ValueError:
        return False


class TarArchiveExtractor:
    """Extract tar / tar.gz / tar.bz2 / tar.xz streams safely."""

    def extract(self, stream: bytes, destination: Path) -> Path:
        destination = Path(destination)
        if destination.exists() and not destination.is_dir():
            raise ExtractionFailed(f"Destination exists and is not a directory: {destination}")
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=f".{destination.name}.", dir=destination.parent))
        except OSError as exc:
            raise ExtractionFailed(f"Cannot prepare staging directory: {exc}") from exc

        try:
            self._extract_into(stream, staging)
            self._move_into_place(staging, destination)
        except ExtractionFailed:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        except (OSError, tarfile.TarError, EOFError) as exc:
            shutil.rmtree(staging, ignore_errors=True)
            raise ExtractionFailed(f"Archive extraction failed: {exc}") from exc

        fsync_dir(destination.parent)
        return destination

    @staticmethod
    def _extract_into(stream: bytes, staging: Path) -> None:
        base = staging.resolve()
        count = 0
        with tarfile.open(fileobj=io.BytesIO(stream), mode="r:*") as tf:
            for member in tf:
                name = PurePosixPath(member.name)
                if name.is_absolute() or ".." in name.parts:
                    raise ExtractionFailed(f"Unsafe path in archive: {member.name!r}")
                if not (member.isfile() or member.isdir()):
                    logger.warning("Skipping non-regular archive entry %r", member.name)
                    continue
                target = staging.joinpath(*name.parts) if name.parts else staging
                if not is_within_dir(base, target):
                    raise ExtractionFailed(f"Unsafe path in archive: {member.name!r}")
                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                src = tf.extractfile(member)
                if src is None:
                    continue
                with src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst, _COPY_BLOCK)
                os.chmod(target, member.mode & 0o755 | 0o600)
                count += 1
        logger.info("Extracted %d file(s) from archive", count)

    @staticmethod
    def _move_into_place(staging: Path, destination: Path) -> None:
        if not destination.exists():
            os.replace(staging, destination)
            return
        entries = list(staging.iterdir())
        clashes = [e.name for e in entries if (destination / e.name).exists()]
        if clashes:
            raise ExtractionFailed(f"Destination already contains: {', '.join(sorted(clashes))}")
        moved: list[tuple[Path, Path]] = []
        try:
            for entry in entries:
                target = destination / entry.name
                os.replace(entry, target)
                moved.append((entry, target))
        except OSError:
            # put already merged entries back into staging before it is removed
            for entry, target in reversed(moved):
                try:
                    os.replace(target, entry)
                except OSError as undo_exc:
                    log_best_effort(__name__, undo_exc, message=f"Could not roll back {target}")
            raise
        staging.rmdir()


class RawFileWriter:
    """Write the reassembled stream unchanged as a single file."""

    def extract(self, stream: bytes, destination: Path) -> Path:
        destination = Path(destination)
        if destination.is_dir():
            raise ExtractionFailed(f"Destination is a directory: {destination}")
        try:
            atomic_write_bytes(destination, stream)
        except OSError as exc:
            raise ExtractionFailed(f"Cannot write {destination}: {exc}") from exc
        return destination


__all__ = ["ArchiveExtractor", "TarArchiveExtractor", "RawFileWriter", "is_within_dir"]
