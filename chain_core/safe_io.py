"""
Safe I/O: atomic writes and owner-only permissions
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path

from .log_utils import log_best_effort

DEFAULT_FILE_MODE = 0o600
DEFAULT_DIR_MODE = 0o700


def _fsync_best_effort(fd: int) -> None:
    """Try to flush the descriptor to disk."""
    try:
        os.fsync(fd)
    except (OSError, AttributeError) as exc:
        log_best_effort(__name__, exc)


def fsync_dir(path: Path) -> None:
    """Best-effort fsync on a directory so a rename survives a crash (POSIX)."""
    dir_flag = getattr(os, "O_DIRECTORY", None)
    if dir_flag is None:
        return
    try:
        fd = os.open(str(path), dir_flag)
    except OSError as exc:
        log_best_effort(__name__, exc)
        return
    try:
        _fsync_best_effort(fd)
    finally:
        os.close(fd)


def secure_mkdir(path: str | Path, mode: int = DEFAULT_DIR_MODE) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    with contextlib.suppress(OSError):
        os.chmod(path, mode)
    return path


def atomic_write_bytes(path: str | Path, data: bytes, mode: int = DEFAULT_FILE_MODE) -> None:
    """Write to a sibling temp file, fsync, then rename over `path`."""
    path = Path(path)
    if not path.parent.exists():
        secure_mkdir(path.parent)

    tmp_file = tempfile.NamedTemporaryFile(
        mode="wb", dir=path.parent, delete=False, suffix=".tmp"
    )
    tmp_path = Path(tmp_file.name)

    try:
        with tmp_file:
            tmp_file.write(data)
            tmp_file.flush()
            _fsync_best_effort(tmp_file.fileno())

        os.replace(tmp_path, path)
        with contextlib.suppress(OSError):
            os.chmod(path, mode)
        fsync_dir(path.parent)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


__all__ = ["atomic_write_bytes", "secure_mkdir", "fsync_dir", "DEFAULT_FILE_MODE", "DEFAULT_DIR_MODE"]
