"""
Path constants for the chain assembler - separate from config to avoid circular imports.
"""

from __future__ import annotations

import contextlib
import os
import sys
from pathlib import Path

IS_LINUX = sys.platform.startswith("linux")
IS_WIN = sys.platform.startswith("win")

APP_NAME = "ChainAssembler"


def _default_base_dir() -> Path:
    if IS_WIN:
        return Path.home() / "AppData" / "Local" / APP_NAME
    return Path.home() / ".local" / "share" / APP_NAME


# Base directory for settings and logs (CHAIN_HOME overrides).
BASE_DIR = Path(os.getenv("CHAIN_HOME") or _default_base_dir())

# Log file location
LOG_PATH = BASE_DIR / "logs" / "chain_assembler.log"

SETTINGS_PATH = BASE_DIR / "settings.json"


def ensure_base_dir() -> None:
    """Create the base directory and tighten permissions where possible."""
    with contextlib.suppress(OSError):
        LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
        if IS_LINUX:
            BASE_DIR.chmod(0o700)
            LOG_PATH.parent.chmod(0o700)
            if LOG_PATH.exists():
                LOG_PATH.chmod(0o600)


__all__ = ["BASE_DIR", "LOG_PATH", "SETTINGS_PATH", "IS_LINUX", "IS_WIN", "ensure_base_dir"]
