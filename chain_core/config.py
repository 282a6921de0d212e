"""
Central parameters for the chain assembler.
Defaults live here; settings.json and CHAIN_* environment variables override them.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from .log_utils import log_best_effort
from .paths import BASE_DIR, LOG_PATH, SETTINGS_PATH

# ───── format sizes ─────────────────────────────────────────────────────
ADDRESS_SIZE = 32  # sha256 of the encrypted chunk
KEY_SIZE = 32  # 256-bit symmetric key

# ───── cipher suites ────────────────────────────────────────────────────
AES_GCM = "AES-256-GCM"
XCHACHA = "XChaCha20-Poly1305"
DEFAULT_CIPHER = AES_GCM

# Short codes -> human names
SHORT_TO_HUMAN = {
    "AESG": AES_GCM,
    "XC20": XCHACHA,
}

# ───── chain walking ────────────────────────────────────────────────────
# Upper bound on steps per walk; a cyclic or runaway chain stops here.
DEFAULT_MAX_CHUNKS = 1_000_000

DEFAULT_SETTINGS = {
    "cipher": DEFAULT_CIPHER,
    "max_chunks": DEFAULT_MAX_CHUNKS,
    "store_dir": None,
    "verify_addresses": True,
}

_TRUTHY = {"1", "true", "yes", "on"}


def normalize_cipher(name: str) -> str:
    """Accept a short code (AESG/XC20) or a human suite name."""
    if not name:
        raise ValueError("Cipher suite not specified")
    up = name.strip()
    if up.upper() in SHORT_TO_HUMAN:
        return SHORT_TO_HUMAN[up.upper()]
    if up in SHORT_TO_HUMAN.values():
        return up
    raise ValueError(f"Unsupported cipher suite: {name!r}. Use AESG|XC20.")


@dataclass(frozen=True)
class AssemblerSettings:
    cipher: str = DEFAULT_CIPHER
    max_chunks: int = DEFAULT_MAX_CHUNKS
    store_dir: Path | None = None
    verify_addresses: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "cipher", normalize_cipher(self.cipher))
        if self.max_chunks <= 0:
            raise ValueError(f"max_chunks must be positive, got {self.max_chunks}")
        if self.store_dir is not None and not isinstance(self.store_dir, Path):
            object.__setattr__(self, "store_dir", Path(self.store_dir))


def _read_settings_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        # a broken settings file must not block reconstruction
        log_best_effort(__name__, exc, message=f"Ignoring unreadable settings file {path}")
        return {}
    if not isinstance(data, dict):
        return {}
    return {k: v for k, v in data.items() if k in DEFAULT_SETTINGS}


def _env_overrides() -> dict:
    out: dict = {}
    if os.getenv("CHAIN_CIPHER"):
        out["cipher"] = os.environ["CHAIN_CIPHER"]
    if os.getenv("CHAIN_MAX_CHUNKS"):
        out["max_chunks"] = int(os.environ["CHAIN_MAX_CHUNKS"])
    if os.getenv("CHAIN_STORE_DIR"):
        out["store_dir"] = os.environ["CHAIN_STORE_DIR"]
    if os.getenv("CHAIN_VERIFY_ADDRESSES"):
        out["verify_addresses"] = os.environ["CHAIN_VERIFY_ADDRESSES"].lower() in _TRUTHY
    return out


def load_settings(path: Path | None = None, **overrides) -> AssemblerSettings:
    """
    Build settings from defaults, then settings.json, then the environment,
    then explicit keyword overrides (None values are ignored).
    """
    merged = dict(DEFAULT_SETTINGS)
    merged.update(_read_settings_file(Path(path) if path else SETTINGS_PATH))
    merged.update(_env_overrides())
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return AssemblerSettings(
        cipher=merged["cipher"],
        max_chunks=int(merged["max_chunks"]),
        store_dir=Path(merged["store_dir"]) if merged["store_dir"] else None,
        verify_addresses=bool(merged["verify_addresses"]),
    )


__all__ = [
    "ADDRESS_SIZE",
    "KEY_SIZE",
    "AES_GCM",
    "XCHACHA",
    "DEFAULT_CIPHER",
    "DEFAULT_MAX_CHUNKS",
    "DEFAULT_SETTINGS",
    "AssemblerSettings",
    "normalize_cipher",
    "load_settings",
    "BASE_DIR",
    "LOG_PATH",
    "SETTINGS_PATH",
]
