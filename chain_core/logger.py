"""
Central logger for the chain assembler.

Goals:
- Rotate log file at LOG_PATH (opt-out with CHAIN_LOG_TO_FILE=0).
- Redact secrets (hex, base64, key=value pairs).
- Remove full tracebacks (keep type+message only).

Public API: `logger`, `LOG_PATH`
"""

from __future__ import annotations

import contextlib
import logging
import os
import sys
from logging import Logger
from logging.handlers import RotatingFileHandler
from typing import Any

from .log_utils import log_best_effort
from .paths import LOG_PATH, ensure_base_dir
from .redactlog import NoLocalsFilter, RedactingFormatter


class SecureRotatingFileHandler(RotatingFileHandler):
    """RotatingFileHandler with owner-only file permissions (POSIX)."""

    def _set_secure_mode(self, path: str) -> None:
        if os.name != "nt":
            with contextlib.suppress(OSError):
                os.chmod(path, 0o600)

    def _open(self):
        stream = super()._open()
        self._set_secure_mode(self.baseFilename)
        return stream

    def doRollover(self) -> None:
        super().doRollover()
        if os.name == "nt":
            return
        self._set_secure_mode(self.baseFilename)
        for idx in range(1, self.backupCount + 1):
            candidate = self.rotation_filename(f"{self.baseFilename}.{idx}")
            if os.path.exists(candidate):
                self._set_secure_mode(candidate)


_DEF_LEVEL = os.getenv("CHAIN_LOG_LEVEL", "INFO").upper()
_LEVEL = getattr(logging, _DEF_LEVEL, logging.INFO)
_LOG_TO_FILE = str(os.getenv("CHAIN_LOG_TO_FILE", "1")).lower() not in {"0", "false", "no", "off"}

_SENSITIVE_KEYS = {"key", "tail_key", "next_key", "secret", "token", "password"}
_MAX_CONTEXT_VALUE_LEN = 120


def _build_logger() -> Logger:
    lg = logging.getLogger("chain_core")
    lg.setLevel(_LEVEL)
    lg.propagate = False

    if lg.handlers:
        return lg

    if _LOG_TO_FILE:
        ensure_base_dir()
        fh = SecureRotatingFileHandler(
            LOG_PATH,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
            delay=True,
        )
        fh.setFormatter(
            RedactingFormatter(
                fmt="%(asctime)s [%(levelname)s] %(message)s (%(pathname)s:%(lineno)d in %(funcName)s)",
                datefmt="%Y-%m-%d %H:%M:%S%z",
                enable_colors=False,
            )
        )
        lg.addHandler(fh)

    if _LEVEL <= logging.DEBUG:
        sh = logging.StreamHandler(sys.stderr)
        sh.setFormatter(
            RedactingFormatter(
                fmt="%(asctime)s [%(levelname)s] %(message)s (%(pathname)s:%(lineno)d)",
                datefmt="%H:%M:%S",
                enable_colors=True,
            )
        )
        lg.addHandler(sh)

    if not lg.handlers:
        lg.addHandler(logging.NullHandler())

    lg.addFilter(NoLocalsFilter())
    return lg


def _safe_context(context: dict[str, Any]) -> dict[str, str]:
    safe: dict[str, str] = {}
    for raw_key, value in context.items():
        key = str(raw_key)
        if key.lower() in _SENSITIVE_KEYS:
            safe[key] = "[REDACTED]"
            continue
        rendered = str(value)
        if len(rendered) > _MAX_CONTEXT_VALUE_LEN:
            rendered = rendered[:_MAX_CONTEXT_VALUE_LEN] + "..."
        safe[key] = rendered
    return safe


class DetailedLogger:
    """
    Logger wrapper adding a structured failure helper for reconstructions.
    """

    def __init__(self, base_logger: Logger):
        self._logger = base_logger

    def __getattr__(self, name):
        """Delegate standard logging methods to the base logger"""
        return getattr(self._logger, name)

    def chain_error(
        self,
        operation: str,
        error: BaseException,
        context: dict[str, Any] | None = None,
    ) -> None:
        """
        Log a failed chain operation with its error type and a redacted context.

        Args:
            operation: Operation being performed (reconstruct, inspect, ...)
            error: The exception that occurred
            context: Extra details; key material entries are replaced by [REDACTED]
        """
        parts = [
            f"Operation: {operation}",
            f"Error type: {type(error).__name__}",
            f"Error message: {error}",
        ]
        if context:
            parts.append(f"Context: {_safe_context(context)}")
        self._logger.error("Chain %s failed | %s", operation, " | ".join(parts))


_base_logger = _build_logger()
logger: DetailedLogger = DetailedLogger(_base_logger)

__all__ = ["logger", "LOG_PATH", "log_best_effort", "SecureRotatingFileHandler"]
