from __future__ import annotations

import logging
import re
from typing import Pattern

# ANSI colours by minimum level, highest first
_LEVEL_COLOURS = (
    (logging.ERROR, "\x1b[31m"),
    (logging.WARNING, "\x1b[33m"),
    (logging.INFO, "\x1b[37m"),
    (logging.NOTSET, "\x1b[90m"),
)
_RESET = "\x1b[0m"


class NoLocalsFilter(logging.Filter):
    """
    Fold exception info into the message as "Type: message" and drop the
    traceback, so frames holding key buffers never reach a handler.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        if record.exc_info:
            etype, evalue, _tb = record.exc_info
            if etype is not None:
                record.msg = f"{record.msg} | {etype.__name__}: {evalue}"
            record.exc_info = None
            record.exc_text = None
        return True


class RedactingFormatter(logging.Formatter):
    """
    Scrubs chain secrets from formatted records:
      - full digests / raw keys as hex (>=40 chars) -> [hex_redacted]
      - base64 blobs (>=32 chars) -> [b64_redacted]
      - key=value / key: value pairs for key material and credentials -> [redacted]

    short_address() prefixes (16 hex chars) stay readable.
    """

    _HEX_RE: Pattern[str] = re.compile(r"\b[0-9a-fA-F]{40,}\b")
    _B64_RE: Pattern[str] = re.compile(r"\b[A-Za-z0-9+/]{32,}={0,2}(?![A-Za-z0-9+/=])")
    _SECRET_NAMES = (
        "tail_key",
        "next_key",
        "key",
        "secret",
        "token",
        "password",
        "passwd",
        "api[-_]?key",
    )
    _KEYVAL_RE: Pattern[str] = re.compile(
        r"(?i)\b(" + "|".join(_SECRET_NAMES) + r")\s*[=:]\s*([^\s,;]+)"
    )

    def __init__(self, fmt: str, datefmt: str | None = None, enable_colors: bool = False):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._colors = enable_colors

    def redact(self, msg: str) -> str:
        msg = self._HEX_RE.sub("[hex_redacted]", msg)
        msg = self._B64_RE.sub("[b64_redacted]", msg)
        return self._KEYVAL_RE.sub(lambda m: f"{m.group(1)}=[redacted]", msg)

    def format(self, record: logging.LogRecord) -> str:
        out = self.redact(super().format(record))
        if not self._colors:
            return out
        colour = next(code for level, code in _LEVEL_COLOURS if record.levelno >= level)
        return f"{colour}{out}{_RESET}"


__all__ = ["NoLocalsFilter", "RedactingFormatter"]
