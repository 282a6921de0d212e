from __future__ import annotations

import logging


def log_best_effort(channel: str, exc: BaseException, *, message: str | None = None) -> None:
    """Record a failed housekeeping step (chmod, fsync, memset) at DEBUG and carry on."""
    logging.getLogger(channel).debug(
        "%s: %s: %s",
        message or "Best-effort step failed",
        type(exc).__name__,
        exc,
        exc_info=True,
    )


__all__ = ["log_best_effort"]
