"""Logging utilities for the variomedia_webhook library."""

import logging
import time
from contextvars import ContextVar, Token

# NullHandler on the package logger
_root = logging.getLogger("variomedia_webhook")
_root.addHandler(logging.NullHandler())

# Context variable for challenge tracking in concurrent present/clean up calls
_current_challenge: ContextVar[dict[str, str] | None] = ContextVar(
    "current_challenge", default=None
)


def bind_challenge(fqdn: str, zone: str) -> Token[dict[str, str] | None]:
    """Set the challenge being processed for logging context.

    Args:
        fqdn: Resolved FQDN of the challenge record.
        zone: Resolved zone of the challenge.

    Returns:
        Token to reset the context.
    """
    return _current_challenge.set({"fqdn": fqdn, "zone": zone})


def reset_challenge(token: Token[dict[str, str] | None]) -> None:
    """Reset challenge context.

    Args:
        token: Token from bind_challenge() call.
    """
    _current_challenge.reset(token)


def get_challenge_extra() -> dict[str, str]:
    """Get challenge info for log extra fields.

    Returns:
        Dict with 'fqdn' and 'zone', or empty dict outside a challenge.
    """
    challenge = _current_challenge.get()
    if challenge is None:
        return {}
    return dict(challenge)


def redact(secret: str | None) -> str:
    """Mask a secret for logging, keeping only its length visible."""
    if not secret:
        return ""
    return f"<redacted:{len(secret)}>"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the variomedia_webhook namespace.

    Args:
        name: The module name (typically __name__).

    Returns:
        A logger instance for the module.
    """
    return logging.getLogger(name)


class Timer:
    """Context manager for timing operations.

    Usage:
        with Timer() as t:
            # do work
        print(f"Elapsed: {t.elapsed_ms}ms")
    """

    def __init__(self) -> None:
        self.elapsed_ms: float = 0
        self._start: float = 0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000
