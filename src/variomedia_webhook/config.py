"""Issuer configuration decoding and runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from pydantic import RootModel, ValidationError

from variomedia_webhook.exceptions import ConfigInvalidError

DEFAULT_API_URL = "https://api.variomedia.de"
DEFAULT_SECRET_KEY = "api-token"
# Variomedia rejects TTL values below this
MIN_TTL = 300

_DEFAULT_POLL_INTERVAL = 2.0
_DEFAULT_MAX_POLLS = 5
_DEFAULT_REQUEST_TIMEOUT = 30.0


class SolverConfig(RootModel[dict[str, str]]):
    """Per-issuer solver configuration: domain name -> secret name."""


def load_solver_config(raw: Any) -> dict[str, str]:
    """Decode the issuer's solver configuration blob.

    Args:
        raw: Mapping, JSON text/bytes, or None when the issuer has no config.

    Returns:
        Mapping of domain (without trailing dot) to secret name.

    Raises:
        ConfigInvalidError: If the blob is not a string-to-string mapping.
    """
    if raw is None:
        return {}
    try:
        if isinstance(raw, (str, bytes, bytearray)):
            config = SolverConfig.model_validate_json(raw)
        else:
            config = SolverConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigInvalidError(f"error decoding solver config: {e}") from e
    return {domain.rstrip("."): secret for domain, secret in config.root.items()}


@dataclass(frozen=True)
class SolverSettings:
    """Runtime settings for the Variomedia client and solver."""

    api_url: str = DEFAULT_API_URL
    ttl: int = MIN_TTL
    poll_interval: float = _DEFAULT_POLL_INTERVAL
    max_polls: int = _DEFAULT_MAX_POLLS
    request_timeout: float = _DEFAULT_REQUEST_TIMEOUT
    secret_key: str = DEFAULT_SECRET_KEY

    def __post_init__(self) -> None:
        if self.ttl < MIN_TTL:
            raise ValueError(f"TTL must be at least {MIN_TTL} seconds, got: {self.ttl}")
        if self.max_polls < 0:
            raise ValueError(f"max_polls must not be negative, got: {self.max_polls}")
        if self.poll_interval < 0:
            raise ValueError(f"poll_interval must not be negative, got: {self.poll_interval}")
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got: {self.request_timeout}")
        if not self.secret_key:
            raise ValueError("secret_key must not be empty")


def _env_number(name: str, default: float, cast: type) -> Any:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got: {raw!r}")


def load_settings() -> SolverSettings:
    """Load and validate solver settings from environment variables."""
    return SolverSettings(
        api_url=os.environ.get("VARIOMEDIA_API_URL", DEFAULT_API_URL).rstrip("/"),
        ttl=_env_number("VARIOMEDIA_TTL", MIN_TTL, int),
        poll_interval=_env_number("VARIOMEDIA_POLL_INTERVAL", _DEFAULT_POLL_INTERVAL, float),
        max_polls=_env_number("VARIOMEDIA_MAX_POLLS", _DEFAULT_MAX_POLLS, int),
        request_timeout=_env_number(
            "VARIOMEDIA_REQUEST_TIMEOUT", _DEFAULT_REQUEST_TIMEOUT, float
        ),
        secret_key=os.environ.get("VARIOMEDIA_SECRET_KEY", DEFAULT_SECRET_KEY),
    )
