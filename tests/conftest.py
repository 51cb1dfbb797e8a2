"""Pytest fixtures for the variomedia_webhook test suite."""

import logging
import logging.handlers
from collections.abc import Generator

import pytest
from factories import API_KEY, API_URL, NAMESPACE

from variomedia_webhook.config import SolverSettings
from variomedia_webhook.secrets import InMemorySecretStore


@pytest.fixture
def secret_store() -> InMemorySecretStore:
    """Secret store holding an API key for example.com."""
    return InMemorySecretStore(
        {(NAMESPACE, "variomedia-credentials"): {"api-token": f"{API_KEY}\r\n"}}
    )


@pytest.fixture
def fast_settings() -> SolverSettings:
    """Settings pointing at the mocked API without poll delays."""
    return SolverSettings(api_url=API_URL, poll_interval=0)


class LogCapture:
    """Helper class to capture and inspect log records."""

    def __init__(self, handler: logging.handlers.MemoryHandler) -> None:
        self._handler = handler

    @property
    def records(self) -> list[logging.LogRecord]:
        """Get all captured log records."""
        return self._handler.buffer

    def get_records(
        self, level: int | None = None, name: str | None = None
    ) -> list[logging.LogRecord]:
        """Get log records filtered by level and/or logger name.

        Args:
            level: Filter by log level (e.g., logging.INFO).
            name: Filter by logger name prefix (e.g., "variomedia_webhook.client").

        Returns:
            List of matching log records.
        """
        records = self.records
        if level is not None:
            records = [r for r in records if r.levelno == level]
        if name is not None:
            records = [r for r in records if r.name.startswith(name)]
        return records

    def get_messages(self, level: int | None = None, name: str | None = None) -> list[str]:
        """Get log messages filtered by level and/or logger name."""
        return [r.getMessage() for r in self.get_records(level, name)]

    def clear(self) -> None:
        """Clear all captured log records."""
        self._handler.buffer.clear()


@pytest.fixture
def log_capture() -> Generator[LogCapture]:
    """Capture logs from the variomedia_webhook library during a test.

    Usage:
        def test_something(log_capture):
            # do something that logs
            assert "TXT record created" in log_capture.get_messages(logging.INFO)
    """
    handler = logging.handlers.MemoryHandler(capacity=1000)
    handler.setLevel(logging.DEBUG)

    package_logger = logging.getLogger("variomedia_webhook")
    original_level = package_logger.level
    package_logger.setLevel(logging.DEBUG)
    package_logger.addHandler(handler)

    try:
        yield LogCapture(handler)
    finally:
        package_logger.removeHandler(handler)
        package_logger.setLevel(original_level)
        handler.close()
