"""Benchmark configuration."""

from __future__ import annotations

from typing import Any

import pytest
import structlog


def pytest_configure(config: pytest.Config) -> None:
    """Configure structlog for benchmarks."""
    processors: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if not config.getoption("-s"):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )
