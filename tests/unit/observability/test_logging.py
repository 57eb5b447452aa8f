"""Tests for logging setup."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest
import structlog

from docbridge.config.settings import ObservabilitySettings
from docbridge.observability.logging import setup_logging


@pytest.fixture
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestSetupLogging:
    def test_json_output(self, restore_logging: None, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(ObservabilitySettings(log_level="debug", log_format="json"))
        assert logging.getLogger().level == logging.DEBUG

        logging.getLogger("docbridge.test").info("Connected to %s", "users")
        err = capsys.readouterr().err
        assert '"event": "Connected to users"' in err
        assert '"logger": "docbridge.test"' in err

    def test_defaults(self, restore_logging: None) -> None:
        setup_logging()
        assert logging.getLogger().level == logging.INFO
        assert len(logging.getLogger().handlers) == 1
