"""Unit tests for structured logging setup."""

from collections.abc import Generator

import pytest
import structlog

from queuepool.config import Settings
from queuepool.shared.logging import get_logger, setup_logging


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    yield
    structlog.reset_defaults()


def test_json_renderer_outside_development() -> None:
    setup_logging(Settings(_env_file=None, app_env="staging"))

    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], structlog.processors.JSONRenderer)


def test_console_renderer_in_development() -> None:
    setup_logging(Settings(_env_file=None, app_env="development"))

    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)


def test_get_logger_binds_fields() -> None:
    with structlog.testing.capture_logs() as logs:
        get_logger("queuepool.test").info("item_handled", sequence_number=5)

    assert logs == [{"event": "item_handled", "sequence_number": 5, "log_level": "info"}]
