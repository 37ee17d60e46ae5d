"""
Pytest configuration and fixtures for queuepool tests.
"""
import os
import uuid
from collections.abc import Generator

import pytest

from queuepool.config import Settings, get_settings


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Isolate every test from QUEUEPOOL_* variables in the environment."""
    for key in list(os.environ):
        if key.startswith("QUEUEPOOL_"):
            monkeypatch.delenv(key)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    """Create settings without touching .env files."""
    return Settings(_env_file=None, app_env="development")


@pytest.fixture
def processor_name() -> str:
    """Unique processor name so metric samples do not leak between tests."""
    return f"test-{uuid.uuid4().hex[:8]}"
