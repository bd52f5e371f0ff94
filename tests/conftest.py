"""Shared test fixtures for the touchpoint test suite."""

import os
from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import httpx
import pytest
import structlog

from touchpoint.config.settings import Settings
from touchpoint.facts.stores.inmemory import InMemoryFactStore
from tests.factories.backend import BackendStub


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Factory fixture to create TOML files in the test config directory.

    Usage:
        def test_something(mock_toml_files):
            mock_toml_files({
                "default.toml": "app_name = 'test'",
                "development.toml": "debug = true",
            })
    """

    def _create_toml_files(files: dict[str, str]) -> None:
        for filename, content in files.items():
            toml_file = test_config_dir / filename
            toml_file.write_text(content)

    return _create_toml_files


class EnvOverrideContext:
    """Context manager for temporarily setting environment variables."""

    def __init__(self, overrides: dict[str, str]) -> None:
        self.overrides = overrides
        self.original_env: dict[str, str | None] = {}

    def __enter__(self) -> None:
        for key, value in self.overrides.items():
            self.original_env[key] = os.environ.get(key)
            os.environ[key] = value

    def __exit__(self, *args: Any) -> None:
        for key in self.overrides:
            if self.original_env[key] is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = self.original_env[key]


@pytest.fixture
def env_override() -> Generator[Callable[[dict[str, str]], EnvOverrideContext], None, None]:
    """Context manager for temporarily setting environment variables.

    Usage:
        def test_something(env_override):
            with env_override({"TOUCHPOINT_DEBUG": "true"}):
                # test code here
    """

    def _env_override(overrides: dict[str, str]) -> EnvOverrideContext:
        return EnvOverrideContext(overrides)

    yield _env_override


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache and loaded TOML before and after each test.

    This ensures test isolation for configuration tests.
    """
    from touchpoint.config import get_settings
    from touchpoint.config.settings import set_toml_config

    get_settings.cache_clear()
    set_toml_config({})
    yield
    get_settings.cache_clear()
    set_toml_config({})


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Restore structlog defaults after each test.

    setup_logging binds the current sys.stderr, which pytest closes once
    the test's output capture ends.
    """
    yield
    structlog.reset_defaults()


@pytest.fixture
def settings() -> Settings:
    """Settings built from code defaults only."""
    return Settings()


@pytest.fixture
def store() -> InMemoryFactStore:
    """Fresh in-memory fact store."""
    return InMemoryFactStore()


class FixedClock:
    """Clock returning a fixed instant that tests can move forward."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    """Clock pinned to 2026-01-14T12:00:00Z."""
    return FixedClock(datetime(2026, 1, 14, 12, 0, tzinfo=UTC))


@pytest.fixture
def backend() -> BackendStub:
    """Canned context backend recording every request."""
    return BackendStub()


@pytest.fixture
def transport(backend: BackendStub) -> httpx.MockTransport:
    return httpx.MockTransport(backend)
