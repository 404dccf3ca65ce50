from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from api_quest.config import EngineSettings
from api_quest.core.registry import SourceDescriptor, SourceRegistry
from api_quest.core.storage import MemorySessionStorage
from api_quest.mock.engine import MockResponseEngine
from api_quest.mock.store import MockResponseStore
from api_quest.resources import MOCK_RESPONSES_FILE, SOURCES_FILE, resource_path

FIXED_NOW = "2025-01-02T03:04:05.678Z"


@pytest.fixture
def fixed_now() -> str:
    return FIXED_NOW


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(scope="session")
def sources_file() -> Path:
    return resource_path(SOURCES_FILE)


@pytest.fixture(scope="session")
def mock_table_file() -> Path:
    return resource_path(MOCK_RESPONSES_FILE)


@pytest.fixture(scope="session")
def mock_store(mock_table_file) -> MockResponseStore:
    return MockResponseStore.from_yaml(mock_table_file)


@pytest.fixture
def mock_engine(mock_store) -> MockResponseEngine:
    return MockResponseEngine(mock_store, delay=0, clock=lambda: FIXED_NOW)


@pytest.fixture
def registry() -> SourceRegistry:
    table = SourceRegistry()
    table.register(SourceDescriptor(key="mock", display_name="Simulator", description="", kind="mock", priority=3, baseline=True, always_available=True))
    table.register(SourceDescriptor(key="public", display_name="Public", description="", kind="public", base_address="https://public.test", priority=2, always_available=True))
    table.register(SourceDescriptor(key="training", display_name="Training", description="", kind="training", base_address="https://training.test/api", priority=1, needs_auth=True))
    return table


@pytest.fixture
def storage() -> MemorySessionStorage:
    return MemorySessionStorage()


@pytest.fixture
def fast_settings() -> EngineSettings:
    return EngineSettings(mock_delay=0, probe_timeout=0.5, request_timeout=1, retry_attempts=1)


@pytest.fixture
def settings_file(tmp_path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text('[engine]\napp_mode = "development"\nmock_delay = 0\n', encoding="utf-8")
    return path


@pytest.fixture()
def cli_runner() -> CliRunner:
    return CliRunner()
