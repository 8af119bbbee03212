"""Pytest configuration and fixtures."""

import os
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

# Keep tests independent from a developer's .env and local Redis
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("DEFAULT_NOTIFIER", "")

from scrypted_monitor.handlers.context import ExecutionContext
from scrypted_monitor.models.registry import DeviceInfo
from scrypted_monitor.services.storage_service import MemoryConfigStore

FIXED_NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def devices() -> dict:
    """Devices known to the mock registry, keyed by id."""
    return {
        "cam-1": DeviceInfo(id="cam-1", name="Front door", interfaces=["Camera", "Reboot"]),
        "cam-2": DeviceInfo(id="cam-2", name="Garage", interfaces=["Camera"]),
        "plugin-hikvision": DeviceInfo(
            id="plugin-hikvision",
            name="Hikvision",
            interfaces=["ScryptedPlugin"],
            package_name="@scrypted/hikvision",
            version="0.0.150",
        ),
        "plugin-monitor": DeviceInfo(
            id="plugin-monitor",
            name="Monitor",
            interfaces=["ScryptedPlugin"],
            package_name="@apocaliss92/scrypted-monitor",
            version="0.1.0",
        ),
    }


@pytest.fixture
def mock_registry(devices) -> AsyncMock:
    """Device registry backed by the ``devices`` fixture."""
    registry = AsyncMock()
    registry.get_device.side_effect = lambda device_id: devices.get(device_id)
    registry.list_plugins.return_value = [
        d for d in devices.values() if "ScryptedPlugin" in d.interfaces
    ]
    registry.get_plugin_runtime.return_value = None
    registry.get_cluster_workers.return_value = None
    registry.run_benchmark.return_value = None
    return registry


@pytest.fixture
def mock_diagnostics() -> AsyncMock:
    diagnostics = AsyncMock()
    diagnostics.validate_device.return_value = []
    diagnostics.validate_system.return_value = []
    return diagnostics


@pytest.fixture
def mock_home_assistant() -> AsyncMock:
    home_assistant = AsyncMock()
    home_assistant.get_states.return_value = []
    home_assistant.get_calendar_events.return_value = []
    return home_assistant


@pytest.fixture
def mock_package_registry() -> AsyncMock:
    package_registry = AsyncMock()
    package_registry.get_versions.return_value = None
    return package_registry


@pytest.fixture
def context(
    mock_registry, mock_diagnostics, mock_home_assistant, mock_package_registry
) -> ExecutionContext:
    """Execution context wired with mocks and a fixed clock."""
    return ExecutionContext(
        registry=mock_registry,
        diagnostics=mock_diagnostics,
        home_assistant=mock_home_assistant,
        package_registry=mock_package_registry,
        self_package_names=["@apocaliss92/scrypted-monitor", "@scrypted/core"],
        tz=timezone.utc,
        clock=lambda tz: FIXED_NOW.astimezone(tz),
    )


@pytest.fixture
def store() -> MemoryConfigStore:
    return MemoryConfigStore()
