"""
Ports (interfaces) consumed by the task executor.

The executor depends on Protocols instead of concrete clients so the host
bridge, Home Assistant, npm and notifier adapters stay swappable and the
handlers can be tested with fakes.
"""

from datetime import datetime
from typing import List, Optional, Protocol

from scrypted_monitor.models.home_assistant import CalendarEvent, EntityState
from scrypted_monitor.models.registry import (
    ClusterWorker,
    DeviceInfo,
    DiagnosticStep,
    PackageVersion,
    PluginRuntimeInfo,
    StatEntry,
)


class ConfigStore(Protocol):
    """Flat string key-value storage holding the task configuration."""

    async def get(self, key: str) -> Optional[str]: ...
    async def set(self, key: str, value: str) -> None: ...
    async def delete(self, key: str) -> None: ...
    async def get_all(self) -> dict[str, str]: ...


class DeviceRegistry(Protocol):
    async def list_plugins(self) -> List[DeviceInfo]: ...
    async def get_device(self, device_id: str) -> Optional[DeviceInfo]: ...
    async def restart_plugin(self, package_name: str) -> None: ...
    async def install_version(self, package_name: str, version: str) -> None: ...
    async def reboot_device(self, device_id: str) -> None: ...
    async def get_plugin_runtime(self, package_name: str) -> Optional[PluginRuntimeInfo]: ...

    # None when the host runs without the cluster component
    async def get_cluster_workers(self) -> Optional[List[ClusterWorker]]: ...

    # None when no benchmark is available
    async def run_benchmark(self) -> Optional[List[StatEntry]]: ...


class Diagnostics(Protocol):
    async def validate_device(self, device_id: str) -> List[DiagnosticStep]: ...
    async def validate_system(self) -> List[DiagnosticStep]: ...


class HomeAssistant(Protocol):
    async def get_states(self) -> Optional[List[EntityState]]: ...
    async def get_calendar_events(
        self, calendar_entity: str, start: datetime, end: datetime
    ) -> Optional[List[CalendarEvent]]: ...


class PackageRegistry(Protocol):
    async def get_versions(self, package_name: str) -> Optional[List[PackageVersion]]: ...


class NotificationSink(Protocol):
    async def send(
        self, target: str, title: str, body: str, priority: Optional[int] = None
    ) -> None: ...


class HostControl(Protocol):
    async def restart_self(self) -> None: ...
    async def restart_host(self) -> None: ...
