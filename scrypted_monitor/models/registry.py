"""Models returned by the device/plugin registry, diagnostics and npm."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

REBOOT_INTERFACE = "Reboot"
PLUGIN_INTERFACE = "ScryptedPlugin"


class DeviceInfo(BaseModel):
    """A device known to the host; plugins are devices too."""

    id: str
    name: str
    interfaces: List[str] = Field(default_factory=list)
    package_name: Optional[str] = None  # Plugins only
    version: Optional[str] = None  # Plugins only

    @property
    def can_reboot(self) -> bool:
        return REBOOT_INTERFACE in self.interfaces

    @property
    def label(self) -> str:
        return self.package_name or self.name


class PluginRuntimeInfo(BaseModel):
    """Live counters for one plugin process."""

    rpc_objects: int = 0
    pending_results: int = 0
    clients_count: int = 0


class ClusterFork(BaseModel):
    id: str
    runtime: Optional[str] = None


class ClusterWorker(BaseModel):
    id: str
    name: str
    labels: List[str] = Field(default_factory=list)
    forks: List[ClusterFork] = Field(default_factory=list)


class StatEntry(BaseModel):
    name: str
    count: float


class PluginStats(BaseModel):
    """Snapshot rendered by the plugins status report."""

    rpc_objects: List[StatEntry] = Field(default_factory=list)
    pending_results: List[StatEntry] = Field(default_factory=list)
    connections: List[StatEntry] = Field(default_factory=list)
    workers: Optional[List[StatEntry]] = None
    cluster_devices: Optional[List[StatEntry]] = None
    benchmark: Optional[List[StatEntry]] = None


class PackageVersion(BaseModel):
    """One published version of an npm package."""

    version: str
    tag: str = ""
    published_at: Optional[datetime] = None


class StepStatus(str, Enum):
    OK = "ok"
    WARN = "warn"
    ERROR = "error"


class DiagnosticStep(BaseModel):
    """Structured outcome of one validation step."""

    name: str
    status: StepStatus
    message: Optional[str] = None
