"""Collaborators and clock handed to every task handler."""

from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Callable, List

from scrypted_monitor.ports import (
    DeviceRegistry,
    Diagnostics,
    HomeAssistant,
    PackageRegistry,
)


@dataclass
class ExecutionContext:
    registry: DeviceRegistry
    diagnostics: Diagnostics
    home_assistant: HomeAssistant
    package_registry: PackageRegistry
    self_package_names: List[str] = field(default_factory=list)
    tz: tzinfo = timezone.utc
    clock: Callable[[tzinfo], datetime] = datetime.now

    def now(self) -> datetime:
        return self.clock(self.tz)
