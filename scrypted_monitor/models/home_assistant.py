"""Home Assistant REST API models."""

from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field


class EntityState(BaseModel):
    """An entry of ``GET /api/states``."""

    entity_id: str
    state: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)
    last_changed: Optional[datetime] = None

    @property
    def friendly_name(self) -> str:
        return self.attributes.get("friendly_name") or self.entity_id

    @property
    def device_class(self) -> Optional[str]:
        return self.attributes.get("device_class")

    @property
    def unit(self) -> Optional[str]:
        return self.attributes.get("unit_of_measurement")


class CalendarEvent(BaseModel):
    """An event returned by the ``calendar.get_events`` service."""

    summary: str
    start: Union[datetime, date]
    end: Optional[Union[datetime, date]] = None
    description: Optional[str] = None
