"""Home Assistant REST API client."""

import asyncio
from datetime import datetime
from typing import List, Optional

import httpx
import structlog
from pydantic import ValidationError

from scrypted_monitor.config import get_settings
from scrypted_monitor.models.home_assistant import CalendarEvent, EntityState

logger = structlog.get_logger(__name__)


class HomeAssistantService:
    """Reads entity states and calendar events from Home Assistant."""

    def __init__(self):
        self.settings = get_settings()
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.settings.home_assistant_url.rstrip("/"),
                headers={"Authorization": f"Bearer {self.settings.home_assistant_token}"},
                timeout=httpx.Timeout(self.settings.home_assistant_timeout),
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _call_api(
        self,
        method: str,
        path: str,
        max_retries: int = 3,
        **kwargs,
    ):
        """Call the Home Assistant API with retry logic.

        Args:
            method: HTTP method
            path: API path (e.g., '/api/states')
            max_retries: Maximum retry attempts

        Returns:
            Decoded JSON body or None on failure
        """
        if not self.settings.home_assistant_token:
            logger.error("home_assistant_token_missing")
            return None

        client = await self._get_client()
        last_error = None

        for attempt in range(max_retries):
            try:
                response = await client.request(method, path, **kwargs)

                if response.status_code == 401:
                    logger.error("home_assistant_auth_error")
                    return None
                if response.status_code >= 500:
                    wait_time = 2 ** attempt
                    logger.warning(
                        "home_assistant_server_error",
                        status_code=response.status_code,
                        attempt=attempt,
                        wait_seconds=wait_time,
                    )
                    await asyncio.sleep(wait_time)
                    continue

                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                last_error = e
                wait_time = 2 ** attempt
                logger.warning(
                    "home_assistant_timeout",
                    attempt=attempt,
                    wait_seconds=wait_time,
                )
                if attempt < max_retries - 1:
                    await asyncio.sleep(wait_time)
                continue

            except (httpx.HTTPError, ValueError) as e:
                last_error = e
                logger.error(
                    "home_assistant_api_error",
                    path=path,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                break

        logger.error(
            "home_assistant_failed_after_retries",
            path=path,
            max_retries=max_retries,
            last_error=str(last_error) if last_error else None,
        )
        return None

    async def get_states(self) -> Optional[List[EntityState]]:
        """All entity states, or None when Home Assistant is unreachable."""
        data = await self._call_api("GET", "/api/states")
        if not isinstance(data, list):
            return None

        states = []
        for item in data:
            try:
                states.append(EntityState.model_validate(item))
            except ValidationError as e:
                logger.debug("home_assistant_state_skipped", error=str(e))
        return states

    async def get_calendar_events(
        self, calendar_entity: str, start: datetime, end: datetime
    ) -> Optional[List[CalendarEvent]]:
        """Events of ``calendar_entity`` between ``start`` and ``end``."""
        data = await self._call_api(
            "POST",
            "/api/services/calendar/get_events",
            params={"return_response": ""},
            json={
                "entity_id": calendar_entity,
                "start_date_time": start.isoformat(timespec="seconds"),
                "end_date_time": end.isoformat(timespec="seconds"),
            },
        )
        if not isinstance(data, dict):
            return None

        calendar = (data.get("service_response") or {}).get(calendar_entity) or {}
        events = []
        for item in calendar.get("events") or []:
            try:
                events.append(CalendarEvent.model_validate(item))
            except ValidationError as e:
                logger.debug("calendar_event_skipped", error=str(e))
        return events
