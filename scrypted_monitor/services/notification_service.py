"""Notification delivery to webhook targets."""

from typing import Optional

import httpx
import structlog

from scrypted_monitor.config import get_settings

logger = structlog.get_logger(__name__)


class NotificationError(Exception):
    """Raised when a notification cannot be delivered."""


class WebhookNotificationService:
    """Posts ``{title, message, priority}`` to the URL configured per target.

    A target is either a name from ``NOTIFIER_URLS`` or an absolute URL.
    """

    def __init__(self):
        self.settings = get_settings()
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.notification_timeout)
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def resolve_url(self, target: str) -> str:
        url = self.settings.notifier_urls.get(target)
        if url:
            return url
        if target.startswith(("http://", "https://")):
            return target
        raise NotificationError(f"Unknown notifier '{target}'")

    async def send(
        self, target: str, title: str, body: str, priority: Optional[int] = None
    ) -> None:
        url = self.resolve_url(target)
        payload = {"title": title, "message": body}
        if priority is not None:
            payload["priority"] = priority

        client = await self._get_client()
        try:
            response = await client.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationError(f"Delivery to '{target}' failed: {e}") from e

        logger.info("notification_sent", target=target, title=title, priority=priority)
