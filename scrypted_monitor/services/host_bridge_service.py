"""Client for the host bridge exposing the Scrypted system to this service.

The bridge is a small JSON API running inside the Scrypted server. It gives
access to the device/plugin registry, the diagnostics steps and the restart
controls:

- ``GET  /plugins`` and ``GET /devices/{id}``
- ``POST /plugins/restart``, ``POST /plugins/install``, ``GET /plugins/info``
- ``POST /devices/{id}/reboot``
- ``GET  /cluster/workers`` and ``GET /benchmark`` (404 when unavailable)
- ``POST /diagnostics/device/{id}`` and ``POST /diagnostics/system``
- ``POST /host/restart-self`` and ``POST /host/restart``
"""

from typing import Any, List, Optional

import httpx
import structlog

from scrypted_monitor.config import get_settings
from scrypted_monitor.models.registry import (
    ClusterWorker,
    DeviceInfo,
    DiagnosticStep,
    PluginRuntimeInfo,
    StatEntry,
)

logger = structlog.get_logger(__name__)


class HostBridgeError(Exception):
    """Raised when the host bridge rejects or fails a call."""


class HostBridgeClient:
    """Device registry, diagnostics and host control over the bridge API."""

    def __init__(self):
        self.settings = get_settings()
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {}
            if self.settings.host_bridge_token:
                headers["Authorization"] = f"Bearer {self.settings.host_bridge_token}"
            self._client = httpx.AsyncClient(
                base_url=self.settings.host_bridge_url.rstrip("/"),
                headers=headers,
                timeout=httpx.Timeout(self.settings.host_bridge_timeout),
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, path: str, allow_missing: bool = False, **kwargs
    ) -> Any:
        """Perform one bridge call.

        Returns the decoded JSON body (None for empty bodies, or for a 404
        when ``allow_missing``). Any other failure raises HostBridgeError.
        """
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(
                "host_bridge_unreachable",
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise HostBridgeError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404 and allow_missing:
            return None
        if response.is_error:
            logger.error(
                "host_bridge_error",
                path=path,
                status_code=response.status_code,
            )
            raise HostBridgeError(
                f"{method} {path} returned {response.status_code}: {response.text[:200]}"
            )

        if not response.content:
            return None
        return response.json()

    # Device/plugin registry

    async def list_plugins(self) -> List[DeviceInfo]:
        data = await self._request("GET", "/plugins")
        return [DeviceInfo.model_validate(item) for item in data or []]

    async def get_device(self, device_id: str) -> Optional[DeviceInfo]:
        data = await self._request("GET", f"/devices/{device_id}", allow_missing=True)
        return DeviceInfo.model_validate(data) if data else None

    async def restart_plugin(self, package_name: str) -> None:
        await self._request("POST", "/plugins/restart", json={"package": package_name})

    async def install_version(self, package_name: str, version: str) -> None:
        await self._request(
            "POST",
            "/plugins/install",
            json={"package": package_name, "version": version},
        )

    async def reboot_device(self, device_id: str) -> None:
        await self._request("POST", f"/devices/{device_id}/reboot")

    async def get_plugin_runtime(self, package_name: str) -> Optional[PluginRuntimeInfo]:
        data = await self._request(
            "GET", "/plugins/info", params={"package": package_name}, allow_missing=True
        )
        return PluginRuntimeInfo.model_validate(data) if data else None

    async def get_cluster_workers(self) -> Optional[List[ClusterWorker]]:
        data = await self._request("GET", "/cluster/workers", allow_missing=True)
        if data is None:
            return None
        # The bridge returns the workers keyed by id
        items = data.values() if isinstance(data, dict) else data
        return [ClusterWorker.model_validate(item) for item in items]

    async def run_benchmark(self) -> Optional[List[StatEntry]]:
        data = await self._request("GET", "/benchmark", allow_missing=True)
        if data is None:
            return None
        return [StatEntry.model_validate(item) for item in data]

    # Diagnostics

    async def validate_device(self, device_id: str) -> List[DiagnosticStep]:
        data = await self._request("POST", f"/diagnostics/device/{device_id}")
        return [DiagnosticStep.model_validate(item) for item in data or []]

    async def validate_system(self) -> List[DiagnosticStep]:
        data = await self._request("POST", "/diagnostics/system")
        return [DiagnosticStep.model_validate(item) for item in data or []]

    # Host control

    async def restart_self(self) -> None:
        logger.info("host_restart_self_requested")
        await self._request("POST", "/host/restart-self")

    async def restart_host(self) -> None:
        logger.info("host_restart_requested")
        await self._request("POST", "/host/restart")
