"""npm registry client used to find plugin updates."""

import asyncio
import time
from datetime import datetime
from typing import List, Optional

import httpx
import semver
import structlog

from scrypted_monitor.config import get_settings
from scrypted_monitor.models.registry import PackageVersion

logger = structlog.get_logger(__name__)


def _parse(version: str) -> Optional[semver.Version]:
    """Parsed semver, or None for versions the registry should never offer."""
    try:
        return semver.Version.parse(version.strip().removeprefix("v"))
    except (TypeError, ValueError):
        return None


def is_prerelease(version: str) -> bool:
    parsed = _parse(version)
    return parsed is not None and parsed.prerelease is not None


def is_newer(candidate: str, current: str) -> bool:
    """Semver precedence; unparseable versions rank below every valid one."""
    candidate_version = _parse(candidate)
    if candidate_version is None:
        return False
    current_version = _parse(current)
    return current_version is None or candidate_version > current_version


def select_version(
    versions: List[PackageVersion], beta: bool = False
) -> Optional[PackageVersion]:
    """Pick the version to install from a newest-first list.

    With ``beta`` the newest version wins whatever its tag; otherwise the
    newest version that is neither tagged ``beta`` nor a prerelease.
    """
    if not versions:
        return None
    if beta:
        return versions[0]
    for version in versions:
        if version.tag != "beta" and not is_prerelease(version.version):
            return version
    return None


def _parse_time(value) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_packument(data: dict) -> List[PackageVersion]:
    """Turn an npm registry document into versions, newest first."""
    tags_by_version = {
        version: tag for tag, version in (data.get("dist-tags") or {}).items()
    }
    times = data.get("time") or {}

    parsed = []
    unparsed = []
    for version in data.get("versions") or {}:
        entry = PackageVersion(
            version=version,
            tag=tags_by_version.get(version, ""),
            published_at=_parse_time(times.get(version)),
        )
        semantic = _parse(version)
        if semantic is None:
            unparsed.append(entry)
        else:
            parsed.append((semantic, entry))

    parsed.sort(key=lambda pair: pair[0], reverse=True)
    return [entry for _, entry in parsed] + unparsed


class PackageRegistryService:
    """Fetches package versions, caching each package document briefly."""

    def __init__(self):
        self.settings = get_settings()
        self._client: httpx.AsyncClient | None = None
        self._cache: dict[str, tuple[float, List[PackageVersion]]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(15))
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def get_versions(self, package_name: str) -> Optional[List[PackageVersion]]:
        """Versions of ``package_name`` newest first, or None when unknown.

        Registry responses are reused for ``package_cache_ttl_seconds`` so
        a task checking many plugins in a row does not hammer the registry.
        """
        lock = self._locks.setdefault(package_name, asyncio.Lock())
        async with lock:
            cached = self._cache.get(package_name)
            if cached and time.monotonic() - cached[0] < self.settings.package_cache_ttl_seconds:
                return cached[1]

            data = await self._fetch(package_name)
            if data is None:
                return None

            versions = parse_packument(data)
            self._cache[package_name] = (time.monotonic(), versions)
            return versions

    async def _fetch(self, package_name: str) -> Optional[dict]:
        url = f"{self.settings.npm_registry_url.rstrip('/')}/{package_name}"
        client = await self._get_client()

        try:
            response = await client.get(url, headers={"Accept": "application/json"})
            if response.status_code == 404:
                logger.info("npm_package_not_found", package=package_name)
                return None
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.warning(
                "npm_registry_error",
                package=package_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        except ValueError as e:
            logger.warning("npm_registry_invalid_json", package=package_name, error=str(e))
            return None

        if not isinstance(data, dict) or data.get("error"):
            logger.info("npm_package_no_data", package=package_name)
            return None
        return data
