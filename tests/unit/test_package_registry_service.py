"""Unit tests for the npm registry client and version selection."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from scrypted_monitor.models.registry import PackageVersion
from scrypted_monitor.services.package_registry_service import (
    PackageRegistryService,
    is_newer,
    is_prerelease,
    parse_packument,
    select_version,
)

PACKUMENT = {
    "name": "@scrypted/hikvision",
    "dist-tags": {"latest": "0.0.151", "beta": "0.0.152-beta.1"},
    "versions": {"0.0.150": {}, "0.0.151": {}, "0.0.152-beta.1": {}, "0.0.9": {}},
    "time": {
        "created": "2023-01-01T00:00:00.000Z",
        "0.0.151": "2026-10-01T12:00:00.000Z",
    },
}


class TestVersionOrdering:
    @pytest.mark.parametrize(
        "candidate,current,expected",
        [
            ("0.0.151", "0.0.150", True),
            ("0.0.150", "0.0.150", False),
            ("0.0.10", "0.0.9", True),
            ("1.0.0", "1.0.0-beta.2", True),
            ("1.0.0-beta.10", "1.0.0-beta.2", True),
            ("0.0.149", "0.0.150", False),
        ],
    )
    def test_is_newer(self, candidate, current, expected):
        assert is_newer(candidate, current) is expected

    def test_is_prerelease(self):
        assert is_prerelease("0.0.152-beta.1") is True
        assert is_prerelease("0.0.151") is False

    def test_parse_packument_newest_first_with_tags(self):
        versions = parse_packument(PACKUMENT)

        assert [v.version for v in versions] == [
            "0.0.152-beta.1",
            "0.0.151",
            "0.0.150",
            "0.0.9",
        ]
        assert versions[0].tag == "beta"
        assert versions[1].tag == "latest"
        assert versions[1].published_at.year == 2026
        assert versions[2].published_at is None

    def test_parse_packument_without_versions(self):
        assert parse_packument({"name": "x"}) == []


class TestSelectVersion:
    def test_stable_skips_beta_tag_and_prereleases(self):
        versions = [
            PackageVersion(version="0.0.153", tag="beta"),
            PackageVersion(version="0.0.152-rc.1"),
            PackageVersion(version="0.0.151", tag="latest"),
        ]

        assert select_version(versions).version == "0.0.151"

    def test_beta_takes_newest(self):
        versions = parse_packument(PACKUMENT)

        assert select_version(versions, beta=True).version == "0.0.152-beta.1"

    def test_empty(self):
        assert select_version([]) is None
        assert select_version([PackageVersion(version="1.0.0-beta.1")]) is None


class TestPackageRegistryService:
    @pytest.fixture
    def mock_client(self):
        client = AsyncMock()
        client.is_closed = False
        return client

    @pytest.fixture
    def service(self, mock_client):
        service = PackageRegistryService()
        service._client = mock_client
        return service

    @pytest.mark.asyncio
    async def test_get_versions_success(self, service, mock_client):
        response = MagicMock()
        response.status_code = 200
        response.json.return_value = PACKUMENT
        response.raise_for_status = MagicMock()
        mock_client.get.return_value = response

        versions = await service.get_versions("@scrypted/hikvision")

        assert versions[1].version == "0.0.151"
        url = mock_client.get.call_args.args[0]
        assert url.endswith("/@scrypted/hikvision")

    @pytest.mark.asyncio
    async def test_get_versions_cached(self, service, mock_client):
        response = MagicMock()
        response.status_code = 200
        response.json.return_value = PACKUMENT
        response.raise_for_status = MagicMock()
        mock_client.get.return_value = response

        await service.get_versions("@scrypted/hikvision")
        await service.get_versions("@scrypted/hikvision")

        assert mock_client.get.call_count == 1

    @pytest.mark.asyncio
    async def test_unknown_package(self, service, mock_client):
        response = MagicMock()
        response.status_code = 404
        mock_client.get.return_value = response

        assert await service.get_versions("@scrypted/missing") is None

    @pytest.mark.asyncio
    async def test_registry_error_document(self, service, mock_client):
        response = MagicMock()
        response.status_code = 200
        response.json.return_value = {"error": "Not found"}
        response.raise_for_status = MagicMock()
        mock_client.get.return_value = response

        assert await service.get_versions("@scrypted/missing") is None

    @pytest.mark.asyncio
    async def test_network_error(self, service, mock_client):
        mock_client.get.side_effect = httpx.ConnectError("refused")

        assert await service.get_versions("@scrypted/hikvision") is None

    @pytest.mark.asyncio
    async def test_close(self, service, mock_client):
        await service.close()

        mock_client.aclose.assert_awaited_once()
        assert service._client is None


class TestGetClient:
    @pytest.mark.asyncio
    async def test_creates_client_lazily(self):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client_class.return_value = MagicMock(is_closed=False)
            service = PackageRegistryService()

            first = await service._get_client()
            second = await service._get_client()

            assert first is second
            mock_client_class.assert_called_once()
