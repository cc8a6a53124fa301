"""Tests for the GraphInventoryAPI adapter.

The GraphClient is replaced by a MagicMock whose fetch_all is an AsyncMock,
so only endpoint construction and mapping are exercised here.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.appinv.api.client import APP_DEVICES_PAGINATION, DETECTED_APPS_PAGINATION
from src.appinv.api.exceptions import RateLimitError
from src.appinv.inventory.adapters.graph_api_adapter import GraphInventoryAPI


@pytest.fixture
def client():
    client = MagicMock()
    client.fetch_all = AsyncMock(return_value=[])
    return client


class TestGraphInventoryAPI:

    @pytest.mark.asyncio
    async def test_list_discovered_apps(self, client):
        client.fetch_all.return_value = [
            {"id": "a1", "displayName": "Zoom", "version": "5.1", "deviceCount": 2},
            {"id": "a2", "displayName": "Slack", "version": "4.0", "deviceCount": 0},
        ]
        api = GraphInventoryAPI(client)

        apps = await api.list_discovered_apps()

        assert [a.name for a in apps] == ["Zoom", "Slack"]
        assert apps[0].install_count == 2
        client.fetch_all.assert_awaited_once_with(
            "/deviceManagement/detectedApps",
            config=DETECTED_APPS_PAGINATION,
            params={"$select": "id,displayName,version,deviceCount"},
        )

    @pytest.mark.asyncio
    async def test_list_app_devices(self, client):
        client.fetch_all.return_value = [
            {"id": "d1", "deviceName": "LAPTOP-01", "operatingSystem": "Windows",
             "userPrincipalName": "ana@contoso.com"},
        ]
        api = GraphInventoryAPI(client)

        devices = await api.list_app_devices("a1")

        assert len(devices) == 1
        assert devices[0].device_name == "LAPTOP-01"
        client.fetch_all.assert_awaited_once_with(
            "/deviceManagement/detectedApps/a1/managedDevices",
            config=APP_DEVICES_PAGINATION,
            params={"$select": "id,deviceName,operatingSystem,userPrincipalName"},
        )

    @pytest.mark.asyncio
    async def test_app_id_is_url_quoted(self, client):
        api = GraphInventoryAPI(client)

        await api.list_app_devices("a/b c")

        endpoint = client.fetch_all.call_args.args[0]
        assert endpoint == "/deviceManagement/detectedApps/a%2Fb%20c/managedDevices"

    @pytest.mark.asyncio
    async def test_errors_propagate(self, client):
        client.fetch_all.side_effect = RateLimitError(retry_after=5)
        api = GraphInventoryAPI(client)

        with pytest.raises(RateLimitError):
            await api.list_app_devices("a1")
