"""Graph API adapter for Intune discovered apps.

This adapter implements IInventoryAPI and wraps GraphClient to provide the
two inventory calls: the app listing and the per-app device listing.
"""

import logging
from typing import TYPE_CHECKING
from urllib.parse import quote

from ..domain.entities import DeviceInstallation, DiscoveredApp
from ..domain.ports import IFieldMapper, IInventoryAPI
from .field_mapper import GraphFieldMapper

if TYPE_CHECKING:
    from ...api.client import GraphClient, PaginationConfig

logger = logging.getLogger(__name__)


class GraphInventoryAPI(IInventoryAPI):
    """Microsoft Graph adapter for discovered-app inventory.

    Uses $select so each page only carries the fields the record file needs.
    """

    APPS_ENDPOINT = "/deviceManagement/detectedApps"
    APP_DEVICES_ENDPOINT = "/deviceManagement/detectedApps/{app_id}/managedDevices"

    APP_FIELDS = "id,displayName,version,deviceCount"
    DEVICE_FIELDS = "id,deviceName,operatingSystem,userPrincipalName"

    def __init__(
        self,
        client: "GraphClient",
        field_mapper: IFieldMapper | None = None,
        apps_pagination: "PaginationConfig | None" = None,
        devices_pagination: "PaginationConfig | None" = None,
    ):
        """Initialize the API adapter.

        Args:
            client: Configured GraphClient instance (inside its context)
            field_mapper: Optional mapper override, defaults to GraphFieldMapper
            apps_pagination: Optional override for the app listing
            devices_pagination: Optional override for per-app device listings
        """
        from ...api.client import APP_DEVICES_PAGINATION, DETECTED_APPS_PAGINATION

        self.client = client
        self.mapper = field_mapper or GraphFieldMapper()
        self.apps_pagination = apps_pagination or DETECTED_APPS_PAGINATION
        self.devices_pagination = devices_pagination or APP_DEVICES_PAGINATION

    async def list_discovered_apps(self) -> list[DiscoveredApp]:
        raw_apps = await self.client.fetch_all(
            self.APPS_ENDPOINT,
            config=self.apps_pagination,
            params={"$select": self.APP_FIELDS},
        )
        logger.info(f"Fetched {len(raw_apps):,} discovered apps")
        return [self.mapper.map_app(raw) for raw in raw_apps]

    async def list_app_devices(self, app_id: str) -> list[DeviceInstallation]:
        endpoint = self.APP_DEVICES_ENDPOINT.format(app_id=quote(app_id, safe=""))
        raw_devices = await self.client.fetch_all(
            endpoint,
            config=self.devices_pagination,
            params={"$select": self.DEVICE_FIELDS},
        )
        return [self.mapper.map_device(raw) for raw in raw_devices]
