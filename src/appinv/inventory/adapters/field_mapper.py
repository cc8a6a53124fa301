"""Field mapper adapter for transforming Graph payloads into domain entities.

Graph returns null for absent strings (an unversioned app, a device with no
primary user). The flat record file has no null, so every missing text field
becomes "".
"""

from typing import Any

from ..domain.entities import DeviceInstallation, DiscoveredApp
from ..domain.ports import IFieldMapper


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


class GraphFieldMapper(IFieldMapper):
    """Maps Intune detectedApp and managedDevice payloads."""

    def map_app(self, raw: dict[str, Any]) -> DiscoveredApp:
        """Transform a detectedApp resource.

        Args:
            raw: Raw detectedApp dictionary (id, displayName, version, deviceCount)

        Returns:
            DiscoveredApp entity
        """
        try:
            install_count = int(raw.get("deviceCount") or 0)
        except (TypeError, ValueError):
            install_count = 0

        return DiscoveredApp(
            id=_text(raw.get("id")),
            name=_text(raw.get("displayName")),
            version=_text(raw.get("version")),
            install_count=install_count,
        )

    def map_device(self, raw: dict[str, Any]) -> DeviceInstallation:
        """Transform a managedDevice resource.

        Args:
            raw: Raw managedDevice dictionary (id, deviceName, operatingSystem, userPrincipalName)

        Returns:
            DeviceInstallation entity
        """
        return DeviceInstallation(
            device_name=_text(raw.get("deviceName")),
            device_id=_text(raw.get("id")),
            operating_system=_text(raw.get("operatingSystem")),
            user_principal=_text(raw.get("userPrincipalName")),
        )
