"""Port interfaces for inventory collection.

Ports define the contracts between the use cases and the infrastructure.
Following the Ports and Adapters pattern:
- Ports are interfaces defined in the domain layer
- Adapters implement these ports in the adapters layer
- Use cases depend only on ports, not concrete implementations
"""

from abc import ABC, abstractmethod
from typing import Any

from .entities import DeviceInstallation, DiscoveredApp, InventoryRecord


class IInventoryAPI(ABC):
    """Port for reading discovered apps and their devices from the remote API.

    Both calls surface transport and API errors unmodified; they do not retry.
    """

    @abstractmethod
    async def list_discovered_apps(self) -> list[DiscoveredApp]:
        """Fetch every discovered app (all pages)."""
        ...

    @abstractmethod
    async def list_app_devices(self, app_id: str) -> list[DeviceInstallation]:
        """Fetch every device that has the given app installed (all pages)."""
        ...


class IFieldMapper(ABC):
    """Port for mapping raw API payloads to domain entities."""

    @abstractmethod
    def map_app(self, raw: dict[str, Any]) -> DiscoveredApp:
        ...

    @abstractmethod
    def map_device(self, raw: dict[str, Any]) -> DeviceInstallation:
        ...


class IRecordStore(ABC):
    """Port for the append-only flat record file.

    The collector calls reset() once, then append() per row. The aggregator
    calls read_all() after collection has finished.
    """

    @abstractmethod
    def reset(self) -> None:
        """Create the store fresh (truncating prior content) with its header."""
        ...

    @abstractmethod
    def append(self, record: InventoryRecord) -> None:
        """Durably append one record."""
        ...

    @abstractmethod
    def read_all(self) -> list[InventoryRecord]:
        """Read every record back, in write order."""
        ...
