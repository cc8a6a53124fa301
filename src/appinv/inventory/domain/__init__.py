"""Domain layer - Pure domain entities and port interfaces.

No infrastructure dependencies allowed in this layer.
"""

from .entities import (
    FAILED_AFTER_RETRIES,
    NO_INSTALLS,
    RECORD_HEADER,
    ApplicationSummary,
    CollectionResult,
    DeviceInstallation,
    DiscoveredApp,
    ErrorEntry,
    InstallationGroup,
    InventoryRecord,
    InventoryViews,
    OverviewMetrics,
)
from .ports import IFieldMapper, IInventoryAPI, IRecordStore

__all__ = [
    # Constants
    "RECORD_HEADER",
    "NO_INSTALLS",
    "FAILED_AFTER_RETRIES",
    # Entities
    "DiscoveredApp",
    "DeviceInstallation",
    "InventoryRecord",
    "CollectionResult",
    # Views
    "OverviewMetrics",
    "ApplicationSummary",
    "InstallationGroup",
    "ErrorEntry",
    "InventoryViews",
    # Ports
    "IInventoryAPI",
    "IFieldMapper",
    "IRecordStore",
]
