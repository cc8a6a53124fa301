"""Inventory module - Clean Architecture implementation of the collection pipeline.

Architecture:
    domain/     - Pure domain entities and port interfaces
    use_cases/  - Collection and aggregation logic
    adapters/   - Infrastructure implementations (Graph API, flat file)
"""

from .domain.entities import (
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
from .domain.ports import IFieldMapper, IInventoryAPI, IRecordStore

__all__ = [
    "RECORD_HEADER",
    "NO_INSTALLS",
    "FAILED_AFTER_RETRIES",
    "DiscoveredApp",
    "DeviceInstallation",
    "InventoryRecord",
    "CollectionResult",
    "OverviewMetrics",
    "ApplicationSummary",
    "InstallationGroup",
    "ErrorEntry",
    "InventoryViews",
    "IInventoryAPI",
    "IFieldMapper",
    "IRecordStore",
]
