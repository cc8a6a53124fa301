"""Domain entities for inventory collection and reporting.

These are pure data structures with no infrastructure dependencies. The
persisted shape is InventoryRecord; everything below it is derived in memory
by the aggregator and never written back to the record file.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# Header of the flat record file, in column order
RECORD_HEADER: tuple[str, ...] = (
    "AppName",
    "Version",
    "InstallCount",
    "DeviceName",
    "DeviceId",
    "OS",
    "UserPrincipal",
    "RetrievalError",
)

# RetrievalError sentinels
NO_INSTALLS = "No installs"
FAILED_AFTER_RETRIES = "Failed after retries"


@dataclass(frozen=True)
class DiscoveredApp:
    """A software title detected across the managed fleet.

    install_count is the fleet-wide device count reported by the listing
    call. It is an app-level attribute and repeats on every record of the app.
    """

    id: str
    name: str
    version: str
    install_count: int

    @property
    def has_installs(self) -> bool:
        return self.install_count > 0


@dataclass(frozen=True)
class DeviceInstallation:
    """One device on which a discovered app is present."""

    device_name: str
    device_id: str
    operating_system: str = ""
    user_principal: str = ""


@dataclass(frozen=True)
class InventoryRecord:
    """One flattened row of the record file.

    Exactly one of these holds for every record:
    - device fields populated, retrieval_error empty
    - retrieval_error populated, device fields empty
    - both empty with install_count == 0
    """

    app_name: str
    version: str
    install_count: int
    device_name: str = ""
    device_id: str = ""
    os: str = ""
    user_principal: str = ""
    retrieval_error: str = ""

    @classmethod
    def for_device(cls, app: DiscoveredApp, device: DeviceInstallation) -> "InventoryRecord":
        return cls(
            app_name=app.name,
            version=app.version,
            install_count=app.install_count,
            device_name=device.device_name,
            device_id=device.device_id,
            os=device.operating_system,
            user_principal=device.user_principal,
        )

    @classmethod
    def no_installs(cls, app: DiscoveredApp) -> "InventoryRecord":
        return cls(
            app_name=app.name,
            version=app.version,
            install_count=app.install_count,
            retrieval_error=NO_INSTALLS,
        )

    @classmethod
    def failed(cls, app: DiscoveredApp) -> "InventoryRecord":
        return cls(
            app_name=app.name,
            version=app.version,
            install_count=app.install_count,
            retrieval_error=FAILED_AFTER_RETRIES,
        )

    @property
    def has_device(self) -> bool:
        return bool(self.device_name)

    @property
    def has_error(self) -> bool:
        return bool(self.retrieval_error)

    def to_fields(self) -> list[str]:
        """Field values in RECORD_HEADER order, as strings."""
        return [
            self.app_name,
            self.version,
            str(self.install_count),
            self.device_name,
            self.device_id,
            self.os,
            self.user_principal,
            self.retrieval_error,
        ]


# ============================================
# Derived views (aggregator output)
# ============================================

@dataclass(frozen=True)
class OverviewMetrics:
    """Headline counts for the Overview sheet.

    total_discovered_apps counts distinct app names only; two versions of
    the same title count once.
    """

    total_discovered_apps: int
    total_install_records: int
    apps_with_errors: int

    COLUMNS = ("Metric", "Value")

    def to_rows(self) -> list[tuple[str, int]]:
        return [
            ("Total Discovered Apps", self.total_discovered_apps),
            ("Total Install Records", self.total_install_records),
            ("Apps With Errors", self.apps_with_errors),
        ]


@dataclass(frozen=True)
class ApplicationSummary:
    app_name: str
    version: str
    install_count: int

    COLUMNS = ("AppName", "Version", "InstallCount")

    def to_row(self) -> tuple[Any, ...]:
        return (self.app_name, self.version, self.install_count)


@dataclass(frozen=True)
class InstallationGroup:
    """Devices that have one (app, version) installed."""

    app_version: str
    install_count: int
    device_list: tuple[str, ...] = ()

    COLUMNS = ("AppVersion", "InstallCount", "Devices")

    @property
    def devices(self) -> str:
        """Device descriptors joined by newlines, as rendered in one cell."""
        return "\n".join(self.device_list)

    def to_row(self) -> tuple[Any, ...]:
        return (self.app_version, self.install_count, self.devices)


@dataclass(frozen=True)
class ErrorEntry:
    app_name: str
    version: str
    retrieval_error: str

    COLUMNS = ("AppName", "Version", "RetrievalError")

    def to_row(self) -> tuple[Any, ...]:
        return (self.app_name, self.version, self.retrieval_error)


@dataclass(frozen=True)
class InventoryViews:
    """The four report views produced from one record set."""

    overview: OverviewMetrics
    applications: tuple[ApplicationSummary, ...]
    installations: tuple[InstallationGroup, ...]
    errors: tuple[ErrorEntry, ...]


# ============================================
# Run statistics
# ============================================

@dataclass
class CollectionResult:
    """Statistics of one collection pass."""

    started_at: datetime
    finished_at: datetime | None = None
    apps_processed: int = 0
    records_written: int = 0
    apps_without_installs: int = 0
    apps_failed: int = 0
    failed_apps: list[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "apps_processed": self.apps_processed,
            "records_written": self.records_written,
            "apps_without_installs": self.apps_without_installs,
            "apps_failed": self.apps_failed,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": round(self.duration_seconds, 2),
        }
