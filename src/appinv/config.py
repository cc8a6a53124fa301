"""Runtime configuration for an inventory run.

Settings come from the environment (a .env file is honoured by main.py via
python-dotenv) and can be overridden from the command line.

Environment Variables:
    APPINV_OUTPUT_DIR: Base directory for both output files (default: cwd)
    APPINV_REPORT_NAME: File stem shared by the .csv and .xlsx (default: DiscoveredApps)
    APPINV_MAX_RETRIES: Device-lookup attempts per app (default: 5)
    APPINV_BASE_DELAY_MS: Pause before every device lookup (default: 300)
    APPINV_QUOTED_CSV: Write quoted CSV instead of the plain format (default: false)
    GRAPH_BASE_URL: Graph root (default: https://graph.microsoft.com/v1.0)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .api.exceptions import ConfigurationError

DEFAULT_REPORT_NAME = "DiscoveredApps"
DEFAULT_MAX_RETRIES = 5
DEFAULT_BASE_DELAY_MS = 300


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(
            f"{name} must be an integer, got {raw!r}",
            details={"variable": name},
        )


@dataclass(frozen=True)
class InventorySettings:
    """Resolved settings for one run.

    Attributes:
        output_dir: Directory that receives both artifacts
        report_name: Shared file stem of the record file and the workbook
        max_retries: Device-lookup attempts per app before giving up
        base_delay_ms: Courtesy delay before every device lookup
        quoted_csv: Use quoted CSV for the record file
        graph_base_url: Optional Graph root override
    """

    output_dir: Path = Path(".")
    report_name: str = DEFAULT_REPORT_NAME
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    quoted_csv: bool = False
    graph_base_url: Optional[str] = None

    def __post_init__(self):
        if self.max_retries < 1:
            raise ConfigurationError(
                f"max_retries must be at least 1, got {self.max_retries}",
                details={"max_retries": self.max_retries},
            )
        if self.base_delay_ms < 0:
            raise ConfigurationError(
                f"base_delay_ms cannot be negative, got {self.base_delay_ms}",
                details={"base_delay_ms": self.base_delay_ms},
            )
        if not self.report_name:
            raise ConfigurationError("report_name cannot be empty")

    @property
    def records_path(self) -> Path:
        return self.output_dir / f"{self.report_name}.csv"

    @property
    def report_path(self) -> Path:
        return self.output_dir / f"{self.report_name}.xlsx"

    @classmethod
    def from_env(cls, **overrides: Any) -> "InventorySettings":
        """Build settings from the environment, then apply non-None overrides.

        Raises:
            ConfigurationError: If a variable is malformed or a value is out of range
        """
        overrides = {k: v for k, v in overrides.items() if v is not None}

        # An overridden variable is never read, so a bad value there cannot fail the run
        values: dict[str, Any] = {
            "output_dir": lambda: os.getenv("APPINV_OUTPUT_DIR") or ".",
            "report_name": lambda: os.getenv("APPINV_REPORT_NAME") or DEFAULT_REPORT_NAME,
            "max_retries": lambda: _int_env("APPINV_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            "base_delay_ms": lambda: _int_env("APPINV_BASE_DELAY_MS", DEFAULT_BASE_DELAY_MS),
            "quoted_csv": lambda: os.getenv("APPINV_QUOTED_CSV", "false").lower() == "true",
            "graph_base_url": lambda: os.getenv("GRAPH_BASE_URL") or None,
        }
        kwargs = {
            name: overrides[name] if name in overrides else read()
            for name, read in values.items()
        }
        kwargs["output_dir"] = Path(kwargs["output_dir"])
        return cls(**kwargs)
