"""Report generation for the software inventory workbook."""

from .generator import BaseReportGenerator
from .inventory_report import InventoryReportGenerator
from .styles import ExcelStyles

__all__ = [
    "BaseReportGenerator",
    "ExcelStyles",
    "InventoryReportGenerator",
]
