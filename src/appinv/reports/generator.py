"""Base report generator with common functionality.

This module provides the foundation for workbook generators with:
- Excel formula injection protection
- Header and data row styling
- Column width auto-fitting
- Async generation wrapper (workbook building runs in a worker thread)
"""

import io
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Generic, TypeVar

import anyio
from openpyxl import Workbook
from openpyxl.cell.cell import Cell
from openpyxl.styles import Alignment
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from .styles import ExcelStyles

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseReportGenerator(ABC, Generic[T]):
    """Abstract base class for workbook generators.

    Subclasses implement generate_excel() for their own data type; this class
    supplies the sheet helpers and the bytes/file/async plumbing.
    """

    # Characters that could trigger Excel formula interpretation
    FORMULA_CHARS = ("=", "+", "-", "@", "\t", "\r", "\n")

    def __init__(self) -> None:
        self.styles = ExcelStyles

    @classmethod
    def is_formula_like(cls, value: Any) -> bool:
        """Whether Excel would evaluate this value as a formula if typed in."""
        if not isinstance(value, str) or not value:
            return False
        if value[0] in cls.FORMULA_CHARS:
            return True
        return "=" in value and re.match(r".*=\s*[A-Za-z]+\(", value) is not None

    @classmethod
    def write_cell(cls, ws: Worksheet, row: int, column: int, value: Any) -> Cell:
        """Write a value, forcing formula-like text to stay literal text.

        The stored value is never altered. Formula-like strings are typed as
        strings and flagged with quotePrefix, which is how Excel records a
        leading apostrophe typed by a user.
        """
        cell = ws.cell(row=row, column=column, value="" if value is None else value)
        if cls.is_formula_like(value):
            cell.data_type = "s"
            cell.quotePrefix = True
        return cell

    def create_workbook(self) -> Workbook:
        return Workbook()

    def add_table_headers(
        self,
        ws: Worksheet,
        headers: tuple[str, ...] | list[str],
        start_row: int = 1,
        start_col: int = 1,
    ) -> None:
        """Add styled table headers to a worksheet."""
        header_fill = self.styles.get_header_fill()
        header_font = self.styles.get_header_font()
        alignment = self.styles.get_center_alignment()
        border = self.styles.THIN_BORDER

        for col, header in enumerate(headers, start=start_col):
            cell = ws.cell(row=start_row, column=col, value=header)
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = alignment
            cell.border = border

    def add_data_row(
        self,
        ws: Worksheet,
        row_data: tuple[Any, ...] | list[Any],
        row_num: int,
        start_col: int = 1,
        alternate: bool = False,
    ) -> None:
        """Add a data row to a worksheet with styling.

        Args:
            ws: The worksheet
            row_data: Values for the row
            row_num: Row number to write to
            start_col: Starting column number
            alternate: Whether to use alternate row styling
        """
        border = self.styles.THIN_BORDER
        alignment = Alignment(vertical="center")
        fill = self.styles.get_alternate_row_fill() if alternate else None

        for col, value in enumerate(row_data, start=start_col):
            cell = self.write_cell(ws, row_num, col, value)
            cell.border = border
            cell.alignment = alignment
            if fill:
                cell.fill = fill

    def auto_fit_columns(self, ws: Worksheet, min_width: int = 10, max_width: int = 50) -> None:
        """Auto-fit column widths based on the longest line in each column."""
        for column_cells in ws.columns:
            max_length = 0
            column_letter = get_column_letter(column_cells[0].column)

            for cell in column_cells:
                if cell.value is None:
                    continue
                longest_line = max(len(line) for line in str(cell.value).split("\n"))
                max_length = max(max_length, longest_line)

            adjusted_width = min(max(max_length + 2, min_width), max_width)
            ws.column_dimensions[column_letter].width = adjusted_width

    def freeze_panes(self, ws: Worksheet, row: int = 2, column: int = 1) -> None:
        """Freeze rows above `row` and columns left of `column`."""
        ws.freeze_panes = ws.cell(row=row, column=column)

    @abstractmethod
    def generate_excel(self, data: T) -> bytes:
        """Generate Excel report bytes."""
        pass

    def write_excel(self, data: T, path: str | Path) -> Path:
        """Generate the workbook and write it to path (overwriting)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.generate_excel(data))
        logger.info(f"Report written to {path}")
        return path

    async def write_excel_async(self, data: T, path: str | Path) -> Path:
        """Write the workbook without blocking the event loop.

        Uses anyio.to_thread to offload workbook generation.
        """
        return await anyio.to_thread.run_sync(lambda: self.write_excel(data, path))

    def _workbook_to_bytes(self, wb: Workbook) -> bytes:
        output = io.BytesIO()
        wb.save(output)
        output.seek(0)
        return output.getvalue()
