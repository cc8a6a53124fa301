"""Software inventory workbook generator.

Renders the aggregated views as one workbook with four sheets:
1. Overview - headline counts
2. Applications - one row per (AppName, Version) with installs
3. Installations - devices per (AppName, Version)
4. Errors - apps without installs or with failed lookups

Each sheet carries its view's column names in row 1.
"""

import logging

from openpyxl.worksheet.worksheet import Worksheet

from ..inventory.domain.entities import (
    ApplicationSummary,
    ErrorEntry,
    InstallationGroup,
    InventoryViews,
    OverviewMetrics,
)
from .generator import BaseReportGenerator

logger = logging.getLogger(__name__)


class InventoryReportGenerator(BaseReportGenerator[InventoryViews]):
    """Generate the multi-sheet software inventory report."""

    SHEET_NAMES = ("Overview", "Applications", "Installations", "Errors")

    # 1-based position of the Devices column on the Installations sheet
    DEVICES_COLUMN = InstallationGroup.COLUMNS.index("Devices") + 1
    ERROR_COLUMN = ErrorEntry.COLUMNS.index("RetrievalError") + 1

    def generate_excel(self, data: InventoryViews) -> bytes:
        wb = self.create_workbook()

        ws_overview = wb.active
        ws_overview.title = "Overview"
        self._create_overview_sheet(ws_overview, data.overview)

        self._create_applications_sheet(wb.create_sheet("Applications"), data.applications)
        self._create_installations_sheet(wb.create_sheet("Installations"), data.installations)
        self._create_errors_sheet(wb.create_sheet("Errors"), data.errors)

        logger.debug(
            f"Built workbook: {len(data.applications)} applications, "
            f"{len(data.installations)} installation groups, {len(data.errors)} errors"
        )
        return self._workbook_to_bytes(wb)

    def _create_overview_sheet(self, ws: Worksheet, overview: OverviewMetrics) -> None:
        self.add_table_headers(ws, OverviewMetrics.COLUMNS)
        for row_num, row in enumerate(overview.to_rows(), start=2):
            self.add_data_row(ws, row, row_num)
        self.auto_fit_columns(ws)
        self.freeze_panes(ws)

    def _create_applications_sheet(
        self, ws: Worksheet, applications: tuple[ApplicationSummary, ...]
    ) -> None:
        self.add_table_headers(ws, ApplicationSummary.COLUMNS)
        for idx, summary in enumerate(applications):
            self.add_data_row(ws, summary.to_row(), idx + 2, alternate=idx % 2 == 1)
        self.auto_fit_columns(ws)
        self.freeze_panes(ws)

    def _create_installations_sheet(
        self, ws: Worksheet, installations: tuple[InstallationGroup, ...]
    ) -> None:
        self.add_table_headers(ws, InstallationGroup.COLUMNS)
        device_alignment = self.styles.get_device_list_alignment()

        for idx, group in enumerate(installations):
            row_num = idx + 2
            devices = self._fit_device_list(group)
            row = list(group.to_row())
            row[self.DEVICES_COLUMN - 1] = devices
            self.add_data_row(ws, row, row_num, alternate=idx % 2 == 1)

            cell = ws.cell(row=row_num, column=self.DEVICES_COLUMN)
            cell.alignment = device_alignment
            line_count = devices.count("\n") + 1
            ws.row_dimensions[row_num].height = line_count * self.styles.DEFAULT_ROW_HEIGHT

        self.auto_fit_columns(ws)
        # Fixed after auto-fit so the device list column is never narrowed
        devices_letter = ws.cell(row=1, column=self.DEVICES_COLUMN).column_letter
        ws.column_dimensions[devices_letter].width = self.styles.DEVICES_COLUMN_WIDTH
        self.freeze_panes(ws)

    def _fit_device_list(self, group: InstallationGroup) -> str:
        """Cut the device list at a line boundary to fit one Excel cell.

        openpyxl silently truncates longer strings mid-line, so the cut is
        made here and the omission is stated in the cell. The record file
        always holds the full list.
        """
        devices = group.devices
        limit = self.styles.MAX_CELL_LENGTH
        if len(devices) <= limit:
            return devices

        total = len(group.device_list)
        marker_room = len(f"... {total} more devices, see the record file") + 1
        kept: list[str] = []
        size = 0
        for line in group.device_list:
            if size + len(line) + 1 > limit - marker_room:
                break
            kept.append(line)
            size += len(line) + 1

        omitted = total - len(kept)
        logger.warning(
            f"Device list for {group.app_version} is {len(devices):,} characters, "
            f"over the {limit:,} Excel cell limit; {omitted:,} of {total:,} devices "
            f"left out of the workbook"
        )
        kept.append(f"... {omitted} more devices, see the record file")
        return "\n".join(kept)

    def _create_errors_sheet(self, ws: Worksheet, errors: tuple[ErrorEntry, ...]) -> None:
        self.add_table_headers(ws, ErrorEntry.COLUMNS)
        for idx, entry in enumerate(errors):
            row_num = idx + 2
            self.add_data_row(ws, entry.to_row(), row_num)
            ws.cell(row=row_num, column=self.ERROR_COLUMN).fill = (
                self.styles.get_retrieval_error_fill(entry.retrieval_error)
            )
        self.auto_fit_columns(ws)
        self.freeze_panes(ws)
