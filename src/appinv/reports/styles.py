"""Excel styling definitions for the inventory workbook."""

from openpyxl.styles import (
    Alignment,
    Border,
    Font,
    PatternFill,
    Side,
)

from ..inventory.domain.entities import FAILED_AFTER_RETRIES, NO_INSTALLS


class ExcelStyles:
    """Excel styling constants and factory methods."""

    # Status Colors
    WARNING_AMBER = "FFEB9C"
    ERROR_RED = "FFC7CE"

    # Neutral Colors
    HEADER_BLUE = "4472C4"
    LIGHT_GRAY = "F2F2F2"

    # Sheet geometry
    DEFAULT_ROW_HEIGHT = 15
    DEVICES_COLUMN_WIDTH = 80
    # Longest text Excel keeps in one cell
    MAX_CELL_LENGTH = 32767

    THIN_BORDER = Border(
        left=Side(style="thin", color="D9D9D9"),
        right=Side(style="thin", color="D9D9D9"),
        top=Side(style="thin", color="D9D9D9"),
        bottom=Side(style="thin", color="D9D9D9"),
    )

    @classmethod
    def get_header_font(cls) -> Font:
        """Get font for table headers."""
        return Font(bold=True, size=11, color="FFFFFF")

    @classmethod
    def get_header_fill(cls) -> PatternFill:
        """Get fill for table headers."""
        return PatternFill(
            start_color=cls.HEADER_BLUE,
            end_color=cls.HEADER_BLUE,
            fill_type="solid",
        )

    @classmethod
    def get_warning_fill(cls) -> PatternFill:
        return PatternFill(
            start_color=cls.WARNING_AMBER,
            end_color=cls.WARNING_AMBER,
            fill_type="solid",
        )

    @classmethod
    def get_error_fill(cls) -> PatternFill:
        return PatternFill(
            start_color=cls.ERROR_RED,
            end_color=cls.ERROR_RED,
            fill_type="solid",
        )

    @classmethod
    def get_alternate_row_fill(cls) -> PatternFill:
        """Get alternate row fill for zebra striping."""
        return PatternFill(
            start_color=cls.LIGHT_GRAY,
            end_color=cls.LIGHT_GRAY,
            fill_type="solid",
        )

    @classmethod
    def get_center_alignment(cls) -> Alignment:
        return Alignment(horizontal="center", vertical="center")

    @classmethod
    def get_device_list_alignment(cls) -> Alignment:
        """Multi-line device cells read top-down."""
        return Alignment(vertical="top", wrap_text=True)

    @classmethod
    def get_retrieval_error_fill(cls, retrieval_error: str | None) -> PatternFill:
        """Amber for apps without installs, red for failed lookups."""
        if retrieval_error == NO_INSTALLS:
            return cls.get_warning_fill()
        if retrieval_error == FAILED_AFTER_RETRIES:
            return cls.get_error_fill()
        return PatternFill()
