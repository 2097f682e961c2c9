"""openpyxl-backed sheet document used by the export and error report engines.

Columns are addressed by zero-based index (as declared on ``Column``), rows
by 1-based sheet row number (as shown in Excel).
"""

from __future__ import annotations

import io
import logging
import os
from pathlib import Path
from typing import Any, BinaryIO, Sequence, Union

from openpyxl import Workbook, load_workbook
from openpyxl.comments import Comment
from openpyxl.styles import Alignment, Border, Font, NamedStyle, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.datavalidation import DataValidation
from openpyxl.worksheet.worksheet import Worksheet

logger = logging.getLogger(__name__)

Destination = Union[str, os.PathLike, BinaryIO]
Source = Union[str, os.PathLike, bytes, BinaryIO]

CHECK_FAILED_STYLE = "check_failed"
DEFAULT_COLUMN_WIDTH = 13
MAX_LIST_FORMULA_LENGTH = 255


def _check_failed_style() -> NamedStyle:
    """Style applied to cells that failed validation: bordered, centered, red."""
    thin = Side(style="thin")
    return NamedStyle(
        name=CHECK_FAILED_STYLE,
        font=Font(name="Consolas", size=11, bold=False, italic=False),
        alignment=Alignment(horizontal="center", vertical="center", wrap_text=False),
        border=Border(top=thin, bottom=thin, left=thin, right=thin),
        fill=PatternFill(fill_type="solid", fgColor="FFFF0000"),
    )


class SheetDocument:
    """A writable workbook with one "current" sheet.

    The workbook starts with openpyxl's default sheet at index 0; selecting
    a higher index creates the missing sheets in between.
    """

    def __init__(self, *, comment_author: str = "foxsheet") -> None:
        self.workbook: Workbook = Workbook()
        self.comment_author = comment_author
        self._sheet: Worksheet = self.workbook.worksheets[0]

    @property
    def sheet(self) -> Worksheet:
        return self._sheet

    # -- sheets -------------------------------------------------------------

    def select_sheet(self, index: int, name: str) -> Worksheet:
        """Select the sheet at ``index`` (creating it if needed) and rename it."""
        while len(self.workbook.worksheets) <= index:
            self.workbook.create_sheet(title=f"sheet{len(self.workbook.worksheets)}")
        sheet = self.workbook.worksheets[index]
        if sheet.title != name:
            sheet.title = name
        self._sheet = sheet
        return sheet

    # -- cells --------------------------------------------------------------

    def write_cell(self, column: int, row: int, value: Any) -> None:
        self._sheet.cell(row=row, column=column + 1, value=value)

    def read_cell(self, column: int, row: int) -> Any:
        return self._sheet.cell(row=row, column=column + 1).value

    def set_comment(self, column: int, row: int, text: str | None) -> None:
        """Attach ``text`` as the cell's annotation, replacing any existing one."""
        if text is None or not text.strip():
            return
        cell = self._sheet.cell(row=row, column=column + 1)
        cell.comment = None
        cell.comment = Comment(text, self.comment_author)

    def mark_failed(self, column: int, row: int) -> None:
        """Apply the ``check_failed`` named style to one cell."""
        if CHECK_FAILED_STYLE not in self.workbook.named_styles:
            self.workbook.add_named_style(_check_failed_style())
        self._sheet.cell(row=row, column=column + 1).style = CHECK_FAILED_STYLE

    def add_dropdown(
        self,
        column: int,
        first_row: int,
        last_row: int,
        options: Sequence[str],
    ) -> DataValidation | None:
        """Restrict a column range to an explicit list of strings.

        Lists Excel cannot hold inline (a label with a comma, or more than
        255 characters in total) are logged and skipped; ``None`` is returned.
        """
        if not options or last_row < first_row:
            return None
        labels = [str(option) for option in options]
        if any("," in label for label in labels):
            logger.warning(
                "Dropdown skipped: option contains a comma",
                extra={"column": column, "options": labels},
            )
            return None
        joined = ",".join(labels)
        if len(joined) > MAX_LIST_FORMULA_LENGTH:
            logger.warning(
                "Dropdown skipped: option list exceeds the inline formula limit",
                extra={"column": column, "length": len(joined), "limit": MAX_LIST_FORMULA_LENGTH},
            )
            return None
        quoted = joined.replace('"', '""')
        validation = DataValidation(
            type="list",
            formula1=f'"{quoted}"',
            allow_blank=True,
            showErrorMessage=True,
        )
        letter = get_column_letter(column + 1)
        validation.add(f"{letter}{first_row}:{letter}{last_row}")
        self._sheet.add_data_validation(validation)
        return validation

    # -- widths -------------------------------------------------------------

    def column_width(self, column: int, sheet: Worksheet | None = None) -> float:
        sheet = sheet or self._sheet
        width = sheet.column_dimensions[get_column_letter(column + 1)].width
        return width if width else DEFAULT_COLUMN_WIDTH

    def set_column_width(self, column: int, width: float, sheet: Worksheet | None = None) -> None:
        sheet = sheet or self._sheet
        sheet.column_dimensions[get_column_letter(column + 1)].width = width

    def auto_size(self, sheet: Worksheet | None = None) -> None:
        """Widen columns to the UTF-8 byte length of their widest text cell."""
        sheet = sheet or self._sheet
        widths: dict[int, int] = {}
        for row in sheet.iter_rows():
            for cell in row:
                if isinstance(cell.value, str):
                    column = cell.column - 1
                    widths[column] = max(widths.get(column, 0), len(cell.value.encode("utf-8")))
        for column, length in widths.items():
            if self.column_width(column, sheet) < length:
                self.set_column_width(column, length, sheet)

    def auto_size_all(self) -> None:
        for sheet in self.workbook.worksheets:
            self.auto_size(sheet)

    # -- output -------------------------------------------------------------

    def save(self, destination: Destination) -> None:
        """Write the workbook to a filesystem path or a binary stream."""
        if isinstance(destination, (str, os.PathLike)):
            path = Path(destination)
            path.parent.mkdir(parents=True, exist_ok=True)
            self.workbook.save(path)
            logger.info("Workbook written", extra={"path": str(path)})
        else:
            self.workbook.save(destination)

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.workbook.save(buffer)
        return buffer.getvalue()


def read_source_bytes(source: Source) -> bytes:
    """Return the raw bytes of a path, ``bytes`` or binary stream source."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, (str, os.PathLike)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Source workbook not found: {path}")
        return path.read_bytes()
    content = source.read()
    if isinstance(content, str):
        raise ValueError("XLSX files require binary input. Please provide a BinaryIO stream.")
    return content


def open_source(content: bytes) -> Workbook:
    """Load workbook bytes read-only with cached formula values."""
    return load_workbook(io.BytesIO(content), read_only=True, data_only=True)
