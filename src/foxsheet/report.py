"""Error workbook: invalid rows re-emitted with their failures annotated.

Every sheet of the run gets its header, so the workbook can be corrected
and imported again as-is. Invalid rows are packed densely below the header
(the k-th invalid row of a sheet lands on data row k); each failing cell
carries a comment with its messages and the ``check_failed`` style.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .exporter import SheetExporter
from .handlers import ValidationFailure
from .schema import SheetSchema

logger = logging.getLogger(__name__)


class ErrorReportBuilder:
    """Builds the error workbook on top of a ``SheetExporter``."""

    def __init__(self, exporter: SheetExporter) -> None:
        self.exporter = exporter
        self.rows_written = 0

    @property
    def document(self):
        return self.exporter.document

    def row_for(self, offset: int) -> int:
        """Sheet row of the ``offset``-th (1-based) invalid row."""
        return self.exporter.data_row_start + offset - 1

    def begin_sheet(self, schema: SheetSchema) -> None:
        self.exporter.select_sheet(schema)
        self.exporter.fill_header(schema)

    def add_row(
        self,
        schema: SheetSchema,
        record: Any,
        failure: ValidationFailure,
        offset: int,
        raw_values: Mapping[str, Any] | None = None,
    ) -> int:
        """Write one invalid row at ``offset`` and annotate its failures.

        ``raw_values`` holds the cells that could not be decoded; they are
        written back exactly as read.

        Returns:
            The sheet row written.
        """
        row = self.row_for(offset)
        self.exporter.fill_dropdown(schema, row, row)
        self.exporter.fill_row(schema, record, row, raw_values)

        unmapped: list[str] = []
        for field_name, messages in failure.items():
            column = schema.column_for(field_name)
            if column is None:
                unmapped.extend(f"{field_name}: {message}" for message in messages)
                continue
            self.document.set_comment(column.index, row, "\n".join(messages))
            self.document.mark_failed(column.index, row)

        if unmapped and schema.columns:
            # Failures on fields without a column go to the row's first cell.
            first = schema.columns[0]
            existing = failure.get(first.field_name, [])
            self.document.set_comment(first.index, row, "\n".join([*existing, *unmapped]))
            self.document.mark_failed(first.index, row)

        self.rows_written += 1
        logger.debug(
            "Error row written",
            extra={"sheet": schema.name, "row": row, "fields": sorted(failure)},
        )
        return row

    def finish(self) -> None:
        self.exporter.auto_size()
