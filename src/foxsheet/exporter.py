"""Export engine: writes record lists into one workbook, one sheet per model."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence, Tuple, Type, Union

from pydantic import BaseModel

from .codec import encode_cell
from .config import ExcelSettings
from .document import Destination, SheetDocument
from .schema import SheetSchema, build_sheet_schema, validate_run_schemas

logger = logging.getLogger(__name__)


@dataclass
class SheetData:
    """Records of one model to be written to that model's sheet."""

    model: Type[BaseModel]
    records: Sequence[Any] = field(default_factory=list)

    @property
    def schema(self) -> SheetSchema:
        return build_sheet_schema(self.model)


SheetInput = Union[SheetData, Tuple[Type[BaseModel], Sequence[Any]]]


def as_sheet_data(sheets: Iterable[SheetInput]) -> list[SheetData]:
    """Normalize ``SheetData`` objects and ``(model, records)`` pairs."""
    normalized: list[SheetData] = []
    for item in sheets:
        if isinstance(item, SheetData):
            normalized.append(item)
        else:
            model, records = item
            normalized.append(SheetData(model=model, records=list(records or [])))
    return normalized


class SheetExporter:
    """Writes sheets into a ``SheetDocument``.

    Per sheet: select/create/rename the sheet, write the header row with its
    notes, then, only when there is content, add the enum dropdowns over the
    content rows, write one row per record and auto-size the sheet. An empty
    sheet keeps just its header so it can be filled in and imported.
    """

    def __init__(self, config: ExcelSettings | None = None) -> None:
        self.config = config or ExcelSettings.load()
        self.document = SheetDocument(comment_author=self.config.comment_author)

    @property
    def header_row(self) -> int:
        return self.config.header_row

    @property
    def data_row_start(self) -> int:
        return self.config.data_row_start

    def export(self, sheets: Iterable[SheetInput]) -> "SheetExporter":
        """Fill every sheet; schemas are validated before anything is written."""
        data = as_sheet_data(sheets)
        validate_run_schemas(item.schema for item in data)
        for item in data:
            self.fill_sheet(item)
        return self

    def fill_sheet(self, data: SheetData) -> None:
        schema = data.schema
        self.select_sheet(schema)
        self.fill_header(schema)
        if data.records:
            first_row = self.data_row_start
            last_row = first_row + len(data.records) - 1
            self.fill_dropdown(schema, first_row, last_row)
            self.fill_content(schema, data.records)
            self.document.auto_size()
        logger.info(
            "Sheet exported",
            extra={"sheet": schema.name, "index": schema.index, "rows": len(data.records)},
        )

    def select_sheet(self, schema: SheetSchema) -> None:
        self.document.select_sheet(schema.index, schema.name)

    def fill_header(self, schema: SheetSchema) -> None:
        for column in schema.columns:
            self.document.write_cell(column.index, self.header_row, column.header)
            self.document.set_comment(column.index, self.header_row, column.note)

    def fill_dropdown(self, schema: SheetSchema, first_row: int, last_row: int) -> None:
        """Constrain every enum column between ``first_row`` and ``last_row``."""
        for column in schema.enum_columns:
            self.document.add_dropdown(column.index, first_row, last_row, column.enum.labels())

    def fill_row(
        self,
        schema: SheetSchema,
        record: Any,
        row: int,
        raw_values: Mapping[str, Any] | None = None,
    ) -> None:
        """Write one record; fields in ``raw_values`` are written as given, unencoded."""
        raw_values = raw_values or {}
        for column in schema.columns:
            if column.field_name in raw_values:
                value = raw_values[column.field_name]
            else:
                value = encode_cell(record, column)
            self.document.write_cell(column.index, row, value)

    def fill_content(self, schema: SheetSchema, records: Sequence[Any]) -> None:
        for offset, record in enumerate(records):
            self.fill_row(schema, record, self.data_row_start + offset)

    def auto_size(self) -> None:
        self.document.auto_size_all()

    def save(self, destination: Destination) -> None:
        self.document.save(destination)

    def to_bytes(self) -> bytes:
        return self.document.to_bytes()
