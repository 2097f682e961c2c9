"""Import engine: reads sheets into records, validates and partitions them.

One ``SheetImporter`` performs exactly one run. Per sheet, in the order the
models are given:

1. header check: every declared column must carry exactly its header,
   otherwise the whole run fails with ``HeaderMismatchError``
2. decode: all non-empty data rows become records (cell problems are kept
   as failures on the field, not raised)
3. validate and partition, in original row order: valid rows are enriched,
   invalid rows are written to the error workbook
4. aggregate: the ``SheetResult`` is recorded and the handler hooks run
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Type

from openpyxl.workbook.workbook import Workbook
from pydantic import BaseModel

from .codec import decode_cell
from .config import ExcelSettings
from .document import Source, open_source, read_source_bytes
from .errors import CellDecodeError, HeaderMismatchError, RowLimitExceededError, SheetNotFoundError
from .exporter import SheetExporter
from .handlers import DatasetSnapshot, HandlerRegistry, RowHandler, ValidationFailure
from .report import ErrorReportBuilder
from .schema import SheetSchema, build_sheet_schema, validate_run_schemas

logger = logging.getLogger(__name__)


@dataclass
class RowContext:
    """A decoded data row before validation."""

    row_index: int  # 1-based sheet row number
    record: Any
    decode_failures: ValidationFailure = field(default_factory=dict)
    raw_values: Dict[str, Any] = field(default_factory=dict)  # cells that failed to decode


@dataclass(frozen=True)
class SheetResult:
    """Outcome of one sheet.

    Attributes:
        sheet: Schema (name, index, columns) of the sheet
        valid: Enriched records that passed validation, in sheet order
        invalid: Records that failed, as read from the sheet
        failures: Failures of each invalid record (same order as ``invalid``)
        invalid_rows: Source sheet row of each invalid record
    """

    sheet: SheetSchema
    valid: tuple = ()
    invalid: tuple = ()
    failures: tuple = ()
    invalid_rows: tuple = ()

    @property
    def model(self) -> Type[BaseModel]:
        return self.sheet.model

    @property
    def has_errors(self) -> bool:
        return bool(self.invalid)

    @property
    def total_rows(self) -> int:
        return len(self.valid) + len(self.invalid)


@dataclass
class ImportResult:
    """Outcome of one import run.

    ``has_error_data`` is set when any sheet has an invalid row. ``rejected``
    is set when the acceptance check returned ``False``. In either case the
    error workbook is available in ``error_report``.
    """

    has_error_data: bool = False
    sheets: List[SheetResult] = field(default_factory=list)
    rejected: bool = False
    error_report: Optional[bytes] = None
    error_report_name: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return not self.has_error_data and not self.rejected

    def sheet(self, model: Type[BaseModel]) -> SheetResult:
        for sheet_result in self.sheets:
            if sheet_result.model is model:
                return sheet_result
        raise KeyError(f"No sheet result for '{model.__name__}'")


AcceptanceCheck = Callable[[ImportResult, SheetExporter], Optional[bool]]


def default_error_name(name: str | None, prefix: str = "error-") -> str:
    """Name of the error workbook generated for an upload called ``name``."""
    base = Path(name).name if name else "import.xlsx"
    if not base.lower().endswith(".xlsx"):
        base += ".xlsx"
    return f"{prefix}{base}"


def _source_name(source: Source) -> str | None:
    if isinstance(source, (str, os.PathLike)):
        return Path(source).name
    name = getattr(source, "name", None)
    return Path(name).name if isinstance(name, str) else None


def merge_failures(decode_failures: ValidationFailure, rule_failures: ValidationFailure | None) -> ValidationFailure:
    """Combine cell decode failures with handler failures.

    Handler messages for a field whose cell could not be decoded are dropped;
    they would only restate the bad raw value.
    """
    merged: ValidationFailure = {name: list(messages) for name, messages in decode_failures.items()}
    for name, messages in (rule_failures or {}).items():
        if name in decode_failures or not messages:
            continue
        merged.setdefault(name, []).extend(messages)
    return {name: messages for name, messages in merged.items() if messages}


class SheetImporter:
    """Single-use import run over one workbook.

    Args:
        source: Workbook path, ``bytes`` or binary stream
        registry: Handlers for every model that will be imported
        config: Layout and limits (default: ``ExcelSettings.load()``)
        file_name: Original upload name, used to name the error workbook
    """

    def __init__(
        self,
        source: Source,
        registry: HandlerRegistry,
        *,
        config: ExcelSettings | None = None,
        file_name: str | None = None,
    ) -> None:
        self.source = source
        self.registry = registry
        self.config = config or ExcelSettings.load()
        self.file_name = file_name or _source_name(source)
        self.result = ImportResult()
        self.error_exporter = SheetExporter(self.config)
        self.error_report = ErrorReportBuilder(self.error_exporter)
        self._all_data: Dict[Type[BaseModel], Sequence[Any]] = {}
        self.snapshot = DatasetSnapshot(self._all_data)
        self._used = False

    def import_data(
        self,
        models: Sequence[Type[BaseModel]],
        acceptance: AcceptanceCheck | None = None,
    ) -> ImportResult:
        """Run the import for ``models`` (one sheet each) and return the result.

        Args:
            models: Record models, processed in this order
            acceptance: Optional cross-sheet check called with the result and
                the error workbook exporter; returning ``False`` rejects the
                import even without invalid rows

        Raises:
            ConfigurationError: Malformed schemas or duplicate sheets
            HandlerNotFoundError: A model has no registered handler
            SheetNotFoundError: The workbook lacks a configured sheet
            HeaderMismatchError: A header differs from its schema
            RowLimitExceededError: A sheet exceeds ``max_rows``
        """
        if self._used:
            raise RuntimeError("SheetImporter is single-use; create a new instance per import")
        self._used = True

        if not models:
            raise ValueError("At least one model is required")

        schemas = validate_run_schemas(build_sheet_schema(model) for model in models)
        handlers = [self.registry.get(schema.model) for schema in schemas]

        content = read_source_bytes(self.source)
        self._check_file_size(len(content))

        logger.info(
            "Starting import",
            extra={"file": self.file_name, "sheets": [schema.name for schema in schemas]},
        )

        workbook = open_source(content)
        try:
            for schema, handler in zip(schemas, handlers):
                self._import_sheet(workbook, schema, handler)
        finally:
            workbook.close()

        if acceptance is not None and acceptance(self.result, self.error_exporter) is False:
            self.result.rejected = True

        if self.result.has_error_data or self.result.rejected:
            self.error_report.finish()
            self.result.error_report = self.error_exporter.to_bytes()
            self.result.error_report_name = default_error_name(
                self.file_name, self.config.error_name_prefix
            )

        logger.info(
            "Import finished",
            extra={
                "file": self.file_name,
                "has_error_data": self.result.has_error_data,
                "rejected": self.result.rejected,
            },
        )
        return self.result

    # -- per sheet ----------------------------------------------------------

    def _import_sheet(self, workbook: Workbook, schema: SheetSchema, handler: RowHandler) -> None:
        worksheet = self._worksheet(workbook, schema)
        self._check_header(worksheet, schema)

        rows = self._decode_rows(worksheet, schema)
        self._all_data[schema.model] = tuple(row.record for row in rows)
        self.error_report.begin_sheet(schema)

        valid: List[Any] = []
        invalid: List[Any] = []
        failures: List[ValidationFailure] = []
        invalid_rows: List[int] = []

        for row in rows:
            failure = merge_failures(row.decode_failures, handler.validate(row.record, self.snapshot))
            if failure:
                invalid.append(row.record)
                failures.append(failure)
                invalid_rows.append(row.row_index)
                self.error_report.add_row(
                    schema, row.record, failure, len(invalid), raw_values=row.raw_values
                )
            else:
                valid.append(handler.enrich(row.record))

        sheet_result = SheetResult(
            sheet=schema,
            valid=tuple(valid),
            invalid=tuple(invalid),
            failures=tuple(failures),
            invalid_rows=tuple(invalid_rows),
        )
        self.result.sheets.append(sheet_result)
        handler.on_valid(list(valid))
        handler.on_invalid(list(invalid))
        if invalid:
            self.result.has_error_data = True

        logger.info(
            "Sheet imported",
            extra={"sheet": schema.name, "valid_rows": len(valid), "invalid_rows": len(invalid)},
        )

    def _worksheet(self, workbook: Workbook, schema: SheetSchema):
        if schema.index >= len(workbook.worksheets):
            raise SheetNotFoundError(schema.name, schema.index, workbook.sheetnames)
        return workbook.worksheets[schema.index]

    def _check_header(self, worksheet, schema: SheetSchema) -> None:
        header_row = self.config.header_row
        header = next(
            worksheet.iter_rows(min_row=header_row, max_row=header_row, values_only=True),
            (),
        )
        for column in schema.columns:
            observed = header[column.index] if column.index < len(header) else None
            if observed != column.header:
                raise HeaderMismatchError(worksheet.title, column.index, observed, column.header)

    def _decode_rows(self, worksheet, schema: SheetSchema) -> List[RowContext]:
        data_row_start = self.config.data_row_start
        max_rows = self.config.max_rows
        rows: List[RowContext] = []

        for row_index, values in enumerate(
            worksheet.iter_rows(min_row=data_row_start, values_only=True),
            start=data_row_start,
        ):
            if values is None or all(_is_blank(value) for value in values):
                continue
            if max_rows is not None and len(rows) >= max_rows:
                raise RowLimitExceededError(schema.name, max_rows)
            rows.append(self._decode_row(schema, row_index, values))

        return rows

    def _decode_row(self, schema: SheetSchema, row_index: int, values: Sequence[Any]) -> RowContext:
        data: Dict[str, Any] = {}
        failures: ValidationFailure = {}
        raw_values: Dict[str, Any] = {}
        for column in schema.columns:
            raw = values[column.index] if column.index < len(values) else None
            try:
                data[column.field_name] = decode_cell(raw, column)
            except CellDecodeError as exc:
                # keep the raw value so the error workbook shows what was typed
                data[column.field_name] = raw
                raw_values[column.field_name] = raw
                failures.setdefault(column.field_name, []).append(str(exc))
                logger.debug(
                    "Cell could not be decoded",
                    extra={"sheet": schema.name, "row": row_index, "column": column.index},
                )
        record = schema.model.model_construct(**data)
        return RowContext(
            row_index=row_index, record=record, decode_failures=failures, raw_values=raw_values
        )

    def _check_file_size(self, file_size: int) -> None:
        max_size = self.config.max_file_size
        if max_size is not None and file_size > max_size:
            file_size_mb = file_size / (1024 * 1024)
            max_size_mb = max_size / (1024 * 1024)
            raise ValueError(
                f"File size exceeds maximum limit. "
                f"File '{self.file_name or 'Unknown'}' is {file_size_mb:.2f} MB, "
                f"but maximum allowed size is {max_size_mb:.2f} MB."
            )


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
