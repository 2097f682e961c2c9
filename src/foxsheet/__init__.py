"""Declarative spreadsheet import/export with validation and error workbooks."""

from ._version import __version__
from .api import default_error_name, read, write
from .enums import EnumTable, LabeledEnum
from .errors import (
    CellDecodeError,
    ConfigurationError,
    FoxsheetError,
    HandlerNotFoundError,
    HeaderMismatchError,
    ResolutionError,
    RowLimitExceededError,
    SheetNotFoundError,
)
from .exporter import SheetData, SheetExporter
from .handlers import DatasetSnapshot, HandlerRegistry, RowHandler, ValidationFailure
from .importer import ImportResult, SheetImporter, SheetResult
from .schema import Column, SheetModel, SheetSchema, build_sheet_schema

__all__ = [
    "__version__",
    # Declarations
    "Column",
    "EnumTable",
    "LabeledEnum",
    "SheetModel",
    "SheetSchema",
    "build_sheet_schema",
    # Handlers
    "DatasetSnapshot",
    "HandlerRegistry",
    "RowHandler",
    "ValidationFailure",
    # Engines
    "ImportResult",
    "SheetData",
    "SheetExporter",
    "SheetImporter",
    "SheetResult",
    "default_error_name",
    "read",
    "write",
    # Errors
    "CellDecodeError",
    "ConfigurationError",
    "FoxsheetError",
    "HandlerNotFoundError",
    "HeaderMismatchError",
    "ResolutionError",
    "RowLimitExceededError",
    "SheetNotFoundError",
]
