"""Exception types raised by foxsheet.

Fatal errors (configuration, header mismatch, lookups, row limits) abort an
import or export run. ``CellDecodeError`` is the only recoverable one: the
import engine turns it into a failure on the offending field.
"""

from __future__ import annotations

from typing import Any


class FoxsheetError(Exception):
    """Base exception for foxsheet errors."""


class ConfigurationError(FoxsheetError):
    """Raised when sheet or column metadata is malformed."""


class HeaderMismatchError(FoxsheetError):
    """Raised when an imported sheet's header differs from its schema."""

    def __init__(self, sheet: str, column: int, observed: Any, expected: str) -> None:
        self.sheet = sheet
        self.column = column
        self.observed = observed
        self.expected = expected
        super().__init__(
            f"Sheet '{sheet}': header '{observed}' at column {column} should be '{expected}'"
        )


class CellDecodeError(FoxsheetError, ValueError):
    """Raised when a single cell value cannot be converted to its field type."""

    def __init__(self, value: Any, message: str) -> None:
        self.value = value
        super().__init__(message)


class ResolutionError(FoxsheetError, LookupError):
    """Base class for lookups that cannot be resolved during a run."""


class HandlerNotFoundError(ResolutionError):
    """Raised when no row handler is registered for a record type."""

    def __init__(self, model: type) -> None:
        self.model = model
        super().__init__(f"No row handler registered for '{model.__name__}'")


class SheetNotFoundError(ResolutionError):
    """Raised when the source workbook has no sheet at the configured index."""

    def __init__(self, name: str, index: int, available: list[str]) -> None:
        self.name = name
        self.index = index
        super().__init__(
            f"Sheet '{name}' expected at index {index} but workbook only has {available}"
        )


class RowLimitExceededError(FoxsheetError):
    """Raised when a sheet holds more data rows than ``max_rows`` allows."""

    def __init__(self, sheet: str, max_rows: int) -> None:
        self.sheet = sheet
        self.max_rows = max_rows
        super().__init__(f"Sheet '{sheet}' exceeds the limit of {max_rows} data row(s)")
