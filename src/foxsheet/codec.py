"""Conversion between record field values and spreadsheet cell values.

``encode`` is best-effort: a value that cannot be converted is logged and
written as-is so one bad field never blanks a whole export. ``decode`` is
strict and raises ``CellDecodeError``; the import engine records that as a
failure on the field.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from .config._casters import _cast_bool
from .enums import EnumTable
from .errors import CellDecodeError
from .schema import ColumnSchema

logger = logging.getLogger(__name__)

DEFAULT_DATE_FORMAT = "%Y-%m-%d"
DEFAULT_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _is_subclass(field_type: Any, base: type) -> bool:
    return isinstance(field_type, type) and issubclass(field_type, base)


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


def encode(
    value: Any,
    field_type: Any = None,
    *,
    date_format: str | None = None,
    enum: EnumTable | None = None,
) -> Any:
    """Convert a field value into a cell value.

    Args:
        value: Field value taken from the record
        field_type: Declared field type (reported when encoding fails)
        date_format: Per-field ``strftime`` override
        enum: Label table of an enumeration column

    Returns:
        ``None`` for empty values, formatted text for dates, the display
        label (or member name) for enums, otherwise the value unchanged.
    """
    if _is_empty(value):
        return None

    try:
        if isinstance(value, (date, datetime)):
            if date_format is None:
                date_format = DEFAULT_DATETIME_FORMAT if isinstance(value, datetime) else DEFAULT_DATE_FORMAT
            return value.strftime(date_format)
        if enum is not None:
            return enum.label_of(value)
        if isinstance(value, Enum):
            return value.name
    except (KeyError, ValueError, TypeError) as exc:
        logger.warning(
            "Falling back to raw value while encoding cell",
            extra={"value": repr(value), "field_type": repr(field_type), "error": str(exc)},
        )
        return value
    return value


def encode_cell(record: Any, column: ColumnSchema) -> Any:
    """Encode the value of ``column`` read from ``record``."""
    try:
        value = column.read(record)
    except Exception as exc:
        logger.warning(
            "Could not read field for export",
            extra={"field": column.field_name, "error": str(exc)},
        )
        return None
    return encode(value, column.field_type, date_format=column.date_format, enum=column.enum)


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


def decode(
    raw: Any,
    field_type: Any = None,
    *,
    date_format: str | None = None,
    enum: EnumTable | None = None,
) -> Any:
    """Convert a raw cell value into a field value.

    Raises:
        CellDecodeError: When the cell cannot be converted to ``field_type``.
    """
    if isinstance(raw, str):
        raw = raw.strip()
    if _is_empty(raw):
        return None

    if enum is not None:
        if isinstance(raw, Enum):
            return raw
        try:
            return enum.member_for_label(str(raw))
        except KeyError:
            raise CellDecodeError(
                raw, f"'{raw}' is not a valid choice. Must be one of {enum.labels()}"
            ) from None

    if field_type is None or field_type is Any:
        return raw
    if _is_subclass(field_type, bool):
        return _decode_bool(raw)
    if _is_subclass(field_type, Enum):
        return _decode_enum_name(raw, field_type)
    if _is_subclass(field_type, datetime):
        return _decode_datetime(raw, date_format or DEFAULT_DATETIME_FORMAT)
    if _is_subclass(field_type, date):
        return _decode_date(raw, date_format or DEFAULT_DATE_FORMAT)
    if _is_subclass(field_type, int):
        return _decode_int(raw)
    if _is_subclass(field_type, float):
        return _decode_number(raw, float, "a number")
    if _is_subclass(field_type, Decimal):
        return _decode_decimal(raw)
    if _is_subclass(field_type, str):
        return _decode_str(raw)
    return raw


def decode_cell(raw: Any, column: ColumnSchema) -> Any:
    """Decode ``raw`` according to ``column``'s field type."""
    return decode(raw, column.field_type, date_format=column.date_format, enum=column.enum)


def _decode_str(raw: Any) -> str:
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    if isinstance(raw, datetime):
        return raw.strftime(DEFAULT_DATETIME_FORMAT)
    if isinstance(raw, date):
        return raw.strftime(DEFAULT_DATE_FORMAT)
    return str(raw)


def _decode_bool(raw: Any) -> bool:
    try:
        return _cast_bool(raw)
    except ValueError:
        raise CellDecodeError(raw, f"'{raw}' is not a valid boolean") from None


def _decode_int(raw: Any) -> int:
    if isinstance(raw, bool):
        raise CellDecodeError(raw, f"'{raw}' is not a valid integer")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if raw.is_integer():
            return int(raw)
        raise CellDecodeError(raw, f"'{raw}' is not a valid integer")
    try:
        return int(str(raw))
    except ValueError:
        raise CellDecodeError(raw, f"'{raw}' is not a valid integer") from None


def _decode_number(raw: Any, number_type: type, description: str) -> Any:
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return number_type(raw)
    try:
        return number_type(str(raw))
    except ValueError:
        raise CellDecodeError(raw, f"'{raw}' is not {description}") from None


def _decode_decimal(raw: Any) -> Decimal:
    if isinstance(raw, bool):
        raise CellDecodeError(raw, f"'{raw}' is not a decimal")
    try:
        return Decimal(str(raw))
    except InvalidOperation:
        raise CellDecodeError(raw, f"'{raw}' is not a decimal") from None


def _decode_datetime(raw: Any, date_format: str) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime.combine(raw, datetime.min.time())
    try:
        return datetime.strptime(str(raw), date_format)
    except ValueError:
        raise CellDecodeError(raw, f"'{raw}' does not match the format '{date_format}'") from None


def _decode_date(raw: Any, date_format: str) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        return datetime.strptime(str(raw), date_format).date()
    except ValueError:
        raise CellDecodeError(raw, f"'{raw}' does not match the format '{date_format}'") from None


def _decode_enum_name(raw: Any, enum_type: type[Enum]) -> Enum:
    if isinstance(raw, enum_type):
        return raw
    try:
        return enum_type[str(raw)]
    except KeyError:
        names = [member.name for member in enum_type]
        raise CellDecodeError(
            raw, f"'{raw}' is not a valid choice. Must be one of {names}"
        ) from None
