"""Cast helpers for config and cell values.

These callables transform raw strings (environment variables, spreadsheet
text) into the desired Python types.
"""

from __future__ import annotations

import re
from typing import Any


# ---------------------------------------------------------------------------
# Bool caster
# ---------------------------------------------------------------------------

_TRUTHY = frozenset({"1", "true", "yes", "on", "t", "y", "是"})
_FALSY = frozenset({"0", "false", "no", "off", "f", "n", "否", ""})


def _cast_bool(value: Any) -> bool:
    """Cast a value to ``bool``, handling common string representations.

    Raises ``ValueError`` for unrecognised strings.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower in _TRUTHY:
            return True
        if lower in _FALSY:
            return False
        raise ValueError(f"Cannot cast {value!r} to bool")
    raise ValueError(f"Cannot cast {type(value).__name__} to bool")


# ---------------------------------------------------------------------------
# File sizes
# ---------------------------------------------------------------------------

_SIZE_UNITS = {
    "": 1,
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
}

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMG]?B?)\s*$", re.IGNORECASE)


def parse_file_size(value: Any) -> int:
    """Parse a human file size into bytes.

    >>> parse_file_size("10MB")
    10485760
    >>> parse_file_size(2048)
    2048
    """
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse {value!r} as a file size")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)

    match = _SIZE_PATTERN.match(str(value))
    if match is None:
        raise ValueError(f"Cannot parse {value!r} as a file size")

    number, unit = match.groups()
    unit = unit.upper()
    if unit and not unit.endswith("B"):
        unit += "B"
    return int(float(number) * _SIZE_UNITS[unit])
