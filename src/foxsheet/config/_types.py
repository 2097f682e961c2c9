"""Sentinel used by the settings loader to tell "missing" apart from ``None``."""

from __future__ import annotations


class _Undefined:
    """Sentinel for missing config values (distinct from ``None``)."""

    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()
