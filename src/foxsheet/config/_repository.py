"""Config source protocol, the default environment source and a test fake."""

from __future__ import annotations

import os
from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class ConfigRepository(Protocol):
    """Abstraction over where config values come from.

    ``get_env`` reads process environment style values (always strings);
    ``get_config`` reads an application-supplied mapping (already typed).
    """

    def get_env(self, key: str) -> str | None:
        ...

    def get_config(self, key: str) -> Any:
        ...


class EnvConfigRepository:
    """Reads ``os.environ`` and an optional in-process mapping."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})

    def get_env(self, key: str) -> str | None:
        return os.environ.get(key)

    def get_config(self, key: str) -> Any:
        return self._values.get(key)


class FakeConfigRepository:
    """Dict-backed config repository for tests.

    >>> repo = FakeConfigRepository(env={"FOXSHEET_HEADER_ROW": "2"})
    >>> repo.get_env("FOXSHEET_HEADER_ROW")
    '2'
    """

    def __init__(
        self,
        env: dict[str, str] | None = None,
        values: dict[str, Any] | None = None,
    ) -> None:
        self._env: dict[str, str] = dict(env or {})
        self._values: dict[str, Any] = dict(values or {})

    # -- Protocol methods ---------------------------------------------------

    def get_env(self, key: str) -> str | None:
        return self._env.get(key)

    def get_config(self, key: str) -> Any:
        return self._values.get(key)

    # -- Mutation helpers for test setup ------------------------------------

    def set_env(self, key: str, value: str) -> None:
        self._env[key] = value

    def set_value(self, key: str, value: Any) -> None:
        self._values[key] = value


# ---------------------------------------------------------------------------
# Module-level repository management
# ---------------------------------------------------------------------------

_active_repository: ConfigRepository | None = None


def set_repository(repo: ConfigRepository | None) -> None:
    """Set the module-level config repository."""
    global _active_repository
    _active_repository = repo


def get_repository() -> ConfigRepository | None:
    """Return the current module-level config repository (may be ``None``)."""
    return _active_repository


def _auto_repository() -> ConfigRepository:
    """Lazily create an ``EnvConfigRepository`` if none is set."""
    global _active_repository
    if _active_repository is None:
        _active_repository = EnvConfigRepository()
    return _active_repository
