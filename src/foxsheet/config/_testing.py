"""Test utilities for the config module."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from ._repository import FakeConfigRepository, get_repository, set_repository


@contextmanager
def override_config(
    *,
    env: dict[str, str] | None = None,
    values: dict[str, Any] | None = None,
) -> Iterator[FakeConfigRepository]:
    """Temporarily replace the config source with a ``FakeConfigRepository``.

    Usage::

        with override_config(env={"FOXSHEET_MAX_ROWS": "500"}) as repo:
            assert ExcelSettings.load().max_rows == 500
            repo.set_value("header_row", 2)  # mutate inside context
    """
    previous = get_repository()
    fake = FakeConfigRepository(env=env, values=values)
    set_repository(fake)
    try:
        yield fake
    finally:
        set_repository(previous)
