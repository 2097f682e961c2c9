"""Typed settings for foxsheet runs.

Settings are read from ``FOXSHEET_*`` environment variables or an
application-supplied mapping, validated by Pydantic, and fail fast.
"""

from ._casters import parse_file_size
from ._repository import (
    ConfigRepository,
    EnvConfigRepository,
    FakeConfigRepository,
    get_repository,
    set_repository,
)
from ._settings import AppConfig, ExcelSettings
from ._testing import override_config

__all__ = [
    "AppConfig",
    "ExcelSettings",
    "parse_file_size",
    # Sources
    "ConfigRepository",
    "EnvConfigRepository",
    "get_repository",
    "set_repository",
    # Testing
    "FakeConfigRepository",
    "override_config",
]
