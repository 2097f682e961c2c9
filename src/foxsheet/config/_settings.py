"""Typed settings groups using Pydantic BaseModel.

Subclass ``AppConfig`` and declare fields + a ``Meta`` inner class to map
config keys automatically::

    class ReportSettings(AppConfig):
        class Meta:
            env_prefix = "REPORT"

        title: str = "Report"

    cfg = ReportSettings.load()
    cfg.title           # REPORT_TITLE env var, then the "title" config key
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ._casters import parse_file_size
from ._repository import ConfigRepository, _auto_repository
from ._types import UNDEFINED, _Undefined


class AppConfig(BaseModel):
    """Base class for declarative, typed config groups."""

    class Meta:
        env_prefix: str = ""

    @classmethod
    def load(cls, repo: ConfigRepository | None = None, **overrides: Any) -> "AppConfig":
        """Load config values and return a validated instance.

        Resolution per field:
        1. Explicit keyword override
        2. Environment variable (``{ENV_PREFIX}_{FIELD_NAME}`` uppercased)
        3. Config mapping key (the field name)
        4. Omit, so Pydantic uses the field default or raises ``ValidationError``
        """
        active_repo = repo or _auto_repository()
        env_prefix = getattr(cls.Meta, "env_prefix", "")

        raw_data: dict[str, Any] = {}

        for field_name in cls.model_fields:
            value: Any = overrides.get(field_name, UNDEFINED)

            if isinstance(value, _Undefined) and env_prefix:
                env_val = active_repo.get_env(f"{env_prefix}_{field_name}".upper())
                if env_val is not None:
                    value = env_val

            if isinstance(value, _Undefined):
                config_val = active_repo.get_config(field_name)
                if config_val is not None:
                    value = config_val

            if not isinstance(value, _Undefined):
                raw_data[field_name] = value

        return cls.model_validate(raw_data)


class ExcelSettings(AppConfig):
    """Layout and limits shared by import and export runs.

    Attributes:
        header_row: 1-based row holding the column headers
        data_row_start: first data row (default: ``header_row + 1``)
        max_rows: per-sheet cap on decoded data rows (``None``: unlimited)
        max_file_size: byte cap on import sources, accepts ``"10MB"`` style
        error_name_prefix: prefix of generated error workbook names
        comment_author: author recorded on cell annotations
    """

    class Meta:
        env_prefix = "FOXSHEET"

    header_row: int = Field(default=1, ge=1)
    data_row_start: Optional[int] = None
    max_rows: Optional[int] = Field(default=None, ge=1)
    max_file_size: Optional[int] = None
    error_name_prefix: str = "error-"
    comment_author: str = "foxsheet"

    @field_validator("max_file_size", mode="before")
    @classmethod
    def _parse_file_size(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return parse_file_size(value)

    @model_validator(mode="after")
    def _derive_data_row_start(self) -> "ExcelSettings":
        if self.data_row_start is None:
            self.data_row_start = self.header_row + 1
        elif self.data_row_start <= self.header_row:
            raise ValueError("data_row_start must be > header_row")
        return self
