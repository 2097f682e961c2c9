"""Sheet and column schemas derived from record models.

Record types are Pydantic models. Columns are declared with ``Column(...)``
inside the field's ``Annotated`` type, the sheet with an inner ``Meta``
class::

    class PersonRow(SheetModel):
        class Meta:
            sheet = "人员信息"
            index = 0

        name: Annotated[str, Column("姓名", index=0, note="姓名备注")]
        age: Annotated[Optional[int], Column("年龄", index=1)] = Field(default=None, le=100)

The schema is built once per model and cached; malformed metadata raises
``ConfigurationError`` before any row is read or written.
"""

from __future__ import annotations

import types
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Type, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict

from .enums import EnumTable, LabeledEnum, as_enum_table
from .errors import ConfigurationError

DEFAULT_SHEET_NAME = "sheet0"
DEFAULT_SHEET_INDEX = 0


class Column:
    """Column metadata for one record field.

    Args:
        header: Header text, must match exactly on import
        index: Zero-based column index, unique within the sheet
        note: Optional annotation attached to the header cell
        enum: ``EnumTable`` or enum class rendered as a dropdown of labels;
            inferred for ``LabeledEnum`` fields when omitted
        date_format: ``strftime`` pattern overriding the date defaults
    """

    __slots__ = ("header", "index", "note", "enum", "date_format")

    def __init__(
        self,
        header: str,
        index: int = -1,
        *,
        note: str | None = None,
        enum: EnumTable | Type[Enum] | None = None,
        date_format: str | None = None,
    ) -> None:
        self.header = header
        self.index = index
        self.note = note
        self.enum = enum
        self.date_format = date_format

    def __repr__(self) -> str:
        return f"Column({self.header!r}, index={self.index})"


@dataclass(frozen=True)
class ColumnSchema:
    """One record field projected onto one sheet column."""

    header: str
    index: int
    field_name: str
    field_type: Any
    note: str | None = None
    enum: EnumTable | None = None
    date_format: str | None = None

    def read(self, record: Any) -> Any:
        return getattr(record, self.field_name, None)


@dataclass(frozen=True)
class SheetSchema:
    """Identity and ordered column layout of one sheet."""

    name: str
    index: int
    columns: tuple[ColumnSchema, ...]
    model: Type[BaseModel]
    _by_field: Dict[str, ColumnSchema] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._by_field.update({column.field_name: column for column in self.columns})

    def column_for(self, field_name: str) -> ColumnSchema | None:
        return self._by_field.get(field_name)

    @property
    def enum_columns(self) -> tuple[ColumnSchema, ...]:
        return tuple(column for column in self.columns if column.enum is not None)

    @property
    def headers(self) -> list[str]:
        return [column.header for column in self.columns]


class SheetModel(BaseModel):
    """Optional base class for record models.

    Plain ``BaseModel`` subclasses work as well; this base only adds the
    ``sheet_schema()`` shortcut and allows the enum/date field types used in
    sheets.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def sheet_schema(cls) -> SheetSchema:
        return build_sheet_schema(cls)


_SCHEMA_CACHE: Dict[Type[BaseModel], SheetSchema] = {}


def build_sheet_schema(model: Type[BaseModel]) -> SheetSchema:
    """Return the (cached) sheet schema of a record model."""
    schema = _SCHEMA_CACHE.get(model)
    if schema is None:
        schema = _build_sheet_schema(model)
        _SCHEMA_CACHE[model] = schema
    return schema


def _build_sheet_schema(model: Type[BaseModel]) -> SheetSchema:
    if not (isinstance(model, type) and issubclass(model, BaseModel)):
        raise ConfigurationError(f"{model!r} is not a Pydantic model class")

    name, index = _sheet_identity(model)

    columns: list[ColumnSchema] = []
    seen: Dict[int, str] = {}
    for field_name, field_info in model.model_fields.items():
        column = _find_column(field_info.metadata)
        if column is None:
            continue
        if not isinstance(column.header, str) or not column.header.strip():
            raise ConfigurationError(
                f"{model.__name__}.{field_name}: column header must not be blank"
            )
        if not isinstance(column.index, int) or column.index < 0:
            raise ConfigurationError(
                f"{model.__name__}.{field_name}: column index must be >= 0, got {column.index}"
            )
        if column.index in seen:
            raise ConfigurationError(
                f"{model.__name__}.{field_name}: column index {column.index} "
                f"is already used by '{seen[column.index]}'"
            )
        seen[column.index] = field_name

        field_type = unwrap_optional(field_info.annotation)
        try:
            enum = as_enum_table(column.enum)
        except TypeError as exc:
            raise ConfigurationError(f"{model.__name__}.{field_name}: {exc}") from None
        if enum is None and isinstance(field_type, type) and issubclass(field_type, LabeledEnum):
            enum = EnumTable.of(field_type)

        columns.append(
            ColumnSchema(
                header=column.header,
                index=column.index,
                field_name=field_name,
                field_type=field_type,
                note=column.note or None,
                enum=enum,
                date_format=column.date_format,
            )
        )

    columns.sort(key=lambda c: c.index)
    return SheetSchema(name=name, index=index, columns=tuple(columns), model=model)


def _sheet_identity(model: Type[BaseModel]) -> tuple[str, int]:
    meta = getattr(model, "Meta", None)
    if meta is None:
        return DEFAULT_SHEET_NAME, DEFAULT_SHEET_INDEX

    name = getattr(meta, "sheet", None)
    index = getattr(meta, "index", -1)
    if not isinstance(name, str) or not name.strip():
        raise ConfigurationError(f"{model.__name__}.Meta.sheet must not be blank")
    if not isinstance(index, int) or index < 0:
        raise ConfigurationError(f"{model.__name__}.Meta.index must be >= 0, got {index}")
    return name, index


def _find_column(metadata: Iterable[Any]) -> Optional[Column]:
    for item in metadata:
        if isinstance(item, Column):
            return item
    return None


def unwrap_optional(annotation: Any) -> Any:
    """Strip ``Optional[...]`` / ``X | None`` from a field annotation."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def validate_run_schemas(schemas: Iterable[SheetSchema]) -> list[SheetSchema]:
    """Check that sheets in one run have unique indices and names."""
    checked: list[SheetSchema] = []
    indices: Dict[int, str] = {}
    names: set[str] = set()
    for schema in schemas:
        if schema.index in indices:
            raise ConfigurationError(
                f"Sheet '{schema.name}' uses index {schema.index} "
                f"already taken by '{indices[schema.index]}'"
            )
        if schema.name in names:
            raise ConfigurationError(f"Sheet name '{schema.name}' is used more than once")
        indices[schema.index] = schema.name
        names.add(schema.name)
        checked.append(schema)
    return checked

