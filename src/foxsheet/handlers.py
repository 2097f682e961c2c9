"""Per-record-type row handlers and the registry the engines look them up in.

A handler supplies the business rules of one sheet::

    class PositionHandler(RowHandler[PositionRow]):
        model = PositionRow

        def validate(self, record, snapshot):
            failures = self.validate_fields(record)
            codes = [row.staff_code for row in snapshot[PositionRow]]
            if codes.count(record.staff_code) > 1:
                failures.setdefault("staff_code", []).append(
                    f"Staff code {record.staff_code} is duplicated"
                )
            return failures

        def on_valid(self, records):
            save_positions(records)

    registry = HandlerRegistry()
    registry.register(PositionHandler())
    registry.freeze()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any, ClassVar, Dict, Generic, Iterator, List, Mapping, Protocol, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import HandlerNotFoundError

TModel = TypeVar("TModel", bound=BaseModel)

# field name -> ordered messages, scoped to one record
ValidationFailure = Dict[str, List[str]]


class DatasetSnapshot(Mapping[Type[BaseModel], Sequence[Any]]):
    """Read-only view of every row decoded so far in one import run.

    Keyed by record model; each value holds the sheet's rows in original
    order, valid and invalid alike. The tuple for a model is built once and
    reused until that model's rows are replaced.
    """

    def __init__(self, data: Mapping[Type[BaseModel], Sequence[Any]]) -> None:
        self._data = MappingProxyType(data)
        self._views: Dict[Type[BaseModel], Tuple[Sequence[Any], Tuple[Any, ...]]] = {}

    def __getitem__(self, model: Type[BaseModel]) -> Tuple[Any, ...]:
        rows = self._data[model]
        cached = self._views.get(model)
        if cached is None or cached[0] is not rows:
            cached = (rows, rows if isinstance(rows, tuple) else tuple(rows))
            self._views[model] = cached
        return cached[1]

    def __iter__(self) -> Iterator[Type[BaseModel]]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)


class FieldRuleValidator(Protocol):
    """Maps a record and a field name to that field's violation messages."""

    def validate_property(self, record: Any, field_name: str) -> List[str]:
        ...

    def validate_record(self, record: Any) -> ValidationFailure:
        ...


class PydanticFieldValidator:
    """Evaluates the rules declared on the record's Pydantic model.

    Records built by the import engine skip validation on construction, so
    the model's constraints (``Field(le=100)``, ``field_validator`` ...) are
    applied here against the record's current values.
    """

    def validate_record(self, record: Any) -> ValidationFailure:
        values = dict(record.__dict__)
        try:
            type(record).model_validate(values)
        except ValidationError as e:
            failures: ValidationFailure = {}
            for err in e.errors():
                loc = err.get("loc") or ("__root__",)
                failures.setdefault(str(loc[0]), []).append(err.get("msg", "Validation error"))
            return failures
        return {}

    def validate_property(self, record: Any, field_name: str) -> List[str]:
        return self.validate_record(record).get(field_name, [])


class RowHandler(ABC, Generic[TModel]):
    """Validation, enrichment and persistence hooks for one record type.

    Subclasses set ``model`` to the record model they handle.
    """

    model: ClassVar[Type[BaseModel] | None] = None
    field_rules: FieldRuleValidator = PydanticFieldValidator()

    @abstractmethod
    def validate(self, record: TModel, snapshot: DatasetSnapshot) -> ValidationFailure:
        """Return the failures of ``record``; an empty mapping means valid.

        ``snapshot`` exposes all rows decoded in this run, for cross-row
        checks such as duplicate detection.
        """

    def enrich(self, record: TModel) -> TModel:
        """Fill in data not present in the sheet; applied to valid rows only."""
        return record

    @abstractmethod
    def on_valid(self, records: List[TModel]) -> None:
        """Receive the sheet's valid records once the sheet is processed."""

    def on_invalid(self, records: List[TModel]) -> None:
        """Receive the sheet's invalid records; ignored by default."""

    def validate_fields(self, record: TModel) -> ValidationFailure:
        """Run the field rules declared on the record model."""
        return self.field_rules.validate_record(record)


class HandlerRegistry:
    """Record model -> row handler mapping, populated at startup."""

    def __init__(self) -> None:
        self._handlers: Dict[Type[BaseModel], RowHandler] = {}
        self._frozen = False

    def register(self, handler: RowHandler, model: Type[BaseModel] | None = None) -> RowHandler:
        """Register ``handler`` for ``model`` (default: ``handler.model``)."""
        if self._frozen:
            raise RuntimeError("HandlerRegistry is frozen; register handlers at startup")
        model = model or handler.model
        if model is None:
            raise ValueError(f"{type(handler).__name__} must define 'model' or be registered with one")
        existing = self._handlers.get(model)
        if existing is not None and existing is not handler:
            raise ValueError(
                f"Model '{model.__name__}' is already registered with handler "
                f"'{type(existing).__name__}'. Cannot register '{type(handler).__name__}'."
            )
        self._handlers[model] = handler
        return handler

    def get(self, model: Type[BaseModel]) -> RowHandler:
        """Return the handler of ``model``; raises ``HandlerNotFoundError``."""
        handler = self._handlers.get(model)
        if handler is None:
            raise HandlerNotFoundError(model)
        return handler

    def freeze(self) -> "HandlerRegistry":
        self._frozen = True
        return self

    def __contains__(self, model: object) -> bool:
        return model in self._handlers
