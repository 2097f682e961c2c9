"""Enumerations with display labels.

A column bound to an enumeration shows the enumeration's display labels in
the sheet (and as a dropdown), while records carry the enum member whose
value is the stored code::

    class JobState(LabeledEnum):
        RUNNING = ("1", "运行中")
        SUCCESS = ("2", "成功")

    JobState.RUNNING.value   # "1"
    JobState.RUNNING.label   # "运行中"
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Type


class LabeledEnum(Enum):
    """Enum whose members are declared as ``(code, label)`` pairs."""

    def __new__(cls, code: Any, label: str) -> "LabeledEnum":
        member = object.__new__(cls)
        member._value_ = code
        member.label = label
        return member

    @property
    def code(self) -> Any:
        return self.value


@dataclass(frozen=True)
class EnumEntry:
    code: Any
    label: str
    member: Any


@dataclass(frozen=True)
class EnumTable:
    """Ordered code/label table backing one enumeration column."""

    name: str
    entries: tuple[EnumEntry, ...]

    @classmethod
    def of(cls, enum_type: Type[Enum]) -> "EnumTable":
        """Build the table of a ``LabeledEnum`` (or any enum with ``label``)."""
        entries = tuple(
            EnumEntry(code=member.value, label=str(getattr(member, "label", member.name)), member=member)
            for member in enum_type
        )
        return cls(name=enum_type.__name__, entries=entries)

    @classmethod
    def from_pairs(cls, name: str, pairs: Iterable[tuple[Any, str]]) -> "EnumTable":
        """Build a table from explicit ``(code, label)`` pairs; members are the codes."""
        return cls(
            name=name,
            entries=tuple(EnumEntry(code=code, label=str(label), member=code) for code, label in pairs),
        )

    def labels(self) -> list[str]:
        return [entry.label for entry in self.entries]

    def label_of(self, value: Any) -> str:
        """Return the label of a member (or of a bare code)."""
        for entry in self.entries:
            if entry.member is value or entry.member == value or entry.code == value:
                return entry.label
        raise KeyError(f"{value!r} is not a member of {self.name}")

    def member_for_label(self, label: str) -> Any:
        for entry in self.entries:
            if entry.label == label:
                return entry.member
        raise KeyError(f"'{label}' is not a label of {self.name}. Must be one of {self.labels()}")

    def member_for_code(self, code: Any) -> Any:
        for entry in self.entries:
            if entry.code == code:
                return entry.member
        raise KeyError(f"{code!r} is not a code of {self.name}")


def as_enum_table(enum: EnumTable | Type[Enum] | None) -> EnumTable | None:
    """Normalize a column's ``enum=`` argument."""
    if enum is None or isinstance(enum, EnumTable):
        return enum
    if isinstance(enum, type) and issubclass(enum, Enum):
        return EnumTable.of(enum)
    raise TypeError(f"enum must be an EnumTable or Enum subclass, got {enum!r}")
