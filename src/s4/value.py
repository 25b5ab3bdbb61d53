"""Option values and the requirement predicates that gate flags.

A :class:`Value` is either a boolean or a piece of text.  Values order by
kind first (booleans before text) and then by payload, so sets of values
and settings can always be listed in a stable order.

Decoding from TOML is explicit: a boolean becomes a boolean value, a string
(or a number, stored as its text) becomes a text value, and for requirements
a list becomes an "any of" predicate.  Anything else is a :class:`ParseError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from s4.errors import ParseError


class ValueKind(IntEnum):
    BOOLEAN = 0
    TEXT = 1


@dataclass(frozen=True, order=True)
class Value:
    """A boolean or text value assigned to a flag."""

    kind: ValueKind
    data: bool | str

    @classmethod
    def boolean(cls, value: bool) -> Value:
        return cls(ValueKind.BOOLEAN, bool(value))

    @classmethod
    def text(cls, value: str) -> Value:
        return cls(ValueKind.TEXT, str(value))

    @property
    def is_bool(self) -> bool:
        return self.kind is ValueKind.BOOLEAN

    def cmake_str(self) -> str:
        """Render the value the way CMake expects it on a ``-D`` argument."""
        if self.is_bool:
            return "ON" if self.data else "OFF"
        return str(self.data)

    def to_toml(self) -> bool | str:
        return self.data

    def __str__(self) -> str:
        if self.is_bool:
            return "true" if self.data else "false"
        return str(self.data)


TRUE = Value.boolean(True)
FALSE = Value.boolean(False)


def decode_value(raw: object) -> Value:
    """Decode a document value: boolean, else text (numbers kept as text)."""
    if isinstance(raw, bool):
        return Value.boolean(raw)
    if isinstance(raw, str):
        return Value.text(raw)
    if isinstance(raw, (int, float)):
        return Value.text(str(raw))
    raise ParseError(f"Expected a boolean or string value, got {type(raw).__name__}: {raw!r}")


@dataclass(frozen=True)
class Single:
    """Satisfied when the flag equals one value."""

    value: Value

    def check(self, value: Value) -> bool:
        return value == self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class AnyOf:
    """Satisfied when the flag equals any value of a set."""

    values: frozenset[Value]

    def check(self, value: Value) -> bool:
        return value in self.values

    def __str__(self) -> str:
        return "[" + ", ".join(str(v) for v in sorted(self.values)) + "]"


Requirement = Single | AnyOf


def decode_requirement(raw: object) -> Requirement:
    """Decode a requirement: a single value, or a list of acceptable values."""
    if isinstance(raw, list):
        return AnyOf(frozenset(decode_value(item) for item in raw))
    return Single(decode_value(raw))


def requirement_to_toml(requirement: Requirement) -> bool | str | list[bool | str]:
    if isinstance(requirement, AnyOf):
        return [v.to_toml() for v in sorted(requirement.values)]
    return requirement.value.to_toml()
