"""Flag catalog entries and dependency validation.

A flag's ``requires`` list is a disjunction of conjunctions: the flag may be
turned on when *any* of its requirement maps has *all* of its entries
satisfied by the current setting.  Turning a gated flag off never needs a
justification, and gated flags only accept boolean values.

Validation is a single pass over a finished setting; it does not follow a
dependency's own requirements.  Those are checked only because the
dependency is itself present in the setting and visited in the same pass.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from s4.errors import InvalidValueError, ParseError, UnsatisfiedError
from s4.merge import merge, merge_unique
from s4.setting import FlagId, Setting
from s4.value import FALSE, TRUE, Requirement, Value, decode_requirement, requirement_to_toml

FLAG_TYPES = ("bool", "string")


@dataclass
class Flag:
    """Definition of one build option."""

    name: FlagId
    description: str | None = None
    # CMake variable set from this flag, if any
    variable: str | None = None
    requires: list[dict[FlagId, Requirement]] = field(default_factory=list)
    # Optional hint used when parsing command-line assignments
    type: str | None = None

    def validate(self, setting: Setting, value: Value) -> None:
        """Check that this flag may hold *value* given the rest of *setting*."""
        if not self.requires:
            return
        if value == TRUE:
            self._check_requirements(setting)
        elif value == FALSE:
            return
        else:
            raise InvalidValueError(
                f"Cannot set flag {self.name} with requirements to non-boolean value: {value}",
                context={"flag": self.name, "value": value},
            )

    def _check_requirements(self, setting: Setting) -> None:
        satisfied = any(
            all(requirement.check(setting.flag(dep)) for dep, requirement in conjunction.items())
            for conjunction in self.requires
        )
        if not satisfied:
            raise UnsatisfiedError(
                f"None of the requirement sets for the flag {self.name} could be satisfied",
                context={"flag": self.name, "requires": self.describe_requirements()},
            )

    def describe_requirements(self) -> str:
        """Human-readable rendering, e.g. ``(a=true & b=x) | (c=true)``."""
        groups = []
        for conjunction in self.requires:
            terms = " & ".join(f"{dep}={req}" for dep, req in sorted(conjunction.items()))
            groups.append(f"({terms})")
        return " | ".join(groups)

    def cmake_arg(self, value: Value) -> str | None:
        if self.variable is None:
            return None
        return f"-D{self.variable}={value.cmake_str()}"

    def merge(self, other: Flag) -> None:
        self.description = merge(self.description, other.description)
        self.variable = merge(self.variable, other.variable)
        self.type = merge(self.type, other.type)
        merge_unique(self.requires, other.requires)

    def to_toml(self) -> dict[str, object]:
        doc: dict[str, object] = {}
        if self.description is not None:
            doc["description"] = self.description
        if self.variable is not None:
            doc["variable"] = self.variable
        if self.type is not None:
            doc["type"] = self.type
        if self.requires:
            doc["requires"] = [
                {dep: requirement_to_toml(req) for dep, req in sorted(conj.items())}
                for conj in self.requires
            ]
        return doc


def parse_flag(name: str, raw: Mapping[str, object]) -> Flag:
    """Build a :class:`Flag` from its ``[flag.<name>]`` table."""
    if not isinstance(raw, Mapping):
        raise ParseError(f"Flag {name} must be a table", context={"flag": name})

    requires_raw = raw.get("requires", [])
    if isinstance(requires_raw, Mapping):
        requires_raw = [requires_raw]
    if not isinstance(requires_raw, list):
        raise ParseError(
            f"Flag {name}: 'requires' must be a list of tables", context={"flag": name}
        )

    requires: list[dict[FlagId, Requirement]] = []
    for conjunction in requires_raw:
        if not isinstance(conjunction, Mapping):
            raise ParseError(
                f"Flag {name}: each requirement set must be a table", context={"flag": name}
            )
        decoded = {FlagId(str(dep)): decode_requirement(req) for dep, req in conjunction.items()}
        if decoded not in requires:
            requires.append(decoded)

    flag_type = raw.get("type")
    if flag_type is not None and flag_type not in FLAG_TYPES:
        raise ParseError(
            f"Flag {name}: unknown type {flag_type!r} (expected one of {', '.join(FLAG_TYPES)})",
            context={"flag": name},
        )

    description = raw.get("description")
    variable = raw.get("variable")
    return Flag(
        name=FlagId(name),
        description=None if description is None else str(description),
        variable=None if variable is None else str(variable),
        requires=requires,
        type=None if flag_type is None else str(flag_type),
    )


def check_setting(flags: Mapping[FlagId, Flag], setting: Setting) -> None:
    """Validate every assigned flag that the catalog knows about.

    Flags missing from the catalog are skipped.
    """
    for flag_id, value in setting.flags():
        flag = flags.get(flag_id)
        if flag is not None:
            flag.validate(setting, value)


def cmake_args(flags: Mapping[FlagId, Flag], setting: Setting) -> list[str]:
    """``-D`` arguments for every assigned flag backed by a CMake variable."""
    args = []
    for flag_id, value in setting.flags():
        flag = flags.get(flag_id)
        if flag is None:
            continue
        arg = flag.cmake_arg(value)
        if arg is not None:
            args.append(arg)
    return args
