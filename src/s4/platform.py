"""Platforms, their variations, and seL4 architectures."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import NewType

from s4.errors import ParseError
from s4.merge import merge_into
from s4.setting import Setting

PlatformId = NewType("PlatformId", str)
VariationId = NewType("VariationId", str)


class Family(Enum):
    """Coarse architecture family."""

    ARM = "arm"
    RISCV = "riscv"
    X86 = "x86"

    def __str__(self) -> str:
        return self.value


class Architecture(Enum):
    """seL4 architecture tokens."""

    AARCH32 = "aarch32"
    AARCH64 = "aarch64"
    RISCV32 = "riscv32"
    RISCV64 = "riscv64"
    IA32 = "ia32"
    X86_64 = "x86_64"

    @classmethod
    def parse(cls, token: str) -> Architecture:
        """Parse an architecture token, accepting the usual aliases."""
        token = _ARCH_ALIASES.get(token, token)
        try:
            return cls(token)
        except ValueError:
            raise ParseError(
                f"Invalid seL4 architecture: {token}",
                context={"expected": ", ".join(a.value for a in cls)},
            ) from None

    @property
    def family(self) -> Family:
        return _FAMILIES[self]

    def __str__(self) -> str:
        return self.value


_ARCH_ALIASES = {
    "arm_hyp": "aarch32",
    "amd64": "x86_64",
    "X64": "x86_64",
}

_FAMILIES = {
    Architecture.AARCH32: Family.ARM,
    Architecture.AARCH64: Family.ARM,
    Architecture.RISCV32: Family.RISCV,
    Architecture.RISCV64: Family.RISCV,
    Architecture.IA32: Family.X86,
    Architecture.X86_64: Family.X86,
}


@dataclass
class Variation:
    """A more specific version of a platform with its own settings."""

    name: VariationId
    setting: Setting = field(default_factory=Setting)

    def merge(self, other: Variation) -> None:
        self.setting.merge(other.setting)


@dataclass
class Platform:
    """A hardware platform known to the seL4 build system."""

    name: PlatformId
    architectures: set[Architecture] = field(default_factory=set)
    variations: dict[VariationId, Variation] = field(default_factory=dict)
    setting: Setting = field(default_factory=Setting)

    def variation(self, variation_id: str) -> Variation | None:
        return self.variations.get(VariationId(variation_id))

    def supports(self, architecture: Architecture) -> bool:
        return architecture in self.architectures

    def merge(self, other: Platform) -> None:
        self.architectures |= other.architectures
        merge_into(self.variations, other.variations)
        self.setting.merge(other.setting)


_PLATFORM_KEYS = {"architectures", "variation", "variant"}


def parse_platform(name: str, raw: Mapping[str, object]) -> Platform:
    """Build a :class:`Platform` from its ``[platform.<name>]`` table.

    Keys other than ``architectures`` and ``variation`` are setting entries.
    """
    if not isinstance(raw, Mapping):
        raise ParseError(f"Platform {name} must be a table", context={"platform": name})

    arches_raw = raw.get("architectures", [])
    if not isinstance(arches_raw, list):
        raise ParseError(
            f"Platform {name}: 'architectures' must be a list", context={"platform": name}
        )
    architectures = {Architecture.parse(str(token)) for token in arches_raw}

    variations: dict[VariationId, Variation] = {}
    for key in ("variation", "variant"):
        table = raw.get(key, {})
        if not isinstance(table, Mapping):
            raise ParseError(
                f"Platform {name}: '{key}' must be a table of variations",
                context={"platform": name},
            )
        for var_name, var_raw in table.items():
            if not isinstance(var_raw, Mapping):
                raise ParseError(
                    f"Platform {name}: variation {var_name} must be a table",
                    context={"platform": name, "variation": var_name},
                )
            variation = Variation(VariationId(var_name), Setting.from_mapping(var_raw))
            merge_into(variations, {variation.name: variation})

    setting = Setting.from_mapping({k: v for k, v in raw.items() if k not in _PLATFORM_KEYS})
    return Platform(PlatformId(name), architectures, variations, setting)


def parse_choice(choice: str) -> tuple[PlatformId, VariationId | None]:
    """Parse ``platform`` or ``platform:variation``."""
    parts = choice.split(":")
    if len(parts) == 1 and parts[0]:
        return PlatformId(parts[0]), None
    if len(parts) == 2 and all(parts):
        return PlatformId(parts[0]), VariationId(parts[1])
    raise ParseError(f"Malformed platform choice: {choice}")


def format_choice(platform: str, variation: str | None) -> str:
    return platform if variation is None else f"{platform}:{variation}"
