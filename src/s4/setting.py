"""Settings: the mapping from flag identifiers to values.

A :class:`Setting` is the only structure in s4 that changes after it is
built, and it only changes through :meth:`Setting.merge` or the explicit
``set_*`` helpers.  Iteration is always in lexicographic flag order so that
saved marker files and generated command lines are reproducible.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import NewType

from s4.merge import merge_into
from s4.value import FALSE, Value, decode_value

FlagId = NewType("FlagId", str)


@dataclass
class Setting:
    """Values for a set of flags."""

    values: dict[FlagId, Value] = field(default_factory=dict)

    PLATFORM_FLAG = FlagId("platform")
    KERNEL_PLATFORM_FLAG = FlagId("kernel-platform")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, object]) -> Setting:
        """Decode flattened document entries (``flag = true`` / ``flag = "text"``)."""
        return cls({FlagId(str(key)): decode_value(value) for key, value in raw.items()})

    def flags(self) -> Iterator[tuple[FlagId, Value]]:
        """All assigned flags, in lexicographic order."""
        for flag_id in sorted(self.values):
            yield flag_id, self.values[flag_id]

    def flag(self, flag_id: str) -> Value:
        """The value of a flag; unset flags read as ``false``."""
        return self.values.get(FlagId(flag_id), FALSE)

    def set(self, flag_id: str, value: Value) -> None:
        self.values[FlagId(flag_id)] = value

    def set_bool(self, flag_id: str, value: bool) -> None:
        self.set(flag_id, Value.boolean(value))

    def set_text(self, flag_id: str, value: str) -> None:
        self.set(flag_id, Value.text(value))

    def set_platform(self, platform: str) -> None:
        self.set_text(self.PLATFORM_FLAG, platform)

    def set_kernel_platform(self, platform: str) -> None:
        self.set_text(self.KERNEL_PLATFORM_FLAG, platform)

    def merge(self, other: Setting) -> None:
        """Apply *other* on top of this setting; *other* wins on conflict."""
        merge_into(self.values, other.values)

    def copy(self) -> Setting:
        return Setting(dict(self.values))

    def to_toml(self) -> dict[str, bool | str]:
        return {flag_id: value.to_toml() for flag_id, value in self.flags()}

    def __contains__(self, flag_id: object) -> bool:
        return flag_id in self.values

    def __len__(self) -> int:
        return len(self.values)

    def __str__(self) -> str:
        if not self.values:
            return "{}"
        return "{ " + ", ".join(f"{k}: {v}" for k, v in self.flags()) + " }"
