"""Layered-override merging.

Configuration is built from layers (built-in document, user overrides,
platform, variation, architecture, project, command line).  Each layer is
folded onto the previous one with ``merge(current, other)``, where *other*
wins on conflict:

- ``None`` in *other* keeps the current value (optional scalars).
- Sets are unioned.
- Mappings merge key by key, recursing into values present on both sides.
- Objects with a ``merge`` method merge themselves in place.
- Anything else (strings, values, enums) is replaced by *other*.

Merging is order dependent: ``merge(a, b)`` and ``merge(b, a)`` differ
whenever both layers assign the same key.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


class Mergeable(Protocol):
    def merge(self, other: Any) -> None: ...


def merge(current: T, other: T | None) -> T:
    """Return *current* with the layer *other* applied on top."""
    if other is None:
        return current
    if current is None:
        return other
    if hasattr(current, "merge") and not isinstance(current, (str, bytes)):
        current.merge(other)  # type: ignore[attr-defined]
        return current
    if isinstance(current, (set, frozenset)):
        return current | other  # type: ignore[operator,return-value]
    if isinstance(current, MutableMapping):
        merge_into(current, other)  # type: ignore[arg-type]
        return current
    return other


def merge_into(current: MutableMapping[Any, Any], other: Mapping[Any, Any]) -> None:
    """Merge the mapping *other* into *current* in place."""
    for key, value in other.items():
        if key in current:
            current[key] = merge(current[key], value)
        else:
            current[key] = value


def merge_unique(current: list[T], other: list[T]) -> None:
    """Union two lists of unhashable items, keeping first-seen order."""
    for item in other:
        if item not in current:
            current.append(item)
