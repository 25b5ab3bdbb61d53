"""Error hierarchy shared by every s4 module.

Library code raises these; only the CLI layer turns them into exit codes.
"""

from __future__ import annotations

from collections.abc import Mapping


class S4Error(Exception):
    """Base error carrying a message and the offending ids/paths."""

    context: dict[str, str]

    def __init__(self, message: str, *, context: Mapping[str, object] | None = None) -> None:
        super().__init__(message)
        self.context = {k: str(v) for k, v in (context or {}).items()}

    def __str__(self) -> str:
        parts = [super().__str__()]
        for key, value in self.context.items():
            if value:
                parts.append(f"  {key}: {value}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        return {
            "error": type(self).__name__,
            "message": self.args[0] if self.args else "",
            "context": dict(self.context),
        }


class NotFoundError(S4Error):
    """Unknown platform, variation, project or system; missing file."""


class UnsatisfiedError(S4Error):
    """No requirement set of a flag holds in the current setting."""


class InvalidValueError(S4Error):
    """A value cannot be assigned to a flag."""


class ParseError(S4Error):
    """Malformed identifier string or document."""


class FilesystemConflictError(S4Error):
    """Create target already in use, or a required marker file is missing."""


class ExternalFailureError(S4Error):
    """An external tool is missing, failed, or produced unreadable output."""
