"""Shared CLI utilities for s4 commands.

Provides the common Typer options for editing a build's setting, helpers
to locate the current workspace or build and load the matching config, and
standardised output / error helpers so every command reports errors the
same way.

Usage in a command::

    import typer
    from s4.cli import error_exit, load_build

    app = typer.Typer()

    @app.callback(invoke_without_command=True)
    def main() -> None:
        try:
            context, config = load_build()
        except S4Error as exc:
            error_exit(str(exc))
        ...
"""

from __future__ import annotations

import json
from typing import Any, NoReturn

import typer
from rich.console import Console

from s4.cmake import easy_settings
from s4.config import Config
from s4.errors import FilesystemConflictError, InvalidValueError, ParseError
from s4.project import Project
from s4.setting import FlagId, Setting
from s4.value import Value
from s4.workspace import BuildContext, Context, find_context, workspace_of

# Re-usable Typer options for setting edits
EnableOption: list[str] | None = typer.Option(
    None, "--enable", "-e", help="Turn a flag on (repeatable).", show_default=False
)
DisableOption: list[str] | None = typer.Option(
    None, "--disable", "-d", help="Turn a flag off (repeatable).", show_default=False
)
SetOption: list[str] | None = typer.Option(
    None, "--set", "-s", help="Assign FLAG=VALUE (repeatable).", show_default=False
)


# ---------------------------------------------------------------------------
# Standardised output helpers
# ---------------------------------------------------------------------------

_err_console = Console(stderr=True)


def error_exit(msg: str, *, json_mode: bool = False, code: int = 1) -> NoReturn:
    """Print *msg* as an error and ``raise typer.Exit(code)``."""
    if json_mode:
        print(json.dumps({"error": msg}, indent=2))
    else:
        _err_console.print(f"[red bold]error:[/red bold] {msg}", highlight=False)
    raise typer.Exit(code=code)


def json_print(data: dict[str, Any] | list[Any]) -> None:
    """Print *data* as pretty-printed JSON to stdout."""
    print(json.dumps(data, indent=2))


# ---------------------------------------------------------------------------
# Context and config loading
# ---------------------------------------------------------------------------


def require_context() -> Context:
    """The workspace or build enclosing the current directory."""
    context = find_context()
    if context is None:
        raise FilesystemConflictError(
            "Not inside an s4 workspace. Run 's4 init PROJECT' to create one."
        )
    return context


def load_config(context: Context) -> Config:
    """Config for *context*: overrides from its workspace plus easy-settings flags."""
    workspace = workspace_of(context)
    config = Config.load(workspace.workspace_root)
    return config.with_flags(easy_settings(workspace))


def load_context() -> tuple[Context, Config]:
    context = require_context()
    return context, load_config(context)


def load_build() -> tuple[BuildContext, Config]:
    """Like :func:`load_context` but the current directory must be in a build."""
    context = require_context()
    if not isinstance(context, BuildContext):
        raise FilesystemConflictError(
            "Not inside a build directory. Run 's4 configure' to create one.",
            context={"workspace": context.workspace_root},
        )
    return context, load_config(context)


# ---------------------------------------------------------------------------
# Setting edits from the command line
# ---------------------------------------------------------------------------


def editable_flags(project: Project, context: Context) -> set[FlagId]:
    """Flags the user may change: the project's command-line flags and easy settings."""
    return set(project.command_line) | set(easy_settings(workspace_of(context)))


def parse_assignment(text: str) -> tuple[str, str]:
    """Split ``FLAG=VALUE``."""
    flag, sep, value = text.partition("=")
    flag = flag.strip()
    if not sep or not flag:
        raise ParseError(f"Malformed assignment: {text}", context={"expected": "FLAG=VALUE"})
    return flag, value.strip()


def coerce_value(config: Config, flag_id: str, text: str) -> Value:
    """Turn command-line text into a value following the flag's type hint.

    Untyped flags read ``true``/``false`` as booleans and anything else as text.
    """
    flag = config.flag(flag_id)
    flag_type = flag.type if flag is not None else None
    lowered = text.lower()
    if flag_type == "string":
        return Value.text(text)
    if lowered in ("true", "on", "yes", "1") and flag_type == "bool":
        return Value.boolean(True)
    if lowered in ("false", "off", "no", "0") and flag_type == "bool":
        return Value.boolean(False)
    if flag_type == "bool":
        raise InvalidValueError(
            f"Flag {flag_id} expects a boolean, got {text!r}", context={"flag": flag_id}
        )
    if lowered in ("true", "false"):
        return Value.boolean(lowered == "true")
    return Value.text(text)


def setting_edits(
    config: Config,
    allowed: set[FlagId],
    enable: list[str] | None,
    disable: list[str] | None,
    assignments: list[str] | None,
) -> Setting:
    """Build the setting described by ``-e``/``-d``/``-s`` options.

    Options apply in that order, so a later ``--set`` wins over an
    ``--enable`` of the same flag.
    """
    edits = Setting()
    switched = [*(enable or []), *(disable or [])]
    for flag_id in switched:
        flag = config.flag(flag_id)
        if flag is not None and flag.type == "string":
            raise InvalidValueError(
                f"Flag {flag_id} holds text; use --set {flag_id}=VALUE",
                context={"flag": flag_id},
            )
    changes: list[tuple[str, Value]] = [(f, Value.boolean(True)) for f in enable or []]
    changes += [(f, Value.boolean(False)) for f in disable or []]
    for text in assignments or []:
        flag_id, raw = parse_assignment(text)
        changes.append((flag_id, coerce_value(config, flag_id, raw)))

    for flag_id, value in changes:
        if FlagId(flag_id) not in allowed:
            raise InvalidValueError(
                f"Flag {flag_id} cannot be set from the command line",
                context={"allowed": ", ".join(sorted(allowed))},
            )
        edits.set(flag_id, value)
    return edits
