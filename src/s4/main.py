"""main.py – Umbrella CLI entry point for s4.

Each command lives in its own module with its own Typer app.  They are
imported here one by one; a module that fails to import is replaced by a
stub that reports the import error, and the other commands keep working.

``init``, ``configure``, ``update``, ``build``, ``run`` and ``status`` take
their arguments directly, so their callbacks are registered as plain
commands.  ``cfg`` and ``docker`` have subcommands and are added as groups.
"""

import importlib
import sys
from collections.abc import Callable

import typer

from s4 import __version__

app = typer.Typer(
    help="Set up and drive seL4 build environments.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Typical workflow:[/bold]
  s4 init sel4test                       Create a workspace and check out sources
  cd sel4test
  s4 configure pc99 x86_64 build         Resolve settings and generate a build
  cd build
  s4 build                               Compile inside the build container
  s4 run                                 Run on machine-queue hardware

[dim]Settings are layered: platform, variation, architecture, then project.
Run 's4 cfg flags' to see the available flags, or 's4 <cmd> --help' for details.[/dim]""",
)

# ---------------------------------------------------------------------------
# Subcommand registry
# ---------------------------------------------------------------------------

# Single-command modules – registered as flat commands via app.command().
_SINGLE_COMMANDS: list[tuple[str, str, str]] = [
    ("init", "s4.init", "Create a new workspace for a project."),
    ("configure", "s4.configure", "Create and configure a build directory."),
    ("update", "s4.update", "Update the setting of the current build."),
    ("build", "s4.build", "Build the current build directory."),
    ("run", "s4.run", "Run the current build on hardware via mq.sh."),
    ("status", "s4.status", "Show the current workspace and its builds."),
]

# Multi-command modules – registered as groups via app.add_typer().
_MULTI_COMMANDS: list[tuple[str, str, str]] = [
    ("cfg", "s4.cfg", "Inspect the s4 configuration."),
    ("docker", "s4.docker", "Use the build container directly."),
]


def _make_stub_cmd(mod_name: str, err: ImportError) -> Callable[[], None]:
    """Create a stub command function that reports a module that failed to load."""

    def _stub() -> None:
        print(f"Error: could not load '{mod_name}': {err}", file=sys.stderr)
        raise typer.Exit(code=1)

    return _stub


def _make_stub_app(mod_name: str, err: ImportError) -> typer.Typer:
    """Create a stub Typer app that reports a module that failed to load."""
    stub = typer.Typer(help=f"[unavailable] {mod_name}")

    @stub.callback(invoke_without_command=True)
    def _stub_main() -> None:
        print(f"Error: could not load '{mod_name}': {err}", file=sys.stderr)
        raise typer.Exit(code=1)

    return stub


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"s4 {__version__}")
        raise typer.Exit()


@app.callback()
def _root(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    pass


# Register single-command modules as flat commands.
for _name, _module, _help in _SINGLE_COMMANDS:
    try:
        _mod = importlib.import_module(_module)
        _epilog = getattr(_mod.app.info, "epilog", None)
        if not isinstance(_epilog, str):
            _epilog = None
        app.command(name=_name, help=_help, epilog=_epilog)(_mod.main)
    except ImportError as _exc:
        app.command(name=_name, help=f"[unavailable] {_help}")(_make_stub_cmd(_module, _exc))

# Register multi-command modules as groups (Typer sub-apps).
for _name, _module, _help in _MULTI_COMMANDS:
    try:
        _mod = importlib.import_module(_module)
        app.add_typer(_mod.app, name=_name, help=_help)
    except ImportError as _exc:
        app.add_typer(_make_stub_app(_module, _exc), name=_name, help=f"[unavailable] {_help}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
