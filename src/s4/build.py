"""Run ninja for the current build inside the build container."""

import typer

from s4.apps import Apps
from s4.cli import error_exit, load_build
from s4.cmake import build
from s4.errors import S4Error

app = typer.Typer(
    help="Build the current build directory.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

s4 build                               Build everything

s4 build -- -j4 kernel.elf             Pass arguments through to ninja

[dim]Run from inside a build directory created by 's4 configure'.[/dim]""",
)


@app.callback(invoke_without_command=True)
def main(
    args: list[str] | None = typer.Argument(None, help="Extra arguments for ninja."),
) -> None:
    """Run ninja in /build."""
    try:
        context, config = load_build()
        build(context, Apps(config.defaults), args or [])
    except S4Error as exc:
        error_exit(str(exc))


def main_entry() -> None:
    """Run the build CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
