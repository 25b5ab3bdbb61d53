"""Change the setting of the current build and re-run cmake.

Usage:
    s4 update [-e FLAG] [-d FLAG] [-s FLAG=VALUE] [--no-cmake]
"""

import typer

from s4.apps import Apps
from s4.cli import (
    DisableOption,
    EnableOption,
    SetOption,
    editable_flags,
    error_exit,
    load_build,
    setting_edits,
)
from s4.cmake import update_build
from s4.errors import S4Error

app = typer.Typer(
    help="Update the setting of the current build.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

s4 update -e release                   Turn on a flag and reconfigure

s4 update -d mcs -s arm-hyp=false      Several edits at once

s4 update                              Re-run cmake with the saved setting

[dim]Run from inside a build directory.  Edits are validated and saved to
.s4-build.toml before cmake runs.[/dim]""",
)


@app.callback(invoke_without_command=True)
def main(
    enable: list[str] | None = EnableOption,
    disable: list[str] | None = DisableOption,
    assign: list[str] | None = SetOption,
    no_cmake: bool = typer.Option(
        False, "--no-cmake", help="Validate and save the setting without running cmake."
    ),
) -> None:
    """Merge setting edits into the current build and regenerate it."""
    try:
        context, config = load_build()
        project = config.project(context.project)
        edits = setting_edits(
            config, editable_flags(project, context), enable, disable, assign
        )
        context.update_setting(edits)

        if no_cmake:
            config.check_setting(context.setting)
            context.save()
        else:
            update_build(context, Apps(config.defaults), config)
    except S4Error as exc:
        error_exit(str(exc))

    typer.secho(f"Setting: {context.setting}", fg=typer.colors.GREEN)


def main_entry() -> None:
    """Run the update CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
