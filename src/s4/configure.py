"""Create a build directory for a platform and architecture.

Usage:
    s4 configure PLATFORM[:VARIATION] ARCH BUILD_DIR [-e FLAG] [-d FLAG] [-s FLAG=VALUE]
"""

from pathlib import Path

import typer

from s4.apps import Apps
from s4.cli import (
    DisableOption,
    EnableOption,
    SetOption,
    editable_flags,
    error_exit,
    load_context,
    setting_edits,
)
from s4.cmake import init_build
from s4.errors import S4Error
from s4.platform import Architecture, format_choice, parse_choice
from s4.workspace import BuildContext, workspace_of

app = typer.Typer(
    help="Create and configure a build directory.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

s4 configure pc99 x86_64 build-pc99              Resolve settings and run cmake

s4 configure pc99:haswell x86_64 build-hsw       Pick a platform variation

s4 configure tx2 aarch64 build-tx2 -e mcs        Turn on a command-line flag

s4 configure spike riscv64 b -s release=false    Assign a flag value

[bold]Setting resolution:[/bold]

platform, then variation, then architecture, then project; flags given on the
command line are applied last.  Only the project's command-line flags and the
workspace's easy-settings flags may be changed.

[dim]Run from inside a workspace.  The build directory must not exist or must be empty.[/dim]""",
)


@app.callback(invoke_without_command=True)
def main(
    choice: str = typer.Argument(..., help="PLATFORM or PLATFORM:VARIATION."),
    arch: str = typer.Argument(..., help="seL4 architecture (aarch32, x86_64, ...)."),
    build_dir: Path = typer.Argument(..., help="Build directory to create."),
    enable: list[str] | None = EnableOption,
    disable: list[str] | None = DisableOption,
    assign: list[str] | None = SetOption,
    no_cmake: bool = typer.Option(
        False, "--no-cmake", help="Only write the build marker; do not run cmake."
    ),
) -> None:
    """Resolve the build setting, create the build directory and run cmake."""
    try:
        context, config = load_context()
        workspace = workspace_of(context)
        project = config.project(workspace.project)

        platform_id, variation_id = parse_choice(choice)
        architecture = Architecture.parse(arch)
        platform = config.platform(platform_id)
        if platform.architectures and not platform.supports(architecture):
            supported = ", ".join(sorted(a.value for a in platform.architectures))
            error_exit(
                f"Platform {platform_id} does not support {architecture} (supported: {supported})"
            )

        edits = setting_edits(
            config, editable_flags(project, context), enable, disable, assign
        )
        # Reject an invalid combination before anything is written
        preview = config.platform_setting(project.name, platform_id, variation_id, architecture)
        preview.merge(edits)
        config.check_setting(preview)

        build = BuildContext.create(
            config, workspace, platform_id, variation_id, architecture, edits, build_dir
        )
        typer.secho(
            f"Configured {build_dir} for {format_choice(platform_id, variation_id)} "
            f"({architecture})",
            fg=typer.colors.GREEN,
        )
        typer.echo(f"Setting: {build.setting}")

        if not no_cmake:
            init_build(project, build, Apps(config.defaults), config)
    except S4Error as exc:
        error_exit(str(exc))


def main_entry() -> None:
    """Run the configure CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
