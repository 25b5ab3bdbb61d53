"""Create a new s4 workspace and check a project out into it.

Usage:
    s4 init PROJECT [DIRECTORY] [--no-sync]
"""

from pathlib import Path

import typer

from s4.apps import Apps
from s4.cli import error_exit
from s4.config import Config
from s4.errors import S4Error
from s4.workspace import CACHE_SUBDIR, WORKSPACE_FILENAME, WorkspaceContext

app = typer.Typer(
    help="Create a new workspace for a project.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

s4 init sel4test                       Check out sel4test into ./sel4test

s4 init camkes ~/src/camkes            Choose the workspace directory

s4 init sel4bench --no-sync            Only run 'repo init'

[bold]What it creates:[/bold]

.s4-workspace.toml     Workspace marker (project and registered builds)

.sel4_cache/           Shared cache used by every build of the workspace

[dim]The directory must not exist or must be empty.
Run 's4 cfg projects' to list the known projects.[/dim]""",
)


@app.callback(invoke_without_command=True)
def main(
    project: str = typer.Argument(..., help="Project to check out."),
    directory: Path | None = typer.Argument(
        None, help="Workspace directory (default: ./PROJECT).", show_default=False
    ),
    no_sync: bool = typer.Option(False, "--no-sync", help="Skip 'repo sync'."),
) -> None:
    """Create a workspace directory and fetch the project's sources."""
    path = directory if directory is not None else Path.cwd() / project

    try:
        config = Config.load()
        proj = config.project(project)
        if proj.repository is None:
            error_exit(f"Project {project} has no repository to check out")

        context = WorkspaceContext.create(proj.name, path)
        typer.secho(f"Created {path / WORKSPACE_FILENAME}", fg=typer.colors.GREEN)
        typer.secho(f"Created {path / CACHE_SUBDIR}/", fg=typer.colors.GREEN)

        apps = Apps(config.defaults)
        apps.repo_init(proj.repository, cwd=context.workspace_root)
        if not no_sync:
            apps.repo_sync(cwd=context.workspace_root)
    except S4Error as exc:
        error_exit(str(exc))

    typer.secho(f"\nWorkspace for {project} ready.", fg=typer.colors.CYAN, bold=True)
    typer.echo(f"cd {path} && s4 configure PLATFORM ARCH BUILD_DIR")


def main_entry() -> None:
    """Run the init CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
