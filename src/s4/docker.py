"""s4 docker: work with the build container directly.

Usage::

    s4 docker shell
    s4 docker pull
"""

import typer

from s4.apps import Apps, docker_for, run_command
from s4.cli import error_exit, load_config
from s4.config import Config
from s4.errors import S4Error
from s4.workspace import find_context

app = typer.Typer(
    help="Use the build container directly.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]
  s4 docker shell                          Interactive shell in the container
  s4 docker shell -- make -C /build        Run one command in the container
  s4 docker pull                           Update the container image

[dim]The current directory is mounted at /host, the workspace at /workspace
and, inside a build directory, the build at /build.[/dim]""",
)


@app.command("shell")
def shell(
    command: list[str] | None = typer.Argument(
        None, help="Command to run instead of an interactive bash."
    ),
) -> None:
    """Start a shell (or run a command) in the build container."""
    try:
        context = find_context()
        if context is None:
            apps = Apps(Config.load().defaults)
            container = apps.container()
        else:
            apps = Apps(load_config(context).defaults)
            container = docker_for(context, apps)
        program, *args = command or ["bash"]
        code = run_command(container.run_command(program, *args))
    except S4Error as exc:
        error_exit(str(exc))
    raise typer.Exit(code=code)


@app.command("pull")
def pull() -> None:
    """Pull the configured container image."""
    try:
        context = find_context()
        config = Config.load() if context is None else load_config(context)
        Apps(config.defaults).pull()
    except S4Error as exc:
        error_exit(str(exc))
    typer.secho(f"Updated {config.defaults.docker_image_name()}", fg=typer.colors.GREEN)


def main_entry() -> None:
    app()


if __name__ == "__main__":
    main_entry()
