"""Run the current build on machine-queue hardware.

Usage:
    s4 run [--system NAME]
"""

import typer

from s4.apps import Apps
from s4.cli import error_exit, load_build
from s4.errors import S4Error
from s4.mq import mq_run

app = typer.Typer(
    help="Run the current build on hardware via mq.sh.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

s4 run                                 Try matching pools, then systems

s4 run --system tx2a                   Run on one named system

[bold]How systems are picked:[/bold]

Pools whose every member matches the build's platform (and variation) are
tried first, then the matching systems, in order, until one run succeeds.

[dim]Requires mq.sh on PATH and a finished build (images/ directory).[/dim]""",
)


@app.callback(invoke_without_command=True)
def main(
    system: str | None = typer.Option(
        None, "--system", "-s", help="Run on this system or pool instead of matching."
    ),
) -> None:
    """Run the build's images under the machine queue."""
    try:
        context, config = load_build()
        project = config.project(context.project)
        used = mq_run(context, project, config, Apps(config.defaults), system=system)
    except S4Error as exc:
        error_exit(str(exc))

    typer.secho(f"Run on {used} succeeded", fg=typer.colors.GREEN)


def main_entry() -> None:
    """Run the run CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
