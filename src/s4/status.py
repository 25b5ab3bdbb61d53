"""status.py – Overview of the current workspace and its builds.

Prints the project, the workspace root and a table of every registered
build directory that still exists, marking the build the current directory
is in.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from s4.cli import error_exit, json_print, require_context
from s4.errors import S4Error
from s4.platform import format_choice
from s4.utils import relative_path
from s4.workspace import BuildContext, Context, workspace_of

# ---------------------------------------------------------------------------
# Data collection
# ---------------------------------------------------------------------------


def build_summary(build: BuildContext, workspace_root: Path) -> dict[str, object]:
    return {
        "path": relative_path(workspace_root, build.build_root).as_posix(),
        "platform": build.platform,
        "variation": build.variation,
        "architecture": build.architecture.value,
        "setting": build.setting.to_toml(),
    }


def collect_status(context: Context) -> dict[str, object]:
    """Everything ``s4 status`` reports, as plain data."""
    workspace = workspace_of(context)
    root = workspace.workspace_root
    current = None
    if isinstance(context, BuildContext):
        current = relative_path(root, context.build_root).as_posix()
    return {
        "project": workspace.project,
        "workspace": str(root.resolve()),
        "current_build": current,
        "builds": [build_summary(b, root) for b in workspace.builds()],
    }


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _render(console: Console, status: dict) -> None:
    title = Text(f"  {status['project']}  ", style="bold white on blue")

    tbl = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    tbl.add_column("")
    tbl.add_column("Build")
    tbl.add_column("Platform")
    tbl.add_column("Arch")
    tbl.add_column("Setting", style="dim")

    for build in status["builds"]:
        marker = "[green]*[/]" if build["path"] == status["current_build"] else ""
        setting = ", ".join(f"{k}={v}" for k, v in build["setting"].items())
        tbl.add_row(
            marker,
            build["path"],
            format_choice(build["platform"], build["variation"]),
            build["architecture"],
            setting,
        )

    count = len(status["builds"])
    subtitle = f"[bold]{count}[/] build{'s' if count != 1 else ''}  ·  {status['workspace']}"
    if not status["builds"]:
        body = Text("No builds yet. Run 's4 configure PLATFORM ARCH BUILD_DIR'.", style="dim")
        console.print(Panel(body, title=title, subtitle=subtitle, border_style="blue"))
        return
    console.print(Panel(tbl, title=title, subtitle=subtitle, border_style="blue"))


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="Show the current workspace and its builds.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

s4 status                              Rich overview of the workspace

s4 status --json                       Machine-readable JSON output

[dim]Registered builds whose directories were removed are not listed.[/dim]""",
)


@app.callback(invoke_without_command=True)
def main(
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
) -> None:
    """Print an overview of the enclosing workspace."""
    try:
        status = collect_status(require_context())
    except S4Error as exc:
        error_exit(str(exc), json_mode=json_output)

    if json_output:
        json_print(status)
        return

    console = Console()
    _render(console, status)


def main_entry() -> None:
    """Run the status CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
