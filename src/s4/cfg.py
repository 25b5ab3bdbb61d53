"""s4 cfg: inspect the merged configuration.

The configuration is the built-in catalog with every override file applied
(home directory, config directory, then the current workspace) plus the
workspace's easy-settings flags.

Usage::

    s4 cfg platforms
    s4 cfg projects
    s4 cfg flags
    s4 cfg resolve sel4test pc99:haswell x86_64
    s4 cfg check
    s4 cfg files
"""

import typer

from s4.cli import error_exit, json_print, load_build, load_config
from s4.config import Config, override_files
from s4.errors import S4Error
from s4.platform import Architecture, parse_choice
from s4.workspace import find_context, workspace_of

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _current_config() -> Config:
    """Config for the enclosing workspace, or the user-level config outside one."""
    context = find_context()
    if context is None:
        return Config.load()
    return load_config(context)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="Inspect the s4 configuration.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]
  s4 cfg platforms                         List platforms and variations
  s4 cfg projects                          List projects and their repositories
  s4 cfg flags                             List flags and their requirements
  s4 cfg resolve sel4test tx2 aarch64      Show the resolved setting and cmake args
  s4 cfg check                             Validate the current build's setting
  s4 cfg files                             Show which override files are loaded

[dim]Override files are .s4, .s4.toml or s4.toml in your home directory,
$XDG_CONFIG_HOME (or ~/.config), and the workspace root.[/dim]""",
)


@app.command("platforms")
def platforms() -> None:
    """List every platform with its architectures and variations."""
    try:
        config = _current_config()
    except S4Error as exc:
        error_exit(str(exc))
    for name in sorted(config.platforms):
        platform = config.platforms[name]
        archs = ", ".join(sorted(a.value for a in platform.architectures)) or "any"
        typer.echo(f"  {name}  ({archs})")
        for variation in sorted(platform.variations):
            typer.secho(f"      :{variation}", dim=True)


@app.command("projects")
def projects() -> None:
    """List every project with its repository and command-line flags."""
    try:
        config = _current_config()
    except S4Error as exc:
        error_exit(str(exc))
    for name in sorted(config.projects):
        project = config.projects[name]
        repository = str(project.repository) if project.repository else "-"
        typer.echo(f"  {name}  ({repository})")
        if project.command_line:
            typer.secho(f"      flags: {', '.join(sorted(project.command_line))}", dim=True)


@app.command("flags")
def flags() -> None:
    """List every flag with its CMake variable and requirements."""
    try:
        config = _current_config()
    except S4Error as exc:
        error_exit(str(exc))
    for name in sorted(config.flags):
        flag = config.flags[name]
        variable = f" -> {flag.variable}" if flag.variable else ""
        typer.echo(f"  {name}{variable}")
        if flag.description:
            typer.secho(f"      {flag.description}", dim=True)
        if flag.requires:
            typer.secho(f"      requires {flag.describe_requirements()}", dim=True)


@app.command("resolve")
def resolve(
    project: str = typer.Argument(..., help="Project name."),
    choice: str = typer.Argument(..., help="PLATFORM or PLATFORM:VARIATION."),
    arch: str = typer.Argument(..., help="seL4 architecture."),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
) -> None:
    """Print the setting a build would get, and whether it is valid."""
    try:
        config = _current_config()
        platform_id, variation_id = parse_choice(choice)
        setting = config.platform_setting(
            project, platform_id, variation_id, Architecture.parse(arch)
        )
    except S4Error as exc:
        error_exit(str(exc), json_mode=json_output)

    problem = None
    try:
        config.check_setting(setting)
    except S4Error as exc:
        problem = str(exc)

    if json_output:
        json_print(
            {
                "setting": setting.to_toml(),
                "cmake_args": config.cmake_args(setting),
                "valid": problem is None,
                "error": problem,
            }
        )
        return

    for flag_id, value in setting.flags():
        typer.echo(f"  {flag_id} = {value}")
    typer.secho(f"\n  cmake {' '.join(config.cmake_args(setting))}", dim=True)
    if problem is not None:
        typer.secho(f"\n{problem}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command("check")
def check() -> None:
    """Validate the current build's saved setting against the flag catalog."""
    try:
        context, config = load_build()
        config.check_setting(context.setting)
    except S4Error as exc:
        error_exit(str(exc))
    typer.secho(f"Setting is valid: {context.setting}", fg=typer.colors.GREEN)


@app.command("files")
def files() -> None:
    """List the override files that are applied, in order."""
    try:
        context = find_context()
    except S4Error as exc:
        error_exit(str(exc))
    root = workspace_of(context).workspace_root if context is not None else None
    found = override_files(root)
    if not found:
        typer.echo("No override files; using the built-in configuration.")
        return
    for path in found:
        typer.echo(f"  {path}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main_entry() -> None:
    app()


if __name__ == "__main__":
    main_entry()
