"""Wrapper for CMake and ninja invocations inside the build container.

The workspace is mounted at ``/workspace`` and the build directory at
``/build``.  Before every cmake run the build's setting is validated against
the flag catalog and saved back to the build marker, so the marker always
reflects what was last handed to CMake.

Projects may ship an ``easy-settings.cmake`` (linked into the workspace
root) that declares user-facing CMake options::

    set(RELEASE OFF CACHE BOOL "Performance optimized build")

Those declarations become extra catalog flags (``release``) and also tell
s4 where the project's CMake source directory is.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from s4.apps import BUILD_DOCKER_DIR, WORKSPACE_DOCKER_DIR, Apps, docker_for, run_command
from s4.config import Config
from s4.errors import ExternalFailureError, NotFoundError
from s4.flags import Flag
from s4.project import Project
from s4.setting import FlagId
from s4.utils import relative_path
from s4.workspace import CACHE_SUBDIR, BuildContext, Context

EASY_SETTINGS = "easy-settings.cmake"
CMAKE_CACHE_FILE = "settings.cmake"

_SETTING_MATCH = re.compile(
    r'^set\((?P<variable>[A-Za-z][A-Za-z0-9_]*)( [^ ]+){2} (?P<type>[A-Z]+) "(?P<description>[^"]*)"\)$'
)

_CMAKE_TYPES = {"STRING": "string", "BOOL": "bool"}


def flag_id_for(variable: str) -> FlagId:
    """``SCREAMING_SNAKE`` -> ``screaming-snake``, ``PascalCase`` -> ``pascal-case``."""
    if variable.upper() == variable:
        return FlagId(variable.lower().replace("_", "-"))
    out = []
    for i, c in enumerate(variable):
        if c.isupper() and i > 0:
            out.append("-")
        out.append(c.lower())
    return FlagId("".join(out))


def parse_easy_settings(text: str) -> dict[FlagId, Flag]:
    flags: dict[FlagId, Flag] = {}
    for line in text.splitlines():
        m = _SETTING_MATCH.match(line.strip())
        if m is None:
            continue
        flag_id = flag_id_for(m["variable"])
        flags[flag_id] = Flag(
            name=flag_id,
            description=m["description"],
            variable=m["variable"],
            type=_CMAKE_TYPES.get(m["type"]),
        )
    return flags


def easy_settings(context: Context) -> dict[FlagId, Flag]:
    """Flags declared by the workspace's ``easy-settings.cmake``, if any."""
    path = context.workspace_root / EASY_SETTINGS
    if not path.is_file():
        return {}
    return parse_easy_settings(path.read_text(encoding="utf-8"))


def inferred_source(context: Context) -> PurePosixPath:
    """Source directory holding the (linked) ``easy-settings.cmake``."""
    hint = context.workspace_root / EASY_SETTINGS
    if not hint.exists():
        raise NotFoundError("Could not infer source directory", context={"missing": hint})
    return PurePosixPath(relative_path(context.workspace_root, hint.resolve().parent).as_posix())


def source_directory(project: Project, context: Context) -> PurePosixPath:
    if project.source_directory is not None:
        return project.source_directory
    return inferred_source(context)


def cmake_command(context: BuildContext, apps: Apps, config: Config) -> list[str]:
    """Validate and save the build setting, then start a cmake command line."""
    config.check_setting(context.setting)
    context.save()
    container = docker_for(context, apps).in_dir(BUILD_DOCKER_DIR)
    return container.run_command("cmake", *config.cmake_args(context.setting))


def init_build_command(
    project: Project, context: BuildContext, apps: Apps, config: Config
) -> list[str]:
    source = WORKSPACE_DOCKER_DIR / source_directory(project, context)
    cmd = cmake_command(context, apps, config)
    cmd += ["-G", "Ninja"]
    cmd.append(f"-DSEL4_CACHE_DIR={WORKSPACE_DOCKER_DIR / CACHE_SUBDIR}")
    cmd += ["-B", str(BUILD_DOCKER_DIR)]
    cmd += ["-S", str(source)]
    cmd += ["-C", str(source / CMAKE_CACHE_FILE)]
    return cmd


def update_build_command(context: BuildContext, apps: Apps, config: Config) -> list[str]:
    return cmake_command(context, apps, config) + [str(BUILD_DOCKER_DIR)]


def ninja_command(context: BuildContext, apps: Apps, args: list[str] | None = None) -> list[str]:
    container = docker_for(context, apps).in_dir(BUILD_DOCKER_DIR)
    return container.run_command("ninja", *(args or []))


def init_build(project: Project, context: BuildContext, apps: Apps, config: Config) -> None:
    """Generate a fresh Ninja build in the build directory."""
    if run_command(init_build_command(project, context, apps, config)) != 0:
        raise ExternalFailureError(
            "CMake failed to configure the build", context={"build": context.build_root}
        )


def update_build(context: BuildContext, apps: Apps, config: Config) -> None:
    """Re-run cmake on an already configured build directory."""
    if run_command(update_build_command(context, apps, config)) != 0:
        raise ExternalFailureError(
            "CMake failed to update the build", context={"build": context.build_root}
        )


def build(context: BuildContext, apps: Apps, args: list[str] | None = None) -> None:
    if run_command(ninja_command(context, apps, args)) != 0:
        raise ExternalFailureError("Build failed", context={"build": context.build_root})
