"""Machine queue: pick hardware for a build and run it there.

``mq.sh system-tsv`` lists systems as a tab-separated table whose header row
names the columns; s4 reads the ``name`` and ``sel4_plat`` columns, the
latter written ``platform`` or ``platform:variation``.  ``mq.sh pool-tsv``
lists one pool per row: the pool name followed by its member systems.

A pool is a candidate when every one of its members matches the requested
platform (and variation, if one was requested).  Candidates are tried in
order, pools first, until one run succeeds.
"""

from __future__ import annotations

from pathlib import PurePosixPath

from s4.apps import Apps, capture_command, run_command
from s4.config import Config
from s4.errors import ExternalFailureError, NotFoundError
from s4.platform import Family, PlatformId, VariationId, format_choice
from s4.project import Project
from s4.workspace import BuildContext

SystemInventory = dict[str, tuple[PlatformId, VariationId | None]]
PoolInventory = dict[str, set[str]]

_POOL_HEADINGS = {"name", "pool"}


def parse_system_report(text: str) -> SystemInventory:
    """Parse ``system-tsv`` output into ``name -> (platform, variation)``."""
    lines = text.splitlines()
    if not lines or not lines[0].strip():
        raise ExternalFailureError("Invalid output from mq.sh systems list")
    headings = [h.strip() for h in lines[0].split("\t")]

    systems: SystemInventory = {}
    for line in lines[1:]:
        if not line.strip():
            continue
        fields = dict(zip(headings, line.split("\t")))
        name = fields.get("name", "").strip()
        plat = fields.get("sel4_plat", "").strip()
        if not name or not plat:
            continue
        platform, _, variation = plat.partition(":")
        systems[name] = (PlatformId(platform), VariationId(variation) if variation else None)
    return systems


def parse_pool_report(text: str) -> PoolInventory:
    """Parse ``pool-tsv`` output into ``pool -> member systems``."""
    pools: PoolInventory = {}
    for i, line in enumerate(text.strip().splitlines()):
        cells = [c.strip() for c in line.strip().split("\t")]
        if not cells or not cells[0]:
            continue
        if i == 0 and cells[0].lower() in _POOL_HEADINGS:
            continue
        pools[cells[0]] = {c for c in cells[1:] if c}
    return pools


def match_systems(
    platform: str,
    variation: str | None,
    systems: SystemInventory,
    pools: PoolInventory,
) -> list[str]:
    """Candidate pools and systems for a platform, pools first.

    Empty pools never match.
    """
    matching = [
        name
        for name, (sys_platform, sys_variation) in sorted(systems.items())
        if sys_platform == platform and (variation is None or sys_variation == variation)
    ]
    matched = set(matching)

    candidates = list(matching)
    for pool, members in sorted(pools.items()):
        if members and members <= matched:
            candidates.insert(0, pool)

    if not candidates:
        raise NotFoundError(
            f"No matching system found for {format_choice(platform, variation)}",
            context={"platform": platform, "variation": variation or ""},
        )
    return candidates


# ---------------------------------------------------------------------------
# mq.sh
# ---------------------------------------------------------------------------


def systems(apps: Apps) -> SystemInventory:
    mq = apps.require_machine_queue()
    return parse_system_report(capture_command([str(mq), "system-tsv"]))


def pools(apps: Apps) -> PoolInventory:
    mq = apps.require_machine_queue()
    return parse_pool_report(capture_command([str(mq), "pool-tsv"]))


def match_system(apps: Apps, platform: str, variation: str | None) -> list[str]:
    return match_systems(platform, variation, systems(apps), pools(apps))


def run_command_for(
    context: BuildContext,
    project: Project,
    config: Config,
    apps: Apps,
    system: str,
) -> list[str]:
    """``mq.sh run`` arguments for one system; image paths are relative to the build."""
    exit_phrase = project.exit_phrase or config.defaults.default_exit_phrase()
    cmd = [str(apps.require_machine_queue()), "run", "-c", exit_phrase, "-s", system]

    files: list[PurePosixPath] = []
    if context.architecture.family is Family.X86:
        files.append(context.kernel_image_path())
    root_server = project.root_server or context.inferred_root_server()
    files.append(context.image_path(root_server))
    for path in files:
        cmd += ["-f", str(path)]
    return cmd


def mq_run(
    context: BuildContext,
    project: Project,
    config: Config,
    apps: Apps,
    system: str | None = None,
) -> str:
    """Run the build on the first candidate that succeeds; return its name."""
    if system is not None:
        candidates = [system]
    else:
        candidates = match_system(apps, context.platform, context.variation)

    for candidate in candidates:
        cmd = run_command_for(context, project, config, apps, candidate)
        if run_command(cmd, cwd=context.build_root) == 0:
            return candidate

    raise ExternalFailureError(
        "Could not run on any available system", context={"tried": ", ".join(candidates)}
    )
