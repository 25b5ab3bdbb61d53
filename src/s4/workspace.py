"""Workspaces and build directories persisted as marker files.

A workspace is a project checkout whose root holds ``.s4-workspace.toml``::

    project = "sel4test"
    builds = ["build-pc99", "build-tx2"]

A build directory holds ``.s4-build.toml`` with the way back to its
workspace, the configured target, and every setting flattened to top-level
keys::

    workspace-root = ".."
    build-platform = "pc99"
    build-architecture = "x86_64"
    mcs = true
    platform = "pc99"

:func:`find_context` walks up from the current directory and returns the
closest build or workspace.  A build marker wins over a workspace marker in
the same directory or any directory above it.

Marker files are the whole database.  There is no locking: creating a build
rewrites the workspace marker after writing the build marker, so two
concurrent ``configure`` runs against one workspace can drop each other's
registration, and a crash between the two writes leaves the build
unregistered.  Stale ``builds`` entries are never purged; they are skipped
when the directory no longer exists.
"""

from __future__ import annotations

import warnings
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from s4.config import Config
from s4.errors import FilesystemConflictError, NotFoundError, ParseError
from s4.platform import Architecture, Family, PlatformId, VariationId
from s4.project import ProjectId
from s4.setting import Setting
from s4.utils import ensure_empty_dir, relative_path, toml_load, toml_save

WORKSPACE_FILENAME = ".s4-workspace.toml"
BUILD_FILENAME = ".s4-build.toml"

# Directory within the root of a workspace used to cache artifacts
CACHE_SUBDIR = ".sel4_cache"

IMAGES_DIR = "images"


# ---------------------------------------------------------------------------
# Marker documents
# ---------------------------------------------------------------------------


@dataclass
class Workspace:
    """Contents of the workspace marker."""

    project: ProjectId
    # Build directories, relative to the workspace root
    builds: set[str] = field(default_factory=set)

    @classmethod
    def from_toml(cls, raw: Mapping[str, object]) -> Workspace:
        project = raw.get("project")
        builds = raw.get("builds", [])
        if not isinstance(project, str) or not isinstance(builds, list):
            raise ParseError("Malformed workspace marker")
        return cls(ProjectId(project), {str(b) for b in builds})

    def to_toml(self) -> dict[str, object]:
        return {"project": self.project, "builds": sorted(self.builds)}


_BUILD_KEYS = ("workspace-root", "build-platform", "build-variation", "build-architecture")


@dataclass
class Build:
    """Contents of the build marker."""

    workspace_root: str
    platform: PlatformId
    variation: VariationId | None
    architecture: Architecture
    setting: Setting = field(default_factory=Setting)

    @classmethod
    def from_toml(cls, raw: Mapping[str, object]) -> Build:
        workspace_root = raw.get("workspace-root")
        platform = raw.get("build-platform")
        variation = raw.get("build-variation")
        architecture = raw.get("build-architecture")
        if not (
            isinstance(workspace_root, str)
            and isinstance(platform, str)
            and isinstance(architecture, str)
            and (variation is None or isinstance(variation, str))
        ):
            raise ParseError("Malformed build marker")
        return cls(
            workspace_root=workspace_root,
            platform=PlatformId(platform),
            variation=None if variation is None else VariationId(variation),
            architecture=Architecture.parse(architecture),
            setting=Setting.from_mapping({k: v for k, v in raw.items() if k not in _BUILD_KEYS}),
        )

    def to_toml(self) -> dict[str, object]:
        doc: dict[str, object] = {
            "workspace-root": self.workspace_root,
            "build-platform": self.platform,
        }
        if self.variation is not None:
            doc["build-variation"] = self.variation
        doc["build-architecture"] = self.architecture.value
        for key, value in self.setting.to_toml().items():
            if key not in _BUILD_KEYS:
                doc[key] = value
        return doc


def _load_marker(path: Path, filename: str, kind: str) -> dict:
    marker = path / filename
    if not marker.is_file():
        raise FilesystemConflictError(
            f"No {kind} marker in {path}", context={"path": marker}
        )
    try:
        return toml_load(marker)
    except ParseError as e:
        e.context.setdefault("path", str(marker))
        raise


# ---------------------------------------------------------------------------
# Contexts
# ---------------------------------------------------------------------------


@dataclass
class WorkspaceContext:
    """A loaded workspace and where it lives."""

    workspace: Workspace
    workspace_root: Path

    build_root = None

    @classmethod
    def create(cls, project: str, path: Path) -> WorkspaceContext:
        """Create a new workspace directory with a cache directory and marker."""
        path = Path(path)
        ensure_empty_dir(path, "Workspace")
        (path / CACHE_SUBDIR).mkdir(exist_ok=True)

        workspace = Workspace(ProjectId(project))
        toml_save(workspace.to_toml(), path / WORKSPACE_FILENAME)
        return cls(workspace, path)

    @classmethod
    def load(cls, path: Path) -> WorkspaceContext:
        path = Path(path)
        try:
            workspace = Workspace.from_toml(_load_marker(path, WORKSPACE_FILENAME, "workspace"))
        except ParseError as e:
            e.context.setdefault("path", str(path / WORKSPACE_FILENAME))
            raise
        return cls(workspace, path)

    @property
    def project(self) -> ProjectId:
        return self.workspace.project

    @property
    def cache_dir(self) -> Path:
        return self.workspace_root / CACHE_SUBDIR

    def builds(self) -> list[BuildContext]:
        """Load every registered build directory that still exists."""
        root = self.workspace_root.resolve()
        contexts = []
        for entry in sorted(self.workspace.builds):
            path = self.workspace_root / entry
            if not path.exists():
                continue
            if not (path / BUILD_FILENAME).is_file():
                warnings.warn(f"Build directory {path} has no build marker", stacklevel=2)
                continue
            context = BuildContext.load(self, path)
            if (path / context.build.workspace_root).resolve() != root:
                warnings.warn(
                    f"Build directory {path} belongs to a different workspace", stacklevel=2
                )
                continue
            contexts.append(context)
        return contexts


@dataclass
class BuildContext:
    """A loaded build directory paired with its workspace."""

    workspace: WorkspaceContext
    build: Build
    build_root: Path

    @classmethod
    def create(
        cls,
        config: Config,
        workspace: WorkspaceContext,
        platform: str,
        variation: str | None,
        architecture: Architecture,
        added_setting: Setting,
        path: Path,
    ) -> BuildContext:
        """Configure a new build directory and register it with its workspace.

        The effective setting is the resolved platform setting with
        *added_setting* merged on top.  The build marker and the workspace
        marker are written one after the other with no rollback.
        """
        setting = config.platform_setting(workspace.project, platform, variation, architecture)
        setting.merge(added_setting)

        build_root = Path(path)
        ensure_empty_dir(build_root, "Build")
        workspace_root = workspace.workspace_root

        build = Build(
            workspace_root=relative_path(build_root, workspace_root).as_posix(),
            platform=PlatformId(platform),
            variation=None if variation is None else VariationId(variation),
            architecture=architecture,
            setting=setting,
        )
        toml_save(build.to_toml(), build_root / BUILD_FILENAME)

        # Read-modify-write of the workspace marker; not locked.
        current = WorkspaceContext.load(workspace_root).workspace
        current.builds.add(relative_path(workspace_root, build_root).as_posix())
        toml_save(current.to_toml(), workspace_root / WORKSPACE_FILENAME)

        return cls(WorkspaceContext(current, workspace_root), build, build_root)

    @classmethod
    def load(cls, workspace: WorkspaceContext, path: Path) -> BuildContext:
        path = Path(path)
        try:
            build = Build.from_toml(_load_marker(path, BUILD_FILENAME, "build"))
        except ParseError as e:
            e.context.setdefault("path", str(path / BUILD_FILENAME))
            raise
        return cls(workspace, build, path)

    def save(self) -> None:
        """Rewrite the build marker only."""
        toml_save(self.build.to_toml(), self.build_root / BUILD_FILENAME)

    @property
    def workspace_root(self) -> Path:
        return self.workspace.workspace_root

    @property
    def project(self) -> ProjectId:
        return self.workspace.project

    @property
    def setting(self) -> Setting:
        return self.build.setting

    def update_setting(self, setting: Setting) -> None:
        self.build.setting.merge(setting)

    @property
    def platform(self) -> PlatformId:
        return self.build.platform

    @property
    def variation(self) -> VariationId | None:
        return self.build.variation

    @property
    def architecture(self) -> Architecture:
        return self.build.architecture

    def image_name(self) -> str:
        """``<arch>-<platform>`` on x86, ``<family>-<platform>`` elsewhere."""
        arch = self.architecture
        prefix = arch.value if arch.family is Family.X86 else arch.family.value
        return f"{prefix}-{self.platform}"

    def kernel_image_path(self) -> PurePosixPath:
        return self._in_image_dir(f"kernel-{self.image_name()}")

    def image_path(self, root_server: str) -> PurePosixPath:
        return self._in_image_dir(f"{root_server}-image-{self.image_name()}")

    def _in_image_dir(self, filename: str) -> PurePosixPath:
        """Path of an image relative to the build root; it must exist."""
        path = PurePosixPath(IMAGES_DIR, filename)
        if not (self.build_root / path).exists():
            raise NotFoundError(f"Image file missing: {path}", context={"build": self.build_root})
        return path

    def inferred_root_server(self) -> str:
        """Root server name taken from the images directory.

        When several images match, the lexicographically smallest wins.
        """
        images = self.build_root / IMAGES_DIR
        if not images.is_dir():
            raise NotFoundError("images directory is missing", context={"build": self.build_root})
        tail = f"-image-{self.image_name()}"
        names = sorted(
            p.name for p in images.iterdir() if p.name.endswith(tail) and len(p.name) > len(tail)
        )
        if not names:
            raise NotFoundError(
                "no rootserver image in images directory", context={"build": self.build_root}
            )
        return names[0][: -len(tail)]


Context = WorkspaceContext | BuildContext


def workspace_of(context: Context) -> WorkspaceContext:
    if isinstance(context, BuildContext):
        return context.workspace
    return context


def find_context(start: Path | None = None) -> Context | None:
    """Find the closest build or workspace at or above *start* (default: cwd).

    Like ``git`` locating ``.git/``, the filesystem root itself is not checked.
    """
    path = (start if start is not None else Path.cwd()).resolve()
    while path != path.parent:
        if (path / BUILD_FILENAME).is_file():
            build = Build.from_toml(toml_load(path / BUILD_FILENAME))
            workspace = WorkspaceContext.load((path / build.workspace_root).resolve())
            return BuildContext(workspace, build, path)
        if (path / WORKSPACE_FILENAME).is_file():
            return WorkspaceContext.load(path)
        path = path.parent
    return None
