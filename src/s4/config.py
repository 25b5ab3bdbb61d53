"""Configuration loading and setting resolution for s4.

The built-in ``config.toml`` shipped with the package defines the known
flags, platforms, architectures and projects.  Users extend or override it
with ``.s4``, ``.s4.toml`` or ``s4.toml`` files in their home directory, their
config directory, and the project (workspace) root; later files win.

Usage::

    from s4.config import Config

    config = Config.load(workspace_root)
    setting = config.platform_setting(project, platform, variation, arch)
    config.check_setting(setting)

The loaded :class:`Config` is not modified afterwards; it is passed
explicitly to whatever needs it.
"""

from __future__ import annotations

import copy
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from s4.errors import NotFoundError, ParseError
from s4.flags import Flag, check_setting, cmake_args, parse_flag
from s4.merge import merge, merge_into
from s4.platform import Architecture, Platform, PlatformId, VariationId, parse_platform
from s4.project import Project, ProjectId, Repository, parse_project
from s4.setting import FlagId, Setting
from s4.utils import toml_load

BUILTIN_CONFIG = Path(__file__).parent / "config.toml"

CONFIG_FILES = (".s4", ".s4.toml", "s4.toml")


@dataclass
class Defaults:
    """Top-level defaults, each optional with a built-in fallback."""

    git_server: str | None = None
    docker_image: str | None = None
    repo_url: str | None = None
    repo_branch: str | None = None
    repo_manifest: str | None = None
    exit_phrase: str | None = None

    GIT_SERVER = "https://github.com"
    DOCKER_IMAGE = "docker.io/trustworthysystems/camkes-riscv"
    REPO_URL = "https://storage.googleapis.com/git-repo-downloads/repo"
    EXIT_PHRASE = "All is well in the universe"

    def merge(self, other: Defaults) -> None:
        self.git_server = merge(self.git_server, other.git_server)
        self.docker_image = merge(self.docker_image, other.docker_image)
        self.repo_url = merge(self.repo_url, other.repo_url)
        self.repo_branch = merge(self.repo_branch, other.repo_branch)
        self.repo_manifest = merge(self.repo_manifest, other.repo_manifest)
        self.exit_phrase = merge(self.exit_phrase, other.exit_phrase)

    def git_server_url(self) -> str:
        return (self.git_server or self.GIT_SERVER).rstrip("/")

    def git_repo_url(self, repository: Repository) -> str:
        """URL of a repository on the git server."""
        return f"{self.git_server_url()}/{repository}.git"

    def docker_image_name(self) -> str:
        return self.docker_image or self.DOCKER_IMAGE

    def repo_download_url(self) -> str:
        return self.repo_url or self.REPO_URL

    def default_exit_phrase(self) -> str:
        return self.exit_phrase or self.EXIT_PHRASE


_DEFAULT_KEYS = {
    "git-server": "git_server",
    "docker-image": "docker_image",
    "repo-url": "repo_url",
    "repo-branch": "repo_branch",
    "repo-manifest": "repo_manifest",
    "exit-phrase": "exit_phrase",
}


@dataclass
class Config:
    """Flags, platforms, architectures and projects known to s4."""

    defaults: Defaults = field(default_factory=Defaults)
    flags: dict[FlagId, Flag] = field(default_factory=dict)
    platforms: dict[PlatformId, Platform] = field(default_factory=dict)
    architectures: dict[Architecture, Setting] = field(default_factory=dict)
    projects: dict[ProjectId, Project] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_document(cls, raw: Mapping[str, object], source: str = "<document>") -> Config:
        """Build a config layer from a parsed TOML document."""
        try:
            return cls._from_document(raw)
        except ParseError as e:
            e.context.setdefault("source", source)
            raise

    @classmethod
    def _from_document(cls, raw: Mapping[str, object]) -> Config:
        config = cls()
        for key, attr in _DEFAULT_KEYS.items():
            value = raw.get(key)
            if value is not None:
                if not isinstance(value, str):
                    raise ParseError(f"'{key}' must be a string")
                setattr(config.defaults, attr, value)

        for name, table in _tables(raw, "flag"):
            config.flags[FlagId(name)] = parse_flag(name, table)
        for name, table in _tables(raw, "platform"):
            config.platforms[PlatformId(name)] = parse_platform(name, table)
        for table_name in ("architecture", "arch"):
            for token, table in _tables(raw, table_name):
                merge_into(
                    config.architectures,
                    {Architecture.parse(token): Setting.from_mapping(table)},
                )
        for name, table in _tables(raw, "project"):
            config.projects[ProjectId(name)] = parse_project(name, table)
        return config

    @classmethod
    def from_file(cls, path: Path) -> Config:
        try:
            raw = toml_load(path)
        except ParseError as e:
            e.context.setdefault("source", str(path))
            raise
        return cls.from_document(raw, source=str(path))

    @classmethod
    def builtin(cls) -> Config:
        """Parse the configuration shipped with s4."""
        return cls.from_file(BUILTIN_CONFIG)

    @classmethod
    def load(cls, project_root: Path | None = None) -> Config:
        """Built-in configuration merged with any user and project overrides."""
        config = cls.builtin()
        for path in override_files(project_root):
            config.merge(cls.from_file(path))
        return config

    def merge(self, other: Config) -> None:
        self.defaults.merge(other.defaults)
        merge_into(self.flags, other.flags)
        merge_into(self.platforms, other.platforms)
        merge_into(self.architectures, other.architectures)
        merge_into(self.projects, other.projects)

    def with_flags(self, extra: Mapping[FlagId, Flag]) -> Config:
        """A copy of this config with *extra* merged into the flag catalog."""
        config = copy.deepcopy(self)
        merge_into(config.flags, copy.deepcopy(dict(extra)))
        return config

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def platform(self, platform_id: str) -> Platform:
        platform = self.platforms.get(PlatformId(platform_id))
        if platform is None:
            raise NotFoundError(
                f"No such platform {platform_id}",
                context={"known": ", ".join(sorted(self.platforms))},
            )
        return platform

    def project(self, project_id: str) -> Project:
        project = self.projects.get(ProjectId(project_id))
        if project is None:
            raise NotFoundError(
                f"No such project {project_id}",
                context={"known": ", ".join(sorted(self.projects))},
            )
        return project

    def flag(self, flag_id: str) -> Flag | None:
        return self.flags.get(FlagId(flag_id))

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def check_setting(self, setting: Setting) -> None:
        """Ensure that a setting is a valid combination of flags."""
        check_setting(self.flags, setting)

    def cmake_args(self, setting: Setting) -> list[str]:
        return cmake_args(self.flags, setting)

    def platform_setting(
        self,
        project_id: str,
        platform_id: str,
        variation_id: str | None,
        architecture: Architecture,
    ) -> Setting:
        """Resolve the effective setting for a build.

        Layers are applied in order: platform, variation, architecture,
        project.  Each layer overrides the ones before it.
        """
        setting = Setting()

        platform = self.platform(platform_id)
        setting.set_kernel_platform(platform.name)
        setting.set_platform(platform.name)
        setting.merge(platform.setting)

        if variation_id is not None:
            variation = platform.variation(variation_id)
            if variation is None:
                raise NotFoundError(
                    f"No such platform variation {variation_id} for platform {platform.name}",
                    context={"known": ", ".join(sorted(platform.variations))},
                )
            setting.set_platform(variation.name)
            setting.merge(variation.setting)

        arch_setting = self.architectures.get(architecture)
        if arch_setting is not None:
            setting.merge(arch_setting)

        setting.merge(self.project(project_id).setting)
        return setting


def _tables(raw: Mapping[str, object], key: str) -> Iterable[tuple[str, Mapping[str, object]]]:
    tables = raw.get(key, {})
    if not isinstance(tables, Mapping):
        raise ParseError(f"'{key}' must be a table keyed by name")
    for name, table in tables.items():
        if not isinstance(table, Mapping):
            raise ParseError(f"'{key}.{name}' must be a table")
        yield str(name), table


def config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    return Path(xdg) if xdg else Path.home() / ".config"


def override_files(project_root: Path | None = None) -> list[Path]:
    """Existing override files, in the order they are applied."""
    directories = [Path.home(), config_dir()]
    if project_root is not None:
        directories.append(project_root)
    return [
        directory / name
        for directory in directories
        for name in CONFIG_FILES
        if (directory / name).is_file()
    ]
