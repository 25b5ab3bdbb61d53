"""Projects: manifest repositories plus their build settings."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import NamedTuple, NewType

from s4.errors import ParseError
from s4.merge import merge
from s4.setting import FlagId, Setting

ProjectId = NewType("ProjectId", str)


class Repository(NamedTuple):
    """A manifest repository on the git server, written ``org/name``."""

    organisation: str
    name: str

    @classmethod
    def parse(cls, text: str) -> Repository:
        parts = text.split("/")
        if len(parts) == 2 and all(parts) and not parts[1].endswith(".git"):
            return cls(parts[0], parts[1])
        raise ParseError(f"Malformed repository: {text}", context={"expected": "org/name"})

    def __str__(self) -> str:
        return f"{self.organisation}/{self.name}"


@dataclass
class Project:
    """A project that can be checked out into a workspace."""

    name: ProjectId
    repository: Repository | None = None
    # CMake source directory, relative to the workspace root
    source_directory: PurePosixPath | None = None
    root_server: str | None = None
    # Printed by the root server when a hardware run has completed
    exit_phrase: str | None = None
    # Flags that may be set from the command line when configuring a build
    command_line: set[FlagId] = field(default_factory=set)
    setting: Setting = field(default_factory=Setting)

    def merge(self, other: Project) -> None:
        self.repository = merge(self.repository, other.repository)
        self.source_directory = merge(self.source_directory, other.source_directory)
        self.root_server = merge(self.root_server, other.root_server)
        self.exit_phrase = merge(self.exit_phrase, other.exit_phrase)
        self.command_line |= other.command_line
        self.setting.merge(other.setting)


_ALIASES = {
    "source-dir": "source-directory",
    "rootserver": "root-server",
    "command-line": "cmdline",
}
_PROJECT_KEYS = {"repository", "source-directory", "root-server", "exit-phrase", "cmdline"}


def parse_project(name: str, raw: Mapping[str, object]) -> Project:
    """Build a :class:`Project` from its ``[project.<name>]`` table."""
    if not isinstance(raw, Mapping):
        raise ParseError(f"Project {name} must be a table", context={"project": name})
    raw = {_ALIASES.get(k, k): v for k, v in raw.items()}

    repository = raw.get("repository")
    source = raw.get("source-directory")
    cmdline = raw.get("cmdline", [])
    if not isinstance(cmdline, list):
        raise ParseError(
            f"Project {name}: 'cmdline' must be a list of flag names", context={"project": name}
        )

    root_server = raw.get("root-server")
    exit_phrase = raw.get("exit-phrase")
    return Project(
        name=ProjectId(name),
        repository=None if repository is None else Repository.parse(str(repository)),
        source_directory=None if source is None else PurePosixPath(str(source)),
        root_server=None if root_server is None else str(root_server),
        exit_phrase=None if exit_phrase is None else str(exit_phrase),
        command_line={FlagId(str(flag)) for flag in cmdline},
        setting=Setting.from_mapping({k: v for k, v in raw.items() if k not in _PROJECT_KEYS}),
    )
