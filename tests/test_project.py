"""Tests for s4.project."""

from pathlib import PurePosixPath

import pytest

from s4.errors import ParseError
from s4.project import Repository, parse_project
from s4.value import TRUE


class TestRepository:
    def test_parse(self) -> None:
        repo = Repository.parse("seL4/sel4test-manifest")
        assert repo == Repository("seL4", "sel4test-manifest")
        assert str(repo) == "seL4/sel4test-manifest"

    @pytest.mark.parametrize(
        "text", ["seL4", "seL4/", "/name", "a/b/c", "seL4/sel4test-manifest.git", ""]
    )
    def test_malformed(self, text: str) -> None:
        with pytest.raises(ParseError, match="Malformed repository"):
            Repository.parse(text)


class TestParseProject:
    def test_aliases(self) -> None:
        project = parse_project(
            "camkes",
            {
                "repository": "seL4/camkes-manifest",
                "source-dir": "projects/camkes",
                "rootserver": "capdl-loader",
                "command-line": ["release", "mcs"],
                "simulation": True,
            },
        )
        assert project.repository == Repository("seL4", "camkes-manifest")
        assert project.source_directory == PurePosixPath("projects/camkes")
        assert project.root_server == "capdl-loader"
        assert project.command_line == {"release", "mcs"}
        assert project.setting.to_toml() == {"simulation": True}

    def test_optional_fields(self) -> None:
        project = parse_project("bare", {})
        assert project.repository is None
        assert project.source_directory is None
        assert project.exit_phrase is None
        assert project.command_line == set()

    def test_cmdline_must_be_list(self) -> None:
        with pytest.raises(ParseError):
            parse_project("p", {"cmdline": "release"})

    def test_merge(self) -> None:
        project = parse_project("p", {"repository": "a/b", "cmdline": ["release"]})
        project.merge(parse_project("p", {"exit-phrase": "done", "cmdline": ["smp"], "mcs": True}))
        assert project.repository == Repository("a", "b")
        assert project.exit_phrase == "done"
        assert project.command_line == {"release", "smp"}
        assert project.setting.flag("mcs") == TRUE
