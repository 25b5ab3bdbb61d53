"""Shared fixtures for the s4 test suite."""

from pathlib import Path

import pytest

from s4.workspace import WorkspaceContext


@pytest.fixture(autouse=True)
def isolated_home(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Path:
    """Keep the user's own ~/.s4.toml and config directory out of every test."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    return home


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceContext:
    """A fresh sel4test workspace at ``tmp_path/ws``."""
    return WorkspaceContext.create("sel4test", tmp_path / "ws")
