"""Tests for the shared CLI helpers in s4.cli."""

import json
from pathlib import Path

import pytest
import typer

from s4.cli import (
    coerce_value,
    editable_flags,
    error_exit,
    json_print,
    load_build,
    load_context,
    parse_assignment,
    require_context,
    setting_edits,
)
from s4.config import Config
from s4.errors import FilesystemConflictError, InvalidValueError, ParseError
from s4.flags import Flag
from s4.value import FALSE, TRUE, Value
from s4.workspace import WorkspaceContext

# ---------------------------------------------------------------------------
# error_exit() / json_print()
# ---------------------------------------------------------------------------


class TestErrorExit:
    def test_plain_stderr_and_exit(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(typer.Exit) as exc_info:
            error_exit("something broke")
        assert exc_info.value.exit_code == 1
        captured = capsys.readouterr()
        assert "something broke" in captured.err
        assert captured.out == ""

    def test_json_mode_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(typer.Exit):
            error_exit("bad input", json_mode=True, code=3)
        captured = capsys.readouterr()
        assert json.loads(captured.out) == {"error": "bad input"}
        assert captured.err == ""


class TestJsonPrint:
    def test_dict_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        json_print({"status": "ok", "count": 42})
        assert json.loads(capsys.readouterr().out) == {"status": "ok", "count": 42}


# ---------------------------------------------------------------------------
# Context loading
# ---------------------------------------------------------------------------


class TestContextLoading:
    def test_outside_workspace(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        with pytest.raises(FilesystemConflictError, match="Not inside an s4 workspace"):
            require_context()

    def test_workspace_config_includes_overrides(
        self, workspace: WorkspaceContext, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (workspace.workspace_root / "s4.toml").write_text(
            '[flag.my-flag]\nvariable = "MY_FLAG"\n', encoding="utf-8"
        )
        monkeypatch.chdir(workspace.workspace_root)
        context, config = load_context()
        assert isinstance(context, WorkspaceContext)
        assert config.flag("my-flag") is not None

    def test_build_required(
        self, workspace: WorkspaceContext, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(workspace.workspace_root)
        with pytest.raises(FilesystemConflictError, match="Not inside a build directory"):
            load_build()


# ---------------------------------------------------------------------------
# Setting edits
# ---------------------------------------------------------------------------


class TestParseAssignment:
    def test_split(self) -> None:
        assert parse_assignment("platform = tx2") == ("platform", "tx2")
        assert parse_assignment("regex=a=b") == ("regex", "a=b")

    @pytest.mark.parametrize("text", ["release", "=true"])
    def test_malformed(self, text: str) -> None:
        with pytest.raises(ParseError):
            parse_assignment(text)


class TestCoerceValue:
    def test_typed_bool(self) -> None:
        config = Config.builtin()
        assert coerce_value(config, "release", "ON") == TRUE
        assert coerce_value(config, "release", "false") == FALSE
        with pytest.raises(InvalidValueError, match="expects a boolean"):
            coerce_value(config, "release", "maybe")

    def test_typed_string_keeps_text(self) -> None:
        config = Config.builtin()
        assert coerce_value(config, "platform", "true") == Value.text("true")

    def test_untyped(self) -> None:
        config = Config.builtin().with_flags({"free": Flag("free")})
        assert coerce_value(config, "free", "True") == TRUE
        assert coerce_value(config, "free", "on") == Value.text("on")


class TestSettingEdits:
    def test_order_enable_disable_set(self) -> None:
        config = Config.builtin()
        allowed = {"release", "smp", "mcs"}
        edits = setting_edits(config, allowed, ["release", "smp"], ["mcs"], ["smp=false"])
        assert edits.to_toml() == {"mcs": False, "release": True, "smp": False}

    def test_none_means_no_edits(self) -> None:
        assert len(setting_edits(Config.builtin(), set(), None, None, None)) == 0

    def test_disallowed_flag(self) -> None:
        with pytest.raises(InvalidValueError, match="cannot be set from the command line"):
            setting_edits(Config.builtin(), {"release"}, ["can-mcs"], None, None)

    @pytest.mark.parametrize(("enable", "disable"), [(["platform"], None), (None, ["platform"])])
    def test_switching_text_flag_rejected(
        self, enable: list[str] | None, disable: list[str] | None
    ) -> None:
        with pytest.raises(InvalidValueError, match="holds text"):
            setting_edits(Config.builtin(), {"platform"}, enable, disable, None)

    def test_text_flag_assigned(self) -> None:
        edits = setting_edits(Config.builtin(), {"platform"}, None, None, ["platform=x86_64"])
        assert edits.flag("platform") == Value.text("x86_64")

    def test_editable_flags(self, workspace: WorkspaceContext) -> None:
        (workspace.workspace_root / "easy-settings.cmake").write_text(
            'set(MyOption OFF CACHE BOOL "Something")\n', encoding="utf-8"
        )
        project = Config.builtin().project("sel4test")
        allowed = editable_flags(project, workspace)
        assert {"release", "mcs", "my-option"} <= allowed
        assert "can-mcs" not in allowed
