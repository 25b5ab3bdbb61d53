"""Tests for s4.config — loading, layering and setting resolution."""

from pathlib import Path

import pytest

from s4.config import Config, Defaults, override_files
from s4.errors import NotFoundError, ParseError, UnsatisfiedError
from s4.flags import Flag
from s4.platform import Architecture
from s4.project import Repository
from s4.value import FALSE, TRUE, Value

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

LAYERED = {
    "flag": {"mcs": {"variable": "MCS"}},
    "platform": {
        "p": {
            "architectures": ["aarch64"],
            "mcs": False,
            "variation": {"v": {"mcs": True}},
        }
    },
    "architecture": {"aarch64": {"mcs": False, "architecture": "arm"}},
    "project": {"proj": {"repository": "org/proj"}},
}


# ---------------------------------------------------------------------------
# Built-in configuration
# ---------------------------------------------------------------------------


class TestBuiltin:
    def test_loads(self) -> None:
        config = Config.builtin()
        assert "pc99" in config.platforms
        assert "sel4test" in config.projects
        assert "mcs" in config.flags
        assert Architecture.X86_64 in config.architectures

    def test_sel4test(self) -> None:
        project = Config.builtin().project("sel4test")
        assert project.repository == Repository("seL4", "sel4test-manifest")
        assert {"release", "simulation", "mcs"} <= project.command_line

    def test_every_builtin_combination_resolves_and_validates(self) -> None:
        config = Config.builtin()
        for platform_id, platform in config.platforms.items():
            for arch in platform.architectures:
                setting = config.platform_setting("sel4test", platform_id, None, arch)
                config.check_setting(setting)

    def test_defaults(self) -> None:
        defaults = Config.builtin().defaults
        assert defaults.git_repo_url(Repository("seL4", "x")) == "https://github.com/seL4/x.git"
        assert defaults.default_exit_phrase() == "All is well in the universe"


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class TestPlatformSetting:
    def test_platform_flags(self) -> None:
        config = Config.builtin()
        setting = config.platform_setting("sel4test", "pc99", "haswell", Architecture.X86_64)
        assert setting.flag("kernel-platform") == Value.text("pc99")
        assert setting.flag("platform") == Value.text("haswell")
        assert setting.flag("x86-micro-arch") == Value.text("haswell")
        assert setting.flag("sel4-architecture") == Value.text("x86_64")

    def test_no_variation_keeps_platform_name(self) -> None:
        config = Config.builtin()
        setting = config.platform_setting("sel4test", "tx2", None, Architecture.AARCH64)
        assert setting.flag("platform") == Value.text("tx2")
        assert setting.flag("aarch64") == TRUE

    def test_layers_in_order(self) -> None:
        config = Config.from_document(LAYERED)
        # platform false, variation true, architecture false: architecture wins
        setting = config.platform_setting("proj", "p", "v", Architecture.AARCH64)
        assert setting.flag("mcs") == FALSE

    def test_project_layer_wins(self) -> None:
        config = Config.from_document(LAYERED)
        config.merge(Config.from_document({"project": {"proj": {"mcs": True}}}))
        setting = config.platform_setting("proj", "p", "v", Architecture.AARCH64)
        assert setting.flag("mcs") == TRUE

    def test_architecture_without_entry(self) -> None:
        config = Config.from_document(LAYERED)
        setting = config.platform_setting("proj", "p", "v", Architecture.RISCV64)
        assert setting.flag("mcs") == TRUE

    def test_unknown_platform(self) -> None:
        with pytest.raises(NotFoundError, match="No such platform nope"):
            Config.builtin().platform_setting("sel4test", "nope", None, Architecture.IA32)

    def test_unknown_variation(self) -> None:
        with pytest.raises(NotFoundError, match="variation nope"):
            Config.builtin().platform_setting("sel4test", "pc99", "nope", Architecture.IA32)

    def test_unknown_project(self) -> None:
        with pytest.raises(NotFoundError, match="No such project nope"):
            Config.builtin().platform_setting("nope", "pc99", None, Architecture.IA32)

    def test_gated_flag_rejected_on_platform_without_support(self) -> None:
        config = Config.builtin()
        setting = config.platform_setting("sel4test", "exynos5", None, Architecture.AARCH32)
        setting.set_bool("mcs", True)
        with pytest.raises(UnsatisfiedError):
            config.check_setting(setting)

    def test_cmake_args(self) -> None:
        config = Config.builtin()
        setting = config.platform_setting("sel4test", "spike", None, Architecture.RISCV64)
        args = config.cmake_args(setting)
        assert "-DPLATFORM=spike" in args
        assert "-DKernelPlatform=spike" in args
        assert "-DRISCV64=ON" in args
        assert "-DKernelSel4Arch=riscv64" in args
        # can-simulate, can-mcs and architecture have no CMake variable
        assert len(args) == 4
        assert args.index("-DKernelPlatform=spike") < args.index("-DPLATFORM=spike")


# ---------------------------------------------------------------------------
# Loading and layering
# ---------------------------------------------------------------------------


class TestLoad:
    def test_override_order(self, tmp_path: Path, isolated_home: Path) -> None:
        (isolated_home / ".s4.toml").write_text('docker-image = "home"\n', encoding="utf-8")
        config_dir = isolated_home / ".config"
        config_dir.mkdir()
        (config_dir / "s4.toml").write_text('docker-image = "xdg"\n', encoding="utf-8")
        project_root = tmp_path / "ws"
        project_root.mkdir()
        (project_root / "s4.toml").write_text('docker-image = "project"\n', encoding="utf-8")

        assert override_files(project_root) == [
            isolated_home / ".s4.toml",
            config_dir / "s4.toml",
            project_root / "s4.toml",
        ]
        assert Config.load(project_root).defaults.docker_image_name() == "project"
        assert Config.load().defaults.docker_image_name() == "xdg"

    def test_override_extends_catalog(self, isolated_home: Path) -> None:
        (isolated_home / ".s4").write_text(
            '[platform.pc99.variation.zen]\nx86-micro-arch = "zen"\n'
            '[project.sel4test]\ncmdline = ["extra"]\n',
            encoding="utf-8",
        )
        config = Config.load()
        assert "zen" in config.platform("pc99").variations
        assert "haswell" in config.platform("pc99").variations
        assert "extra" in config.project("sel4test").command_line
        assert "release" in config.project("sel4test").command_line

    def test_invalid_toml(self, isolated_home: Path) -> None:
        (isolated_home / ".s4.toml").write_text("not = [valid", encoding="utf-8")
        with pytest.raises(ParseError, match="Invalid TOML"):
            Config.load()

    def test_non_utf8_document(self, isolated_home: Path) -> None:
        (isolated_home / ".s4.toml").write_bytes(b'git-server = "\xff\xfe"\n')
        with pytest.raises(ParseError) as exc_info:
            Config.load()
        assert exc_info.value.context["source"] == str(isolated_home / ".s4.toml")

    def test_bad_shape_names_source(self, tmp_path: Path) -> None:
        path = tmp_path / "s4.toml"
        path.write_text("[flag]\nmcs = 3\n", encoding="utf-8")
        with pytest.raises(ParseError) as exc_info:
            Config.from_file(path)
        assert exc_info.value.context["source"] == str(path)

    def test_defaults_must_be_strings(self) -> None:
        with pytest.raises(ParseError, match="git-server"):
            Config.from_document({"git-server": 1})

    def test_architecture_alias_table(self) -> None:
        config = Config.from_document({"arch": {"amd64": {"smp": True}}})
        assert config.architectures[Architecture.X86_64].flag("smp") == TRUE


class TestWithFlags:
    def test_returns_copy(self) -> None:
        config = Config.builtin()
        extended = config.with_flags({"my-option": Flag("my-option", variable="MyOption")})
        assert extended.flag("my-option") is not None
        assert config.flag("my-option") is None

    def test_lookup_errors_list_known_ids(self) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            Config.builtin().project("nope")
        assert "sel4test" in exc_info.value.context["known"]


class TestDefaults:
    def test_fallbacks(self) -> None:
        defaults = Defaults()
        assert defaults.docker_image_name() == Defaults.DOCKER_IMAGE
        assert defaults.repo_download_url() == Defaults.REPO_URL

    def test_merge_optional_replace(self) -> None:
        defaults = Defaults(git_server="https://a.example/", exit_phrase="x")
        defaults.merge(Defaults(exit_phrase="y"))
        assert defaults.git_server_url() == "https://a.example"
        assert defaults.exit_phrase == "y"
