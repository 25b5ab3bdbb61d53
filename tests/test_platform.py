"""Tests for s4.platform — architectures, platforms and choice strings."""

import pytest

from s4.errors import ParseError
from s4.platform import (
    Architecture,
    Family,
    format_choice,
    parse_choice,
    parse_platform,
)
from s4.value import TRUE, Value


class TestArchitecture:
    @pytest.mark.parametrize(
        ("token", "family"),
        [
            ("aarch32", Family.ARM),
            ("aarch64", Family.ARM),
            ("riscv32", Family.RISCV),
            ("riscv64", Family.RISCV),
            ("ia32", Family.X86),
            ("x86_64", Family.X86),
        ],
    )
    def test_families(self, token: str, family: Family) -> None:
        assert Architecture.parse(token).family is family

    @pytest.mark.parametrize(
        ("alias", "arch"),
        [
            ("arm_hyp", Architecture.AARCH32),
            ("amd64", Architecture.X86_64),
            ("X64", Architecture.X86_64),
        ],
    )
    def test_aliases(self, alias: str, arch: Architecture) -> None:
        assert Architecture.parse(alias) is arch

    def test_invalid(self) -> None:
        with pytest.raises(ParseError, match="Invalid seL4 architecture: sparc"):
            Architecture.parse("sparc")

    def test_str(self) -> None:
        assert str(Architecture.X86_64) == "x86_64"
        assert str(Family.RISCV) == "riscv"


class TestParseChoice:
    def test_platform_only(self) -> None:
        assert parse_choice("pc99") == ("pc99", None)

    def test_with_variation(self) -> None:
        assert parse_choice("pc99:haswell") == ("pc99", "haswell")

    @pytest.mark.parametrize("choice", ["", "a:", ":b", "a:b:c"])
    def test_malformed(self, choice: str) -> None:
        with pytest.raises(ParseError, match="Malformed platform choice"):
            parse_choice(choice)

    def test_format(self) -> None:
        assert format_choice("pc99", None) == "pc99"
        assert format_choice("pc99", "haswell") == "pc99:haswell"


class TestParsePlatform:
    def test_tables_and_setting(self) -> None:
        platform = parse_platform(
            "exynos5",
            {
                "architectures": ["aarch32", "arm_hyp"],
                "has-hypervisor": True,
                "variation": {"exynos5410": {"arm-platform": "exynos5410"}},
                "variant": {"exynos5422": {"arm-platform": "exynos5422"}},
            },
        )
        assert platform.architectures == {Architecture.AARCH32}
        assert sorted(platform.variations) == ["exynos5410", "exynos5422"]
        assert platform.setting.flag("has-hypervisor") == TRUE
        variation = platform.variation("exynos5422")
        assert variation is not None
        assert variation.setting.flag("arm-platform") == Value.text("exynos5422")
        assert platform.variation("missing") is None

    def test_supports(self) -> None:
        platform = parse_platform("tx2", {"architectures": ["aarch64"]})
        assert platform.supports(Architecture.AARCH64)
        assert not platform.supports(Architecture.AARCH32)

    def test_merge(self) -> None:
        base = parse_platform("p", {"architectures": ["aarch32"], "a": True})
        base.merge(
            parse_platform(
                "p", {"architectures": ["aarch64"], "a": False, "variation": {"v": {"b": "x"}}}
            )
        )
        assert base.architectures == {Architecture.AARCH32, Architecture.AARCH64}
        assert base.setting.to_toml() == {"a": False}
        assert "v" in base.variations

    def test_bad_architectures(self) -> None:
        with pytest.raises(ParseError):
            parse_platform("p", {"architectures": "aarch64"})
