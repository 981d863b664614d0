"""
Unit tests for the config builder.

Tests cover:
- Severity filtering (off skipped)
- Unknown ids skipped
- Platform filtering
- Order preservation
- extend_rules and get_recommended_rules
- Platform detection
"""

import logging
import re

import pytest

from veil.rules.builder import (
    build_config_from_rules,
    detect_platform,
    extend_rules,
    get_recommended_rules,
)
from veil.rules.registry import RuleRegistry
from veil.schema import (
    CliRule,
    EnvRule,
    FileRule,
    NamedRule,
    Platform,
    RuleCategory,
    RuleSeverity,
)


@pytest.fixture
def small_registry() -> RuleRegistry:
    """Registry with a handful of predictable rules."""
    return RuleRegistry(
        [
            NamedRule(
                id="linux/no-x",
                description="x",
                category=RuleCategory.DESTRUCTIVE,
                platforms=[Platform.LINUX],
                cli_rules=[CliRule(match="x", action="deny")],
            ),
            NamedRule(
                id="env/mask-a",
                description="a",
                category=RuleCategory.CREDENTIALS,
                platforms=[Platform.ALL],
                env_rules=[EnvRule(match=re.compile(r"^A_"), action="mask")],
            ),
            NamedRule(
                id="fs/hide-b",
                description="b",
                category=RuleCategory.FILESYSTEM,
                platforms=[Platform.ALL],
                default_severity=RuleSeverity.WARN,
                file_rules=[
                    FileRule(match="b.keep", action="allow"),
                    FileRule(match="b", action="deny"),
                ],
            ),
            NamedRule(
                id="fs/hide-c",
                description="c",
                category=RuleCategory.FILESYSTEM,
                platforms=[Platform.DARWIN, Platform.WINDOWS],
                default_severity=RuleSeverity.OFF,
                file_rules=[FileRule(match="c", action="deny")],
            ),
        ]
    )


class TestBuildConfigFromRules:
    """Tests for build_config_from_rules."""

    def test_off_never_materialized(self, small_registry: RuleRegistry) -> None:
        """Rules set to off contribute nothing on any platform."""
        for platform in ("linux", "darwin", "windows"):
            config = build_config_from_rules({"linux/no-x": "off", "fs/hide-c": "off"}, platform, registry=small_registry)
            assert config.cli_rules == []
            assert config.file_rules == []

    def test_platform_filtering(self, small_registry: RuleRegistry) -> None:
        """Rules materialize iff their platforms include the target or all."""
        linux = build_config_from_rules({"linux/no-x": "error", "fs/hide-c": "error"}, "linux", registry=small_registry)
        darwin = build_config_from_rules({"linux/no-x": "error", "fs/hide-c": "error"}, "darwin", registry=small_registry)

        assert len(linux.cli_rules) == 1 and linux.file_rules == []
        assert darwin.cli_rules == [] and len(darwin.file_rules) == 1

    def test_warn_treated_as_error(self, small_registry: RuleRegistry) -> None:
        """warn includes the rule just like error."""
        config = build_config_from_rules({"env/mask-a": "warn"}, "linux", registry=small_registry)
        assert len(config.env_rules) == 1

    def test_unknown_ids_skipped(self, small_registry: RuleRegistry, caplog: pytest.LogCaptureFixture) -> None:
        """Unknown ids are inert."""
        with caplog.at_level(logging.DEBUG, logger="veil.rules.builder"):
            config = build_config_from_rules({"future/rule": "error", "env/mask-a": "error"}, "linux", registry=small_registry)

        assert len(config.env_rules) == 1
        assert "future/rule" in caplog.text

    def test_order_follows_rules_config(self, small_registry: RuleRegistry) -> None:
        """Concrete rules keep id order, then declaration order."""
        config = build_config_from_rules(
            {"fs/hide-c": "error", "fs/hide-b": "error"},
            "darwin",
            registry=small_registry,
        )
        assert [r.match for r in config.file_rules] == ["c", "b.keep", "b"]

    def test_pair_settings(self, small_registry: RuleRegistry) -> None:
        """(severity, options) pairs work like plain severities."""
        config = build_config_from_rules(
            {"env/mask-a": ("error", {"note": "x"}), "fs/hide-b": ("off", {})},
            "linux",
            registry=small_registry,
        )
        assert len(config.env_rules) == 1
        assert config.file_rules == []

    def test_no_injectors(self, small_registry: RuleRegistry) -> None:
        """Built configs carry no injectors."""
        config = build_config_from_rules({"env/mask-a": "error"}, "linux", registry=small_registry)
        assert config.injectors.env is None

    def test_default_platform(self, small_registry: RuleRegistry, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without a platform the running platform is used."""
        monkeypatch.setattr("sys.platform", "win32")
        config = build_config_from_rules({"linux/no-x": "error", "fs/hide-c": "error"}, registry=small_registry)
        assert config.cli_rules == []
        assert len(config.file_rules) == 1

    def test_builtin_registry(self, registry: RuleRegistry) -> None:
        """Built-in rules expand as declared."""
        config = build_config_from_rules({"fs/hide-env-files": "error"}, "linux", registry=registry)
        assert [r.action.value for r in config.file_rules] == ["allow", "deny"]


class TestExtendRules:
    """Tests for extend_rules."""

    def test_override_wins(self) -> None:
        """Overrides replace base severities per id."""
        merged = extend_rules({"a/b": "error", "c/d": "error"}, {"a/b": "off", "e/f": "warn"})
        assert merged == {"a/b": "off", "c/d": "error", "e/f": "warn"}

    def test_inputs_untouched(self) -> None:
        """extend_rules returns a new mapping."""
        base = {"a/b": "error"}
        extend_rules(base, {"a/b": "off"})
        assert base == {"a/b": "error"}


class TestGetRecommendedRules:
    """Tests for get_recommended_rules."""

    def test_default_severities(self, small_registry: RuleRegistry) -> None:
        """Applicable rules with their default severity, off excluded."""
        assert get_recommended_rules("linux", registry=small_registry) == {
            "linux/no-x": RuleSeverity.ERROR,
            "env/mask-a": RuleSeverity.ERROR,
            "fs/hide-b": RuleSeverity.WARN,
        }

    def test_builtin_excludes_off(self, registry: RuleRegistry) -> None:
        """Built-in rules that default to off are left out."""
        config = get_recommended_rules("linux", registry=registry)
        assert "fs/hide-build-output" not in config
        assert "fs/hide-node-modules" in config
        assert "win/hide-sam" not in config


class TestDetectPlatform:
    """Tests for detect_platform."""

    @pytest.mark.parametrize(
        ("sys_platform", "expected"),
        [
            ("win32", Platform.WINDOWS),
            ("darwin", Platform.DARWIN),
            ("linux", Platform.LINUX),
            ("freebsd14", Platform.LINUX),
        ],
    )
    def test_mapping(self, sys_platform: str, expected: Platform, monkeypatch: pytest.MonkeyPatch) -> None:
        """sys.platform maps to a rule platform."""
        monkeypatch.setattr("sys.platform", sys_platform)
        assert detect_platform() is expected
