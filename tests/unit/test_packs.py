"""
Unit tests for rule packs and category selection.

Tests cover:
- from_packs / unknown packs
- from_category
- recommended / strict per platform
- Pack integrity against the built-in registry
"""

import logging

import pytest

from veil.rules.packs import (
    RULE_PACKS,
    from_category,
    from_packs,
    list_packs,
    list_rules,
    recommended,
    strict,
)
from veil.rules.registry import RuleRegistry
from veil.schema import RuleCategory, RuleSeverity


class TestFromPacks:
    """Tests for from_packs."""

    def test_single_pack(self) -> None:
        """Every rule of the pack is set to error."""
        config = from_packs("minimal")
        assert config == {
            "fs/hide-env-files": RuleSeverity.ERROR,
            "env/deny-passwords": RuleSeverity.ERROR,
            "env/mask-tokens": RuleSeverity.ERROR,
        }

    def test_union_keeps_first_position(self) -> None:
        """Rules shared by packs appear once, at their first position."""
        config = from_packs("minimal", "context:dev")
        ids = list(config)
        assert ids[:3] == ["fs/hide-env-files", "env/deny-passwords", "env/mask-tokens"]
        assert ids.count("fs/hide-env-files") == 1
        assert "fs/hide-node-modules" in config

    def test_unknown_pack_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """Unknown pack names are logged and skipped."""
        with caplog.at_level(logging.WARNING, logger="veil.rules.packs"):
            config = from_packs("nope:nothing", "minimal")

        assert "Unknown rule pack: nope:nothing" in caplog.text
        assert len(config) == 3

    def test_no_packs(self) -> None:
        """No pack names, empty config."""
        assert from_packs() == {}


class TestFromCategory:
    """Tests for from_category."""

    def test_assigns_severity(self, registry: RuleRegistry) -> None:
        """All rules of the category get the severity."""
        config = from_category("network", "warn", registry=registry)
        assert config
        assert set(config.values()) == {RuleSeverity.WARN}
        for rule_id in config:
            assert registry.get(rule_id).category is RuleCategory.NETWORK

    def test_default_error(self, registry: RuleRegistry) -> None:
        """Severity defaults to error."""
        config = from_category(RuleCategory.DESTRUCTIVE, registry=registry)
        assert "linux/no-delete-root" in config
        assert config["linux/no-delete-root"] is RuleSeverity.ERROR


class TestPlatformBundles:
    """Tests for recommended and strict."""

    def test_recommended_linux(self) -> None:
        """Recommended includes security, dev context and the platform pack."""
        config = recommended("linux")
        assert "env/mask-aws" in config
        assert "fs/hide-node-modules" in config
        assert "linux/no-delete-root" in config
        assert "win/no-delete-system32" not in config

    def test_recommended_windows(self) -> None:
        """The platform pack follows the platform argument."""
        config = recommended("windows")
        assert "win/no-delete-system32" in config
        assert "linux/no-delete-root" not in config

    def test_recommended_defaults_to_running_platform(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without a platform the running one is used."""
        monkeypatch.setattr("sys.platform", "darwin")
        assert "darwin/hide-keychain" in recommended()

    def test_strict_superset_of_security(self) -> None:
        """Strict contains the strict security pack."""
        config = strict("linux")
        for rule_id in RULE_PACKS["security:strict"].rules:
            assert rule_id in config


class TestListing:
    """Tests for list_packs and list_rules."""

    def test_list_packs(self) -> None:
        """All pack names are listed."""
        names = list_packs()
        assert "security:recommended" in names
        assert "minimal" in names
        assert len(names) == 9

    def test_list_rules(self, registry: RuleRegistry) -> None:
        """list_rules returns registry ids."""
        assert list_rules(registry) == registry.ids()

    def test_packs_only_reference_known_rules(self, registry: RuleRegistry) -> None:
        """Every pack entry exists in the built-in registry."""
        for name, pack in RULE_PACKS.items():
            for rule_id in pack.rules:
                assert rule_id in registry, f"{name}: {rule_id}"
