"""
Config builder for the named rule system.

Expands a RulesConfig (rule id -> severity) into a concrete VeilConfig for a
target platform.

How it works:
    1. Entries are processed in RulesConfig insertion order
    2. Rules set to "off" are skipped
    3. Unknown ids are skipped silently, so configs written for newer rule
       sets keep loading
    4. Rules that do not apply to the platform are skipped
    5. Remaining rules contribute their file/env/cli rules in declaration order
"""

import logging
import sys

from veil.rules.registry import RuleRegistry
from veil.schema import (
    CliRule,
    EnvRule,
    FileRule,
    Platform,
    RulesConfig,
    RuleSeverity,
    VeilConfig,
    resolve_severity,
)

logger = logging.getLogger(__name__)


def detect_platform() -> Platform:
    """Map the running interpreter's platform to a rule platform."""
    if sys.platform.startswith("win"):
        return Platform.WINDOWS
    if sys.platform == "darwin":
        return Platform.DARWIN
    return Platform.LINUX


def build_config_from_rules(
    rules_config: RulesConfig,
    platform: Platform | str | None = None,
    *,
    registry: RuleRegistry,
) -> VeilConfig:
    """
    Materialize the concrete rules of every enabled, applicable named rule.

    Args:
        rules_config: Mapping of rule id to severity (or (severity, options))
        platform: Target platform; defaults to the running platform
        registry: Where rule ids are resolved

    Returns:
        A VeilConfig with no injectors
    """
    target = Platform(platform) if platform is not None else detect_platform()

    file_rules: list[FileRule] = []
    env_rules: list[EnvRule] = []
    cli_rules: list[CliRule] = []

    for rule_id, setting in rules_config.items():
        if resolve_severity(setting) is RuleSeverity.OFF:
            continue

        named = registry.get(rule_id)
        if named is None:
            logger.debug("Skipping unknown rule id %s", rule_id)
            continue

        if not named.applies_to(target):
            logger.debug("Skipping %s: not applicable to %s", rule_id, target.value)
            continue

        file_rules.extend(named.file_rules)
        env_rules.extend(named.env_rules)
        cli_rules.extend(named.cli_rules)

    return VeilConfig(file_rules=file_rules, env_rules=env_rules, cli_rules=cli_rules)


def extend_rules(base: RulesConfig, overrides: RulesConfig) -> RulesConfig:
    """Overlay overrides onto base; an override wins per rule id."""
    return {**base, **overrides}


def get_recommended_rules(
    platform: Platform | str | None = None,
    *,
    registry: RuleRegistry,
) -> RulesConfig:
    """Default severities of every registered rule applicable to a platform."""
    target = Platform(platform) if platform is not None else detect_platform()
    return {
        rule.id: rule.default_severity
        for rule in registry.by_platform(target)
        if rule.default_severity is not RuleSeverity.OFF
    }
