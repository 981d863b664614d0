"""
Rule packs and category selection.

A pack is a named, curated list of rule ids, much like an ESLint shareable
config. Packs only name rules; a RuleRegistry supplies the concrete rules
when the resulting RulesConfig is built into a VeilConfig.

Usage:
    rules = from_packs("security:recommended", "platform:linux")
    config = build_config_from_rules(rules, "linux", registry)
"""

import logging

from veil.rules.builder import detect_platform
from veil.rules.registry import RuleRegistry
from veil.schema import Platform, RuleCategory, RulePack, RulesConfig, RuleSeverity

logger = logging.getLogger(__name__)


_SECURITY_RECOMMENDED = [
    "env/mask-aws",
    "env/mask-azure",
    "env/mask-gcp",
    "env/deny-passwords",
    "env/mask-tokens",
    "env/mask-secrets",
    "env/deny-database-urls",
    "fs/hide-env-files",
    "fs/hide-private-keys",
    "cli/no-curl-pipe-bash",
    "cli/no-credential-echo",
]

RULE_PACKS: dict[str, RulePack] = {
    # Security
    "security:recommended": RulePack(
        name="Security Recommended",
        description="Essential security rules for any project",
        rules=_SECURITY_RECOMMENDED,
    ),
    "security:strict": RulePack(
        name="Security Strict",
        description="Maximum security - blocks more aggressively",
        rules=[
            *_SECURITY_RECOMMENDED,
            "fs/hide-docker-config",
            "fs/hide-npm-config",
            "fs/hide-git-credentials",
            "cli/no-wget-pipe-bash",
            "cli/no-curl-with-password",
        ],
    ),
    # Platforms
    "platform:windows": RulePack(
        name="Windows",
        description="Windows-specific protections",
        rules=[
            "win/no-delete-system32",
            "win/no-delete-windows",
            "win/no-delete-program-files",
            "win/no-format-drive",
            "win/no-delete-above-cwd",
            "win/no-modify-registry",
            "win/hide-ntuser",
            "win/hide-sam",
            "win/hide-credential-manager",
        ],
    ),
    "platform:darwin": RulePack(
        name="macOS",
        description="macOS-specific protections",
        rules=[
            "darwin/no-delete-system",
            "darwin/no-delete-library",
            "darwin/no-delete-applications",
            "darwin/no-delete-above-cwd",
            "darwin/hide-keychain",
            "darwin/no-security-dump",
            "darwin/hide-ssh",
            "darwin/no-disable-sip",
        ],
    ),
    "platform:linux": RulePack(
        name="Linux",
        description="Linux-specific protections",
        rules=[
            "linux/no-delete-root",
            "linux/no-delete-boot",
            "linux/no-delete-etc",
            "linux/no-delete-var",
            "linux/no-delete-above-cwd",
            "linux/no-delete-home-recursive",
            "linux/no-dd-to-disk",
            "linux/no-mkfs",
            "linux/hide-shadow",
            "linux/hide-ssh",
            "linux/hide-gnupg",
            "linux/no-fork-bomb",
            "linux/no-chmod-777-recursive",
        ],
    ),
    # Contexts
    "context:dev": RulePack(
        name="Development",
        description="Rules for local development",
        rules=[
            "fs/hide-node-modules",
            "fs/hide-vcs",
            "fs/hide-build-output",
            "fs/hide-env-files",
            "fs/hide-private-keys",
            "env/mask-tokens",
            "env/mask-secrets",
        ],
    ),
    "context:ci": RulePack(
        name="CI/CD",
        description="Rules for CI/CD pipelines",
        rules=[
            "env/mask-aws",
            "env/mask-azure",
            "env/mask-gcp",
            "env/deny-passwords",
            "env/mask-tokens",
            "fs/hide-private-keys",
            "cli/no-curl-pipe-bash",
        ],
    ),
    "context:production": RulePack(
        name="Production",
        description="Maximum protection for production environments",
        rules=[
            *_SECURITY_RECOMMENDED,
            "fs/hide-docker-config",
            "cli/no-curl-with-password",
        ],
    ),
    "minimal": RulePack(
        name="Minimal",
        description="Just the essentials",
        rules=["fs/hide-env-files", "env/deny-passwords", "env/mask-tokens"],
    ),
}

PLATFORM_PACKS: dict[Platform, str] = {
    Platform.WINDOWS: "platform:windows",
    Platform.DARWIN: "platform:darwin",
    Platform.LINUX: "platform:linux",
}


def from_packs(*pack_names: str) -> RulesConfig:
    """
    Build a RulesConfig enabling every rule of the named packs.

    Unknown pack names are logged and skipped.
    """
    config: RulesConfig = {}
    for pack_name in pack_names:
        pack = RULE_PACKS.get(pack_name)
        if pack is None:
            logger.warning("Unknown rule pack: %s", pack_name)
            continue
        for rule_id in pack.rules:
            config[rule_id] = RuleSeverity.ERROR
    return config


def from_category(
    category: RuleCategory | str,
    severity: RuleSeverity | str = RuleSeverity.ERROR,
    *,
    registry: RuleRegistry,
) -> RulesConfig:
    """Build a RulesConfig giving every registered rule of a category the severity."""
    severity = RuleSeverity(severity)
    return {rule.id: severity for rule in registry.by_category(category)}


def _platform_pack(platform: Platform | str | None) -> str:
    platform = Platform(platform) if platform is not None else detect_platform()
    return PLATFORM_PACKS.get(platform, "platform:linux")


def recommended(platform: Platform | str | None = None) -> RulesConfig:
    """Recommended rules for a platform (defaults to the running platform)."""
    return from_packs("security:recommended", "context:dev", _platform_pack(platform))


def strict(platform: Platform | str | None = None) -> RulesConfig:
    """Strict rules for a platform (defaults to the running platform)."""
    return from_packs("security:strict", "context:production", _platform_pack(platform))


def list_packs() -> list[str]:
    """All pack names."""
    return list(RULE_PACKS.keys())


def list_rules(registry: RuleRegistry) -> list[str]:
    """All rule ids registered in a registry."""
    return registry.ids()
