"""
Named rule system for Veil.

ESLint-style rule ids ("linux/no-delete-root", "env/mask-aws") with a
category, applicable platforms and a default severity. A RulesConfig maps
ids to severities; the builder turns it into concrete rules.

Key concepts:
    - RuleRegistry: Catalog of named rules, owned by the caller
    - RULE_PACKS: Curated lists of rule ids ("security:recommended")
    - build_config_from_rules: RulesConfig + platform -> VeilConfig
"""

from veil.rules.builder import (
    build_config_from_rules,
    detect_platform,
    extend_rules,
    get_recommended_rules,
)
from veil.rules.packs import (
    RULE_PACKS,
    from_category,
    from_packs,
    list_packs,
    list_rules,
    recommended,
    strict,
)
from veil.rules.platform import (
    all_builtin_rules,
    cross_platform_rules,
    darwin_rules,
    linux_rules,
    register_platform_rules,
    windows_rules,
)
from veil.rules.registry import RuleRegistry, create_default_registry

__all__ = [
    "RULE_PACKS",
    "RuleRegistry",
    "all_builtin_rules",
    "build_config_from_rules",
    "create_default_registry",
    "cross_platform_rules",
    "darwin_rules",
    "detect_platform",
    "extend_rules",
    "from_category",
    "from_packs",
    "get_recommended_rules",
    "linux_rules",
    "list_packs",
    "list_rules",
    "recommended",
    "register_platform_rules",
    "strict",
    "windows_rules",
]
