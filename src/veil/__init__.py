"""
Veil - Control what AI agents see on your machine.

Veil sits between an agent and three resources: files, environment
variables and shell commands. Per access it decides whether the agent
sees the real value, an injected one, a masked one, a rewritten command,
or a denial that explains why.

It provides:
- Ordered, first-match-wins rules for files, env vars and commands
- ESLint-style named rules, rule packs and presets
- An audit trail of every decision

Example usage:
    >>> from veil import PRESET_RECOMMENDED, create_veil
    >>> veil = create_veil(PRESET_RECOMMENDED)
    >>> veil.check_file("node_modules/lodash/index.js").ok
    False

    $ veil check command "rm -rf /" --preset recommended
    $ VEIL_ENABLED=1 veil wrap git push --force
"""

__version__ = "0.1.0"
__author__ = "Veil Contributors"

from veil.compose import extend_rules, merge_configs
from veil.matching import apply_mask, evaluate_rules, matches_pattern
from veil.policy.engine import Veil, create_veil
from veil.presets import (
    PRESET_CI,
    PRESET_MINIMAL,
    PRESET_RECOMMENDED,
    PRESET_STRICT,
    PRESETS,
)
from veil.rules import RuleRegistry, create_default_registry
from veil.schema import (
    CliRule,
    EnvRule,
    FileRule,
    Injectors,
    InterceptedCall,
    VeilBlocked,
    VeilConfig,
    VeilResult,
    VeilSuccess,
)

__all__ = [
    "__version__",
    "__author__",
    "CliRule",
    "EnvRule",
    "FileRule",
    "Injectors",
    "InterceptedCall",
    "PRESETS",
    "PRESET_CI",
    "PRESET_MINIMAL",
    "PRESET_RECOMMENDED",
    "PRESET_STRICT",
    "RuleRegistry",
    "Veil",
    "VeilBlocked",
    "VeilConfig",
    "VeilResult",
    "VeilSuccess",
    "apply_mask",
    "create_default_registry",
    "create_veil",
    "evaluate_rules",
    "extend_rules",
    "matches_pattern",
    "merge_configs",
]
