"""
Config composition for Veil.

merge_configs combines configs from presets, packs and user overrides:

    - Rule lists are concatenated per kind in argument order, so rules from
      earlier configs are evaluated first (merge order is precedence order)
    - Injector hooks are merged per resource kind; a later config's hook
      replaces an earlier one, and an absent hook never clears one
    - Merging is associative: merge(a, merge(b, c)) == merge(merge(a, b), c)

RulesConfig overlays (extend_rules) live with the named rule builder.
"""

from veil.rules.builder import extend_rules
from veil.schema import Injectors, VeilConfig

__all__ = ["extend_rules", "merge_configs", "merge_injectors"]


def merge_injectors(*injectors: Injectors) -> Injectors:
    """Merge injector hooks; later non-None hooks win."""
    files = env = directories = None
    for hooks in injectors:
        if hooks.files is not None:
            files = hooks.files
        if hooks.env is not None:
            env = hooks.env
        if hooks.directories is not None:
            directories = hooks.directories
    return Injectors(files=files, env=env, directories=directories)


def merge_configs(*configs: VeilConfig) -> VeilConfig:
    """
    Merge configs in argument order.

    Example:
        merged = merge_configs(PRESET_MINIMAL, VeilConfig(file_rules=[...]))
        # PRESET_MINIMAL's file rules are evaluated before the custom ones
    """
    return VeilConfig(
        file_rules=[rule for config in configs for rule in config.file_rules],
        env_rules=[rule for config in configs for rule in config.env_rules],
        cli_rules=[rule for config in configs for rule in config.cli_rules],
        injectors=merge_injectors(*(config.injectors for config in configs)),
    )
