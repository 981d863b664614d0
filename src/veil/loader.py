"""
Config file loading for Veil.

Finds and parses ``.veilrc.json`` / ``.veilrc.yaml`` style config files
into a VeilConfig.

Config file shape (JSON or YAML):

    extends: [security:recommended, platform:linux]   # rule packs
    rules: {fs/hide-vcs: off, env/mask-aws: error}    # per-id overrides
    platform: linux                                   # defaults to running platform
    fileRules:
      - {match: node_modules, action: deny}
      - {match: "^secrets/", action: deny}            # "^" or "|" -> regex
      - {match: {regex: "\\.pem$", flags: i}, action: deny}
      - {match: {literal: "a|b"}, action: deny}

Design Decisions:
    - Serialized string patterns starting with "^" or containing "|" are
      compiled as case-insensitive regexes; all other strings stay literal.
      The tagged {regex: ...} / {literal: ...} forms bypass that heuristic
    - Pack and named-rule expansion comes first, then hand-written rules
    - Fail-open is the default: a broken config file is logged and treated
      as "no config" (allow everything). fail_open=False raises instead
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from veil.compose import merge_configs
from veil.errors import ConfigLoadError, ConfigParseError
from veil.rules.builder import build_config_from_rules, extend_rules
from veil.rules.packs import from_packs
from veil.rules.registry import RuleRegistry, create_default_registry
from veil.schema import VeilConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = (".veilrc.json", ".veilrc.yaml", ".veilrc.yml", "veil.yaml")

_RULE_LIST_KEYS = {
    "file_rules": ("fileRules", "file_rules"),
    "env_rules": ("envRules", "env_rules"),
    "cli_rules": ("cliRules", "cli_rules"),
}
_KNOWN_KEYS = {"extends", "rules", "platform", "$schema"} | {
    key for keys in _RULE_LIST_KEYS.values() for key in keys
}

_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}


def find_config_dir(start: Path | str) -> Path | None:
    """
    Walk up from start and return the first directory holding a config file.

    Returns:
        The directory, or None if no ancestor has one
    """
    start = Path(start).resolve()
    for directory in (start, *start.parents):
        if any((directory / name).is_file() for name in CONFIG_FILENAMES):
            return directory
    return None


def find_config_file(config_dir: Path | str) -> Path | None:
    """Return the first config file present in a directory (in CONFIG_FILENAMES order)."""
    config_dir = Path(config_dir)
    for name in CONFIG_FILENAMES:
        candidate = config_dir / name
        if candidate.is_file():
            return candidate
    return None


def convert_match(value: Any) -> str | re.Pattern[str]:
    """
    Rebuild a rule pattern from its serialized form.

    Raises:
        ConfigParseError: If the pattern is not a string or tagged mapping,
            or the regex does not compile
    """
    if isinstance(value, re.Pattern):
        return value

    if isinstance(value, str):
        if value.startswith("^") or "|" in value:
            return _compile(value, re.IGNORECASE)
        return value

    if isinstance(value, dict):
        if "literal" in value:
            return str(value["literal"])
        if "regex" in value:
            flags = 0
            for flag in str(value.get("flags", "")):
                if flag not in _REGEX_FLAGS:
                    raise ConfigParseError(detail=f"Unknown regex flag {flag!r}")
                flags |= _REGEX_FLAGS[flag]
            return _compile(str(value["regex"]), flags)

    raise ConfigParseError(detail=f"Unsupported pattern: {value!r}")


def _compile(source: str, flags: int) -> re.Pattern[str]:
    try:
        return re.compile(source, flags)
    except re.error as e:
        raise ConfigParseError(detail=f"Invalid regex {source!r}: {e}") from e


def parse_config_data(
    data: Any,
    registry: RuleRegistry | None = None,
) -> VeilConfig:
    """
    Build a VeilConfig from parsed JSON/YAML data.

    Args:
        data: Mapping as produced by json.loads / yaml.safe_load
        registry: Registry for "extends"/"rules"; the built-in rules when omitted

    Raises:
        ConfigParseError: If the data has the wrong shape or fails validation
    """
    if data is None:
        return VeilConfig()
    if not isinstance(data, dict):
        raise ConfigParseError(detail=f"Expected a mapping, got {type(data).__name__}")

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ConfigParseError(detail=f"Unknown config keys: {', '.join(unknown)}")

    configs: list[VeilConfig] = []

    extends = data.get("extends")
    rules = data.get("rules")
    if extends is not None or rules is not None:
        if isinstance(extends, str):
            extends = [extends]
        if extends is not None and (
            not isinstance(extends, list) or not all(isinstance(name, str) for name in extends)
        ):
            raise ConfigParseError(detail="'extends' must be a pack name or list of pack names")
        if rules is not None and not isinstance(rules, dict):
            raise ConfigParseError(detail="'rules' must map rule ids to severities")

        rules_config = extend_rules(from_packs(*(extends or [])), rules or {})
        try:
            configs.append(
                build_config_from_rules(
                    rules_config,
                    data.get("platform"),
                    registry=registry if registry is not None else create_default_registry(),
                )
            )
        except ValueError as e:
            raise ConfigParseError(detail=str(e)) from e

    hand_written: dict[str, list[dict[str, Any]]] = {}
    for field_name, keys in _RULE_LIST_KEYS.items():
        for key in keys:
            if key not in data:
                continue
            raw_rules = data[key]
            if not isinstance(raw_rules, list):
                raise ConfigParseError(detail=f"'{key}' must be a list of rules")
            hand_written.setdefault(field_name, []).extend(
                _convert_rule(raw_rule, key) for raw_rule in raw_rules
            )

    try:
        configs.append(VeilConfig.model_validate(hand_written))
    except ValidationError as e:
        raise ConfigParseError(detail=str(e)) from e

    return merge_configs(*configs)


def _convert_rule(raw_rule: Any, key: str) -> dict[str, Any]:
    if not isinstance(raw_rule, dict) or "match" not in raw_rule:
        raise ConfigParseError(detail=f"Each entry of '{key}' needs a 'match'")
    rule = dict(raw_rule)
    if "safeAlternatives" in rule:
        rule["safe_alternatives"] = rule.pop("safeAlternatives")
    rule["match"] = convert_match(rule["match"])
    return rule


def parse_json_config(text: str, registry: RuleRegistry | None = None) -> VeilConfig:
    """Parse a JSON config document."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigParseError(detail=f"Invalid JSON: {e}") from e
    return parse_config_data(data, registry)


def parse_yaml_config(text: str, registry: RuleRegistry | None = None) -> VeilConfig:
    """Parse a YAML config document."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigParseError(detail=f"Invalid YAML: {e}") from e
    return parse_config_data(data, registry)


def load_config(
    config_dir: Path | str,
    fail_open: bool = True,
    registry: RuleRegistry | None = None,
) -> VeilConfig | None:
    """
    Load the config file of a directory.

    Args:
        config_dir: Directory to look in (see find_config_dir)
        fail_open: Log and return None on errors instead of raising
        registry: Registry for "extends"/"rules"

    Returns:
        The parsed config, or None when there is no config file (or it is
        broken and fail_open is set)

    Raises:
        ConfigLoadError: If the file is broken and fail_open is False
    """
    path = find_config_file(config_dir)
    if path is None:
        return None

    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix == ".json":
            return parse_json_config(text, registry)
        return parse_yaml_config(text, registry)
    except (OSError, UnicodeDecodeError, ConfigParseError) as e:
        if fail_open:
            logger.error("Failed to load %s, continuing without rules: %s", path, e)
            return None
        raise ConfigLoadError(path=str(path), underlying_error=str(e)) from e
