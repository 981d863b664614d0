"""
Named rule registry for Veil.

The registry is the catalog of named rules (e.g. "linux/no-delete-root").
Rule packs, category selection and the config builder all resolve rule ids
through a registry.

Design:
    - No module-level registry; the composition root creates one and passes
      it to resolvers, so tests and processes never share hidden state
    - Thread-safe registration and lookup
    - Re-registering an id replaces the previous rule (last write wins) and
      logs a warning, so silent overwrites show up in logs

Usage:
    from veil.rules.registry import create_default_registry

    registry = create_default_registry()
    rule = registry.get("linux/no-delete-root")
"""

import logging
import threading
from typing import Iterable, Iterator

from veil.errors import InvalidRuleError
from veil.schema import NamedRule, Platform, RuleCategory

logger = logging.getLogger(__name__)


class RuleRegistry:
    """
    Registry for looking up named rules by id.

    Rules keep their registration order; replacing an id keeps its
    original position.

    Attributes:
        _rules: Internal mapping of rule ids to named rules
        _lock: Guards registration against concurrent lookups
    """

    def __init__(self, rules: Iterable[NamedRule] = ()) -> None:
        """Initialize a registry, optionally pre-populated."""
        self._rules: dict[str, NamedRule] = {}
        self._lock = threading.RLock()
        self.register_all(rules)

    def register(self, rule: NamedRule) -> None:
        """
        Register a named rule.

        If a rule with the same id is already registered it is replaced.

        Raises:
            InvalidRuleError: If rule is not a NamedRule
        """
        if not isinstance(rule, NamedRule):
            raise InvalidRuleError(
                rule_id=str(getattr(rule, "id", rule)),
                detail=f"expected NamedRule, got {type(rule).__name__}",
            )

        with self._lock:
            if rule.id in self._rules and self._rules[rule.id] != rule:
                logger.warning("Replacing registered rule %s", rule.id)
            self._rules[rule.id] = rule

    def register_all(self, rules: Iterable[NamedRule]) -> None:
        """Register several rules in order."""
        for rule in rules:
            self.register(rule)

    def get(self, rule_id: str) -> NamedRule | None:
        """Look up a rule by id, returning None if it is not registered."""
        with self._lock:
            return self._rules.get(rule_id)

    def all(self) -> list[NamedRule]:
        """All registered rules, in registration order."""
        with self._lock:
            return list(self._rules.values())

    def by_category(self, category: RuleCategory | str) -> list[NamedRule]:
        """All rules in a category."""
        category = RuleCategory(category)
        return [rule for rule in self.all() if rule.category is category]

    def by_platform(self, platform: Platform | str) -> list[NamedRule]:
        """All rules applicable to a platform, including cross-platform rules."""
        return [rule for rule in self.all() if rule.applies_to(platform)]

    def ids(self) -> list[str]:
        """All registered ids, in registration order."""
        with self._lock:
            return list(self._rules.keys())

    def clear(self) -> None:
        """Remove all rules from the registry."""
        with self._lock:
            self._rules.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._rules)

    def __iter__(self) -> Iterator[NamedRule]:
        return iter(self.all())

    def __contains__(self, rule_id: object) -> bool:
        with self._lock:
            return rule_id in self._rules

    def __repr__(self) -> str:
        return f"<RuleRegistry: {len(self)} rules>"


def create_default_registry() -> RuleRegistry:
    """Create a registry with all built-in platform and cross-platform rules."""
    from veil.rules.platform import register_platform_rules

    registry = RuleRegistry()
    register_platform_rules(registry)
    return registry
