"""
Schema definitions for Veil.

This module defines the Pydantic models used throughout Veil:
- FileRule/EnvRule/CliRule: What to do when a path, variable or command matches
- VeilConfig/Injectors: The effective configuration a policy instance evaluates
- NamedRule/RulePack/RulesConfig: The ESLint-style named rule system
- VeilSuccess/VeilBlocked: The result of a single check
- InterceptedCall: One entry of the audit trail

Design Decisions:
    - Every rule carries an explicit ``kind`` discriminant; the kind of a
      rule is never inferred from which optional fields happen to be set
    - Patterns are either literal strings (exact or substring match) or
      compiled regular expressions, kept as the caller supplied them
    - Models are immutable (frozen=True); rule lists keep caller order
    - Each rule kind validates the actions it supports
"""

import re
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Enums
# =============================================================================


class RuleAction(str, Enum):
    """
    Action taken when a rule matches.

    INJECT is never valid on a rule. It is the resolved action recorded when
    an injector supplied synthetic content instead of evaluating rules.
    """

    ALLOW = "allow"
    DENY = "deny"
    MASK = "mask"
    REWRITE = "rewrite"
    INJECT = "inject"


class ResourceKind(str, Enum):
    """The kind of resource a rule or check applies to."""

    FILE = "file"
    ENV = "env"
    CLI = "cli"


class Platform(str, Enum):
    """Platforms a named rule can apply to."""

    WINDOWS = "windows"
    DARWIN = "darwin"
    LINUX = "linux"
    ALL = "all"


class RuleCategory(str, Enum):
    """Categories used to group named rules."""

    SECURITY = "security"
    PRIVACY = "privacy"
    FILESYSTEM = "filesystem"
    CREDENTIALS = "credentials"
    DESTRUCTIVE = "destructive"
    NETWORK = "network"
    SYSTEM = "system"


class RuleSeverity(str, Enum):
    """
    Severity of a named rule in a RulesConfig.

    ERROR and WARN both materialize the rule; WARN is currently evaluated
    exactly like ERROR. OFF excludes the rule.
    """

    ERROR = "error"
    WARN = "warn"
    OFF = "off"


# Rule list names, used for policy references such as "file_rules[2]"
RULE_LIST_NAMES: dict[ResourceKind, str] = {
    ResourceKind.FILE: "file_rules",
    ResourceKind.ENV: "env_rules",
    ResourceKind.CLI: "cli_rules",
}


# =============================================================================
# Rule Models
# =============================================================================


class Rule(BaseModel):
    """
    Base shape shared by every rule kind.

    Attributes:
        match: Literal string (exact or substring match) or compiled regex
        action: What to do when the pattern matches
        reason: Human-readable explanation surfaced when the rule blocks
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed_actions: ClassVar[frozenset[RuleAction]] = frozenset()

    match: str | re.Pattern[str] = Field(
        ...,
        description="Literal substring/exact pattern or compiled regular expression",
        union_mode="left_to_right",
    )
    action: RuleAction = Field(..., description="Action to take on match")
    reason: str | None = Field(
        default=None,
        description="Why this rule exists (shown when it blocks)",
    )

    @field_validator("action")
    @classmethod
    def validate_action(cls, v: RuleAction) -> RuleAction:
        """Reject actions the rule kind does not support."""
        if v not in cls.allowed_actions:
            allowed = ", ".join(sorted(a.value for a in cls.allowed_actions))
            msg = f"Action '{v.value}' is not valid for {cls.__name__} (expected one of: {allowed})"
            raise ValueError(msg)
        return v

    @property
    def pattern_source(self) -> str:
        """The pattern as text, whether literal or compiled."""
        if isinstance(self.match, re.Pattern):
            return self.match.pattern
        return self.match


class FileRule(Rule):
    """Visibility rule for filesystem paths (allow or deny)."""

    allowed_actions: ClassVar[frozenset[RuleAction]] = frozenset(
        {RuleAction.ALLOW, RuleAction.DENY}
    )

    kind: Literal[ResourceKind.FILE] = ResourceKind.FILE


class EnvRule(Rule):
    """
    Rule for environment variable names.

    Attributes:
        replacement: Used verbatim instead of the generated mask when masking
    """

    allowed_actions: ClassVar[frozenset[RuleAction]] = frozenset(
        {RuleAction.ALLOW, RuleAction.DENY, RuleAction.MASK}
    )

    kind: Literal[ResourceKind.ENV] = ResourceKind.ENV
    replacement: str | None = Field(
        default=None,
        description="Replacement value used verbatim when masking",
    )


class CliRule(Rule):
    """
    Rule for shell command lines.

    Attributes:
        safe_alternatives: Commands suggested to the caller when this rule blocks
        replace: Rewrite template; for regex rules group references such as
            ``\\1`` are expanded
    """

    allowed_actions: ClassVar[frozenset[RuleAction]] = frozenset(
        {RuleAction.ALLOW, RuleAction.DENY, RuleAction.REWRITE}
    )

    kind: Literal[ResourceKind.CLI] = ResourceKind.CLI
    safe_alternatives: list[str] | None = Field(
        default=None,
        description="Suggested commands to use instead",
    )
    replace: str | None = Field(
        default=None,
        description="Rewrite template applied when action is 'rewrite'",
    )

    @model_validator(mode="after")
    def validate_replace(self) -> "CliRule":
        """Reject rewrite templates the regex cannot expand (e.g. missing groups)."""
        if self.replace is not None and isinstance(self.match, re.Pattern):
            try:
                self.match.sub(self.replace, "")
            except re.error as e:
                msg = f"Invalid rewrite template {self.replace!r}: {e}"
                raise ValueError(msg) from e
        return self


# =============================================================================
# Configuration Models
# =============================================================================


FileInjector = Callable[[str], str | None]
EnvInjector = Callable[[str], str | None]
DirectoryInjector = Callable[[str], list[str] | None]


class Injectors(BaseModel):
    """
    Caller-supplied hooks that provide synthetic content.

    Each hook returns None when it has nothing to inject, in which case the
    check falls through to rule evaluation.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    files: FileInjector | None = None
    env: EnvInjector | None = None
    directories: DirectoryInjector | None = None


class VeilConfig(BaseModel):
    """
    Effective configuration evaluated by a policy instance.

    Rule lists are evaluated in list order, first match wins.
    Both snake_case and camelCase list names are accepted on input.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    file_rules: list[FileRule] = Field(
        default_factory=list,
        validation_alias=AliasChoices("file_rules", "fileRules"),
    )
    env_rules: list[EnvRule] = Field(
        default_factory=list,
        validation_alias=AliasChoices("env_rules", "envRules"),
    )
    cli_rules: list[CliRule] = Field(
        default_factory=list,
        validation_alias=AliasChoices("cli_rules", "cliRules"),
    )
    injectors: Injectors = Field(default_factory=Injectors)


# =============================================================================
# Named Rule System
# =============================================================================


_RULE_ID_RE = re.compile(r"^[a-z0-9][a-z0-9-]*/[a-z0-9][a-z0-9-]*$")


class NamedRule(BaseModel):
    """
    A registry entry: a stable id that expands to concrete rules.

    Attributes:
        id: Unique id shaped "<domain>/<name>" (e.g. "linux/no-delete-root")
        description: One-line summary
        category: Grouping used by category selection
        platforms: Platforms the rule applies to ("all" for cross-platform)
        default_severity: Severity used by get_recommended_rules
        file_rules/env_rules/cli_rules: Concrete rules materialized in order
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., description="Unique rule id, '<domain>/<name>'")
    description: str = Field(..., description="Human-readable description")
    category: RuleCategory
    platforms: list[Platform] = Field(..., min_length=1)
    default_severity: RuleSeverity = RuleSeverity.ERROR
    file_rules: list[FileRule] = Field(default_factory=list)
    env_rules: list[EnvRule] = Field(default_factory=list)
    cli_rules: list[CliRule] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def validate_id_format(cls, v: str) -> str:
        """Validate '<domain>/<name>' id format."""
        if not _RULE_ID_RE.match(v):
            msg = f"Invalid rule id format: {v!r} (expected '<domain>/<name>')"
            raise ValueError(msg)
        return v

    def applies_to(self, platform: Platform | str) -> bool:
        """True if the rule applies to the platform (or to all platforms)."""
        platform = Platform(platform)
        return platform in self.platforms or Platform.ALL in self.platforms


class RulePack(BaseModel):
    """A named, curated list of named-rule ids."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    description: str
    rules: list[str] = Field(default_factory=list)


# A severity, or a (severity, options) pair. Options are inert metadata.
RuleSetting = RuleSeverity | str | tuple[RuleSeverity | str, dict[str, Any]]
RulesConfig = dict[str, RuleSetting]


def resolve_severity(setting: RuleSetting) -> RuleSeverity:
    """
    Extract the severity from a rule setting.

    Raises:
        ValueError: If the severity is not one of error/warn/off
    """
    if isinstance(setting, (tuple, list)):
        if not setting:
            raise ValueError("Empty rule setting (expected a severity or [severity, options])")
        setting = setting[0]
    if not isinstance(setting, str):
        raise ValueError(f"Invalid severity: {setting!r} (expected error, warn or off)")
    return RuleSeverity(setting)


# =============================================================================
# Runtime Models
# =============================================================================


class BlockDetails(BaseModel):
    """What was blocked and by which rule."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: ResourceKind
    target: str
    action: RuleAction
    policy_ref: str | None = None


class VeilSuccess(BaseModel):
    """
    A check that let the access through.

    Attributes:
        value: Injected content, directory listing, (masked) env value, or
            the return value of a guarded operation
        command: The command to execute (possibly rewritten)
        context: Why this outcome was reached, for surfacing to the caller
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    ok: Literal[True] = True
    value: Any = None
    command: str | None = None
    context: str | None = None


class VeilBlocked(BaseModel):
    """
    A check that was denied.

    Blocked results always explain why, and for commands what to do instead.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    ok: Literal[False] = False
    blocked: Literal[True] = True
    reason: str
    safe_alternatives: list[str] | None = None
    details: BlockDetails


VeilResult = VeilSuccess | VeilBlocked


class InterceptedCall(BaseModel):
    """
    One audit record.

    Attributes:
        type: Which resource kind was checked
        target: The path, variable name or command that was checked
        action: The resolved action (allow, deny, mask, rewrite or inject)
        reason: Rule reason when a rule matched
        policy_ref: Which rule decided, e.g. "env_rules[0]"
        sequence: Position of this record in its instance's audit log
        timestamp: When the check happened
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: ResourceKind
    target: str
    action: RuleAction
    reason: str | None = None
    policy_ref: str | None = None
    sequence: int = Field(..., ge=0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
