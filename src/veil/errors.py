"""
Exception hierarchy for Veil.

All Veil exceptions inherit from VeilError, allowing callers to catch
all Veil-specific exceptions with a single except clause.

Policy checks never raise: a blocked access is a normal VeilBlocked result.
These exceptions belong to the collaborators around the core (config
loading, rule registration, command execution).

Exception Categories:
    - ConfigError: Config file could not be read, parsed or validated
    - RuleError: Invalid named rule or rule definition
    - CommandError: Command was blocked, timed out or failed to run
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Config errors: 1xxx
ERROR_CONFIG_LOAD = 1001
ERROR_CONFIG_PARSE = 1002

# Rule errors: 2xxx
ERROR_RULE_INVALID = 2001

# Command errors: 3xxx
ERROR_COMMAND_BLOCKED = 3001
ERROR_COMMAND_TIMEOUT = 3002
ERROR_COMMAND_EXECUTION = 3003


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class VeilError(Exception):
    """
    Base exception for all Veil errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Config Errors
# =============================================================================


@dataclass
class ConfigError(VeilError):
    """
    Base class for configuration errors.

    Attributes:
        path: The config file involved, if any
    """

    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["path"] = self.path


@dataclass
class ConfigLoadError(ConfigError):
    """Raised in fail-closed mode when a config file cannot be loaded."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to load config {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_LOAD
        if not self.suggestion:
            self.suggestion = "Fix the config file or load it with fail_open=True"
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class ConfigParseError(ConfigError):
    """Raised when config content is not valid JSON/YAML or has the wrong shape."""

    detail: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid config: {self.detail}"
        if self.code == 0:
            self.code = ERROR_CONFIG_PARSE
        super().__post_init__()
        self.context["detail"] = self.detail


# =============================================================================
# Rule Errors
# =============================================================================


@dataclass
class RuleError(VeilError):
    """
    Base class for rule errors.

    Attributes:
        rule_id: The named rule involved, if any
    """

    rule_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["rule_id"] = self.rule_id


@dataclass
class InvalidRuleError(RuleError):
    """Raised when a rule definition cannot be used."""

    detail: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid rule {self.rule_id}: {self.detail}"
        if self.code == 0:
            self.code = ERROR_RULE_INVALID
        super().__post_init__()
        self.context["detail"] = self.detail


# =============================================================================
# Command Errors
# =============================================================================


@dataclass
class CommandError(VeilError):
    """
    Base class for command errors.

    Attributes:
        command: The command line involved
    """

    command: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["command"] = self.command


@dataclass
class CommandBlockedError(CommandError):
    """Raised by callers that prefer an exception over a VeilBlocked result."""

    reason: str = ""
    safe_alternatives: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Command blocked: {self.reason}"
        if self.code == 0:
            self.code = ERROR_COMMAND_BLOCKED
        if not self.suggestion and self.safe_alternatives:
            self.suggestion = "Try instead: " + ", ".join(self.safe_alternatives)
        super().__post_init__()
        self.context.update({
            "reason": self.reason,
            "safe_alternatives": self.safe_alternatives,
        })


@dataclass
class CommandTimeoutError(CommandError):
    """Raised when a command exceeds its timeout."""

    timeout_seconds: float = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Command timed out after {self.timeout_seconds}s"
        if self.code == 0:
            self.code = ERROR_COMMAND_TIMEOUT
        if not self.suggestion:
            self.suggestion = "Increase the timeout or run a narrower command"
        super().__post_init__()
        self.context["timeout_seconds"] = self.timeout_seconds


@dataclass
class CommandExecutionError(CommandError):
    """Raised when a command cannot be started."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to execute command: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_COMMAND_EXECUTION
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error
