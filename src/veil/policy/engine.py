"""
Policy Engine for Veil.

The policy engine decides what an automated caller gets to see: real
values, injected values, masked values, rewritten commands, or a denial
that explains itself.

Design Principles:
    - First match wins: rules are evaluated in list order
    - Injectors first: a non-None injector result is authoritative and
      bypasses rule evaluation
    - Never raises: every check returns VeilSuccess or VeilBlocked
    - Auditable: every check appends exactly one InterceptedCall

How it works:
    1. Check receives a target (path, variable name or command)
    2. The injector for that resource kind is consulted
    3. Otherwise the rules of that kind are evaluated
    4. The resolved action becomes a result and an audit record

Security Note:
    Veil is advisory. It does not sandbox anything; it only answers
    honestly for callers that consult it.
"""

import logging
import os
import re
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from veil.compose import merge_configs
from veil.matching import RuleEvaluation, apply_mask, evaluate_rules
from veil.schema import (
    BlockDetails,
    CliRule,
    InterceptedCall,
    ResourceKind,
    RuleAction,
    VeilBlocked,
    VeilConfig,
    VeilResult,
    VeilSuccess,
)

logger = logging.getLogger(__name__)

# Context strings recorded when an injector answered
INJECTOR_REFS: dict[str, str] = {
    "files": "injectors.files",
    "directories": "injectors.directories",
    "env": "injectors.env",
}


class Veil:
    """
    A policy instance over one effective VeilConfig.

    Usage:
        veil = Veil(PRESET_RECOMMENDED)
        result = veil.check_file("node_modules/lodash/index.js")
        if result.ok:
            # read the file
        else:
            print(result.reason)

    Attributes:
        config: The effective configuration
        environ: Environment mapping read by get_env/get_visible_env
        _calls: Audit log, append-only between clears
        _context: Context string of the most recent check
        _lock: Guards the audit log and context
    """

    def __init__(
        self,
        config: VeilConfig | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """
        Initialize a policy instance.

        Args:
            config: Effective configuration (empty config allows everything)
            environ: Environment to read; defaults to os.environ
        """
        self.config = config if config is not None else VeilConfig()
        self.environ: Mapping[str, str] = environ if environ is not None else os.environ
        self._calls: list[InterceptedCall] = []
        self._context: str | None = None
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return (
            f"Veil(file_rules={len(self.config.file_rules)}, "
            f"env_rules={len(self.config.env_rules)}, "
            f"cli_rules={len(self.config.cli_rules)})"
        )

    # =========================================================================
    # Files
    # =========================================================================

    def check_file(self, path: str) -> VeilResult:
        """
        Check whether a file may be accessed.

        Returns:
            VeilSuccess with injected content as value (or None), or
            VeilBlocked when a deny rule matches
        """
        injector = self.config.injectors.files
        if injector is not None:
            content = injector(path)
            if content is not None:
                return self._inject(ResourceKind.FILE, path, content, INJECTOR_REFS["files"])

        return self._check_path(path)

    def check_directory(self, path: str) -> VeilResult:
        """
        Check whether a directory may be listed.

        Returns:
            VeilSuccess with an injected listing as value (or None), or
            VeilBlocked when a deny rule matches
        """
        injector = self.config.injectors.directories
        if injector is not None:
            listing = injector(path)
            if listing is not None:
                return self._inject(
                    ResourceKind.FILE, path, list(listing), INJECTOR_REFS["directories"]
                )

        return self._check_path(path)

    def filter_paths(self, paths: Iterable[str]) -> list[str]:
        """Keep the paths whose check_file succeeds, in input order."""
        return [path for path in paths if self.check_file(path).ok]

    def _check_path(self, path: str) -> VeilResult:
        evaluation = evaluate_rules(path, self.config.file_rules)
        if evaluation is not None and evaluation.action is RuleAction.DENY:
            return self._block(ResourceKind.FILE, path, evaluation)

        context = self._record(ResourceKind.FILE, path, RuleAction.ALLOW, evaluation)
        return VeilSuccess(context=context)

    # =========================================================================
    # Environment
    # =========================================================================

    def get_env(self, key: str) -> VeilResult:
        """
        Read an environment variable through the policy.

        Returns:
            VeilSuccess with the real, masked or injected value (None when
            the variable is unset), or VeilBlocked when a deny rule matches
        """
        injector = self.config.injectors.env
        if injector is not None:
            injected = injector(key)
            if injected is not None:
                return self._inject(ResourceKind.ENV, key, injected, INJECTOR_REFS["env"])

        evaluation = evaluate_rules(key, self.config.env_rules)
        value = self.environ.get(key)

        if evaluation is None or evaluation.action is RuleAction.ALLOW:
            context = self._record(ResourceKind.ENV, key, RuleAction.ALLOW, evaluation)
            return VeilSuccess(value=value, context=context)

        if evaluation.action is RuleAction.DENY:
            return self._block(ResourceKind.ENV, key, evaluation)

        # mask
        if value is not None:
            value = apply_mask(value, evaluation.rule.replacement)
        context = self._record(ResourceKind.ENV, key, RuleAction.MASK, evaluation)
        return VeilSuccess(value=value, context=context)

    def get_visible_env(self) -> dict[str, str | None]:
        """
        Snapshot of the environment as the caller may see it.

        Denied variables are left out; masked ones carry their masked value.
        """
        visible: dict[str, str | None] = {}
        for key in list(self.environ.keys()):
            result = self.get_env(key)
            if result.ok:
                visible[key] = result.value
        return visible

    # =========================================================================
    # Commands
    # =========================================================================

    def check_command(self, command: str) -> VeilResult:
        """
        Check a shell command line.

        Returns:
            VeilSuccess whose command is the one to execute (rewritten when a
            rewrite rule matched), or VeilBlocked with safe alternatives
        """
        evaluation = evaluate_rules(command, self.config.cli_rules)

        if evaluation is None or evaluation.action is RuleAction.ALLOW:
            context = self._record(ResourceKind.CLI, command, RuleAction.ALLOW, evaluation)
            return VeilSuccess(command=command, context=context)

        if evaluation.action is RuleAction.DENY:
            return self._block(
                ResourceKind.CLI,
                command,
                evaluation,
                safe_alternatives=evaluation.rule.safe_alternatives,
            )

        rewritten = rewrite_command(command, evaluation.rule)
        logger.debug("Rewrote command via %s: %r -> %r", evaluation.policy_ref, command, rewritten)
        context = self._record(ResourceKind.CLI, command, RuleAction.REWRITE, evaluation)
        return VeilSuccess(command=rewritten, context=context)

    # =========================================================================
    # Composition helpers
    # =========================================================================

    def guard(
        self,
        kind: ResourceKind | str,
        target: str,
        operation: Callable[[VeilSuccess], Any],
    ) -> VeilResult:
        """
        Run a check and only call operation when it succeeds.

        Example:
            result = veil.guard("file", "src/app.py", lambda _: Path("src/app.py").read_text())

        Returns:
            The blocked result untouched, or VeilSuccess whose value is the
            operation's return value
        """
        kind = ResourceKind(kind)
        if kind is ResourceKind.FILE:
            result = self.check_file(target)
        elif kind is ResourceKind.ENV:
            result = self.get_env(target)
        else:
            result = self.check_command(target)

        if not result.ok:
            return result

        return result.model_copy(update={"value": operation(result)})

    def scope(self, extra: VeilConfig) -> "Veil":
        """
        Derive an independent instance with extra rules appended.

        The new instance evaluates this instance's rules first, shares the
        environment and starts with an empty audit log.
        """
        return Veil(merge_configs(self.config, extra), environ=self.environ)

    # =========================================================================
    # Audit log
    # =========================================================================

    def get_intercepted_calls(self) -> tuple[InterceptedCall, ...]:
        """Snapshot of the audit log in order of occurrence."""
        with self._lock:
            return tuple(self._calls)

    def clear_intercepted_calls(self) -> None:
        """Reset the audit log; sequence numbers restart at 0."""
        with self._lock:
            self._calls.clear()

    def get_context(self) -> str | None:
        """Context of the most recent check (None before any check)."""
        with self._lock:
            return self._context

    # =========================================================================
    # Internals
    # =========================================================================

    def _block(
        self,
        kind: ResourceKind,
        target: str,
        evaluation: RuleEvaluation,
        safe_alternatives: list[str] | None = None,
    ) -> VeilBlocked:
        self._record(kind, target, RuleAction.DENY, evaluation)
        reason = evaluation.rule.reason or f"Blocked by {evaluation.policy_ref}"
        return VeilBlocked(
            reason=reason,
            safe_alternatives=list(safe_alternatives) if safe_alternatives else None,
            details=BlockDetails(
                type=kind,
                target=target,
                action=RuleAction.DENY,
                policy_ref=evaluation.policy_ref,
            ),
        )

    def _inject(
        self,
        kind: ResourceKind,
        target: str,
        value: Any,
        injector_ref: str,
    ) -> VeilSuccess:
        self._append(kind, target, RuleAction.INJECT, None, injector_ref)
        return VeilSuccess(value=value, context=injector_ref)

    def _record(
        self,
        kind: ResourceKind,
        target: str,
        action: RuleAction,
        evaluation: RuleEvaluation | None,
    ) -> str | None:
        """Append an audit record and return the policy ref it carries."""
        if evaluation is None:
            return self._append(kind, target, action, None, None)
        return self._append(kind, target, action, evaluation.rule.reason, evaluation.policy_ref)

    def _append(
        self,
        kind: ResourceKind,
        target: str,
        action: RuleAction,
        reason: str | None,
        policy_ref: str | None,
    ) -> str | None:
        with self._lock:
            self._calls.append(
                InterceptedCall(
                    type=kind,
                    target=target,
                    action=action,
                    reason=reason,
                    policy_ref=policy_ref,
                    sequence=len(self._calls),
                )
            )
            self._context = policy_ref
        logger.debug("%s %s -> %s (%s)", kind.value, target, action.value, policy_ref or "default")
        return policy_ref


def rewrite_command(command: str, rule: CliRule) -> str:
    """
    Apply a rewrite rule to a command line.

    The replace template wins: regex rules substitute the first match
    (group references allowed), literal rules replace the first occurrence.
    Without a template the first safe alternative is used; without either
    the command is returned unchanged.
    """
    if rule.replace is not None:
        if isinstance(rule.match, re.Pattern):
            return rule.match.sub(rule.replace, command, count=1)
        return command.replace(rule.match, rule.replace, 1)
    if rule.safe_alternatives:
        return rule.safe_alternatives[0]
    return command


def create_veil(
    config: VeilConfig | None = None,
    environ: Mapping[str, str] | None = None,
) -> Veil:
    """Create a policy instance; with no config everything is allowed."""
    return Veil(config, environ=environ)
