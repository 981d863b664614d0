"""
Policy Engine module for Veil.

This module evaluates file, environment and command access against a
VeilConfig and records every decision.

Key concepts:
    - Veil: A policy instance over one effective config, with its audit log
    - VeilSuccess/VeilBlocked: The result of a check (never an exception)
    - Injectors: Caller hooks that answer before rules are evaluated

Checks are:
    - Ordered: First matching rule wins
    - Predictable: Same inputs always produce same decisions
    - Auditable: Every check appends one InterceptedCall
"""

from veil.policy.engine import Veil, create_veil, rewrite_command

__all__ = [
    "Veil",
    "create_veil",
    "rewrite_command",
]
