"""
Policy domain models.

A Policy is loaded once and never mutated; a Decision is produced per
evaluation and consumed immediately by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

BLOCKED_COMMANDS_RULE = "exec.blocked_commands"
BLOCKED_PATHS_RULE = "exec.blocked_paths"

PASS_REASON = "Command passes all policy checks"


class DecisionOutcome(Enum):
    """Outcome of a policy evaluation."""

    ALLOW = "ALLOW"
    BLOCK = "BLOCK"


@dataclass(frozen=True)
class Policy:
    """Ordered command and path blocking rules.

    Rule order is evaluation order; the first match wins.
    """

    blocked_command_rules: tuple[str, ...] = ()
    blocked_path_rules: tuple[str, ...] = ()

    @classmethod
    def from_rules(
        cls,
        blocked_command_rules: list[str] | tuple[str, ...] | None = None,
        blocked_path_rules: list[str] | tuple[str, ...] | None = None,
    ) -> Policy:
        return cls(
            blocked_command_rules=tuple(blocked_command_rules or ()),
            blocked_path_rules=tuple(blocked_path_rules or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "safeguards": {
                "exec": {
                    "blocked_commands": list(self.blocked_command_rules),
                    "blocked_paths": list(self.blocked_path_rules),
                }
            }
        }


@dataclass(frozen=True)
class Decision:
    """Result of evaluating one tool call against a policy."""

    outcome: DecisionOutcome
    reason: str = PASS_REASON
    triggered_rule: str | None = None
    elapsed_ms: float = 0.0
    matched_rule: str | None = field(default=None, compare=False)

    @property
    def is_blocked(self) -> bool:
        return self.outcome is DecisionOutcome.BLOCK

    @classmethod
    def allow(cls, elapsed_ms: float = 0.0) -> Decision:
        return cls(outcome=DecisionOutcome.ALLOW, elapsed_ms=elapsed_ms)

    @classmethod
    def block(
        cls,
        reason: str,
        triggered_rule: str,
        matched_rule: str | None = None,
        elapsed_ms: float = 0.0,
    ) -> Decision:
        return cls(
            outcome=DecisionOutcome.BLOCK,
            reason=reason,
            triggered_rule=triggered_rule,
            elapsed_ms=elapsed_ms,
            matched_rule=matched_rule,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "decision": self.outcome.value,
            "reason": self.reason,
            "elapsed_ms": self.elapsed_ms,
        }
        if self.triggered_rule:
            data["triggered_rule"] = self.triggered_rule
        if self.matched_rule:
            data["matched_rule"] = self.matched_rule
        return data
