"""
Policy decision engine.

Maps a tool call (tool name plus parameters) to an ALLOW or BLOCK
decision. Only exec-like tools (name equal to or containing "exec") are
subject to rules; every other tool is allowed without evaluation.

Evaluation order:
    1. blocked command rules, in declared order (literal or regex)
    2. blocked path rules, in declared order (literal only)

The first matching rule wins. decide() never raises.
"""

from __future__ import annotations

import time
from typing import Any, Mapping

from safetyclawz.diagnostics import Diagnostics
from safetyclawz.policies.defaults import get_default_policy
from safetyclawz.policies.models import (
    BLOCKED_COMMANDS_RULE,
    BLOCKED_PATHS_RULE,
    Decision,
    Policy,
)
from safetyclawz.policies.patterns import command_matches, extract_command, path_matches

EXEC_TOOL_MARKER = "exec"


def is_exec_tool(tool_name: Any) -> bool:
    """Return True if the tool is subject to command and path rules."""
    return isinstance(tool_name, str) and EXEC_TOOL_MARKER in tool_name


class PolicyEngine:
    """Evaluates exec tool calls against an immutable policy."""

    def __init__(self, policy: Policy | None = None, diagnostics: Diagnostics | None = None):
        """
        Initialize the engine.

        Args:
            policy: Rules to enforce; the built-in default policy if None
            diagnostics: Sink for rule traces and decisions
        """
        self.policy = policy if policy is not None else get_default_policy()
        self.diagnostics = diagnostics or Diagnostics(verbose=False)

    def decide(self, tool_name: str, params: Mapping[str, Any] | None = None) -> Decision:
        """
        Decide whether a tool call may run.

        Args:
            tool_name: Name of the tool being invoked
            params: Tool parameters; the command is read from
                ``command`` then ``cmd``

        Returns:
            Decision with outcome, reason, triggered rule and elapsed time
        """
        start = time.perf_counter()

        if not is_exec_tool(tool_name):
            return Decision.allow(elapsed_ms=self._elapsed_ms(start))

        command = extract_command(params)
        self.diagnostics.evaluating(tool_name, command)

        for pattern in self.policy.blocked_command_rules:
            matched = command_matches(pattern, command)
            self.diagnostics.checking_rule("blocked_commands", pattern, matched)
            if matched:
                reason = f'Command contains dangerous pattern "{pattern}"'
                self.diagnostics.blocked(tool_name, reason, command=command, pattern=pattern)
                return Decision.block(
                    reason,
                    BLOCKED_COMMANDS_RULE,
                    matched_rule=pattern,
                    elapsed_ms=self._elapsed_ms(start),
                )

        for path in self.policy.blocked_path_rules:
            matched = path_matches(path, command)
            self.diagnostics.checking_rule("blocked_paths", path, matched)
            if matched:
                reason = f'Command references protected path "{path}"'
                self.diagnostics.blocked(tool_name, reason, command=command, path=path)
                return Decision.block(
                    reason,
                    BLOCKED_PATHS_RULE,
                    matched_rule=path,
                    elapsed_ms=self._elapsed_ms(start),
                )

        decision = Decision.allow(elapsed_ms=self._elapsed_ms(start))
        self.diagnostics.allowed(tool_name, command, duration_ms=decision.elapsed_ms)
        return decision

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return max(0.0, (time.perf_counter() - start) * 1000.0)
