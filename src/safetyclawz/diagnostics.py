"""
Diagnostics sink for policy evaluation and audit activity.

A Diagnostics instance is constructed once by the composition root and
passed to the engine, the audit pipeline, and the coordinator. Verbose
traces (rule checks, ALLOW decisions, audit entries) are emitted only
when ``verbose`` is set; BLOCK decisions, warnings and errors always are.
"""

from __future__ import annotations

import os
from typing import Any

import structlog

COMMAND_PREVIEW_CHARS = 80


def _debug_from_env() -> bool:
    return os.environ.get("SAFETYCLAWZ_DEBUG", "").lower() in ("1", "true", "yes")


class Diagnostics:
    """Structured, best-effort console diagnostics."""

    def __init__(
        self,
        verbose: bool | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.verbose = _debug_from_env() if verbose is None else verbose
        self._logger = logger or structlog.get_logger("safetyclawz")

    def evaluating(self, tool_name: str, command: str) -> None:
        if not self.verbose:
            return
        self._logger.debug(
            "policy_evaluating",
            tool_name=tool_name,
            command=command[:COMMAND_PREVIEW_CHARS],
        )

    def checking_rule(self, rule_name: str, pattern: str, matched: bool) -> None:
        if not self.verbose:
            return
        self._logger.debug("policy_rule_checked", rule=rule_name, pattern=pattern, matched=matched)

    def blocked(self, tool_name: str, reason: str, **context: Any) -> None:
        if self.verbose and context:
            self._logger.warning("policy_blocked", tool_name=tool_name, reason=reason, **context)
        else:
            self._logger.warning("policy_blocked", tool_name=tool_name, reason=reason)

    def allowed(self, tool_name: str, command: str | None = None, **context: Any) -> None:
        if not self.verbose:
            return
        if command:
            context["command"] = command[:COMMAND_PREVIEW_CHARS]
        self._logger.info("policy_allowed", tool_name=tool_name, **context)

    def audit(self, tool_name: str, success: bool, duration_ms: float | None = None) -> None:
        if not self.verbose:
            return
        self._logger.info(
            "tool_execution_audited",
            tool_name=tool_name,
            success=success,
            duration_ms=duration_ms,
        )

    def policy_loaded(self, source: str, blocked_commands: int, blocked_paths: int) -> None:
        self._logger.info(
            "policy_loaded",
            source=source,
            blocked_commands=blocked_commands,
            blocked_paths=blocked_paths,
            debug=self.verbose,
        )

    def info(self, event: str, **fields: Any) -> None:
        self._logger.info(event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._logger.warning(event, **fields)

    def error(self, event: str, exc_info: bool = False, **fields: Any) -> None:
        self._logger.error(event, exc_info=exc_info and self.verbose, **fields)

    def debug(self, event: str, **fields: Any) -> None:
        if not self.verbose:
            return
        self._logger.debug(event, **fields)
