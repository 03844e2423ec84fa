"""
Host integration: wires the policy engine and the audit pipeline into the
agent host's before/after tool call hooks.

Usage from a host plugin loader:
    from safetyclawz.coordinator import register_plugin
    coordinator = register_plugin(api)
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, Protocol

import pydantic

from safetyclawz import __version__
from safetyclawz.audit.pipeline import AuditPipeline
from safetyclawz.config import Settings, get_settings
from safetyclawz.core.errors import AuditWriteError, PolicyLoadError
from safetyclawz.diagnostics import Diagnostics
from safetyclawz.policies.engine import PolicyEngine, is_exec_tool
from safetyclawz.policies.loader import load_policy
from safetyclawz.policies.models import DecisionOutcome

BLOCK_REASON_PREFIX = "SafetyClawz BLOCKED: "

BEFORE_TOOL_CALL = "before_tool_call"
AFTER_TOOL_CALL = "after_tool_call"

HookHandler = Callable[[Mapping[str, Any], Any], Awaitable[Any]]


class HostLogger(Protocol):
    def info(self, message: str) -> None: ...
    def warn(self, message: str) -> None: ...
    def error(self, message: str) -> None: ...
    def debug(self, message: str) -> None: ...


class HostApi(Protocol):
    plugin_config: Mapping[str, Any] | None
    logger: HostLogger

    def register_hook(self, hook_name: str, handler: HookHandler) -> None: ...


def block_response(reason: str) -> dict[str, Any]:
    return {"block": True, "blockReason": f"{BLOCK_REASON_PREFIX}{reason}"}


def error_message(error: Any) -> str | None:
    """Best-effort text for a host-reported tool error."""
    if error is None:
        return None
    if isinstance(error, str):
        return error
    if isinstance(error, Mapping):
        message = error.get("message")
        return str(message) if message is not None else str(dict(error))
    message = getattr(error, "message", None)
    if isinstance(message, str):
        return message
    return str(error)


class InterceptionCoordinator:
    """Routes host tool call events through policy and into the audit log."""

    def __init__(
        self,
        engine: PolicyEngine,
        pipeline: AuditPipeline,
        diagnostics: Diagnostics | None = None,
        fail_closed: bool = True,
        audit_sync: bool = False,
    ) -> None:
        self.engine = engine
        self.pipeline = pipeline
        self.diagnostics = diagnostics or engine.diagnostics
        self.fail_closed = fail_closed
        self.audit_sync = audit_sync

    async def before_tool_call(
        self,
        event: Mapping[str, Any],
        ctx: Any = None,
    ) -> dict[str, Any] | None:
        """
        Decide a tool call before it runs.

        Returns None to allow, or ``{"block": True, "blockReason": ...}``.
        Non-exec tools are allowed without evaluation or audit.
        """
        tool_name = event.get("toolName") or ""
        params = event.get("params") or {}

        if not is_exec_tool(tool_name):
            return None

        if self.pipeline.failed:
            # Retry the stalled queue first; storage may have recovered
            try:
                await self.pipeline.flush()
            except AuditWriteError as e:
                if self.fail_closed:
                    return self._audit_unavailable(tool_name, params, e)
                self.diagnostics.warning("audit_write_failed_fail_open", error=e.message)

        decision = self.engine.decide(tool_name, params)
        self.pipeline.submit_policy_check(
            tool_name=tool_name,
            params=params,
            decision=decision.outcome,
            reason=decision.reason,
            triggered_rule=decision.triggered_rule,
            duration_ms=decision.elapsed_ms,
        )

        if self.audit_sync:
            try:
                await self.pipeline.flush()
            except AuditWriteError as e:
                if self.fail_closed:
                    return self._audit_unavailable(tool_name, params, e, submit=False)
                self.diagnostics.warning("audit_write_failed_fail_open", error=e.message)

        if decision.outcome is DecisionOutcome.BLOCK:
            return block_response(decision.reason)
        return None

    async def after_tool_call(self, event: Mapping[str, Any], ctx: Any = None) -> None:
        """Record the outcome of a tool call that ran."""
        tool_name = event.get("toolName") or ""
        error = event.get("error")
        duration_ms = event.get("durationMs")
        # An empty error ("", {}) means the host reported nothing wrong
        success = not error

        self.diagnostics.audit(tool_name, success, duration_ms)
        self.pipeline.submit_tool_execution(
            tool_name=tool_name,
            params=event.get("params") or {},
            success=success,
            duration_ms=duration_ms,
            error=None if success else error_message(error),
        )

    async def close(self) -> None:
        """Flush pending audit records."""
        await self.pipeline.close()

    def _audit_unavailable(
        self,
        tool_name: str,
        params: Mapping[str, Any],
        error: AuditWriteError | None,
        submit: bool = True,
    ) -> dict[str, Any]:
        detail = error.message if error is not None else "unknown error"
        reason = f"Audit log unavailable: {detail}"
        self.diagnostics.blocked(tool_name, reason)
        if submit:
            # Stays queued until the log is writable again
            self.pipeline.submit_policy_check(
                tool_name=tool_name,
                params=params,
                decision=DecisionOutcome.BLOCK,
                reason=reason,
            )
        return block_response(reason)


def build_coordinator(settings: Settings, diagnostics: Diagnostics | None = None) -> InterceptionCoordinator:
    """
    Assemble engine, pipeline and coordinator from settings.

    Raises:
        PolicyLoadError: if the policy file exists but cannot be loaded
    """
    diagnostics = diagnostics or Diagnostics(verbose=settings.debug)
    policy, source = load_policy(settings.resolved_policy_file)
    diagnostics.policy_loaded(
        source,
        blocked_commands=len(policy.blocked_command_rules),
        blocked_paths=len(policy.blocked_path_rules),
    )

    engine = PolicyEngine(policy, diagnostics=diagnostics)
    pipeline = AuditPipeline(
        log_path=settings.resolved_audit_log_path,
        disabled=settings.audit_disabled,
        fsync=settings.audit_fsync,
        diagnostics=diagnostics,
    )
    return InterceptionCoordinator(
        engine,
        pipeline,
        diagnostics=diagnostics,
        fail_closed=settings.fail_closed,
        audit_sync=settings.audit_sync,
    )


def register_plugin(api: HostApi, settings: Settings | None = None) -> InterceptionCoordinator | None:
    """
    Plugin entry point: register the before/after tool call hooks.

    Returns the coordinator, or None when the plugin config is invalid or
    the policy could not be loaded, in which case no hooks are registered.
    """
    try:
        settings = (settings or get_settings()).with_plugin_config(getattr(api, "plugin_config", None))
    except pydantic.ValidationError as e:
        Diagnostics().error("plugin_config_invalid", error=str(e))
        api.logger.error(f"SafetyClawz: Invalid plugin config: {e}")
        return None
    diagnostics = Diagnostics(verbose=settings.debug)

    try:
        coordinator = build_coordinator(settings, diagnostics=diagnostics)
    except PolicyLoadError as e:
        diagnostics.error("policy_load_failed", exc_info=True, error=e.message, **e.details)
        api.logger.error(f"SafetyClawz: Failed to load policy: {e.message}")
        return None

    api.register_hook(BEFORE_TOOL_CALL, coordinator.before_tool_call)
    api.register_hook(AFTER_TOOL_CALL, coordinator.after_tool_call)

    api.logger.info(f"SafetyClawz: Protection enabled (v{__version__})")
    return coordinator
