"""
Audit record models and the JSONL wire format.

Each record serializes to one self-contained JSON object on one line:

    {"timestamp": "...", "event": "policy_check", "toolName": "exec",
     "params": {...}, "decision": {"decision": "BLOCK", "reason": "...",
     "triggered_rule": "exec.blocked_commands"}, "durationMs": 0.4}

Optional fields that are unset are omitted from the line.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

POLICY_CHECK_EVENT = "policy_check"
TOOL_EXECUTION_EVENT = "tool_execution"


def utc_timestamp() -> str:
    """Current wall-clock time as an ISO-8601 UTC string with milliseconds."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class PolicyCheckRecord:
    """ALLOW or BLOCK decision made before a tool call."""

    tool_name: str
    params: dict[str, Any]
    decision: str  # "ALLOW" | "BLOCK"
    reason: str
    triggered_rule: str | None = None
    duration_ms: float | None = None
    timestamp: str = field(default_factory=utc_timestamp)

    event = POLICY_CHECK_EVENT

    @property
    def is_blocked(self) -> bool:
        return self.decision == "BLOCK"

    def to_dict(self) -> dict[str, Any]:
        decision: dict[str, Any] = {"decision": self.decision, "reason": self.reason}
        if self.triggered_rule is not None:
            decision["triggered_rule"] = self.triggered_rule
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "event": self.event,
            "toolName": self.tool_name,
            "params": self.params,
            "decision": decision,
        }
        if self.duration_ms is not None:
            data["durationMs"] = self.duration_ms
        return data

    def to_json_line(self) -> str:
        return _dumps(self.to_dict())


@dataclass(frozen=True, slots=True)
class ToolExecutionRecord:
    """Outcome of a tool call after it ran."""

    tool_name: str
    params: dict[str, Any]
    success: bool
    duration_ms: float | None = None
    error: str | None = None
    timestamp: str = field(default_factory=utc_timestamp)

    event = TOOL_EXECUTION_EVENT

    @property
    def is_blocked(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "event": self.event,
            "toolName": self.tool_name,
            "params": self.params,
            "success": self.success,
        }
        if self.duration_ms is not None:
            data["durationMs"] = self.duration_ms
        if self.error is not None:
            data["error"] = self.error
        return data

    def to_json_line(self) -> str:
        return _dumps(self.to_dict())


AuditRecord = Union[PolicyCheckRecord, ToolExecutionRecord]


def _finite(value: Any) -> Any:
    """Replace NaN and infinities with None so every line is strict JSON."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _finite(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_finite(v) for v in value]
    return value


def _dumps(data: dict[str, Any]) -> str:
    # default=str keeps opaque params serializable; separators keep one line
    return json.dumps(
        _finite(data),
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
        default=str,
    )


def parse_entry(line: str) -> dict[str, Any] | None:
    """
    Parse one JSONL line into a raw entry dict.

    Returns None for blank lines, malformed JSON, and non-object values.
    """
    line = line.strip()
    if not line:
        return None
    try:
        entry = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(entry, dict):
        return None
    return entry


def record_from_entry(entry: dict[str, Any]) -> AuditRecord | None:
    """
    Build a typed record from a raw entry, tolerating missing optional
    fields and ignoring unknown ones. Unknown event kinds return None.
    """
    event = entry.get("event")
    timestamp = str(entry.get("timestamp", ""))
    tool_name = str(entry.get("toolName", ""))
    params = entry.get("params")
    if not isinstance(params, dict):
        params = {}

    if event == POLICY_CHECK_EVENT:
        decision = entry.get("decision")
        if not isinstance(decision, dict):
            decision = {}
        return PolicyCheckRecord(
            tool_name=tool_name,
            params=params,
            decision=str(decision.get("decision", "")),
            reason=str(decision.get("reason", "")),
            triggered_rule=decision.get("triggered_rule"),
            duration_ms=entry.get("durationMs"),
            timestamp=timestamp,
        )

    if event == TOOL_EXECUTION_EVENT:
        return ToolExecutionRecord(
            tool_name=tool_name,
            params=params,
            success=bool(entry.get("success", False)),
            duration_ms=entry.get("durationMs"),
            error=entry.get("error"),
            timestamp=timestamp,
        )

    return None


def is_blocked_entry(entry: dict[str, Any]) -> bool:
    """True for policy_check entries whose decision is BLOCK."""
    decision = entry.get("decision")
    return (
        entry.get("event") == POLICY_CHECK_EVENT
        and isinstance(decision, dict)
        and decision.get("decision") == "BLOCK"
    )
