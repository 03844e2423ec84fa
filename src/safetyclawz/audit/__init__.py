"""
Audit logging for tool calls.

Append-only JSONL records of policy decisions and tool executions,
written through a non-blocking ordered pipeline.
"""

from safetyclawz.audit.models import (
    POLICY_CHECK_EVENT,
    TOOL_EXECUTION_EVENT,
    AuditRecord,
    PolicyCheckRecord,
    ToolExecutionRecord,
    is_blocked_entry,
    parse_entry,
    record_from_entry,
)
from safetyclawz.audit.pipeline import AuditPipeline, default_log_path
from safetyclawz.audit.reader import follow, follow_entries, iter_entries, read_last

__all__ = [
    "AuditPipeline",
    "AuditRecord",
    "POLICY_CHECK_EVENT",
    "PolicyCheckRecord",
    "TOOL_EXECUTION_EVENT",
    "ToolExecutionRecord",
    "default_log_path",
    "follow",
    "follow_entries",
    "is_blocked_entry",
    "iter_entries",
    "parse_entry",
    "read_last",
    "record_from_entry",
]
