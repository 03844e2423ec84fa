"""
CLI commands for SafetyClawz.
"""

from safetyclawz.cli.audit import audit_command
from safetyclawz.cli.check import check_command
from safetyclawz.cli.policy import show_policy_command

__all__ = [
    "audit_command",
    "check_command",
    "show_policy_command",
]
