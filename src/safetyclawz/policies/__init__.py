"""
Policy evaluation for exec tool calls.

Provides rule classification and matching, the decision engine, the
built-in security knowledge tables, and policy file loading.
"""

from safetyclawz.policies.defaults import (
    DANGEROUS_EXEC_PATTERNS,
    DEFAULT_POLICY_VERSION,
    PROTECTED_PATHS,
    get_default_policy,
)
from safetyclawz.policies.engine import PolicyEngine, is_exec_tool
from safetyclawz.policies.loader import load_policy, parse_policy
from safetyclawz.policies.models import (
    BLOCKED_COMMANDS_RULE,
    BLOCKED_PATHS_RULE,
    PASS_REASON,
    Decision,
    DecisionOutcome,
    Policy,
)
from safetyclawz.policies.patterns import (
    command_matches,
    extract_command,
    is_regex_pattern,
    path_matches,
)

__all__ = [
    "BLOCKED_COMMANDS_RULE",
    "BLOCKED_PATHS_RULE",
    "DANGEROUS_EXEC_PATTERNS",
    "DEFAULT_POLICY_VERSION",
    "Decision",
    "DecisionOutcome",
    "PASS_REASON",
    "PROTECTED_PATHS",
    "Policy",
    "PolicyEngine",
    "command_matches",
    "extract_command",
    "get_default_policy",
    "is_exec_tool",
    "is_regex_pattern",
    "load_policy",
    "parse_policy",
    "path_matches",
]
