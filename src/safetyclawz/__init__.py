"""
SafetyClawz - policy enforcement and audit logging for agent shell execution.

Intercepts exec tool calls, decides ALLOW or BLOCK against a policy of
dangerous command patterns and protected paths, and records every
decision and execution to an append-only JSONL audit log.
"""

__version__ = "0.1.0"
