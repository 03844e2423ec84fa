"""
Built-in security knowledge.

Static tables of high-risk tools, dangerous shell command patterns and
protected filesystem paths, aligned with the agent host's own threat
model. ``get_default_policy()`` is used verbatim whenever no policy file
is present.

Bump DEFAULT_POLICY_VERSION whenever a table changes.
"""

from __future__ import annotations

from safetyclawz.policies.models import Policy

DEFAULT_POLICY_VERSION = "2025.1"

# High-risk tools: remote code execution, cross-session injection,
# control plane changes, filesystem mutation, shell execution, patching
DANGEROUS_TOOLS: tuple[str, ...] = (
    "exec",
    "spawn",
    "shell",
    "sessions_spawn",
    "sessions_send",
    "gateway",
    "fs_write",
    "fs_delete",
    "fs_move",
    "apply_patch",
)

# Tools denied over the gateway HTTP interface by default
GATEWAY_HTTP_DENIED_TOOLS: tuple[str, ...] = (
    "sessions_spawn",
    "sessions_send",
    "gateway",
    "whatsapp_login",  # interactive setup hangs on HTTP
)

DANGEROUS_EXEC_PATTERNS: tuple[str, ...] = (
    # Recursive deletion
    "rm -rf /",
    "sudo rm",
    "del /F /S /Q C:\\\\*",
    "format C:",
    # Disk operations
    "dd if=/dev/zero",
    "mkfs.",
    # Fork bomb
    ":(){ :|:& };:",
    # Piped remote execution
    "curl.*| sh",
    "curl.*| bash",
    "wget.*| sh",
    "wget.*| bash",
    # System modification
    "chmod 777",
    "chown root",
)

PROTECTED_PATHS: tuple[str, ...] = (
    # SSH keys
    "~/.ssh",
    # Cloud credentials
    "~/.aws",
    "~/.config/gcloud",
    "~/.azure",
    # System files (Unix)
    "/etc/passwd",
    "/etc/shadow",
    "/etc/sudoers",
    # System files (Windows)
    "C:\\Windows\\System32",
    "C:\\Program Files",
    # Agent host state
    "~/.openclaw/config.json",
    "~/.openclaw/state",
)


def get_default_policy() -> Policy:
    """Return the built-in policy."""
    return Policy.from_rules(
        blocked_command_rules=list(DANGEROUS_EXEC_PATTERNS),
        blocked_path_rules=list(PROTECTED_PATHS),
    )
