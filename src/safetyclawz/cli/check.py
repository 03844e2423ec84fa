"""
One-shot policy check command.

Evaluates a single command against the policy in force, the same way the
before_tool_call hook would, and reports the decision.
"""

from __future__ import annotations

import argparse

from rich.markup import escape

from safetyclawz.audit.pipeline import AuditPipeline
from safetyclawz.cli.ux import console, error, success
from safetyclawz.config import get_settings
from safetyclawz.core.errors import main_with_error_handling
from safetyclawz.diagnostics import Diagnostics
from safetyclawz.policies.engine import PolicyEngine
from safetyclawz.policies.loader import load_policy
from safetyclawz.policies.models import Decision


@main_with_error_handling()
def check_command(
    command: str,
    tool_name: str = "exec",
    policy_file: str | None = None,
    output_format: str = "table",
    audit: bool = False,
    log_file: str | None = None,
    verbose: bool = False,
) -> Decision:
    """
    Check whether a command would be allowed.

    Exit codes: 0 = Allowed, 2 = Blocked, 10 = Policy error, 11 = Audit error
    """
    settings = get_settings()
    diagnostics = Diagnostics(verbose=verbose or settings.debug)

    policy, source = load_policy(policy_file or settings.resolved_policy_file)
    engine = PolicyEngine(policy, diagnostics=diagnostics)
    params = {"command": command}
    decision = engine.decide(tool_name, params)

    if audit:
        pipeline = AuditPipeline(
            log_path=log_file or settings.resolved_audit_log_path,
            diagnostics=diagnostics,
        )
        pipeline.submit_policy_check(
            tool_name=tool_name,
            params=params,
            decision=decision.outcome,
            reason=decision.reason,
            triggered_rule=decision.triggered_rule,
            duration_ms=decision.elapsed_ms,
        )
        pipeline.flush_sync()

    if output_format == "json":
        console.print_json(data={"tool": tool_name, "command": command, "policy": source, **decision.to_dict()})
    else:
        _print_decision(tool_name, command, source, decision.to_dict())

    return decision


def _print_decision(tool_name: str, command: str, source: str, data: dict) -> None:
    console.print(f"[muted]Policy:[/muted]  {escape(source)}")
    console.print(f"[muted]Tool:[/muted]    {escape(tool_name)}")
    console.print(f"[muted]Command:[/muted] {escape(command)}")
    console.print()

    if data["decision"] == "BLOCK":
        error(f"BLOCKED: {escape(data['reason'])}")
        console.print(f"[muted]   Rule: {escape(data.get('triggered_rule', ''))}[/muted]")
    else:
        success(f"ALLOWED: {escape(data['reason'])}")
    console.print(f"[muted]   Evaluated in {data['elapsed_ms']:.3f}ms[/muted]")


def register_check_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register check subcommand parser."""
    check_parser = subparsers.add_parser(
        "check",
        help="Check whether a command would be allowed by policy",
    )
    check_parser.add_argument("shell_command", help="Command text to evaluate")
    check_parser.add_argument(
        "--tool",
        default="exec",
        help="Tool name to evaluate as (default: exec)",
    )
    check_parser.add_argument(
        "--policy-file",
        help="Policy YAML file (or set SAFETYCLAWZ_POLICY_FILE)",
    )
    check_parser.add_argument(
        "--format",
        "-f",
        dest="output_format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )
    check_parser.add_argument(
        "--audit",
        action="store_true",
        help="Also record the decision in the audit log",
    )
    check_parser.add_argument("--log-file", help="Audit log path when using --audit")
    check_parser.add_argument("-v", "--verbose", action="store_true", help="Trace every rule checked")


def handle_check_command(args: argparse.Namespace) -> int:
    """Handle check command from CLI args."""
    return check_command(
        args.shell_command,
        tool_name=getattr(args, "tool", "exec"),
        policy_file=getattr(args, "policy_file", None),
        output_format=getattr(args, "output_format", "table"),
        audit=getattr(args, "audit", False),
        log_file=getattr(args, "log_file", None),
        verbose=getattr(args, "verbose", False),
    )
