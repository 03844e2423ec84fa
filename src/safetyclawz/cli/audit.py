"""
Audit log viewer.

Usage:
    safetyclawz-audit --tail              # Follow audit log in real-time
    safetyclawz-audit --blocked --last 10 # Last 10 blocked actions
    safetyclawz-audit --last 10           # Last 10 entries
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Sequence

from rich.markup import escape

from safetyclawz.audit.models import POLICY_CHECK_EVENT, TOOL_EXECUTION_EVENT
from safetyclawz.audit.reader import DEFAULT_POLL_INTERVAL, follow_entries, read_last
from safetyclawz.cli.ux import console, error, warning
from safetyclawz.config import get_settings
from safetyclawz.core.errors import ExitCode, ValidationError, exit_with_error


def _short_time(timestamp: Any) -> str:
    """HH:MM:SS.mmm from an ISO-8601 timestamp, or the raw value."""
    text = str(timestamp or "")
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return text
    return parsed.strftime("%H:%M:%S.%f")[:12]


def format_entry(entry: dict[str, Any]) -> str:
    """Render one audit entry as rich markup."""
    stamp = f"[muted]{escape('[' + _short_time(entry.get('timestamp')) + ']')}[/muted]"
    tool_name = escape(str(entry.get("toolName", "")))
    event = entry.get("event")

    if event == POLICY_CHECK_EVENT:
        decision = entry.get("decision") if isinstance(entry.get("decision"), dict) else {}
        blocked = decision.get("decision") == "BLOCK"
        style = "blocked" if blocked else "allowed"
        status = "🛑 BLOCKED" if blocked else "✅ ALLOWED"
        lines = [f"{stamp} [{style}]{status}[/{style}] {tool_name}"]

        params = entry.get("params") if isinstance(entry.get("params"), dict) else {}
        command = params.get("command") or params.get("cmd")
        if command:
            lines.append(f"[muted]   Command: {escape(str(command))}[/muted]")
        if decision.get("reason"):
            lines.append(f"[muted]   Reason:[/muted] [{style}]{escape(str(decision['reason']))}[/{style}]")
        if decision.get("triggered_rule"):
            lines.append(f"[muted]   Rule: {escape(str(decision['triggered_rule']))}[/muted]")
        if entry.get("durationMs") is not None:
            lines.append(f"[muted]   Duration: {entry['durationMs']}ms[/muted]")
        return "\n".join(lines)

    if event == TOOL_EXECUTION_EVENT:
        ok = bool(entry.get("success"))
        style = "info" if ok else "warning"
        icon = "📝" if ok else "⚠️"
        line = f"{stamp} [{style}]{icon} EXECUTED[/{style}] {tool_name}"
        if entry.get("durationMs"):
            line += f" [muted]({entry['durationMs']}ms)[/muted]"
        lines = [line]
        if entry.get("error"):
            lines.append(f"[error]   Error: {escape(str(entry['error']))}[/error]")
        return "\n".join(lines)

    return f"{stamp} [muted]{escape(json.dumps(entry))}[/muted]"


def show_last(log_path: Path, count: int, blocked_only: bool = False) -> int:
    """Print the last ``count`` entries."""
    if not log_path.exists():
        error(f"Audit log not found: {escape(str(log_path))}")
        return ExitCode.WARNING

    entries = read_last(log_path, count, blocked_only=blocked_only)
    if not entries:
        warning("No matching audit entries")
        return ExitCode.SUCCESS

    console.print(f"[bold #81A1C1]📋 Last {len(entries)} entries:[/bold #81A1C1]")
    console.print()
    for entry in entries:
        console.print(format_entry(entry))
    return ExitCode.SUCCESS


def tail_log(
    log_path: Path,
    blocked_only: bool = False,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    should_stop: Callable[[], bool] | None = None,
) -> int:
    """Follow the audit log, printing entries as they are appended."""
    console.print(f"[bold #81A1C1]📡 Tailing audit log: {escape(str(log_path))}[/bold #81A1C1]")
    console.print("[muted]Press Ctrl+C to stop[/muted]")
    console.print()

    def _report(line: str) -> None:
        error(f"Failed to parse line: {escape(line)}")

    try:
        for entry in follow_entries(
            log_path,
            blocked_only=blocked_only,
            on_malformed=_report,
            poll_interval=poll_interval,
            should_stop=should_stop,
        ):
            console.print(format_entry(entry))
    except KeyboardInterrupt:
        console.print()
    return ExitCode.SUCCESS


def print_usage(log_path: Path) -> None:
    console.print("[bold]SafetyClawz Audit Log Viewer[/bold]")
    console.print()
    console.print("Usage:")
    console.print("  safetyclawz-audit --tail          Follow audit log in real-time")
    console.print("  safetyclawz-audit --last 10       Show last 10 entries")
    console.print("  safetyclawz-audit --blocked       Filter blocked actions only")
    console.print()
    console.print("Examples:")
    console.print("  safetyclawz-audit --tail --blocked    Watch for blocked actions")
    console.print("  safetyclawz-audit --last 20           Show recent audit history")
    console.print()
    console.print(f"Log file: {escape(str(log_path))}")


def audit_command(
    last: int = 0,
    tail: bool = False,
    blocked: bool = False,
    log_file: str | None = None,
) -> int:
    """
    View the audit log.

    Exit codes: 0 = Success, 1 = Log file not found, 12 = Invalid arguments
    """
    if last < 0:
        exit_with_error(ValidationError("--last must be a positive number", details={"last": last}))

    log_path = Path(log_file).expanduser() if log_file else get_settings().resolved_audit_log_path

    if tail:
        return tail_log(log_path, blocked_only=blocked)
    if last > 0:
        return show_last(log_path, last, blocked_only=blocked)

    print_usage(log_path)
    return ExitCode.SUCCESS


def add_audit_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tail", action="store_true", help="Follow audit log in real-time")
    parser.add_argument(
        "--last",
        type=int,
        default=0,
        metavar="N",
        help="Show the last N entries",
    )
    parser.add_argument(
        "--blocked",
        action="store_true",
        help="Show only blocked actions",
    )
    parser.add_argument(
        "--log-file",
        help="Audit log path (or set SAFETYCLAWZ_AUDIT_LOG_PATH)",
    )


def register_audit_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register audit subcommand parser."""
    audit_parser = subparsers.add_parser("audit", help="View the audit log")
    add_audit_arguments(audit_parser)


def handle_audit_command(args: argparse.Namespace) -> int:
    """Handle audit command from CLI args."""
    return audit_command(
        last=getattr(args, "last", 0),
        tail=getattr(args, "tail", False),
        blocked=getattr(args, "blocked", False),
        log_file=getattr(args, "log_file", None),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="safetyclawz-audit",
        description="SafetyClawz audit log viewer",
    )
    add_audit_arguments(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    sys.exit(handle_audit_command(args))
