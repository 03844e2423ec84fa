"""
Policy inspection command.
"""

from __future__ import annotations

import argparse

from rich.markup import escape

from safetyclawz.cli.ux import console, error, header, print_key_value, print_table
from safetyclawz.config import get_settings
from safetyclawz.core.errors import ExitCode, main_with_error_handling
from safetyclawz.policies.defaults import DEFAULT_POLICY_VERSION
from safetyclawz.policies.loader import DEFAULT_POLICY_SOURCE, load_policy
from safetyclawz.policies.patterns import compile_rule, is_regex_pattern


def _rule_kind(pattern: str) -> str:
    if not is_regex_pattern(pattern):
        return "literal"
    if compile_rule(pattern) is None:
        return "literal (invalid regex)"
    return "regex"


@main_with_error_handling()
def show_policy_command(policy_file: str | None = None, output_format: str = "table") -> int:
    """
    Print the policy in force.

    Exit codes: 0 = Success, 10 = Policy error
    """
    policy, source = load_policy(policy_file or get_settings().resolved_policy_file)

    if output_format == "json":
        console.print_json(data={"source": source, **policy.to_dict()})
        return ExitCode.SUCCESS

    header("SafetyClawz Policy")
    items = {"Source": escape(source)}
    if source == DEFAULT_POLICY_SOURCE:
        items["Version"] = DEFAULT_POLICY_VERSION
    print_key_value(items)
    console.print()

    print_table(
        "Blocked commands (exec.blocked_commands)",
        ["#", "Pattern", "Match"],
        [
            [str(i), escape(p), _rule_kind(p)]
            for i, p in enumerate(policy.blocked_command_rules, start=1)
        ],
    )
    print_table(
        "Protected paths (exec.blocked_paths)",
        ["#", "Path"],
        [[str(i), escape(p)] for i, p in enumerate(policy.blocked_path_rules, start=1)],
    )
    return ExitCode.SUCCESS


def register_policy_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register policy subcommand parser."""
    policy_parser = subparsers.add_parser("policy", help="Inspect the policy in force")
    policy_sub = policy_parser.add_subparsers(dest="policy_command")

    show_parser = policy_sub.add_parser("show", help="List blocked commands and protected paths")
    show_parser.add_argument(
        "--policy-file",
        help="Policy YAML file (or set SAFETYCLAWZ_POLICY_FILE)",
    )
    show_parser.add_argument(
        "--format",
        "-f",
        dest="output_format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )


def handle_policy_command(args: argparse.Namespace) -> int:
    """Handle policy command from CLI args."""
    if getattr(args, "policy_command", None) != "show":
        error("Usage: safetyclawz policy show [--policy-file PATH]")
        return ExitCode.VALIDATION_ERROR
    return show_policy_command(
        policy_file=getattr(args, "policy_file", None),
        output_format=getattr(args, "output_format", "table"),
    )
