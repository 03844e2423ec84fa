"""
SafetyClawz CLI.

Usage:
    safetyclawz <command> [args]

Commands:
    check    Evaluate a command against the policy in force
    policy   Inspect the policy in force
    audit    View the audit log
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from safetyclawz import __version__
from safetyclawz.cli.audit import handle_audit_command, register_audit_parser
from safetyclawz.cli.check import handle_check_command, register_check_parser
from safetyclawz.cli.policy import handle_policy_command, register_policy_parser
from safetyclawz.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="safetyclawz",
        description="Policy enforcement and audit logging for agent shell execution",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Diagnostics log level (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command")

    register_check_parser(subparsers)
    register_policy_parser(subparsers)
    register_audit_parser(subparsers)

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(getattr(logging, args.log_level), json=False)

    if args.command == "check":
        sys.exit(handle_check_command(args))

    if args.command == "policy":
        sys.exit(handle_policy_command(args))

    if args.command == "audit":
        sys.exit(handle_audit_command(args))

    parser.print_help()
    sys.exit(0)


if __name__ == "__main__":
    main()
