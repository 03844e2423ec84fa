"""
Unified error handling for SafetyClawz.

This module provides the exception hierarchy, exit codes, and
error reporting shared by the plugin and the CLI commands.

Exit Codes:
- 0: Success (command allowed)
- 1: Warning (advisory, operation succeeded with warnings)
- 2: Blocked (command blocked by policy)
- 10: Configuration error (policy file could not be loaded)
- 11: Audit error (audit log could not be written)
- 12: Validation error
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    WARNING = 1
    BLOCKED = 2
    CONFIG_ERROR = 10
    AUDIT_ERROR = 11
    VALIDATION_ERROR = 12
    UNKNOWN_ERROR = 127


class SafetyClawzError(Exception):
    """Base exception for SafetyClawz errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class PolicyLoadError(SafetyClawzError):
    """Raised when a policy file cannot be read or has the wrong shape."""

    exit_code = ExitCode.CONFIG_ERROR


class AuditWriteError(SafetyClawzError):
    """Raised when an audit record cannot be durably appended."""

    exit_code = ExitCode.AUDIT_ERROR


class ValidationError(SafetyClawzError):
    """Raised for invalid command-line input."""

    exit_code = ExitCode.VALIDATION_ERROR


# CLI commands return an exit code, or a policy decision that maps to one
F = TypeVar("F", bound=Callable[..., Any])

INTERRUPTED_EXIT_CODE = 130  # 128 + SIGINT


def exit_code_for(result: Any) -> int:
    """
    Map a command's return value to a process exit code.

    Anything exposing ``is_blocked`` (a policy Decision) exits BLOCKED or
    SUCCESS; None is SUCCESS; integers pass through.
    """
    if result is None:
        return ExitCode.SUCCESS
    blocked = getattr(result, "is_blocked", None)
    if isinstance(blocked, bool):
        return ExitCode.BLOCKED if blocked else ExitCode.SUCCESS
    return int(result)


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI commands: turn results and failures into exit codes.

    Policy and audit failures are reported on stderr and exit with their
    own code (10 for a policy that cannot be loaded, 11 for an audit log
    that cannot be written), so scripts can tell "blocked" (2) apart from
    "could not decide".

    Args:
        show_traceback: If True, show full traceback for unexpected errors
        log_errors: If True, log errors to structlog

    Usage:
        @main_with_error_handling()
        def check(command: str) -> Decision:
            return engine.decide("exec", {"command": command})
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return exit_code_for(func(*args, **kwargs))
            except SafetyClawzError as e:
                if log_errors:
                    logger.error(
                        "command_failed",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=int(e.exit_code),
                        **e.details,
                    )
                report_error(e)
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return INTERRUPTED_EXIT_CODE
            except Exception as e:
                if log_errors:
                    logger.error("command_crashed", error_type=type(e).__name__, message=str(e))
                report_error(SafetyClawzError(f"Unexpected error: {e}"))
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: SafetyClawzError) -> str:
    """Error message with its details, e.g. ``Failed to load policy (path=...)``."""
    if not error.details:
        return error.message
    detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
    return f"{error.message} ({detail_str})"


def report_error(error: SafetyClawzError) -> None:
    """Print an error to stderr through the CLI console."""
    from rich.markup import escape

    from safetyclawz.cli.ux import error as print_error

    print_error(escape(format_error_message(error)))


def exit_with_error(error: SafetyClawzError) -> None:
    """Report an error and exit with its code."""
    report_error(error)
    sys.exit(error.exit_code)
