"""Core modules for SafetyClawz - centralized definitions and utilities."""

from safetyclawz.core.errors import (
    AuditWriteError,
    ExitCode,
    PolicyLoadError,
    SafetyClawzError,
    ValidationError,
    exit_code_for,
    exit_with_error,
    format_error_message,
    report_error,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "SafetyClawzError",
    "PolicyLoadError",
    "AuditWriteError",
    "ValidationError",
    "main_with_error_handling",
    "format_error_message",
    "exit_with_error",
    "exit_code_for",
    "report_error",
]
