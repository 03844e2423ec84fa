"""
Rule pattern classification and matching.

Command rules are either literal substrings or regular expressions.
A rule is treated as a regular expression when it contains any of:

    . * + ? | [ ] { } ( ) \\ ^ $

Regex rules are searched anywhere in the command. A rule that fails to
compile falls back to a literal substring match of its raw text, so a
malformed rule still blocks what it literally names.

Path rules are always literal substrings.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, Mapping

REGEX_METACHARACTERS = frozenset(".*+?|[]{}()\\^$")

# Parameter keys holding the command text, in precedence order
COMMAND_PARAM_KEYS = ("command", "cmd")


def is_regex_pattern(pattern: str) -> bool:
    """Return True if the pattern contains any regex metacharacter."""
    return any(ch in REGEX_METACHARACTERS for ch in pattern)


@lru_cache(maxsize=512)
def _compile(pattern: str) -> re.Pattern[str] | None:
    try:
        return re.compile(pattern)
    except re.error:
        return None


def compile_rule(pattern: str) -> re.Pattern[str] | None:
    """Compile a regex rule, or None if it is literal or malformed."""
    if not is_regex_pattern(pattern):
        return None
    return _compile(pattern)


def command_matches(pattern: str, command: str) -> bool:
    """Check a command rule against a command string."""
    if not is_regex_pattern(pattern):
        return pattern in command

    compiled = _compile(pattern)
    if compiled is None:
        # Malformed expression: match the raw text literally
        return pattern in command
    return compiled.search(command) is not None


def path_matches(path: str, command: str) -> bool:
    """Check a path rule against a command string. Never regex."""
    return path in command


def extract_command(params: Mapping[str, Any] | None) -> str:
    """
    Pull the command text out of a tool call's parameters.

    Looks at ``command`` then ``cmd``; the first present, non-empty value
    wins. Anything else yields an empty string, which matches no rule.
    Non-string values are converted with ``str()``.
    """
    if not params or not isinstance(params, Mapping):
        return ""

    for key in COMMAND_PARAM_KEYS:
        value = params.get(key)
        if value is None or value == "":
            continue
        return value if isinstance(value, str) else str(value)

    return ""
