"""
Policy file loading.

Policy files are YAML:

    safeguards:
      exec:
        blocked_commands: ["rm -rf /", "curl.*| bash"]
        blocked_paths: ["~/.ssh"]

A missing file means the built-in default policy. A file that cannot be
read or parsed, or has the wrong shape, raises PolicyLoadError; callers
disable enforcement rather than run with a partial policy.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml

from safetyclawz.core.errors import PolicyLoadError
from safetyclawz.policies.defaults import get_default_policy
from safetyclawz.policies.models import Policy

logger = structlog.get_logger()

DEFAULT_POLICY_SOURCE = "built-in defaults"


def expand_home(path: str | Path) -> Path:
    """Expand a leading ``~`` to the invoking user's home directory."""
    return Path(path).expanduser()


def load_policy(path: str | Path | None) -> tuple[Policy, str]:
    """
    Load a policy from file, or the defaults if the file does not exist.

    Returns:
        Tuple of (policy, source) where source is the file path or
        "built-in defaults"
    """
    if path is None:
        return get_default_policy(), DEFAULT_POLICY_SOURCE

    policy_path = expand_home(path)
    if not policy_path.exists():
        logger.debug("policy_file_missing", path=str(policy_path))
        return get_default_policy(), DEFAULT_POLICY_SOURCE

    try:
        with open(policy_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise PolicyLoadError(
            f"Failed to load policy: {e}",
            details={"path": str(policy_path)},
        ) from e

    policy = parse_policy(data, source=str(policy_path))
    logger.info(
        "policy_file_loaded",
        path=str(policy_path),
        blocked_commands=len(policy.blocked_command_rules),
        blocked_paths=len(policy.blocked_path_rules),
    )
    return policy, str(policy_path)


def parse_policy(data: Any, source: str = "<policy>") -> Policy:
    """Convert a parsed policy document into a Policy."""
    if data is None:
        return Policy()
    if not isinstance(data, dict):
        raise PolicyLoadError(
            "Policy document must be a mapping",
            details={"path": source, "type": type(data).__name__},
        )

    safeguards = _section(data, "safeguards", source)
    exec_section = _section(safeguards, "exec", source)

    return Policy.from_rules(
        blocked_command_rules=_rule_list(exec_section, "blocked_commands", source),
        blocked_path_rules=_rule_list(exec_section, "blocked_paths", source),
    )


def _section(data: dict[str, Any], key: str, source: str) -> dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise PolicyLoadError(
            f"Policy section '{key}' must be a mapping",
            details={"path": source},
        )
    return value


def _rule_list(data: dict[str, Any], key: str, source: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise PolicyLoadError(
            f"Policy rules '{key}' must be a list",
            details={"path": source},
        )

    rules = []
    for index, rule in enumerate(value):
        if not isinstance(rule, str):
            raise PolicyLoadError(
                f"Policy rule {key}[{index}] must be a string",
                details={"path": source, "value": repr(rule)},
            )
        rules.append(rule)
    return rules
