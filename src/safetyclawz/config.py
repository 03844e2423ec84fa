"""
Application settings and configuration.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, read from SAFETYCLAWZ_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SAFETYCLAWZ_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Policy
    policy_file: str = "~/.safetyclawz/policy.yaml"

    # Audit log
    audit_log_path: str = "~/.safetyclawz/audit.jsonl"
    audit_disabled: bool = False
    audit_fsync: bool = False
    # Wait for the policy_check record to reach disk before answering the host
    audit_sync: bool = False

    # Block tool calls once the audit log cannot be written
    fail_closed: bool = True

    # Verbose diagnostics
    debug: bool = False

    @property
    def resolved_policy_file(self) -> Path:
        return Path(self.policy_file).expanduser()

    @property
    def resolved_audit_log_path(self) -> Path:
        return Path(self.audit_log_path).expanduser()

    def with_plugin_config(self, plugin_config: Mapping[str, Any] | None) -> "Settings":
        """Overlay host plugin configuration keys onto these settings."""
        if not plugin_config:
            return self

        overrides: dict[str, Any] = {}
        for key, field_name in PLUGIN_CONFIG_KEYS.items():
            value = plugin_config.get(key)
            if value is not None:
                overrides[field_name] = value
        if not overrides:
            return self
        # Validate host values the same way environment values are
        return type(self).model_validate({**self.model_dump(), **overrides})


# Host plugin config key -> Settings field
PLUGIN_CONFIG_KEYS = {
    "policyFile": "policy_file",
    "auditLogPath": "audit_log_path",
    "auditDisabled": "audit_disabled",
    "auditSync": "audit_sync",
    "failClosed": "fail_closed",
    "debug": "debug",
}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
