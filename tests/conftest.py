"""Root test configuration."""

import logging

import pytest
import structlog

from safetyclawz.config import get_settings


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.safetyclawz and SAFETYCLAWZ_* env."""
    for var in (
        "SAFETYCLAWZ_POLICY_FILE",
        "SAFETYCLAWZ_AUDIT_LOG_PATH",
        "SAFETYCLAWZ_AUDIT_DISABLED",
        "SAFETYCLAWZ_AUDIT_FSYNC",
        "SAFETYCLAWZ_AUDIT_SYNC",
        "SAFETYCLAWZ_FAIL_CLOSED",
        "SAFETYCLAWZ_DEBUG",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def log_path(tmp_path):
    """Audit log path inside a directory that does not exist yet."""
    return tmp_path / "audit" / "audit.jsonl"
