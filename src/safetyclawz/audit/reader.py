"""
Read side of the audit log.

Readers tolerate malformed lines (skipped), unknown fields (ignored) and
missing optional fields. One bad line never stops the read.
"""

from __future__ import annotations

import time
from collections import deque
from pathlib import Path
from typing import Any, Callable, Iterator

import structlog

from safetyclawz.audit.models import is_blocked_entry, parse_entry

logger = structlog.get_logger()

DEFAULT_POLL_INTERVAL = 0.5


def iter_entries(log_path: str | Path) -> Iterator[dict[str, Any]]:
    """Yield every parseable entry in file order."""
    with open(log_path, encoding="utf-8", errors="replace") as f:
        for line in f:
            entry = parse_entry(line)
            if entry is None:
                if line.strip():
                    logger.debug("audit_line_skipped", path=str(log_path))
                continue
            yield entry


def read_last(
    log_path: str | Path,
    count: int,
    blocked_only: bool = False,
) -> list[dict[str, Any]]:
    """
    Return the last ``count`` entries, oldest first.

    With ``blocked_only`` the BLOCK filter is applied before taking the
    last ``count``.

    Raises:
        FileNotFoundError: if the log does not exist
    """
    if count <= 0:
        return []

    last: deque[dict[str, Any]] = deque(maxlen=count)
    for entry in iter_entries(log_path):
        if blocked_only and not is_blocked_entry(entry):
            continue
        last.append(entry)
    return list(last)


def follow(
    log_path: str | Path,
    from_beginning: bool = False,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    should_stop: Callable[[], bool] | None = None,
) -> Iterator[str]:
    """
    Yield complete lines appended to the log, polling for growth.

    Waits for the file to appear if it does not exist yet. If the file
    shrinks (rotated or truncated) reading restarts from the top.
    ``should_stop`` is checked between polls; without it the generator
    runs until closed.
    """
    path = Path(log_path)
    offset: int | None = None if not from_beginning else 0
    partial = b""

    while True:
        if should_stop is not None and should_stop():
            return

        if not path.exists():
            offset = 0 if offset is None else offset
            time.sleep(poll_interval)
            continue

        size = path.stat().st_size
        if offset is None:
            offset = size
        if size < offset:
            offset = 0
            partial = b""

        if size > offset:
            with open(path, "rb") as f:
                f.seek(offset)
                chunk = f.read()
                offset = f.tell()
            partial += chunk
            *lines, partial = partial.split(b"\n")
            for raw in lines:
                line = raw.decode("utf-8", errors="replace")
                if line.strip():
                    yield line
            continue

        time.sleep(poll_interval)


def follow_entries(
    log_path: str | Path,
    blocked_only: bool = False,
    on_malformed: Callable[[str], None] | None = None,
    **kwargs: Any,
) -> Iterator[dict[str, Any]]:
    """Parse followed lines into entries, skipping malformed ones."""
    for line in follow(log_path, **kwargs):
        entry = parse_entry(line)
        if entry is None:
            if on_malformed is not None:
                on_malformed(line)
            continue
        if blocked_only and not is_blocked_entry(entry):
            continue
        yield entry
