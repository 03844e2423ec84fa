"""
Append-only JSONL audit pipeline.

Submissions serialize a record, push it onto an in-memory FIFO queue and
return at once; hook handlers never wait on disk I/O. A single drain
task, guarded by an asyncio.Lock, appends queued lines to the log file
one at a time and removes each line only after its append completed, so
the file order is the submission order.

When no event loop is running, submissions simply queue until flush().

A failed append leaves the line at the head of the queue. The failure is
remembered (``failed``) and raised as AuditWriteError from the next
flush(), which retries the write first. A drain cancelled mid-write still
waits for that append to settle, so no line is ever written twice.
"""

from __future__ import annotations

import asyncio
import os
from collections import deque
from pathlib import Path
from typing import Any, Mapping

import structlog

from safetyclawz.audit.models import AuditRecord, PolicyCheckRecord, ToolExecutionRecord
from safetyclawz.core.errors import AuditWriteError
from safetyclawz.diagnostics import Diagnostics

logger = structlog.get_logger()


def default_log_path() -> Path:
    """~/.safetyclawz/audit.jsonl for the invoking user."""
    return Path.home() / ".safetyclawz" / "audit.jsonl"


class AuditPipeline:
    """Non-blocking, ordered writer for the audit log."""

    def __init__(
        self,
        log_path: str | Path | None = None,
        disabled: bool = False,
        fsync: bool = False,
        diagnostics: Diagnostics | None = None,
    ) -> None:
        """
        Initialize the pipeline. Nothing touches the filesystem until the
        first record is written.

        Args:
            log_path: Target file; defaults to ~/.safetyclawz/audit.jsonl
            disabled: Make submissions no-ops and never create the file
            fsync: fsync the file after every appended line
            diagnostics: Sink for write failures
        """
        self.log_path = Path(log_path).expanduser() if log_path else default_log_path()
        self.disabled = disabled
        self.fsync = fsync
        self.diagnostics = diagnostics or Diagnostics(verbose=False)

        self._queue: deque[str] = deque()
        self._dir_ensured = False
        self._failure: AuditWriteError | None = None
        self._drain_task: asyncio.Task[None] | None = None
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    @property
    def pending(self) -> int:
        """Number of records waiting to be appended."""
        return len(self._queue)

    @property
    def failed(self) -> bool:
        """True if the last drain failed and has not been retried successfully."""
        return self._failure is not None

    @property
    def last_error(self) -> AuditWriteError | None:
        return self._failure

    # === Submission ===

    def submit_policy_check(
        self,
        tool_name: str,
        params: Mapping[str, Any] | None,
        decision: Any,
        reason: str,
        triggered_rule: str | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Record an ALLOW/BLOCK decision. Never waits on I/O."""
        if self.disabled:
            return
        self.submit(
            PolicyCheckRecord(
                tool_name=tool_name,
                params=dict(params or {}),
                decision=getattr(decision, "value", decision),
                reason=reason,
                triggered_rule=triggered_rule,
                duration_ms=duration_ms,
            )
        )

    def submit_tool_execution(
        self,
        tool_name: str,
        params: Mapping[str, Any] | None,
        success: bool,
        duration_ms: float | None = None,
        error: str | None = None,
    ) -> None:
        """Record a completed tool execution. Never waits on I/O."""
        if self.disabled:
            return
        self.submit(
            ToolExecutionRecord(
                tool_name=tool_name,
                params=dict(params or {}),
                success=success,
                duration_ms=duration_ms,
                error=error,
            )
        )

    def submit(self, record: AuditRecord) -> None:
        """Serialize and enqueue a record, then nudge the drain task."""
        if self.disabled:
            return
        self._queue.append(record.to_json_line())
        self._schedule_drain()

    # === Synchronization ===

    async def flush(self) -> None:
        """
        Append every queued record before returning.

        Raises:
            AuditWriteError: if a record could not be appended; the record
                stays queued for the next attempt
        """
        if self.disabled:
            return
        try:
            await self._drain()
        except AuditWriteError as e:
            self._failure = e
            raise
        self._failure = None

    def flush_sync(self) -> None:
        """Blocking flush for callers outside an event loop."""
        asyncio.run(self.flush())

    async def close(self) -> None:
        """Flush remaining records on shutdown."""
        await self.flush()

    # === Internals ===

    def _schedule_drain(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return  # no loop: records wait for flush()

        if self._drain_task is not None and not self._drain_task.done():
            return  # the in-flight drain keeps consuming until the queue is empty
        if self._failure is not None:
            return  # retried by the next flush()

        self._drain_task = loop.create_task(self._background_drain())

    async def _background_drain(self) -> None:
        try:
            await self._drain()
        except AuditWriteError as e:
            self._failure = e
            self.diagnostics.error(
                "audit_drain_failed",
                path=str(self.log_path),
                pending=len(self._queue),
                error=e.message,
            )

    def _writer_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def _drain(self) -> None:
        async with self._writer_lock():
            while self._queue:
                write = asyncio.ensure_future(asyncio.to_thread(self._append_line, self._queue[0]))
                try:
                    await asyncio.shield(write)
                except asyncio.CancelledError:
                    # The worker thread finishes the append regardless; settle
                    # the head of the queue before releasing the writer lock
                    await asyncio.wait({write})
                    if not write.cancelled() and write.exception() is None:
                        self._queue.popleft()
                    raise
                self._queue.popleft()

    def _append_line(self, line: str) -> None:
        try:
            self._ensure_directory()
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
                if self.fsync:
                    f.flush()
                    os.fsync(f.fileno())
        except OSError as e:
            logger.warning("audit_append_failed", path=str(self.log_path), error=str(e))
            raise AuditWriteError(
                f"Failed to append audit record: {e}",
                details={"path": str(self.log_path)},
            ) from e

    def _ensure_directory(self) -> None:
        if self._dir_ensured:
            return
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._dir_ensured = True
