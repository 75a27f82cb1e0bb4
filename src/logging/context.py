# src/logging/context.py — v1
"""Contextual logging support: attach job_name, scan_id and path to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set by the crawl thread.
_job_name: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_name", default=None
)
_scan_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "scan_id", default=None
)
_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "path", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    job_name: str | None = None
    scan_id: str | None = None
    path: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        job_name=_job_name.get(),
        scan_id=_scan_id.get(),
        path=_path.get(),
    )


def set_job_context(job_name: str, scan_id: str | None = None) -> None:
    """Set job-level context (called once per crawl run)."""
    _job_name.set(job_name)
    _scan_id.set(scan_id)


def set_path_context(path: str | None) -> None:
    """Set the directory currently being crawled."""
    _path.set(path)


def clear_context() -> None:
    """Reset all context variables."""
    _job_name.set(None)
    _scan_id.set(None)
    _path.set(None)
