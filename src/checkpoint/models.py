# src/checkpoint/models.py — v1
"""Crawl checkpoint: resumable scan progress for one crawl job.

The checkpoint is owned by the crawl thread. It records which directories are
still pending, which are done for the current scan, and retry bookkeeping for
the directory being processed, so that an interrupted crawl resumes without
re-scanning completed directories.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_serializer


class CrawlerState(str, Enum):
    """Lifecycle state of a crawl job."""

    STOPPED = "STOPPED"
    RUNNING = "RUNNING"
    RETRYING = "RETRYING"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_resumable(self) -> bool:
        """True when a persisted checkpoint in this state has work left."""
        return self in (CrawlerState.RUNNING, CrawlerState.RETRYING, CrawlerState.PAUSED)


class CrawlCheckpoint(BaseModel):
    """Persisted progress of a crawl job."""

    scan_id: str | None = None
    scan_start_time: datetime | None = None
    scan_date: datetime | None = None
    current_path: str | None = None
    pending_paths: list[str] = Field(default_factory=list)
    completed_paths: set[str] = Field(default_factory=set)
    files_processed: int = 0
    files_deleted: int = 0
    state: CrawlerState = CrawlerState.STOPPED
    retry_count: int = 0
    last_error: str | None = None

    @classmethod
    def new_checkpoint(cls, root_path: str) -> CrawlCheckpoint:
        """Create a checkpoint for a fresh scan starting at root_path."""
        return cls(
            scan_id=str(uuid.uuid4()),
            scan_start_time=datetime.now(timezone.utc),
            pending_paths=[root_path],
            state=CrawlerState.RUNNING,
        )

    @field_serializer("completed_paths")
    def _serialize_completed(self, paths: set[str]) -> list[str]:
        # Sorted so that the JSON file is stable and diffable.
        return sorted(paths)

    # --- Pending queue ---

    def has_pending_work(self) -> bool:
        return bool(self.pending_paths)

    def peek_next_path(self) -> str | None:
        """Return the next directory to process without removing it."""
        return self.pending_paths[0] if self.pending_paths else None

    def poll_next_path(self) -> str | None:
        """Remove and return the next directory, making it the current path."""
        if not self.pending_paths:
            return None
        path = self.pending_paths.pop(0)
        self.current_path = path
        self.retry_count = 0
        return path

    def add_path(self, path: str) -> None:
        """Enqueue a directory at the tail of the queue."""
        if path in self.completed_paths or path in self.pending_paths:
            return
        self.pending_paths.append(path)

    def add_path_first(self, path: str) -> None:
        """Enqueue a directory at the head of the queue (used for retries)."""
        if path in self.completed_paths:
            return
        if path in self.pending_paths:
            self.pending_paths.remove(path)
        self.pending_paths.insert(0, path)

    # --- Completion ---

    def mark_completed(self, path: str) -> None:
        self.completed_paths.add(path)
        if self.current_path == path:
            self.retry_count = 0

    def is_completed(self, path: str) -> bool:
        return path in self.completed_paths

    # --- Counters ---

    def increment_files_processed(self) -> None:
        self.files_processed += 1

    def increment_files_deleted(self) -> None:
        self.files_deleted += 1

    def increment_retry_count(self) -> None:
        self.retry_count += 1

    def reset_retry_count(self) -> None:
        self.retry_count = 0

    def __str__(self) -> str:
        return (
            f"CrawlCheckpoint(scan_id={self.scan_id!r}, state={self.state.value}, "
            f"current_path={self.current_path!r}, pending={len(self.pending_paths)}, "
            f"completed={len(self.completed_paths)}, "
            f"files_processed={self.files_processed}, "
            f"files_deleted={self.files_deleted}, retry_count={self.retry_count})"
        )
