# src/crawler/models.py — v1
"""Crawl run statistics."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ScanStatistic(BaseModel):
    """Counters for one run_once() invocation."""

    root_path: str
    start_time: datetime
    end_time: datetime | None = None
    files_indexed: int = 0
    files_deleted: int = 0
    files_failed: int = 0
    folders_indexed: int = 0
    paths_abandoned: int = 0

    @property
    def duration_seconds(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()
