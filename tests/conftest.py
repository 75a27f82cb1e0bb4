# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides settings bound to temp directories, a recording bulk transport,
and helpers to build file trees and FileEntry objects. No network access:
SSH and FTP clients are mocked in their own test modules.
"""

from __future__ import annotations

import os
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import pytest

from fsingest.bulk.models import BulkItemResponse, BulkRequest, BulkResponse
from fsingest.config.settings import Settings, load_settings
from fsingest.fileabstraction.models import FileEntry
from fsingest.logging.context import clear_context


class RecordingEngine:
    """Bulk transport double: records requests and answers with canned responses.

    `failures` maps an operation id to a (failure_type, message) pair; each
    entry fails only `fail_times` times, then the operation succeeds.
    """

    def __init__(self, fail_times: int = 1) -> None:
        self.requests: list[list] = []
        self.failures: dict[str, tuple[str | None, str]] = {}
        self.fail_times = fail_times
        self._failed_count: dict[str, int] = {}
        self.raise_error: Exception | None = None
        self.lock = threading.Lock()

    def __call__(self, request: BulkRequest) -> BulkResponse:
        with self.lock:
            self.requests.append(request.operations)
            if self.raise_error is not None:
                raise self.raise_error
            items = []
            for op in request.operations:
                failure = self.failures.get(op.id)
                count = self._failed_count.get(op.id, 0)
                if failure is not None and count < self.fail_times:
                    self._failed_count[op.id] = count + 1
                    items.append(BulkItemResponse(
                        operation=op, failed=True,
                        failure_type=failure[0], failure_message=failure[1],
                    ))
                else:
                    items.append(BulkItemResponse(operation=op))
            return BulkResponse(items=tuple(items))

    @property
    def operations(self) -> list:
        return [op for request in self.requests for op in request]

    @property
    def ids(self) -> list[str]:
        return [op.id for op in self.operations]


# === FIXTURES: Settings and transport ===


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    root = tmp_path / "docs"
    root.mkdir()
    return root


@pytest.fixture
def settings_factory(tmp_path: Path, docs_dir: Path) -> Callable[..., Settings]:
    """Build settings rooted in temp dirs, without background flush."""

    def _make(**overrides: object) -> Settings:
        values: dict[str, object] = {
            "job_name": "test_job",
            "config_dir": tmp_path / "config",
            "fs_url": str(docs_dir),
            "bulk_flush_interval": None,
            "fs_retry_delay": 0.0,
            "fs_update_rate": 0.0,
        }
        values.update(overrides)
        return load_settings(**values)

    return _make


@pytest.fixture
def settings(settings_factory) -> Settings:
    return settings_factory()


@pytest.fixture
def engine() -> RecordingEngine:
    return RecordingEngine()


# === FIXTURES: Files ===


def write_file(root: Path, relative: str, content: str = "hello", age_s: float = 0) -> Path:
    """Create a file under root, optionally backdating its mtime."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if age_s:
        ts = path.stat().st_mtime - age_s
        os.utime(path, (ts, ts))
    return path


@pytest.fixture
def make_file(docs_dir: Path) -> Callable[..., Path]:
    """Create files under docs_dir: make_file("a/b.txt", "text", age_s=60)."""

    def _make(relative: str, content: str = "hello", age_s: float = 0) -> Path:
        return write_file(docs_dir, relative, content, age_s)

    return _make


@pytest.fixture
def make_entry() -> Callable[..., FileEntry]:
    """Build a FileEntry with sensible defaults."""

    def _make(
        name: str = "report.doc",
        parent_path: str = "/data",
        is_file: bool = True,
        minutes_ago: int = 0,
        **kwargs: object,
    ) -> FileEntry:
        full_path = f"{parent_path.rstrip('/')}/{name}"
        values: dict[str, object] = {
            "name": name,
            "is_file": is_file,
            "last_modified": datetime(2024, 1, 1, tzinfo=timezone.utc)
            - timedelta(minutes=minutes_ago),
            "extension": name.rsplit(".", 1)[-1] if is_file and "." in name else "",
            "parent_path": parent_path,
            "full_path": full_path,
            "virtual_path": full_path,
            "size_bytes": 5,
        }
        values.update(kwargs)
        return FileEntry(**values)

    return _make
