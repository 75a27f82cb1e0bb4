# tests/integration/conftest.py — v8
"""Shared fixtures for integration tests.

Integration tests run the real checkpoint store, bulk processor and local
backend together on a temp directory tree. No server is required.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

TREE = {
    "readme.txt": "top level",
    "reports/2023.txt": "last year",
    "reports/2024.txt": "this year",
    "reports/drafts/q1~.txt": "lock file",
    "reports/drafts/q1.txt": "draft",
    "images/logo.bin": "binary-ish",
    "archive/old/a.txt": "a",
    "archive/old/b.txt": "b",
}


@pytest.fixture
def doc_tree(docs_dir: Path) -> dict[str, Path]:
    """Populate docs_dir with a small multi-level tree, one hour old."""
    created: dict[str, Path] = {}
    for relative, content in TREE.items():
        path = docs_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        ts = path.stat().st_mtime - 3600
        os.utime(path, (ts, ts))
        created[relative] = path
    return created
