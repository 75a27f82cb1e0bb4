# src/crawler/documents.py — v1
"""Build the documents sent to the store for files and folders."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Any

from fsingest.fileabstraction.models import FileEntry
from fsingest.fileabstraction.paths import compute_real_path_name


def sign(value: str) -> str:
    """MD5 hex digest of a path, used as a stable document id."""
    return hashlib.md5(value.encode("utf-8")).hexdigest()


def generate_id(filename: str, parent_path: str, filename_as_id: bool = False) -> str:
    """Document id: the filename itself, or the MD5 of the real path."""
    if filename_as_id:
        return filename
    return sign(compute_real_path_name(parent_path, filename))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _path_section(entry: FileEntry) -> dict[str, str]:
    return {
        "root": sign(entry.parent_path),
        "virtual": entry.virtual_path,
        "real": entry.full_path,
    }


def build_document(
    entry: FileEntry,
    content: str | None = None,
    indexing_date: datetime | None = None,
    url: str | None = None,
    checksum: str | None = None,
) -> dict[str, Any]:
    """Document for a file.

    `content` and `checksum` are only present when computed. `url` comes from
    the backend the file was read from.
    """
    indexing_date = indexing_date or datetime.now(timezone.utc)
    doc: dict[str, Any] = {}
    if content is not None:
        doc["content"] = content
    doc["file"] = {
        "filename": entry.name,
        "extension": entry.extension,
        "filesize": entry.size_bytes,
        "last_modified": _iso(entry.last_modified),
        "created": _iso(entry.created_at),
        "last_accessed": _iso(entry.last_accessed),
        "indexing_date": _iso(indexing_date),
        "url": url,
    }
    if checksum is not None:
        doc["file"]["checksum"] = checksum
    doc["path"] = _path_section(entry)
    doc["attributes"] = {
        "owner": entry.owner,
        "group": entry.group,
        "permissions": entry.permissions,
    }
    return doc


def build_folder_document(
    entry: FileEntry, indexing_date: datetime | None = None
) -> dict[str, Any]:
    """Document describing a directory."""
    indexing_date = indexing_date or datetime.now(timezone.utc)
    return {
        "file": {
            "filename": entry.name,
            "last_modified": _iso(entry.last_modified),
            "created": _iso(entry.created_at),
            "indexing_date": _iso(indexing_date),
        },
        "path": _path_section(entry),
    }
