# src/fileabstraction/models.py — v1
"""File entry model returned by every file abstraction backend."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

UNKNOWN_PERMISSIONS = -1


class FileEntry(BaseModel):
    """Backend-neutral description of one file or directory.

    Built fresh on each listing and never persisted. `permissions` holds the
    octal mode digits read as a decimal number (rw-r--r-- is 644), or -1 when
    the backend does not expose them.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    is_file: bool
    last_modified: datetime
    created_at: datetime | None = None
    last_accessed: datetime | None = None
    extension: str = ""
    parent_path: str
    full_path: str
    virtual_path: str
    size_bytes: int = 0
    owner: str | None = None
    group: str | None = None
    permissions: int = UNKNOWN_PERMISSIONS

    @property
    def is_directory(self) -> bool:
        return not self.is_file
