# src/fileabstraction/base_file_abstractor.py — v1
"""Abstract file abstraction interface.

Every backend (local disk, SFTP, FTP) lists directories into FileEntry
objects and opens file content as a binary stream. Listing is implemented
once here on top of two backend hooks, `list_native()` and
`to_file_entry()`, so that dot entries and ordering are handled the same way
for all backends.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, BinaryIO

from fsingest.fileabstraction.models import UNKNOWN_PERMISSIONS, FileEntry
from fsingest.fileabstraction.paths import (
    compute_real_path_name,
    compute_virtual_path_name,
    get_extension,
    normalize_path,
)

logger = logging.getLogger(__name__)

DOT_ENTRIES = frozenset({".", ".."})


class FileAbstractor(ABC):
    """Unified interface for file tree backends."""

    def __init__(self, root_path: str, follow_symlinks: bool = False) -> None:
        self._root_path = normalize_path(root_path)
        self._follow_symlinks = follow_symlinks

    @property
    def root_path(self) -> str:
        return self._root_path

    # --- Connection ---

    @abstractmethod
    def open(self) -> None:
        """Connect to the backend. Raises FileAbstractorError on failure."""

    @abstractmethod
    def close(self) -> None:
        """Release backend resources. Safe to call after a failed open()."""

    def __enter__(self) -> FileAbstractor:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- Backend hooks ---

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check if a path exists. Never raises when it does not."""

    @abstractmethod
    def list_native(self, directory: str) -> list[Any]:
        """Return the backend's own entries for a directory."""

    @abstractmethod
    def to_file_entry(self, parent_path: str, native: Any) -> FileEntry:
        """Map one backend entry to a FileEntry."""

    @abstractmethod
    def get_input_stream(self, entry: FileEntry) -> BinaryIO:
        """Open the content of a file for reading."""

    def close_input_stream(self, stream: BinaryIO) -> None:
        """Release a stream returned by get_input_stream()."""
        stream.close()

    def url_for(self, path: str) -> str | None:
        """URL of a file on this backend, or None when it has no URL form."""
        return None

    # --- Listing ---

    def get_files(self, directory: str) -> list[FileEntry]:
        """List immediate children, newest first, without `.` and `..`.

        An entry removed between listing and reading its attributes is
        skipped; the rest of the directory is still returned.
        """
        directory = normalize_path(directory)
        logger.debug("Listing files from %s", directory)
        entries: list[FileEntry] = []
        for native in self.list_native(directory):
            try:
                entry = self.to_file_entry(directory, native)
            except FileNotFoundError as e:
                logger.debug("Entry vanished while listing %s: %s", directory, e)
                continue
            if entry.name not in DOT_ENTRIES:
                entries.append(entry)
        entries.sort(key=lambda e: e.last_modified, reverse=True)
        logger.debug("%d files found in %s", len(entries), directory)
        return entries

    def build_entry(
        self,
        parent_path: str,
        name: str,
        is_file: bool,
        last_modified: datetime,
        created_at: datetime | None = None,
        last_accessed: datetime | None = None,
        size_bytes: int = 0,
        owner: str | None = None,
        group: str | None = None,
        permissions: int = UNKNOWN_PERMISSIONS,
    ) -> FileEntry:
        """Build a FileEntry, deriving the full, virtual path and extension."""
        parent = normalize_path(parent_path)
        full_path = compute_real_path_name(parent, name)
        return FileEntry(
            name=name,
            is_file=is_file,
            last_modified=last_modified,
            created_at=created_at,
            last_accessed=last_accessed,
            extension=get_extension(name) if is_file else "",
            parent_path=parent,
            full_path=full_path,
            virtual_path=compute_virtual_path_name(self._root_path, full_path),
            size_bytes=size_bytes,
            owner=owner,
            group=group,
            permissions=permissions,
        )


def mode_to_permissions(mode: int) -> int:
    """Turn a POSIX mode into its octal digits read as decimal (0o644 -> 644)."""
    return int(oct(mode & 0o777)[2:])
