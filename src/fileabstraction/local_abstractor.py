# src/fileabstraction/local_abstractor.py — v1
"""Local filesystem backend."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from fsingest.fileabstraction.base_file_abstractor import FileAbstractor, mode_to_permissions
from fsingest.fileabstraction.models import FileEntry

logger = logging.getLogger(__name__)


def _from_timestamp(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


class LocalFileAbstractor(FileAbstractor):
    """Read files from a locally mounted directory tree."""

    def open(self) -> None:
        logger.debug("Local backend needs no connection (root: %s)", self._root_path)

    def close(self) -> None:
        pass

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def list_native(self, directory: str) -> list[os.DirEntry]:
        """Scan a directory, skipping symlinks unless following them.

        Entries that are neither regular files nor directories (sockets,
        fifos, dangling links) are skipped.
        """
        result: list[os.DirEntry] = []
        with os.scandir(directory) as it:
            for entry in it:
                if entry.is_symlink() and not self._follow_symlinks:
                    continue
                if entry.is_file() or entry.is_dir():
                    result.append(entry)
                else:
                    logger.debug("Skipping special file %s", entry.path)
        return result

    def to_file_entry(self, parent_path: str, native: os.DirEntry) -> FileEntry:
        st = native.stat()
        is_file = native.is_file()
        birthtime = getattr(st, "st_birthtime", None)
        return self.build_entry(
            parent_path=parent_path,
            name=native.name,
            is_file=is_file,
            last_modified=_from_timestamp(st.st_mtime),
            created_at=_from_timestamp(birthtime) if birthtime is not None else None,
            last_accessed=_from_timestamp(st.st_atime),
            size_bytes=st.st_size if is_file else 0,
            owner=_owner(native.path, st.st_uid),
            group=_group(native.path, st.st_gid),
            permissions=mode_to_permissions(st.st_mode),
        )

    def url_for(self, path: str) -> str:
        return f"file://{path}"

    def get_input_stream(self, entry: FileEntry) -> BinaryIO:
        return open(entry.full_path, "rb")


def _owner(path: str, uid: int) -> str:
    try:
        return Path(path).owner()
    except (KeyError, NotImplementedError, OSError):
        return str(uid)


def _group(path: str, gid: int) -> str:
    try:
        return Path(path).group()
    except (KeyError, NotImplementedError, OSError):
        return str(gid)
