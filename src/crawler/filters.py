# src/crawler/filters.py — v1
"""Include/exclude filtering of crawled paths.

Patterns are shell-style globs matched case-sensitively with fnmatch. A
pattern without `/` is matched against the basename only; a pattern that
contains `/` is matched against the whole virtual path, so its `*` also
crosses directory separators.
"""

from __future__ import annotations

import logging
from fnmatch import fnmatchcase
from typing import Sequence

logger = logging.getLogger(__name__)

TEMPORARY_FILE_MARKER = "~"


def _basename(virtual_path: str) -> str:
    return virtual_path.rstrip("/").rsplit("/", 1)[-1]


def _matches(virtual_path: str, pattern: str) -> bool:
    if "/" in pattern:
        return fnmatchcase(virtual_path, pattern)
    return fnmatchcase(_basename(virtual_path), pattern)


def is_excluded(virtual_path: str, excludes: Sequence[str] | None) -> bool:
    """True for temporary files (`~` in the name) and exclude matches."""
    if TEMPORARY_FILE_MARKER in _basename(virtual_path):
        logger.debug("%s looks like a temporary file, excluded", virtual_path)
        return True
    for pattern in excludes or ():
        if _matches(virtual_path, pattern):
            logger.debug("%s matches exclude pattern %s", virtual_path, pattern)
            return True
    return False


def is_included(virtual_path: str, includes: Sequence[str] | None) -> bool:
    """True when there are no include rules or one of them matches."""
    if not includes:
        return True
    return any(_matches(virtual_path, pattern) for pattern in includes)


def is_indexable(
    virtual_path: str,
    includes: Sequence[str] | None,
    excludes: Sequence[str] | None,
    directory: bool = False,
) -> bool:
    """Decide whether a path is crawled.

    Excludes always win. Directories are traversed unless excluded, even when
    they do not match an include pattern like `*.txt`.
    """
    if is_excluded(virtual_path, excludes):
        return False
    if directory:
        return True
    return is_included(virtual_path, includes)


def is_file_size_under_limit(limit: int | None, size_bytes: int) -> bool:
    """True when no limit is set or the size does not exceed it."""
    if limit is None:
        return True
    under = size_bytes <= limit
    logger.debug(
        "Comparing file size [%d] with current limit [%d] -> %s",
        size_bytes, limit, "under limit" if under else "above limit",
    )
    return under
