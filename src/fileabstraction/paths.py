# src/fileabstraction/paths.py — v1
"""Path helpers shared by backends and the crawler.

All backends speak `/`-separated paths, whatever the server they talk to.
"""

from __future__ import annotations

import posixpath

SEPARATOR = "/"


def normalize_path(path: str) -> str:
    """Use `/` separators and drop trailing separators (except for the root)."""
    normalized = path.replace("\\", SEPARATOR)
    if len(normalized) > 1:
        normalized = normalized.rstrip(SEPARATOR) or SEPARATOR
    return normalized


def compute_real_path_name(dirname: str, filename: str) -> str:
    """Join a directory and a child name without doubling the separator."""
    dirname = normalize_path(dirname)
    if dirname.endswith(SEPARATOR):
        return dirname + filename
    return f"{dirname}{SEPARATOR}{filename}"


def compute_virtual_path_name(root_path: str, real_path: str) -> str:
    """Return real_path relative to the crawl root, as an absolute `/` path.

    The root itself maps to `/`. A root of `/` keeps the real path unchanged,
    which is the usual case for FTP servers.
    """
    root = normalize_path(root_path)
    real = normalize_path(real_path)
    if real == root:
        return SEPARATOR
    if root == SEPARATOR:
        return real
    if real.startswith(root + SEPARATOR):
        return real[len(root):]
    return SEPARATOR


def get_extension(filename: str) -> str:
    """Lowercase extension without the dot, empty when there is none."""
    _, ext = posixpath.splitext(filename)
    return ext[1:].lower()
