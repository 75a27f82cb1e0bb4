# src/core/byte_size.py — v1
"""Parse human-readable byte sizes such as '10MB' or '512kb'."""

from __future__ import annotations

import re

_MULTIPLIERS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3, "TB": 1024**4}


def parse_byte_size(size_str: str) -> int:
    """Parse size string like '10MB' into bytes.

    Supported suffixes: B, KB, MB, GB, TB (case-insensitive). A bare number
    is a number of bytes.
    """
    match = re.match(r"^(\d+)\s*(B|KB|MB|GB|TB)?$", size_str.strip(), re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    value = int(match.group(1))
    unit = (match.group(2) or "B").upper()
    return value * _MULTIPLIERS[unit]


def format_byte_size(size: int) -> str:
    """Render a byte count with the largest unit that keeps it >= 1."""
    for unit in ("TB", "GB", "MB", "KB"):
        factor = _MULTIPLIERS[unit]
        if size >= factor:
            return f"{size / factor:.1f}{unit.lower()}"
    return f"{size}b"
