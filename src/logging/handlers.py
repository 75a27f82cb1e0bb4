# src/logging/handlers.py — v2
"""File rotation handler for log files."""

from __future__ import annotations

from logging.handlers import RotatingFileHandler
from pathlib import Path

from fsingest.core.byte_size import parse_byte_size


def create_rotating_handler(
    log_file: str,
    rotation: str = "10MB",
    retention: int = 30,
) -> RotatingFileHandler:
    """Create a rotating file handler.

    Args:
        log_file: Path to log file.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of backup files to keep.

    Returns:
        Configured RotatingFileHandler.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    return RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_byte_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
