# src/core/errors.py — v1
"""Exception hierarchy shared by the checkpoint, bulk and crawler packages."""

from __future__ import annotations


class FsIngestError(Exception):
    """Base class for all fsingest errors."""


class ConfigurationError(FsIngestError):
    """Raised when configuration is internally inconsistent."""


class CheckpointError(FsIngestError):
    """Base class for checkpoint persistence errors."""

    def __init__(self, job_name: str, message: str) -> None:
        self.job_name = job_name
        super().__init__(f"Checkpoint for job '{job_name}': {message}")


class CheckpointReadError(CheckpointError):
    """A checkpoint file exists but cannot be parsed."""


class CheckpointWriteError(CheckpointError):
    """A checkpoint could not be persisted. Fatal for the job."""


class BulkProcessorClosedError(FsIngestError, RuntimeError):
    """Raised when adding to a bulk processor after close()."""

    def __init__(self) -> None:
        super().__init__("bulk processor already closed")


class FileAbstractorError(FsIngestError):
    """Backend connection or protocol failure."""
