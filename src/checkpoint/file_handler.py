# src/checkpoint/file_handler.py — v1
"""JSON file persistence for crawl checkpoints.

One file per job: <config_dir>/<job_name>/_checkpoint.json. Writes go to a
temporary file in the same directory which then replaces the target, so a
reader never observes a half-written checkpoint.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from fsingest.checkpoint.models import CrawlCheckpoint
from fsingest.core.errors import CheckpointReadError, CheckpointWriteError

logger = logging.getLogger(__name__)

CHECKPOINT_FILENAME = "_checkpoint.json"


class CheckpointFileHandler:
    """Read, write and delete the checkpoint file of a crawl job."""

    def __init__(self, config_dir: Path | str) -> None:
        self._root = Path(config_dir).expanduser()

    def checkpoint_path(self, job_name: str) -> Path:
        """Return the checkpoint file path for a job."""
        safe_name = job_name.replace("/", "_").replace("\\", "_")
        return self._root / safe_name / CHECKPOINT_FILENAME

    def read(self, job_name: str) -> CrawlCheckpoint | None:
        """Load the job checkpoint.

        Returns:
            The checkpoint, or None when no checkpoint file exists.

        Raises:
            CheckpointReadError: The file exists but cannot be read or parsed.
        """
        path = self.checkpoint_path(job_name)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise CheckpointReadError(job_name, f"corrupt file {path}: {e}") from e
        except OSError as e:
            raise CheckpointReadError(job_name, f"cannot read {path}: {e}") from e

        try:
            return CrawlCheckpoint.model_validate_json(raw)
        except ValidationError as e:
            raise CheckpointReadError(job_name, f"corrupt file {path}: {e}") from e

    def write(self, job_name: str, checkpoint: CrawlCheckpoint) -> None:
        """Atomically overwrite the job checkpoint.

        Raises:
            CheckpointWriteError: The checkpoint could not be persisted.
        """
        path = self.checkpoint_path(job_name)
        payload = checkpoint.model_dump_json(indent=2)
        tmp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=".checkpoint-", suffix=".tmp", dir=path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise CheckpointWriteError(job_name, f"cannot write {path}: {e}") from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
        logger.debug("Checkpoint saved for [%s]: %s", job_name, checkpoint)

    def exists(self, job_name: str) -> bool:
        """True if a readable checkpoint exists for the job."""
        try:
            return self.read(job_name) is not None
        except CheckpointReadError:
            return False

    def clean(self, job_name: str) -> None:
        """Delete the job checkpoint. No-op when there is none."""
        path = self.checkpoint_path(job_name)
        path.unlink(missing_ok=True)
        logger.debug("Checkpoint removed for [%s]", job_name)
