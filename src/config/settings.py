# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for crawl job, backend, bulk and logging settings.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fsingest.core.byte_size import parse_byte_size
from fsingest.core.errors import ConfigurationError

DEFAULT_PORTS: dict[str, int] = {"ssh": 22, "ftp": 21}


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Job ===
    job_name: str = "fsingest"
    config_dir: Path = Path("~/.fsingest")

    # === Crawl ===
    fs_url: str = "/tmp/es"
    fs_backend: Literal["local", "ssh", "ftp"] = "local"
    fs_includes: str = ""
    fs_excludes: str = ""
    fs_follow_symlinks: bool = False
    fs_index_content: bool = True
    fs_index_folders: bool = True
    fs_filename_as_id: bool = False
    fs_ignore_above: str = ""
    fs_remove_deleted: bool = True
    fs_checksum: str = ""
    fs_continue_on_error: bool = True
    fs_max_path_retries: int = 3
    fs_retry_delay: float = 1.0
    fs_update_rate: float = 900.0

    # === Remote server (ssh / ftp) ===
    server_hostname: str = ""
    server_port: int | None = None
    server_username: str = ""
    server_password: str = ""
    server_pem_path: str = ""
    server_ftp_fallback_encoding: str = "latin-1"

    # === Document store ===
    index_name: str = ""
    index_folder_name: str = ""

    # === Bulk ===
    bulk_size: int = 100
    bulk_flush_interval: float | None = 5.0
    bulk_byte_size: str = "10MB"
    bulk_retry_errors: str = "es_rejected_execution_exception"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("bulk_size", "fs_max_path_retries")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("bulk_flush_interval")
    @classmethod
    def validate_flush_interval(cls, v: float | None) -> float | None:  # noqa: N805
        """A zero or negative interval disables the background flush."""
        if v is not None and v <= 0:
            return None
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if not self.fs_url.strip():
            errors.append("FS_URL must not be empty")

        if self.fs_backend in ("ssh", "ftp") and not self.server_hostname:
            errors.append(f"FS_BACKEND={self.fs_backend} requires SERVER_HOSTNAME")

        if (
            self.fs_backend == "ssh"
            and not self.server_password
            and not self.server_pem_path
        ):
            errors.append("FS_BACKEND=ssh requires SERVER_PASSWORD or SERVER_PEM_PATH")

        if self.fs_checksum:
            try:
                hashlib.new(self.fs_checksum)
            except ValueError:
                errors.append(f"FS_CHECKSUM: unsupported algorithm {self.fs_checksum!r}")

        for name in ("fs_ignore_above", "bulk_byte_size", "log_rotation"):
            value = getattr(self, name)
            if not value:
                continue
            try:
                parse_byte_size(value)
            except ValueError as e:
                errors.append(f"{name.upper()}: {e}")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def fs_includes_list(self) -> list[str]:
        """Parse comma-separated include patterns."""
        return [p.strip() for p in self.fs_includes.split(",") if p.strip()]

    @property
    def fs_excludes_list(self) -> list[str]:
        """Parse comma-separated exclude patterns."""
        return [p.strip() for p in self.fs_excludes.split(",") if p.strip()]

    @property
    def bulk_retry_errors_list(self) -> list[str]:
        """Parse comma-separated retryable bulk error markers."""
        return [e.strip() for e in self.bulk_retry_errors.split(",") if e.strip()]

    @property
    def fs_ignore_above_bytes(self) -> int | None:
        return parse_byte_size(self.fs_ignore_above) if self.fs_ignore_above else None

    @property
    def bulk_byte_size_bytes(self) -> int | None:
        return parse_byte_size(self.bulk_byte_size) if self.bulk_byte_size else None

    @property
    def resolved_server_port(self) -> int | None:
        """Configured port, or the backend's default port."""
        if self.server_port is not None:
            return self.server_port
        return DEFAULT_PORTS.get(self.fs_backend)

    @property
    def resolved_index_name(self) -> str:
        return self.index_name or self.job_name

    @property
    def resolved_index_folder_name(self) -> str:
        return self.index_folder_name or f"{self.job_name}_folder"


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-job config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
