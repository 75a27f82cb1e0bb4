# src/fileabstraction/abstractor_factory.py — v1
"""Factory: instantiate the file abstraction backend from configuration."""

from __future__ import annotations

from fsingest.config.settings import Settings
from fsingest.fileabstraction.base_file_abstractor import FileAbstractor
from fsingest.fileabstraction.local_abstractor import LocalFileAbstractor


class UnsupportedBackendError(ValueError):
    """Raised when FS_BACKEND names no known backend."""


def create_file_abstractor(settings: Settings) -> FileAbstractor:
    """Create the backend selected by FS_BACKEND.

    Args:
        settings: Application settings.

    Returns:
        An unopened FileAbstractor.

    Raises:
        UnsupportedBackendError: If the backend is not supported.
    """
    if settings.fs_backend == "local":
        return LocalFileAbstractor(
            settings.fs_url, follow_symlinks=settings.fs_follow_symlinks,
        )

    if settings.fs_backend == "ssh":
        from fsingest.fileabstraction.ssh_abstractor import SshFileAbstractor
        return SshFileAbstractor(
            settings.fs_url,
            hostname=settings.server_hostname,
            port=settings.resolved_server_port or 22,
            username=settings.server_username,
            password=settings.server_password,
            pem_path=settings.server_pem_path,
            follow_symlinks=settings.fs_follow_symlinks,
        )

    if settings.fs_backend == "ftp":
        from fsingest.fileabstraction.ftp_abstractor import FtpFileAbstractor
        return FtpFileAbstractor(
            settings.fs_url,
            hostname=settings.server_hostname,
            port=settings.resolved_server_port or 21,
            username=settings.server_username,
            password=settings.server_password,
            fallback_encoding=settings.server_ftp_fallback_encoding,
            follow_symlinks=settings.fs_follow_symlinks,
        )

    raise UnsupportedBackendError(f"Unsupported file backend: {settings.fs_backend!r}")
