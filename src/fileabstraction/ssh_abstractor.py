# src/fileabstraction/ssh_abstractor.py — v1
"""SSH/SFTP backend (FS_BACKEND=ssh).

Requires 'paramiko' package: pip install fsingest[ssh].
Authenticates with a private key when SERVER_PEM_PATH is set, with a
password otherwise. Unknown host keys are accepted.
"""

from __future__ import annotations

import logging
import stat
from datetime import datetime, timezone
from typing import Any, BinaryIO

from fsingest.core.errors import FileAbstractorError
from fsingest.fileabstraction.base_file_abstractor import FileAbstractor, mode_to_permissions
from fsingest.fileabstraction.models import FileEntry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0


class SshFileAbstractor(FileAbstractor):
    """Read files from a remote server over SFTP."""

    def __init__(
        self,
        root_path: str,
        hostname: str,
        port: int = 22,
        username: str = "",
        password: str | None = None,
        pem_path: str | None = None,
        follow_symlinks: bool = False,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        """Initialize SSH backend.

        Args:
            root_path: Remote crawl root.
            hostname: SSH server host.
            port: SSH server port.
            username: Login name.
            password: Password, used when no key is given.
            pem_path: Private key file.
            follow_symlinks: Accepted for interface parity; SFTP listings
                report links as their targets.
            timeout: TCP connect timeout in seconds.
        """
        super().__init__(root_path, follow_symlinks)
        self._hostname = hostname
        self._port = port
        self._username = username
        self._password = password or None
        self._pem_path = pem_path or None
        self._timeout = timeout
        self._client: Any = None
        self._sftp: Any = None

    def open(self) -> None:
        try:
            import paramiko
        except ImportError as e:
            raise ImportError(
                "paramiko package required for SSH backend: pip install fsingest[ssh]"
            ) from e

        logger.debug(
            "Opening SSH connection to %s@%s:%d", self._username, self._hostname, self._port
        )
        self._client = paramiko.SSHClient()
        self._client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            if self._pem_path:
                self._client.connect(
                    self._hostname, port=self._port, username=self._username,
                    key_filename=self._pem_path, timeout=self._timeout,
                )
            else:
                self._client.connect(
                    self._hostname, port=self._port, username=self._username,
                    password=self._password, timeout=self._timeout,
                )
            self._sftp = self._client.open_sftp()
        except (paramiko.SSHException, OSError) as e:
            self.close()
            raise FileAbstractorError(
                f"Cannot connect with SSH to {self._username}@{self._hostname}:{self._port}: {e}"
            ) from e
        logger.debug("SSH connection successful")

    def close(self) -> None:
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        if self._client is not None:
            self._client.close()
            self._client = None

    def _require_sftp(self) -> Any:
        if self._sftp is None:
            raise FileAbstractorError("SSH backend is not open")
        return self._sftp

    def url_for(self, path: str) -> str:
        return f"sftp://{self._hostname}:{self._port}{path}"

    def exists(self, path: str) -> bool:
        try:
            self._require_sftp().stat(path)
        except OSError:
            return False
        return True

    def list_native(self, directory: str) -> list[Any]:
        return self._require_sftp().listdir_attr(directory)

    def to_file_entry(self, parent_path: str, native: Any) -> FileEntry:
        mode = native.st_mode or 0
        mtime = native.st_mtime or 0
        atime = native.st_atime
        return self.build_entry(
            parent_path=parent_path,
            name=native.filename,
            is_file=not stat.S_ISDIR(mode),
            last_modified=datetime.fromtimestamp(mtime, tz=timezone.utc),
            last_accessed=(
                datetime.fromtimestamp(atime, tz=timezone.utc) if atime is not None else None
            ),
            size_bytes=native.st_size or 0,
            owner=str(native.st_uid) if native.st_uid is not None else None,
            group=str(native.st_gid) if native.st_gid is not None else None,
            permissions=mode_to_permissions(mode),
        )

    def get_input_stream(self, entry: FileEntry) -> BinaryIO:
        return self._require_sftp().open(entry.full_path, "rb")
