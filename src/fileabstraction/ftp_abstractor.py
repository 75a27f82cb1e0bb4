# src/fileabstraction/ftp_abstractor.py — v1
"""FTP backend (FS_BACKEND=ftp), based on the standard ftplib client.

Listings use MLSD. After login the client asks the server for UTF-8
(`OPTS UTF8 ON`) and falls back to SERVER_FTP_FALLBACK_ENCODING for the
control connection when the server refuses.
"""

from __future__ import annotations

import ftplib
import logging
import socket
from datetime import datetime, timezone
from typing import Any, BinaryIO

from fsingest.core.errors import FileAbstractorError
from fsingest.fileabstraction.base_file_abstractor import FileAbstractor
from fsingest.fileabstraction.models import UNKNOWN_PERMISSIONS, FileEntry

logger = logging.getLogger(__name__)

MLSD_FACTS = ["type", "modify", "size", "unix.mode", "unix.owner", "unix.group"]
DEFAULT_TIMEOUT_S = 30.0
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_mlsd_time(value: str | None) -> datetime:
    """Parse an MLSD `modify` fact (YYYYMMDDHHMMSS[.sss], always UTC)."""
    if not value:
        return _EPOCH
    whole, _, fraction = value.partition(".")
    parsed = datetime.strptime(whole, "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)
    if fraction:
        parsed = parsed.replace(microsecond=int(fraction.ljust(6, "0")[:6]))
    return parsed


def parse_unix_mode(value: str | None) -> int:
    """`0644` -> 644, -1 when the server does not send unix.mode."""
    if not value:
        return UNKNOWN_PERMISSIONS
    try:
        return int(oct(int(value, 8) & 0o777)[2:])
    except ValueError:
        return UNKNOWN_PERMISSIONS


class FtpFileAbstractor(FileAbstractor):
    """Read files from an FTP server."""

    def __init__(
        self,
        root_path: str,
        hostname: str,
        port: int = 21,
        username: str = "anonymous",
        password: str = "",
        fallback_encoding: str = "latin-1",
        follow_symlinks: bool = False,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        super().__init__(root_path, follow_symlinks)
        self._hostname = hostname
        self._port = port
        self._username = username or "anonymous"
        self._password = password
        self._fallback_encoding = fallback_encoding
        self._timeout = timeout
        self._ftp: ftplib.FTP | None = None
        self._transfers: dict[int, socket.socket] = {}
        self.is_utf8 = False

    def open(self) -> None:
        logger.debug("Opening FTP connection to %s@%s", self._username, self._hostname)
        self._ftp = ftplib.FTP()
        try:
            self._ftp.connect(self._hostname, self._port, timeout=self._timeout)
            self._ftp.login(self._username, self._password)
        except ftplib.error_perm as e:
            self.close()
            raise FileAbstractorError(
                f"Please check ftp user or password for {self._username}@{self._hostname}: {e}"
            ) from e
        except (ftplib.Error, OSError, EOFError) as e:
            self.close()
            raise FileAbstractorError(
                f"Can not connect to {self._username}@{self._hostname}:{self._port}: {e}"
            ) from e

        try:
            self._ftp.sendcmd("OPTS UTF8 ON")
            self._ftp.encoding = "utf-8"
            self.is_utf8 = True
        except ftplib.Error:
            logger.debug(
                "FTP server refused UTF-8, using %s", self._fallback_encoding
            )
            self._ftp.encoding = self._fallback_encoding
            self.is_utf8 = False
        self._ftp.set_pasv(True)
        logger.debug("FTP connection successful")

    def close(self) -> None:
        if self._ftp is None:
            return
        ftp, self._ftp = self._ftp, None
        try:
            ftp.quit()
        except (ftplib.Error, OSError, EOFError, AttributeError) as e:
            # Connection already gone (or never established).
            logger.debug("FTP quit failed (%s), closing socket", e)
            ftp.close()

    def _require_ftp(self) -> ftplib.FTP:
        if self._ftp is None:
            raise FileAbstractorError("FTP backend is not open")
        return self._ftp

    def url_for(self, path: str) -> str:
        return f"ftp://{self._hostname}:{self._port}{path}"

    def exists(self, path: str) -> bool:
        logger.debug("Checking dir existence: %s", path)
        try:
            self._require_ftp().cwd(path)
        except ftplib.error_perm:
            return False
        return True

    def list_native(self, directory: str) -> list[tuple[str, dict[str, str]]]:
        entries = list(self._require_ftp().mlsd(directory, facts=MLSD_FACTS))
        result = []
        for name, facts in entries:
            kind = facts.get("type", "file").lower()
            if kind in ("cdir", "pdir"):
                continue
            if "slink" in kind and not self._follow_symlinks:
                continue
            result.append((name, facts))
        return result

    def to_file_entry(self, parent_path: str, native: tuple[str, dict[str, str]]) -> FileEntry:
        name, facts = native
        size = facts.get("size")
        return self.build_entry(
            parent_path=parent_path,
            name=name,
            is_file=facts.get("type", "file").lower() != "dir",
            last_modified=parse_mlsd_time(facts.get("modify")),
            size_bytes=int(size) if size and size.isdigit() else 0,
            owner=facts.get("unix.owner"),
            group=facts.get("unix.group"),
            permissions=parse_unix_mode(facts.get("unix.mode")),
        )

    def get_input_stream(self, entry: FileEntry) -> BinaryIO:
        ftp = self._require_ftp()
        try:
            ftp.voidcmd("TYPE I")
            conn = ftp.transfercmd(f"RETR {entry.full_path}")
        except ftplib.error_perm as e:
            raise OSError(f"FTP client can not retrieve stream for [{entry.full_path}]: {e}") from e
        stream = conn.makefile("rb")
        self._transfers[id(stream)] = conn
        return stream

    def close_input_stream(self, stream: BinaryIO) -> None:
        """Close the data connection and read the transfer completion reply.

        Required before the next command can be sent on the control channel.
        """
        stream.close()
        conn = self._transfers.pop(id(stream), None)
        if conn is None:
            return
        conn.close()
        self._require_ftp().voidresp()
