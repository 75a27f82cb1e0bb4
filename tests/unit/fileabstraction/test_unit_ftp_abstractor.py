# tests/unit/fileabstraction/test_unit_ftp_abstractor.py — v1
"""Tests for fileabstraction/ftp_abstractor.py — mocked ftplib client."""

from __future__ import annotations

import ftplib
import io
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from fsingest.core.errors import FileAbstractorError
from fsingest.fileabstraction.ftp_abstractor import (
    MLSD_FACTS,
    FtpFileAbstractor,
    parse_mlsd_time,
    parse_unix_mode,
)


@pytest.fixture
def ftp():
    with patch("fsingest.fileabstraction.ftp_abstractor.ftplib.FTP") as ftp_cls:
        client = MagicMock()
        ftp_cls.return_value = client
        yield client


@pytest.fixture
def backend(ftp) -> FtpFileAbstractor:
    b = FtpFileAbstractor("/", hostname="ftp.local", username="bob", password="pw")
    b.open()
    return b


class TestParsers:
    def test_mlsd_time(self):
        assert parse_mlsd_time("20240517103015") == datetime(2024, 5, 17, 10, 30, 15, tzinfo=timezone.utc)

    def test_mlsd_time_fraction(self):
        assert parse_mlsd_time("20240517103015.5").microsecond == 500000

    def test_mlsd_time_missing(self):
        assert parse_mlsd_time(None).year == 1970

    def test_unix_mode(self):
        assert parse_unix_mode("0644") == 644
        assert parse_unix_mode(None) == -1
        assert parse_unix_mode("rwx") == -1


class TestOpenClose:
    def test_open_negotiates_utf8(self, ftp, backend):
        ftp.connect.assert_called_once_with("ftp.local", 21, timeout=30.0)
        ftp.login.assert_called_once_with("bob", "pw")
        ftp.sendcmd.assert_called_once_with("OPTS UTF8 ON")
        assert backend.is_utf8
        assert ftp.encoding == "utf-8"

    def test_open_falls_back_to_encoding(self, ftp):
        ftp.sendcmd.side_effect = ftplib.error_perm("500 unknown command")
        b = FtpFileAbstractor("/", hostname="h", fallback_encoding="cp1252")
        b.open()
        assert not b.is_utf8
        assert ftp.encoding == "cp1252"

    def test_bad_credentials(self, ftp):
        ftp.login.side_effect = ftplib.error_perm("530 Login incorrect")
        b = FtpFileAbstractor("/", hostname="h", username="bob", password="bad")
        with pytest.raises(FileAbstractorError, match="check ftp user or password"):
            b.open()
        ftp.quit.assert_called_once()

    def test_connection_refused(self, ftp):
        ftp.connect.side_effect = ConnectionRefusedError("refused")
        ftp.quit.side_effect = AttributeError("no socket")
        b = FtpFileAbstractor("/", hostname="h")
        with pytest.raises(FileAbstractorError, match="Can not connect"):
            b.open()
        ftp.close.assert_called_once()

    def test_close(self, ftp, backend):
        backend.close()
        ftp.quit.assert_called_once()
        backend.close()
        ftp.quit.assert_called_once()


class TestListing:
    def test_get_files(self, ftp, backend):
        ftp.mlsd.return_value = iter([
            (".", {"type": "cdir", "modify": "20240101000000"}),
            ("..", {"type": "pdir", "modify": "20240101000000"}),
            ("old.txt", {"type": "file", "modify": "20230101000000", "size": "12",
                         "unix.mode": "0644", "unix.owner": "bob", "unix.group": "staff"}),
            ("pub", {"type": "dir", "modify": "20240301000000"}),
            ("link", {"type": "OS.unix=slink:/x", "modify": "20240401000000"}),
        ])
        entries = backend.get_files("/")
        ftp.mlsd.assert_called_once_with("/", facts=MLSD_FACTS)
        assert [e.name for e in entries] == ["pub", "old.txt"]
        pub, old = entries
        assert pub.is_directory and pub.full_path == "/pub"
        assert old.size_bytes == 12
        assert old.permissions == 644
        assert old.owner == "bob"
        assert old.virtual_path == "/old.txt"

    def test_follow_symlinks(self, ftp):
        ftp.mlsd.return_value = iter([("link", {"type": "OS.unix=slink:/x", "modify": "20240401000000"})])
        b = FtpFileAbstractor("/", hostname="h", follow_symlinks=True)
        b.open()
        assert [e.name for e in b.get_files("/")] == ["link"]

    def test_exists(self, ftp, backend):
        ftp.cwd.side_effect = [None, ftplib.error_perm("550 No such directory")]
        assert backend.exists("/pub")
        assert not backend.exists("/nope")

    def test_url(self, backend):
        assert backend.url_for("/pub/a.txt") == "ftp://ftp.local:21/pub/a.txt"


class TestStreams:
    def test_retrieve_and_complete(self, ftp, backend, make_entry):
        conn = MagicMock()
        conn.makefile.return_value = io.BytesIO(b"payload")
        ftp.transfercmd.return_value = conn
        entry = make_entry(name="a.txt", parent_path="/pub")

        stream = backend.get_input_stream(entry)
        ftp.voidcmd.assert_called_once_with("TYPE I")
        ftp.transfercmd.assert_called_once_with("RETR /pub/a.txt")
        assert stream.read() == b"payload"

        backend.close_input_stream(stream)
        assert stream.closed
        conn.close.assert_called_once()
        ftp.voidresp.assert_called_once()

    def test_missing_file(self, ftp, backend, make_entry):
        ftp.transfercmd.side_effect = ftplib.error_perm("550 not found")
        with pytest.raises(OSError, match="can not retrieve stream"):
            backend.get_input_stream(make_entry(name="a.txt", parent_path="/pub"))
