"""Integration tests against a live clamd daemon.

These tests require clamd listening on TCP with ``StreamMaxLength`` below
2 MiB for the size-limit test. Run with::

    pytest -m integration

Configure the daemon address via the ``CLAMD_HOST`` (default: ``localhost``)
and ``CLAMD_PORT`` (default: ``3310``) environment variables.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from clamd_sdk.client import ClamdScanner
from clamd_sdk.exceptions import ClamAVAbortedScanError
from clamd_sdk.protocol import is_clean_reply

pytestmark = pytest.mark.integration

EICAR = b"X5O!P%@AP[4\\PZX54(P^)7CC)7}$EICAR-STANDARD-ANTIVIRUS-TEST-FILE!$H+H*"
CLEAN_DATA = b"This is a clean test file with no malicious content."


@pytest.fixture(scope="module")
def client() -> ClamdScanner:
    return ClamdScanner.from_env()


class TestCommands:
    def test_ping(self, client: ClamdScanner):
        assert client.ping() is True

    def test_version(self, client: ClamdScanner):
        assert client.version() != ""


class TestScanBytes:
    def test_random_bytes_clean(self, client: ClamdScanner):
        assert is_clean_reply(client.scan_bytes(b"ygvcukqfr4ki"))

    def test_eicar_found(self, client: ClamdScanner):
        assert not is_clean_reply(client.scan_bytes(EICAR))

    def test_exceeded_size(self, client: ClamdScanner):
        with pytest.raises(ClamAVAbortedScanError):
            client.scan_bytes(bytes(2 * 1024 * 1024))

    def test_zero_bytes_clean(self, client: ClamdScanner):
        assert is_clean_reply(client.scan_bytes(b""))


class TestScanDirectory:
    def test_tree(self, client: ClamdScanner, tmp_path: Path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "eicar.com").write_bytes(EICAR)
        (tmp_path / "clean.txt").write_bytes(CLEAN_DATA)

        report = client.scan_directory(tmp_path)
        assert report.files_scanned == 2
        assert report.infected == 1
        assert report.errors == 0
