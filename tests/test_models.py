"""Tests for clamd_sdk.models."""

import pytest

from clamd_sdk.models import ScanOutcome, ScanReport


class TestScanOutcome:
    def test_clean(self):
        o = ScanOutcome(target="/tmp/a.txt", reply="stream: OK\0")
        assert o.is_clean is True
        assert o.is_error is False

    def test_infected(self):
        o = ScanOutcome(target="/tmp/eicar.com", reply="stream: Eicar-Test-Signature FOUND\0")
        assert o.is_clean is False
        assert o.is_error is False

    def test_error(self):
        o = ScanOutcome(target="/tmp/a.txt", error="Connection refused")
        assert o.is_error is True
        assert o.is_clean is False
        assert o.reply is None

    def test_needs_reply_or_error(self):
        with pytest.raises(ValueError):
            ScanOutcome(target="/tmp/a.txt")

    def test_reply_and_error_are_exclusive(self):
        with pytest.raises(ValueError, match="exactly one"):
            ScanOutcome(target="/tmp/a.txt", reply="stream: OK\0", error="Connection refused")

    def test_frozen(self):
        o = ScanOutcome(target="/tmp/a.txt", reply="stream: OK\0")
        with pytest.raises(AttributeError):
            o.reply = "stream: Eicar FOUND"  # type: ignore[misc]


class TestScanReport:
    def test_defaults(self):
        r = ScanReport()
        assert (r.files_scanned, r.infected, r.errors, r.outcomes) == (0, 0, 0, ())

    def test_frozen(self):
        r = ScanReport(files_scanned=1)
        with pytest.raises(AttributeError):
            r.files_scanned = 2  # type: ignore[misc]
