"""Tests for logging helpers."""

import logging

from core.models import Allowlist
from core.reconciler import reconcile
from utils.logging_helpers import error_messages, log_error_section, log_scan_outcome


def test_error_messages_follow_causes():
    try:
        try:
            raise ConnectionError("connection reset")
        except ConnectionError as e:
            raise RuntimeError("token request failed") from e
    except RuntimeError as e:
        messages = error_messages(e)

    assert messages == ["token request failed", "caused by: connection reset"]


def test_error_messages_single():
    assert error_messages(ValueError("bad")) == ["bad"]


def test_log_error_section(caplog):
    logger = logging.getLogger("test_logging_helpers")

    with caplog.at_level(logging.ERROR, logger="test_logging_helpers"):
        log_error_section("Can't scan nginx", ["first", ""], logger=logger, width=10)

    assert [r.getMessage() for r in caplog.records] == [
        "=" * 10, "Can't scan nginx", "first", "", "=" * 10,
    ]


class TestLogScanOutcome:
    """Tests for log_scan_outcome."""

    def test_within_threshold(self, sample_vulnerabilities, caplog):
        report = reconcile(sample_vulnerabilities, Allowlist.empty(), "team/app")

        with caplog.at_level(logging.INFO):
            assert log_scan_outcome(report, 5) is False
        assert "5 actionable of 5 vulnerabilities, threshold 5" in caplog.text

    def test_exceeded(self, sample_vulnerabilities, caplog):
        report = reconcile(sample_vulnerabilities, Allowlist.empty(), "team/app")

        with caplog.at_level(logging.INFO):
            assert log_scan_outcome(report, 4) is True
        assert "exceed the threshold of 4" in caplog.text
        assert caplog.records[-1].levelno == logging.WARNING
