"""
certpress Logging Tests

Test suite for structured JSON logging including:
- JSON formatting with extra fields
- Exception details in formatted records
- Compression report and batch summary events
- Logger configuration via setup_logging

Example usage:
    pytest tests/test_logging.py -v
"""

import json
import logging
import sys
from io import StringIO

import pytest

from certpress.logging import (
    JSONFormatter,
    get_logger,
    log_batch_summary,
    log_compression_report,
    setup_logging,
)
from certpress.models import Asset, CompressionOutcome, CompressionReport, EncodeAttempt


@pytest.fixture
def captured_logger():
    """Dedicated logger writing JSON lines into a buffer."""
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    logger = logging.getLogger("certpress.tests.capture")
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    def records():
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield logger, records
    logger.handlers = []


def make_report(outcome, original_size=500_000, result_size=150_000, attempts=3, error=None):
    original = Asset(data=b"a" * original_size, media_type="image/png", filename="award.png")
    result = original if result_size == original_size else Asset(
        data=b"b" * result_size, media_type="image/jpeg", filename="award.jpg")
    ladder = (0.9, 0.85, 0.8, 0.75)[:attempts]
    return CompressionReport(
        original=original, result=result, outcome=outcome, budget_bytes=204800,
        attempts=tuple(EncodeAttempt(quality=q, byte_length=result_size) for q in ladder),
        error=error,
    )


class TestJSONFormatter:
    """Test JSON log formatting."""

    def test_basic_formatting(self):
        record = logging.LogRecord(
            name="test.logger", level=logging.INFO, pathname="/test/path.py",
            lineno=42, msg="Test message", args=(), exc_info=None,
        )

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["level"] == "INFO"
        assert log_data["logger"] == "test.logger"
        assert log_data["msg"] == "Test message"
        assert "time" in log_data

    def test_extra_fields_included(self):
        record = logging.LogRecord(
            name="test", level=logging.WARNING, pathname="", lineno=0,
            msg="Upload %s", args=("rejected",), exc_info=None,
        )
        record.request_id = "abc12345"
        record.status = 413

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["msg"] == "Upload rejected"
        assert log_data["request_id"] == "abc12345"
        assert log_data["status"] == 413
        assert "lineno" not in log_data

    def test_exception_included(self):
        try:
            raise ValueError("bad quality")
        except ValueError:
            exc_info = sys.exc_info()
        record = logging.LogRecord(
            name="test", level=logging.ERROR, pathname="", lineno=0,
            msg="failed", args=(), exc_info=exc_info,
        )

        log_data = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad quality" in log_data["exception"]

    def test_non_serializable_values_stringified(self):
        record = logging.LogRecord(
            name="test", level=logging.INFO, pathname="", lineno=0,
            msg="m", args=(), exc_info=None,
        )
        record.outcome = CompressionOutcome.COMPRESSED
        record.payload = object()

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["outcome"] == "compressed"
        assert log_data["payload"].startswith("<object")


class TestCompressionEvents:
    """Test report to log event translation."""

    def test_compressed_event(self, captured_logger):
        logger, records = captured_logger

        log_compression_report(logger, make_report(CompressionOutcome.COMPRESSED))

        (event,) = records()
        assert event["level"] == "INFO"
        assert event["event"] == "compression"
        assert event["outcome"] == "compressed"
        assert event["asset"] == "award.png"
        assert event["original_bytes"] == 500_000
        assert event["result_bytes"] == 150_000
        assert event["attempts"] == 3
        assert event["final_quality"] == 0.8
        assert "quality: 0.80" in event["msg"]

    def test_failure_logged_as_warning(self, captured_logger):
        logger, records = captured_logger
        report = make_report(CompressionOutcome.FAILED, result_size=500_000, attempts=0,
                             error="DecodeFailure: cannot decode")

        log_compression_report(logger, report)

        (event,) = records()
        assert event["level"] == "WARNING"
        assert event["error"] == "DecodeFailure: cannot decode"
        assert event["final_quality"] is None

    def test_timeout_logged_as_warning(self, captured_logger):
        logger, records = captured_logger

        log_compression_report(logger, make_report(CompressionOutcome.TIMED_OUT, result_size=500_000,
                                                   attempts=0, error="deadline"))

        assert records()[0]["level"] == "WARNING"

    def test_unsupported_is_informational(self, captured_logger):
        logger, records = captured_logger

        log_compression_report(logger, make_report(CompressionOutcome.UNSUPPORTED,
                                                   result_size=500_000, attempts=0))

        (event,) = records()
        assert event["level"] == "INFO"
        assert "Unsupported file type" in event["msg"]

    def test_batch_summary(self, captured_logger):
        logger, records = captured_logger
        reports = [
            make_report(CompressionOutcome.COMPRESSED),
            make_report(CompressionOutcome.FAILED, result_size=500_000, attempts=0, error="x"),
        ]

        log_batch_summary(logger, reports)

        (event,) = records()
        assert event["event"] == "compression_batch"
        assert event["files"] == 2
        assert event["original_bytes"] == 1_000_000
        assert event["compressed_bytes"] == 650_000
        assert event["saved_bytes"] == 350_000
        assert event["failed"] == 1


class TestSetupLogging:
    """Test logger configuration."""

    def test_named_logger_configured(self):
        setup_logging(level="DEBUG", format_type="json", logger_name="certpress.tests.setup")
        logger = get_logger("certpress.tests.setup")

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert logger.propagate is False

    def test_text_format(self):
        setup_logging(level="WARNING", format_type="text", logger_name="certpress.tests.text")
        logger = get_logger("certpress.tests.text")

        assert logger.level == logging.WARNING
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_invalid_level_defaults_to_info(self):
        setup_logging(level="LOUD", logger_name="certpress.tests.level")
        assert get_logger("certpress.tests.level").level == logging.INFO
