"""Unit tests for logging setup and the operation logging context."""

from __future__ import annotations

import json
import logging

import pytest

from qbtui.models import LogLevel, ObservabilityConfig
from qbtui.utils.exceptions import OperationError
from qbtui.utils.logging_config import (
    CorrelationFilter,
    LoggingContext,
    StructuredFormatter,
    TimezoneFormatter,
    correlation_id,
    get_correlation_id,
    get_logger,
    log_exception,
    set_correlation_id,
    setup_logging,
)

pytestmark = [pytest.mark.unit]


def _record(msg: str = "hello", created: float = 0.0) -> logging.LogRecord:
    record = logging.LogRecord("qbtui.test", logging.INFO, __file__, 1, msg, (), None)
    record.created = created
    return record


def _flush() -> None:
    for handler in logging.getLogger("qbtui").handlers:
        handler.flush()


@pytest.fixture
def propagating_logger(monkeypatch):
    """Let records under ``qbtui`` reach caplog after a dictConfig run."""
    monkeypatch.setattr(logging.getLogger("qbtui"), "propagate", True)


class TestSetupLogging:
    """Tests for the file based logging configuration."""

    def test_writes_to_log_file(self, tmp_path):
        path = tmp_path / "logs" / "qbtui.log"
        config = ObservabilityConfig(log_file=str(path), log_level=LogLevel.DEBUG)
        assert setup_logging(config, tz_name="UTC") == path

        logging.getLogger("qbtui.session").debug("mode changed")
        _flush()
        text = path.read_text()
        assert "mode changed" in text
        assert "DEBUG" in text
        assert "UTC" in text

    def test_level_filters(self, tmp_path):
        path = tmp_path / "qbtui.log"
        setup_logging(ObservabilityConfig(log_file=str(path), log_level=LogLevel.WARNING))
        logger = logging.getLogger("qbtui.client")
        logger.info("quiet")
        logger.warning("loud")
        _flush()
        text = path.read_text()
        assert "loud" in text
        assert "quiet" not in text

    def test_file_logging_disabled(self):
        assert setup_logging(ObservabilityConfig(log_file="")) is None
        handlers = logging.getLogger("qbtui").handlers
        assert all(isinstance(h, logging.NullHandler) for h in handlers)

    def test_structured_lines(self, tmp_path):
        path = tmp_path / "qbtui.log"
        setup_logging(ObservabilityConfig(log_file=str(path), structured_logging=True))
        logging.getLogger("qbtui.client").info("logged in", extra={"url": "http://nas"})
        _flush()
        entry = json.loads(path.read_text().splitlines()[-1])
        assert entry["message"] == "logged in"
        assert entry["level"] == "INFO"
        assert entry["url"] == "http://nas"
        assert "correlation_id" in entry

    def test_nothing_writes_to_the_terminal(self, tmp_path):
        setup_logging(ObservabilityConfig(log_file=str(tmp_path / "x.log")))
        names = {type(h).__name__ for h in logging.getLogger("qbtui").handlers}
        assert names == {"NullHandler", "RotatingFileHandler"}


class TestFormatters:
    """Tests for timezone aware formatting."""

    def test_timezone_formatter(self):
        formatter = TimezoneFormatter("%(asctime)s %(message)s", tz_name="Asia/Tokyo")
        assert formatter.format(_record()) == "1970-01-01 09:00:00 JST hello"

    def test_unknown_timezone_uses_utc(self):
        formatter = TimezoneFormatter("%(asctime)s", tz_name="Mars/Olympus")
        assert formatter.format(_record()) == "1970-01-01 00:00:00 UTC"

    def test_structured_formatter(self):
        record = _record("payload %s")
        record.args = ("ok",)
        CorrelationFilter().filter(record)
        entry = json.loads(StructuredFormatter(tz_name="UTC").format(record))
        assert entry["message"] == "payload ok"
        assert entry["logger"] == "qbtui.test"
        assert entry["timestamp"] == "1970-01-01 00:00:00 UTC"


class TestCorrelation:
    """Tests for correlation ID helpers."""

    def test_set_and_get(self):
        token = correlation_id.set(None)
        try:
            assert get_correlation_id() is None
            assert set_correlation_id("abc123") == "abc123"
            assert get_correlation_id() == "abc123"
            assert len(set_correlation_id()) == 8
        finally:
            correlation_id.reset(token)

    def test_filter_defaults_to_dash(self):
        token = correlation_id.set(None)
        try:
            record = _record()
            assert CorrelationFilter().filter(record)
            assert record.correlation_id == "-"
        finally:
            correlation_id.reset(token)

    def test_get_logger_namespaces(self):
        assert get_logger("client").name == "qbtui.client"
        assert get_logger("qbtui.session").name == "qbtui.session"


@pytest.mark.usefixtures("propagating_logger")
class TestLoggingContext:
    """Tests for operation start/finish logging."""

    def test_success(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="qbtui.operations"):
            with LoggingContext("refresh"):
                pass
        messages = [r.getMessage() for r in caplog.records]
        assert messages[0] == "Starting refresh"
        assert messages[1].startswith("Completed refresh in ")

    def test_expected_failure_is_warning_and_propagates(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="qbtui.operations"):
            with pytest.raises(OperationError):
                with LoggingContext("delete_torrent", info_hash="abc"):
                    raise OperationError("HTTP 500")
        failure = caplog.records[-1]
        assert failure.levelno == logging.WARNING
        assert failure.exc_info is None
        assert failure.info_hash == "abc"

    def test_unexpected_failure_is_error_with_traceback(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="qbtui.operations"):
            with pytest.raises(KeyError):
                with LoggingContext("refresh"):
                    raise KeyError("boom")
        failure = caplog.records[-1]
        assert failure.levelno == logging.ERROR
        assert failure.exc_info is not None

    def test_log_exception(self, caplog):
        logger = logging.getLogger("qbtui.test")
        with caplog.at_level(logging.DEBUG, logger="qbtui.test"):
            log_exception(logger, OperationError("rejected", {"status": 409}), "Add failed")
            try:
                raise RuntimeError("bad")
            except RuntimeError as e:
                log_exception(logger, e, "Crash")
        expected, unexpected = caplog.records[-2:]
        assert expected.getMessage() == "Add failed: rejected"
        assert expected.details == {"status": 409}
        assert unexpected.exc_info is not None
