"""Tests for structured logging configuration."""

import json
import logging
import sys

from escalator.logging_config import (
    JsonFormatter,
    TextFormatter,
    bind_pass_id,
    evaluation_pass_id_ctx,
    get_logger,
    setup_logging,
)


def make_record(level=logging.INFO, msg="Test", **kwargs) -> logging.LogRecord:
    return logging.LogRecord(
        name=kwargs.pop("name", "test"),
        level=level,
        pathname=kwargs.pop("pathname", ""),
        lineno=kwargs.pop("lineno", 0),
        msg=msg,
        args=(),
        exc_info=kwargs.pop("exc_info", None),
    )


class TestJsonFormatter:
    """Tests for JSON log formatting."""

    def test_json_format_basic(self):
        """Test basic JSON log format."""
        formatter = JsonFormatter(service_name="test-service")
        record = make_record(name="test.logger", msg="Test message")

        parsed = json.loads(formatter.format(record))

        assert parsed["level"] == "INFO"
        assert parsed["service"] == "test-service"
        assert parsed["message"] == "Test message"
        assert parsed["logger"] == "test.logger"
        assert "timestamp" in parsed

    def test_json_format_with_pass_id(self):
        """Records emitted during an evaluation pass carry its id."""
        formatter = JsonFormatter()

        with bind_pass_id("pass-123"):
            parsed = json.loads(formatter.format(make_record()))

        assert parsed["pass_id"] == "pass-123"

    def test_json_format_without_pass_id(self):
        formatter = JsonFormatter()

        parsed = json.loads(formatter.format(make_record()))

        assert "pass_id" not in parsed

    def test_json_format_with_extra_fields(self):
        formatter = JsonFormatter()
        record = make_record()
        record.extra_fields = {"rule_id": "r1", "recipients": 3}

        parsed = json.loads(formatter.format(record))

        assert parsed["rule_id"] == "r1"
        assert parsed["recipients"] == 3

    def test_json_format_error_includes_location(self):
        """Test that ERROR level logs include location info."""
        formatter = JsonFormatter()
        record = make_record(
            level=logging.ERROR, msg="Error occurred", pathname="/app/test.py", lineno=42
        )
        record.funcName = "test_function"

        parsed = json.loads(formatter.format(record))

        assert parsed["location"]["file"] == "/app/test.py"
        assert parsed["location"]["line"] == 42
        assert parsed["location"]["function"] == "test_function"

    def test_json_format_with_exception(self):
        formatter = JsonFormatter()
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        parsed = json.loads(
            formatter.format(make_record(level=logging.ERROR, exc_info=exc_info))
        )

        assert "ValueError" in parsed["exception"]


class TestTextFormatter:
    """Tests for text log formatting."""

    def test_text_format_basic(self):
        formatter = TextFormatter(service_name="test-service")

        output = formatter.format(make_record(msg="Test message"))

        assert "test-service" in output
        assert "INFO" in output
        assert "[-]" in output
        assert "Test message" in output

    def test_text_format_with_pass_id_and_fields(self):
        formatter = TextFormatter()
        record = make_record()
        record.extra_fields = {"workspace_id": "w1"}

        with bind_pass_id("abc-123"):
            output = formatter.format(record)

        assert "[abc-123]" in output
        assert output.endswith("workspace_id=w1")


class TestBindPassId:
    """Tests for bind_pass_id."""

    def test_generates_id_and_resets(self):
        with bind_pass_id() as pass_id:
            assert evaluation_pass_id_ctx.get() == pass_id
            assert len(pass_id) == 12

        assert evaluation_pass_id_ctx.get() is None

    def test_nested_passes_restore_outer_id(self):
        with bind_pass_id("outer"):
            with bind_pass_id("inner"):
                assert evaluation_pass_id_ctx.get() == "inner"
            assert evaluation_pass_id_ctx.get() == "outer"


class TestStructuredLogger:
    """Tests for StructuredLogger wrapper."""

    def test_logger_info(self, caplog):
        logger = get_logger("test.logger")

        with caplog.at_level(logging.INFO):
            logger.info("Test info message", rule_id="r1")

        assert "Test info message" in caplog.text
        assert caplog.records[-1].extra_fields == {"rule_id": "r1"}

    def test_logger_warning_without_fields(self, caplog):
        logger = get_logger("test.logger")

        with caplog.at_level(logging.WARNING):
            logger.warning("Plain warning")

        assert not hasattr(caplog.records[-1], "extra_fields")

    def test_logger_exception(self, caplog):
        logger = get_logger("test.logger")

        with caplog.at_level(logging.ERROR):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("Pass crashed")

        assert caplog.records[-1].exc_info is not None


class TestSetupLogging:
    """Tests for logging setup function."""

    def test_setup_json_logging(self):
        setup_logging(log_format="json", log_level="DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_setup_text_logging(self):
        setup_logging(log_format="text", log_level="INFO")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_setup_custom_service_name(self):
        setup_logging(log_format="json", service_name="custom-service")

        formatter = logging.getLogger().handlers[0].formatter
        assert formatter.service_name == "custom-service"
