"""Tests for the structured logging system (sequence_kernel/logging_config.py)."""

import json
import logging
from io import StringIO

import pytest

from sequence_kernel.exceptions import AllocationFailedError, SequenceNotFoundError
from sequence_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    """Parse all JSON log lines from a stream."""
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "sequence_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("segment_reloaded", extra={"low": 101, "high": 110})

        record = _parse_log(stream)
        assert record["low"] == 101
        assert record["high"] == 110

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        LogContext.set(allocator_id="abc-123", key_name="user_id")
        logger.info("test_msg")

        record = _parse_log(stream)
        assert record["allocator_id"] == "abc-123"
        assert record["key_name"] == "user_id"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_code_extracted(self):
        """Sequence kernel exceptions carry .code and structured attributes."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")

        try:
            raise AllocationFailedError("user_id", SequenceNotFoundError("user_id"))
        except AllocationFailedError:
            logger.error("allocation_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "ALLOCATION_FAILED"
        assert record["exc_type"] == "AllocationFailedError"
        assert record["exc_key_name"] == "user_id"
        assert record["exc_cause_code"] == "SEQUENCE_NOT_FOUND"
        assert record["exc_cause"] == "Sequence not found: user_id"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("bare_message")

        record = _parse_log(stream)
        assert "allocator_id" not in record
        assert "key_name" not in record

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # default level is INFO, so the debug line is dropped
        assert len(logs) == 2
        for record in logs:
            assert "ts" in record
            assert "level" in record
            assert "logger" in record
            assert "message" in record


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(allocator_id="x", key_name="y")
        ctx = LogContext.get_all()
        assert ctx == {"allocator_id": "x", "key_name": "y"}

    def test_clear(self):
        LogContext.set(allocator_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(key_name="outer")
        with LogContext.bind(key_name="inner"):
            assert LogContext.get_all()["key_name"] == "inner"
        assert LogContext.get_all()["key_name"] == "outer"

    def test_bind_restores_none(self):
        """bind() restores to None if there was no previous value."""
        assert "key_name" not in LogContext.get_all()
        with LogContext.bind(key_name="temp"):
            assert LogContext.get_all()["key_name"] == "temp"
        assert "key_name" not in LogContext.get_all()

    def test_bind_rejects_unknown_fields(self):
        with pytest.raises(TypeError, match="trace_id"):
            with LogContext.bind(trace_id="t"):
                pass

    def test_bind_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(key_name="k", allocator_id="a"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op
        root = logging.getLogger("sequence_kernel")
        assert len(root.handlers) == 1

    def test_get_logger_returns_child(self):
        logger = get_logger("services.allocator")
        assert logger.name == "sequence_kernel.services.allocator"

    def test_logger_hierarchy(self):
        """Child loggers inherit the sequence_kernel root config."""
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        child = get_logger("deep.nested.module")
        child.debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "sequence_kernel.deep.nested.module"
