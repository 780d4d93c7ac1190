"""Tests for structured logging and log context."""

import logging
import sys

import orjson

from shortline.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    request_id_var,
    user_id_var,
)


def _record(msg: str = "Cache miss for feed_user:bob", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        "shortline.services.shorts", logging.INFO, __file__, 10, msg, None, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    def test_sets_and_restores(self) -> None:
        with LogContext(user_id="alice", request_id="req-1"):
            assert user_id_var.get() == "alice"
            assert request_id_var.get() == "req-1"
        assert user_id_var.get() == ""
        assert request_id_var.get() == ""

    def test_nested_contexts(self) -> None:
        with LogContext(user_id="alice"):
            with LogContext(user_id="bob"):
                assert user_id_var.get() == "bob"
            assert user_id_var.get() == "alice"

    def test_unknown_keys_are_ignored(self) -> None:
        with LogContext(tenant="t1"):
            pass


class TestJsonFormatter:
    def test_includes_context_and_extras(self) -> None:
        with LogContext(request_id="req-1", user_id="bob"):
            line = JsonFormatter().format(_record(short_count=3, report=object()))

        data = orjson.loads(line)
        assert data["level"] == "INFO"
        assert data["logger"] == "shortline.services.shorts"
        assert data["message"] == "Cache miss for feed_user:bob"
        assert data["request_id"] == "req-1"
        assert data["user_id"] == "bob"
        assert data["short_count"] == 3
        assert isinstance(data["report"], str)
        assert "correlation_id" not in data

    def test_exception_details(self) -> None:
        try:
            raise OSError("disk gone")
        except OSError:
            record = _record()
            record.exc_info = sys.exc_info()

        data = orjson.loads(JsonFormatter().format(record))
        assert data["exception"]["type"] == "OSError"
        assert data["exception"]["message"] == "disk gone"


class TestConsoleFormatter:
    def test_appends_context(self) -> None:
        with LogContext(request_id="0123456789", user_id="alice"):
            line = ConsoleFormatter(use_colors=False).format(_record())

        assert "| INFO" in line
        assert "req=01234567" in line
        assert "user=alice" in line
