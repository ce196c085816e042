"""Tests for the structured logging system (voucher_kernel/logging_config.py)."""

import json
import logging
from io import StringIO
from uuid import uuid4

import pytest

from voucher_kernel.domain.types import OrderStatus
from voucher_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite configuration."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


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
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "voucher_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("vouchers_allotted", extra={"allotted": 42})

        assert _parse_log(stream)["allotted"] == 42

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", order_id="ord-1", phase="dispatch")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["order_id"] == "ord-1"
        assert record["phase"] == "dispatch"

    def test_uuid_and_enum_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info("typed", extra={"voucher": uid, "status": OrderStatus.PROCESSING})

        record = _parse_log(stream)
        assert record["voucher"] == str(uid)
        assert record["status"] == "processing"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_code_extracted(self):
        from voucher_kernel.exceptions import InvalidMobileError

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InvalidMobileError("123").at_row(4, ["Bob", "123", "PAN", "X", "E2"])
        except InvalidMobileError:
            get_logger("test").warning("row_rejected", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "INVALID_MOBILE"
        assert record["exc_row_number"] == 4
        assert record["exc_field"] == "mobile_number"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "order_id" not in record

    def test_level_filtering(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second")
        logger.debug("third")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", voucher_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "voucher_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous(self):
        LogContext.set(order_id="outer")
        with LogContext.bind(order_id="inner"):
            assert LogContext.get_all()["order_id"] == "inner"
        assert LogContext.get_all()["order_id"] == "outer"

    def test_bind_restores_none(self):
        with LogContext.bind(actor_id="temp"):
            assert LogContext.get_all()["actor_id"] == "temp"
        assert "actor_id" not in LogContext.get_all()

    def test_bind_converts_to_str(self):
        uid = uuid4()
        with LogContext.bind(order_id=uid):
            assert LogContext.get_all()["order_id"] == str(uid)

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c", order_id="o", voucher_id="v", actor_id="a", phase="p",
        )
        assert len(LogContext.get_all()) == 5


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op

        handlers = logging.getLogger("voucher_kernel").handlers
        assert h1 in handlers
        assert h2 not in handlers
        structured = [h for h in handlers if isinstance(h.formatter, StructuredFormatter)]
        assert structured == [h1]

    def test_get_logger_returns_child(self):
        assert get_logger("batch.dispatch").name == "voucher_kernel.batch.dispatch"

    def test_level_by_name(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level="WARNING")
        get_logger("test").info("hidden")
        get_logger("test").warning("shown")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["shown"]
