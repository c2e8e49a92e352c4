"""Tests for the structured logging helpers."""

from __future__ import annotations

import json
import logging

import pytest

from eventlane_service.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    clear_log_context,
    get_lazy_logger,
    get_log_context,
    set_log_context,
)


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="eventlane_service.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _clean_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.mark.unit
class TestJSONFormatter:
    def test_emits_one_json_object(self) -> None:
        line = JSONFormatter().format(_record("Webhook delivered", delivery_id="abc"))

        data = json.loads(line)
        assert data["level"] == "INFO"
        assert data["logger"] == "eventlane_service.test"
        assert data["message"] == "Webhook delivered"
        assert data["delivery_id"] == "abc"
        assert data["timestamp"].endswith("Z")

    def test_exception_stays_on_one_line(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            import sys

            record = _record()
            record.exc_info = sys.exc_info()

        line = JSONFormatter().format(record)

        assert "\n" not in line
        assert "ValueError: boom" in json.loads(line)["exception"]

    def test_static_fields(self) -> None:
        line = JSONFormatter(static={"service": "eventlane"}).format(_record())

        assert json.loads(line)["service"] == "eventlane"

    def test_non_serializable_extra_uses_str(self) -> None:
        line = JSONFormatter().format(_record(payload=object()))

        assert json.loads(line)["payload"].startswith("<object object")


@pytest.mark.unit
class TestLogContext:
    def test_context_accumulates(self) -> None:
        set_log_context(delivery_id="d1")
        set_log_context(vendor_id=42)

        assert get_log_context() == {"delivery_id": "d1", "vendor_id": 42}

    def test_filter_injects_context(self) -> None:
        set_log_context(delivery_id="d1")
        record = _record()

        assert ContextInjectingFilter().filter(record) is True
        assert record.delivery_id == "d1"

    def test_explicit_extra_wins(self) -> None:
        set_log_context(delivery_id="ambient")
        record = _record(delivery_id="explicit")

        ContextInjectingFilter().filter(record)

        assert record.delivery_id == "explicit"

    def test_clear(self) -> None:
        set_log_context(delivery_id="d1")
        clear_log_context()

        assert get_log_context() == {}


@pytest.mark.unit
class TestLazyLogger:
    def test_callable_not_evaluated_when_disabled(self) -> None:
        logger = get_lazy_logger("eventlane_service.test.lazy")
        logger.logger.setLevel(logging.INFO)
        calls = []

        logger.debug(lambda: calls.append("built") or "expensive")

        assert calls == []

    def test_callable_evaluated_when_enabled(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_lazy_logger("eventlane_service.test.lazy")

        with caplog.at_level(logging.DEBUG, logger="eventlane_service.test.lazy"):
            logger.debug(lambda: "built lazily")

        assert "built lazily" in caplog.text
