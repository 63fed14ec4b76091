"""
Tests for structured logging helpers.
"""

import json
import logging
import sys

from datetime import datetime

from tubely.utils.logger import (
    JSONFormatter,
    RequestContextFilter,
    StandardFormatter,
    add_log_context,
    request_id_var,
)


def _record(**attrs: object) -> logging.LogRecord:
    base = {"name": "tubely.test", "levelname": "INFO", "levelno": logging.INFO, "msg": "hello %s", "args": ("world",)}
    base.update(attrs)
    return logging.makeLogRecord(base)


class TestJSONFormatter:
    def test_core_fields_and_extras(self) -> None:
        record = _record(video_id="abc", created_at=datetime(2024, 1, 1))

        entry = json.loads(JSONFormatter().format(record))

        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "tubely.test"
        assert entry["extra"]["video_id"] == "abc"
        assert entry["extra"]["created_at"].startswith("2024-01-01")
        assert "source" not in entry

    def test_request_id_is_top_level(self) -> None:
        entry = json.loads(JSONFormatter().format(_record(request_id="req-1")))

        assert entry["request_id"] == "req-1"
        assert "request_id" not in entry.get("extra", {})

    def test_placeholder_request_id_is_omitted(self) -> None:
        entry = json.loads(JSONFormatter().format(_record(request_id="-")))
        assert "request_id" not in entry

    def test_exception_details(self) -> None:
        try:
            raise ValueError("bad probe")
        except ValueError:
            record = _record(exc_info=sys.exc_info())

        entry = json.loads(JSONFormatter(include_source_location=True).format(record))

        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "bad probe"
        assert "source" in entry


class TestRequestContext:
    def test_filter_stamps_active_request_id(self) -> None:
        token = request_id_var.set("req-42")
        try:
            record = _record()
            assert RequestContextFilter().filter(record) is True
        finally:
            request_id_var.reset(token)

        assert record.request_id == "req-42"

    def test_filter_outside_request(self) -> None:
        record = _record()
        RequestContextFilter().filter(record)
        assert record.request_id == "-"

    def test_standard_formatter_without_filter(self) -> None:
        line = StandardFormatter().format(_record())
        assert "[-]: hello world" in line


class TestContextAdapter:
    def test_context_merges_with_call_extra(self, caplog) -> None:
        logger = logging.getLogger("tubely.test.adapter")
        ctx_logger = add_log_context(logger, video_id="v1", user_id="u1")

        with caplog.at_level(logging.INFO, logger="tubely.test.adapter"):
            ctx_logger.info("Staged upload", extra={"size": 10, "video_id": "override"})

        (record,) = caplog.records
        assert record.user_id == "u1"
        assert record.size == 10
        assert record.video_id == "override"
