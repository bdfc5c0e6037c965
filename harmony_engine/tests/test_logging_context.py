"""Tests for structured logging and context propagation."""

import json
import logging

from harmony_engine.core.logging import (
    LOGGER_NAME,
    JsonFormatter,
    LogContextFilter,
    PrettyFormatter,
    bound_user,
    get_user_id,
    log_event,
)


def _record(msg="progress.recomputed", **extra):
    record = logging.LogRecord(LOGGER_NAME, logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_bound_user_tags_engine_logs(caplog):
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        with bound_user("alice"):
            log_event("warning", "calendar.offset_fallback", error_code="invalid_offset")
        log_event("info", "progress.reset")
    first, second = caplog.records[-2:]
    assert first.user_id == "alice"
    assert first.error_code == "invalid_offset"
    assert second.user_id is None
    assert get_user_id() is None


def test_explicit_user_wins_over_bound_user(caplog):
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        with bound_user("alice"):
            log_event("info", "milestone.achieved", user_id="bob", local_date="2024-03-10")
    assert caplog.records[-1].user_id == "bob"
    assert caplog.records[-1].local_date == "2024-03-10"


def test_extra_values_are_truncated_but_numbers_kept(caplog):
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        log_event("info", "progress.recomputed", extra={"records": 3, "error": "x" * 600, "name": "clash"})
    record = caplog.records[-1]
    assert record.records == 3
    assert record.error.endswith("...<truncated>")
    assert record.field_name == "clash"


def test_filter_fills_context():
    record = _record()
    with bound_user("carol"):
        LogContextFilter().filter(record)
    assert record.user_id == "carol"
    assert record.request_id is None


def test_json_formatter_includes_structured_fields():
    record = _record(request_id="rid-1", user_id="alice", harmony_score=42)
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "progress.recomputed"
    assert payload["request_id"] == "rid-1"
    assert payload["user_id"] == "alice"
    assert payload["harmony_score"] == 42


def test_pretty_formatter_tags():
    record = _record(request_id="rid-1", user_id="alice", records=2)
    line = PrettyFormatter().format(record)
    assert "[harmony] [rid=rid-1] [user=alice] progress.recomputed records=2" in line
