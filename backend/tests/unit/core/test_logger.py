from __future__ import annotations

import io
import json
import logging

from storefront_access.core.logger import JSONFormatter, configure_logging, ensure_request_id


def _record(**extra):
    record = logging.LogRecord("storefront", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_known_extras_only():
    payload = json.loads(JSONFormatter().format(_record(event="auth.login", user_id="u1", password="secret")))
    assert payload["message"] == "hello world"
    assert payload["event"] == "auth.login"
    assert payload["user_id"] == "u1"
    assert "password" not in payload


def test_json_formatter_serializes_unusual_values():
    payload = json.loads(JSONFormatter().format(_record(value={"refresh_tokens": 2})))
    assert payload["value"] == {"refresh_tokens": 2}


def test_request_id_prefers_incoming_header(app):
    with app.test_request_context("/", headers={"X-Correlation-ID": "corr-9"}):
        assert ensure_request_id() == "corr-9"
        assert ensure_request_id() == "corr-9"


def test_request_id_generated_outside_request():
    assert ensure_request_id() != ensure_request_id()


def test_json_formatter_uses_record_time_and_thread():
    record = _record()
    record.created = 1_900_000_000.0
    record.threadName = "notifications-ticket-updates"

    payload = json.loads(JSONFormatter().format(record))

    assert payload["time"] == "2030-03-17T17:46:40.000+00:00"
    assert payload["thread"] == "notifications-ticket-updates"


def test_configure_logging_writes_json_lines(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", list(root.handlers))
    previous_level = root.level
    stream = io.StringIO()

    try:
        configure_logging("not-a-level", stream=stream)
        logging.getLogger("storefront_access.test").info("ready", extra={"event": "test.ready"})
        assert root.level == logging.INFO
    finally:
        root.setLevel(previous_level)

    line = json.loads(stream.getvalue().splitlines()[-1])
    assert line["event"] == "test.ready"
    assert line["request_id"] is None
