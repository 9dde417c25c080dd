"""
Unit tests for access log formatting.
"""

import json
import logging
import time

from fileserver.handlers.access_log import AccessLogEntry, AccessLogger


def make_entry(**overrides) -> AccessLogEntry:
    values = dict(
        conn_id="abcd1234",
        client_ip="127.0.0.1",
        method="GET",
        target="/index.html",
        status_code=200,
        content_length=10,
        duration_ms=1.234,
        timestamp="19/Oct/2026:10:00:00 +0000",
    )
    values.update(overrides)
    return AccessLogEntry(**values)


def test_text_format():
    assert make_entry().to_text() == (
        '127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /index.html" 200 10 1.23ms'
    )


def test_dict_rounds_duration():
    assert make_entry().to_dict()["duration_ms"] == 1.23


def test_json_logger(caplog):
    access = AccessLogger(log_format="json")

    with caplog.at_level(logging.INFO, logger="fileserver.access"):
        entry = access.log("c1", "::1", "GET", "/x", 404, 49, time.time())

    record = json.loads(caplog.records[-1].getMessage())
    assert record["status_code"] == 404
    assert record["target"] == "/x"
    assert entry.conn_id == "c1"


def test_missing_tokens_logged_as_dash(caplog):
    with caplog.at_level(logging.INFO, logger="fileserver.access"):
        AccessLogger().log("c1", "127.0.0.1", "", "", 431, 0, time.time())

    assert '"- -" 431 ' in caplog.records[-1].getMessage()
