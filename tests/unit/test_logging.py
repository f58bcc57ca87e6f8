"""Unit tests for the JSON log formatter."""

from __future__ import annotations

import json
import logging

from certflow.logging import JsonFormatter


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        "certflow.runner.dispatcher", logging.INFO, __file__, 1, "Run %s", ("accepted",), None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formats_message_and_extra_fields() -> None:
    payload = json.loads(JsonFormatter().format(_record(workflow_id="wf-1", code=0)))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "certflow.runner.dispatcher"
    assert payload["message"] == "Run accepted"
    assert payload["extra"] == {"workflow_id": "wf-1", "code": 0}


def test_record_without_extra_has_no_extra_key() -> None:
    payload = json.loads(JsonFormatter().format(_record()))
    assert "extra" not in payload
