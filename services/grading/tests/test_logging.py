"""Tests for the JSON log formatter."""

import json
import logging

from packages.common.logging import JSONFormatter, set_request_id


def _record(**extra) -> logging.LogRecord:
    rec = logging.LogRecord("services.grading.workflows", logging.INFO, __file__, 1, "graded %s", ("s1",), None)
    for k, v in extra.items():
        setattr(rec, k, v)
    return rec


def test_json_line_carries_service_request_and_context() -> None:
    set_request_id("rid-7")
    try:
        line = json.loads(JSONFormatter("lms-grading").format(_record(submission_id="s1", user_id="u1")))
    finally:
        set_request_id(None)
    assert line["msg"] == "graded s1"
    assert line["service"] == "lms-grading"
    assert line["request_id"] == "rid-7"
    assert (line["user_id"], line["submission_id"]) == ("u1", "s1")


def test_json_line_omits_unset_fields() -> None:
    line = json.loads(JSONFormatter().format(_record()))
    assert "request_id" not in line
    assert "service" not in line
    assert "user_id" not in line
