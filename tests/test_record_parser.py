import json

import pytest

from conftest import error_line
from lambdas.trigger_workflow.models import ErrorDetail
from lambdas.trigger_workflow.record_parser import RecordParseError, load_event, parse_record, parse_records


def test_parses_demo_app_error_line():
    """The demo API writes JS Error fields: name, message, stack, plus a context string."""
    raw = json.dumps({
        "timestamp": "2025-01-01T00:00:00.000Z",
        "context": "GET /error/type",
        "error": {"name": "TypeError", "message": "x is not a function", "stack": "TypeError: x\n    at f"},
        "severity": "ERROR",
    })

    event = parse_record(raw)

    assert event.severity == "ERROR"
    assert event.timestamp == "2025-01-01T00:00:00.000Z"
    assert event.context_label == "GET /error/type"
    assert event.error == ErrorDetail(kind="TypeError", message="x is not a function", trace="TypeError: x\n    at f")


def test_parses_kind_and_trace_spelling():
    raw = json.dumps({
        "severity": "ERROR",
        "contextLabel": "worker",
        "error": {"kind": "ValueError", "message": "bad", "trace": "tb"},
    })

    event = parse_record(raw)

    assert event.context_label == "worker"
    assert event.error == ErrorDetail(kind="ValueError", message="bad", trace="tb")
    assert event.timestamp is None


def test_info_line_without_error():
    event = parse_record('{"severity": "INFO", "message": "GET /users 200"}')
    assert event.severity == "INFO"
    assert event.error is None


def test_non_object_error_is_treated_as_absent():
    event = parse_record('{"severity": "ERROR", "error": "boom"}')
    assert event is not None
    assert event.error is None


@pytest.mark.parametrize("raw", [
    "not json",
    "START RequestId: 1234 Version: $LATEST",
    "",
    "[1, 2, 3]",
    '"just a string"',
    '{"message": "no severity"}',
    '{"severity": 3}',
    '{"severity": ""}',
])
def test_unusable_lines_yield_none(raw, capsys):
    assert parse_record(raw) is None
    assert "Skipping unparseable log record" in capsys.readouterr().out


def test_load_event_raises_for_malformed_line():
    with pytest.raises(RecordParseError):
        load_event("{not json")


def test_bad_record_does_not_affect_the_rest_of_the_batch():
    events = parse_records([error_line(), "not json", '{"severity": "INFO"}'])

    assert len(events) == 3
    assert events[0].error.kind == "TypeError"
    assert events[1] is None
    assert events[2].severity == "INFO"
    assert len([e for e in events if e is not None and e.severity == "ERROR"]) == 1


def test_deeply_nested_line_is_dropped_without_losing_the_batch(capsys):
    nested = "[" * 100_000

    events = parse_records([error_line(), nested])

    assert events[0].error.kind == "TypeError"
    assert events[1] is None
    assert "Skipping unparseable log record" in capsys.readouterr().out
