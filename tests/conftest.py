import json

import pytest

from cli.push_log import build_subscription_event
from lambdas.trigger_workflow.models import AppSettings, DispatchResult, LogBatch


@pytest.fixture
def settings() -> AppSettings:
    """Settings with dummy GitHub credentials; never reads a local .env file."""
    return AppSettings(
        _env_file=None,
        GITHUB_TOKEN="ghp_test_token",
        GITHUB_OWNER="octo-org",
        GITHUB_REPO="sample-app",
        DISPATCH_TIMEOUT_SECONDS=5,
        DISPATCH_MAX_WORKERS=2,
        DEADLINE_MARGIN_MS=1000,
    )


@pytest.fixture
def batch() -> LogBatch:
    return LogBatch(source_id="g1", stream_id="s1", records=())


def error_line(kind="TypeError", message="x is not a function", timestamp="2025-01-01T00:00:00Z", **extra) -> str:
    record = {"severity": "ERROR", "error": {"kind": kind, "message": message}, **extra}
    if timestamp is not None:
        record["timestamp"] = timestamp
    return json.dumps(record)


def encoded(log_group: str, log_stream: str, messages: list[str]) -> str:
    return build_subscription_event(log_group, log_stream, messages)["awslogs"]["data"]


class RecordingDispatcher:
    """Succeeds unless the payload's error kind is listed in `fail_kinds`."""

    def __init__(self, fail_kinds=()):
        self.fail_kinds = set(fail_kinds)
        self.payloads = []

    def dispatch(self, payload):
        self.payloads.append(payload)
        if payload.error_kind in self.fail_kinds:
            return DispatchResult.failure(payload, "network error: simulated")
        return DispatchResult.success(payload)
