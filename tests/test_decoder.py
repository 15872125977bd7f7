import base64
import gzip
import json

import pytest

from conftest import encoded
from lambdas.trigger_workflow.decoder import BatchDecodeError, decode_batch, extract_encoded_data


def _gzip_b64(document) -> str:
    raw = document if isinstance(document, bytes) else json.dumps(document).encode('utf-8')
    return base64.b64encode(gzip.compress(raw)).decode('ascii')


def test_decode_recovers_group_stream_and_records():
    # Arrange
    messages = ['{"severity": "INFO"}', "not json", '{"severity": "ERROR"}']

    # Act
    batch = decode_batch(encoded("/aws/lambda/sample-app", "2025/01/01/[$LATEST]abc", messages))

    # Assert
    assert batch.source_id == "/aws/lambda/sample-app"
    assert batch.stream_id == "2025/01/01/[$LATEST]abc"
    assert batch.records == tuple(messages)
    assert batch.owner == "123456789012"
    assert batch.subscription_filters == ("error-trigger-filter",)
    assert not batch.is_control_message


def test_decode_accepts_bytes():
    data = encoded("g1", "s1", ["line"]).encode('ascii')
    assert decode_batch(data).records == ("line",)


def test_control_message_is_flagged():
    data = _gzip_b64({
        "messageType": "CONTROL_MESSAGE",
        "logGroup": "",
        "logStream": "",
        "logEvents": [{"id": "", "timestamp": 0, "message": "CWL CONTROL MESSAGE: Checking health of destination"}],
    })
    assert decode_batch(data).is_control_message


@pytest.mark.parametrize("data", [
    "%%% not base64 %%%",
    base64.b64encode(b"plain text, not gzip").decode('ascii'),
    _gzip_b64(b"\xff\xfe not utf-8"),
    _gzip_b64(b"{truncated json"),
    _gzip_b64(b"[" * 100_000),
])
def test_corrupt_payload_is_fatal(data):
    with pytest.raises(BatchDecodeError):
        decode_batch(data)


@pytest.mark.parametrize("document", [
    ["not", "an", "object"],
    {"logStream": "s1", "logEvents": []},
    {"logGroup": "g1", "logEvents": []},
    {"logGroup": "g1", "logStream": "s1"},
    {"logGroup": "g1", "logStream": "s1", "logEvents": [{"id": "1"}]},
    {"logGroup": "g1", "logStream": "s1", "logEvents": ["bare string"]},
])
def test_malformed_envelope_is_fatal(document):
    with pytest.raises(BatchDecodeError):
        decode_batch(_gzip_b64(document))


def test_extract_encoded_data():
    assert extract_encoded_data({"awslogs": {"data": "abc"}}) == "abc"


@pytest.mark.parametrize("event", [{}, {"awslogs": {}}, {"awslogs": {"data": ""}}, {"awslogs": "x"}, None])
def test_extract_encoded_data_rejects_other_events(event):
    with pytest.raises(BatchDecodeError):
        extract_encoded_data(event)


def test_deeply_nested_document_is_fatal_not_a_crash():
    with pytest.raises(BatchDecodeError, match="not JSON"):
        decode_batch(_gzip_b64(b"[" * 100_000))
