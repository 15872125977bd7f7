# lambdas/trigger_workflow/decoder.py
import base64
import binascii
import gzip
import json
import zlib
from typing import Any, Dict, Union

from .models import LogBatch


class BatchDecodeError(ValueError):
    """The subscription payload cannot be turned into a LogBatch."""
    pass


def extract_encoded_data(event: Dict[str, Any]) -> str:
    """
    Pulls the base64 payload out of a CloudWatch Logs subscription event,
    i.e. event['awslogs']['data'].
    """
    try:
        data = event['awslogs']['data']
    except (KeyError, TypeError) as e:
        raise BatchDecodeError(f"Not a CloudWatch Logs subscription event: missing {e}") from e
    if not isinstance(data, str) or not data:
        raise BatchDecodeError("awslogs.data must be a non-empty string.")
    return data


def decode_batch(data: Union[str, bytes]) -> LogBatch:
    """
    Decodes base64, gunzips and parses the subscription document.

    Any failure here is fatal for the whole invocation: without the envelope
    there is no way to recover individual records.

    Raises:
        BatchDecodeError: If any decoding stage fails or the document is malformed.
    """
    try:
        compressed = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BatchDecodeError(f"Invalid base64 payload: {e}") from e

    try:
        decompressed = gzip.decompress(compressed)
    except (OSError, EOFError, zlib.error) as e:
        raise BatchDecodeError(f"Could not decompress payload: {e}") from e

    try:
        document = json.loads(decompressed.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise BatchDecodeError(f"Decompressed payload is not JSON: {e}") from e

    return _batch_from_document(document)


def _batch_from_document(document: Any) -> LogBatch:
    if not isinstance(document, dict):
        raise BatchDecodeError("Subscription document must be a JSON object.")

    log_group = document.get('logGroup')
    log_stream = document.get('logStream')
    log_events = document.get('logEvents')
    if not isinstance(log_group, str) or not isinstance(log_stream, str):
        raise BatchDecodeError("Subscription document is missing logGroup or logStream.")
    if not isinstance(log_events, list):
        raise BatchDecodeError("Subscription document is missing the logEvents list.")

    records = []
    for index, log_event in enumerate(log_events):
        message = log_event.get('message') if isinstance(log_event, dict) else None
        if not isinstance(message, str):
            raise BatchDecodeError(f"logEvents[{index}] has no message.")
        records.append(message)

    subscription_filters = document.get('subscriptionFilters')
    if not isinstance(subscription_filters, list):
        subscription_filters = []
    return LogBatch(
        source_id=log_group,
        stream_id=log_stream,
        records=tuple(records),
        message_type=document.get('messageType', "DATA_MESSAGE"),
        owner=document.get('owner'),
        subscription_filters=tuple(str(f) for f in subscription_filters),
    )
