# lambdas/trigger_workflow/payload_builder.py
from typing import Iterable, List, Tuple

from .models import ErrorDispatchPayload, LogBatch, ParsedEvent

UNKNOWN_ERROR_MESSAGE = "Unknown error"
NO_STACK_TRACE = "No stack trace available"
UNKNOWN_CONTEXT = "Unknown context"
DEFAULT_ERROR_KIND = "Error"


class PayloadBuildError(ValueError):
    """An eligible event cannot be turned into a dispatch payload."""
    pass


def build_payload(event: ParsedEvent, batch: LogBatch) -> ErrorDispatchPayload:
    """
    Maps an eligible event and its batch metadata onto the workflow's trigger schema.

    The workflow correlates on timestamp, so it is the one field without a default.

    Raises:
        PayloadBuildError: If the event has no timestamp.
    """
    if not event.timestamp:
        raise PayloadBuildError("event has no timestamp")

    error = event.error
    return ErrorDispatchPayload(
        error_message=(error.message if error else None) or UNKNOWN_ERROR_MESSAGE,
        error_stack=(error.trace if error else None) or NO_STACK_TRACE,
        error_kind=(error.kind if error else None) or DEFAULT_ERROR_KIND,
        timestamp=event.timestamp,
        source_id=batch.source_id,
        stream_id=batch.stream_id,
        context_label=event.context_label or UNKNOWN_CONTEXT,
    )


def build_payloads(events: Iterable[ParsedEvent], batch: LogBatch) -> Tuple[List[ErrorDispatchPayload], int]:
    """
    Builds a payload per event, skipping the ones that fail.

    Returns:
        The payloads in event order and the number of events that were dropped.
    """
    payloads = []
    dropped = 0
    for event in events:
        try:
            payloads.append(build_payload(event, batch))
        except PayloadBuildError as e:
            kind = event.error.kind if event.error else None
            print(f"⚠️ Skipping dispatch for {kind} in {batch.source_id}/{batch.stream_id}: {e}")
            dropped += 1
    return payloads, dropped
