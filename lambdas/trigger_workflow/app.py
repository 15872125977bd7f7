# lambdas/trigger_workflow/app.py
import json
from typing import Any, Dict

from .decoder import extract_encoded_data
from .dispatcher import DispatchFailedError
from .models import PipelineStatus, get_settings
from .pipeline import TriggerPipeline


def handler(event: Dict[str, Any], context: object) -> Dict[str, Any]:
    """
    Main Lambda handler, triggered by a CloudWatch Logs subscription filter.

    Raising makes the invocation fail, so Lambda's async retry can redeliver
    the whole batch. That happens when the batch cannot be decoded, or when
    any dispatch failed, after all the others were attempted.
    """
    print(f"CloudWatch Logs event received: {json.dumps(event)}")

    settings = get_settings()
    remaining_time_ms = getattr(context, 'get_remaining_time_in_millis', None)
    pipeline = TriggerPipeline(settings, remaining_time_ms=remaining_time_ms)

    try:
        outcome = pipeline.run(extract_encoded_data(event))
    except Exception as e:
        print(f"❌ Error processing CloudWatch Logs event: {e}")
        raise

    summary = outcome.summary()
    print(f"Invocation finished: {json.dumps(summary)}")

    if outcome.status is PipelineStatus.FATAL:
        raise outcome.error

    first_failure = outcome.first_failure
    if first_failure is not None:
        payload = first_failure.payload
        raise DispatchFailedError(
            f"{len(outcome.unsuccessful)} of {len(outcome.results)} dispatch(es) did not succeed; "
            f"first: {payload.error_kind} at {payload.timestamp}: {first_failure.reason}",
            result=first_failure,
        )

    return summary
