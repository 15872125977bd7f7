# run_live.py
"""
Runs the trigger-workflow handler in-process against a sample subscription
event. GitHub settings come from the environment or a .env file, so this
really dispatches to the configured repository.
"""
import json
import time

from dotenv import load_dotenv

load_dotenv()

from cli.push_log import build_subscription_event, sample_messages
from lambdas.trigger_workflow.app import handler
from lambdas.trigger_workflow.dispatcher import DispatchFailedError


class LocalContext:
    """Stands in for the Lambda context; only the deadline is needed."""

    def __init__(self, timeout_seconds: int = 30):
        self.deadline = time.monotonic() + timeout_seconds

    def get_remaining_time_in_millis(self) -> int:
        return max(0, int((self.deadline - time.monotonic()) * 1000))


if __name__ == "__main__":
    event = build_subscription_event("/aws/lambda/sample-app", "local/[$LATEST]run-live", sample_messages())
    try:
        result = handler(event, LocalContext())
        print(f"\n✅ Handler finished: {json.dumps(result, indent=2)}")
    except DispatchFailedError as e:
        print(f"\n❌ Some dispatches failed: {e}")
