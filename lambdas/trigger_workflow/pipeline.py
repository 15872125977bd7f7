# lambdas/trigger_workflow/pipeline.py
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, List, Optional, Tuple, Union

from .decoder import BatchDecodeError, decode_batch
from .dispatcher import WorkflowDispatcher
from .error_filter import select_eligible
from .models import (
    AppSettings,
    DispatchOutcome,
    DispatchResult,
    ErrorDispatchPayload,
    InvocationOutcome,
    PipelineStatus,
)
from .payload_builder import build_payloads
from .record_parser import parse_records


class TriggerPipeline:
    """
    Runs one invocation: decode -> parse -> filter -> build -> dispatch.

    Only decoding can fail the pipeline outright. The later stages can shrink
    the working set, down to nothing, which is a normal successful run.
    """

    def __init__(self, settings: AppSettings,
                 dispatcher: Optional[WorkflowDispatcher] = None,
                 remaining_time_ms: Optional[Callable[[], int]] = None):
        self.settings = settings
        self.dispatcher = dispatcher
        self.remaining_time_ms = remaining_time_ms

    def run(self, data: Union[str, bytes]) -> InvocationOutcome:
        # Decoding
        try:
            batch = decode_batch(data)
        except BatchDecodeError as e:
            print(f"❌ FATAL: Could not decode log batch: {e}")
            return InvocationOutcome(status=PipelineStatus.FATAL, error=e)

        print(f"Log batch received from {batch.source_id}/{batch.stream_id} with {len(batch.records)} record(s).")
        if batch.is_control_message:
            print("ℹ️ CloudWatch Logs control message, nothing to process.")
            return InvocationOutcome(status=PipelineStatus.SUCCESS, batch=batch)

        # Parsing and filtering
        eligible = select_eligible(parse_records(batch.records))
        if not eligible:
            print("ℹ️ No error logs found, skipping GitHub Actions trigger.")
            return InvocationOutcome(status=PipelineStatus.SUCCESS, batch=batch)

        payloads, dropped = build_payloads(eligible, batch)
        if not payloads:
            print("ℹ️ No dispatchable error logs left after building payloads.")
            return InvocationOutcome(status=PipelineStatus.SUCCESS, batch=batch, dropped=dropped)

        # Dispatching
        print(f"Found {len(payloads)} error log(s) to dispatch.")
        if self.dispatcher is None:
            self.dispatcher = WorkflowDispatcher(self.settings)
        results = self.dispatch_all(payloads)

        status = PipelineStatus.SUCCESS if all(r.ok for r in results) else PipelineStatus.PARTIAL
        return InvocationOutcome(status=status, batch=batch, results=results, dropped=dropped)

    def dispatch_all(self, payloads: List[ErrorDispatchPayload]) -> List[DispatchResult]:
        """
        Dispatches concurrently, at most dispatch_max_workers calls at a time.

        New calls stop being issued once the invocation deadline gets close;
        those payloads are reported as not attempted. Every issued call is
        joined before returning, but no call is waited on for longer than
        dispatch_timeout_seconds in total: requests only bounds the connect
        and each socket read, so a slowly trickling response is cut off here
        and reported as a timeout. Results keep the order of `payloads`.
        """
        budget = self.settings.dispatch_timeout_seconds
        slots = threading.BoundedSemaphore(self.settings.dispatch_max_workers)
        issued: List[Tuple[ErrorDispatchPayload, Optional[Future], float, str]] = []

        executor = ThreadPoolExecutor(max_workers=self.settings.dispatch_max_workers)
        try:
            for payload in payloads:
                # A worker still stuck past its budget keeps its slot.
                if not slots.acquire(timeout=budget):
                    issued.append((payload, None, 0.0, "no free dispatch worker"))
                    continue
                if self._deadline_is_close():
                    slots.release()
                    issued.append((payload, None, 0.0, "invocation deadline reached"))
                    continue
                future = executor.submit(self._dispatch_one, payload)
                future.add_done_callback(lambda _: slots.release())
                issued.append((payload, future, time.monotonic() + budget, ""))

            results = []
            for payload, future, expires_at, skip_reason in issued:
                if future is None:
                    print(f"⚠️ Not dispatching {payload.error_kind} at {payload.timestamp}: {skip_reason}.")
                    results.append(DispatchResult.not_attempted(payload, skip_reason))
                    continue
                try:
                    results.append(future.result(timeout=max(0.0, expires_at - time.monotonic())))
                except FutureTimeoutError:
                    reason = f"timeout: no complete response within {budget}s"
                    print(f"❌ Failed to trigger GitHub Actions for {payload.error_kind} at {payload.timestamp} "
                          f"({payload.source_id}/{payload.stream_id}): {reason}")
                    results.append(DispatchResult.failure(payload, reason))
            return results
        finally:
            # Calls that overran are abandoned, not joined.
            executor.shutdown(wait=False, cancel_futures=True)

    def _dispatch_one(self, payload: ErrorDispatchPayload) -> DispatchResult:
        try:
            return self.dispatcher.dispatch(payload)
        except Exception as e:
            print(f"❌ Unexpected error while dispatching {payload.error_kind} at {payload.timestamp}: {e}")
            return DispatchResult(payload=payload, outcome=DispatchOutcome.FAILURE, reason=f"unexpected error: {e}")

    def _deadline_is_close(self) -> bool:
        if self.remaining_time_ms is None:
            return False
        # Leave room for one more call to time out, plus the margin.
        needed_ms = self.settings.deadline_margin_ms + self.settings.dispatch_timeout_seconds * 1000
        return self.remaining_time_ms() < needed_ms
