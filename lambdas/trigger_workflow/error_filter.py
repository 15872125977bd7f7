# lambdas/trigger_workflow/error_filter.py
from typing import Iterable, List, Optional

from .models import ParsedEvent

ERROR_SEVERITY = "ERROR"


def is_eligible(event: ParsedEvent) -> bool:
    """ERROR severity plus an error carrying both a kind and a message."""
    return (
        event.severity == ERROR_SEVERITY
        and event.error is not None
        and bool(event.error.kind)
        and bool(event.error.message)
    )


def select_eligible(events: Iterable[Optional[ParsedEvent]]) -> List[ParsedEvent]:
    """
    Keeps the events worth escalating, in batch order.

    Identical errors are not collapsed; each occurrence is dispatched on its own.
    """
    eligible = []
    for event in events:
        if event is None or event.severity != ERROR_SEVERITY:
            continue
        if not is_eligible(event):
            print(f"⚠️ Dropping ERROR event without error detail (context: {event.context_label}, timestamp: {event.timestamp})")
            continue
        eligible.append(event)
    return eligible
