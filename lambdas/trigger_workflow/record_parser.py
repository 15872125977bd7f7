# lambdas/trigger_workflow/record_parser.py
import json
from typing import Any, Iterable, List, Optional

from .models import ErrorDetail, ParsedEvent


class RecordParseError(ValueError):
    """A single log line is not a structured event."""
    pass


def _optional_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def _first_str(data: dict, *keys: str) -> Optional[str]:
    for key in keys:
        value = _optional_str(data.get(key))
        if value is not None:
            return value
    return None


def _parse_error_detail(raw_error: Any) -> Optional[ErrorDetail]:
    if not isinstance(raw_error, dict):
        return None
    # The demo app serializes JS Error objects, so name/stack are the usual spellings.
    return ErrorDetail(
        kind=_first_str(raw_error, 'kind', 'name') or "",
        message=_first_str(raw_error, 'message') or "",
        trace=_first_str(raw_error, 'trace', 'stack'),
    )


def load_event(raw_record: str) -> ParsedEvent:
    """
    Interprets one log line as a structured event.

    Raises:
        RecordParseError: If the line is not a JSON object with a string severity.
    """
    try:
        data = json.loads(raw_record)
    except (TypeError, ValueError, RecursionError) as e:
        raise RecordParseError(f"not JSON ({e})") from e

    if not isinstance(data, dict):
        raise RecordParseError(f"expected a JSON object, got {type(data).__name__}")

    severity = data.get('severity')
    if not isinstance(severity, str) or not severity:
        raise RecordParseError("missing required field 'severity'")

    return ParsedEvent(
        severity=severity,
        timestamp=_optional_str(data.get('timestamp')),
        context_label=_first_str(data, 'contextLabel', 'context'),
        error=_parse_error_detail(data.get('error')),
    )


def parse_record(raw_record: str) -> Optional[ParsedEvent]:
    """Returns the parsed event, or None if the line is not usable. Never raises."""
    try:
        return load_event(raw_record)
    except RecordParseError as e:
        print(f"Skipping unparseable log record ({e}): {raw_record!r}")
        return None


def parse_records(raw_records: Iterable[str]) -> List[Optional[ParsedEvent]]:
    return [parse_record(raw) for raw in raw_records]
