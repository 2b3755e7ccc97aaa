# Area: Pipeline
# PRD: docs/prd-match-lifecycle.md
"""GameEvent -> TimelineEntry conversion for WriteEvents batches."""

import json
import math
from typing import Any, List, Optional, Sequence

from ..errors import InvalidEvent
from ..types import GameEvent, TimelineEntry


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def event_error(event: GameEvent) -> Optional[str]:
    """Return why an event cannot be stored, or None if it can."""
    if not isinstance(event.event_type, str) or not event.event_type.strip():
        return "event_type must be a non-empty string"
    ts = event.timestamp_secs
    if not _is_number(ts) or not math.isfinite(ts) or ts < 0:
        return f"timestamp_secs must be a finite, non-negative number (got {ts!r})"
    for name in ("pre_capture_secs", "post_capture_secs"):
        secs = getattr(event, name)
        if secs is not None and (not _is_number(secs) or not math.isfinite(secs) or secs < 0):
            return f"{name} must be a finite, non-negative number (got {secs!r})"
    try:
        json.dumps(event.data, allow_nan=False)
    except (TypeError, ValueError) as e:
        return f"data is not JSON-serializable: {e}"
    return None


def convert_events(
    subpack: int,
    external_match_id: str,
    events: Sequence[GameEvent],
    captured_at: str,
) -> List[TimelineEntry]:
    """
    Convert a whole batch, or nothing.

    Raises:
        InvalidEvent: On the first event that cannot be stored
    """
    entries = []
    for index, event in enumerate(events):
        reason = event_error(event)
        if reason is not None:
            raise InvalidEvent(subpack, external_match_id, index, reason)
        entries.append(TimelineEntry.event(
            event.event_type, float(event.timestamp_secs), captured_at, event.data
        ))
    return entries
