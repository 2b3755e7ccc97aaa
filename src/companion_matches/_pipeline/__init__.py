# Area: Pipeline
# PRD: docs/prd-match-lifecycle.md
"""
Write pipeline - applies gamepack mutations to persisted match state.

This package handles:
- Per-match lock registry
- Subpack column schemas and stat validation
- GameEvent -> timeline entry conversion
- Capture windows handed to event listeners
- WriteStats / WriteEvents / SetComplete application
"""

from .match_locks import MatchLockRegistry
from .stat_schema import COLUMN_TYPE_CHECKS, SchemaRegistry, SubpackSchema
from .event_convert import convert_events, event_error
from .capture import (
    DEFAULT_POST_CAPTURE_SECS,
    DEFAULT_PRE_CAPTURE_SECS,
    CaptureRequest,
    CaptureWindow,
    EventListener,
    resolve_capture_window,
)
from .write_pipeline import LIVE_SOURCE, SOURCE_RANK, ApplyOutcome, MatchWritePipeline

__all__ = [
    "MatchLockRegistry",
    "COLUMN_TYPE_CHECKS",
    "SchemaRegistry",
    "SubpackSchema",
    "convert_events",
    "event_error",
    "DEFAULT_PRE_CAPTURE_SECS",
    "DEFAULT_POST_CAPTURE_SECS",
    "CaptureRequest",
    "CaptureWindow",
    "EventListener",
    "resolve_capture_window",
    "LIVE_SOURCE",
    "SOURCE_RANK",
    "ApplyOutcome",
    "MatchWritePipeline",
]
