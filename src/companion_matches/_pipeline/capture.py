# Area: Pipeline
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches._pipeline.capture — Capture window resolution
===============================================================

The clip capture collaborator records a window around each stored
event. Events may override the window; otherwise the configured
defaults apply.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict

from ..types import GameEvent

DEFAULT_PRE_CAPTURE_SECS = 15.0
DEFAULT_POST_CAPTURE_SECS = 5.0


@dataclass(frozen=True)
class CaptureWindow:
    """Seconds to record before and after an event."""

    pre_secs: float
    post_secs: float


@dataclass(frozen=True)
class CaptureRequest:
    """
    Handed to event listeners once an event is durably stored.

    Attributes:
        pack_id: Gamepack that emitted the event
        subpack: Subpack index
        external_match_id: Game's native match ID
        event: The stored event
        window: Effective capture window
    """

    pack_id: str
    subpack: int
    external_match_id: str
    event: GameEvent
    window: CaptureWindow


EventListener = Callable[[CaptureRequest], None]


def resolve_capture_window(event: GameEvent, capture_config: Dict[str, Any]) -> CaptureWindow:
    """
    Effective capture window of an event.

    Args:
        event: The game event
        capture_config: The ``capture`` config section

    Returns:
        Event overrides where set, configured defaults otherwise
    """
    pre = event.pre_capture_secs
    if pre is None:
        pre = capture_config.get("default_pre_capture_secs", DEFAULT_PRE_CAPTURE_SECS)
    post = event.post_capture_secs
    if post is None:
        post = capture_config.get("default_post_capture_secs", DEFAULT_POST_CAPTURE_SECS)
    return CaptureWindow(pre_secs=float(pre), post_secs=float(post))
