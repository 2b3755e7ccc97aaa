# Area: Pipeline
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches.replay — Timeline Replay
==========================================

Rebuilds a match's state from its timeline. Every change to the
summary record is logged as a "statistic" entry whose data is

    {"stats": {<column>: <value>, ...}, "match": {<field>: <value>, ...}}

so folding those entries in order yields the summary, and the "event"
entries give the game events. A gamepack uses this after its own
restart to rebuild in-memory state from a GetMatchTimelineResponse.

Replaying a limited timeline (``limit=N``) only folds the deltas it
contains; request the full timeline to rebuild the whole summary.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from .types import TimelineEntry

# Match-level fields carried by statistic entries
REPLAYED_MATCH_FIELDS = (
    "played_at",
    "duration_secs",
    "result",
    "is_in_progress",
    "summary_source",
)


@dataclass
class ReplayedMatch:
    """
    Match state rebuilt from a timeline.

    Attributes:
        summary_stats: Latest value of every stat column seen
        played_at: Match start, if any delta set it
        duration_secs: Match duration, if any delta set it
        result: Match result, if any delta set it
        is_in_progress: None if no delta said anything about it
        summary_source: "api" | "live_fallback" once completed
        events: Event entries in arrival order
        moments: Moment entries in arrival order
        game_time_secs: Latest in-game time seen on any entry
    """

    summary_stats: Dict[str, Any] = field(default_factory=dict)
    played_at: Optional[str] = None
    duration_secs: Optional[int] = None
    result: Optional[str] = None
    is_in_progress: Optional[bool] = None
    summary_source: Optional[str] = None
    events: List[TimelineEntry] = field(default_factory=list)
    moments: List[TimelineEntry] = field(default_factory=list)
    game_time_secs: float = 0.0

    @property
    def is_complete(self) -> bool:
        return self.is_in_progress is False


def replay_timeline(
    entries: Iterable[Union[TimelineEntry, Dict[str, Any]]],
) -> ReplayedMatch:
    """
    Fold timeline entries, oldest first, into a ReplayedMatch.

    Args:
        entries: TimelineEntry objects or their wire dicts

    Returns:
        The rebuilt match state
    """
    replayed = ReplayedMatch()
    for raw in entries:
        entry = raw if isinstance(raw, TimelineEntry) else TimelineEntry.model_validate(raw)
        replayed.game_time_secs = max(replayed.game_time_secs, entry.game_time_secs)

        if entry.entry_type == "event":
            replayed.events.append(entry)
        elif entry.entry_type == "moment":
            replayed.moments.append(entry)
        elif isinstance(entry.data, dict):
            replayed.summary_stats.update(entry.data.get("stats") or {})
            for name, value in (entry.data.get("match") or {}).items():
                if name in REPLAYED_MATCH_FIELDS:
                    setattr(replayed, name, value)
    return replayed
