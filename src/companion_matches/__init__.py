"""
companion_matches — Gamepack Match Lifecycle
=============================================

Persists per-match summary stats and an append-only timeline of events
and stat deltas for game-specific gamepacks, and recovers matches left
in progress when the daemon or a gamepack restarts.

Quick Start:
    from companion_matches import MatchDaemon, load_config

    daemon = MatchDaemon(load_config("config.json"))
    reply = daemon.handle_pack_message("league", message_dict)

Gamepack side (building messages):
    from companion_matches import GameEvent, write_stats, write_events, set_complete

    write_stats(0, "EUW1_123", {"kills": 3})
    write_events(0, "EUW1_123", [GameEvent(event_type="DragonKill", timestamp_secs=612.0)])
    set_complete(0, "EUW1_123", "api", final_stats={"kills": 7})

Rebuilding state after a gamepack restart:
    from companion_matches import replay_timeline
    state = replay_timeline(reply["entries"])

Type Definitions
----------------
All wire types are available for import:

    from companion_matches import (
        WriteStats, WriteEvents, SetComplete,
        IsMatchInProgressRequest, IsMatchInProgressResponse,
        GetMatchTimelineRequest, GetMatchTimelineResponse, TimelineEntry,
    )
"""

from .errors import (
    CompanionMatchesError,
    WriteError,
    UnknownColumn,
    InvalidStatValue,
    UnknownSubpack,
    InvalidEvent,
    UnknownMatch,
    MatchAlreadyComplete,
    StoreError,
    RecoveryTimeout,
    InvalidMessageError,
    ConfigError,
)
from .types import (
    GameEvent,
    InitResponse,
    GameStatus,
    MatchData,
    WriteStats,
    WriteEvents,
    SetComplete,
    MatchDataMessage,
    write_stats,
    write_events,
    set_complete,
    IsMatchInProgressRequest,
    IsMatchInProgressResponse,
    TimelineEntry,
    GetMatchTimelineRequest,
    GetMatchTimelineResponse,
    parse_match_data_message,
    parse_pack_request,
    parse_in_progress_response,
)
from ._config import DEFAULT_CONFIG, load_config, validate_config
from ._shared.logging_config import setup_logging
from ._pipeline import ApplyOutcome, CaptureRequest, CaptureWindow, MatchWritePipeline
from ._recovery import GamepackChannel, RecoveryOrchestrator, RecoveryReport, RecoveryState
from ._store import MatchRecord, StatValue
from .daemon import MatchDaemon
from .replay import ReplayedMatch, replay_timeline

__version__ = "1.0.0"

__all__ = [
    # Main classes
    "MatchDaemon",
    "MatchWritePipeline",
    "RecoveryOrchestrator",
    "GamepackChannel",
    # Config & logging
    "DEFAULT_CONFIG",
    "load_config",
    "validate_config",
    "setup_logging",
    # Errors
    "CompanionMatchesError",
    "WriteError",
    "UnknownColumn",
    "InvalidStatValue",
    "UnknownSubpack",
    "InvalidEvent",
    "UnknownMatch",
    "MatchAlreadyComplete",
    "StoreError",
    "RecoveryTimeout",
    "InvalidMessageError",
    "ConfigError",
    # Wire types
    "GameEvent",
    "InitResponse",
    "GameStatus",
    "MatchData",
    "WriteStats",
    "WriteEvents",
    "SetComplete",
    "MatchDataMessage",
    "write_stats",
    "write_events",
    "set_complete",
    "IsMatchInProgressRequest",
    "IsMatchInProgressResponse",
    "TimelineEntry",
    "GetMatchTimelineRequest",
    "GetMatchTimelineResponse",
    "parse_match_data_message",
    "parse_pack_request",
    "parse_in_progress_response",
    # Results
    "ApplyOutcome",
    "CaptureRequest",
    "CaptureWindow",
    "RecoveryReport",
    "RecoveryState",
    "MatchRecord",
    "StatValue",
    "ReplayedMatch",
    "replay_timeline",
]
