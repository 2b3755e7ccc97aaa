"""
companion_matches.types — Wire vocabulary of the gamepack protocol
===================================================================

Every message exchanged between the daemon and a gamepack is defined
here as a pydantic model. The types are game-agnostic: no League/TFT
specifics. Each gamepack declares its own subpacks and column schemas
in configuration.

All types are exported from the main package:

    from companion_matches import GameEvent, WriteStats, SetComplete, ...

Wire dicts are parsed with ``parse_match_data_message`` (mutations only)
or ``parse_pack_request`` (anything a gamepack may send to the daemon).
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from typing_extensions import Annotated

from .errors import InvalidMessageError


EntryType = Literal["event", "statistic", "moment"]
SummarySource = Literal["api", "live_fallback"]
MatchResult = Literal["win", "loss", "draw", "remake"]

# Subpack index (0 = default, 1+ = additional subpacks)
Subpack = Annotated[int, Field(ge=0, le=255)]

ENTRY_TYPES = ("event", "statistic", "moment")
STATS_ENTRY_KEY = "stats"


# ============================================
# Game events
# ============================================

class GameEvent(BaseModel):
    """A game event that can trigger clip capture.

    Fields
    ------
    event_type : str
        Event type identifier, e.g. "ChampionKill", "DragonKill".
    timestamp_secs : float
        Seconds from game start (in-game clock).
    data : Any
        Game-specific event payload.
    pre_capture_secs : Optional[float]
        Seconds to capture before the event (overrides the default).
    post_capture_secs : Optional[float]
        Seconds to capture after the event (overrides the default).
    """

    event_type: str
    timestamp_secs: float
    data: Any = Field(default_factory=dict)
    pre_capture_secs: Optional[float] = None
    post_capture_secs: Optional[float] = None

    def with_pre_capture(self, secs: float) -> "GameEvent":
        """Return a copy with a custom pre-capture duration."""
        return self.model_copy(update={"pre_capture_secs": secs})

    def with_post_capture(self, secs: float) -> "GameEvent":
        """Return a copy with a custom post-capture duration."""
        return self.model_copy(update={"post_capture_secs": secs})


# ============================================
# Gamepack handshake and status
# ============================================

class InitResponse(BaseModel):
    """Answer of a gamepack to the ``init`` command.

    Fields
    ------
    game_id : int
        Unique identifier for this game.
    slug : str
        URL-friendly slug, e.g. "league". Used as the daemon's pack_id.
    protocol_version : int
        Protocol version the pack implements.
    """

    game_id: int
    slug: str
    protocol_version: int = Field(ge=0)


class GameStatus(BaseModel):
    """Current game status returned by ``get_status``.

    Fields
    ------
    connected : bool
        Whether the pack is connected to the game's API/client.
    connection_status : str
        Human-readable connection status.
    game_phase : Optional[str]
        Current game phase, e.g. "Lobby", "InProgress", "PostGame".
    is_in_game : bool
        Whether the player is actively in a game.
    """

    connected: bool = False
    connection_status: str = ""
    game_phase: Optional[str] = None
    is_in_game: bool = False

    @classmethod
    def disconnected_status(cls) -> "GameStatus":
        return cls(connected=False, connection_status="Not connected")

    @classmethod
    def connected_status(cls, status: str) -> "GameStatus":
        return cls(connected=True, connection_status=status)

    def with_phase(self, phase: str) -> "GameStatus":
        """Return a copy with the game phase set."""
        return self.model_copy(update={"game_phase": phase})

    def in_game(self, in_game: bool = True) -> "GameStatus":
        """Return a copy with ``is_in_game`` set."""
        return self.model_copy(update={"is_in_game": in_game})


class MatchData(BaseModel):
    """Match data a gamepack reports when a game session ends.

    Fields
    ------
    game_slug : str
        Game slug, e.g. "league".
    game_id : int
        Game ID.
    result : str
        Match result ("win", "loss", "remake").
    details : Any
        Game-specific match details.
    """

    game_slug: str
    game_id: int
    result: str
    details: Any = Field(default_factory=dict)


# ============================================
# Match data messages (gamepack -> daemon)
# ============================================

class WriteStats(BaseModel):
    """Create or update a match with stats.

    The daemon creates the match row if it does not exist (lazy
    creation) and upserts ``stats`` into the summary field by field.

    Fields
    ------
    subpack : int
        Subpack index.
    external_match_id : str
        Game's native match ID (used for deduplication and API lookups).
    played_at : Optional[str]
        When the match started (ISO 8601).
    duration_secs : Optional[int]
        Match duration in seconds.
    result : Optional[MatchResult]
        "win" | "loss" | "draw" | "remake".
    stats : Dict[str, Any]
        Stats to write; keys must be columns declared in the subpack schema.
    """

    type: Literal["write_stats"] = "write_stats"
    subpack: Subpack
    external_match_id: str
    played_at: Optional[str] = None
    duration_secs: Optional[int] = None
    result: Optional[MatchResult] = None
    stats: Dict[str, Any] = Field(default_factory=dict)


class WriteEvents(BaseModel):
    """Append events to the match timeline (entry_type='event').

    Fields
    ------
    subpack : int
        Subpack index.
    external_match_id : str
        Game's native match ID.
    events : List[GameEvent]
        Events to append, in order.
    """

    type: Literal["write_events"] = "write_events"
    subpack: Subpack
    external_match_id: str
    events: List[GameEvent] = Field(default_factory=list)


class SetComplete(BaseModel):
    """Mark a match as complete (is_in_progress = false).

    Sent when the game ends naturally, or inside an
    ``IsMatchInProgressResponse`` with still_playing=false.

    Fields
    ------
    subpack : int
        Subpack index.
    external_match_id : str
        Game's native match ID.
    summary_source : SummarySource
        Where the final stats came from: "api" | "live_fallback".
    final_stats : Optional[Dict[str, Any]]
        Final stats to upsert into the summary.
    """

    type: Literal["set_complete"] = "set_complete"
    subpack: Subpack
    external_match_id: str
    summary_source: SummarySource
    final_stats: Optional[Dict[str, Any]] = None


MatchDataMessage = Annotated[
    Union[WriteStats, WriteEvents, SetComplete],
    Field(discriminator="type"),
]


def write_stats(
    subpack: int,
    external_match_id: str,
    stats: Dict[str, Any],
    played_at: Optional[str] = None,
    duration_secs: Optional[int] = None,
    result: Optional[str] = None,
) -> WriteStats:
    """Create a WriteStats message."""
    return WriteStats(
        subpack=subpack,
        external_match_id=external_match_id,
        played_at=played_at,
        duration_secs=duration_secs,
        result=result,
        stats=stats,
    )


def write_events(
    subpack: int, external_match_id: str, events: List[GameEvent]
) -> WriteEvents:
    """Create a WriteEvents message."""
    return WriteEvents(subpack=subpack, external_match_id=external_match_id, events=events)


def set_complete(
    subpack: int,
    external_match_id: str,
    summary_source: str,
    final_stats: Optional[Dict[str, Any]] = None,
) -> SetComplete:
    """Create a SetComplete message, optionally carrying final stats."""
    return SetComplete(
        subpack=subpack,
        external_match_id=external_match_id,
        summary_source=summary_source,
        final_stats=final_stats,
    )


# ============================================
# Stale match recovery (daemon -> gamepack)
# ============================================

class IsMatchInProgressRequest(BaseModel):
    """Ask a gamepack whether a match is still running.

    Sent when the daemon recovers stale matches, e.g. after a crash.
    """

    subpack: Subpack
    external_match_id: str


class IsMatchInProgressResponse(BaseModel):
    """Gamepack answer to IsMatchInProgressRequest.

    Fields
    ------
    still_playing : bool
        Whether the game is actually still running.
    set_complete : Optional[MatchDataMessage]
        When not playing, an optional SetComplete carrying final stats.
    """

    still_playing: bool
    set_complete: Optional[MatchDataMessage] = None

    @classmethod
    def still_playing_response(cls) -> "IsMatchInProgressResponse":
        return cls(still_playing=True)

    @classmethod
    def ended(cls) -> "IsMatchInProgressResponse":
        return cls(still_playing=False)

    @classmethod
    def ended_with_stats(cls, message: SetComplete) -> "IsMatchInProgressResponse":
        return cls(still_playing=False, set_complete=message)


# ============================================
# Timeline data
# ============================================

class TimelineEntry(BaseModel):
    """A single entry of a match timeline.

    Entries are immutable once stored and ordered by arrival.

    Fields
    ------
    entry_type : EntryType
        "event" | "statistic" | "moment".
    entry_key : str
        Event type, the literal "stats", or a moment ID.
    game_time_secs : float
        In-game timestamp in seconds.
    captured_at : str
        Wall clock time (ISO 8601).
    data : Any
        Type-specific payload.
    trigger_fired : Optional[bool]
        Only for moments: whether recording was triggered.
    """

    model_config = ConfigDict(frozen=True)

    entry_type: EntryType
    entry_key: str
    game_time_secs: float
    captured_at: str
    data: Any = None
    trigger_fired: Optional[bool] = None

    @classmethod
    def event(
        cls, event_type: str, game_time_secs: float, captured_at: str, data: Any
    ) -> "TimelineEntry":
        return cls(
            entry_type="event",
            entry_key=event_type,
            game_time_secs=game_time_secs,
            captured_at=captured_at,
            data=data,
        )

    @classmethod
    def statistic(
        cls, game_time_secs: float, captured_at: str, changed_fields: Any
    ) -> "TimelineEntry":
        """Create a statistic (delta) entry."""
        return cls(
            entry_type="statistic",
            entry_key=STATS_ENTRY_KEY,
            game_time_secs=game_time_secs,
            captured_at=captured_at,
            data=changed_fields,
        )

    @classmethod
    def moment(
        cls,
        moment_id: str,
        game_time_secs: float,
        captured_at: str,
        data: Any,
        trigger_fired: bool,
    ) -> "TimelineEntry":
        return cls(
            entry_type="moment",
            entry_key=moment_id,
            game_time_secs=game_time_secs,
            captured_at=captured_at,
            data=data,
            trigger_fired=trigger_fired,
        )

    def to_wire(self) -> Dict[str, Any]:
        """Serialize, omitting trigger_fired for non-moment entries."""
        data = self.model_dump(mode="json")
        if data["trigger_fired"] is None:
            del data["trigger_fired"]
        return data


class GetMatchTimelineRequest(BaseModel):
    """Request a match timeline (used by gamepacks to rebuild their state).

    Fields
    ------
    subpack : int
        Subpack index.
    external_match_id : str
        Game's native match ID.
    entry_types : Optional[List[EntryType]]
        Filter by entry types (None = all types).
    limit : Optional[int]
        Max entries to return (latest N).
    """

    type: Literal["get_match_timeline"] = "get_match_timeline"
    subpack: Subpack
    external_match_id: str
    entry_types: Optional[List[EntryType]] = None
    limit: Optional[int] = Field(default=None, ge=0)


class GetMatchTimelineResponse(BaseModel):
    """Timeline answer; ``entries`` is empty when ``found`` is false."""

    found: bool
    entries: List[TimelineEntry] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "found": self.found,
            "entries": [entry.to_wire() for entry in self.entries],
        }


PackRequest = Annotated[
    Union[WriteStats, WriteEvents, SetComplete, GetMatchTimelineRequest],
    Field(discriminator="type"),
]


# ============================================
# Parsing
# ============================================

_match_data_adapter: TypeAdapter = TypeAdapter(MatchDataMessage)
_pack_request_adapter: TypeAdapter = TypeAdapter(PackRequest)


def _format_validation_errors(exc: ValidationError) -> List[str]:
    errors = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        errors.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return errors


def parse_match_data_message(data: Dict[str, Any]) -> Union[WriteStats, WriteEvents, SetComplete]:
    """Parse a wire dict into a MatchDataMessage variant.

    Raises:
        InvalidMessageError: If the dict is not a valid message
    """
    try:
        return _match_data_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidMessageError(
            "Invalid match data message", _format_validation_errors(e)
        ) from e


def parse_pack_request(
    data: Dict[str, Any],
) -> Union[WriteStats, WriteEvents, SetComplete, GetMatchTimelineRequest]:
    """Parse any gamepack -> daemon message.

    Raises:
        InvalidMessageError: If the dict is not a valid message
    """
    try:
        return _pack_request_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidMessageError(
            f"Invalid gamepack message (type={data.get('type')!r})"
            if isinstance(data, dict) else "Gamepack message must be an object",
            _format_validation_errors(e),
        ) from e


def parse_in_progress_response(data: Dict[str, Any]) -> IsMatchInProgressResponse:
    """Parse a gamepack's IsMatchInProgressResponse wire dict."""
    try:
        return IsMatchInProgressResponse.model_validate(data)
    except ValidationError as e:
        raise InvalidMessageError(
            "Invalid IsMatchInProgressResponse", _format_validation_errors(e)
        ) from e


__all__ = [
    "EntryType",
    "SummarySource",
    "MatchResult",
    "ENTRY_TYPES",
    "STATS_ENTRY_KEY",
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
    "PackRequest",
    "parse_match_data_message",
    "parse_pack_request",
    "parse_in_progress_response",
]
