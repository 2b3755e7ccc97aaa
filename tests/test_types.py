# Area: Protocol Tests
# PRD: docs/prd-match-lifecycle.md
"""Tests for the gamepack wire types and their parsers."""

import pytest

from companion_matches.errors import InvalidMessageError
from companion_matches.types import (
    GameEvent,
    GameStatus,
    GetMatchTimelineRequest,
    GetMatchTimelineResponse,
    InitResponse,
    IsMatchInProgressResponse,
    MatchData,
    SetComplete,
    TimelineEntry,
    WriteEvents,
    WriteStats,
    parse_in_progress_response,
    parse_match_data_message,
    parse_pack_request,
    set_complete,
    write_events,
    write_stats,
)


class TestGameEvent:
    """Tests for GameEvent."""

    def test_defaults(self):
        """Event without overrides uses defaults."""
        event = GameEvent(event_type="ChampionKill", timestamp_secs=120.5)
        assert event.data == {}
        assert event.pre_capture_secs is None
        assert event.post_capture_secs is None

    def test_with_capture_returns_copy(self):
        """with_pre/post_capture do not mutate the original."""
        event = GameEvent(event_type="DragonKill", timestamp_secs=600.0)
        custom = event.with_pre_capture(30.0).with_post_capture(2.0)
        assert custom.pre_capture_secs == 30.0
        assert custom.post_capture_secs == 2.0
        assert event.pre_capture_secs is None


class TestMessageFactories:
    """Tests for write_stats / write_events / set_complete."""

    def test_write_stats(self):
        msg = write_stats(0, "M1", {"kills": 5}, result="win")
        assert isinstance(msg, WriteStats)
        assert msg.type == "write_stats"
        assert msg.stats == {"kills": 5}
        assert msg.result == "win"
        assert msg.played_at is None

    def test_write_events(self):
        events = [GameEvent(event_type="A", timestamp_secs=1.0)]
        msg = write_events(1, "M1", events)
        assert isinstance(msg, WriteEvents)
        assert msg.subpack == 1
        assert [e.event_type for e in msg.events] == ["A"]

    def test_set_complete(self):
        msg = set_complete(0, "M1", "api", final_stats={"kills": 6})
        assert isinstance(msg, SetComplete)
        assert msg.summary_source == "api"
        assert msg.final_stats == {"kills": 6}

    def test_set_complete_rejects_unknown_source(self):
        with pytest.raises(ValueError):
            set_complete(0, "M1", "guess")

    def test_subpack_range(self):
        """Subpack is a u8 index."""
        with pytest.raises(ValueError):
            write_stats(256, "M1", {})
        with pytest.raises(ValueError):
            write_stats(-1, "M1", {})


class TestParseMatchDataMessage:
    """Tests for parse_match_data_message."""

    def test_dispatches_on_type(self):
        msg = parse_match_data_message({
            "type": "write_events",
            "subpack": 0,
            "external_match_id": "M1",
            "events": [{"event_type": "Kill", "timestamp_secs": 3}],
        })
        assert isinstance(msg, WriteEvents)
        assert msg.events[0].timestamp_secs == 3.0

    def test_set_complete_requires_source(self):
        with pytest.raises(InvalidMessageError) as exc_info:
            parse_match_data_message({
                "type": "set_complete", "subpack": 0, "external_match_id": "M1",
            })
        assert exc_info.value.code == "INVALID_MESSAGE"
        assert any("summary_source" in err for err in exc_info.value.errors)

    def test_unknown_type(self):
        with pytest.raises(InvalidMessageError):
            parse_match_data_message({"type": "delete_match", "subpack": 0})

    def test_timeline_request_is_not_match_data(self):
        with pytest.raises(InvalidMessageError):
            parse_match_data_message({
                "type": "get_match_timeline", "subpack": 0, "external_match_id": "M1",
            })


class TestParsePackRequest:
    """Tests for parse_pack_request."""

    def test_timeline_request(self):
        req = parse_pack_request({
            "type": "get_match_timeline",
            "subpack": 2,
            "external_match_id": "M1",
            "entry_types": ["event"],
            "limit": 5,
        })
        assert isinstance(req, GetMatchTimelineRequest)
        assert req.entry_types == ["event"]
        assert req.limit == 5

    def test_negative_limit_rejected(self):
        with pytest.raises(InvalidMessageError):
            parse_pack_request({
                "type": "get_match_timeline", "subpack": 0,
                "external_match_id": "M1", "limit": -1,
            })

    def test_unknown_entry_type_rejected(self):
        with pytest.raises(InvalidMessageError):
            parse_pack_request({
                "type": "get_match_timeline", "subpack": 0,
                "external_match_id": "M1", "entry_types": ["clip"],
            })

    def test_not_a_dict(self):
        with pytest.raises(InvalidMessageError) as exc_info:
            parse_pack_request(["write_stats"])
        assert "object" in str(exc_info.value)


class TestIsMatchInProgressResponse:
    """Tests for IsMatchInProgressResponse."""

    def test_constructors(self):
        assert IsMatchInProgressResponse.still_playing_response().still_playing is True
        ended = IsMatchInProgressResponse.ended()
        assert ended.still_playing is False
        assert ended.set_complete is None

    def test_ended_with_stats(self):
        msg = set_complete(0, "M1", "api", {"kills": 1})
        resp = IsMatchInProgressResponse.ended_with_stats(msg)
        assert resp.set_complete == msg

    def test_parse_wire_dict(self):
        resp = parse_in_progress_response({
            "still_playing": False,
            "set_complete": {
                "type": "set_complete", "subpack": 0, "external_match_id": "M1",
                "summary_source": "live_fallback",
            },
        })
        assert isinstance(resp.set_complete, SetComplete)

    def test_parse_invalid(self):
        with pytest.raises(InvalidMessageError):
            parse_in_progress_response({"set_complete": None})


class TestTimelineEntry:
    """Tests for TimelineEntry constructors and wire form."""

    def test_event_entry(self):
        entry = TimelineEntry.event("Kill", 12.0, "2026-01-01T00:00:00+00:00", {"x": 1})
        assert entry.entry_type == "event"
        assert entry.entry_key == "Kill"
        assert "trigger_fired" not in entry.to_wire()

    def test_statistic_entry_key(self):
        entry = TimelineEntry.statistic(0.0, "t", {"stats": {}, "match": {}})
        assert entry.entry_key == "stats"

    def test_moment_keeps_trigger(self):
        entry = TimelineEntry.moment("pentakill", 900.0, "t", {}, trigger_fired=True)
        assert entry.to_wire()["trigger_fired"] is True

    def test_frozen(self):
        entry = TimelineEntry.event("Kill", 1.0, "t", {})
        with pytest.raises(ValueError):
            entry.entry_key = "Other"

    def test_response_to_wire(self):
        resp = GetMatchTimelineResponse(found=False)
        assert resp.to_wire() == {"found": False, "entries": []}


class TestGamepackStatusTypes:
    """Tests for InitResponse, GameStatus and MatchData."""

    def test_init_response(self):
        init = InitResponse.model_validate({"game_id": 1, "slug": "league", "protocol_version": 2})
        assert init.slug == "league"
        assert init.protocol_version == 2

    def test_init_response_rejects_negative_version(self):
        with pytest.raises(ValueError):
            InitResponse(game_id=1, slug="league", protocol_version=-1)

    def test_disconnected_status(self):
        status = GameStatus.disconnected_status()
        assert status.connected is False
        assert status.connection_status == "Not connected"
        assert status.game_phase is None
        assert status.is_in_game is False

    def test_connected_builders_return_copies(self):
        base = GameStatus.connected_status("Connected to client")
        status = base.with_phase("InProgress").in_game(True)

        assert status.connected is True
        assert status.game_phase == "InProgress"
        assert status.is_in_game is True
        assert base.game_phase is None
        assert base.is_in_game is False

    def test_match_data(self):
        data = MatchData(game_slug="league", game_id=1, result="win", details={"kills": 7})
        assert data.model_dump() == {
            "game_slug": "league", "game_id": 1, "result": "win", "details": {"kills": 7},
        }
