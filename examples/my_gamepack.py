"""
my_gamepack.py — A minimal in-process gamepack
===============================================

Shows the two halves of a gamepack:

- it BUILDS messages (write_stats / write_events / set_complete) that the
  daemon stores;
- it ANSWERS the daemon's "is this match still running?" question during
  recovery, through the GamepackChannel protocol.

A real gamepack talks to the daemon over its own transport; here the
daemon calls the object directly.
"""

from companion_matches import (
    GameEvent,
    IsMatchInProgressRequest,
    IsMatchInProgressResponse,
    set_complete,
    write_events,
    write_stats,
)

SUBPACK = 0


class MyGamepack:
    """Tracks which matches are live and remembers their final stats."""

    def __init__(self):
        self.running = True
        self.live_matches = set()
        self.final_stats = {}

    # ── Messages sent to the daemon ──

    def start_match(self, match_id):
        self.live_matches.add(match_id)
        return write_stats(SUBPACK, match_id, {"kills": 0, "deaths": 0}, result=None)

    def kill(self, match_id, game_time_secs, kills):
        event = GameEvent(
            event_type="ChampionKill",
            timestamp_secs=game_time_secs,
            data={"victim": "enemy"},
        ).with_pre_capture(10.0)
        return [
            write_events(SUBPACK, match_id, [event]),
            write_stats(SUBPACK, match_id, {"kills": kills}),
        ]

    def end_match(self, match_id, stats):
        self.live_matches.discard(match_id)
        self.final_stats[match_id] = stats
        return set_complete(SUBPACK, match_id, "api", final_stats=stats)

    def crash_out_of(self, match_id, stats):
        """The game ended while the daemon was down: nothing was sent."""
        self.live_matches.discard(match_id)
        self.final_stats[match_id] = stats

    # ── GamepackChannel ──

    def is_running(self):
        return self.running

    async def is_match_in_progress(self, request: IsMatchInProgressRequest):
        match_id = request.external_match_id
        if match_id in self.live_matches:
            return IsMatchInProgressResponse.still_playing_response()
        stats = self.final_stats.get(match_id)
        if stats is None:
            return IsMatchInProgressResponse.ended()
        return IsMatchInProgressResponse.ended_with_stats(
            set_complete(SUBPACK, match_id, "live_fallback", final_stats=stats)
        )
