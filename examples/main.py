"""
main.py — Run the companion daemon against a local gamepack
===========================================================

    python main.py

The script will:
  1. Create the daemon with a schema for the "league" pack
  2. Store a few messages from the gamepack
  3. Simulate a daemon restart while one match ended unseen
  4. Run a recovery pass and print the report
  5. Rebuild a match from its timeline
"""

import asyncio

from companion_matches import (
    GetMatchTimelineRequest,
    MatchDaemon,
    replay_timeline,
    setup_logging,
)
from my_gamepack import MyGamepack

setup_logging("companion_matches.log", "INFO")

# ── Configuration ──
config = {
    "db_path": "companion_matches.db",
    "protocol_log": True,
    "packs": {
        "league": {
            "subpacks": {
                "0": {"columns": {"kills": "integer", "deaths": "integer", "gold": "real"}},
            },
        },
    },
}

daemon = MatchDaemon(config)
gamepack = MyGamepack()


def send(message):
    reply = daemon.handle_pack_message("league", message.model_dump())
    if reply["status"] != "ok":
        print(f"  rejected: {reply['error']}")
    return reply


# ── A match that ends normally ──
send(gamepack.start_match("EUW1_1"))
for message in gamepack.kill("EUW1_1", 312.5, kills=1):
    send(message)
send(gamepack.end_match("EUW1_1", {"kills": 4, "deaths": 2, "gold": 11250.0}))

# ── Two matches that are live when the daemon "crashes" ──
send(gamepack.start_match("EUW1_2"))
send(gamepack.start_match("EUW1_3"))
gamepack.crash_out_of("EUW1_3", {"kills": 9, "deaths": 1})

# ── Daemon restart: reconcile stale matches ──
daemon = MatchDaemon(config)
daemon.register_channel("league", gamepack)
report = asyncio.run(daemon.run_recovery())
print(f"Recovery: {report.to_dict()}")

# ── Rebuild a finished match from its timeline ──
response = daemon.get_timeline(
    "league", GetMatchTimelineRequest(subpack=0, external_match_id="EUW1_1")
)
state = replay_timeline(response.entries)
print(f"EUW1_1 replayed: stats={state.summary_stats}, complete={state.is_complete}")
