# Area: Recovery Tests
# PRD: docs/prd-match-lifecycle.md
"""Tests for the Recovery Orchestrator."""

import asyncio
import os
import re
import tempfile
import threading

import pytest

from companion_matches._pipeline.stat_schema import SchemaRegistry
from companion_matches._pipeline.write_pipeline import MatchWritePipeline
from companion_matches._recovery.channel import ChannelRegistry, GamepackChannel
from companion_matches._recovery.orchestrator import RecoveryOrchestrator
from companion_matches._shared.protocol_logger import ProtocolLogger
from companion_matches._store.database import init_database
from companion_matches._store.repo_matches import MatchRepository
from companion_matches._store.repo_timeline import TimelineRepository
from companion_matches.errors import MatchAlreadyComplete
from companion_matches.types import (
    IsMatchInProgressResponse,
    set_complete,
    write_stats,
)

PACK_CONFIG = {"subpacks": {"0": {"columns": {"kills": "integer", "deaths": "integer"}}}}


class FakeChannel:
    """Gamepack channel answering from a callable."""

    def __init__(self, answer=None, running=True, delay=0.0):
        self.answer = answer or (lambda request: IsMatchInProgressResponse.still_playing_response())
        self.running = running
        self.delay = delay
        self.requests = []
        self.in_flight = 0
        self.max_in_flight = 0

    def is_running(self):
        return self.running

    async def is_match_in_progress(self, request):
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return self.answer(request)
        finally:
            self.in_flight -= 1


def _raise(exc):
    def answer(request):
        raise exc
    return answer


class TestRecoveryOrchestrator:
    """Tests for RecoveryOrchestrator class."""

    @pytest.fixture
    def db_path(self):
        """Create temporary database for testing."""
        fd, path = tempfile.mkstemp(suffix=".db")
        os.close(fd)
        init_database(path)
        yield path
        os.unlink(path)

    @pytest.fixture
    def matches(self, db_path):
        return MatchRepository(db_path)

    @pytest.fixture
    def pipeline(self, db_path, matches):
        return MatchWritePipeline(
            "league",
            matches,
            TimelineRepository(db_path),
            SchemaRegistry.from_config("league", PACK_CONFIG),
        )

    @pytest.fixture
    def channels(self):
        return ChannelRegistry()

    @pytest.fixture
    def orchestrator(self, matches, pipeline, channels):
        return RecoveryOrchestrator(
            matches,
            {"league": pipeline},
            channels,
            timeout_secs=0.2,
            concurrency=2,
            stuck_after_attempts=3,
            protocol_logger=ProtocolLogger(enabled=False),
        )

    def _start(self, pipeline, *ids):
        for ext in ids:
            pipeline.apply_message(write_stats(0, ext, {"kills": 5}))

    def test_fake_channel_satisfies_protocol(self):
        assert isinstance(FakeChannel(), GamepackChannel)

    def test_nothing_to_recover(self, orchestrator):
        report = asyncio.run(orchestrator.run_pass())
        assert report.examined == 0
        assert report.to_dict()["stuck"] == []

    def test_unreachable_stays_flagged(self, orchestrator, pipeline, matches):
        """No channel: the match is flagged, never finalized."""
        self._start(pipeline, "M1")

        report = asyncio.run(orchestrator.run_pass())

        assert report.flagged == [("league", 0, "M1")]
        match = matches.get_match("league", 0, "M1")
        assert match.is_in_progress is True
        assert match.recovery_state == "FLAGGED"
        assert match.verification_attempts == 1
        assert match.summary_source is None

    def test_not_running_channel_is_not_queried(self, orchestrator, pipeline, channels, matches):
        self._start(pipeline, "M1")
        channel = FakeChannel(running=False)
        channels.register("league", channel)

        report = asyncio.run(orchestrator.run_pass())

        assert report.flagged == [("league", 0, "M1")]
        assert channel.requests == []

    def test_stuck_after_repeated_passes(self, orchestrator, pipeline, matches):
        self._start(pipeline, "M1")
        for _ in range(2):
            assert asyncio.run(orchestrator.run_pass()).stuck == []

        report = asyncio.run(orchestrator.run_pass())

        assert report.stuck == [("league", 0, "M1")]
        assert matches.get_match("league", 0, "M1").verification_attempts == 3
        assert matches.get_match("league", 0, "M1").is_in_progress is True

    def test_still_playing_confirms(self, orchestrator, pipeline, channels, matches):
        self._start(pipeline, "M1")
        asyncio.run(orchestrator.run_pass())
        channel = FakeChannel()
        channels.register("league", channel)

        report = asyncio.run(orchestrator.run_pass())

        assert report.confirmed == [("league", 0, "M1")]
        assert channel.requests[0].external_match_id == "M1"
        assert channel.requests[0].subpack == 0
        match = matches.get_match("league", 0, "M1")
        assert match.recovery_state == "CONFIRMED"
        assert match.verification_attempts == 0
        assert match.last_verification_at is not None
        assert match.is_in_progress is True
        assert match.summary_stats == {"kills": 5}

    def test_ended_without_stats_finalizes_live_fallback(
        self, orchestrator, pipeline, channels, matches
    ):
        self._start(pipeline, "M1")
        channels.register("league", FakeChannel(lambda r: IsMatchInProgressResponse.ended()))

        report = asyncio.run(orchestrator.run_pass())

        assert report.finalized == [("league", 0, "M1")]
        match = matches.get_match("league", 0, "M1")
        assert match.is_in_progress is False
        assert match.summary_source == "live_fallback"
        assert match.recovery_state == "FINALIZED"
        assert match.summary_stats == {"kills": 5}

    def test_ended_with_stats_applies_them(self, orchestrator, pipeline, channels, matches):
        self._start(pipeline, "M1")
        channels.register("league", FakeChannel(lambda r: IsMatchInProgressResponse.ended_with_stats(
            set_complete(r.subpack, r.external_match_id, "api", {"kills": 9, "deaths": 4})
        )))

        asyncio.run(orchestrator.run_pass())

        match = matches.get_match("league", 0, "M1")
        assert match.summary_source == "api"
        assert match.summary_stats == {"kills": 9, "deaths": 4}

    def test_finalized_match_is_never_queried_again(self, orchestrator, pipeline, channels):
        self._start(pipeline, "M1")
        channel = FakeChannel(lambda r: IsMatchInProgressResponse.ended())
        channels.register("league", channel)
        asyncio.run(orchestrator.run_pass())

        report = asyncio.run(orchestrator.run_pass())

        assert report.examined == 0
        assert len(channel.requests) == 1

    def test_late_write_after_recovery_finalized(self, orchestrator, pipeline, channels):
        """A gamepack write racing recovery finalization is rejected."""
        self._start(pipeline, "M1")
        channels.register("league", FakeChannel(lambda r: IsMatchInProgressResponse.ended()))
        asyncio.run(orchestrator.run_pass())

        with pytest.raises(MatchAlreadyComplete):
            pipeline.apply_message(write_stats(0, "M1", {"kills": 6}))

    def test_timeout_reverts_to_flagged(self, orchestrator, pipeline, channels, matches):
        self._start(pipeline, "M1")
        channels.register("league", FakeChannel(
            lambda r: IsMatchInProgressResponse.ended(), delay=2.0
        ))

        report = asyncio.run(orchestrator.run_pass())

        assert report.flagged == [("league", 0, "M1")]
        match = matches.get_match("league", 0, "M1")
        assert match.recovery_state == "FLAGGED"
        assert match.is_in_progress is True
        assert match.verification_attempts == 1

    def test_connection_error_is_unreachable(self, orchestrator, pipeline, channels):
        self._start(pipeline, "M1")
        channels.register("league", FakeChannel(_raise(ConnectionResetError("gone"))))

        report = asyncio.run(orchestrator.run_pass())

        assert report.flagged == [("league", 0, "M1")]
        assert report.failed == []

    def test_channel_bug_is_failed(self, orchestrator, pipeline, channels, matches):
        self._start(pipeline, "M1")
        channels.register("league", FakeChannel(_raise(KeyError("oops"))))

        report = asyncio.run(orchestrator.run_pass())

        assert report.failed == [("league", 0, "M1")]
        assert matches.get_match("league", 0, "M1").recovery_state == "FLAGGED"

    def test_answer_for_other_match_is_rejected(self, orchestrator, pipeline, channels, matches):
        self._start(pipeline, "M1")
        channels.register("league", FakeChannel(lambda r: IsMatchInProgressResponse.ended_with_stats(
            set_complete(0, "OTHER", "api", {"kills": 1})
        )))

        report = asyncio.run(orchestrator.run_pass())

        assert report.failed == [("league", 0, "M1")]
        match = matches.get_match("league", 0, "M1")
        assert match.is_in_progress is True
        assert match.summary_stats == {"kills": 5}

    def test_answer_with_non_set_complete_is_rejected(self, orchestrator, pipeline, channels, matches):
        self._start(pipeline, "M1")
        channels.register("league", FakeChannel(lambda r: IsMatchInProgressResponse(
            still_playing=False, set_complete=write_stats(0, "M1", {"kills": 1})
        )))

        report = asyncio.run(orchestrator.run_pass())

        assert report.failed == [("league", 0, "M1")]
        assert matches.get_match("league", 0, "M1").is_in_progress is True

    def test_answer_with_invalid_stats_is_rejected(self, orchestrator, pipeline, channels, matches):
        self._start(pipeline, "M1")
        channels.register("league", FakeChannel(lambda r: IsMatchInProgressResponse.ended_with_stats(
            set_complete(0, "M1", "api", {"gold": 1})
        )))

        report = asyncio.run(orchestrator.run_pass())

        assert report.failed == [("league", 0, "M1")]
        assert matches.get_match("league", 0, "M1").summary_source is None

    def test_concurrency_is_bounded(self, orchestrator, pipeline, channels):
        self._start(pipeline, "M1", "M2", "M3", "M4", "M5")
        channel = FakeChannel(delay=0.02)
        channels.register("league", channel)

        report = asyncio.run(orchestrator.run_pass())

        assert len(report.confirmed) == 5
        assert channel.max_in_flight == 2

    def test_pass_restricted_to_pack(self, orchestrator, pipeline, matches):
        self._start(pipeline, "M1")
        matches.create_if_absent("tft", 0, "T1")

        report = asyncio.run(orchestrator.run_pass("tft"))

        assert report.flagged == [("tft", 0, "T1")]
        assert matches.get_match("league", 0, "M1").recovery_state is None

    def test_missing_pipeline_is_failed(self, orchestrator, matches, channels):
        """A reachable pack without a write pipeline cannot be finalized."""
        matches.create_if_absent("tft", 0, "T1")
        channels.register("tft", FakeChannel(lambda r: IsMatchInProgressResponse.ended()))

        report = asyncio.run(orchestrator.run_pass("tft"))

        assert report.failed == [("tft", 0, "T1")]
        assert matches.get_match("tft", 0, "T1").is_in_progress is True

    def test_run_forever_until_stopped(self, orchestrator, pipeline, channels):
        self._start(pipeline, "M1")
        channel = FakeChannel()
        channels.register("league", channel)

        async def scenario():
            task = asyncio.create_task(orchestrator.run_forever(interval_secs=0.01))
            await asyncio.sleep(0.1)
            orchestrator.stop()
            await asyncio.wait_for(task, timeout=1.0)

        asyncio.run(scenario())
        assert len(channel.requests) >= 2

    def test_queries_are_logged_with_request_ids(
        self, matches, pipeline, channels, capsys
    ):
        orchestrator = RecoveryOrchestrator(
            matches,
            {"league": pipeline},
            channels,
            timeout_secs=0.2,
            protocol_logger=ProtocolLogger(enabled=True),
        )
        self._start(pipeline, "M1", "M2")
        channels.register("league", FakeChannel())

        asyncio.run(orchestrator.run_pass())

        sent = [line for line in capsys.readouterr().out.splitlines() if "SENT" in line]
        request_ids = [re.search(r"REQ: ([0-9a-f-]{36})", line).group(1) for line in sent]
        assert len(request_ids) == 2
        assert len(set(request_ids)) == 2

    def test_finalize_runs_off_the_event_loop_thread(
        self, orchestrator, pipeline, channels, matches
    ):
        self._start(pipeline, "M1")
        channels.register("league", FakeChannel(lambda r: IsMatchInProgressResponse.ended()))
        apply_threads = []
        original_apply = pipeline.apply

        def recording_apply(*args, **kwargs):
            apply_threads.append(threading.current_thread())
            return original_apply(*args, **kwargs)

        pipeline.apply = recording_apply

        report = asyncio.run(orchestrator.run_pass())

        assert report.finalized == [("league", 0, "M1")]
        assert apply_threads
        assert threading.main_thread() not in apply_threads
        assert matches.get_match("league", 0, "M1").is_in_progress is False
