# Area: Recovery
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches._recovery.orchestrator — Recovery Orchestrator
================================================================

Reconciles matches left in progress (e.g. after a daemon crash) by
asking the owning gamepack for ground truth:

1. Every in-progress match is FLAGGED.
2. If its gamepack is reachable, IsMatchInProgressRequest -> VERIFYING.
3. still_playing=true  -> CONFIRMED, match untouched.
4. still_playing=false -> SetComplete applied through the write
   pipeline (the gamepack's, or a bare live_fallback) -> FINALIZED.
5. Unreachable or timed out -> FLAGGED, retried next pass. A match is
   never completed without the gamepack's answer.

Verification queries run concurrently, bounded by a semaphore, each
with its own timeout. Match locks are only taken inside the write
pipeline, never across an await.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..errors import InvalidMessageError, RecoveryTimeout, WriteError
from ..types import IsMatchInProgressRequest, IsMatchInProgressResponse, SetComplete
from .._pipeline.write_pipeline import MatchWritePipeline
from .._shared.protocol import current_timestamp, generate_request_id
from .._shared.protocol_logger import ProtocolLogger, get_protocol_logger
from .._store.records import MatchKey, MatchRecord
from .._store.repo_matches import MatchRepository
from .channel import ChannelRegistry, GamepackChannel
from .enums import RecoveryEvent, RecoveryState
from .state_machine import RecoveryStateMachine

logger = logging.getLogger("companion_matches.recovery.orchestrator")

# Per-match outcomes of one pass
CONFIRMED = "confirmed"
FINALIZED = "finalized"
FLAGGED = "flagged"
FAILED = "failed"


@dataclass
class RecoveryReport:
    """
    Result of one recovery pass.

    Attributes:
        confirmed: Matches the gamepack says are still being played
        finalized: Matches completed from the gamepack's answer
        flagged: Matches whose gamepack could not be reached
        failed: Matches whose gamepack answer could not be applied
        stuck: Flagged/failed matches unverified for too many passes
    """

    confirmed: List[MatchKey] = field(default_factory=list)
    finalized: List[MatchKey] = field(default_factory=list)
    flagged: List[MatchKey] = field(default_factory=list)
    failed: List[MatchKey] = field(default_factory=list)
    stuck: List[MatchKey] = field(default_factory=list)

    @property
    def examined(self) -> int:
        return len(self.confirmed) + len(self.finalized) + len(self.flagged) + len(self.failed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confirmed": [list(k) for k in self.confirmed],
            "finalized": [list(k) for k in self.finalized],
            "flagged": [list(k) for k in self.flagged],
            "failed": [list(k) for k in self.failed],
            "stuck": [list(k) for k in self.stuck],
        }


class RecoveryOrchestrator:
    """
    Drives stale-match recovery passes.

    Args:
        matches: Match repository (reads candidates, stores recovery state)
        pipelines: Write pipeline per pack_id, used to finalize matches
        channels: Registry of connected gamepacks
        timeout_secs: Deadline of each verification query
        concurrency: Max verification queries in flight
        stuck_after_attempts: Unanswered passes before a match is reported stuck
    """

    def __init__(
        self,
        matches: MatchRepository,
        pipelines: Mapping[str, MatchWritePipeline],
        channels: ChannelRegistry,
        timeout_secs: float = 5.0,
        concurrency: int = 4,
        stuck_after_attempts: int = 5,
        protocol_logger: Optional[ProtocolLogger] = None,
    ):
        self.matches = matches
        self.pipelines = pipelines
        self.channels = channels
        self.timeout_secs = timeout_secs
        self.concurrency = concurrency
        self.stuck_after_attempts = stuck_after_attempts
        self._protocol_logger = protocol_logger or get_protocol_logger()
        self._running = False
        self._stop_event: Optional[asyncio.Event] = None

    # ══════════════════════════════════════════════════════════════
    # PASSES
    # ══════════════════════════════════════════════════════════════

    async def run_pass(self, pack_id: Optional[str] = None) -> RecoveryReport:
        """
        Run one recovery pass over every in-progress match.

        Args:
            pack_id: Restrict the pass to one gamepack, or None for all

        Returns:
            Per-outcome lists of match keys
        """
        candidates = self.matches.list_in_progress(pack_id)
        report = RecoveryReport()
        if not candidates:
            logger.debug("Recovery pass: no in-progress matches")
            return report

        logger.info("Recovery pass: %d in-progress match(es)", len(candidates))
        semaphore = asyncio.Semaphore(self.concurrency)
        outcomes = await asyncio.gather(
            *(self._recover_match(match, semaphore) for match in candidates)
        )

        buckets = {
            CONFIRMED: report.confirmed,
            FINALIZED: report.finalized,
            FLAGGED: report.flagged,
            FAILED: report.failed,
        }
        for match, (outcome, attempts) in zip(candidates, outcomes):
            buckets[outcome].append(match.key)
            if outcome in (FLAGGED, FAILED) and attempts >= self.stuck_after_attempts:
                report.stuck.append(match.key)
                logger.warning(
                    "Match %s/%d/%s unverified after %d recovery passes",
                    *match.key, attempts,
                    extra={"pack_id": match.pack_id, "external_match_id": match.external_match_id},
                )

        logger.info(
            "Recovery pass done: %d confirmed, %d finalized, %d flagged, %d failed, %d stuck",
            len(report.confirmed), len(report.finalized), len(report.flagged),
            len(report.failed), len(report.stuck),
        )
        return report

    async def run_forever(self, interval_secs: float = 60.0) -> None:
        """Run recovery passes every ``interval_secs`` until stop() is called."""
        self._running = True
        self._stop_event = asyncio.Event()
        while self._running:
            try:
                await self.run_pass()
            except Exception as e:
                logger.error(f"Recovery pass failed: {e}", exc_info=True)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval_secs)
            except asyncio.TimeoutError:
                pass
        logger.info("Recovery loop stopped.")

    def stop(self) -> None:
        """Stop run_forever after the current pass."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()

    # ══════════════════════════════════════════════════════════════
    # PER-MATCH
    # ══════════════════════════════════════════════════════════════

    async def _recover_match(
        self, match: MatchRecord, semaphore: asyncio.Semaphore
    ) -> tuple:
        """Recover one match. Returns (outcome, verification_attempts)."""
        sm = RecoveryStateMachine(RecoveryState.from_db(match.recovery_state))
        self._transition(match, sm, RecoveryEvent.FLAG)

        channel = self.channels.reachable(match.pack_id)
        if channel is None:
            logger.info(
                "Pack '%s' not reachable; match %s stays flagged",
                match.pack_id, match.external_match_id,
            )
            return self._unreachable(match, sm)

        async with semaphore:
            self._transition(match, sm, RecoveryEvent.VERIFY, verified_at=current_timestamp())
            try:
                response = await self._verify(channel, match)
            except RecoveryTimeout as e:
                logger.warning(str(e), extra={"pack_id": match.pack_id})
                return self._unreachable(match, sm)
            except (ConnectionError, OSError) as e:
                logger.warning(
                    "Pack '%s' connection failed for match %s: %s",
                    match.pack_id, match.external_match_id, e,
                )
                return self._unreachable(match, sm)
            except Exception:
                logger.error(
                    "Pack '%s' failed to answer for match %s",
                    match.pack_id, match.external_match_id, exc_info=True,
                )
                return self._rejected(match, sm)

        if response.still_playing:
            self._transition(match, sm, RecoveryEvent.STILL_PLAYING, attempts=0)
            logger.info("Match %s/%d/%s confirmed in progress", *match.key)
            return CONFIRMED, 0

        try:
            # Blocking sqlite write and match lock; keep them off the event loop
            await asyncio.to_thread(self._finalize, match, response)
        except (WriteError, InvalidMessageError) as e:
            logger.error(
                "Cannot finalize match %s/%d/%s: %s", *match.key, e,
                extra={"error_code": e.code},
            )
            return self._rejected(match, sm)

        self._transition(match, sm, RecoveryEvent.ENDED, attempts=0)
        logger.info("Match %s/%d/%s finalized", *match.key)
        return FINALIZED, 0

    async def _verify(
        self, channel: GamepackChannel, match: MatchRecord
    ) -> IsMatchInProgressResponse:
        """Send IsMatchInProgressRequest, bounded by the timeout.

        Raises:
            RecoveryTimeout: If the gamepack does not answer in time
        """
        request = IsMatchInProgressRequest(
            subpack=match.subpack, external_match_id=match.external_match_id
        )
        request_id = generate_request_id()
        self._protocol_logger.log_sent(
            match.pack_id, "is_match_in_progress", match.external_match_id, request_id
        )
        try:
            return await asyncio.wait_for(
                channel.is_match_in_progress(request), timeout=self.timeout_secs
            )
        except asyncio.TimeoutError:
            raise RecoveryTimeout(
                match.pack_id, match.subpack, match.external_match_id, self.timeout_secs,
                request_id=request_id,
            ) from None

    def _finalize(self, match: MatchRecord, response: IsMatchInProgressResponse) -> None:
        """Apply the gamepack's SetComplete, or a bare live_fallback one."""
        pipeline = self.pipelines.get(match.pack_id)
        if pipeline is None:
            raise InvalidMessageError(f"No write pipeline for pack '{match.pack_id}'")

        message = response.set_complete
        if message is None:
            message = SetComplete(
                subpack=match.subpack,
                external_match_id=match.external_match_id,
                summary_source="live_fallback",
            )
        elif not isinstance(message, SetComplete):
            raise InvalidMessageError(
                f"IsMatchInProgressResponse.set_complete carries a {message.type} message"
            )
        pipeline.apply(match.subpack, match.external_match_id, message)

    def _unreachable(self, match: MatchRecord, sm: RecoveryStateMachine) -> tuple:
        attempts = match.verification_attempts + 1
        self._transition(match, sm, RecoveryEvent.UNREACHABLE, attempts=attempts)
        return FLAGGED, attempts

    def _rejected(self, match: MatchRecord, sm: RecoveryStateMachine) -> tuple:
        attempts = match.verification_attempts + 1
        self._transition(match, sm, RecoveryEvent.ANSWER_REJECTED, attempts=attempts)
        return FAILED, attempts

    def _transition(
        self,
        match: MatchRecord,
        sm: RecoveryStateMachine,
        event: RecoveryEvent,
        attempts: Optional[int] = None,
        verified_at: Optional[str] = None,
    ) -> None:
        state = sm.transition(event)
        self.matches.set_recovery_state(match.id, state.value, attempts, verified_at)
        logger.debug(
            "Recovery %s/%d/%s: %s -> %s", *match.key, event.value, state.value,
            extra={"recovery_state": state.value},
        )
