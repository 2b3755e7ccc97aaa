# Area: Pipeline
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches._pipeline.write_pipeline — Match Write Pipeline
=================================================================

Applies MatchDataMessage values to persisted match state:

- WriteStats:  lazy creation, field-wise last-writer-wins stat upsert
- WriteEvents: lazy creation, all-or-nothing ordered event append
- SetComplete: terminal completion with api > live_fallback precedence

Each message is one read-modify-write in a single SQLite transaction,
under the match's lock. Every message that changes the summary record
also appends a "statistic" timeline entry describing the delta, so the
timeline alone can rebuild the summary (see ``replay_timeline``).
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from typing_extensions import assert_never

from ..errors import InvalidMessageError, MatchAlreadyComplete, UnknownMatch
from ..types import SetComplete, TimelineEntry, WriteEvents, WriteStats
from .._shared.protocol import current_timestamp
from .._store.repo_matches import MATCH_FIELDS, MatchRepository
from .._store.repo_timeline import TimelineRepository
from .capture import CaptureRequest, EventListener, resolve_capture_window
from .event_convert import convert_events
from .match_locks import MatchLockRegistry
from .stat_schema import SchemaRegistry

logger = logging.getLogger("companion_matches.pipeline")

# Source recorded for stats written by WriteStats
LIVE_SOURCE = "live"

# Completion precedence: a lower rank never overwrites a higher one
SOURCE_RANK = {"live_fallback": 0, "api": 1}

AnyMatchData = Union[WriteStats, WriteEvents, SetComplete]


@dataclass
class ApplyOutcome:
    """
    What applying one message changed.

    Attributes:
        created: The match row was created by this message
        stats_changed: Summary fields written, with their new values
        match_changed: Match-level fields changed, with their new values
        events_appended: Event entries appended to the timeline
        dropped_stats: Final stats ignored by the precedence rule
    """

    created: bool = False
    stats_changed: Dict[str, Any] = field(default_factory=dict)
    match_changed: Dict[str, Any] = field(default_factory=dict)
    events_appended: int = 0
    dropped_stats: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(
            self.created or self.stats_changed or self.match_changed or self.events_appended
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "stats_changed": sorted(self.stats_changed),
            "match_changed": sorted(self.match_changed),
            "events_appended": self.events_appended,
            "dropped_stats": self.dropped_stats,
        }


def _same_json(a: Any, b: Any) -> bool:
    """JSON equality (keeps True distinct from 1)."""
    return json.dumps(a, sort_keys=True) == json.dumps(b, sort_keys=True)


class MatchWritePipeline:
    """
    Write pipeline of one gamepack.

    The daemon builds one pipeline per pack; all pipelines share the
    same store and lock registry.
    """

    def __init__(
        self,
        pack_id: str,
        matches: MatchRepository,
        timeline: TimelineRepository,
        schema: SchemaRegistry,
        locks: Optional[MatchLockRegistry] = None,
        capture_config: Optional[Dict[str, Any]] = None,
    ):
        self.pack_id = pack_id
        self.matches = matches
        self.timeline = timeline
        self.schema = schema
        self.locks = locks or MatchLockRegistry()
        self.capture_config = capture_config or {}
        self._listeners: List[EventListener] = []

    def add_event_listener(self, listener: EventListener) -> None:
        """Register a callback run for every event once its batch is stored."""
        self._listeners.append(listener)

    # ══════════════════════════════════════════════════════════════
    # ENTRY POINTS
    # ══════════════════════════════════════════════════════════════

    def apply(
        self, subpack: int, external_match_id: str, message: AnyMatchData
    ) -> ApplyOutcome:
        """
        Apply one message to the match it is scoped to.

        Args:
            subpack: Subpack index of the target match
            external_match_id: Game's native match ID of the target match
            message: WriteStats, WriteEvents or SetComplete

        Returns:
            What the message changed

        Raises:
            WriteError: The message was rejected; nothing was changed
            StoreError: Persistence failed; nothing is assumed written
        """
        if message.subpack != subpack or message.external_match_id != external_match_id:
            raise InvalidMessageError(
                f"Message is scoped to ({message.subpack}, {message.external_match_id!r}), "
                f"not ({subpack}, {external_match_id!r})"
            )

        with self.locks.held((self.pack_id, subpack, external_match_id)):
            if isinstance(message, WriteStats):
                outcome = self._apply_write_stats(message)
            elif isinstance(message, WriteEvents):
                outcome = self._apply_write_events(message)
            elif isinstance(message, SetComplete):
                outcome = self._apply_set_complete(message)
            else:
                assert_never(message)

        logger.debug(
            "Applied %s to %s/%d/%s: %s",
            message.type, self.pack_id, subpack, external_match_id, outcome.to_dict(),
        )
        if isinstance(message, WriteEvents) and outcome.events_appended:
            self._notify_listeners(message)
        return outcome

    def apply_message(self, message: AnyMatchData) -> ApplyOutcome:
        """Apply a message to the match named in the message itself."""
        return self.apply(message.subpack, message.external_match_id, message)

    # ══════════════════════════════════════════════════════════════
    # VARIANTS
    # ══════════════════════════════════════════════════════════════

    def _apply_write_stats(self, message: WriteStats) -> ApplyOutcome:
        self.schema.validate_stats(message.subpack, message.external_match_id, message.stats)
        outcome = ApplyOutcome()

        with self.matches.transaction() as conn:
            row, outcome.created = self._get_or_create(message.subpack, message.external_match_id, conn)

            for name in MATCH_FIELDS:
                value = getattr(message, name)
                if value is not None and row[name] != value:
                    outcome.match_changed[name] = value

            current = self.matches.get_stats(row["id"], conn=conn)
            for name, value in message.stats.items():
                if name not in current or not _same_json(current[name].value, value):
                    outcome.stats_changed[name] = value

            if outcome.match_changed:
                self.matches.update_match_fields(row["id"], outcome.match_changed, conn=conn)
            if outcome.stats_changed:
                self.matches.upsert_stats(row["id"], outcome.stats_changed, LIVE_SOURCE, conn=conn)
            self._record_delta(row["id"], outcome, conn)

        return outcome

    def _apply_write_events(self, message: WriteEvents) -> ApplyOutcome:
        self.schema.get(message.subpack, message.external_match_id)
        captured_at = current_timestamp()
        entries = convert_events(
            message.subpack, message.external_match_id, message.events, captured_at
        )
        outcome = ApplyOutcome()

        with self.matches.transaction() as conn:
            row, outcome.created = self._get_or_create(message.subpack, message.external_match_id, conn)
            self._record_delta(row["id"], outcome, conn, captured_at)
            outcome.events_appended = self.timeline.append(row["id"], entries, conn=conn)

        return outcome

    def _apply_set_complete(self, message: SetComplete) -> ApplyOutcome:
        final_stats = message.final_stats or {}
        self.schema.validate_stats(message.subpack, message.external_match_id, final_stats)
        outcome = ApplyOutcome()

        with self.matches.transaction() as conn:
            row = self.matches.get_match_row(
                self.pack_id, message.subpack, message.external_match_id, conn=conn
            )
            if row is None:
                raise UnknownMatch(message.subpack, message.external_match_id)

            current_source = row["summary_source"]
            new_rank = SOURCE_RANK[message.summary_source]
            outranked = current_source is not None and SOURCE_RANK[current_source] > new_rank

            if outranked:
                outcome.dropped_stats = sorted(final_stats)
            else:
                current = self.matches.get_stats(row["id"], conn=conn)
                for name, value in final_stats.items():
                    stat = current.get(name)
                    if stat is not None and SOURCE_RANK.get(stat.source, -1) > new_rank:
                        outcome.dropped_stats.append(name)
                    elif (
                        stat is None
                        or stat.source != message.summary_source
                        or not _same_json(stat.value, value)
                    ):
                        outcome.stats_changed[name] = value

            if row["is_in_progress"]:
                outcome.match_changed["is_in_progress"] = False
            if not outranked and current_source != message.summary_source:
                outcome.match_changed["summary_source"] = message.summary_source

            if outcome.match_changed:
                self.matches.mark_complete(
                    row["id"], outcome.match_changed.get("summary_source", current_source), conn=conn
                )
            if outcome.stats_changed:
                self.matches.upsert_stats(
                    row["id"], outcome.stats_changed, message.summary_source, conn=conn
                )
            self._record_delta(row["id"], outcome, conn)

        if outcome.dropped_stats:
            logger.info(
                "Dropped %s final stats for %s/%d/%s: %s",
                message.summary_source, self.pack_id, message.subpack,
                message.external_match_id, outcome.dropped_stats,
            )
        return outcome

    # ══════════════════════════════════════════════════════════════
    # HELPERS
    # ══════════════════════════════════════════════════════════════

    def _get_or_create(
        self, subpack: int, external_match_id: str, conn: sqlite3.Connection
    ) -> Tuple[Dict[str, Any], bool]:
        """Fetch the match row, creating it in progress if absent.

        Raises:
            MatchAlreadyComplete: If the match exists and is complete
        """
        created = self.matches.create_if_absent(self.pack_id, subpack, external_match_id, conn=conn)
        row = self.matches.get_match_row(self.pack_id, subpack, external_match_id, conn=conn)
        if not row["is_in_progress"]:
            raise MatchAlreadyComplete(subpack, external_match_id)
        if created:
            logger.info("Created match %s/%d/%s", self.pack_id, subpack, external_match_id)
        return row, created

    def _record_delta(
        self,
        match_id: int,
        outcome: ApplyOutcome,
        conn: sqlite3.Connection,
        captured_at: Optional[str] = None,
    ) -> None:
        """Append a statistic entry describing the summary delta, if any."""
        match_delta = dict(outcome.match_changed)
        if outcome.created:
            match_delta["is_in_progress"] = True
        if not match_delta and not outcome.stats_changed:
            return
        entry = TimelineEntry.statistic(
            self.timeline.latest_game_time(match_id, conn=conn),
            captured_at or current_timestamp(),
            {"stats": dict(outcome.stats_changed), "match": match_delta},
        )
        self.timeline.append(match_id, [entry], conn=conn)

    def _notify_listeners(self, message: WriteEvents) -> None:
        for event in message.events:
            request = CaptureRequest(
                pack_id=self.pack_id,
                subpack=message.subpack,
                external_match_id=message.external_match_id,
                event=event,
                window=resolve_capture_window(event, self.capture_config),
            )
            for listener in self._listeners:
                try:
                    listener(request)
                except Exception:
                    logger.error(
                        "Event listener failed for %s on %s/%d/%s",
                        event.event_type, self.pack_id, message.subpack,
                        message.external_match_id, exc_info=True,
                    )
