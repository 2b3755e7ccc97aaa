# Area: Store
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches._store.repo_timeline — Timeline Store
=======================================================

Append-only, arrival-ordered log of timeline entries per match.
Only the write pipeline appends; everything else reads.
"""

import json
import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from .database import BaseRepository
from ..types import GetMatchTimelineRequest, GetMatchTimelineResponse, TimelineEntry


class TimelineRepository(BaseRepository):
    """
    Repository for the timeline_entries table.

    Entries are never updated or deleted; ``seq`` gives arrival order.
    """

    def append(
        self,
        match_id: int,
        entries: Iterable[TimelineEntry],
        conn: Optional[sqlite3.Connection] = None,
    ) -> int:
        """
        Append entries to a match timeline, atomically per call.

        Args:
            match_id: Internal match row id
            entries: Entries in the order they must be stored
            conn: Connection of an enclosing transaction, if any

        Returns:
            Number of entries appended
        """
        query = """
            INSERT INTO timeline_entries
            (match_id, entry_type, entry_key, game_time_secs, captured_at,
             data_json, trigger_fired)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """
        rows = [
            (
                match_id,
                entry.entry_type,
                entry.entry_key,
                entry.game_time_secs,
                entry.captured_at,
                json.dumps(entry.data),
                None if entry.trigger_fired is None else int(entry.trigger_fired),
            )
            for entry in entries
        ]
        if not rows:
            return 0
        if conn is not None:
            conn.executemany(query, rows)
        else:
            with self.transaction() as c:
                c.executemany(query, rows)
        return len(rows)

    def query(
        self,
        match_id: int,
        entry_types: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
        conn: Optional[sqlite3.Connection] = None,
    ) -> List[TimelineEntry]:
        """
        Get the most recent entries of a match, in chronological order.

        Args:
            match_id: Internal match row id
            entry_types: Entry types to keep (None = all types)
            limit: Keep only the latest N matching entries (None = all)

        Returns:
            Timeline entries, oldest first
        """
        types = None if entry_types is None else sorted(set(entry_types))
        if types is not None and not types:
            return []
        if limit is not None and limit <= 0:
            return []

        sql = "SELECT * FROM timeline_entries WHERE match_id = ?"
        params: list = [match_id]
        if types is not None:
            sql += f" AND entry_type IN ({', '.join('?' for _ in types)})"
            params.extend(types)
        sql += " ORDER BY seq DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        rows = self._execute(sql, tuple(params), fetch=True, conn=conn) or []
        rows.reverse()
        return [self._to_entry(row) for row in rows]

    def latest_game_time(
        self, match_id: int, conn: Optional[sqlite3.Connection] = None
    ) -> float:
        """Latest in-game time recorded for a match (0.0 if none)."""
        query = "SELECT MAX(game_time_secs) AS t FROM timeline_entries WHERE match_id = ?"
        row = self._execute_one(query, (match_id,), conn=conn)
        return float(row["t"]) if row and row["t"] is not None else 0.0

    def count(self, match_id: int) -> int:
        row = self._execute_one(
            "SELECT COUNT(*) AS n FROM timeline_entries WHERE match_id = ?", (match_id,)
        )
        return row["n"] if row else 0

    def get_timeline(
        self, pack_id: str, request: GetMatchTimelineRequest
    ) -> GetMatchTimelineResponse:
        """
        Answer a GetMatchTimelineRequest. No side effects.

        ``found`` is False only when no write ever targeted the match.
        """
        match = self._execute_one(
            """
            SELECT id FROM matches
            WHERE pack_id = ? AND subpack = ? AND external_match_id = ?
            """,
            (pack_id, request.subpack, request.external_match_id),
        )
        if match is None:
            return GetMatchTimelineResponse(found=False, entries=[])
        entries = self.query(match["id"], request.entry_types, request.limit)
        return GetMatchTimelineResponse(found=True, entries=entries)

    @staticmethod
    def _to_entry(row: Dict[str, Any]) -> TimelineEntry:
        trigger = row["trigger_fired"]
        return TimelineEntry(
            entry_type=row["entry_type"],
            entry_key=row["entry_key"],
            game_time_secs=row["game_time_secs"],
            captured_at=row["captured_at"],
            data=json.loads(row["data_json"]),
            trigger_fired=None if trigger is None else bool(trigger),
        )
