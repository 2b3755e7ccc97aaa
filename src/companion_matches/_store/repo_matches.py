# Area: Store
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches._store.repo_matches — Matches Repository
==========================================================

Repository for the matches and match_stats tables: lazy match
creation, field-wise stat upserts, completion and recovery bookkeeping.
"""

import json
import sqlite3
from typing import Any, Dict, List, Optional

from .database import BaseRepository
from .records import MatchRecord, StatValue

# Match-level columns a write may set
MATCH_FIELDS = ("played_at", "duration_secs", "result")


class MatchRepository(BaseRepository):
    """
    Repository for matches and match_stats tables.

    Handles creating, reading and updating match summary records.
    """

    def get_match_row(
        self,
        pack_id: str,
        subpack: int,
        external_match_id: str,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Get the raw match row.

        Args:
            pack_id: Owning gamepack
            subpack: Subpack index
            external_match_id: Game's native match ID
            conn: Connection of an enclosing transaction, if any

        Returns:
            Match row or None
        """
        query = """
            SELECT * FROM matches
            WHERE pack_id = ? AND subpack = ? AND external_match_id = ?
        """
        return self._execute_one(query, (pack_id, subpack, external_match_id), conn=conn)

    def get_match(
        self,
        pack_id: str,
        subpack: int,
        external_match_id: str,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[MatchRecord]:
        """Get a match with its summary stats, or None if it does not exist."""
        row = self.get_match_row(pack_id, subpack, external_match_id, conn=conn)
        if row is None:
            return None
        return MatchRecord.from_row(row, self.get_stats(row["id"], conn=conn))

    def create_if_absent(
        self,
        pack_id: str,
        subpack: int,
        external_match_id: str,
        conn: Optional[sqlite3.Connection] = None,
    ) -> bool:
        """
        Insert an in-progress match row unless one already exists.

        Returns:
            True if the row was created by this call
        """
        query = """
            INSERT OR IGNORE INTO matches
            (pack_id, subpack, external_match_id, is_in_progress)
            VALUES (?, ?, ?, 1)
        """
        with self._use(conn) as c:
            cursor = c.execute(query, (pack_id, subpack, external_match_id))
            return cursor.rowcount == 1

    def update_match_fields(
        self,
        match_id: int,
        fields: Dict[str, Any],
        conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        """
        Set match-level fields (played_at, duration_secs, result).

        Args:
            match_id: Internal match row id
            fields: Field values to set; other fields are left untouched
        """
        unknown = set(fields) - set(MATCH_FIELDS)
        if unknown:
            raise ValueError(f"Not a match field: {sorted(unknown)}")
        if not fields:
            return
        assignments = ", ".join(f"{name} = ?" for name in fields)
        query = f"UPDATE matches SET {assignments} WHERE id = ?"
        self._execute(query, (*fields.values(), match_id), conn=conn)

    def get_stats(
        self, match_id: int, conn: Optional[sqlite3.Connection] = None
    ) -> Dict[str, StatValue]:
        """Get summary stats of a match keyed by column name."""
        query = """
            SELECT column_name, value_json, source FROM match_stats
            WHERE match_id = ?
            ORDER BY column_name
        """
        rows = self._execute(query, (match_id,), fetch=True, conn=conn) or []
        return {
            row["column_name"]: StatValue(json.loads(row["value_json"]), row["source"])
            for row in rows
        }

    def upsert_stats(
        self,
        match_id: int,
        values: Dict[str, Any],
        source: str,
        conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        """
        Upsert stat fields; fields not in ``values`` are left untouched.

        Args:
            match_id: Internal match row id
            values: Column name -> JSON value
            source: Source recorded for every written field
        """
        query = """
            INSERT INTO match_stats (match_id, column_name, value_json, source)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (match_id, column_name) DO UPDATE SET
                value_json = excluded.value_json,
                source = excluded.source,
                updated_at = CURRENT_TIMESTAMP
        """
        with self._use(conn) as c:
            c.executemany(query, [
                (match_id, name, json.dumps(value), source)
                for name, value in values.items()
            ])

    def mark_complete(
        self,
        match_id: int,
        summary_source: str,
        conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        """Mark a match complete and record where its summary came from."""
        query = """
            UPDATE matches
            SET is_in_progress = 0,
                summary_source = ?,
                completed_at = COALESCE(completed_at, CURRENT_TIMESTAMP)
            WHERE id = ?
        """
        self._execute(query, (summary_source, match_id), conn=conn)

    def list_in_progress(self, pack_id: Optional[str] = None) -> List[MatchRecord]:
        """
        Get all matches still flagged in progress.

        Args:
            pack_id: Restrict to one gamepack, or None for all

        Returns:
            Match records (without stats), oldest first
        """
        if pack_id is None:
            query = "SELECT * FROM matches WHERE is_in_progress = 1 ORDER BY id"
            rows = self._execute(query, fetch=True) or []
        else:
            query = """
                SELECT * FROM matches
                WHERE is_in_progress = 1 AND pack_id = ?
                ORDER BY id
            """
            rows = self._execute(query, (pack_id,), fetch=True) or []
        return [MatchRecord.from_row(row) for row in rows]

    def set_recovery_state(
        self,
        match_id: int,
        state: str,
        verification_attempts: Optional[int] = None,
        verified_at: Optional[str] = None,
    ) -> None:
        """
        Record a recovery state transition.

        Args:
            match_id: Internal match row id
            state: New recovery state value
            verification_attempts: New attempts counter, or None to keep it
            verified_at: Timestamp of a verification attempt, or None to keep it
        """
        query = """
            UPDATE matches
            SET recovery_state = ?,
                verification_attempts = COALESCE(?, verification_attempts),
                last_verification_at = COALESCE(?, last_verification_at)
            WHERE id = ?
        """
        self._execute(query, (state, verification_attempts, verified_at, match_id))
