# Area: Store
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches._store.records — Match Record Dataclasses
===========================================================

Read-side views of persisted match state, built from database rows.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

# (pack_id, subpack, external_match_id)
MatchKey = Tuple[str, int, str]


@dataclass(frozen=True)
class StatValue:
    """
    One summary stat field and the source that last wrote it.

    Attributes:
        value: JSON value of the field
        source: "live" (WriteStats), "api" or "live_fallback" (SetComplete)
    """

    value: Any
    source: str


@dataclass
class MatchRecord:
    """
    Persisted state of one match.

    Attributes:
        id: Internal row id
        pack_id: Owning gamepack
        subpack: Subpack index
        external_match_id: Game's native match ID
        played_at: When the match started (ISO 8601), if known
        duration_secs: Match duration, if known
        result: "win" | "loss" | "draw" | "remake", if known
        is_in_progress: False once the match is complete (terminal)
        summary_source: "api" | "live_fallback", set on completion
        stats: Summary stats with per-field source
        recovery_state: Last recovery state, None if never recovered
        last_verification_at: When recovery last tried to verify the match
        verification_attempts: Consecutive passes without a gamepack answer
    """

    id: int
    pack_id: str
    subpack: int
    external_match_id: str
    played_at: Optional[str] = None
    duration_secs: Optional[int] = None
    result: Optional[str] = None
    is_in_progress: bool = True
    summary_source: Optional[str] = None
    stats: Dict[str, StatValue] = field(default_factory=dict)
    recovery_state: Optional[str] = None
    last_verification_at: Optional[str] = None
    verification_attempts: int = 0

    @property
    def key(self) -> MatchKey:
        return (self.pack_id, self.subpack, self.external_match_id)

    @property
    def summary_stats(self) -> Dict[str, Any]:
        """Summary stats without their sources."""
        return {name: stat.value for name, stat in self.stats.items()}

    @classmethod
    def from_row(cls, row: Dict[str, Any], stats: Optional[Dict[str, StatValue]] = None) -> "MatchRecord":
        return cls(
            id=row["id"],
            pack_id=row["pack_id"],
            subpack=row["subpack"],
            external_match_id=row["external_match_id"],
            played_at=row["played_at"],
            duration_secs=row["duration_secs"],
            result=row["result"],
            is_in_progress=bool(row["is_in_progress"]),
            summary_source=row["summary_source"],
            stats=stats or {},
            recovery_state=row["recovery_state"],
            last_verification_at=row["last_verification_at"],
            verification_attempts=row["verification_attempts"],
        )
