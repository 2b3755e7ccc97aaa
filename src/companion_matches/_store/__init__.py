# Area: Store
# PRD: docs/prd-match-lifecycle.md
"""
Persistence layer: SQLite-backed match summaries and timelines.
"""

from .database import init_database, get_connection, BaseRepository
from .records import MatchKey, MatchRecord, StatValue
from .repo_matches import MatchRepository
from .repo_timeline import TimelineRepository

__all__ = [
    "init_database",
    "get_connection",
    "BaseRepository",
    "MatchKey",
    "MatchRecord",
    "StatValue",
    "MatchRepository",
    "TimelineRepository",
]
