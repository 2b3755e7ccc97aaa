# Area: Recovery
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches._recovery.enums — Recovery State Machine Enums
================================================================

Defines the per-match states and events of stale match recovery.
"""

from enum import Enum
from typing import Optional


class RecoveryState(Enum):
    """
    States of one stale-candidate match during recovery.

    State transitions:
    UNTRACKED -> FLAGGED (on FLAG)
    FLAGGED -> VERIFYING (on VERIFY)
    FLAGGED -> FLAGGED (on FLAG or UNREACHABLE)
    VERIFYING -> CONFIRMED (on STILL_PLAYING)
    VERIFYING -> FINALIZED (on ENDED)
    VERIFYING -> FLAGGED (on UNREACHABLE, ANSWER_REJECTED or FLAG)
    CONFIRMED -> FLAGGED (on FLAG, next recovery pass)
    FINALIZED is terminal.
    """
    UNTRACKED = "UNTRACKED"
    FLAGGED = "FLAGGED"
    VERIFYING = "VERIFYING"
    CONFIRMED = "CONFIRMED"
    FINALIZED = "FINALIZED"

    @classmethod
    def from_db(cls, value: Optional[str]) -> "RecoveryState":
        """Map a stored recovery_state (NULL = never examined)."""
        return cls(value) if value else cls.UNTRACKED


class RecoveryEvent(Enum):
    """
    Events that trigger recovery state transitions.

    Events are triggered by:
    - FLAG: a recovery pass found the match still in progress
    - VERIFY: IsMatchInProgressRequest sent to the owning gamepack
    - STILL_PLAYING: gamepack answered still_playing=true
    - ENDED: gamepack answered still_playing=false and completion was applied
    - UNREACHABLE: gamepack not running, timed out, or connection failed
    - ANSWER_REJECTED: the gamepack's answer could not be applied
    """
    FLAG = "FLAG"
    VERIFY = "VERIFY"
    STILL_PLAYING = "STILL_PLAYING"
    ENDED = "ENDED"
    UNREACHABLE = "UNREACHABLE"
    ANSWER_REJECTED = "ANSWER_REJECTED"
