"""
companion_matches.errors — Custom exception classes
====================================================

Defines the exception hierarchy for the match lifecycle protocol.
Each exception carries a stable ``code`` used in response envelopes
sent back to gamepacks, and the context needed for structured logging.

    CompanionMatchesError
    ├── WriteError
    │   ├── UnknownColumn
    │   ├── InvalidStatValue
    │   ├── UnknownSubpack
    │   ├── InvalidEvent
    │   └── UnknownMatch
    │       └── MatchAlreadyComplete
    ├── StoreError
    ├── RecoveryTimeout
    ├── InvalidMessageError
    └── ConfigError
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional


class CompanionMatchesError(Exception):
    """Base exception for all companion_matches errors."""

    code = "INTERNAL_ERROR"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for an error response envelope."""
        return {"code": self.code, "message": str(self)}


# ══════════════════════════════════════════════════════════════
# WRITE PIPELINE ERRORS
# ══════════════════════════════════════════════════════════════


class WriteError(CompanionMatchesError):
    """Raised when a MatchDataMessage cannot be applied.

    A WriteError always means the message was rejected as a whole:
    no field of the match was changed by it.
    """

    code = "WRITE_ERROR"

    def __init__(self, subpack: int, external_match_id: str, message: str):
        self.subpack = subpack
        self.external_match_id = external_match_id
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["subpack"] = self.subpack
        data["external_match_id"] = self.external_match_id
        return data


class UnknownColumn(WriteError):
    """Raised when stat keys are not declared in the subpack's schema."""

    code = "UNKNOWN_COLUMN"

    def __init__(self, subpack: int, external_match_id: str, columns: List[str]):
        self.columns = sorted(columns)
        super().__init__(
            subpack,
            external_match_id,
            f"Unknown column(s) for subpack {subpack}: {', '.join(self.columns)}",
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["columns"] = self.columns
        return data


class InvalidStatValue(WriteError):
    """Raised when a stat value does not match its declared column type."""

    code = "INVALID_STAT_VALUE"

    def __init__(
        self,
        subpack: int,
        external_match_id: str,
        column: str,
        expected_type: str,
        value: Any,
    ):
        self.column = column
        self.expected_type = expected_type
        self.value = value
        super().__init__(
            subpack,
            external_match_id,
            f"Column '{column}' expects {expected_type}, got {type(value).__name__}",
        )


class UnknownSubpack(WriteError):
    """Raised when the pack declares no schema for the given subpack."""

    code = "UNKNOWN_SUBPACK"

    def __init__(self, subpack: int, external_match_id: str, pack_id: str):
        self.pack_id = pack_id
        super().__init__(
            subpack,
            external_match_id,
            f"Pack '{pack_id}' declares no subpack {subpack}",
        )


class InvalidEvent(WriteError):
    """Raised when an event of a WriteEvents batch cannot be converted.

    The whole batch is rejected; ``index`` points at the offending event.
    """

    code = "INVALID_EVENT"

    def __init__(self, subpack: int, external_match_id: str, index: int, reason: str):
        self.index = index
        self.reason = reason
        super().__init__(
            subpack,
            external_match_id,
            f"Event #{index} rejected: {reason}",
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["index"] = self.index
        return data


class UnknownMatch(WriteError):
    """Raised when an operation targets a match that cannot accept it."""

    code = "UNKNOWN_MATCH"

    def __init__(
        self, subpack: int, external_match_id: str, message: Optional[str] = None
    ):
        super().__init__(
            subpack,
            external_match_id,
            message or f"No match '{external_match_id}' in subpack {subpack}",
        )


class MatchAlreadyComplete(UnknownMatch):
    """Raised when stats or events arrive for a match that is already complete."""

    code = "MATCH_ALREADY_COMPLETE"

    def __init__(self, subpack: int, external_match_id: str):
        super().__init__(
            subpack,
            external_match_id,
            f"Match '{external_match_id}' in subpack {subpack} is already complete",
        )


# ══════════════════════════════════════════════════════════════
# INFRASTRUCTURE ERRORS
# ══════════════════════════════════════════════════════════════


class StoreError(CompanionMatchesError):
    """Raised when the underlying SQLite store fails.

    The write is never assumed to have happened.
    """

    code = "STORE_ERROR"


class RecoveryTimeout(CompanionMatchesError):
    """Raised when a gamepack does not answer a verification query in time."""

    code = "RECOVERY_TIMEOUT"

    def __init__(
        self,
        pack_id: str,
        subpack: int,
        external_match_id: str,
        timeout_secs: float,
        request_id: Optional[str] = None,
    ):
        self.pack_id = pack_id
        self.subpack = subpack
        self.external_match_id = external_match_id
        self.timeout_secs = timeout_secs
        self.request_id = request_id
        message = (
            f"Pack '{pack_id}' did not answer for match '{external_match_id}' "
            f"(subpack {subpack}) within {timeout_secs}s"
        )
        if request_id:
            message += f" [request {request_id}]"
        super().__init__(message)


class InvalidMessageError(CompanionMatchesError):
    """Raised when an incoming wire message does not parse."""

    code = "INVALID_MESSAGE"

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or []
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.errors:
            data["errors"] = self.errors
        return data


class ConfigError(CompanionMatchesError):
    """Raised when the configuration is missing keys or holds bad values."""

    code = "CONFIG_ERROR"
