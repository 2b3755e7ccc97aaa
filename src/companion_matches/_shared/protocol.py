# Area: Shared
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches._shared.protocol — Protocol helpers for response envelopes
============================================================================

Builds the envelopes the daemon returns to gamepacks and the
timestamps stamped on timeline entries.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Protocol version
GAMEPACK_PROTOCOL = "gamepack.v1"

STATUS_OK = "ok"
STATUS_ERROR = "error"


def generate_request_id() -> str:
    """Generate unique request ID for daemon -> gamepack queries."""
    return str(uuid.uuid4())


def current_timestamp() -> str:
    """Generate ISO 8601 timestamp with timezone."""
    return datetime.now(timezone.utc).isoformat()


def build_ok_response(
    message_type: str,
    body: Optional[Dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a success envelope.

    Args:
        message_type: Type of the message being answered
        body: Extra fields merged into the envelope (e.g. timeline data)
        correlation_id: Request ID echoed back to the gamepack

    Returns:
        Response envelope dict
    """
    envelope: Dict[str, Any] = {
        "protocol": GAMEPACK_PROTOCOL,
        "status": STATUS_OK,
        "reply_to": message_type,
    }
    if body:
        envelope.update(body)
    if correlation_id is not None:
        envelope["correlation_id"] = correlation_id
    return envelope


def build_error_response(
    message_type: str,
    error: Dict[str, Any],
    correlation_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Build an error envelope from an error's ``to_dict()``."""
    envelope: Dict[str, Any] = {
        "protocol": GAMEPACK_PROTOCOL,
        "status": STATUS_ERROR,
        "reply_to": message_type,
        "error": error,
    }
    if correlation_id is not None:
        envelope["correlation_id"] = correlation_id
    return envelope
