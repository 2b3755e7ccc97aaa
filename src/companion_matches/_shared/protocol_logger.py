# Area: Shared
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches._shared.protocol_logger — Protocol message logging
=====================================================================

One colored line per gamepack message, received or sent. Disabled
unless the daemon is configured with ``protocol_log: true``.
"""

from __future__ import annotations
import sys
from datetime import datetime
from typing import Optional

# ══════════════════════════════════════════════════════════════
# ANSI COLOR CODES
# ══════════════════════════════════════════════════════════════

GREEN = "\033[32m"         # Protocol messages
ORANGE = "\033[38;5;208m"  # Recovery queries
RED = "\033[31m"           # Errors
RESET = "\033[0m"

# ══════════════════════════════════════════════════════════════
# MESSAGE TYPE → DISPLAY NAME MAPPINGS
# ══════════════════════════════════════════════════════════════

DISPLAY_NAMES = {
    "write_stats": "WRITE-STATS",
    "write_events": "WRITE-EVENTS",
    "set_complete": "SET-COMPLETE",
    "get_match_timeline": "GET-TIMELINE",
    "is_match_in_progress": "IN-PROGRESS?",
}


class ProtocolLogger:
    """Logger for gamepack protocol messages."""

    def __init__(self, enabled: bool = False):
        self.enabled = enabled

    def _now(self) -> str:
        return datetime.now().strftime("%H:%M:%S")

    def _display(self, message_type: str) -> str:
        return DISPLAY_NAMES.get(message_type, message_type or "UNKNOWN")

    def log_received(
        self,
        pack_id: str,
        message_type: str,
        external_match_id: Optional[str] = None,
        status: str = "ok",
    ) -> None:
        """Log a message received from a gamepack and how it was answered."""
        if not self.enabled:
            return
        color = GREEN if status == "ok" else RED
        line = (
            f"{color}{self._now()} | PACK: {pack_id:12} | RECEIVED | "
            f"{self._display(message_type):14} | MATCH: {external_match_id or '-':24} | "
            f"STATUS: {status}{RESET}"
        )
        print(line, file=sys.stdout)

    def log_sent(
        self,
        pack_id: str,
        message_type: str,
        external_match_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> None:
        """Log a daemon -> gamepack query, tagged with its request ID."""
        if not self.enabled:
            return
        line = (
            f"{ORANGE}{self._now()} | PACK: {pack_id:12} | SENT     | "
            f"{self._display(message_type):14} | MATCH: {external_match_id or '-':24} | "
            f"REQ: {request_id or '-'}{RESET}"
        )
        print(line, file=sys.stdout)


# Global singleton instance
_protocol_logger: Optional[ProtocolLogger] = None


def get_protocol_logger() -> ProtocolLogger:
    """Get or create the global protocol logger instance."""
    global _protocol_logger
    if _protocol_logger is None:
        _protocol_logger = ProtocolLogger()
    return _protocol_logger
