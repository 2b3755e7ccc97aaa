# Area: Shared Tests
# PRD: docs/prd-match-lifecycle.md
"""Tests for response envelope helpers."""

from datetime import datetime

from companion_matches._shared.protocol import (
    GAMEPACK_PROTOCOL,
    build_error_response,
    build_ok_response,
    current_timestamp,
    generate_request_id,
)


class TestBuildOkResponse:
    """Tests for build_ok_response."""

    def test_minimal(self):
        env = build_ok_response("write_stats")
        assert env == {"protocol": GAMEPACK_PROTOCOL, "status": "ok", "reply_to": "write_stats"}

    def test_body_merged(self):
        env = build_ok_response("get_match_timeline", {"found": False, "entries": []})
        assert env["found"] is False
        assert env["entries"] == []

    def test_empty_string_correlation_id_included(self):
        """Falsy but valid correlation IDs are echoed."""
        env = build_ok_response("write_stats", correlation_id="")
        assert env["correlation_id"] == ""

    def test_none_correlation_id_excluded(self):
        assert "correlation_id" not in build_ok_response("write_stats")


class TestBuildErrorResponse:
    """Tests for build_error_response."""

    def test_error_carried(self):
        error = {"code": "UNKNOWN_MATCH", "message": "No match"}
        env = build_error_response("set_complete", error, correlation_id="abc-123")
        assert env["status"] == "error"
        assert env["error"] == error
        assert env["reply_to"] == "set_complete"
        assert env["correlation_id"] == "abc-123"


class TestHelpers:
    """Tests for id and timestamp helpers."""

    def test_request_ids_unique(self):
        assert generate_request_id() != generate_request_id()

    def test_timestamp_is_aware_iso(self):
        parsed = datetime.fromisoformat(current_timestamp())
        assert parsed.tzinfo is not None
