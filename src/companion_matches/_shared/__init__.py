# Area: Shared
# PRD: docs/prd-match-lifecycle.md
"""
Shared utilities used by the store, pipeline and recovery layers.

This package contains:
- Logging configuration
- Protocol helpers for response envelopes
- Protocol message logger
"""

from .logging_config import setup_logging, parse_level
from .protocol import (
    GAMEPACK_PROTOCOL,
    STATUS_OK,
    STATUS_ERROR,
    build_ok_response,
    build_error_response,
    generate_request_id,
    current_timestamp,
)
from .protocol_logger import get_protocol_logger, ProtocolLogger

__all__ = [
    "setup_logging",
    "parse_level",
    "GAMEPACK_PROTOCOL",
    "STATUS_OK",
    "STATUS_ERROR",
    "build_ok_response",
    "build_error_response",
    "generate_request_id",
    "current_timestamp",
    "get_protocol_logger",
    "ProtocolLogger",
]
