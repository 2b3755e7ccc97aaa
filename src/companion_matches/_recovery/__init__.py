# Area: Recovery
# PRD: docs/prd-match-lifecycle.md
"""
Recovery - reconciles matches left in progress with their gamepacks.

This package handles:
- Per-match recovery states and transitions
- Gamepack channel registry
- Recovery passes (verify, confirm, finalize)
"""

from .enums import RecoveryState, RecoveryEvent
from .state_machine import RecoveryStateMachine, TRANSITIONS
from .channel import ChannelRegistry, GamepackChannel
from .orchestrator import RecoveryOrchestrator, RecoveryReport

__all__ = [
    "RecoveryState",
    "RecoveryEvent",
    "RecoveryStateMachine",
    "TRANSITIONS",
    "ChannelRegistry",
    "GamepackChannel",
    "RecoveryOrchestrator",
    "RecoveryReport",
]
