# Area: Recovery
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches._recovery.state_machine — Recovery State Machine
==================================================================

Validates the per-match recovery transitions. One instance tracks one
match through one recovery pass; the resulting state is persisted on
the match row by the orchestrator.
"""

from typing import List, Tuple
from .enums import RecoveryState, RecoveryEvent


# Valid state transitions: {current_state: {event: next_state}}
TRANSITIONS = {
    RecoveryState.UNTRACKED: {
        RecoveryEvent.FLAG: RecoveryState.FLAGGED,
    },
    RecoveryState.FLAGGED: {
        RecoveryEvent.FLAG: RecoveryState.FLAGGED,
        RecoveryEvent.VERIFY: RecoveryState.VERIFYING,
        RecoveryEvent.UNREACHABLE: RecoveryState.FLAGGED,
    },
    RecoveryState.VERIFYING: {
        RecoveryEvent.STILL_PLAYING: RecoveryState.CONFIRMED,
        RecoveryEvent.ENDED: RecoveryState.FINALIZED,
        RecoveryEvent.UNREACHABLE: RecoveryState.FLAGGED,
        RecoveryEvent.ANSWER_REJECTED: RecoveryState.FLAGGED,
        # Daemon died mid-verification
        RecoveryEvent.FLAG: RecoveryState.FLAGGED,
    },
    RecoveryState.CONFIRMED: {
        RecoveryEvent.FLAG: RecoveryState.FLAGGED,
    },
    RecoveryState.FINALIZED: {},
}


class RecoveryStateMachine:
    """
    State machine for one match's recovery.

    Attributes:
        current_state: The current recovery state
        history: (event, new_state) pairs in the order they happened
    """

    def __init__(self, initial: RecoveryState = RecoveryState.UNTRACKED):
        self.current_state = initial
        self.history: List[Tuple[RecoveryEvent, RecoveryState]] = []

    def can_transition(self, event: RecoveryEvent) -> bool:
        """
        Check if a transition is valid from current state.

        Args:
            event: The event to check

        Returns:
            True if the transition is valid, False otherwise
        """
        return event in TRANSITIONS.get(self.current_state, {})

    def transition(self, event: RecoveryEvent) -> RecoveryState:
        """
        Execute a state transition.

        Args:
            event: The event triggering the transition

        Returns:
            The new state after transition

        Raises:
            ValueError: If the transition is not valid
        """
        if not self.can_transition(event):
            raise ValueError(
                f"Invalid transition: {event.value} from {self.current_state.value}"
            )
        self.current_state = TRANSITIONS[self.current_state][event]
        self.history.append((event, self.current_state))
        return self.current_state

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS.get(self.current_state)
