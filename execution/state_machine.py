# PATH: execution/state_machine.py
"""
Trade execution state machine.

EXECUTION STATE CONTRACT:
=========================

States (TradeState):
  VALIDATING   → querying token metadata
  BUILDING     → building the swap request and gas price
  BROADCASTING → signing and submitting
  CONFIRMING   → waiting for the receipt
  DONE         → terminal, carries a TradeOutcome

Transitions:
  VALIDATING   → BUILDING      (metadata valid)
  VALIDATING   → DONE          (validation-rejected)
  BUILDING     → BROADCASTING  (request built)
  BUILDING     → DONE          (gas price unavailable / dry run)
  BROADCASTING → CONFIRMING    (submitted)
  BROADCASTING → DONE          (broadcast-failed)
  CONFIRMING   → DONE          (confirmed-success / confirmed-failure)

Every event runs through the machine strictly sequentially. There is no
cancellation once BROADCASTING has been entered.
=========================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from core.constants import TradeOutcome


class TradeState(str, Enum):
    """Trade execution states."""
    VALIDATING = "VALIDATING"
    BUILDING = "BUILDING"
    BROADCASTING = "BROADCASTING"
    CONFIRMING = "CONFIRMING"
    DONE = "DONE"


# Valid state transitions
VALID_TRANSITIONS: Dict[TradeState, List[TradeState]] = {
    TradeState.VALIDATING: [TradeState.BUILDING, TradeState.DONE],
    TradeState.BUILDING: [TradeState.BROADCASTING, TradeState.DONE],
    TradeState.BROADCASTING: [TradeState.CONFIRMING, TradeState.DONE],
    TradeState.CONFIRMING: [TradeState.DONE],
    TradeState.DONE: [],  # Terminal state
}


@dataclass
class StateTransition:
    """Record of a state transition."""
    from_state: TradeState
    to_state: TradeState
    timestamp: str = ""
    reason: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "timestamp": self.timestamp,
            "reason": self.reason,
            "metadata": self.metadata,
        }


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


@dataclass
class TradeStateMachine:
    """
    State machine for one trade execution.

    Tracks current state, final outcome and transition history.
    """
    trade_id: str
    state: TradeState = TradeState.VALIDATING
    outcome: TradeOutcome = TradeOutcome.PENDING
    history: List[StateTransition] = field(default_factory=list)
    created_at: str = ""

    def __post_init__(self):
        if not self.created_at:
            self.created_at = datetime.now(timezone.utc).isoformat()

    def can_transition_to(self, new_state: TradeState) -> bool:
        """Check if transition to new_state is valid."""
        return new_state in VALID_TRANSITIONS.get(self.state, [])

    def transition_to(
        self,
        new_state: TradeState,
        reason: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> StateTransition:
        """
        Transition to a new state.

        Raises InvalidTransitionError if transition is not valid.
        """
        if not self.can_transition_to(new_state):
            raise InvalidTransitionError(
                f"Cannot transition from {self.state.value} to {new_state.value}. "
                f"Valid transitions: {[s.value for s in VALID_TRANSITIONS.get(self.state, [])]}"
            )

        transition = StateTransition(
            from_state=self.state,
            to_state=new_state,
            reason=reason,
            metadata=metadata or {},
        )

        self.history.append(transition)
        self.state = new_state

        return transition

    def finish(
        self,
        outcome: TradeOutcome,
        reason: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> StateTransition:
        """Move to DONE and record the outcome."""
        transition = self.transition_to(
            TradeState.DONE,
            reason=reason or outcome.value,
            metadata=metadata,
        )
        self.outcome = outcome
        return transition

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return len(VALID_TRANSITIONS.get(self.state, [])) == 0

    @property
    def is_success(self) -> bool:
        """Check if trade completed successfully."""
        return self.outcome == TradeOutcome.CONFIRMED_SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "trade_id": self.trade_id,
            "state": self.state.value,
            "outcome": self.outcome.value,
            "is_terminal": self.is_terminal,
            "is_success": self.is_success,
            "created_at": self.created_at,
            "history": [t.to_dict() for t in self.history],
        }
