# PATH: execution/__init__.py
"""
Execution layer.

- state_machine: trade state machine with transitions
- executor: validate -> build -> broadcast -> confirm for one event
"""

from execution.state_machine import (
    TradeState,
    TradeStateMachine,
    StateTransition,
    InvalidTransitionError,
    VALID_TRANSITIONS,
)
from execution.executor import (
    ExecutorConfig,
    TradeExecutor,
)

__all__ = [
    # State machine
    "TradeState",
    "TradeStateMachine",
    "StateTransition",
    "InvalidTransitionError",
    "VALID_TRANSITIONS",
    # Executor
    "ExecutorConfig",
    "TradeExecutor",
]
