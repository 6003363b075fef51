"""
core - Core utilities and models for poolhunter.

This package contains:
- models.py: Data models (PoolCreationLog, NewPoolEvent, TradeAttempt, SwapRequest)
- constants.py: Protocol constants, enums and defaults
- exceptions.py: Typed exceptions with error codes
- validators.py: Address and topic-word decoding
- time.py: Wall-clock and monotonic helpers
- logging.py: Structured JSON logging
"""

from core.constants import (
    ErrorCode,
    PoolVersion,
    TradeOutcome,
)
from core.exceptions import (
    BroadcastError,
    ConfigError,
    ConfirmationError,
    DecodeError,
    FatalError,
    HunterError,
    InfraError,
    ValidationError,
)
from core.logging import get_logger, setup_logging
from core.models import (
    NewPoolEvent,
    PoolCreationLog,
    SwapRequest,
    TokenMetadata,
    TradeAttempt,
    TxReceipt,
)

__all__ = [
    # Constants
    "ErrorCode",
    "PoolVersion",
    "TradeOutcome",
    # Exceptions
    "BroadcastError",
    "ConfigError",
    "ConfirmationError",
    "DecodeError",
    "FatalError",
    "HunterError",
    "InfraError",
    "ValidationError",
    # Models
    "NewPoolEvent",
    "PoolCreationLog",
    "SwapRequest",
    "TokenMetadata",
    "TradeAttempt",
    "TxReceipt",
    # Logging
    "get_logger",
    "setup_logging",
]
