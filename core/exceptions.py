# PATH: core/exceptions.py
"""
Typed exceptions for poolhunter.

Error taxonomy:
- InfraError: transport/RPC failure, retried on the next poll tick
- DecodeError: one malformed log, skipped
- ValidationError: token metadata unreadable, event dropped
- BroadcastError: signing/submission rejected, terminal for the event
- ConfirmationError: receipt reverted or never arrived, terminal
- FatalError: startup failure, aborts the process
"""

from typing import Optional

from core.constants import ErrorCode


class HunterError(Exception):
    """Base exception for poolhunter."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"


class InfraError(HunterError):
    """Infrastructure-related errors (RPC, timeouts)."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INFRA_RPC_ERROR,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)


class DecodeError(HunterError):
    """Log entry could not be decoded."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.DECODE_MALFORMED,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)


class ValidationError(HunterError):
    """Token failed pre-trade validation."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.VALIDATION_FAILED, details)


class BroadcastError(HunterError):
    """Transaction signing or submission was rejected."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.BROADCAST_REJECTED, details)


class ConfirmationError(HunterError):
    """Transaction reverted or its receipt never arrived."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIRMATION_REVERTED,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)


class FatalError(HunterError):
    """Unrecoverable startup error. The process must exit."""
    pass


class ConfigError(FatalError):
    """Configuration is missing or invalid."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.CONFIG_INVALID, details)
