# PATH: core/models.py
"""
Core data models for poolhunter.

LIFECYCLE CONTRACT:
- PoolCreationLog: raw log, produced per fetch, consumed immediately
- NewPoolEvent: immutable, created by the classifier, consumed once by the executor
- SwapRequest: immutable, built per trade attempt
- TradeAttempt: transient execution record, never persisted
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.constants import PoolVersion, TradeOutcome
from core.validators import normalize_address, parse_quantity


@dataclass(frozen=True)
class PoolCreationLog:
    """Raw pool-creation log entry as returned by eth_getLogs."""
    address: str
    topics: tuple[str, ...]
    block_number: int
    tx_hash: str
    data: str = "0x"
    log_index: int = 0

    @property
    def signature(self) -> Optional[str]:
        """topics[0], lower-cased, or None for anonymous logs."""
        if not self.topics:
            return None
        return self.topics[0].lower()

    @classmethod
    def from_rpc(cls, raw: Dict[str, Any]) -> "PoolCreationLog":
        """
        Build from a JSON-RPC log object.

        Raises:
            DecodeError: if the emitting address or block number is malformed
            KeyError: if a required field is missing
        """
        return cls(
            address=normalize_address(raw["address"]),
            topics=tuple(str(t) for t in raw.get("topics", [])),
            block_number=parse_quantity(raw["blockNumber"]),
            tx_hash=str(raw.get("transactionHash") or ""),
            data=str(raw.get("data") or "0x"),
            log_index=parse_quantity(raw.get("logIndex", 0)),
        )


@dataclass(frozen=True)
class NewPoolEvent:
    """A validated pool-creation event carrying one new token."""
    new_token_address: str
    pair_address: str
    block_number: int
    tx_hash: str
    detected_at: float  # monotonic seconds
    pool_version: Optional[PoolVersion] = None
    paired_token_address: Optional[str] = None
    fee: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "new_token_address": self.new_token_address,
            "pair_address": self.pair_address,
            "block_number": self.block_number,
            "tx_hash": self.tx_hash,
            "pool_version": self.pool_version.value if self.pool_version else None,
            "paired_token_address": self.paired_token_address,
            "fee": self.fee,
        }


@dataclass(frozen=True)
class TokenMetadata:
    """ERC20 metadata used for validation."""
    symbol: str
    name: str


@dataclass(frozen=True)
class TxReceipt:
    """Subset of a transaction receipt the executor cares about."""
    status: bool
    gas_used: int
    block_number: Optional[int] = None


@dataclass(frozen=True)
class SwapRequest:
    """Router swap of native currency for the new token."""
    router: str
    amount_in_wei: int
    amount_out_min: int
    path: tuple[str, ...]
    recipient: str
    deadline: int
    gas_price_wei: int
    gas_limit: int

    @property
    def token_out(self) -> str:
        return self.path[-1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "router": self.router,
            "amount_in_wei": self.amount_in_wei,
            "amount_out_min": self.amount_out_min,
            "path": list(self.path),
            "recipient": self.recipient,
            "deadline": self.deadline,
            "gas_price_wei": self.gas_price_wei,
            "gas_limit": self.gas_limit,
        }


@dataclass
class TradeAttempt:
    """Transient record of one trade execution."""
    event: NewPoolEvent
    trade_size_wei: int
    outcome: TradeOutcome = TradeOutcome.PENDING
    gas_price_wei: Optional[int] = None
    tx_hash: Optional[str] = None
    token_symbol: Optional[str] = None
    token_name: Optional[str] = None
    gas_used: Optional[int] = None
    token_balance_before: Optional[int] = None
    token_balance: Optional[int] = None
    detection_to_broadcast_ms: Optional[int] = None
    total_ms: Optional[int] = None
    error_message: Optional[str] = None
    dry_run: bool = False
    history: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def token(self) -> str:
        return self.event.new_token_address

    @property
    def is_success(self) -> bool:
        return self.outcome == TradeOutcome.CONFIRMED_SUCCESS

    @property
    def balance_delta(self) -> Optional[int]:
        if self.token_balance is None or self.token_balance_before is None:
            return None
        return self.token_balance - self.token_balance_before

    @property
    def was_broadcast(self) -> bool:
        return self.tx_hash is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event.to_dict(),
            "trade_size_wei": self.trade_size_wei,
            "outcome": self.outcome.value,
            "gas_price_wei": self.gas_price_wei,
            "tx_hash": self.tx_hash,
            "token_symbol": self.token_symbol,
            "token_name": self.token_name,
            "gas_used": self.gas_used,
            "token_balance_before": self.token_balance_before,
            "token_balance": self.token_balance,
            "balance_delta": self.balance_delta,
            "detection_to_broadcast_ms": self.detection_to_broadcast_ms,
            "total_ms": self.total_ms,
            "error_message": self.error_message,
            "dry_run": self.dry_run,
            "history": self.history,
        }
