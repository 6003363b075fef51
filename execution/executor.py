# PATH: execution/executor.py
"""
Trade executor: one NewPoolEvent -> one TradeAttempt.

EXECUTION CONTRACT:
===================

  execute(event) -> TradeAttempt   (never raises HunterError)

  VALIDATING   symbol() and name() on the new token.
               Empty value or any call error -> validation-rejected.
  BUILDING     SwapRequest: path [wrapped_native, token], amount_out_min,
               deadline now + deadline_seconds, gas price base * multiplier.
               Gas price unavailable -> broadcast-failed (nothing sent).
               Dry run stops here with outcome pending.
  BROADCASTING nonce (local allocator), sign, submit.
               Any error -> broadcast-failed, allocator re-syncs.
  CONFIRMING   receipt status 1 -> confirmed-success
               receipt status 0 -> confirmed-failure
               wait error/timeout/bad receipt -> confirmed-failure

Optional balance reads before broadcast and after success are
informational only.
Nonces: fetched once from the pending count, incremented locally after
each accepted send and re-fetched after any rejection. Sign and submit
run under one lock so concurrent trades never share a nonce.
No retries. Each event is attempted exactly once.
===================
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from chains.abi import encode_call
from chains.client import ChainClient
from chains.wallet import Wallet
from core.constants import (
    DEFAULT_AMOUNT_OUT_MIN,
    DEFAULT_DEADLINE_SECONDS,
    DEFAULT_GAS_LIMIT,
    DEFAULT_GAS_MULTIPLIER,
    ERC20_BALANCE_OF,
    ERC20_NAME,
    ERC20_SYMBOL,
    SWAP_EXACT_ETH_FOR_TOKENS,
    ErrorCode,
    TradeOutcome,
)
from core.exceptions import (
    BroadcastError,
    ConfigError,
    ConfirmationError,
    DecodeError,
    InfraError,
    ValidationError,
)
from core.logging import get_logger, log_error, log_trade
from core.models import NewPoolEvent, SwapRequest, TokenMetadata, TradeAttempt
from core.time import deadline_from_now, elapsed_ms, monotonic
from core.validators import normalize_address
from execution.state_machine import TradeState, TradeStateMachine

logger = get_logger(__name__)


@dataclass
class ExecutorConfig:
    """Trade execution parameters."""
    router: str
    wrapped_native: str
    trade_size_wei: int
    gas_multiplier: int = DEFAULT_GAS_MULTIPLIER
    gas_limit: int = DEFAULT_GAS_LIMIT
    deadline_seconds: int = DEFAULT_DEADLINE_SECONDS
    amount_out_min: int = DEFAULT_AMOUNT_OUT_MIN
    dry_run: bool = False
    verify_balance: bool = True

    def __post_init__(self):
        if self.trade_size_wei <= 0:
            raise ConfigError("trade_size_wei must be positive")
        if self.gas_multiplier < 1:
            raise ConfigError("gas_multiplier must be >= 1")
        if self.gas_limit <= 0:
            raise ConfigError("gas_limit must be positive")
        if self.deadline_seconds <= 0:
            raise ConfigError("deadline_seconds must be positive")
        if self.amount_out_min < 0:
            raise ConfigError("amount_out_min must be >= 0")
        self.router = normalize_address(self.router)
        self.wrapped_native = normalize_address(self.wrapped_native)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "router": self.router,
            "wrapped_native": self.wrapped_native,
            "trade_size_wei": self.trade_size_wei,
            "gas_multiplier": self.gas_multiplier,
            "gas_limit": self.gas_limit,
            "deadline_seconds": self.deadline_seconds,
            "amount_out_min": self.amount_out_min,
            "dry_run": self.dry_run,
            "verify_balance": self.verify_balance,
        }


class TradeExecutor:
    """
    Drives one trade per event through the execution state machine.

    Usage:
        executor = TradeExecutor(client, wallet, config)
        attempt = await executor.execute(event)
        if attempt.is_success: ...
    """

    def __init__(
        self,
        client: ChainClient,
        wallet: Wallet,
        config: ExecutorConfig,
        clock: Callable[[], float] = monotonic,
    ):
        self.client = client
        self.wallet = wallet
        self.config = config
        self._clock = clock
        self._nonce_lock = asyncio.Lock()
        self._next_nonce: Optional[int] = None

    async def execute(self, event: NewPoolEvent) -> TradeAttempt:
        """Run the full trade flow for one event."""
        start = self._clock()
        attempt = TradeAttempt(
            event=event,
            trade_size_wei=self.config.trade_size_wei,
            dry_run=self.config.dry_run,
        )
        machine = TradeStateMachine(trade_id=event.pair_address)

        try:
            await self._run(event, attempt, machine)
        finally:
            attempt.outcome = machine.outcome
            attempt.history = [t.to_dict() for t in machine.history]
            attempt.total_ms = elapsed_ms(start, self._clock())

        log_trade(
            logger,
            token=attempt.token,
            outcome=attempt.outcome.value,
            tx_hash=attempt.tx_hash,
            gas_used=attempt.gas_used,
            symbol=attempt.token_symbol,
            pair_address=event.pair_address,
            detection_to_broadcast_ms=attempt.detection_to_broadcast_ms,
            total_ms=attempt.total_ms,
            dry_run=attempt.dry_run,
        )
        return attempt

    async def _run(
        self,
        event: NewPoolEvent,
        attempt: TradeAttempt,
        machine: TradeStateMachine,
    ) -> None:
        token = event.new_token_address

        # VALIDATING
        try:
            metadata = await self.validate(token)
        except ValidationError as e:
            attempt.error_message = e.message
            machine.finish(TradeOutcome.VALIDATION_REJECTED, reason=e.message)
            logger.info(
                f"Token {token[:10]}... rejected: {e.message}",
                extra={"context": {"token": token, **e.details}},
            )
            return

        attempt.token_symbol = metadata.symbol
        attempt.token_name = metadata.name
        machine.transition_to(
            TradeState.BUILDING,
            reason="metadata valid",
            metadata={"symbol": metadata.symbol},
        )

        # BUILDING
        try:
            base_gas_price = await self.client.get_gas_price()
        except InfraError as e:
            attempt.error_message = e.message
            machine.finish(TradeOutcome.BROADCAST_FAILED, reason="gas price unavailable")
            log_error(logger, e.code.value, e.message, token=token)
            return

        request = self.build_request(event, base_gas_price)
        attempt.gas_price_wei = request.gas_price_wei

        if self.config.dry_run:
            machine.finish(TradeOutcome.PENDING, reason="dry run")
            logger.info(
                f"Dry run: would buy {metadata.symbol}",
                extra={"context": request.to_dict()},
            )
            return

        if self.config.verify_balance:
            attempt.token_balance_before = await self.read_balance(token)

        machine.transition_to(TradeState.BROADCASTING, reason="request built")

        # BROADCASTING
        try:
            tx_hash = await self.broadcast(request)
        except (BroadcastError, InfraError) as e:
            attempt.error_message = e.message
            machine.finish(TradeOutcome.BROADCAST_FAILED, reason=e.message)
            log_error(logger, e.code.value, e.message, token=token)
            return

        attempt.tx_hash = tx_hash
        attempt.detection_to_broadcast_ms = elapsed_ms(event.detected_at, self._clock())
        machine.transition_to(
            TradeState.CONFIRMING,
            reason="submitted",
            metadata={"tx_hash": tx_hash},
        )
        logger.info(
            f"Broadcast {tx_hash} in {attempt.detection_to_broadcast_ms}ms from detection",
            extra={"context": {"token": token, "tx_hash": tx_hash}},
        )

        # CONFIRMING
        try:
            receipt = await self.client.wait_for_receipt(tx_hash)
        except (ConfirmationError, DecodeError, InfraError) as e:
            attempt.error_message = e.message
            machine.finish(TradeOutcome.CONFIRMED_FAILURE, reason=e.message)
            log_error(logger, e.code.value, e.message, token=token, tx_hash=tx_hash)
            return

        attempt.gas_used = receipt.gas_used
        if not receipt.status:
            attempt.error_message = "Transaction reverted"
            machine.finish(
                TradeOutcome.CONFIRMED_FAILURE,
                reason="reverted",
                metadata={"gas_used": receipt.gas_used},
            )
            log_error(
                logger,
                ErrorCode.CONFIRMATION_REVERTED.value,
                "Transaction reverted",
                token=token,
                tx_hash=tx_hash,
                gas_used=receipt.gas_used,
            )
            return

        machine.finish(
            TradeOutcome.CONFIRMED_SUCCESS,
            metadata={"gas_used": receipt.gas_used},
        )

        if self.config.verify_balance:
            attempt.token_balance = await self.read_balance(token)
            delta = attempt.balance_delta
            if delta is not None and delta <= 0:
                logger.warning(
                    f"Token balance did not increase after buying {attempt.token_symbol}",
                    extra={"context": {
                        "token": token,
                        "tx_hash": tx_hash,
                        "balance_before": attempt.token_balance_before,
                        "balance_after": attempt.token_balance,
                    }},
                )

    async def validate(self, token: str) -> TokenMetadata:
        """
        Read symbol() and name().

        Raises:
            ValidationError: on call failure or empty values
        """
        try:
            (symbol,) = await self.client.call(token, ERC20_SYMBOL, (), ("string",))
            (name,) = await self.client.call(token, ERC20_NAME, (), ("string",))
        except (InfraError, DecodeError) as e:
            raise ValidationError(
                f"Metadata unreadable: {e.message}",
                details={"token": token, "cause": e.code.value},
            ) from e

        symbol = str(symbol).strip()
        name = str(name).strip()
        if not symbol or not name:
            raise ValidationError(
                "Empty symbol or name",
                details={"token": token, "symbol": symbol, "name": name},
            )
        return TokenMetadata(symbol=symbol, name=name)

    def build_request(
        self,
        event: NewPoolEvent,
        base_gas_price: int,
        current_time: Optional[int] = None,
    ) -> SwapRequest:
        """Build the swap for the event's new token."""
        return SwapRequest(
            router=self.config.router,
            amount_in_wei=self.config.trade_size_wei,
            amount_out_min=self.config.amount_out_min,
            path=(self.config.wrapped_native, event.new_token_address),
            recipient=self.wallet.address,
            deadline=deadline_from_now(self.config.deadline_seconds, current_time),
            gas_price_wei=base_gas_price * self.config.gas_multiplier,
            gas_limit=self.config.gas_limit,
        )

    async def broadcast(self, request: SwapRequest) -> str:
        """
        Encode, sign and submit the swap.

        Raises:
            BroadcastError: encoding, signing or submission failed
            InfraError: nonce lookup failed
        """
        try:
            data = encode_call(
                SWAP_EXACT_ETH_FOR_TOKENS,
                [
                    request.amount_out_min,
                    list(request.path),
                    request.recipient,
                    request.deadline,
                ],
            )
        except ValueError as e:
            raise BroadcastError(f"Cannot encode swap: {e}") from e

        async with self._nonce_lock:
            if self._next_nonce is None:
                self._next_nonce = await self.client.get_transaction_count(
                    self.wallet.address
                )
            nonce = self._next_nonce
            try:
                raw_tx = self.wallet.sign_transaction(
                    to=request.router,
                    data=data,
                    value=request.amount_in_wei,
                    gas=request.gas_limit,
                    gas_price=request.gas_price_wei,
                    nonce=nonce,
                )
                tx_hash = await self.client.send_transaction(raw_tx)
            except (BroadcastError, InfraError):
                # Re-sync from the node on the next broadcast
                self._next_nonce = None
                raise
            self._next_nonce = nonce + 1
        return tx_hash

    async def read_balance(self, token: str) -> Optional[int]:
        """balanceOf(wallet). Failures are logged and reported as None."""
        try:
            (balance,) = await self.client.call(
                token, ERC20_BALANCE_OF, (self.wallet.address,), ("uint256",)
            )
        except (InfraError, DecodeError) as e:
            logger.warning(
                "Balance check failed",
                extra={"context": {"token": token, "error": str(e)}},
            )
            return None
        return int(balance)
