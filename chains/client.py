"""
chains/client.py - Narrow chain access used by the pipeline.

CHAIN CLIENT CONTRACT:
======================
  current_height()                                  -> int
  get_logs(from_block, to_block, topic)             -> list[PoolCreationLog]
  get_gas_price()                                   -> int (wei)
  call(address, signature, args, output_types)      -> tuple (decoded)
  send_transaction(raw_tx)                          -> tx hash
  wait_for_receipt(tx_hash)                         -> TxReceipt
  get_transaction_count(address)                    -> int
  get_balance(address)                              -> int (wei)
  chain_id()                                        -> int

Failures:
  transport            -> InfraError
  node refuses a tx    -> BroadcastError
  receipt never lands  -> ConfirmationError(CONFIRMATION_TIMEOUT)
======================
"""

import asyncio
from typing import Any, Protocol, Sequence

from chains.abi import decode_result, encode_call
from chains.providers import RPCProvider
from core.constants import (
    DEFAULT_RECEIPT_POLL_SECONDS,
    DEFAULT_RECEIPT_TIMEOUT_SECONDS,
    ErrorCode,
)
from core.exceptions import (
    BroadcastError,
    ConfirmationError,
    DecodeError,
    InfraError,
)
from core.logging import get_logger
from core.models import PoolCreationLog, TxReceipt
from core.time import monotonic
from core.validators import parse_quantity

logger = get_logger(__name__)


class ChainClient(Protocol):
    """Async chain access consumed by scanner, executor and driver."""

    async def current_height(self) -> int: ...

    async def get_logs(
        self, from_block: int, to_block: int, topic: str
    ) -> list[PoolCreationLog]: ...

    async def get_gas_price(self) -> int: ...

    async def call(
        self,
        address: str,
        function_signature: str,
        args: Sequence[Any] = (),
        output_types: Sequence[str] = (),
    ) -> tuple: ...

    async def send_transaction(self, raw_tx: bytes) -> str: ...

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt: ...

    async def get_transaction_count(self, address: str) -> int: ...

    async def get_balance(self, address: str) -> int: ...

    async def chain_id(self) -> int: ...


def parse_receipt(raw: dict) -> TxReceipt:
    """Convert a JSON-RPC receipt object."""
    status = raw.get("status")
    block_number = raw.get("blockNumber")
    return TxReceipt(
        status=status is not None and parse_quantity(status) == 1,
        gas_used=parse_quantity(raw.get("gasUsed", 0)),
        block_number=parse_quantity(block_number) if block_number is not None else None,
    )


class RPCChainClient:
    """
    ChainClient backed by an RPCProvider.

    Usage:
        provider = RPCProvider(8453, ["http://localhost:8545"])
        client = RPCChainClient(provider)
        height = await client.current_height()
    """

    def __init__(
        self,
        provider: RPCProvider,
        receipt_timeout_seconds: float = DEFAULT_RECEIPT_TIMEOUT_SECONDS,
        receipt_poll_seconds: float = DEFAULT_RECEIPT_POLL_SECONDS,
    ):
        self.provider = provider
        self.receipt_timeout_seconds = receipt_timeout_seconds
        self.receipt_poll_seconds = receipt_poll_seconds

    async def close(self) -> None:
        await self.provider.close()

    async def chain_id(self) -> int:
        return await self.provider.get_chain_id()

    async def current_height(self) -> int:
        block_number, latency_ms = await self.provider.get_block_number()
        logger.debug(
            f"Fetched block {block_number} (latency={latency_ms}ms)"
        )
        return block_number

    async def get_logs(
        self, from_block: int, to_block: int, topic: str
    ) -> list[PoolCreationLog]:
        raw_logs = await self.provider.get_logs(from_block, to_block, [topic])

        logs = []
        for raw in raw_logs:
            try:
                logs.append(PoolCreationLog.from_rpc(raw))
            except (DecodeError, KeyError, TypeError, ValueError) as e:
                logger.debug(
                    "Skipping malformed log entry",
                    extra={"context": {"error": str(e), "block_from": from_block}},
                )
        return logs

    async def get_gas_price(self) -> int:
        gas_price, _ = await self.provider.get_gas_price()
        return gas_price

    async def call(
        self,
        address: str,
        function_signature: str,
        args: Sequence[Any] = (),
        output_types: Sequence[str] = (),
    ) -> tuple:
        data = encode_call(function_signature, args)
        response = await self.provider.eth_call(address, data)
        return decode_result(output_types, response.result)

    async def get_transaction_count(self, address: str) -> int:
        return await self.provider.get_transaction_count(address)

    async def get_balance(self, address: str) -> int:
        return await self.provider.get_balance(address)

    async def send_transaction(self, raw_tx: bytes) -> str:
        try:
            return await self.provider.send_raw_transaction("0x" + raw_tx.hex())
        except InfraError as e:
            raise BroadcastError(
                f"Transaction submission failed: {e.message}",
                details=e.details,
            ) from e

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        """
        Poll for the receipt until it lands or the timeout passes.

        Transport errors while polling are tolerated; the transaction is
        already in flight and only the timeout ends the wait.
        """
        deadline = monotonic() + self.receipt_timeout_seconds
        last_error: str | None = None

        while monotonic() < deadline:
            try:
                raw = await self.provider.get_transaction_receipt(tx_hash)
            except InfraError as e:
                last_error = str(e)
                logger.debug(
                    "Receipt poll failed",
                    extra={"context": {"tx_hash": tx_hash, "error": last_error}},
                )
                raw = None

            if raw:
                return parse_receipt(raw)

            await asyncio.sleep(self.receipt_poll_seconds)

        raise ConfirmationError(
            f"No receipt after {self.receipt_timeout_seconds}s",
            code=ErrorCode.CONFIRMATION_TIMEOUT,
            details={"tx_hash": tx_hash, "last_error": last_error},
        )
