"""
pipeline/context.py - Owned runtime context.

Everything the pipeline needs is built once here and passed down
explicitly. There are no module-level singletons.
"""

from dataclasses import dataclass
from typing import Optional

from chains.client import ChainClient, RPCChainClient
from chains.providers import RPCProvider
from chains.wallet import Wallet
from config import HunterConfig
from core.constants import ErrorCode
from core.exceptions import ConfigError, FatalError, InfraError
from core.logging import get_logger
from discovery.classifier import PoolClassifier
from discovery.events import signatures_by_name
from discovery.registry import AssetRegistry
from discovery.scanner import PoolScanner
from execution.executor import ExecutorConfig, TradeExecutor
from monitoring.session_stats import SessionStats

logger = get_logger(__name__)


def executor_config_from(config: HunterConfig) -> ExecutorConfig:
    return ExecutorConfig(
        router=config.router,
        wrapped_native=config.wrapped_native,
        trade_size_wei=config.trade_size_wei,
        gas_multiplier=config.gas_multiplier,
        gas_limit=config.gas_limit,
        deadline_seconds=config.deadline_seconds,
        amount_out_min=config.amount_out_min,
        dry_run=config.dry_run,
        verify_balance=config.verify_balance,
    )


@dataclass
class HunterContext:
    """Runtime components for one hunter session."""
    config: HunterConfig
    client: ChainClient
    wallet: Wallet
    registry: AssetRegistry
    scanner: PoolScanner
    classifier: PoolClassifier
    executor: TradeExecutor
    stats: SessionStats

    @classmethod
    def build(
        cls,
        config: HunterConfig,
        client: Optional[ChainClient] = None,
        wallet: Optional[Wallet] = None,
    ) -> "HunterContext":
        """
        Wire components from configuration.

        Raises:
            ConfigError: no usable RPC endpoint or unknown event signature
            FatalError: signing credential missing or unreadable
        """
        if client is None:
            provider = RPCProvider(
                chain_id=config.chain_id,
                rpc_urls=config.rpc_urls,
                timeout_seconds=config.rpc_timeout_seconds,
            )
            if not provider.rpc_urls:
                raise ConfigError("No usable RPC endpoint after placeholder resolution")
            client = RPCChainClient(
                provider,
                receipt_timeout_seconds=config.receipt_timeout_seconds,
                receipt_poll_seconds=config.receipt_poll_seconds,
            )

        if wallet is None:
            wallet = Wallet(config.private_key or "", config.chain_id)

        try:
            signatures = signatures_by_name(config.event_signatures)
        except KeyError as e:
            raise ConfigError(f"Unknown event signature: {e}") from e

        return cls(
            config=config,
            client=client,
            wallet=wallet,
            registry=AssetRegistry.from_config(config),
            scanner=PoolScanner(client, signatures),
            classifier=PoolClassifier(signatures),
            executor=TradeExecutor(client, wallet, executor_config_from(config)),
            stats=SessionStats(),
        )

    async def preflight(self) -> int:
        """
        Confirm the chain is reachable and matches the configured id.

        Logs the wallet balance and warns when it cannot cover one trade.

        Returns:
            Current chain height

        Raises:
            FatalError: chain unreachable or chain id mismatch
        """
        try:
            chain_id = await self.client.chain_id()
            height = await self.client.current_height()
            balance = await self.client.get_balance(self.wallet.address)
        except InfraError as e:
            raise FatalError(
                f"Chain unreachable: {e.message}",
                code=ErrorCode.CHAIN_UNREACHABLE,
                details=e.details,
            ) from e

        if chain_id != self.config.chain_id:
            raise FatalError(
                f"Chain id mismatch: node reports {chain_id}, configured {self.config.chain_id}",
                code=ErrorCode.CONFIG_INVALID,
            )

        logger.info(
            f"Connected to chain {chain_id} at block {height}",
            extra={"context": {
                "wallet": self.wallet.address,
                "balance_wei": balance,
                "trade_size_wei": self.config.trade_size_wei,
            }},
        )
        if balance < self.config.trade_size_wei and not self.config.dry_run:
            logger.warning(
                "Wallet balance below one trade size",
                extra={"context": {"balance_wei": balance}},
            )
        return height

    def rpc_stats(self) -> dict:
        """Per-endpoint RPC statistics, empty for clients without a provider."""
        provider = getattr(self.client, "provider", None)
        if provider is None:
            return {}
        return provider.get_stats_summary()

    async def close(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()
