"""
pipeline/driver.py - Level-triggered block polling loop.

DRIVER CONTRACT:
================
  tick():
    1. height = current_height()          (transport error -> retry next tick)
    2. for n in (cursor, height], oldest first:
         scan(n)                          (error -> stop this tick, cursor stays)
         classify each log -> mark_processed -> dispatch trade task
         cursor.advance_to(n)
    3. head not moved -> no-op

  Trades run as independent tasks capped by a semaphore. A failing
  trade never stops the scan loop or the other trades of its block.
  In-flight trades are never cancelled; shutdown(wait_for_trades=True)
  waits for them.
================
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from chains.client import ChainClient
from core.constants import (
    DEFAULT_MAX_CONCURRENT_TRADES,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_STATS_EVERY_TICKS,
)
from core.exceptions import InfraError
from core.logging import get_logger, log_pool_event
from core.models import NewPoolEvent, TradeAttempt
from core.time import monotonic
from discovery.classifier import PoolClassifier
from discovery.registry import AssetRegistry
from discovery.scanner import PoolScanner
from execution.executor import TradeExecutor
from monitoring.session_stats import SessionStats

logger = get_logger(__name__)


@dataclass
class ScanCursor:
    """Highest fully processed block (inclusive)."""
    block: int

    def pending(self, height: int) -> range:
        """Blocks still to process up to and including height."""
        return range(self.block + 1, height + 1)

    def advance_to(self, block_number: int) -> None:
        """Move forward by exactly one block."""
        if block_number != self.block + 1:
            raise ValueError(
                f"Cursor at {self.block} cannot advance to {block_number}"
            )
        self.block = block_number


class PipelineDriver:
    """
    Polls the chain head and feeds new blocks through the pipeline.

    Usage:
        driver = PipelineDriver.from_context(ctx)
        await driver.run(duration_seconds=3600)
        await driver.shutdown(wait_for_trades=True)
    """

    def __init__(
        self,
        client: ChainClient,
        scanner: PoolScanner,
        classifier: PoolClassifier,
        registry: AssetRegistry,
        executor: TradeExecutor,
        stats: Optional[SessionStats] = None,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_concurrent_trades: int = DEFAULT_MAX_CONCURRENT_TRADES,
        start_block: Optional[int] = None,
        stats_every_ticks: int = DEFAULT_STATS_EVERY_TICKS,
    ):
        if max_concurrent_trades < 1:
            raise ValueError("max_concurrent_trades must be >= 1")

        self.client = client
        self.scanner = scanner
        self.classifier = classifier
        self.registry = registry
        self.executor = executor
        self.stats = stats or SessionStats()
        self.poll_interval_seconds = poll_interval_seconds
        self.stats_every_ticks = stats_every_ticks

        self.cursor: Optional[ScanCursor] = (
            ScanCursor(start_block - 1) if start_block is not None else None
        )
        self._max_concurrent_trades = max_concurrent_trades
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._tasks: set[asyncio.Task] = set()
        self._stopping = False

    @classmethod
    def from_context(cls, ctx) -> "PipelineDriver":
        """Build from a HunterContext."""
        return cls(
            client=ctx.client,
            scanner=ctx.scanner,
            classifier=ctx.classifier,
            registry=ctx.registry,
            executor=ctx.executor,
            stats=ctx.stats,
            poll_interval_seconds=ctx.config.poll_interval_seconds,
            max_concurrent_trades=ctx.config.max_concurrent_trades,
            start_block=ctx.config.start_block,
            stats_every_ticks=ctx.config.stats_every_ticks,
        )

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def stopping(self) -> bool:
        return self._stopping

    async def tick(self) -> int:
        """
        Run one poll iteration.

        Returns:
            Number of trades dispatched during this tick
        """
        try:
            height = await self.client.current_height()
        except InfraError as e:
            self.stats.record_head_error()
            logger.warning(
                "Head query failed, retrying next tick",
                extra={"context": {"error": str(e)}},
            )
            return 0

        if self.cursor is None:
            # First sight of the chain: start from the current head
            self.cursor = ScanCursor(height)
            logger.info(
                f"Watching from block {height}",
                extra={"context": {"block_number": height}},
            )
            return 0

        dispatched = 0
        for block_number in self.cursor.pending(height):
            if self._stopping:
                break
            count = await self.process_block(block_number)
            if count is None:
                break
            dispatched += count
            self.cursor.advance_to(block_number)

        return dispatched

    async def process_block(self, block_number: int) -> Optional[int]:
        """
        Scan, classify and dispatch one block. Safe to call on a block
        that was already processed; known pairs are not dispatched again.

        Returns:
            Number of trades dispatched, or None if the scan failed
        """
        result = await self.scanner.scan(block_number)
        if not result.ok:
            self.stats.record_scan_error()
            return None

        dispatched = 0
        for log in result.logs:
            event = self.classifier.classify(log, self.registry)
            if event is None:
                continue
            if not self.registry.mark_processed(event.pair_address):
                continue

            self.stats.record_pool(event)
            log_pool_event(
                logger,
                new_token=event.new_token_address,
                pair_address=event.pair_address,
                block_number=event.block_number,
                tx_hash=event.tx_hash,
                pool_version=event.pool_version.value if event.pool_version else None,
            )
            self._dispatch(event)
            dispatched += 1

        self.stats.record_block(block_number)
        return dispatched

    def _dispatch(self, event: NewPoolEvent) -> asyncio.Task:
        if self._semaphore is None:
            # Created lazily so it binds to the running loop
            self._semaphore = asyncio.Semaphore(self._max_concurrent_trades)
        task = asyncio.create_task(self._run_trade(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_trade(self, event: NewPoolEvent) -> Optional[TradeAttempt]:
        assert self._semaphore is not None
        async with self._semaphore:
            try:
                attempt = await self.executor.execute(event)
            except Exception as e:
                logger.error(
                    f"Trade task crashed: {e}",
                    extra={"context": {
                        "pair_address": event.pair_address,
                        "token": event.new_token_address,
                    }},
                    exc_info=True,
                )
                return None
        self.stats.record_trade(attempt)
        return attempt

    async def drain(self) -> list[Optional[TradeAttempt]]:
        """Wait for every in-flight trade and return their attempts."""
        if not self._tasks:
            return []
        return list(await asyncio.gather(*list(self._tasks)))

    async def run(
        self,
        duration_seconds: Optional[float] = None,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> None:
        """
        Poll until stop() is called, should_stop() turns true or the
        duration elapses.
        """
        end_time = monotonic() + duration_seconds if duration_seconds is not None else None
        ticks = 0

        while not self._stopping:
            if should_stop is not None and should_stop():
                self.stop()
                break
            if end_time is not None and monotonic() >= end_time:
                logger.info("Duration limit reached")
                break

            await self.tick()
            ticks += 1

            if self.stats_every_ticks and ticks % self.stats_every_ticks == 0:
                logger.info(
                    "Hunter progress",
                    extra={"context": self.stats.get_summary()},
                )

            if not self._stopping:
                await asyncio.sleep(self.poll_interval_seconds)

    def stop(self) -> None:
        """Stop scanning after the current block."""
        if not self._stopping:
            logger.info("Stop requested", extra={"context": {"in_flight": self.in_flight}})
        self._stopping = True

    async def shutdown(self, wait_for_trades: bool = True) -> None:
        """Stop scanning and optionally wait for in-flight trades."""
        self.stop()
        if wait_for_trades and self._tasks:
            logger.info(f"Waiting for {self.in_flight} in-flight trades")
            await self.drain()
        elif self._tasks:
            logger.warning(
                f"Leaving {self.in_flight} trades unconfirmed",
                extra={"context": {"in_flight": self.in_flight}},
            )

        logger.info(
            "Hunter session complete",
            extra={"context": {
                **self.stats.get_summary(),
                "registry": self.registry.get_summary(),
            }},
        )
