# PATH: tests/unit/test_driver.py
"""
Tests for ScanCursor and PipelineDriver.tick().
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakeChainClient, make_pair, make_token, make_v2_log
from core.constants import DEFAULT_KNOWN_TOKENS, UNISWAP_V2_ROUTER_BASE, WETH_BASE, TradeOutcome
from core.models import TradeAttempt
from discovery.classifier import PoolClassifier
from discovery.registry import AssetRegistry
from discovery.scanner import PoolScanner
from execution.executor import ExecutorConfig, TradeExecutor
from pipeline.driver import PipelineDriver, ScanCursor


class TestScanCursor:

    def test_pending_range(self):
        assert list(ScanCursor(100).pending(103)) == [101, 102, 103]

    def test_pending_empty_when_head_not_moved(self):
        assert list(ScanCursor(100).pending(100)) == []
        assert list(ScanCursor(100).pending(99)) == []

    def test_advance_by_one(self):
        cursor = ScanCursor(100)
        cursor.advance_to(101)
        assert cursor.block == 101

    def test_refuses_gap(self):
        with pytest.raises(ValueError):
            ScanCursor(100).advance_to(102)

    def test_refuses_backwards(self):
        with pytest.raises(ValueError):
            ScanCursor(100).advance_to(100)


def build_driver(client, executor=None, **kwargs) -> PipelineDriver:
    if executor is None:
        executor = MagicMock()
        executor.execute = AsyncMock(
            side_effect=lambda event: TradeAttempt(
                event=event, trade_size_wei=1, outcome=TradeOutcome.CONFIRMED_SUCCESS
            )
        )
    return PipelineDriver(
        client=client,
        scanner=PoolScanner(client),
        classifier=PoolClassifier(),
        registry=AssetRegistry(DEFAULT_KNOWN_TOKENS, wrapped_native=WETH_BASE),
        executor=executor,
        poll_interval_seconds=0,
        **kwargs,
    )


class TestTick:

    @pytest.mark.asyncio
    async def test_first_tick_anchors_at_head(self):
        client = FakeChainClient(height=100)
        driver = build_driver(client)

        assert await driver.tick() == 0
        assert driver.cursor.block == 100
        assert client.log_queries == []

    @pytest.mark.asyncio
    async def test_start_block_scans_from_configured_block(self):
        client = FakeChainClient(height=100)
        driver = build_driver(client, start_block=99)

        await driver.tick()

        assert driver.cursor.block == 100
        assert sorted({q[0] for q in client.log_queries}) == [99, 100]

    @pytest.mark.asyncio
    async def test_processes_blocks_in_order(self):
        client = FakeChainClient(height=100)
        driver = build_driver(client)
        await driver.tick()

        client.height = 103
        await driver.tick()

        scanned = [q[0] for q in client.log_queries]
        assert scanned == sorted(scanned)
        assert sorted(set(scanned)) == [101, 102, 103]
        assert driver.cursor.block == 103

    @pytest.mark.asyncio
    async def test_head_not_moving_is_noop(self):
        client = FakeChainClient(height=100)
        driver = build_driver(client)
        await driver.tick()
        await driver.tick()
        assert client.log_queries == []

    @pytest.mark.asyncio
    async def test_head_error_keeps_cursor(self):
        client = FakeChainClient(height=100)
        driver = build_driver(client)
        await driver.tick()

        client.height = 101
        client.fail_height = True
        assert await driver.tick() == 0
        assert driver.cursor.block == 100
        assert driver.stats.head_errors == 1

    @pytest.mark.asyncio
    async def test_scan_error_stops_without_advancing(self):
        client = FakeChainClient(height=100)
        driver = build_driver(client)
        await driver.tick()

        client.height = 103
        client.fail_logs_blocks.add(102)
        await driver.tick()

        assert driver.cursor.block == 101
        assert 103 not in {q[0] for q in client.log_queries}
        assert driver.stats.scan_errors == 1

        # Next tick retries 102 once it recovers
        client.fail_logs_blocks.clear()
        await driver.tick()
        assert driver.cursor.block == 103

    @pytest.mark.asyncio
    async def test_dispatches_new_pool_once(self):
        client = FakeChainClient(height=100)
        driver = build_driver(client)
        await driver.tick()

        client.add_log(make_v2_log(make_token(1), WETH_BASE, make_pair(1), block_number=101))
        client.height = 101
        assert await driver.tick() == 1
        attempts = await driver.drain()

        assert len(attempts) == 1
        assert attempts[0].event.new_token_address == make_token(1)
        assert driver.executor.execute.await_count == 1

        # Re-scanning the same block dispatches nothing
        assert await driver.process_block(101) == 0
        assert driver.executor.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_known_pool_not_dispatched(self):
        client = FakeChainClient(height=100)
        driver = build_driver(client)
        await driver.tick()

        client.add_log(make_v2_log(WETH_BASE, DEFAULT_KNOWN_TOKENS[0], make_pair(1), block_number=101))
        client.height = 101
        assert await driver.tick() == 0
        assert driver.stats.blocks_scanned == 1


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_semaphore_caps_in_flight_trades(self):
        client = FakeChainClient(height=100)
        running = 0
        peak = 0

        async def slow_execute(event):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return TradeAttempt(event=event, trade_size_wei=1)

        executor = MagicMock()
        executor.execute = slow_execute
        driver = build_driver(client, executor=executor, max_concurrent_trades=2)
        await driver.tick()

        for i in range(6):
            client.add_log(make_v2_log(make_token(i), WETH_BASE, make_pair(i), block_number=101, log_index=i))
        client.height = 101
        assert await driver.tick() == 6

        attempts = await driver.drain()
        assert len(attempts) == 6
        assert peak == 2

    @pytest.mark.asyncio
    async def test_crashing_trade_does_not_stop_others(self):
        client = FakeChainClient(height=100)
        crash_token = make_token(0)

        async def execute(event):
            if event.new_token_address == crash_token:
                raise RuntimeError("boom")
            return TradeAttempt(event=event, trade_size_wei=1)

        executor = MagicMock()
        executor.execute = execute
        driver = build_driver(client, executor=executor)
        await driver.tick()

        for i in range(3):
            client.add_log(make_v2_log(make_token(i), WETH_BASE, make_pair(i), block_number=101, log_index=i))
        client.height = 101
        await driver.tick()
        attempts = await driver.drain()

        assert attempts.count(None) == 1
        assert len([a for a in attempts if a is not None]) == 2
        assert driver.stats.trades_attempted == 2


class TestRunLoop:

    @pytest.mark.asyncio
    async def test_should_stop_ends_loop(self):
        client = FakeChainClient(height=100)
        driver = build_driver(client)
        calls = {"n": 0}

        def should_stop():
            calls["n"] += 1
            return calls["n"] > 3

        await driver.run(should_stop=should_stop)

        assert driver.stopping
        assert driver.cursor.block == 100

    @pytest.mark.asyncio
    async def test_zero_duration_runs_no_ticks(self):
        client = FakeChainClient(height=100)
        driver = build_driver(client)

        await driver.run(duration_seconds=0)

        assert driver.cursor is None
        assert driver.stats.head_errors == 0

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_trades(self):
        client = FakeChainClient(height=100)
        driver = build_driver(client)
        await driver.tick()
        client.add_log(make_v2_log(make_token(1), WETH_BASE, make_pair(1), block_number=101))
        client.height = 101
        await driver.tick()

        await driver.shutdown(wait_for_trades=True)

        assert driver.in_flight == 0
        assert driver.stats.trades_attempted == 1

    @pytest.mark.asyncio
    async def test_from_context_wiring(self, wallet):
        from config import HunterConfig
        from pipeline.context import HunterContext

        config = HunterConfig(
            rpc_urls=["http://localhost:8545"],
            poll_interval_seconds=0.5,
            max_concurrent_trades=3,
            start_block=50,
        )
        ctx = HunterContext.build(config, client=FakeChainClient(), wallet=wallet)
        driver = PipelineDriver.from_context(ctx)

        assert driver.cursor.block == 49
        assert driver.poll_interval_seconds == 0.5
        assert isinstance(driver.executor, TradeExecutor)
        assert driver.executor.config.router == UNISWAP_V2_ROUTER_BASE
        assert isinstance(ctx.executor.config, ExecutorConfig)
