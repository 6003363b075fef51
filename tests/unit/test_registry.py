# PATH: tests/unit/test_registry.py
"""
tests/unit/test_registry.py - AssetRegistry tests.
"""

import threading

import pytest

from core.constants import DEFAULT_KNOWN_TOKENS, WETH_BASE
from discovery.registry import AssetRegistry

USDC_CHECKSUM = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
PAIR = "0x000000000000000000000000000000000000b001"


@pytest.fixture
def registry():
    return AssetRegistry(DEFAULT_KNOWN_TOKENS, wrapped_native=WETH_BASE)


class TestExclusion:

    def test_known_token_excluded(self, registry):
        assert registry.is_excluded("0x833589fcd6edb6e08f4c7c32d4f71b54bda02913")

    def test_case_insensitive(self, registry):
        assert registry.is_excluded(USDC_CHECKSUM)
        assert registry.is_excluded(USDC_CHECKSUM.upper().replace("0X", "0x"))

    def test_unknown_token_not_excluded(self, registry):
        assert not registry.is_excluded("0x000000000000000000000000000000000000a001")

    def test_wrapped_native_always_excluded(self):
        registry = AssetRegistry([], wrapped_native=WETH_BASE)
        assert registry.is_excluded(WETH_BASE)
        assert registry.exclusion_count == 1

    def test_duplicate_wrapped_native_counted_once(self, registry):
        assert registry.exclusion_count == len(set(DEFAULT_KNOWN_TOKENS))

    def test_bad_known_token_rejected(self):
        from core.exceptions import DecodeError
        with pytest.raises(DecodeError):
            AssetRegistry(["USDC"], wrapped_native=WETH_BASE)


class TestMarkProcessed:

    def test_first_insert_true_then_false(self, registry):
        assert registry.mark_processed(PAIR) is True
        assert registry.mark_processed(PAIR) is False
        assert registry.is_processed(PAIR)

    def test_case_insensitive_dedup(self, registry):
        assert registry.mark_processed(PAIR)
        assert not registry.mark_processed(PAIR.replace("b001", "B001"))

    def test_not_processed_initially(self, registry):
        assert not registry.is_processed(PAIR)
        assert registry.processed_count == 0

    def test_unbounded_by_default(self, registry):
        for i in range(1000):
            registry.mark_processed("0x" + format(i, "040x"))
        assert registry.processed_count == 1000
        assert registry.get_summary()["evicted_pools"] == 0

    def test_bounded_evicts_oldest(self):
        registry = AssetRegistry([], wrapped_native=WETH_BASE, max_processed=2)
        first, second, third = ("0x" + format(i, "040x") for i in (1, 2, 3))
        registry.mark_processed(first)
        registry.mark_processed(second)
        registry.mark_processed(third)

        assert registry.processed_count == 2
        assert not registry.is_processed(first)
        assert registry.is_processed(second)
        assert registry.is_processed(third)
        assert registry.get_summary()["evicted_pools"] == 1

    def test_invalid_bound(self):
        with pytest.raises(ValueError):
            AssetRegistry([], wrapped_native=WETH_BASE, max_processed=0)

    def test_exactly_one_winner_under_contention(self, registry):
        """Many threads racing on one pair: exactly one sees True."""
        results = []
        results_lock = threading.Lock()
        barrier = threading.Barrier(16)

        def worker():
            barrier.wait()
            won = registry.mark_processed(PAIR)
            with results_lock:
                results.append(won)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert results.count(False) == 15


class TestSummary:

    def test_summary_keys(self, registry):
        registry.mark_processed(PAIR)
        summary = registry.get_summary()
        assert summary["processed_pools"] == 1
        assert summary["excluded_tokens"] == registry.exclusion_count
        assert summary["max_processed"] is None

    def test_from_config(self):
        from config import HunterConfig

        config = HunterConfig(rpc_urls=["http://localhost:8545"], max_processed_pools=5)
        registry = AssetRegistry.from_config(config)
        assert registry.is_excluded(WETH_BASE)
        assert registry.get_summary()["max_processed"] == 5
