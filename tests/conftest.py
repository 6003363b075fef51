# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for poolhunter tests.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from chains.wallet import Wallet  # noqa: E402
from core.constants import (  # noqa: E402
    BASE_CHAIN_ID,
    ERC20_BALANCE_OF,
    ERC20_NAME,
    ERC20_SYMBOL,
    PAIR_CREATED_TOPIC,
    POOL_CREATED_TOPIC,
    UNISWAP_V2_ROUTER_BASE,
    WETH_BASE,
)
from core.exceptions import BroadcastError, ConfirmationError, InfraError  # noqa: E402
from core.models import PoolCreationLog, TxReceipt  # noqa: E402

# Well-known local development key; never funded on a real chain
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_WALLET_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

USDC = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
FACTORY_V2 = "0x8909dc15e40173ff4699343b6eb8132c65e18ec6"
FACTORY_V3 = "0x33128a8fc17869897dce68ed026d694621f6fdfd"


def pad_word(address_or_int) -> str:
    """32-byte 0x word holding an address or an integer."""
    if isinstance(address_or_int, int):
        return "0x" + format(address_or_int, "064x")
    return "0x" + "0" * 24 + address_or_int.lower()[2:]


def make_token(n: int) -> str:
    """Deterministic distinct token address."""
    return "0x" + format(0xA000 + n, "040x")


def make_pair(n: int) -> str:
    """Deterministic distinct pair address."""
    return "0x" + format(0xB000 + n, "040x")


def make_v2_log(
    token0: str,
    token1: str,
    pair: str,
    block_number: int = 101,
    log_index: int = 0,
    tx_hash: str = "0x" + "ab" * 32,
) -> PoolCreationLog:
    """PairCreated log as a V2 factory emits it."""
    return PoolCreationLog(
        address=FACTORY_V2,
        topics=(PAIR_CREATED_TOPIC, pad_word(token0), pad_word(token1)),
        block_number=block_number,
        tx_hash=tx_hash,
        data=pad_word(pair) + pad_word(1234)[2:],
        log_index=log_index,
    )


def make_v3_log(
    token0: str,
    token1: str,
    pool: str,
    fee: int = 3000,
    block_number: int = 101,
    log_index: int = 0,
    tx_hash: str = "0x" + "cd" * 32,
) -> PoolCreationLog:
    """PoolCreated log as a V3 factory emits it."""
    return PoolCreationLog(
        address=FACTORY_V3,
        topics=(POOL_CREATED_TOPIC, pad_word(token0), pad_word(token1), pad_word(fee)),
        block_number=block_number,
        tx_hash=tx_hash,
        data=pad_word(60) + pad_word(pool)[2:],
        log_index=log_index,
    )


class FakeChainClient:
    """
    In-memory ChainClient.

    Calls never suspend, so dispatched trade tasks run in creation order.
    """

    def __init__(self, height: int = 100, chain_id: int = BASE_CHAIN_ID):
        self.height = height
        self._chain_id = chain_id
        self.logs: dict[int, list[PoolCreationLog]] = {}
        self.metadata: dict[str, tuple[str, str]] = {}
        self.token_balances: dict[str, int] = {}
        self.native_balance = 10**18
        self.gas_price = 1_000_000
        self.receipt = TxReceipt(status=True, gas_used=150_000, block_number=None)

        self.fail_height = False
        self.fail_logs_blocks: set[int] = set()
        self.fail_gas_price = False
        self.fail_send_tokens: set[str] = set()
        self.fail_receipt = False

        self.log_queries: list[tuple[int, int, str]] = []
        self.sent: list[bytes] = []
        self._nonce = 0

    def add_log(self, log: PoolCreationLog) -> None:
        self.logs.setdefault(log.block_number, []).append(log)

    def add_token(self, address: str, symbol: str = "NEW", name: str = "New Token") -> None:
        self.metadata[address.lower()] = (symbol, name)

    async def chain_id(self) -> int:
        return self._chain_id

    async def current_height(self) -> int:
        if self.fail_height:
            raise InfraError("head unavailable")
        return self.height

    async def get_logs(self, from_block, to_block, topic):
        self.log_queries.append((from_block, to_block, topic))
        found = []
        for block in range(from_block, to_block + 1):
            if block in self.fail_logs_blocks:
                raise InfraError(f"getLogs failed for {block}")
            found.extend(
                log for log in self.logs.get(block, [])
                if log.signature == topic.lower()
            )
        return found

    async def get_gas_price(self) -> int:
        if self.fail_gas_price:
            raise InfraError("gas price unavailable")
        return self.gas_price

    async def call(self, address, function_signature, args=(), output_types=()):
        key = address.lower()
        if function_signature in (ERC20_SYMBOL, ERC20_NAME):
            if key not in self.metadata:
                raise InfraError("execution reverted")
            symbol, name = self.metadata[key]
            return (symbol,) if function_signature == ERC20_SYMBOL else (name,)
        if function_signature == ERC20_BALANCE_OF:
            return (self.token_balances.get(key, 0),)
        raise InfraError(f"unexpected call {function_signature}")

    async def get_transaction_count(self, address) -> int:
        return self._nonce

    async def get_balance(self, address) -> int:
        return self.native_balance

    async def send_transaction(self, raw_tx: bytes) -> str:
        for token in self.fail_send_tokens:
            if bytes.fromhex(token[2:]) in raw_tx:
                raise BroadcastError("insufficient funds for gas * price + value")
        self.sent.append(raw_tx)
        self._nonce += 1
        return "0x" + format(len(self.sent), "064x")

    async def wait_for_receipt(self, tx_hash) -> TxReceipt:
        if self.fail_receipt:
            raise ConfirmationError("No receipt after 120s")
        return self.receipt


class NonceRecordingWallet(Wallet):
    """Wallet that remembers the nonce of every transaction it signs."""

    def __init__(self, private_key: str, chain_id: int):
        super().__init__(private_key, chain_id)
        self.signed_nonces: dict[bytes, int] = {}

    def sign_transaction(self, **kwargs) -> bytes:
        raw_tx = super().sign_transaction(**kwargs)
        self.signed_nonces[raw_tx] = kwargs["nonce"]
        return raw_tx


class YieldingChainClient(FakeChainClient):
    """
    FakeChainClient that suspends on every call, so concurrent trade
    tasks interleave as they would against a real node. Sends must carry
    the next pending nonce or they are refused.
    """

    def __init__(self, wallet: NonceRecordingWallet, **kwargs):
        super().__init__(**kwargs)
        self.wallet = wallet

    async def current_height(self) -> int:
        await asyncio.sleep(0)
        return await super().current_height()

    async def get_logs(self, from_block, to_block, topic):
        await asyncio.sleep(0)
        return await super().get_logs(from_block, to_block, topic)

    async def get_gas_price(self) -> int:
        await asyncio.sleep(0)
        return await super().get_gas_price()

    async def call(self, address, function_signature, args=(), output_types=()):
        await asyncio.sleep(0)
        return await super().call(address, function_signature, args, output_types)

    async def get_transaction_count(self, address) -> int:
        await asyncio.sleep(0)
        return await super().get_transaction_count(address)

    async def send_transaction(self, raw_tx: bytes) -> str:
        await asyncio.sleep(0)
        nonce = self.wallet.signed_nonces[raw_tx]
        if nonce < self._nonce:
            raise BroadcastError("nonce too low")
        if nonce > self._nonce:
            raise BroadcastError("nonce too high")
        return await super().send_transaction(raw_tx)

    async def wait_for_receipt(self, tx_hash) -> TxReceipt:
        await asyncio.sleep(0)
        return await super().wait_for_receipt(tx_hash)


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


@pytest.fixture
def fake_client():
    return FakeChainClient()


@pytest.fixture
def wallet():
    return Wallet(TEST_PRIVATE_KEY, BASE_CHAIN_ID)


@pytest.fixture
def router():
    return UNISWAP_V2_ROUTER_BASE


@pytest.fixture
def weth():
    return WETH_BASE
