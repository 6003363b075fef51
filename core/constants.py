# PATH: core/constants.py
"""
Constants for poolhunter.

Contains enums, protocol constants and configuration defaults.

PROTOCOL CONSTANTS:
- Event signature topics must match the deployed factory contracts bit-for-bit.
- Addresses are stored lower-cased; comparisons are always case-insensitive.
"""

from enum import Enum
from typing import Final

# =============================================================================
# PROTOCOL CONSTANTS (Base mainnet)
# =============================================================================

BASE_CHAIN_ID: Final[int] = 8453

# keccak256("PairCreated(address,address,address,uint256)")
PAIR_CREATED_TOPIC: Final[str] = (
    "0x0d3648bd0f6ba80134a33ba9275ac585d9d315f0ad8355cddefde31afa28d0e9"
)

# keccak256("PoolCreated(address,address,uint24,int24,address)")
POOL_CREATED_TOPIC: Final[str] = (
    "0x783cca1c0412dd0d695e784568c96da2e9c22ff989357a2e8b1d9b2b4e6b7118"
)

WETH_BASE: Final[str] = "0x4200000000000000000000000000000000000006"
UNISWAP_V2_ROUTER_BASE: Final[str] = "0x4752ba5dbc23f44d87826276bf6fd6b1c372ad24"

# Tokens that are never "new" on Base
DEFAULT_KNOWN_TOKENS: Final[tuple[str, ...]] = (
    "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913",  # USDC
    "0x4200000000000000000000000000000000000006",  # WETH
    "0x50c5725949a6f0c72e6c4a641f24049a917db0cb",  # DAI
    "0xd9aaec86b65d86f6a7b5b1b0c42ffa531710b6ca",  # USDbC
    "0x2ae3f1ec7f1f5012cfeab0185bfc7aa3cf0dec22",  # cbETH
    "0x0b3e328455c4059eeb9e3f84b5543f74e24e7e1b",  # cbBTC
    "0x940181a94a35a4569e4529a3cdfb74e38fd98631",  # AERO
)

# Topic/word layout
WORD_HEX_LENGTH: Final[int] = 64
ADDRESS_HEX_LENGTH: Final[int] = 40
MIN_CREATION_TOPICS: Final[int] = 3

# Contract function signatures
ERC20_SYMBOL: Final[str] = "symbol()"
ERC20_NAME: Final[str] = "name()"
ERC20_BALANCE_OF: Final[str] = "balanceOf(address)"
SWAP_EXACT_ETH_FOR_TOKENS: Final[str] = (
    "swapExactETHForTokensSupportingFeeOnTransferTokens(uint256,address[],address,uint256)"
)

# =============================================================================
# EXECUTION DEFAULTS
# =============================================================================

DEFAULT_TRADE_SIZE_ETH: Final[str] = "0.001"
DEFAULT_GAS_MULTIPLIER: Final[int] = 4
DEFAULT_GAS_LIMIT: Final[int] = 500_000
DEFAULT_DEADLINE_SECONDS: Final[int] = 300
DEFAULT_AMOUNT_OUT_MIN: Final[int] = 1
DEFAULT_RECEIPT_TIMEOUT_SECONDS: Final[float] = 120.0
DEFAULT_RECEIPT_POLL_SECONDS: Final[float] = 1.0
DEFAULT_MAX_CONCURRENT_TRADES: Final[int] = 4

# =============================================================================
# SCANNING DEFAULTS
# =============================================================================

DEFAULT_POLL_INTERVAL_SECONDS: Final[float] = 0.1
DEFAULT_RPC_TIMEOUT_SECONDS: Final[int] = 10
DEFAULT_STATS_EVERY_TICKS: Final[int] = 600


class PoolVersion(str, Enum):
    """Factory generation that emitted the creation event."""
    V2 = "V2"
    V3 = "V3"


class TradeOutcome(str, Enum):
    """Final (or current) outcome of a trade attempt."""
    PENDING = "pending"
    CONFIRMED_SUCCESS = "confirmed-success"
    CONFIRMED_FAILURE = "confirmed-failure"
    BROADCAST_FAILED = "broadcast-failed"
    VALIDATION_REJECTED = "validation-rejected"


class ErrorCode(str, Enum):
    """Error codes carried by every HunterError."""
    # Transport
    INFRA_RPC_ERROR = "INFRA_RPC_ERROR"
    INFRA_TIMEOUT = "INFRA_TIMEOUT"

    # Decoding
    DECODE_TOPIC_COUNT = "DECODE_TOPIC_COUNT"
    DECODE_MALFORMED = "DECODE_MALFORMED"

    # Execution
    VALIDATION_FAILED = "VALIDATION_FAILED"
    BROADCAST_REJECTED = "BROADCAST_REJECTED"
    CONFIRMATION_REVERTED = "CONFIRMATION_REVERTED"
    CONFIRMATION_TIMEOUT = "CONFIRMATION_TIMEOUT"

    # Startup
    CONFIG_INVALID = "CONFIG_INVALID"
    CREDENTIAL_INVALID = "CREDENTIAL_INVALID"
    CHAIN_UNREACHABLE = "CHAIN_UNREACHABLE"

    UNKNOWN = "UNKNOWN"
