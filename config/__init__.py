# PATH: config/__init__.py
"""
Configuration loading for poolhunter.

Sources, lowest precedence first:
1. HunterConfig defaults
2. config/hunter.yaml (or an explicit path)
3. Environment (a .env file is loaded first when present):
   HUNTER_RPC_URL, HUNTER_PRIVATE_KEY, HUNTER_TRADE_SIZE_ETH,
   HUNTER_GAS_MULTIPLIER, HUNTER_DRY_RUN

The private key is only ever read from the environment.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv
from eth_utils import to_wei

from core.constants import (
    BASE_CHAIN_ID,
    DEFAULT_AMOUNT_OUT_MIN,
    DEFAULT_DEADLINE_SECONDS,
    DEFAULT_GAS_LIMIT,
    DEFAULT_GAS_MULTIPLIER,
    DEFAULT_KNOWN_TOKENS,
    DEFAULT_MAX_CONCURRENT_TRADES,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_RECEIPT_POLL_SECONDS,
    DEFAULT_RECEIPT_TIMEOUT_SECONDS,
    DEFAULT_RPC_TIMEOUT_SECONDS,
    DEFAULT_STATS_EVERY_TICKS,
    DEFAULT_TRADE_SIZE_ETH,
    UNISWAP_V2_ROUTER_BASE,
    WETH_BASE,
)
from core.exceptions import ConfigError, DecodeError
from core.validators import normalize_address


CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = CONFIG_DIR / "hunter.yaml"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def load_yaml(filename: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filename: Name of file in config directory, or an absolute path

    Returns:
        Parsed YAML as dict
    """
    filepath = Path(filename)
    if not filepath.is_absolute() and not filepath.exists():
        filepath = CONFIG_DIR / filename
    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {filepath}")
    return data


@dataclass
class HunterConfig:
    """Full runtime configuration."""

    # Chain
    chain_id: int = BASE_CHAIN_ID
    rpc_urls: list[str] = field(default_factory=list)
    rpc_timeout_seconds: int = DEFAULT_RPC_TIMEOUT_SECONDS

    # Assets
    router: str = UNISWAP_V2_ROUTER_BASE
    wrapped_native: str = WETH_BASE
    known_tokens: list[str] = field(default_factory=lambda: list(DEFAULT_KNOWN_TOKENS))
    event_signatures: list[str] = field(default_factory=lambda: ["PairCreated", "PoolCreated"])
    max_processed_pools: Optional[int] = None

    # Trade policy
    trade_size_eth: str = DEFAULT_TRADE_SIZE_ETH
    gas_multiplier: int = DEFAULT_GAS_MULTIPLIER
    gas_limit: int = DEFAULT_GAS_LIMIT
    deadline_seconds: int = DEFAULT_DEADLINE_SECONDS
    amount_out_min: int = DEFAULT_AMOUNT_OUT_MIN
    receipt_timeout_seconds: float = DEFAULT_RECEIPT_TIMEOUT_SECONDS
    receipt_poll_seconds: float = DEFAULT_RECEIPT_POLL_SECONDS
    max_concurrent_trades: int = DEFAULT_MAX_CONCURRENT_TRADES
    dry_run: bool = False
    verify_balance: bool = True

    # Loop
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    start_block: Optional[int] = None
    stats_every_ticks: int = DEFAULT_STATS_EVERY_TICKS

    # Credential (environment only)
    private_key: Optional[str] = field(default=None, repr=False)

    @property
    def trade_size_wei(self) -> int:
        """Trade size converted from ether to wei."""
        try:
            amount = Decimal(str(self.trade_size_eth))
        except InvalidOperation as e:
            raise ConfigError(
                f"trade_size_eth is not a number: {self.trade_size_eth!r}"
            ) from e
        if amount <= 0:
            raise ConfigError("trade_size_eth must be positive")
        try:
            return int(to_wei(amount, "ether"))
        except ValueError as e:
            raise ConfigError(f"trade_size_eth out of range: {self.trade_size_eth!r}") from e

    def validate(self) -> None:
        """
        Check values that would otherwise fail deep inside the pipeline.

        Raises:
            ConfigError: on the first invalid value
        """
        if not self.rpc_urls:
            raise ConfigError("At least one RPC URL is required")
        if self.trade_size_wei <= 0:
            raise ConfigError("trade_size_eth must be positive")
        if self.gas_multiplier < 1:
            raise ConfigError("gas_multiplier must be >= 1")
        if self.gas_limit <= 0:
            raise ConfigError("gas_limit must be positive")
        if self.deadline_seconds <= 0:
            raise ConfigError("deadline_seconds must be positive")
        if self.max_concurrent_trades < 1:
            raise ConfigError("max_concurrent_trades must be >= 1")
        if self.poll_interval_seconds < 0:
            raise ConfigError("poll_interval_seconds must be >= 0")
        if self.receipt_timeout_seconds <= 0:
            raise ConfigError("receipt_timeout_seconds must be positive")
        if self.max_processed_pools is not None and self.max_processed_pools <= 0:
            raise ConfigError("max_processed_pools must be positive or null")
        if self.start_block is not None and self.start_block < 0:
            raise ConfigError("start_block must be >= 0")
        if not self.event_signatures:
            raise ConfigError("At least one event signature must be enabled")

        for label, address in (("router", self.router), ("wrapped_native", self.wrapped_native)):
            try:
                normalize_address(address)
            except DecodeError as e:
                raise ConfigError(f"{label} is not an address: {address!r}") from e
        for address in self.known_tokens:
            try:
                normalize_address(address)
            except DecodeError as e:
                raise ConfigError(f"known_tokens entry is not an address: {address!r}") from e

    def to_dict(self) -> Dict[str, Any]:
        """Loggable view. Never includes the private key."""
        return {
            "chain_id": self.chain_id,
            "rpc_endpoints": len(self.rpc_urls),
            "router": self.router,
            "wrapped_native": self.wrapped_native,
            "known_tokens": len(self.known_tokens),
            "event_signatures": list(self.event_signatures),
            "trade_size_eth": self.trade_size_eth,
            "gas_multiplier": self.gas_multiplier,
            "gas_limit": self.gas_limit,
            "deadline_seconds": self.deadline_seconds,
            "max_concurrent_trades": self.max_concurrent_trades,
            "dry_run": self.dry_run,
            "verify_balance": self.verify_balance,
            "poll_interval_seconds": self.poll_interval_seconds,
            "start_block": self.start_block,
            "max_processed_pools": self.max_processed_pools,
            "has_private_key": bool(self.private_key),
        }


def _parse_bool(name: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    value = str(raw).strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _parse_int(name: str, raw: Any) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _parse_float(name: str, raw: Any) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def _from_mapping(data: Mapping[str, Any]) -> HunterConfig:
    """Build a HunterConfig from parsed YAML."""
    if "private_key" in data:
        raise ConfigError("private_key must not be set in YAML; use HUNTER_PRIVATE_KEY")

    chain = data.get("chain", {}) or {}
    assets = data.get("assets", {}) or {}
    trade = data.get("trade", {}) or {}
    scan = data.get("scan", {}) or {}

    defaults = HunterConfig()
    rpc_urls = chain.get("rpc_urls", [])
    if isinstance(rpc_urls, str):
        rpc_urls = [rpc_urls]

    max_processed = assets.get("max_processed_pools")
    start_block = scan.get("start_block")

    return HunterConfig(
        chain_id=_parse_int("chain.chain_id", chain.get("chain_id", defaults.chain_id)),
        rpc_urls=[str(u) for u in rpc_urls],
        rpc_timeout_seconds=_parse_int(
            "chain.rpc_timeout_seconds",
            chain.get("rpc_timeout_seconds", defaults.rpc_timeout_seconds),
        ),
        router=str(assets.get("router", defaults.router)),
        wrapped_native=str(assets.get("wrapped_native", defaults.wrapped_native)),
        known_tokens=[str(t) for t in assets.get("known_tokens", defaults.known_tokens)],
        event_signatures=[str(s) for s in assets.get("event_signatures", defaults.event_signatures)],
        max_processed_pools=(
            _parse_int("assets.max_processed_pools", max_processed)
            if max_processed is not None else None
        ),
        trade_size_eth=str(trade.get("size_eth", defaults.trade_size_eth)),
        gas_multiplier=_parse_int("trade.gas_multiplier", trade.get("gas_multiplier", defaults.gas_multiplier)),
        gas_limit=_parse_int("trade.gas_limit", trade.get("gas_limit", defaults.gas_limit)),
        deadline_seconds=_parse_int(
            "trade.deadline_seconds", trade.get("deadline_seconds", defaults.deadline_seconds)
        ),
        amount_out_min=_parse_int(
            "trade.amount_out_min", trade.get("amount_out_min", defaults.amount_out_min)
        ),
        receipt_timeout_seconds=_parse_float(
            "trade.receipt_timeout_seconds",
            trade.get("receipt_timeout_seconds", defaults.receipt_timeout_seconds),
        ),
        receipt_poll_seconds=_parse_float(
            "trade.receipt_poll_seconds",
            trade.get("receipt_poll_seconds", defaults.receipt_poll_seconds),
        ),
        max_concurrent_trades=_parse_int(
            "trade.max_concurrent",
            trade.get("max_concurrent", defaults.max_concurrent_trades),
        ),
        dry_run=_parse_bool("trade.dry_run", trade.get("dry_run", defaults.dry_run)),
        verify_balance=_parse_bool(
            "trade.verify_balance", trade.get("verify_balance", defaults.verify_balance)
        ),
        poll_interval_seconds=_parse_float(
            "scan.poll_interval_seconds",
            scan.get("poll_interval_seconds", defaults.poll_interval_seconds),
        ),
        start_block=_parse_int("scan.start_block", start_block) if start_block is not None else None,
        stats_every_ticks=_parse_int(
            "scan.stats_every_ticks", scan.get("stats_every_ticks", defaults.stats_every_ticks)
        ),
    )


def apply_env_overrides(config: HunterConfig, environ: Mapping[str, str]) -> HunterConfig:
    """Apply HUNTER_* environment overrides in place and return the config."""
    if environ.get("HUNTER_RPC_URL"):
        config.rpc_urls = [u.strip() for u in environ["HUNTER_RPC_URL"].split(",") if u.strip()]
    if environ.get("HUNTER_PRIVATE_KEY"):
        config.private_key = environ["HUNTER_PRIVATE_KEY"].strip()
    if environ.get("HUNTER_TRADE_SIZE_ETH"):
        config.trade_size_eth = environ["HUNTER_TRADE_SIZE_ETH"].strip()
    if environ.get("HUNTER_GAS_MULTIPLIER"):
        config.gas_multiplier = _parse_int("HUNTER_GAS_MULTIPLIER", environ["HUNTER_GAS_MULTIPLIER"])
    if "HUNTER_DRY_RUN" in environ:
        config.dry_run = _parse_bool("HUNTER_DRY_RUN", environ["HUNTER_DRY_RUN"])
    return config


def load_hunter_config(
    config_path: Path | str | None = None,
    environ: Optional[Mapping[str, str]] = None,
    use_dotenv: bool = True,
) -> HunterConfig:
    """
    Load and validate the hunter configuration.

    Args:
        config_path: YAML path (default: config/hunter.yaml). A missing
            default file yields pure defaults; a missing explicit file fails.
        environ: Environment mapping (default: os.environ)
        use_dotenv: Load a .env file into os.environ first

    Raises:
        ConfigError: on unreadable or invalid configuration
    """
    if use_dotenv and environ is None:
        load_dotenv()

    if config_path is None:
        path = DEFAULT_CONFIG_PATH
        data = load_yaml(str(path)) if path.exists() else {}
    else:
        try:
            data = load_yaml(str(config_path))
        except FileNotFoundError as e:
            raise ConfigError(str(e)) from e

    try:
        config = _from_mapping(data)
    except AttributeError as e:
        raise ConfigError(f"Malformed config section: {e}") from e

    config = apply_env_overrides(config, os.environ if environ is None else environ)
    config.validate()
    return config
