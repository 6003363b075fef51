# PATH: tests/unit/test_config.py
"""
Unit tests for configuration loading.
"""

import unittest
from pathlib import Path
import tempfile

from config import (
    CONFIG_DIR,
    DEFAULT_CONFIG_PATH,
    HunterConfig,
    apply_env_overrides,
    load_hunter_config,
    load_yaml,
)
from core.constants import WETH_BASE
from core.exceptions import ConfigError

RPC_ENV = {"HUNTER_RPC_URL": "http://localhost:8545"}


class TestConfigFiles(unittest.TestCase):
    """Tests for the bundled config file."""

    def test_config_dir_exists(self):
        self.assertTrue(CONFIG_DIR.exists())

    def test_default_yaml_exists(self):
        self.assertTrue(DEFAULT_CONFIG_PATH.exists())

    def test_load_default_yaml(self):
        data = load_yaml("hunter.yaml")
        self.assertEqual(data["chain"]["chain_id"], 8453)
        self.assertIn("PairCreated", data["assets"]["event_signatures"])

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_yaml("does_not_exist.yaml")


class TestLoadHunterConfig(unittest.TestCase):
    """Tests for load_hunter_config."""

    def _write(self, text: str) -> Path:
        tmp = tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False, encoding="utf-8")
        tmp.write(text)
        tmp.close()
        self.addCleanup(Path(tmp.name).unlink)
        return Path(tmp.name)

    def test_bundled_defaults(self):
        config = load_hunter_config(environ=RPC_ENV)
        self.assertEqual(config.chain_id, 8453)
        self.assertEqual(config.wrapped_native, WETH_BASE)
        self.assertEqual(config.trade_size_wei, 10**15)
        self.assertEqual(config.gas_multiplier, 4)
        self.assertEqual(config.gas_limit, 500_000)
        self.assertEqual(config.deadline_seconds, 300)
        self.assertEqual(config.max_concurrent_trades, 4)
        self.assertIsNone(config.max_processed_pools)
        self.assertIsNone(config.start_block)
        self.assertFalse(config.dry_run)
        self.assertEqual(config.rpc_urls, ["http://localhost:8545"])

    def test_yaml_values(self):
        path = self._write(
            "chain:\n"
            "  rpc_urls: http://node:8545\n"
            "trade:\n"
            "  size_eth: '0.05'\n"
            "  gas_multiplier: 2\n"
            "  dry_run: true\n"
            "scan:\n"
            "  start_block: 1000\n"
            "assets:\n"
            "  max_processed_pools: 10\n"
        )
        config = load_hunter_config(path, environ={})
        self.assertEqual(config.rpc_urls, ["http://node:8545"])
        self.assertEqual(config.trade_size_wei, 5 * 10**16)
        self.assertEqual(config.gas_multiplier, 2)
        self.assertTrue(config.dry_run)
        self.assertEqual(config.start_block, 1000)
        self.assertEqual(config.max_processed_pools, 10)

    def test_env_overrides(self):
        env = {
            "HUNTER_RPC_URL": "http://a:8545, http://b:8545",
            "HUNTER_PRIVATE_KEY": "0xkey",
            "HUNTER_TRADE_SIZE_ETH": "0.002",
            "HUNTER_GAS_MULTIPLIER": "6",
            "HUNTER_DRY_RUN": "yes",
        }
        config = load_hunter_config(environ=env)
        self.assertEqual(config.rpc_urls, ["http://a:8545", "http://b:8545"])
        self.assertEqual(config.private_key, "0xkey")
        self.assertEqual(config.trade_size_wei, 2 * 10**15)
        self.assertEqual(config.gas_multiplier, 6)
        self.assertTrue(config.dry_run)

    def test_private_key_not_in_repr_or_dict(self):
        config = apply_env_overrides(HunterConfig(), {"HUNTER_PRIVATE_KEY": "0xsecret"})
        self.assertNotIn("0xsecret", repr(config))
        self.assertNotIn("0xsecret", str(config.to_dict()))
        self.assertTrue(config.to_dict()["has_private_key"])

    def test_private_key_in_yaml_rejected(self):
        path = self._write("private_key: '0xabc'\n")
        with self.assertRaises(ConfigError):
            load_hunter_config(path, environ=RPC_ENV)

    def test_missing_explicit_file(self):
        with self.assertRaises(ConfigError):
            load_hunter_config("/nonexistent/hunter.yaml", environ=RPC_ENV)

    def test_no_rpc_urls_rejected(self):
        path = self._write("chain:\n  chain_id: 8453\n")
        with self.assertRaises(ConfigError):
            load_hunter_config(path, environ={})

    def test_bad_number_rejected(self):
        with self.assertRaises(ConfigError):
            load_hunter_config(environ={**RPC_ENV, "HUNTER_GAS_MULTIPLIER": "four"})

    def test_bad_bool_rejected(self):
        with self.assertRaises(ConfigError):
            load_hunter_config(environ={**RPC_ENV, "HUNTER_DRY_RUN": "maybe"})

    def test_non_positive_trade_size_rejected(self):
        with self.assertRaises(ConfigError):
            load_hunter_config(environ={**RPC_ENV, "HUNTER_TRADE_SIZE_ETH": "0"})

    def test_bad_address_rejected(self):
        path = self._write("chain:\n  rpc_urls: [http://x]\nassets:\n  router: nope\n")
        with self.assertRaises(ConfigError):
            load_hunter_config(path, environ={})


if __name__ == "__main__":
    unittest.main()
