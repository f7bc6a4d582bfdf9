"""
Tests for environment-driven settings.
"""

import os
import unittest
from decimal import Decimal
from unittest import mock

from relayer.config.settings import Settings, get_settings, reload_settings


class TestSettings(unittest.TestCase):
    """Test cases for settings parsing and validation."""

    def test_defaults(self):
        """Test defaults apply when nothing is configured."""
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = Settings()

        self.assertEqual(settings.sra_order_expiration_buffer_seconds, 10)
        self.assertEqual(settings.max_order_expiration_buffer_seconds, 360)
        self.assertEqual(settings.db_orders_update_chunk_size, 300)
        self.assertEqual(settings.persistent_order_api_keys, [])
        settings.validate()

    def test_api_key_list(self):
        """Test the persistent order allow-list is parsed from a comma list."""
        env = {"SRA_PERSISTENT_ORDER_POSTING_WHITELISTED_API_KEYS": "key-1, key-2,,"}
        with mock.patch.dict(os.environ, env, clear=True):
            settings = Settings()

        self.assertEqual(settings.persistent_order_api_keys, ["key-1", "key-2"])
        self.assertEqual(settings.to_dict()["persistent_order_api_key_count"], 2)
        self.assertNotIn("persistent_order_api_keys", settings.to_dict())

    def test_order_config_settings(self):
        """Test fee recipients are lowercased and the trading fee parsed."""
        env = {"FEE_RECIPIENT_ADDRESSES": "0xAB" + "c" * 38 + ", 0x" + "1" * 40, "TRADING_FEE": "0.02"}
        with mock.patch.dict(os.environ, env, clear=True):
            settings = Settings()

        self.assertEqual(settings.fee_recipient_addresses, ["0xab" + "c" * 38, "0x" + "1" * 40])
        self.assertEqual(settings.trading_fee, Decimal("0.02"))
        settings.validate()

    def test_chain_rpc_urls(self):
        """Test RPC endpoints are parsed per chain and require a contract ABI."""
        env = {"CHAIN_RPC_URLS": "1=https://mainnet.example, 137=https://polygon.example"}
        with mock.patch.dict(os.environ, env, clear=True):
            settings = Settings()

        self.assertEqual(settings.chain_rpc_urls, {1: "https://mainnet.example", 137: "https://polygon.example"})
        with self.assertRaises(ValueError) as ctx:
            settings.validate()
        self.assertIn("POOL_CONTRACT_ABI_FILE", str(ctx.exception))

        with mock.patch.dict(os.environ, {"CHAIN_RPC_URLS": "https://no-chain.example"}, clear=True):
            with self.assertRaises(ValueError):
                Settings()

    def test_validation_lists_every_problem(self):
        """Test invalid values are all reported together."""
        env = {"REST_PORT": "0", "DB_ORDERS_UPDATE_CHUNK_SIZE": "0"}
        with mock.patch.dict(os.environ, env, clear=True):
            settings = Settings()

        with self.assertRaises(ValueError) as ctx:
            settings.validate()
        self.assertIn("REST port", str(ctx.exception))
        self.assertIn("chunk size", str(ctx.exception))

    def test_reload(self):
        """Test reload picks up environment changes."""
        with mock.patch.dict(os.environ, {"SERVICE_WORKER_THREADS": "7"}, clear=True):
            settings = reload_settings()
        self.assertEqual(settings.service_worker_threads, 7)
        self.assertIs(get_settings(), settings)
        reload_settings()


if __name__ == '__main__':
    unittest.main()
