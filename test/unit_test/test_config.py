"""
Unit tests for configuration loading and logging setup
"""

import logging
import unittest
from unittest.mock import patch

from solana_txflow.config import (
    Config,
    LoggingConfig,
    TxConfig,
    RpcConfig,
    setup_logging,
)


class TestEnvironmentConfig(unittest.TestCase):

    def test_tx_defaults(self):
        with patch.dict("os.environ", {}, clear=True):
            tx = TxConfig()
        self.assertEqual(tx.max_send_attempts, 5)
        self.assertEqual(tx.commitment, "confirmed")
        self.assertEqual(tx.confirmed_depth, 1)
        self.assertEqual(tx.finalized_depth, 32)
        self.assertFalse(tx.skip_preflight)

    def test_env_overrides(self):
        env = {
            "TX_MAX_SEND_ATTEMPTS": "7",
            "TX_CONFIRMATION_TIMEOUT": "12.5",
            "TX_SKIP_PREFLIGHT": "true",
            "TX_FINALIZED_DEPTH": "64",
            "SOLANA_RPC_URL": "https://rpc.example.com",
        }
        with patch.dict("os.environ", env, clear=True):
            config = Config()
        self.assertEqual(config.tx.max_send_attempts, 7)
        self.assertEqual(config.tx.confirmation_timeout, 12.5)
        self.assertTrue(config.tx.skip_preflight)
        self.assertEqual(config.tx.finalized_depth, 64)
        self.assertEqual(config.rpc.url, "https://rpc.example.com")

    def test_invalid_number_falls_back(self):
        with patch.dict("os.environ", {"RPC_TIMEOUT_SECONDS": "soon"}, clear=True):
            with self.assertLogs("solana_txflow.config", level="WARNING"):
                rpc = RpcConfig()
        self.assertEqual(rpc.timeout_seconds, 10.0)


class TestSetupLogging(unittest.TestCase):

    def test_console_only(self):
        logger = setup_logging(
            LoggingConfig(log_file="", log_level="DEBUG", console_output=True),
            logger_name="solana_txflow_test",
        )
        self.assertEqual(logger.level, logging.DEBUG)
        self.assertEqual(len(logger.handlers), 1)

    def test_file_handler(self):
        import tempfile
        import os

        with tempfile.TemporaryDirectory() as tmp:
            log_file = os.path.join(tmp, "nested", "txflow.log")
            logger = setup_logging(
                LoggingConfig(log_file=log_file, log_level="INFO", console_output=False),
                logger_name="solana_txflow_file_test",
            )
            logger.info("hello")
            for handler in logger.handlers[:]:
                handler.close()
                logger.removeHandler(handler)
            self.assertTrue(os.path.exists(log_file))


if __name__ == "__main__":
    unittest.main()
