"""
Unit tests for retry logic module
"""

import logging
import unittest
from unittest.mock import MagicMock

from solana_txflow.infra.retry import (
    call_with_backoff,
    backoff_delay,
    classify_error,
    CorrelationContext,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
    log_with_correlation,
)
from solana_txflow.errors import (
    ConfirmationCancelled,
    EncodingError,
    ErrorCode,
    LedgerExecutionError,
    RpcError,
    TransportError,
)


class TestClassifyError(unittest.TestCase):
    """Tests for error classification"""

    def test_transport_error_is_recoverable(self):
        error = TransportError.timeout("https://rpc.example.com", 5.0)
        is_recoverable, error_code = classify_error(error)

        self.assertTrue(is_recoverable)
        self.assertEqual(error_code, ErrorCode.RPC_TIMEOUT)

    def test_rpc_error_is_recoverable(self):
        is_recoverable, error_code = classify_error(RpcError("node busy"))
        self.assertTrue(is_recoverable)
        self.assertEqual(error_code, ErrorCode.RPC_REQUEST_FAILED)

    def test_encoding_error_not_recoverable(self):
        is_recoverable, error_code = classify_error(EncodingError.missing_field("lamports"))
        self.assertFalse(is_recoverable)
        self.assertEqual(error_code, ErrorCode.ENCODING_FAILED)

    def test_execution_error_not_recoverable(self):
        error = LedgerExecutionError.from_status("sig", 10, {"InstructionError": [0, "Custom"]})
        is_recoverable, _ = classify_error(error)
        self.assertFalse(is_recoverable)

    def test_foreign_timeout_by_keyword(self):
        is_recoverable, error_code = classify_error(Exception("Connection timeout after 30 seconds"))
        self.assertTrue(is_recoverable)
        self.assertEqual(error_code, ErrorCode.RPC_TIMEOUT)

    def test_foreign_rate_limit_by_keyword(self):
        is_recoverable, error_code = classify_error(Exception("Too many requests, rate limit exceeded"))
        self.assertTrue(is_recoverable)
        self.assertEqual(error_code, ErrorCode.RPC_RATE_LIMITED)

    def test_unknown_error_not_recoverable(self):
        is_recoverable, error_code = classify_error(Exception("Unexpected error"))
        self.assertFalse(is_recoverable)
        self.assertIsNone(error_code)


class TestBackoffDelay(unittest.TestCase):

    def test_doubles_until_cap(self):
        delays = [backoff_delay(i, 0.5, 3.0) for i in range(5)]
        self.assertEqual(delays, [0.5, 1.0, 2.0, 3.0, 3.0])


class TestCallWithBackoff(unittest.TestCase):

    def test_success_first_attempt(self):
        operation = MagicMock(return_value="ok")
        sleep = MagicMock()

        result, attempts = call_with_backoff(operation, "op", 3, 0.1, 1.0, sleep=sleep)

        self.assertEqual(result, "ok")
        self.assertEqual(attempts, 1)
        sleep.assert_not_called()

    def test_retries_transport_errors(self):
        operation = MagicMock(side_effect=[
            TransportError.timeout("e", 1.0),
            TransportError.connection_failed("e"),
            "ok",
        ])
        sleep = MagicMock()

        result, attempts = call_with_backoff(operation, "op", 5, 0.1, 1.0, sleep=sleep)

        self.assertEqual(result, "ok")
        self.assertEqual(attempts, 3)
        self.assertEqual([c.args[0] for c in sleep.call_args_list], [0.1, 0.2])

    def test_exhausted_raises_last_error(self):
        operation = MagicMock(side_effect=TransportError.timeout("e", 1.0))
        sleep = MagicMock()

        with self.assertRaises(TransportError):
            call_with_backoff(operation, "op", 3, 0.1, 1.0, sleep=sleep)

        self.assertEqual(operation.call_count, 3)
        self.assertEqual(sleep.call_count, 2)

    def test_fatal_error_not_retried(self):
        operation = MagicMock(side_effect=EncodingError("bad data"))

        with self.assertRaises(EncodingError):
            call_with_backoff(operation, "op", 5, 0.1, 1.0, sleep=MagicMock())

        self.assertEqual(operation.call_count, 1)

    def test_cancel_during_backoff(self):
        operation = MagicMock(side_effect=TransportError.timeout("e", 1.0))
        sleep = MagicMock(side_effect=ConfirmationCancelled(None))

        with self.assertRaises(ConfirmationCancelled):
            call_with_backoff(operation, "op", 5, 0.1, 1.0, sleep=sleep)

        self.assertEqual(operation.call_count, 1)

    def test_at_least_one_attempt(self):
        operation = MagicMock(return_value=1)
        _, attempts = call_with_backoff(operation, "op", 0, 0.1, 1.0, sleep=MagicMock())
        self.assertEqual(attempts, 1)


class TestCorrelationId(unittest.TestCase):

    def test_generate_unique(self):
        self.assertNotEqual(generate_correlation_id(), generate_correlation_id())
        self.assertEqual(len(generate_correlation_id()), 12)

    def test_context_sets_and_resets(self):
        self.assertIsNone(get_correlation_id())
        with CorrelationContext("tx") as cid:
            self.assertTrue(cid.startswith("tx_"))
            self.assertEqual(get_correlation_id(), cid)
        self.assertIsNone(get_correlation_id())

    def test_nested_contexts(self):
        with CorrelationContext("outer") as outer:
            with CorrelationContext("inner") as inner:
                self.assertEqual(get_correlation_id(), inner)
            self.assertEqual(get_correlation_id(), outer)

    def test_set_correlation_id(self):
        set_correlation_id("manual")
        try:
            self.assertEqual(get_correlation_id(), "manual")
        finally:
            set_correlation_id(None)

    def test_log_includes_correlation_id(self):
        with CorrelationContext("tx") as cid:
            with self.assertLogs("solana_txflow.infra.retry", level="INFO") as logs:
                log_with_correlation(logging.INFO, "hello", "send", 1, 3)
        self.assertIn(f"[{cid}] [send] [1/3] hello", logs.output[0])


if __name__ == "__main__":
    unittest.main()
