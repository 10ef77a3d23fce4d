"""
Error definitions for solana-txflow
"""

from .exceptions import (
    ErrorCode,
    TxFlowError,
    EncodingError,
    MissingAnchorError,
    IncompleteSignaturesError,
    RpcError,
    TransportError,
    TransactionError,
    LedgerExecutionError,
    TransactionExpiredError,
    ConfirmationTimeoutError,
    ConfirmationCancelled,
    SignerError,
    ConfigurationError,
)

__all__ = [
    "ErrorCode",
    "TxFlowError",
    "EncodingError",
    "MissingAnchorError",
    "IncompleteSignaturesError",
    "RpcError",
    "TransportError",
    "TransactionError",
    "LedgerExecutionError",
    "TransactionExpiredError",
    "ConfirmationTimeoutError",
    "ConfirmationCancelled",
    "SignerError",
    "ConfigurationError",
]
