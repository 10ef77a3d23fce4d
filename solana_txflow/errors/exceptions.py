"""
Exception definitions for solana-txflow
"""

from enum import Enum
from typing import Any, List, Optional


class ErrorCode(Enum):
    """
    Unified error codes for transaction pipeline operations

    1xxx - RPC / transport errors
    2xxx - Transaction lifecycle errors
    3xxx - Encoding / assembly errors
    6xxx - Signer errors
    9xxx - Configuration errors
    """
    # RPC errors (recoverable)
    RPC_CONNECTION_FAILED = "1001"
    RPC_TIMEOUT = "1002"
    RPC_RATE_LIMITED = "1003"
    RPC_INVALID_RESPONSE = "1004"
    RPC_HTTP_ERROR = "1005"
    RPC_REQUEST_FAILED = "1006"

    # Transaction lifecycle errors
    TX_EXECUTION_FAILED = "2001"
    TX_EXPIRED = "2002"
    TX_CONFIRMATION_TIMEOUT = "2003"
    TX_CONFIRMATION_CANCELLED = "2004"
    TX_SEND_FAILED = "2005"
    TX_INVALID_STATE = "2006"

    # Encoding / assembly errors
    ENCODING_FAILED = "3001"
    MISSING_ANCHOR = "3002"
    INCOMPLETE_SIGNATURES = "3003"
    INVALID_MESSAGE = "3004"

    # Signer errors
    SIGNER_NOT_CONFIGURED = "6001"
    SIGNER_FAILED = "6002"
    SIGNER_NOT_REQUIRED = "6003"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"


class TxFlowError(Exception):
    """
    Base exception for all solana-txflow errors

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        recoverable: Whether the error might succeed on retry
        original_error: The underlying exception if any
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"

    @property
    def should_retry(self) -> bool:
        """Indicate if the operation should be retried"""
        return self.recoverable


class EncodingError(TxFlowError):
    """
    Malformed instruction or message data - a caller bug, never retried

    Raised when:
    - A layout field is missing from the values
    - A numeric value is out of its declared range
    - A fixed-width field has the wrong length
    - Serialized bytes cannot be decoded
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        code: ErrorCode = ErrorCode.ENCODING_FAILED,
    ):
        super().__init__(
            message,
            code,
            recoverable=False,
            details={"field": field} if field else None,
        )
        self.field = field

    @classmethod
    def missing_field(cls, field: str) -> "EncodingError":
        return cls(f"Missing required field: {field}", field=field)

    @classmethod
    def out_of_range(cls, field: str, value: Any, kind: str) -> "EncodingError":
        return cls(f"Value {value!r} out of range for {kind} field '{field}'", field=field)

    @classmethod
    def invalid_message(cls, reason: str) -> "EncodingError":
        return cls(f"Invalid message: {reason}", code=ErrorCode.INVALID_MESSAGE)


class MissingAnchorError(TxFlowError):
    """
    Raised when a message is compiled or signed before a recent blockhash
    or durable nonce has been attached
    """

    def __init__(self, message: str = "Transaction has no recent blockhash or nonce anchor"):
        super().__init__(message, ErrorCode.MISSING_ANCHOR, recoverable=False)


class IncompleteSignaturesError(TxFlowError):
    """Raised when serializing a transaction with empty signer slots"""

    def __init__(self, missing: List[str]):
        super().__init__(
            f"Missing signatures for required signers: {', '.join(missing)}",
            ErrorCode.INCOMPLETE_SIGNATURES,
            recoverable=False,
            details={"missing": missing},
        )
        self.missing = missing


class RpcError(TxFlowError):
    """
    RPC-related errors - typically recoverable

    Raised when the node answers a request with a JSON-RPC error object.
    Network-level failures use the TransportError subclass.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RPC_REQUEST_FAILED,
        original_error: Optional[Exception] = None,
        endpoint: Optional[str] = None,
        rpc_error_code: Optional[int] = None,
        rpc_error_data: Any = None,
    ):
        details = {}
        if endpoint:
            details["endpoint"] = endpoint
        if rpc_error_code is not None:
            details["rpc_error_code"] = rpc_error_code
            details["rpc_error_data"] = rpc_error_data
        super().__init__(
            message,
            code,
            recoverable=True,
            original_error=original_error,
            details=details or None,
        )
        self.endpoint = endpoint
        self.rpc_error_code = rpc_error_code
        self.rpc_error_data = rpc_error_data


class TransportError(RpcError):
    """
    Network / HTTP layer failure: the request's fate is unknown

    Raised when:
    - Connection to RPC endpoint fails
    - Request times out
    - HTTP status is not 2xx (including rate limiting)
    - Response body is not valid JSON-RPC
    """

    @classmethod
    def connection_failed(cls, endpoint: str, error: Exception = None) -> "TransportError":
        return cls(
            f"Failed to connect to RPC endpoint: {endpoint}",
            ErrorCode.RPC_CONNECTION_FAILED,
            original_error=error,
            endpoint=endpoint,
        )

    @classmethod
    def timeout(cls, endpoint: str, timeout_seconds: float) -> "TransportError":
        return cls(
            f"RPC request timed out after {timeout_seconds}s",
            ErrorCode.RPC_TIMEOUT,
            endpoint=endpoint,
        )

    @classmethod
    def http_status(cls, endpoint: str, status_code: int) -> "TransportError":
        if status_code == 429:
            return cls("RPC rate limit exceeded", ErrorCode.RPC_RATE_LIMITED, endpoint=endpoint)
        return cls(f"HTTP error {status_code}", ErrorCode.RPC_HTTP_ERROR, endpoint=endpoint)

    @classmethod
    def invalid_response(cls, endpoint: str, error: Exception = None) -> "TransportError":
        return cls(
            "Invalid JSON-RPC response",
            ErrorCode.RPC_INVALID_RESPONSE,
            original_error=error,
            endpoint=endpoint,
        )


class TransactionError(TxFlowError):
    """
    Terminal transaction outcomes surfaced as exceptions

    Attributes:
        signature: Transaction signature (base58) if one was obtained
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TX_SEND_FAILED,
        signature: Optional[str] = None,
        recoverable: bool = False,
        details: Optional[dict] = None,
    ):
        merged = {"signature": signature}
        if details:
            merged.update(details)
        super().__init__(message, code, recoverable=recoverable, details=merged)
        self.signature = signature


class LedgerExecutionError(TransactionError):
    """
    The transaction landed but the on-chain program rejected it.
    Never retried: identical signed bytes fail identically.
    """

    def __init__(
        self,
        message: str,
        signature: Optional[str] = None,
        slot: Optional[int] = None,
        ledger_error: Any = None,
        logs: Optional[list] = None,
    ):
        super().__init__(
            message,
            ErrorCode.TX_EXECUTION_FAILED,
            signature=signature,
            details={"slot": slot, "ledger_error": ledger_error, "logs": logs},
        )
        self.slot = slot
        self.ledger_error = ledger_error
        self.logs = logs or []

    @classmethod
    def from_status(cls, signature: str, slot: Optional[int], err: Any) -> "LedgerExecutionError":
        return cls(
            f"Transaction {signature} failed on-chain: {err}",
            signature=signature,
            slot=slot,
            ledger_error=err,
        )

    @classmethod
    def simulation_failed(cls, err: Any, logs: list = None) -> "LedgerExecutionError":
        return cls(f"Transaction simulation failed: {err}", ledger_error=err, logs=logs)


class TransactionExpiredError(TransactionError):
    """Anchor validity window elapsed before confirmation; rebuild with a fresh anchor"""

    def __init__(self, signature: Optional[str], reason: str = "blockhash expired"):
        super().__init__(
            f"Transaction {signature} expired: {reason}",
            ErrorCode.TX_EXPIRED,
            signature=signature,
        )
        self.reason = reason


class ConfirmationTimeoutError(TransactionError):
    """No definitive answer within the wait budget; the signature may still land"""

    def __init__(self, signature: Optional[str], timeout_seconds: float):
        super().__init__(
            f"Transaction {signature} not confirmed within {timeout_seconds}s",
            ErrorCode.TX_CONFIRMATION_TIMEOUT,
            signature=signature,
            recoverable=True,
        )
        self.timeout_seconds = timeout_seconds


class ConfirmationCancelled(TransactionError):
    """The caller abandoned the wait; the ledger may still process the transaction"""

    def __init__(self, signature: Optional[str]):
        super().__init__(
            f"Confirmation wait for {signature} was cancelled",
            ErrorCode.TX_CONFIRMATION_CANCELLED,
            signature=signature,
            recoverable=True,
        )


class SignerError(TxFlowError):
    """
    Signing-related errors

    Raised when:
    - No signer configured
    - Signing operation fails
    - A keypair is offered that the message does not require
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SIGNER_FAILED,
        recoverable: bool = False,
    ):
        super().__init__(message, code, recoverable=recoverable)

    @classmethod
    def not_configured(cls) -> "SignerError":
        return cls(
            "No signer configured. Provide a keypair or SOLANA_KEYPAIR_PATH.",
            ErrorCode.SIGNER_NOT_CONFIGURED,
        )

    @classmethod
    def failed(cls, reason: str) -> "SignerError":
        return cls(f"Signing failed: {reason}", ErrorCode.SIGNER_FAILED)

    @classmethod
    def not_required(cls, pubkey: str, required: List[str]) -> "SignerError":
        return cls(
            f"Signer {pubkey} is not required by the transaction. Required signers: {required}",
            ErrorCode.SIGNER_NOT_REQUIRED,
        )


class ConfigurationError(TxFlowError):
    """
    Configuration-related errors

    Raised when:
    - Required configuration is missing
    - Configuration values are invalid
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        super().__init__(message, code, recoverable=False)

    @classmethod
    def missing(cls, param: str) -> "ConfigurationError":
        return cls(f"Missing required configuration: {param}", ErrorCode.CONFIG_MISSING)

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid configuration '{param}': {reason}", ErrorCode.CONFIG_INVALID)
