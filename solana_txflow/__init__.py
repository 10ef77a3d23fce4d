"""
solana-txflow - Transaction construction, submission and confirmation for Solana

Pipeline:
- Layout: instruction data encoding (infra.layout)
- Instructions: program id + account references + data (types.instruction)
- Message: account table compilation and wire layout (infra.message)
- Transaction: signing and serialization (infra.transaction)
- RPC: JSON-RPC client (infra.rpc)
- Sender: submission, confirmation polling and expiry (infra.sender)
"""

from .client import LedgerClient
from .types import (
    AccountReference,
    Instruction,
    build_instruction,
    BlockhashAnchor,
    NonceAnchor,
    TxStatus,
    Commitment,
    FailureKind,
    SignatureStatus,
    SubmissionOutcome,
)
from .errors import (
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
from .infra import (
    InstructionLayout,
    Message,
    compile_message,
    compile_account_table,
    Transaction,
    Signer,
    LocalSigner,
    create_signer,
    RpcClient,
    RpcClientConfig,
    TransactionSender,
    SenderConfig,
    send_and_confirm_transaction,
    send_and_confirm_raw_transaction,
)

__all__ = [
    # Client
    "LedgerClient",
    # Types
    "AccountReference",
    "Instruction",
    "build_instruction",
    "BlockhashAnchor",
    "NonceAnchor",
    "TxStatus",
    "Commitment",
    "FailureKind",
    "SignatureStatus",
    "SubmissionOutcome",
    # Errors
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
    # Infrastructure
    "InstructionLayout",
    "Message",
    "compile_message",
    "compile_account_table",
    "Transaction",
    "Signer",
    "LocalSigner",
    "create_signer",
    "RpcClient",
    "RpcClientConfig",
    "TransactionSender",
    "SenderConfig",
    "send_and_confirm_transaction",
    "send_and_confirm_raw_transaction",
]

__version__ = "0.1.0"
