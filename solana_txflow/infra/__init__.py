"""
Infrastructure layer: encoding, assembly, signing, RPC and submission
"""

from .layout import (
    InstructionLayout,
    encode_data,
    decode_index,
    u8,
    u16,
    u32,
    u64,
    i8,
    i16,
    i32,
    i64,
    boolean,
    pubkey,
    blob,
    bytes_,
    string,
)
from .message import (
    Message,
    MessageHeader,
    CompiledInstruction,
    compile_account_table,
    compile_message,
)
from .solana_signer import Signer, LocalSigner, SignerLike, as_signer, create_signer
from .transaction import Transaction, PACKET_DATA_SIZE, parse_wire_transaction
from .rpc import RpcClient, RpcClientConfig
from .retry import (
    CorrelationContext,
    call_with_backoff,
    backoff_delay,
    classify_error,
    get_correlation_id,
    log_with_correlation,
)
from .sender import (
    TransactionSender,
    SenderConfig,
    SubmissionTracker,
    transaction_signature,
    send_and_confirm_transaction,
    send_and_confirm_raw_transaction,
)

__all__ = [
    # Layout
    "InstructionLayout",
    "encode_data",
    "decode_index",
    "u8",
    "u16",
    "u32",
    "u64",
    "i8",
    "i16",
    "i32",
    "i64",
    "boolean",
    "pubkey",
    "blob",
    "bytes_",
    "string",
    # Message
    "Message",
    "MessageHeader",
    "CompiledInstruction",
    "compile_account_table",
    "compile_message",
    # Signing
    "Signer",
    "LocalSigner",
    "SignerLike",
    "as_signer",
    "create_signer",
    "Transaction",
    "PACKET_DATA_SIZE",
    "parse_wire_transaction",
    # RPC
    "RpcClient",
    "RpcClientConfig",
    # Retry / logging
    "CorrelationContext",
    "call_with_backoff",
    "backoff_delay",
    "classify_error",
    "get_correlation_id",
    "log_with_correlation",
    # Submission
    "TransactionSender",
    "SenderConfig",
    "SubmissionTracker",
    "transaction_signature",
    "send_and_confirm_transaction",
    "send_and_confirm_raw_transaction",
]
