"""
Type definitions for solana-txflow
"""

from .account import AccountReference, to_account_reference
from .instruction import Instruction, build_instruction
from .anchor import Anchor, BlockhashAnchor, NonceAnchor
from .result import (
    TxStatus,
    Commitment,
    FailureKind,
    SignatureStatus,
    SubmissionOutcome,
)

__all__ = [
    "AccountReference",
    "to_account_reference",
    "Instruction",
    "build_instruction",
    "Anchor",
    "BlockhashAnchor",
    "NonceAnchor",
    "TxStatus",
    "Commitment",
    "FailureKind",
    "SignatureStatus",
    "SubmissionOutcome",
]
