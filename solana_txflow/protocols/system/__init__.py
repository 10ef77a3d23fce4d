"""
System program support: transfers, account creation and durable nonces
"""

from .constants import (
    SYSTEM_PROGRAM_ID,
    SYSVAR_CLOCK_ID,
    SYSVAR_RENT_ID,
    SYSVAR_REWARDS_ID,
    SYSVAR_STAKE_HISTORY_ID,
    SYSVAR_RECENT_BLOCKHASHES_ID,
    NONCE_ACCOUNT_LENGTH,
    LAMPORTS_PER_SOL,
    SYSTEM_INSTRUCTION_LAYOUTS,
)
from .instructions import (
    SYSTEM_PROGRAM,
    transfer,
    create_account,
    create_account_with_seed,
    assign,
    allocate,
    advance_nonce_account,
    initialize_nonce_account,
    withdraw_nonce_account,
    authorize_nonce_account,
    create_nonce_account,
    decode_system_instruction,
    is_advance_nonce,
)
from .nonce import NonceAccount

__all__ = [
    "SYSTEM_PROGRAM_ID",
    "SYSVAR_CLOCK_ID",
    "SYSVAR_RENT_ID",
    "SYSVAR_REWARDS_ID",
    "SYSVAR_STAKE_HISTORY_ID",
    "SYSVAR_RECENT_BLOCKHASHES_ID",
    "NONCE_ACCOUNT_LENGTH",
    "LAMPORTS_PER_SOL",
    "SYSTEM_INSTRUCTION_LAYOUTS",
    "SYSTEM_PROGRAM",
    "transfer",
    "create_account",
    "create_account_with_seed",
    "assign",
    "allocate",
    "advance_nonce_account",
    "initialize_nonce_account",
    "withdraw_nonce_account",
    "authorize_nonce_account",
    "create_nonce_account",
    "decode_system_instruction",
    "is_advance_nonce",
    "NonceAccount",
]
