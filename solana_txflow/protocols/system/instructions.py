"""
System program instruction builders

Covers account creation, transfers and the durable nonce instructions.
"""

from typing import List, Optional

from solders.pubkey import Pubkey

from .constants import (
    SYSTEM_PROGRAM_ID,
    SYSVAR_RENT_ID,
    SYSVAR_RECENT_BLOCKHASHES_ID,
    NONCE_ACCOUNT_LENGTH,
    SYSTEM_INSTRUCTION_LAYOUTS,
)
from ...types import AccountReference, Instruction
from ...errors import EncodingError
from ...infra.layout import decode_index

SYSTEM_PROGRAM = Pubkey.from_string(SYSTEM_PROGRAM_ID)
SYSVAR_RENT = Pubkey.from_string(SYSVAR_RENT_ID)
SYSVAR_RECENT_BLOCKHASHES = Pubkey.from_string(SYSVAR_RECENT_BLOCKHASHES_ID)


def _instruction(name: str, accounts: List[AccountReference], **values) -> Instruction:
    data = SYSTEM_INSTRUCTION_LAYOUTS[name].encode(values)
    return Instruction(program_id=SYSTEM_PROGRAM, accounts=tuple(accounts), data=data)


def transfer(from_pubkey: Pubkey, to_pubkey: Pubkey, lamports: int) -> Instruction:
    """Move lamports between system accounts"""
    return _instruction(
        "transfer",
        [AccountReference.signer(from_pubkey), AccountReference.writable(to_pubkey)],
        lamports=lamports,
    )


def create_account(
    from_pubkey: Pubkey,
    new_account_pubkey: Pubkey,
    lamports: int,
    space: int,
    owner: Pubkey,
) -> Instruction:
    """Create a new account funded by from_pubkey; both must sign"""
    return _instruction(
        "create_account",
        [AccountReference.signer(from_pubkey), AccountReference.signer(new_account_pubkey)],
        lamports=lamports,
        space=space,
        owner=owner,
    )


def create_account_with_seed(
    from_pubkey: Pubkey,
    new_account_pubkey: Pubkey,
    base: Pubkey,
    seed: str,
    lamports: int,
    space: int,
    owner: Pubkey,
) -> Instruction:
    """Create an account at an address derived from base + seed + owner"""
    accounts = [AccountReference.signer(from_pubkey), AccountReference.writable(new_account_pubkey)]
    if base != from_pubkey:
        accounts.append(AccountReference.signer(base, writable=False))
    return _instruction(
        "create_account_with_seed",
        accounts,
        base=base,
        seed=seed,
        lamports=lamports,
        space=space,
        owner=owner,
    )


def assign(account_pubkey: Pubkey, owner: Pubkey) -> Instruction:
    return _instruction("assign", [AccountReference.signer(account_pubkey)], owner=owner)


def allocate(account_pubkey: Pubkey, space: int) -> Instruction:
    return _instruction("allocate", [AccountReference.signer(account_pubkey)], space=space)


def advance_nonce_account(nonce_pubkey: Pubkey, authorized_pubkey: Pubkey) -> Instruction:
    """
    Consume the current nonce value

    Must be the first instruction of any transaction anchored on the nonce.
    """
    return _instruction(
        "advance_nonce_account",
        [
            AccountReference.writable(nonce_pubkey),
            AccountReference.readonly(SYSVAR_RECENT_BLOCKHASHES),
            AccountReference.signer(authorized_pubkey, writable=False),
        ],
    )


def initialize_nonce_account(nonce_pubkey: Pubkey, authorized_pubkey: Pubkey) -> Instruction:
    return _instruction(
        "initialize_nonce_account",
        [
            AccountReference.writable(nonce_pubkey),
            AccountReference.readonly(SYSVAR_RECENT_BLOCKHASHES),
            AccountReference.readonly(SYSVAR_RENT),
        ],
        authorized=authorized_pubkey,
    )


def withdraw_nonce_account(
    nonce_pubkey: Pubkey,
    authorized_pubkey: Pubkey,
    to_pubkey: Pubkey,
    lamports: int,
) -> Instruction:
    return _instruction(
        "withdraw_nonce_account",
        [
            AccountReference.writable(nonce_pubkey),
            AccountReference.writable(to_pubkey),
            AccountReference.readonly(SYSVAR_RECENT_BLOCKHASHES),
            AccountReference.readonly(SYSVAR_RENT),
            AccountReference.signer(authorized_pubkey, writable=False),
        ],
        lamports=lamports,
    )


def authorize_nonce_account(
    nonce_pubkey: Pubkey,
    authorized_pubkey: Pubkey,
    new_authorized_pubkey: Pubkey,
) -> Instruction:
    return _instruction(
        "authorize_nonce_account",
        [
            AccountReference.writable(nonce_pubkey),
            AccountReference.signer(authorized_pubkey, writable=False),
        ],
        authorized=new_authorized_pubkey,
    )


def create_nonce_account(
    from_pubkey: Pubkey,
    nonce_pubkey: Pubkey,
    authorized_pubkey: Pubkey,
    lamports: int,
) -> List[Instruction]:
    """
    Create and initialize a durable nonce account

    Args:
        from_pubkey: Funding account
        nonce_pubkey: New nonce account (must sign)
        authorized_pubkey: Nonce authority
        lamports: Rent-exempt balance for NONCE_ACCOUNT_LENGTH bytes
    """
    return [
        create_account(from_pubkey, nonce_pubkey, lamports, NONCE_ACCOUNT_LENGTH, SYSTEM_PROGRAM),
        initialize_nonce_account(nonce_pubkey, authorized_pubkey),
    ]


def decode_system_instruction(instruction: Instruction) -> dict:
    """
    Decode a system program instruction

    Returns:
        Dict with "type" (layout key) plus the decoded fields
    """
    if instruction.program_id != SYSTEM_PROGRAM:
        raise EncodingError.invalid_message(f"not a system program instruction: {instruction.program_id}")
    index = decode_index(instruction.data)
    for name, layout in SYSTEM_INSTRUCTION_LAYOUTS.items():
        if layout.index == index:
            values = layout.decode(instruction.data)
            values["type"] = name
            return values
    raise EncodingError.invalid_message(f"unknown system instruction index {index}")


def is_advance_nonce(instruction: Optional[Instruction]) -> bool:
    if instruction is None or instruction.program_id != SYSTEM_PROGRAM:
        return False
    return decode_index(instruction.data) == SYSTEM_INSTRUCTION_LAYOUTS["advance_nonce_account"].index
