"""
Instruction type and builder
"""

from dataclasses import dataclass
from typing import Iterable, Tuple, Union

from solders.pubkey import Pubkey

from .account import AccountReference, AccountLike, to_account_reference
from ..errors import EncodingError


@dataclass(frozen=True)
class Instruction:
    """
    A single program invocation

    Attributes:
        program_id: Program that executes the instruction
        accounts: Accounts the program reads or writes, in program order
        data: Opaque program-specific payload
    """
    program_id: Pubkey
    accounts: Tuple[AccountReference, ...] = ()
    data: bytes = b""

    def __post_init__(self):
        if self.program_id is None:
            raise EncodingError("Instruction requires a program id", field="program_id")
        seen = set()
        for account in self.accounts:
            if account.pubkey in seen:
                raise EncodingError(
                    f"Account {account.pubkey} appears more than once in one instruction",
                    field="accounts",
                )
            seen.add(account.pubkey)

    @property
    def signers(self) -> Tuple[Pubkey, ...]:
        return tuple(a.pubkey for a in self.accounts if a.is_signer)


def build_instruction(
    program_id: Union[Pubkey, str],
    accounts: Iterable[AccountLike] = (),
    data: bytes = b"",
) -> Instruction:
    """
    Build an instruction from simple types

    Args:
        program_id: Program ID (Pubkey or base58)
        accounts: AccountReference values or (pubkey, is_signer, is_writable) tuples
        data: Instruction data bytes

    Returns:
        Immutable Instruction
    """
    if program_id is None:
        raise EncodingError("Instruction requires a program id", field="program_id")
    if isinstance(program_id, str):
        program_id = Pubkey.from_string(program_id)

    return Instruction(
        program_id=program_id,
        accounts=tuple(to_account_reference(a) for a in accounts),
        data=bytes(data),
    )
