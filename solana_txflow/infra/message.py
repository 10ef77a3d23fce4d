"""
Transaction message assembly

Compiles instructions into the signable message:
- Fee payer forced to account index 0 as signer + writable
- Duplicate account references merged (flags OR-ed)
- Accounts grouped: signer/writable, signer/readonly,
  non-signer/writable, non-signer/readonly (first-seen order in each)
- Instructions re-expressed as indices into the account table

The account table is ordered here; wire bytes are produced and parsed by
solders' legacy Message.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from solders.errors import BincodeError
from solders.hash import Hash
from solders.instruction import CompiledInstruction as SoldersCompiledInstruction
from solders.message import Message as SoldersMessage
from solders.message import MessageHeader as SoldersMessageHeader
from solders.pubkey import Pubkey

from ..types import AccountReference, Instruction, BlockhashAnchor, NonceAnchor
from ..errors import EncodingError, MissingAnchorError

logger = logging.getLogger(__name__)

# Largest account index a compiled instruction can express (u8)
MAX_ACCOUNTS = 256

AnchorLike = Union[BlockhashAnchor, NonceAnchor, Hash, str]


def anchor_hash(anchor: AnchorLike) -> Hash:
    """Extract the 32-byte hash committed to by an anchor"""
    if isinstance(anchor, (BlockhashAnchor, NonceAnchor)):
        return anchor.value
    if isinstance(anchor, str):
        return Hash.from_string(anchor)
    if isinstance(anchor, Hash):
        return anchor
    raise EncodingError(f"Unsupported anchor type: {type(anchor).__name__}")


@dataclass(frozen=True)
class MessageHeader:
    """Signer / readonly account counts"""
    num_required_signatures: int
    num_readonly_signed_accounts: int
    num_readonly_unsigned_accounts: int

    def __bytes__(self) -> bytes:
        return bytes(SoldersMessageHeader(
            self.num_required_signatures,
            self.num_readonly_signed_accounts,
            self.num_readonly_unsigned_accounts,
        ))


@dataclass(frozen=True)
class CompiledInstruction:
    """Instruction with program and accounts replaced by account-table indices"""
    program_id_index: int
    accounts: Tuple[int, ...]
    data: bytes

    def to_solders(self) -> SoldersCompiledInstruction:
        return SoldersCompiledInstruction(self.program_id_index, self.data, bytes(self.accounts))

    @classmethod
    def from_solders(cls, ix: SoldersCompiledInstruction) -> "CompiledInstruction":
        return cls(ix.program_id_index, tuple(ix.accounts), bytes(ix.data))

    def __bytes__(self) -> bytes:
        return bytes(self.to_solders())


@dataclass(frozen=True)
class Message:
    """
    Compiled, signable transaction message

    Attributes:
        header: Signer / readonly counts
        account_keys: Deduplicated, ordered account table
        recent_blockhash: Blockhash or durable nonce value
        instructions: Compiled instructions
    """
    header: MessageHeader
    account_keys: Tuple[Pubkey, ...]
    recent_blockhash: Hash
    instructions: Tuple[CompiledInstruction, ...]

    def __post_init__(self):
        n = len(self.account_keys)
        if n == 0 or self.header.num_required_signatures == 0:
            raise EncodingError.invalid_message("fee payer must be a signer at index 0")
        if self.header.num_required_signatures > n:
            raise EncodingError.invalid_message("more required signatures than accounts")
        if n > MAX_ACCOUNTS:
            raise EncodingError.invalid_message(f"{n} accounts exceeds the limit of {MAX_ACCOUNTS}")
        for ix in self.instructions:
            indices = (ix.program_id_index,) + tuple(ix.accounts)
            if any(i >= n for i in indices):
                raise EncodingError.invalid_message(
                    f"instruction references account index {max(indices)} outside table of {n}"
                )

    @property
    def fee_payer(self) -> Pubkey:
        return self.account_keys[0]

    @property
    def signers(self) -> Tuple[Pubkey, ...]:
        return self.account_keys[:self.header.num_required_signatures]

    def is_signer(self, index: int) -> bool:
        return index < self.header.num_required_signatures

    def is_writable(self, index: int) -> bool:
        h = self.header
        if index < h.num_required_signatures:
            return index < h.num_required_signatures - h.num_readonly_signed_accounts
        return index < len(self.account_keys) - h.num_readonly_unsigned_accounts

    def account_reference(self, index: int) -> AccountReference:
        return AccountReference(
            self.account_keys[index],
            is_signer=self.is_signer(index),
            is_writable=self.is_writable(index),
        )

    def decompile_instructions(self) -> List[Instruction]:
        """Rebuild Instruction values from the compiled form"""
        return [
            Instruction(
                program_id=self.account_keys[ix.program_id_index],
                accounts=tuple(self.account_reference(i) for i in ix.accounts),
                data=ix.data,
            )
            for ix in self.instructions
        ]

    def to_solders(self) -> SoldersMessage:
        return SoldersMessage.new_with_compiled_instructions(
            self.header.num_required_signatures,
            self.header.num_readonly_signed_accounts,
            self.header.num_readonly_unsigned_accounts,
            list(self.account_keys),
            self.recent_blockhash,
            [ix.to_solders() for ix in self.instructions],
        )

    @classmethod
    def from_solders(cls, message: SoldersMessage) -> "Message":
        header = message.header
        return cls(
            header=MessageHeader(
                header.num_required_signatures,
                header.num_readonly_signed_accounts,
                header.num_readonly_unsigned_accounts,
            ),
            account_keys=tuple(message.account_keys),
            recent_blockhash=message.recent_blockhash,
            instructions=tuple(CompiledInstruction.from_solders(ix) for ix in message.instructions),
        )

    def serialize(self) -> bytes:
        """Wire bytes that signatures are computed over"""
        return bytes(self.to_solders())

    def __bytes__(self) -> bytes:
        return self.serialize()

    @classmethod
    def from_bytes(cls, data: bytes) -> "Message":
        """
        Decode message wire bytes

        Raises:
            EncodingError: Truncated or malformed bytes, trailing bytes, or
                indices outside the account table
        """
        try:
            parsed = SoldersMessage.from_bytes(bytes(data))
        except (BincodeError, ValueError) as e:
            raise EncodingError.invalid_message(str(e)) from e
        consumed = len(bytes(parsed))
        if consumed != len(data):
            raise EncodingError.invalid_message(f"{len(data) - consumed} trailing bytes")
        return cls.from_solders(parsed)


def compile_account_table(
    instructions: Sequence[Instruction],
    fee_payer: Pubkey,
) -> List[AccountReference]:
    """
    Build the ordered, deduplicated account table

    Needs no anchor and is deterministic, so it can be called any number
    of times while instructions are still being added.
    """
    if fee_payer is None:
        raise EncodingError("Transaction requires a fee payer", field="fee_payer")

    merged: "OrderedDict[Pubkey, AccountReference]" = OrderedDict()
    merged[fee_payer] = AccountReference(fee_payer, is_signer=True, is_writable=True)

    def add(ref: AccountReference):
        existing = merged.get(ref.pubkey)
        merged[ref.pubkey] = existing.merge(ref) if existing else ref

    for ix in instructions:
        for ref in ix.accounts:
            add(ref)
    for ix in instructions:
        add(AccountReference(ix.program_id, is_signer=False, is_writable=False))

    payer = merged.pop(fee_payer)
    rest = list(merged.values())

    return (
        [payer]
        + [a for a in rest if a.is_signer and a.is_writable]
        + [a for a in rest if a.is_signer and not a.is_writable]
        + [a for a in rest if not a.is_signer and a.is_writable]
        + [a for a in rest if not a.is_signer and not a.is_writable]
    )


def compile_message(
    instructions: Iterable[Instruction],
    fee_payer: Pubkey,
    anchor: Optional[AnchorLike],
) -> Message:
    """
    Compile instructions into a signable message

    Args:
        instructions: Instructions in execution order
        fee_payer: Account charged for the transaction (index 0, signer)
        anchor: Recent blockhash / nonce anchor

    Returns:
        Message

    Raises:
        MissingAnchorError: No anchor supplied
        EncodingError: Invalid instruction set
    """
    if anchor is None:
        raise MissingAnchorError()
    blockhash = anchor_hash(anchor)

    instructions = list(instructions)
    table = compile_account_table(instructions, fee_payer)
    if len(table) > MAX_ACCOUNTS:
        raise EncodingError.invalid_message(f"{len(table)} accounts exceeds the limit of {MAX_ACCOUNTS}")

    index_of = {ref.pubkey: i for i, ref in enumerate(table)}

    header = MessageHeader(
        num_required_signatures=sum(1 for a in table if a.is_signer),
        num_readonly_signed_accounts=sum(1 for a in table if a.is_signer and not a.is_writable),
        num_readonly_unsigned_accounts=sum(1 for a in table if not a.is_signer and not a.is_writable),
    )

    compiled = tuple(
        CompiledInstruction(
            program_id_index=index_of[ix.program_id],
            accounts=tuple(index_of[a.pubkey] for a in ix.accounts),
            data=ix.data,
        )
        for ix in instructions
    )

    logger.debug(
        f"Compiled message: {len(table)} accounts, {header.num_required_signatures} signers, "
        f"{len(compiled)} instructions"
    )

    return Message(
        header=header,
        account_keys=tuple(ref.pubkey for ref in table),
        recent_blockhash=blockhash,
        instructions=compiled,
    )
