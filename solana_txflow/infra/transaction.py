"""
Transaction signing and wire serialization

Lifecycle:
    tx = Transaction(fee_payer=payer.pubkey())
    tx.add(instruction)                 # any number of times
    tx.anchor = rpc.get_latest_blockhash()
    tx.sign(payer)                      # possibly partial, across parties
    raw = tx.serialize()                # requires every signer slot filled

Wire format (legacy, produced by solders): compact-u16 signature count,
64-byte signatures in signer order, then the exact message bytes the
signatures cover.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from solders.errors import BincodeError
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction as SoldersTransaction

from .message import Message, compile_account_table, compile_message
from .solana_signer import SignerLike, as_signer
from ..types import AccountReference, Instruction, BlockhashAnchor, NonceAnchor, Anchor
from ..errors import EncodingError, IncompleteSignaturesError, SignerError
from ..protocols.system.instructions import advance_nonce_account

logger = logging.getLogger(__name__)

# Maximum serialized transaction size accepted by the ledger (one packet)
PACKET_DATA_SIZE = 1232

_EMPTY_SIGNATURE = Signature.default()


class Transaction:
    """
    Mutable transaction under construction

    Changing instructions, fee payer or anchor discards any signatures
    already collected, since they covered a different message.
    """

    def __init__(
        self,
        fee_payer: Optional[Pubkey] = None,
        instructions: Iterable[Instruction] = (),
        anchor: Optional[Anchor] = None,
    ):
        self._fee_payer = fee_payer
        self._instructions: List[Instruction] = list(instructions)
        self._anchor = anchor
        self._message: Optional[Message] = None
        self._signatures: Dict[Pubkey, Signature] = {}

    # ------------------------------------------------------------------
    # Building

    @property
    def fee_payer(self) -> Optional[Pubkey]:
        return self._fee_payer

    @fee_payer.setter
    def fee_payer(self, value: Pubkey):
        self._fee_payer = value
        self._invalidate()

    @property
    def anchor(self) -> Optional[Anchor]:
        return self._anchor

    @anchor.setter
    def anchor(self, value: Optional[Anchor]):
        self._anchor = value
        self._invalidate()

    @property
    def instructions(self) -> Tuple[Instruction, ...]:
        """Instructions as they will be compiled (nonce advance first if needed)"""
        instructions = list(self._instructions)
        if isinstance(self._anchor, NonceAnchor):
            advance = advance_nonce_account(self._anchor.nonce_account, self._anchor.nonce_authority)
            if not instructions or instructions[0] != advance:
                instructions.insert(0, advance)
        return tuple(instructions)

    def add(self, *instructions: Instruction) -> "Transaction":
        """Append instructions; returns self for chaining"""
        for ix in instructions:
            if not isinstance(ix, Instruction):
                raise EncodingError(f"Expected Instruction, got {type(ix).__name__}")
            self._instructions.append(ix)
        self._invalidate()
        return self

    def _invalidate(self):
        if self._signatures:
            logger.debug("Transaction changed, discarding collected signatures")
        self._message = None
        self._signatures = {}

    def compile_account_table(self) -> List[AccountReference]:
        """Ordered account table; does not need an anchor"""
        return compile_account_table(self.instructions, self._fee_payer)

    def compile_message(self) -> Message:
        """
        Compile (and cache) the signable message

        Raises:
            MissingAnchorError: No anchor attached yet
        """
        if self._message is None:
            self._message = compile_message(self.instructions, self._fee_payer, self._anchor)
        return self._message

    def serialize_message(self) -> bytes:
        return self.compile_message().serialize()

    # ------------------------------------------------------------------
    # Signing

    @property
    def signer_pubkeys(self) -> Tuple[Pubkey, ...]:
        """Required signers in slot order"""
        if self._message is not None:
            return self._message.signers
        return tuple(ref.pubkey for ref in self.compile_account_table() if ref.is_signer)

    @property
    def signatures(self) -> List[Tuple[Pubkey, Optional[Signature]]]:
        """Signature slots aligned with the message's signer accounts"""
        return [(pk, self._signatures.get(pk)) for pk in self.signer_pubkeys]

    @property
    def signature(self) -> Optional[str]:
        """Transaction id: the fee payer's signature (base58)"""
        slots = self.signatures
        if not slots or slots[0][1] is None:
            return None
        return str(slots[0][1])

    @property
    def is_fully_signed(self) -> bool:
        return all(sig is not None for _, sig in self.signatures)

    @property
    def missing_signers(self) -> List[Pubkey]:
        return [pk for pk, sig in self.signatures if sig is None]

    def sign(self, *signers: SignerLike) -> "Transaction":
        """
        Fill the signature slots of the supplied signers

        Slots of other signers stay empty, so several parties can sign the
        same message in separate calls.

        Raises:
            MissingAnchorError: No anchor attached yet
            SignerError: A signer is not required by the message
        """
        message = self.compile_message()
        message_bytes = message.serialize()
        required = message.signers

        for signer in signers:
            signer = as_signer(signer)
            pubkey = signer.pubkey
            if pubkey not in required:
                raise SignerError.not_required(str(pubkey), [str(k) for k in required])
            signature = signer.sign(message_bytes)
            self._signatures[pubkey] = signature
            logger.debug(f"Signed by {str(pubkey)[:16]}... at slot {required.index(pubkey)}")

        return self

    def add_signature(self, pubkey: Pubkey, signature: Signature) -> "Transaction":
        """
        Attach a signature produced elsewhere (offline or co-signer)

        Raises:
            SignerError: pubkey is not a required signer or the signature
                does not verify against the message
        """
        message = self.compile_message()
        if pubkey not in message.signers:
            raise SignerError.not_required(str(pubkey), [str(k) for k in message.signers])
        if not signature.verify(pubkey, message.serialize()):
            raise SignerError.failed(f"Signature for {pubkey} does not verify")
        self._signatures[pubkey] = signature
        return self

    def verify_signatures(self, require_all: bool = True) -> bool:
        """Check every present signature against the message"""
        message_bytes = self.serialize_message()
        for pubkey, sig in self.signatures:
            if sig is None:
                if require_all:
                    return False
                continue
            if not sig.verify(pubkey, message_bytes):
                return False
        return True

    # ------------------------------------------------------------------
    # Serialization

    def serialize(self, require_all_signatures: bool = True) -> bytes:
        """
        Wire bytes for sendTransaction

        Raises:
            MissingAnchorError: No anchor attached yet
            IncompleteSignaturesError: A signer slot is empty
            EncodingError: Transaction exceeds the packet size
        """
        message = self.compile_message()
        slots = self.signatures

        if require_all_signatures:
            missing = [str(pk) for pk, sig in slots if sig is None]
            if missing:
                raise IncompleteSignaturesError(missing)

        wire = bytes(SoldersTransaction.populate(
            message.to_solders(),
            [sig if sig is not None else _EMPTY_SIGNATURE for _, sig in slots],
        ))

        if len(wire) > PACKET_DATA_SIZE:
            raise EncodingError(
                f"Transaction too large: {len(wire)} bytes > {PACKET_DATA_SIZE}"
            )
        return wire

    def __bytes__(self) -> bytes:
        return self.serialize()

    @classmethod
    def populate(cls, message: Message, signatures: Sequence[Optional[Signature]]) -> "Transaction":
        """Rebuild a transaction from a compiled message and its signature slots"""
        if len(signatures) != message.header.num_required_signatures:
            raise EncodingError.invalid_message(
                f"{len(signatures)} signatures for {message.header.num_required_signatures} signers"
            )
        tx = cls(
            fee_payer=message.fee_payer,
            instructions=message.decompile_instructions(),
            anchor=BlockhashAnchor(message.recent_blockhash),
        )
        # Keep the decoded message so re-serialization is byte-exact
        tx._message = message
        for pubkey, sig in zip(message.signers, signatures):
            if sig is not None and sig != _EMPTY_SIGNATURE:
                tx._signatures[pubkey] = sig
        return tx

    @classmethod
    def from_bytes(cls, data: bytes) -> "Transaction":
        """Decode wire bytes produced by serialize()"""
        parsed = parse_wire_transaction(data)
        return cls.populate(Message.from_solders(parsed.message), parsed.signatures)

    def __repr__(self) -> str:
        return (
            f"Transaction(fee_payer={self._fee_payer}, instructions={len(self._instructions)}, "
            f"anchor={'set' if self._anchor else 'none'})"
        )


def parse_wire_transaction(data: bytes) -> SoldersTransaction:
    """
    Parse legacy transaction wire bytes

    Raises:
        EncodingError: Malformed bytes or trailing data
    """
    try:
        parsed = SoldersTransaction.from_bytes(bytes(data))
    except (BincodeError, ValueError) as e:
        raise EncodingError.invalid_message(str(e)) from e
    consumed = len(bytes(parsed))
    if consumed != len(data):
        raise EncodingError.invalid_message(f"{len(data) - consumed} trailing bytes")
    return parsed
