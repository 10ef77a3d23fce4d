"""
Account reference type
"""

from dataclasses import dataclass
from typing import Tuple, Union

from solders.pubkey import Pubkey

from ..errors import EncodingError


@dataclass(frozen=True)
class AccountReference:
    """
    An account touched by an instruction, with its access role

    Attributes:
        pubkey: Account address
        is_signer: Whether the account must sign the transaction
        is_writable: Whether the instruction may modify the account
    """
    pubkey: Pubkey
    is_signer: bool = False
    is_writable: bool = False

    def merge(self, other: "AccountReference") -> "AccountReference":
        """Combine two references to the same address, OR-ing their flags"""
        if other.pubkey != self.pubkey:
            raise EncodingError(
                f"Cannot merge references to {self.pubkey} and {other.pubkey}",
                field="pubkey",
            )
        return AccountReference(
            pubkey=self.pubkey,
            is_signer=self.is_signer or other.is_signer,
            is_writable=self.is_writable or other.is_writable,
        )

    @classmethod
    def signer(cls, pubkey: Pubkey, writable: bool = True) -> "AccountReference":
        return cls(pubkey, is_signer=True, is_writable=writable)

    @classmethod
    def writable(cls, pubkey: Pubkey) -> "AccountReference":
        return cls(pubkey, is_signer=False, is_writable=True)

    @classmethod
    def readonly(cls, pubkey: Pubkey) -> "AccountReference":
        return cls(pubkey, is_signer=False, is_writable=False)

    def __repr__(self) -> str:
        flags = ("s" if self.is_signer else "-") + ("w" if self.is_writable else "r")
        return f"AccountReference({str(self.pubkey)[:8]}..., {flags})"


AccountLike = Union[AccountReference, Tuple[Pubkey, bool, bool]]


def to_account_reference(account: AccountLike) -> AccountReference:
    """Accept an AccountReference or a (pubkey, is_signer, is_writable) tuple"""
    if isinstance(account, AccountReference):
        return account
    pubkey, is_signer, is_writable = account
    if isinstance(pubkey, str):
        pubkey = Pubkey.from_string(pubkey)
    return AccountReference(pubkey, bool(is_signer), bool(is_writable))
