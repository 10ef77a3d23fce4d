"""
Recency anchors: recent blockhash or durable nonce
"""

from dataclasses import dataclass
from typing import Optional, Union

from solders.hash import Hash
from solders.pubkey import Pubkey


@dataclass(frozen=True)
class BlockhashAnchor:
    """
    Recent blockhash with a bounded validity window

    Attributes:
        blockhash: Blockhash the transaction commits to
        last_valid_block_height: Last block height at which the ledger
            still accepts the blockhash (None if unknown)
    """
    blockhash: Hash
    last_valid_block_height: Optional[int] = None

    @property
    def value(self) -> Hash:
        return self.blockhash

    def is_expired(self, block_height: int) -> bool:
        """True once the ledger has advanced past the validity window"""
        if self.last_valid_block_height is None:
            return False
        return block_height > self.last_valid_block_height

    @classmethod
    def from_string(cls, blockhash: str, last_valid_block_height: Optional[int] = None) -> "BlockhashAnchor":
        return cls(Hash.from_string(blockhash), last_valid_block_height)


@dataclass(frozen=True)
class NonceAnchor:
    """
    Durable nonce anchor

    Does not expire with block height; it is consumed by the
    AdvanceNonceAccount instruction that must lead the transaction.

    Attributes:
        nonce_account: Nonce account address
        nonce_authority: Account allowed to advance the nonce (must sign)
        nonce: Nonce value currently stored in the account
    """
    nonce_account: Pubkey
    nonce_authority: Pubkey
    nonce: Hash

    @property
    def value(self) -> Hash:
        return self.nonce

    def is_expired(self, block_height: int) -> bool:
        return False


Anchor = Union[BlockhashAnchor, NonceAnchor]
