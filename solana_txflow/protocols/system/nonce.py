"""
Durable nonce account state parsing

Layout (80 bytes):
    0   u32   version
    4   u32   state (0 = uninitialized, 1 = initialized)
    8   32    authority
    40  32    nonce (stored blockhash)
    72  u64   lamports_per_signature
"""

import struct
from dataclasses import dataclass

from solders.hash import Hash
from solders.pubkey import Pubkey

from .constants import NONCE_ACCOUNT_LENGTH
from ...errors import EncodingError

_NONCE_LAYOUT = struct.Struct("<II32s32sQ")

STATE_UNINITIALIZED = 0
STATE_INITIALIZED = 1


@dataclass(frozen=True)
class NonceAccount:
    """Decoded nonce account"""
    version: int
    state: int
    authority: Pubkey
    nonce: Hash
    lamports_per_signature: int

    @property
    def is_initialized(self) -> bool:
        return self.state == STATE_INITIALIZED

    @classmethod
    def from_bytes(cls, data: bytes) -> "NonceAccount":
        if len(data) < NONCE_ACCOUNT_LENGTH:
            raise EncodingError(
                f"Nonce account data too short: {len(data)} bytes, expected {NONCE_ACCOUNT_LENGTH}"
            )
        version, state, authority, nonce, fee = _NONCE_LAYOUT.unpack_from(data, 0)
        return cls(
            version=version,
            state=state,
            authority=Pubkey.from_bytes(authority),
            nonce=Hash.from_bytes(nonce),
            lamports_per_signature=fee,
        )
