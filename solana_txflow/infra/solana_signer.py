"""
Transaction signing abstractions

Provides unified signing interface for local signing with keypair.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Optional, Protocol, Union, runtime_checkable

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from ..errors import SignerError, ConfigurationError
from ..config import config as global_config

logger = logging.getLogger(__name__)


@runtime_checkable
class Signer(Protocol):
    """
    Protocol for transaction signers

    Implementations must provide:
    - pubkey: The signer's public key
    - sign(): Sign serialized message bytes
    """

    @property
    def pubkey(self) -> Pubkey:
        """Signer's public key"""
        ...

    def sign(self, message: bytes) -> Signature:
        """
        Sign a message

        Args:
            message: Serialized message bytes

        Returns:
            64-byte ed25519 signature
        """
        ...


class LocalSigner:
    """
    Local signer using Solana keypair

    Usage:
        from solders.keypair import Keypair

        keypair = Keypair()  # or load from file
        signer = LocalSigner(keypair)

        transaction.sign(signer)
    """

    def __init__(self, keypair: Keypair):
        """
        Initialize with keypair

        Args:
            keypair: solders.keypair.Keypair instance
        """
        self._keypair = keypair

    @property
    def pubkey(self) -> Pubkey:
        return self._keypair.pubkey()

    def sign(self, message: bytes) -> Signature:
        """Sign message bytes"""
        return self._keypair.sign_message(message)

    @classmethod
    def from_bytes(cls, secret_key: bytes) -> "LocalSigner":
        """Create signer from secret key bytes (64 bytes)"""
        try:
            keypair = Keypair.from_bytes(secret_key)
        except ValueError as e:
            raise ConfigurationError.invalid("secret_key", str(e))
        return cls(keypair)

    @classmethod
    def from_base58(cls, secret_key: str) -> "LocalSigner":
        """Create signer from base58 secret key"""
        return cls.from_bytes(base58.b58decode(secret_key))

    @classmethod
    def from_file(cls, path: str) -> "LocalSigner":
        """
        Create signer from keypair file

        Supports:
        - JSON array format (Solana CLI): [1,2,3,...]
        - Raw bytes file (64 bytes)
        """
        with open(path, "rb") as f:
            content = f.read()

        # Try JSON format first
        try:
            data = json.loads(content.decode("utf-8"))
            if isinstance(data, list):
                return cls.from_bytes(bytes(data))
        except (json.JSONDecodeError, UnicodeDecodeError):
            pass

        # Try raw bytes
        if len(content) == 64:
            return cls.from_bytes(content)

        raise ConfigurationError.invalid("keypair_file", f"Cannot parse keypair file: {path}")

    def __repr__(self) -> str:
        return f"LocalSigner({self.pubkey})"


SignerLike = Union[Signer, Keypair]


def as_signer(signer: SignerLike) -> Signer:
    """Wrap a bare Keypair in LocalSigner; pass Signer implementations through"""
    if isinstance(signer, Keypair):
        return LocalSigner(signer)
    if isinstance(signer, Signer):
        return signer
    raise SignerError.failed(f"Unsupported signer type: {type(signer).__name__}")


def create_signer(
    keypair: Optional[Keypair] = None,
    keypair_path: Optional[str] = None,
) -> Signer:
    """
    Create signer based on configuration

    Priority:
    1. keypair: Use LocalSigner with provided keypair
    2. keypair_path: Load keypair from file
    3. Environment: Check SOLANA_KEYPAIR_PATH env var

    Raises:
        SignerError: If no valid signer configuration found
    """
    if keypair is not None:
        return LocalSigner(keypair)

    if keypair_path is not None:
        return LocalSigner.from_file(keypair_path)

    if global_config.signer.keypair_path and os.path.isfile(global_config.signer.keypair_path):
        logger.debug(f"Loading keypair from {global_config.signer.keypair_path}")
        return LocalSigner.from_file(global_config.signer.keypair_path)

    raise SignerError.not_configured()
