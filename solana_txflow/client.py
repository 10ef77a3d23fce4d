"""
LedgerClient - Unified entry point for building and submitting transactions

Bundles an RPC handle, a default fee payer and a submission controller.
"""

from __future__ import annotations

import threading
from typing import List, Optional, Sequence, TYPE_CHECKING

from solders.pubkey import Pubkey

if TYPE_CHECKING:
    from solders.keypair import Keypair

from .infra import (
    RpcClient,
    RpcClientConfig,
    SenderConfig,
    Signer,
    SignerLike,
    Transaction,
    TransactionSender,
    as_signer,
    create_signer,
)
from .protocols.system import (
    NONCE_ACCOUNT_LENGTH,
    create_nonce_account,
    transfer,
)
from .types import Anchor, Instruction, NonceAnchor, SubmissionOutcome
from .errors import ConfigurationError


class LedgerClient:
    """
    Transaction pipeline client

    Usage:
        from solders.keypair import Keypair

        client = LedgerClient(
            rpc_url="https://api.devnet.solana.com",
            keypair_path="/path/to/keypair.json",
        )

        outcome = client.transfer(recipient, 1_000)
        if outcome.is_confirmed:
            print(outcome.signature, outcome.slot)

        # Several instructions in one transaction
        tx = client.new_transaction(ix1, ix2)
        outcome = client.send_and_confirm(tx, co_signer)
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        keypair: Optional["Keypair"] = None,
        keypair_path: Optional[str] = None,
        rpc_config: Optional[RpcClientConfig] = None,
        sender_config: Optional[SenderConfig] = None,
        rpc: Optional[RpcClient] = None,
    ):
        """
        Initialize LedgerClient

        Args:
            rpc_url: RPC endpoint URL (defaults to SOLANA_RPC_URL)
            keypair: Optional Keypair used as fee payer and signer
            keypair_path: Optional path to keypair file
            rpc_config: Optional RPC configuration
            sender_config: Optional submission configuration
            rpc: Existing RPC client to use instead of creating one
        """
        self._rpc = rpc or RpcClient(rpc_url, config=rpc_config)
        self._owns_rpc = rpc is None

        if keypair is not None or keypair_path is not None:
            self._payer: Optional[Signer] = create_signer(keypair=keypair, keypair_path=keypair_path)
        else:
            self._payer = None

        self._sender = TransactionSender(self._rpc, config=sender_config)

    @property
    def rpc(self) -> RpcClient:
        """Access to RPC client"""
        return self._rpc

    @property
    def sender(self) -> TransactionSender:
        """Access to submission controller"""
        return self._sender

    @property
    def payer(self) -> Signer:
        """Default fee payer; loaded from SOLANA_KEYPAIR_PATH on first use"""
        if self._payer is None:
            self._payer = create_signer()
        return self._payer

    @property
    def pubkey(self) -> Pubkey:
        """Fee payer's public key"""
        return self.payer.pubkey

    def new_transaction(
        self,
        *instructions: Instruction,
        fee_payer: Optional[Pubkey] = None,
        nonce: Optional[NonceAnchor] = None,
    ) -> Transaction:
        """
        Start a transaction anchored to a fresh blockhash (or the given nonce)

        Args:
            *instructions: Instructions in execution order
            fee_payer: Fee payer (defaults to the client's payer)
            nonce: Durable nonce anchor to use instead of a recent blockhash
        """
        anchor = nonce if nonce is not None else self._rpc.get_latest_blockhash()
        return Transaction(
            fee_payer=fee_payer or self.pubkey,
            instructions=instructions,
            anchor=anchor,
        )

    def send_and_confirm(
        self,
        transaction: Transaction,
        *signers: SignerLike,
        commitment: Optional[str] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        simulate_first: bool = False,
    ) -> SubmissionOutcome:
        """
        Sign with the payer (when it is a required signer) plus extra signers,
        then submit and wait

        Returns:
            SubmissionOutcome
        """
        required = set(transaction.signer_pubkeys)
        all_signers: List[Signer] = [as_signer(s) for s in signers]
        given = {s.pubkey for s in all_signers}
        payer = self._payer
        if payer is not None and payer.pubkey in required and payer.pubkey not in given:
            all_signers.insert(0, payer)

        return self._sender.send_and_confirm(
            transaction,
            *all_signers,
            commitment=commitment,
            timeout=timeout,
            cancel_event=cancel_event,
            simulate_first=simulate_first,
        )

    def send_many(
        self,
        transactions: Sequence[Transaction],
        commitment: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> List[SubmissionOutcome]:
        """Submit fully-signed, independent transactions in parallel"""
        return self._sender.send_many(transactions, commitment=commitment, timeout=timeout)

    def wait_for_confirmation(
        self,
        signature: str,
        anchor: Optional[Anchor] = None,
        last_valid_block_height: Optional[int] = None,
        commitment: Optional[str] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SubmissionOutcome:
        """
        Re-poll a signature after a timed out or cancelled wait

        Pass the anchor (or its last valid block height) so a dropped
        transaction ends Expired rather than running out the timeout.
        """
        return self._sender.wait_for_confirmation(
            signature,
            anchor=anchor,
            last_valid_block_height=last_valid_block_height,
            commitment=commitment,
            timeout=timeout,
            cancel_event=cancel_event,
        )

    def transfer(
        self,
        to: Pubkey,
        lamports: int,
        commitment: Optional[str] = None,
    ) -> SubmissionOutcome:
        """Transfer lamports from the payer"""
        if lamports <= 0:
            raise ConfigurationError.invalid("lamports", "must be positive")
        tx = self.new_transaction(transfer(self.pubkey, to, lamports))
        return self.send_and_confirm(tx, commitment=commitment)

    def create_nonce_account(
        self,
        nonce_keypair: "Keypair",
        authority: Optional[Pubkey] = None,
        commitment: Optional[str] = None,
    ) -> SubmissionOutcome:
        """
        Create and initialize a durable nonce account funded by the payer

        Args:
            nonce_keypair: Keypair for the new nonce account
            authority: Nonce authority (defaults to the payer)
        """
        lamports = self._rpc.get_minimum_balance_for_rent_exemption(NONCE_ACCOUNT_LENGTH)
        instructions = create_nonce_account(
            self.pubkey,
            nonce_keypair.pubkey(),
            authority or self.pubkey,
            lamports,
        )
        tx = self.new_transaction(*instructions)
        return self.send_and_confirm(tx, nonce_keypair, commitment=commitment)

    def nonce_anchor(self, nonce_account: Pubkey, authority: Optional[Pubkey] = None) -> NonceAnchor:
        """
        Read a nonce account and build an anchor from its stored value

        Raises:
            ConfigurationError: Account missing or not initialized
        """
        account = self._rpc.get_nonce_account(nonce_account)
        if account is None or not account.is_initialized:
            raise ConfigurationError.invalid("nonce_account", f"{nonce_account} is not an initialized nonce account")
        return NonceAnchor(
            nonce_account=nonce_account,
            nonce_authority=authority or account.authority,
            nonce=account.nonce,
        )

    def close(self):
        """Close client connections and release resources"""
        if self._owns_rpc:
            self._rpc.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        payer = self._payer.pubkey if self._payer is not None else "unset"
        return f"LedgerClient(rpc={self._rpc.endpoint}, payer={payer})"
