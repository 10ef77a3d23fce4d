"""
Transaction submission and confirmation

Drives one transaction through
    Building -> Signed -> Submitted -> {Confirmed, Failed, Expired, TimedOut}
with Cancelled for an abandoned client-side wait.

- Submission retries transport failures with bounded exponential backoff
- Status is polled until the requested commitment is reached
- A ledger execution error is terminal and never resubmitted
- Blockhash expiry (block height past the anchor's window) or a consumed
  durable nonce is terminal: the transaction must be rebuilt. A send the
  node rejects after the anchor expired ends Expired, not Failed
- The wall-clock budget bounds the wait; transient RPC errors count
  against it
- While the signature is unseen, identical signed bytes are rebroadcast;
  the ledger deduplicates by signature
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .rpc import RpcClient
from .transaction import Transaction, parse_wire_transaction
from .retry import CorrelationContext, call_with_backoff, log_with_correlation
from .solana_signer import SignerLike
from ..types import (
    Anchor,
    BlockhashAnchor,
    NonceAnchor,
    Commitment,
    FailureKind,
    SignatureStatus,
    SubmissionOutcome,
    TxStatus,
)
from ..errors import (
    ConfirmationCancelled,
    EncodingError,
    ErrorCode,
    LedgerExecutionError,
    RpcError,
    TransactionError,
    TransactionExpiredError,
)
from ..config import config as global_config

logger = logging.getLogger(__name__)


@dataclass
class SenderConfig:
    """
    Sender runtime configuration

    Allows per-sender overrides while pulling defaults from the global
    config (solana_txflow.config.TxConfig).

    Usage:
        # Use all defaults from environment
        sender = TransactionSender(rpc)

        # Override specific settings
        config = SenderConfig(commitment="finalized", confirmation_timeout=90)
        sender = TransactionSender(rpc, config=config)
    """
    max_send_attempts: int = None
    send_backoff_base: float = None
    send_backoff_max: float = None
    poll_interval: float = None
    confirmation_timeout: float = None
    rebroadcast_interval: float = None
    commitment: str = None
    confirmed_depth: int = None
    finalized_depth: int = None
    skip_preflight: bool = None
    preflight_commitment: str = None
    max_workers: int = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        tx = global_config.tx
        for name in (
            "max_send_attempts",
            "send_backoff_base",
            "send_backoff_max",
            "poll_interval",
            "confirmation_timeout",
            "rebroadcast_interval",
            "commitment",
            "confirmed_depth",
            "finalized_depth",
            "skip_preflight",
            "preflight_commitment",
            "max_workers",
        ):
            if getattr(self, name) is None:
                setattr(self, name, getattr(tx, name))


class SubmissionTracker:
    """
    Lifecycle state of one transaction

    Rejects transitions that the lifecycle does not allow; in particular
    nothing leaves a terminal state, so an outcome is recorded exactly once.
    """

    _ALLOWED = {
        TxStatus.BUILDING: {TxStatus.SIGNED},
        TxStatus.SIGNED: {
            TxStatus.SUBMITTED,
            TxStatus.FAILED,
            TxStatus.EXPIRED,
            TxStatus.CANCELLED,
        },
        TxStatus.SUBMITTED: {
            TxStatus.CONFIRMED,
            TxStatus.FAILED,
            TxStatus.EXPIRED,
            TxStatus.TIMED_OUT,
            TxStatus.CANCELLED,
        },
    }

    def __init__(self, signature: Optional[str] = None, state: TxStatus = TxStatus.BUILDING):
        self.signature = signature
        self.state = state
        self.send_attempts = 0
        self.outcome: Optional[SubmissionOutcome] = None

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def transition(self, new_state: TxStatus):
        allowed = self._ALLOWED.get(self.state, set())
        if new_state not in allowed:
            raise TransactionError(
                f"Invalid transition {self.state.value} -> {new_state.value}",
                ErrorCode.TX_INVALID_STATE,
                signature=self.signature,
            )
        logger.debug(f"{self.signature}: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def finish(self, outcome: SubmissionOutcome) -> SubmissionOutcome:
        """Record the terminal outcome"""
        self.transition(outcome.status)
        outcome.send_attempts = self.send_attempts
        self.outcome = outcome
        return outcome


def transaction_signature(raw: bytes) -> str:
    """First signature of serialized transaction bytes (the transaction id)"""
    signatures = parse_wire_transaction(raw).signatures
    if not signatures:
        raise EncodingError.invalid_message("transaction carries no signature")
    return str(signatures[0])


class TransactionSender:
    """
    Submission and confirmation controller

    Holds no per-transaction state; each call builds its own
    SubmissionTracker, so one sender can drive many transactions from
    several threads at once.

    Usage:
        sender = TransactionSender(rpc)

        tx = Transaction(fee_payer=payer.pubkey()).add(ix)
        tx.anchor = rpc.get_latest_blockhash()
        outcome = sender.send_and_confirm(tx, payer)

        if outcome.is_timeout:
            # May still land: re-poll, don't rebuild
            outcome = sender.wait_for_confirmation(outcome.signature, anchor=tx.anchor)
    """

    def __init__(
        self,
        rpc: RpcClient,
        config: Optional[SenderConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], object] = time.sleep,
    ):
        """
        Initialize sender

        Args:
            rpc: RPC client handle
            config: Sender configuration
            clock: Monotonic clock (seconds)
            sleep: Wait function used when no cancel event is given
        """
        self._rpc = rpc
        self._config = config or SenderConfig()
        self._clock = clock
        self._sleep = sleep

    @property
    def config(self) -> SenderConfig:
        return self._config

    def _wait(self, delay: float, cancel_event: Optional[threading.Event]):
        if delay <= 0:
            if cancel_event is not None and cancel_event.is_set():
                raise ConfirmationCancelled(None)
            return
        if cancel_event is None:
            self._sleep(delay)
        elif cancel_event.wait(delay):
            raise ConfirmationCancelled(None)

    # ------------------------------------------------------------------
    # Public API

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
        Sign (if signers are given), submit and wait for a terminal outcome

        Args:
            transaction: Transaction with instructions and anchor attached
            *signers: Keypairs / Signers to sign with before sending
            commitment: processed, confirmed or finalized
            timeout: Wall-clock budget for the wait, in seconds
            cancel_event: Set to abandon the wait
            simulate_first: Run simulateTransaction before sending

        Returns:
            SubmissionOutcome

        Raises:
            MissingAnchorError, IncompleteSignaturesError, SignerError:
                precondition failures, before anything is sent
            LedgerExecutionError: simulate_first and the simulation failed
        """
        if signers:
            transaction.sign(*signers)
        raw = transaction.serialize()

        if simulate_first:
            sim = self._rpc.simulate_transaction(raw)
            if sim.get("err"):
                raise LedgerExecutionError.simulation_failed(sim["err"], sim.get("logs", []))

        return self.send_raw_and_confirm(
            raw,
            anchor=transaction.anchor,
            commitment=commitment,
            timeout=timeout,
            cancel_event=cancel_event,
        )

    def send_raw_and_confirm(
        self,
        raw: bytes,
        anchor: Optional[Anchor] = None,
        commitment: Optional[str] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SubmissionOutcome:
        """
        Submit fully-signed wire bytes and wait for a terminal outcome

        Args:
            raw: Serialized signed transaction
            anchor: Anchor the transaction was built with; enables expiry detection
            commitment: processed, confirmed or finalized
            timeout: Wall-clock budget for the wait, in seconds
            cancel_event: Set to abandon the wait
        """
        signature = transaction_signature(raw)
        tracker = SubmissionTracker(signature=signature, state=TxStatus.SIGNED)

        with CorrelationContext("tx"):
            try:
                returned = self._submit(raw, tracker, anchor, cancel_event)
            except ConfirmationCancelled:
                log_with_correlation(logging.INFO, "Cancelled before submission", "send", signature=signature)
                return tracker.finish(SubmissionOutcome.cancelled(signature))
            except TransactionExpiredError as e:
                # An earlier attempt may still have landed
                final = self._final_status(signature)
                if final is None:
                    log_with_correlation(
                        logging.WARNING,
                        f"Expired at submission: {e.reason}",
                        "send",
                        signature=signature,
                    )
                    return tracker.finish(SubmissionOutcome.expired(signature, e.reason))
                tracker.transition(TxStatus.SUBMITTED)
                return self._await_outcome(
                    tracker,
                    raw=None,
                    anchor=anchor,
                    commitment=commitment,
                    timeout=timeout,
                    cancel_event=cancel_event,
                )
            except RpcError as e:
                log_with_correlation(
                    logging.ERROR,
                    f"Submission failed after {tracker.send_attempts} attempts: {e}",
                    "send",
                    signature=signature,
                )
                return tracker.finish(SubmissionOutcome.failed(
                    str(e),
                    FailureKind.TRANSPORT,
                    signature=signature,
                ))

            if returned and returned != signature:
                logger.warning(f"Node returned signature {returned}, expected {signature}")

            tracker.transition(TxStatus.SUBMITTED)
            log_with_correlation(logging.INFO, "Transaction submitted", "send", signature=signature)

            return self._await_outcome(
                tracker,
                raw=raw,
                anchor=anchor,
                commitment=commitment,
                timeout=timeout,
                cancel_event=cancel_event,
            )

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
        Poll an already-submitted signature without resubmitting

        Used after a TIMED_OUT or CANCELLED outcome.
        """
        if anchor is None and last_valid_block_height is not None:
            anchor = BlockhashAnchor(blockhash=None, last_valid_block_height=last_valid_block_height)

        tracker = SubmissionTracker(signature=signature, state=TxStatus.SUBMITTED)
        with CorrelationContext("wait"):
            return self._await_outcome(
                tracker,
                raw=None,
                anchor=anchor,
                commitment=commitment,
                timeout=timeout,
                cancel_event=cancel_event,
            )

    def send_many(
        self,
        transactions: Sequence[Transaction],
        commitment: Optional[str] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[SubmissionOutcome]:
        """
        Submit and confirm independent, fully-signed transactions in parallel

        Every transaction is serialized before any is submitted, so a
        precondition failure raises with nothing sent.

        Returns:
            Outcomes in the order of the input transactions

        Raises:
            MissingAnchorError, IncompleteSignaturesError: for any transaction
        """
        if not transactions:
            return []

        prepared = [(tx.serialize(), tx.anchor) for tx in transactions]

        workers = max(1, min(self._config.max_workers, len(transactions)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="txflow-send") as pool:
            futures = [
                pool.submit(
                    self.send_raw_and_confirm,
                    raw,
                    anchor=anchor,
                    commitment=commitment,
                    timeout=timeout,
                    cancel_event=cancel_event,
                )
                for raw, anchor in prepared
            ]
            return [f.result() for f in futures]

    # ------------------------------------------------------------------
    # Internals

    def _submit(
        self,
        raw: bytes,
        tracker: SubmissionTracker,
        anchor: Optional[Anchor],
        cancel_event: Optional[threading.Event],
    ) -> str:
        def attempt() -> str:
            tracker.send_attempts += 1
            try:
                return self._rpc.send_transaction(
                    raw,
                    skip_preflight=self._config.skip_preflight,
                    preflight_commitment=self._config.preflight_commitment,
                )
            except RpcError as e:
                # A stale anchor is rejected at preflight; resending cannot help
                reason = self._expiry_reason(anchor)
                if reason is not None:
                    raise TransactionExpiredError(tracker.signature, reason) from e
                raise

        if cancel_event is not None and cancel_event.is_set():
            raise ConfirmationCancelled(tracker.signature)

        signature, _ = call_with_backoff(
            attempt,
            "send",
            max_attempts=self._config.max_send_attempts,
            base_delay=self._config.send_backoff_base,
            max_delay=self._config.send_backoff_max,
            sleep=lambda delay: self._wait(delay, cancel_event),
        )
        return signature

    def _rebroadcast(self, raw: bytes, tracker: SubmissionTracker):
        tracker.send_attempts += 1
        try:
            self._rpc.send_transaction(
                raw,
                skip_preflight=True,
                preflight_commitment=self._config.preflight_commitment,
            )
            logger.debug(f"Rebroadcast {tracker.signature} (send #{tracker.send_attempts})")
        except RpcError as e:
            logger.debug(f"Rebroadcast of {tracker.signature} failed: {e}")

    def _expiry_reason(self, anchor: Optional[Anchor]) -> Optional[str]:
        """_check_expired, treating an unreachable node as not expired"""
        try:
            return self._check_expired(anchor)
        except RpcError as e:
            logger.debug(f"Expiry check failed: {e}")
            return None

    def _final_status(self, signature: str) -> Optional[SignatureStatus]:
        try:
            return self._rpc.get_signature_status(signature, search_transaction_history=True)
        except RpcError as e:
            logger.debug(f"History lookup for {signature} failed: {e}")
            return None

    def _check_expired(self, anchor: Optional[Anchor]) -> Optional[str]:
        """Reason the anchor can no longer land a transaction, or None"""
        if isinstance(anchor, BlockhashAnchor) and anchor.last_valid_block_height is not None:
            height = self._rpc.get_block_height()
            if anchor.is_expired(height):
                return f"block height {height} exceeded last valid height {anchor.last_valid_block_height}"
        elif isinstance(anchor, NonceAnchor):
            account = self._rpc.get_nonce_account(anchor.nonce_account)
            if account is None:
                return f"nonce account {anchor.nonce_account} no longer exists"
            if account.nonce != anchor.nonce:
                return f"nonce advanced from {anchor.nonce} to {account.nonce}"
        return None

    def _classify_status(
        self,
        tracker: SubmissionTracker,
        status: SignatureStatus,
        commitment: Commitment,
    ) -> Optional[SubmissionOutcome]:
        """Terminal outcome for an included transaction, or None to keep polling"""
        if status.err is not None:
            log_with_correlation(
                logging.WARNING,
                f"Transaction failed on-chain at slot {status.slot}: {status.err}",
                "confirm",
                signature=tracker.signature,
            )
            return tracker.finish(SubmissionOutcome.failed(
                f"Transaction failed on-chain: {status.err}",
                FailureKind.EXECUTION,
                signature=tracker.signature,
                slot=status.slot,
                ledger_error=status.err,
            ))

        level = status.level(self._config.confirmed_depth, self._config.finalized_depth)
        if level.rank >= commitment.rank:
            log_with_correlation(
                logging.INFO,
                f"Confirmed at slot {status.slot} ({level.value})",
                "confirm",
                signature=tracker.signature,
            )
            return tracker.finish(SubmissionOutcome.confirmed(
                tracker.signature,
                status.slot,
                commitment=level,
            ))
        return None

    def _await_outcome(
        self,
        tracker: SubmissionTracker,
        raw: Optional[bytes],
        anchor: Optional[Anchor],
        commitment: Optional[str],
        timeout: Optional[float],
        cancel_event: Optional[threading.Event],
    ) -> SubmissionOutcome:
        level = Commitment.parse(commitment or self._config.commitment)
        budget = timeout if timeout is not None else self._config.confirmation_timeout
        start = self._clock()
        deadline = start + budget
        last_broadcast = start
        polls = 0
        transient_errors = 0
        signature = tracker.signature

        while True:
            if cancel_event is not None and cancel_event.is_set():
                log_with_correlation(logging.INFO, "Wait cancelled", "confirm", signature=signature)
                return tracker.finish(SubmissionOutcome.cancelled(signature))

            polls += 1
            try:
                status = self._rpc.get_signature_status(signature)
                if status is not None:
                    outcome = self._classify_status(tracker, status, level)
                    if outcome is not None:
                        return outcome
                else:
                    reason = self._check_expired(anchor)
                    if reason is not None:
                        # The transaction may have landed between the two queries
                        final = self._rpc.get_signature_status(signature, search_transaction_history=True)
                        if final is None:
                            log_with_correlation(
                                logging.WARNING,
                                f"Expired: {reason}",
                                "confirm",
                                signature=signature,
                            )
                            return tracker.finish(SubmissionOutcome.expired(signature, reason))
                        outcome = self._classify_status(tracker, final, level)
                        if outcome is not None:
                            return outcome
                    elif raw is not None and self._config.rebroadcast_interval > 0:
                        if self._clock() - last_broadcast >= self._config.rebroadcast_interval:
                            self._rebroadcast(raw, tracker)
                            last_broadcast = self._clock()

            except RpcError as e:
                # No answer yet; the wall-clock budget still applies
                transient_errors += 1
                logger.debug(f"Status poll {polls} for {signature} failed: {e}")

            remaining = deadline - self._clock()
            if remaining <= 0:
                log_with_correlation(
                    logging.WARNING,
                    f"No confirmation within {budget}s ({polls} polls, {transient_errors} RPC errors)",
                    "confirm",
                    signature=signature,
                )
                return tracker.finish(SubmissionOutcome.timed_out(signature, budget))

            try:
                self._wait(min(self._config.poll_interval, remaining), cancel_event)
            except ConfirmationCancelled:
                log_with_correlation(logging.INFO, "Wait cancelled", "confirm", signature=signature)
                return tracker.finish(SubmissionOutcome.cancelled(signature))


def send_and_confirm_transaction(
    rpc: RpcClient,
    transaction: Transaction,
    *signers: SignerLike,
    commitment: Optional[str] = None,
    timeout: Optional[float] = None,
    config: Optional[SenderConfig] = None,
) -> str:
    """
    Sign, send and confirm a transaction

    Returns:
        Transaction signature (base58)

    Raises:
        LedgerExecutionError, TransactionExpiredError,
        ConfirmationTimeoutError, TransportError
    """
    outcome = TransactionSender(rpc, config=config).send_and_confirm(
        transaction,
        *signers,
        commitment=commitment,
        timeout=timeout,
    )
    return outcome.raise_for_status()


def send_and_confirm_raw_transaction(
    rpc: RpcClient,
    raw: bytes,
    anchor: Optional[Anchor] = None,
    commitment: Optional[str] = None,
    timeout: Optional[float] = None,
    config: Optional[SenderConfig] = None,
) -> str:
    """Send and confirm already-serialized transaction bytes; returns the signature or raises"""
    outcome = TransactionSender(rpc, config=config).send_raw_and_confirm(
        raw,
        anchor=anchor,
        commitment=commitment,
        timeout=timeout,
    )
    return outcome.raise_for_status()
