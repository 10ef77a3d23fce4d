"""
Result type definitions for transaction submission and status polling
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import (
    ErrorCode,
    TransportError,
    LedgerExecutionError,
    TransactionExpiredError,
    ConfirmationTimeoutError,
    ConfirmationCancelled,
    TxFlowError,
)


class TxStatus(Enum):
    """Transaction lifecycle state"""
    BUILDING = "building"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    EXPIRED = "expired"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"  # Client-side wait abandoned; not a ledger state

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({
    TxStatus.CONFIRMED,
    TxStatus.FAILED,
    TxStatus.EXPIRED,
    TxStatus.TIMED_OUT,
    TxStatus.CANCELLED,
})


class Commitment(Enum):
    """Durability level a confirmation must reach"""
    PROCESSED = "processed"  # seen in a block, may still be rolled back
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"  # irreversible under ledger rules

    @property
    def rank(self) -> int:
        return _COMMITMENT_RANK[self]

    @classmethod
    def parse(cls, value) -> "Commitment":
        if isinstance(value, Commitment):
            return value
        # Older node vocabulary
        aliases = {"recent": "processed", "single": "confirmed", "max": "finalized", "root": "finalized"}
        value = str(value).lower()
        return cls(aliases.get(value, value))


_COMMITMENT_RANK = {
    Commitment.PROCESSED: 0,
    Commitment.CONFIRMED: 1,
    Commitment.FINALIZED: 2,
}


class FailureKind(Enum):
    """Why a submission failed"""
    TRANSPORT = "transport"
    EXECUTION = "execution"


@dataclass(frozen=True)
class SignatureStatus:
    """
    Status of a signature as reported by getSignatureStatuses

    Attributes:
        slot: Slot the transaction was processed in
        confirmations: Blocks confirmed on top; None once rooted
        err: Ledger execution error, None on success
        confirmation_status: processed / confirmed / finalized if reported
    """
    slot: int
    confirmations: Optional[int] = None
    err: Any = None
    confirmation_status: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.err is None

    def level(self, confirmed_depth: int = 1, finalized_depth: int = 32) -> Commitment:
        """Highest commitment level this status satisfies"""
        if self.confirmation_status:
            reported = Commitment.parse(self.confirmation_status)
        else:
            reported = Commitment.PROCESSED

        if self.confirmations is None:
            by_depth = Commitment.FINALIZED
        elif self.confirmations >= finalized_depth:
            by_depth = Commitment.FINALIZED
        elif self.confirmations >= confirmed_depth:
            by_depth = Commitment.CONFIRMED
        else:
            by_depth = Commitment.PROCESSED

        return reported if reported.rank >= by_depth.rank else by_depth

    def reached(
        self,
        commitment: Commitment,
        confirmed_depth: int = 1,
        finalized_depth: int = 32,
    ) -> bool:
        return self.level(confirmed_depth, finalized_depth).rank >= commitment.rank

    @classmethod
    def from_rpc(cls, value: Dict[str, Any]) -> "SignatureStatus":
        return cls(
            slot=value.get("slot"),
            confirmations=value.get("confirmations"),
            err=value.get("err"),
            confirmation_status=value.get("confirmationStatus"),
        )


@dataclass
class SubmissionOutcome:
    """
    Terminal result of submitting and waiting on a transaction

    Attributes:
        status: Terminal status
        signature: Transaction signature (base58)
        slot: Slot the transaction landed in (CONFIRMED, and FAILED/execution)
        error: Error message if not confirmed
        failure_kind: transport or execution for FAILED outcomes
        ledger_error: Raw ledger error object for execution failures
        error_code: Error code for programmatic handling
        commitment: Highest commitment level observed
        send_attempts: Number of sendTransaction calls made
        timeout_seconds: Wait budget, for TIMED_OUT outcomes
    """
    status: TxStatus
    signature: Optional[str] = None
    slot: Optional[int] = None
    error: Optional[str] = None
    failure_kind: Optional[FailureKind] = None
    ledger_error: Any = None
    error_code: Optional[str] = None
    commitment: Optional[Commitment] = None
    send_attempts: int = 0
    timeout_seconds: Optional[float] = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == TxStatus.CONFIRMED

    @property
    def is_failed(self) -> bool:
        return self.status == TxStatus.FAILED

    @property
    def is_expired(self) -> bool:
        return self.status == TxStatus.EXPIRED

    @property
    def is_timeout(self) -> bool:
        return self.status == TxStatus.TIMED_OUT

    @property
    def is_cancelled(self) -> bool:
        return self.status == TxStatus.CANCELLED

    @property
    def result(self) -> str:
        """Short result label: success for confirmed transactions, else the status value"""
        return "success" if self.is_confirmed else self.status.value

    @property
    def recoverable(self) -> bool:
        """Whether re-polling the same signature could still yield a result"""
        return self.status in (TxStatus.TIMED_OUT, TxStatus.CANCELLED)

    @classmethod
    def confirmed(
        cls,
        signature: str,
        slot: int,
        commitment: Optional[Commitment] = None,
        **kwargs,
    ) -> "SubmissionOutcome":
        return cls(
            status=TxStatus.CONFIRMED,
            signature=signature,
            slot=slot,
            commitment=commitment,
            **kwargs,
        )

    @classmethod
    def failed(
        cls,
        error: str,
        failure_kind: FailureKind,
        signature: Optional[str] = None,
        **kwargs,
    ) -> "SubmissionOutcome":
        if failure_kind == FailureKind.EXECUTION:
            kwargs.setdefault("error_code", ErrorCode.TX_EXECUTION_FAILED.value)
        else:
            kwargs.setdefault("error_code", ErrorCode.TX_SEND_FAILED.value)
        return cls(
            status=TxStatus.FAILED,
            signature=signature,
            error=error,
            failure_kind=failure_kind,
            **kwargs,
        )

    @classmethod
    def expired(cls, signature: Optional[str], reason: str = "blockhash expired", **kwargs) -> "SubmissionOutcome":
        return cls(
            status=TxStatus.EXPIRED,
            signature=signature,
            error=reason,
            error_code=ErrorCode.TX_EXPIRED.value,
            **kwargs,
        )

    @classmethod
    def timed_out(cls, signature: Optional[str], timeout_seconds: float, **kwargs) -> "SubmissionOutcome":
        return cls(
            status=TxStatus.TIMED_OUT,
            signature=signature,
            error="Transaction confirmation timeout",
            error_code=ErrorCode.TX_CONFIRMATION_TIMEOUT.value,
            timeout_seconds=timeout_seconds,
            **kwargs,
        )

    @classmethod
    def cancelled(cls, signature: Optional[str], **kwargs) -> "SubmissionOutcome":
        return cls(
            status=TxStatus.CANCELLED,
            signature=signature,
            error="Confirmation wait cancelled",
            error_code=ErrorCode.TX_CONFIRMATION_CANCELLED.value,
            **kwargs,
        )

    def raise_for_status(self) -> str:
        """
        Return the signature if confirmed, otherwise raise the matching error

        Raises:
            LedgerExecutionError: FAILED with an on-chain error
            TransportError: FAILED because the transaction could not be sent
            TransactionExpiredError: EXPIRED
            ConfirmationTimeoutError: TIMED_OUT
            ConfirmationCancelled: CANCELLED
        """
        if self.is_confirmed:
            return self.signature
        if self.is_failed:
            if self.failure_kind == FailureKind.EXECUTION:
                raise LedgerExecutionError.from_status(self.signature, self.slot, self.ledger_error)
            raise TransportError(f"Failed to send transaction: {self.error}")
        if self.is_expired:
            raise TransactionExpiredError(self.signature, self.error or "blockhash expired")
        if self.is_timeout:
            raise ConfirmationTimeoutError(self.signature, self.timeout_seconds or 0.0)
        if self.is_cancelled:
            raise ConfirmationCancelled(self.signature)
        raise TxFlowError(f"Outcome is not terminal: {self.status.value}", ErrorCode.TX_SEND_FAILED)

    def __str__(self) -> str:
        if self.is_confirmed:
            sig_display = f"{self.signature[:16]}..." if self.signature else "no signature"
            return f"SubmissionOutcome(CONFIRMED, slot={self.slot}, {sig_display})"
        return f"SubmissionOutcome({self.status.value}, error={self.error})"
