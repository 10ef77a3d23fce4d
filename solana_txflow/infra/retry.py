"""
Retry Logic Helper Module

Bounded exponential backoff for transport-level failures, plus
structured logging with correlation IDs for transaction tracing.
"""

import logging
import time
import uuid
import contextvars
from typing import Callable, Optional, Tuple, TypeVar

from ..errors import ErrorCode, TxFlowError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Context variable for correlation ID (thread-safe)
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for transaction tracing."""
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    """Set the correlation ID in context. Returns token for reset."""
    return _correlation_id.set(correlation_id)


class CorrelationContext:
    """
    Context manager for correlation ID scoping.

    Usage:
        with CorrelationContext("transfer") as cid:
            logger.info(f"[{cid}] Starting operation")
            outcome = sender.send_and_confirm(tx)
    """

    def __init__(self, prefix: Optional[str] = None):
        self.correlation_id = generate_correlation_id()
        if prefix:
            self.correlation_id = f"{prefix}_{self.correlation_id}"
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _correlation_id.reset(self._token)


def log_with_correlation(
    level: int,
    message: str,
    operation_name: str,
    attempt: Optional[int] = None,
    max_attempts: Optional[int] = None,
    **extra
):
    """
    Log message with correlation ID and structured context.

    Args:
        level: Logging level (logging.INFO, logging.WARNING, etc.)
        message: Log message
        operation_name: Name of the operation being executed
        attempt: Current attempt number (1-indexed)
        max_attempts: Maximum number of attempts
        **extra: Additional context fields
    """
    cid = get_correlation_id()

    parts = []
    if cid:
        parts.append(f"[{cid}]")
    parts.append(f"[{operation_name}]")
    if attempt is not None and max_attempts is not None:
        parts.append(f"[{attempt}/{max_attempts}]")
    parts.append(message)

    extra_context = {
        "correlation_id": cid,
        "operation": operation_name,
        "attempt": attempt,
        "max_attempts": max_attempts,
        **extra
    }

    logger.log(level, " ".join(parts), extra=extra_context)


# Error keywords for classification of foreign exceptions
RECOVERABLE_KEYWORDS = [
    "timeout", "timed out", "connection", "network", "rate limit",
    "too many requests", "503", "502", "504",
    "temporarily unavailable", "service unavailable",
    "econnreset", "enotfound", "etimedout",
    "socket hang up", "request failed",
]


def classify_error(error: Exception) -> Tuple[bool, Optional[ErrorCode]]:
    """
    Classify an error to determine if it is a retryable transport failure.

    Library errors carry their own recoverable flag and code; anything
    else is classified by message keywords.

    Returns:
        Tuple of (is_recoverable, error_code)
    """
    if isinstance(error, TxFlowError):
        return error.recoverable, error.code

    error_str = str(error).lower()
    if not any(keyword in error_str for keyword in RECOVERABLE_KEYWORDS):
        return False, None

    if "timeout" in error_str or "timed out" in error_str:
        return True, ErrorCode.RPC_TIMEOUT
    if any(kw in error_str for kw in ["connection", "network", "socket"]):
        return True, ErrorCode.RPC_CONNECTION_FAILED
    if "rate limit" in error_str or "too many requests" in error_str:
        return True, ErrorCode.RPC_RATE_LIMITED
    return True, ErrorCode.RPC_INVALID_RESPONSE


def backoff_delay(attempt: int, base: float, max_delay: float) -> float:
    """Delay before retry number attempt+1: base, 2*base, 4*base ... capped"""
    return min(base * (2 ** attempt), max_delay)


def call_with_backoff(
    operation: Callable[[], T],
    operation_name: str,
    max_attempts: int,
    base_delay: float,
    max_delay: float,
    sleep: Callable[[float], object] = time.sleep,
) -> Tuple[T, int]:
    """
    Run operation, retrying recoverable failures with exponential backoff.

    Args:
        operation: Zero-argument callable
        operation_name: Name for logging purposes
        max_attempts: Attempt ceiling (>= 1)
        base_delay: First retry delay in seconds
        max_delay: Upper bound on any single delay
        sleep: Wait function; a cancellable wait may be supplied

    Returns:
        (result, attempts_used)

    Raises:
        The last error once attempts are exhausted, or immediately for
        non-recoverable errors.
    """
    max_attempts = max(1, max_attempts)

    for attempt in range(max_attempts):
        try:
            result = operation()
            if attempt > 0:
                log_with_correlation(
                    logging.INFO,
                    f"Succeeded after {attempt + 1} attempts",
                    operation_name,
                    attempt + 1,
                    max_attempts,
                )
            return result, attempt + 1

        except Exception as e:
            is_recoverable, error_code = classify_error(e)

            if not is_recoverable or attempt >= max_attempts - 1:
                log_with_correlation(
                    logging.ERROR,
                    f"Failed: {e}",
                    operation_name,
                    attempt + 1,
                    max_attempts,
                    error_type="fatal" if not is_recoverable else "exhausted",
                    error_code=error_code.value if error_code else None,
                )
                raise

            delay = backoff_delay(attempt, base_delay, max_delay)
            log_with_correlation(
                logging.WARNING,
                f"Recoverable error, retrying in {delay:.2f}s: {e}",
                operation_name,
                attempt + 1,
                max_attempts,
                error_type="recoverable",
                error_code=error_code.value if error_code else None,
            )
            sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError(f"{operation_name}: no attempts made")
