"""Exponential backoff around extraction calls for transient provider errors."""

import time
from collections.abc import Callable
from typing import TypeVar

from docimport.core.utils import get_logger

logger = get_logger("doc-import.retry")

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({429, 503})
RETRYABLE_MARKERS = ("429", "503", "resource exhausted", "resource_exhausted", "overloaded")


def error_status_code(exc: BaseException) -> int | None:
    """HTTP status carried by a provider error, when the SDK exposes one."""
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_retryable(exc: BaseException) -> bool:
    """Whether an error signals rate limiting, overload, or temporary unavailability."""
    if error_status_code(exc) in RETRYABLE_STATUS_CODES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in RETRYABLE_MARKERS)


class RetryPolicy:
    """Retries a call on transient provider errors with exponential backoff.

    Delays are ``base_delay * 2 ** (attempt - 1)``: 2s, 4s, 8s, 16s with the defaults. The call is attempted at
    most ``max_attempts`` times; the last error propagates. Non-retryable errors propagate immediately.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        base_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the policy; ``sleep`` is injectable so tests do not wait."""
        if max_attempts < 1:
            msg = f"max_attempts must be at least 1, got {max_attempts}"
            raise ValueError(msg)
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt (1-based)."""
        return self.base_delay * 2 ** (attempt - 1)

    def call(self, fn: Callable[[], T], on_retry: Callable[[int, int], None] | None = None) -> T:
        """Run ``fn``, retrying transient failures.

        ``on_retry(attempt, max_attempts)`` is called before each backoff sleep.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return fn()
            except Exception as exc:
                if not is_retryable(exc) or attempt >= self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    f"[AI Retry] {type(exc).__name__}: {exc}. Attempt {attempt}/{self.max_attempts}, "
                    f"waiting {delay:.0f}s"
                )
                if on_retry is not None:
                    on_retry(attempt, self.max_attempts)
                self.sleep(delay)
