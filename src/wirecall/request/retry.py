"""Retry policy for failed request attempts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from ..errors import NonRetriableError

RetryPredicate = Callable[[BaseException], bool]


def default_should_retry(error: BaseException) -> bool:
    """
    Default retry predicate.

    Retries transport failures, timeouts and generic HTTP errors. Never
    retries errors marked NonRetriableError, which covers 401s,
    cancellations and request-construction failures.
    """
    return not isinstance(error, NonRetriableError)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry behavior for a single request.

    Attributes:
        max_retry_count: Retries allowed after the first attempt
        delay: Seconds to wait before each retry
        should_retry: Predicate deciding whether an error is retryable

    Example:
        # Retry up to 3 times on 5xx only
        policy = RetryPolicy(
            max_retry_count=3,
            delay=0.5,
            should_retry=lambda e: isinstance(e, HTTPError) and e.status_code >= 500,
        )
    """

    max_retry_count: int = 1
    delay: float = 1.0
    should_retry: RetryPredicate = field(default=default_should_retry)

    def __post_init__(self) -> None:
        if self.max_retry_count < 0:
            raise ValueError("max_retry_count must be >= 0")
        if self.delay < 0:
            raise ValueError("delay must be >= 0")

    def allows_retry(self, attempt: int, error: BaseException) -> bool:
        """Whether a failure on ``attempt`` (0-indexed) should be retried."""
        return attempt < self.max_retry_count and self.should_retry(error)


NO_RETRY = RetryPolicy(max_retry_count=0, delay=0.0)
