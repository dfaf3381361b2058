"""Bounded retry combinator for async operations"""

import logging
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RetriesExhausted(Exception):
    """Every attempt failed with a retryable error"""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


async def retry(
    fn: Callable[[int], Awaitable[T]],
    max_attempts: int,
    is_retryable: Callable[[BaseException], bool],
    on_retry: Callable[[int, BaseException], None] | None = None,
) -> T:
    """
    Run ``fn`` until it succeeds or ``max_attempts`` is reached.

    ``fn`` receives the 1-based attempt number. Errors rejected by
    ``is_retryable`` propagate immediately; retryable errors on the last
    attempt raise RetriesExhausted chained to the final error.
    No delay between attempts: callers retry against fresh server state.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            return await fn(attempt)
        except Exception as e:
            if not is_retryable(e):
                raise
            if attempt >= max_attempts:
                raise RetriesExhausted(attempt, e) from e
            if on_retry is not None:
                on_retry(attempt, e)
            logger.debug("Retrying after attempt %d: %s", attempt, e)

    raise AssertionError("unreachable")
