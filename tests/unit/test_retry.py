"""Unit tests for the bounded retry combinator"""

import pytest
from negotiation_gateway.utils.retry import RetriesExhausted, retry


class Clash(Exception):
    pass


def _flaky(failures: int, error=Clash):
    calls = []

    async def fn(attempt: int) -> str:
        calls.append(attempt)
        if len(calls) <= failures:
            raise error("taken")
        return f"ok on {attempt}"

    return fn, calls


async def test_retry_succeeds_first_time():
    fn, calls = _flaky(0)

    assert await retry(fn, max_attempts=5, is_retryable=lambda e: isinstance(e, Clash)) == "ok on 1"
    assert calls == [1]


async def test_retry_recovers_after_retryable_errors():
    fn, calls = _flaky(2)
    retried = []

    result = await retry(
        fn,
        max_attempts=5,
        is_retryable=lambda e: isinstance(e, Clash),
        on_retry=lambda attempt, e: retried.append(attempt),
    )

    assert result == "ok on 3"
    assert calls == [1, 2, 3]
    assert retried == [1, 2]


async def test_retry_gives_up_after_max_attempts():
    fn, calls = _flaky(10)

    with pytest.raises(RetriesExhausted) as exc_info:
        await retry(fn, max_attempts=5, is_retryable=lambda e: isinstance(e, Clash))

    assert calls == [1, 2, 3, 4, 5]
    assert exc_info.value.attempts == 5
    assert isinstance(exc_info.value.last_error, Clash)


async def test_retry_does_not_retry_other_errors():
    fn, calls = _flaky(1, error=RuntimeError)

    with pytest.raises(RuntimeError):
        await retry(fn, max_attempts=5, is_retryable=lambda e: isinstance(e, Clash))

    assert calls == [1]


async def test_retry_requires_an_attempt():
    fn, _ = _flaky(0)

    with pytest.raises(ValueError):
        await retry(fn, max_attempts=0, is_retryable=lambda e: True)
