"""Tests for exponential backoff."""

from __future__ import annotations

import pytest

from plan_overlay.errors import CollaboratorUnavailable, RateLimited, TransientNetworkError
from plan_overlay.llm.retry import with_backoff


class Flaky:
    def __init__(self, failures: list[Exception], result: str = "ok") -> None:
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.mark.asyncio
async def test_retries_transient_errors_with_growing_delay():
    call = Flaky([TransientNetworkError("503"), RateLimited("429")])
    sleep = RecordingSleep()

    assert await with_backoff(call, attempts=3, base_delay=1.0, sleep=sleep) == "ok"
    assert call.calls == 3
    assert len(sleep.delays) == 2
    assert 1.2 <= sleep.delays[0] <= 1.5
    assert 2.2 <= sleep.delays[1] <= 2.5


@pytest.mark.asyncio
async def test_gives_up_after_attempts():
    call = Flaky([TransientNetworkError("first"), TransientNetworkError("second"), TransientNetworkError("third")])
    sleep = RecordingSleep()
    with pytest.raises(TransientNetworkError, match="third"):
        await with_backoff(call, attempts=3, sleep=sleep)
    assert call.calls == 3


@pytest.mark.asyncio
async def test_permanent_errors_are_not_retried():
    call = Flaky([CollaboratorUnavailable("bad key")])
    sleep = RecordingSleep()
    with pytest.raises(CollaboratorUnavailable):
        await with_backoff(call, attempts=3, sleep=sleep)
    assert call.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_zero_attempts_is_an_error():
    with pytest.raises(ValueError):
        await with_backoff(Flaky([]), attempts=0)
