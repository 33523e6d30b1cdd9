"""Tests for CancellationToken and guarded()."""

import asyncio

import pytest

from booking_intake.utils.cancellation import CancellationToken, guarded
from booking_intake.utils.exceptions import CancellationRequestedError


async def answer(value, delay=0.0):
    await asyncio.sleep(delay)
    return value


@pytest.mark.asyncio
async def test_guard_returns_result():
    token = CancellationToken()

    assert await token.guard(answer(42)) == 42
    assert not token.cancelled


@pytest.mark.asyncio
async def test_guard_raises_when_already_cancelled():
    token = CancellationToken()
    token.cancel("too late")
    work = answer(1)

    with pytest.raises(CancellationRequestedError, match="too late"):
        await token.guard(work)
    work.close()


@pytest.mark.asyncio
async def test_guard_stops_waiting_when_token_fires():
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    loop.call_later(0.05, token.cancel, "abandoned")
    started = loop.time()

    with pytest.raises(CancellationRequestedError, match="abandoned"):
        await token.guard(answer(1, delay=5.0))

    assert loop.time() - started < 1.0


@pytest.mark.asyncio
async def test_first_reason_wins():
    token = CancellationToken()
    token.cancel("first")
    token.cancel("second")

    assert token.reason == "first"
    with pytest.raises(CancellationRequestedError, match="first"):
        token.raise_if_cancelled()


@pytest.mark.asyncio
async def test_guarded_without_token():
    assert await guarded(answer("ok"), None) == "ok"


@pytest.mark.asyncio
async def test_guard_propagates_work_errors():
    token = CancellationToken()

    async def broken():
        raise ValueError("bad payload")

    with pytest.raises(ValueError, match="bad payload"):
        await guarded(broken(), token)
