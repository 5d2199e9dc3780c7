import asyncio

import pytest

from fakes import rate_limited
from services.rpc.call_throttler import CallThrottler
from services.rpc.errors import ChainError, ChainErrorKind
from services.rpc.provider_failover import ProviderFailoverExecutor

ENDPOINTS = ["https://a.example", "https://b.example", "https://c.example"]


def make_executor(endpoints=ENDPOINTS):
    return ProviderFailoverExecutor(endpoints, CallThrottler(3), backoff_seconds=0)


@pytest.mark.asyncio
async def test_rate_limit_rotates_once_and_retries():
    executor = make_executor()
    rebound = []
    executor.add_rebind_listener(rebound.append)
    calls = []

    async def call():
        calls.append(executor.current_endpoint)
        if len(calls) == 1:
            raise rate_limited()
        return 42

    assert await executor.execute(call) == 42
    assert calls == ["https://a.example", "https://b.example"]
    assert executor.index == 1
    assert rebound == ["https://b.example"]


@pytest.mark.asyncio
async def test_exhausted_attempts_reraise_the_same_error():
    executor = make_executor()
    errors = []

    async def call():
        error = rate_limited()
        errors.append(error)
        raise error

    with pytest.raises(ChainError) as info:
        await executor.execute(call, max_attempts=2)

    assert len(errors) == 2
    assert info.value is errors[-1]
    # one rotation between the two attempts, none after the last
    assert executor.index == 1


@pytest.mark.asyncio
async def test_other_errors_do_not_rotate():
    executor = make_executor()
    original = ChainError(ChainErrorKind.CONTRACT_REVERTED, "reverted", reason="Week not active")

    async def call():
        raise original

    with pytest.raises(ChainError) as info:
        await executor.execute(call, max_attempts=3)

    assert info.value is original
    assert executor.index == 0


@pytest.mark.asyncio
async def test_non_chain_errors_pass_through():
    executor = make_executor()

    async def call():
        raise KeyError("oops")

    with pytest.raises(KeyError):
        await executor.execute(call)
    assert executor.index == 0


def test_rotation_wraps_around():
    executor = make_executor(["https://a.example", "https://b.example"])
    assert executor.rotate() == "https://b.example"
    assert executor.rotate() == "https://a.example"
    assert executor.index == 0


def test_requires_endpoints_and_attempts():
    with pytest.raises(ValueError):
        ProviderFailoverExecutor([], CallThrottler())


@pytest.mark.asyncio
async def test_max_attempts_must_be_positive():
    executor = make_executor()

    async def call():
        return 1

    with pytest.raises(ValueError):
        await executor.execute(call, max_attempts=0)


@pytest.mark.asyncio
async def test_backoff_grows_with_each_attempt():
    executor = ProviderFailoverExecutor(ENDPOINTS, CallThrottler(3), backoff_seconds=0.02)
    started = []

    async def call():
        started.append(asyncio.get_running_loop().time())
        raise rate_limited()

    with pytest.raises(ChainError):
        await executor.execute(call, max_attempts=3)

    assert len(started) == 3
    assert started[1] - started[0] >= 0.02 * 0.9
    assert started[2] - started[1] >= 0.04 * 0.9
    assert executor.index == 2
