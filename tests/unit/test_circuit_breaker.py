from __future__ import annotations

import asyncio
from typing import List, Tuple

import pytest

from eshoplite.config import BreakerConfig
from eshoplite.errors import CircuitOpenError, DecodeError, NotFoundError, TransportError
from eshoplite.resilience import CircuitBreaker, CircuitState, qualifies_as_failure

THRESHOLD = 5
BREAK_SECONDS = 30.0


def _transient() -> TransportError:
    return TransportError("connection refused", "products")


async def _fail(exc: Exception) -> None:
    raise exc


async def _ok() -> str:
    return "ok"


def _breaker(clock, **kwargs) -> CircuitBreaker:
    kwargs.setdefault("failure_threshold", THRESHOLD)
    kwargs.setdefault("break_seconds", BREAK_SECONDS)
    return CircuitBreaker("products", clock=clock, **kwargs)


async def _trip(breaker: CircuitBreaker, failures: int = THRESHOLD) -> None:
    for _ in range(failures):
        with pytest.raises(TransportError):
            await breaker.call(lambda: _fail(_transient()))


def test_qualifying_failures() -> None:
    assert qualifies_as_failure(_transient())
    assert qualifies_as_failure(TransportError("bad gateway", "products", status=502))
    assert qualifies_as_failure(TransportError("timeout", "products", status=408))
    assert not qualifies_as_failure(TransportError("bad request", "products", status=400))
    assert not qualifies_as_failure(DecodeError("bad json", "products"))
    assert not qualifies_as_failure(NotFoundError("missing", "products"))
    assert qualifies_as_failure(NotFoundError("missing", "products"), count_not_found=True)


@pytest.mark.asyncio
async def test_opens_after_consecutive_failures_and_fails_fast(clock) -> None:
    breaker = _breaker(clock)
    calls = 0

    async def operation() -> str:
        nonlocal calls
        calls += 1
        return "ok"

    await _trip(breaker, THRESHOLD - 1)
    assert breaker.state is CircuitState.CLOSED
    assert breaker.failure_count == THRESHOLD - 1

    await _trip(breaker, 1)
    assert breaker.state is CircuitState.OPEN

    clock.advance(BREAK_SECONDS - 1)
    with pytest.raises(CircuitOpenError) as excinfo:
        await breaker.call(operation)

    assert calls == 0
    assert excinfo.value.target == "products"
    assert excinfo.value.retry_after == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_success_resets_consecutive_failure_count(clock) -> None:
    breaker = _breaker(clock)

    await _trip(breaker, THRESHOLD - 1)
    assert await breaker.call(_ok) == "ok"
    await _trip(breaker, THRESHOLD - 1)

    assert breaker.state is CircuitState.CLOSED
    assert breaker.failure_count == THRESHOLD - 1


@pytest.mark.asyncio
async def test_non_qualifying_errors_do_not_trip(clock) -> None:
    breaker = _breaker(clock, count_not_found=False)

    for _ in range(THRESHOLD * 2):
        with pytest.raises(NotFoundError):
            await breaker.call(lambda: _fail(NotFoundError("missing", "products")))
        with pytest.raises(DecodeError):
            await breaker.call(lambda: _fail(DecodeError("bad json", "products")))

    assert breaker.state is CircuitState.CLOSED
    assert breaker.failure_count == 0


@pytest.mark.asyncio
async def test_half_open_admits_single_probe_and_success_closes(clock) -> None:
    breaker = _breaker(clock)
    await _trip(breaker)

    clock.advance(BREAK_SECONDS)
    assert breaker.state is CircuitState.HALF_OPEN

    breaker.acquire()
    with pytest.raises(CircuitOpenError):
        breaker.acquire()

    breaker.record_success()

    assert breaker.state is CircuitState.CLOSED
    assert breaker.failure_count == 0
    assert await breaker.call(_ok) == "ok"


@pytest.mark.asyncio
async def test_failed_probe_reopens_for_full_break(clock) -> None:
    breaker = _breaker(clock)
    await _trip(breaker)
    clock.advance(BREAK_SECONDS)

    with pytest.raises(TransportError):
        await breaker.call(lambda: _fail(_transient()))

    assert breaker.state is CircuitState.OPEN
    clock.advance(BREAK_SECONDS - 0.5)
    with pytest.raises(CircuitOpenError):
        await breaker.call(_ok)
    clock.advance(0.5)
    assert await breaker.call(_ok) == "ok"
    assert breaker.state is CircuitState.CLOSED


@pytest.mark.asyncio
async def test_cancelled_probe_releases_half_open_slot(clock) -> None:
    breaker = _breaker(clock, failure_threshold=1)
    await _trip(breaker, 1)
    clock.advance(BREAK_SECONDS)

    started = asyncio.Event()

    async def hang() -> None:
        started.set()
        await asyncio.sleep(10)

    task = asyncio.create_task(breaker.call(hang))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert breaker.state is CircuitState.HALF_OPEN
    assert await breaker.call(_ok) == "ok"
    assert breaker.state is CircuitState.CLOSED


def test_outcomes_admitted_before_the_break_are_ignored(clock) -> None:
    breaker = _breaker(clock, failure_threshold=1)
    early_success = breaker.acquire()
    early_failure = breaker.acquire()
    breaker.record_failure(breaker.acquire())
    clock.advance(BREAK_SECONDS)
    trial = breaker.acquire()

    breaker.record_success(early_success)
    breaker.record_failure(early_failure)
    breaker.release(early_success)

    assert breaker.state is CircuitState.HALF_OPEN
    with pytest.raises(CircuitOpenError):
        breaker.acquire()

    breaker.record_success(trial)
    assert breaker.state is CircuitState.CLOSED


@pytest.mark.asyncio
async def test_slow_call_from_closed_period_does_not_settle_half_open(clock) -> None:
    breaker = _breaker(clock, failure_threshold=1)
    finish_slow = asyncio.Event()
    finish_trial = asyncio.Event()

    async def slow() -> str:
        await finish_slow.wait()
        return "slow"

    async def failing_trial() -> None:
        await finish_trial.wait()
        raise _transient()

    slow_task = asyncio.create_task(breaker.call(slow))
    await asyncio.sleep(0)
    await _trip(breaker, 1)
    clock.advance(BREAK_SECONDS)
    trial_task = asyncio.create_task(breaker.call(failing_trial))
    await asyncio.sleep(0)

    finish_slow.set()
    assert await slow_task == "slow"
    assert breaker.state is CircuitState.HALF_OPEN

    finish_trial.set()
    with pytest.raises(TransportError):
        await trial_task
    assert breaker.state is CircuitState.OPEN


@pytest.mark.asyncio
async def test_state_change_callback_and_stats(clock) -> None:
    transitions: List[Tuple[str, CircuitState, CircuitState]] = []
    breaker = CircuitBreaker.from_config(
        "stores",
        BreakerConfig(failure_threshold=2, break_seconds=10.0),
        clock=clock,
        on_state_change=lambda name, old, new: transitions.append((name, old, new)),
    )

    for _ in range(2):
        with pytest.raises(TransportError):
            await breaker.call(lambda: _fail(_transient()))
    with pytest.raises(CircuitOpenError):
        await breaker.call(_ok)

    stats = breaker.stats().to_dict()
    assert stats["name"] == "stores"
    assert stats["state"] == "open"
    assert stats["failure_count"] == 2
    assert stats["total_calls"] == 3
    assert stats["rejected_calls"] == 1
    assert stats["opened_until"] == pytest.approx(clock() + 10.0)

    clock.advance(10.0)
    await breaker.call(_ok)

    assert transitions == [
        ("stores", CircuitState.CLOSED, CircuitState.OPEN),
        ("stores", CircuitState.OPEN, CircuitState.HALF_OPEN),
        ("stores", CircuitState.HALF_OPEN, CircuitState.CLOSED),
    ]


@pytest.mark.asyncio
async def test_failing_callback_does_not_break_breaker(clock) -> None:
    def explode(name, old, new) -> None:
        raise RuntimeError("listener failed")

    breaker = _breaker(clock, failure_threshold=1, on_state_change=explode)

    await _trip(breaker, 1)

    assert breaker.state is CircuitState.OPEN


@pytest.mark.asyncio
async def test_reset_closes_circuit(clock) -> None:
    breaker = _breaker(clock)
    await _trip(breaker)

    breaker.reset()

    assert breaker.state is CircuitState.CLOSED
    assert breaker.failure_count == 0
    assert await breaker.call(_ok) == "ok"
