"""
Per-target resilience policy: retry -> circuit breaker -> attempt timeout.

One `ResiliencePolicy` is built per backend target and shared by every call
to it. Each attempt made by the retry policy goes through the breaker, so
retries count toward (and can trip) the breaker, and an open circuit stops the
retry loop immediately.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional, TypeVar

from eshoplite.config import TargetConfig
from eshoplite.errors import TransportError
from eshoplite.resilience.circuit_breaker import CircuitBreaker, CircuitState, StateChangeCallback
from eshoplite.resilience.retry import RetryPolicy, Sleeper

T = TypeVar("T")


class ResiliencePolicy:
    def __init__(
        self,
        target: str,
        retry: RetryPolicy,
        breaker: CircuitBreaker,
        attempt_timeout: float = 30.0,
    ) -> None:
        self.target = target
        self.retry = retry
        self.breaker = breaker
        self.attempt_timeout = attempt_timeout

    @classmethod
    def from_config(
        cls,
        config: TargetConfig,
        sleep: Sleeper = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Optional[StateChangeCallback] = None,
    ) -> "ResiliencePolicy":
        """Build the policy for one target from its explicit configuration."""
        return cls(
            target=config.name,
            retry=RetryPolicy.from_config(config.name, config.retry, sleep=sleep),
            breaker=CircuitBreaker.from_config(
                config.name, config.breaker, clock=clock, on_state_change=on_state_change
            ),
            attempt_timeout=config.attempt_timeout_seconds,
        )

    async def _bounded(self, operation: Callable[[], Awaitable[T]]) -> T:
        try:
            return await asyncio.wait_for(operation(), timeout=self.attempt_timeout)
        except asyncio.TimeoutError as exc:
            raise TransportError(
                f"Attempt on '{self.target}' exceeded {self.attempt_timeout:.1f}s",
                self.target,
                cause=exc,
            ) from exc

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run `operation` with retry, circuit breaking and a per-attempt timeout.

        Raises
        ------
        CircuitOpenError
            The circuit is open; `operation` was not run.
        ApiError
            The last failure once retries are exhausted, or any non-retryable one.
        """

        async def attempt() -> T:
            return await self.breaker.call(lambda: self._bounded(operation))

        return await self.retry.execute(
            attempt, halt=lambda: self.breaker.state is CircuitState.OPEN
        )


__all__ = ["ResiliencePolicy"]
