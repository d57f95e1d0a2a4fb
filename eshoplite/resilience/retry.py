"""
Retry-with-backoff policy built on tenacity.

A call is attempted once and then retried up to `max_retries` times. The
delay before retry `n` is `backoff_base ** n` seconds (2s, 4s, 8s with the
defaults). Transient transport failures are retried, and so is HTTP 404
while `retry_on_not_found` is set. Everything else, including an open
circuit and cancellation, is raised immediately.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    stop_any,
)

from eshoplite.config import RetryConfig
from eshoplite.errors import NotFoundError, TransportError
from eshoplite.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[None]]


class RetryPolicy:
    def __init__(
        self,
        target: str,
        max_retries: int = 3,
        backoff_base: float = 2.0,
        retry_on_not_found: bool = True,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.target = target
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.retry_on_not_found = retry_on_not_found
        self._sleep = sleep

    @classmethod
    def from_config(cls, target: str, config: RetryConfig, sleep: Sleeper = asyncio.sleep) -> "RetryPolicy":
        return cls(
            target=target,
            max_retries=config.max_retries,
            backoff_base=config.backoff_base,
            retry_on_not_found=config.retry_on_not_found,
            sleep=sleep,
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def backoff(self, retry_number: int) -> float:
        """Delay in seconds before the given retry (1-based)."""
        return float(self.backoff_base**retry_number)

    def is_retryable(self, exc: BaseException) -> bool:
        if isinstance(exc, NotFoundError):
            return self.retry_on_not_found
        if isinstance(exc, TransportError):
            return exc.is_transient
        return False

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.backoff(retry_state.attempt_number)

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        log.warning(
            f"[RETRY {retry_state.attempt_number}/{self.max_retries}] {self.target} "
            f"in {delay:.1f}s due to: {exc}",
            extra={
                "target": self.target,
                "attempt": retry_state.attempt_number,
                "delay": delay,
                "status": getattr(exc, "status", None),
            },
        )

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        halt: Optional[Callable[[], bool]] = None,
    ) -> T:
        """
        Run `operation`, retrying retryable failures with exponential backoff.

        The last failure is re-raised unchanged once the budget is spent, or
        as soon as `halt()` returns True after a failed attempt.
        """
        attempts = 0

        async def attempt() -> T:
            nonlocal attempts
            attempts += 1
            return await operation()

        stop = stop_after_attempt(self.max_attempts)
        if halt is not None:
            stop = stop_any(stop, lambda retry_state: halt())

        retrying = AsyncRetrying(
            stop=stop,
            wait=self._wait,
            retry=retry_if_exception(self.is_retryable),
            before_sleep=self._before_sleep,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            return await retrying(attempt)
        except Exception as exc:
            if self.is_retryable(exc) and attempts < self.max_attempts:
                log.error(
                    f"[RETRY HALTED] {self.target} after {attempts} attempts: {exc}",
                    extra={"target": self.target, "attempts": attempts},
                )
            elif self.is_retryable(exc):
                log.error(
                    f"[RETRY EXHAUSTED] {self.target} after {attempts} attempts: {exc}",
                    extra={"target": self.target, "attempts": attempts},
                )
            raise


__all__ = ["RetryPolicy", "Sleeper"]
