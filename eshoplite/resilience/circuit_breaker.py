"""
Per-target circuit breaker.

A breaker stops calling a backend after `failure_threshold` consecutive
qualifying failures, rejects calls for `break_seconds`, then admits a single
probe call. State is guarded by a `threading.Lock` that is never held across
an `await`, so one breaker can be shared by every task (and thread) calling
the same backend.
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Tuple, TypeVar

from eshoplite.config import BreakerConfig
from eshoplite.errors import CircuitOpenError, NotFoundError, TransportError
from eshoplite.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

# (name, old_state, new_state)
StateChangeCallback = Callable[[str, "CircuitState", "CircuitState"], Any]


class CircuitState(Enum):
    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing if recovered


@dataclass(frozen=True)
class CircuitStats:
    """Point-in-time snapshot of a breaker, for diagnostics."""

    name: str
    state: CircuitState
    failure_count: int
    opened_until: Optional[float]
    total_calls: int
    rejected_calls: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "opened_until": self.opened_until,
            "total_calls": self.total_calls,
            "rejected_calls": self.rejected_calls,
        }


def qualifies_as_failure(exc: BaseException, count_not_found: bool = False) -> bool:
    """
    Whether an exception counts toward tripping the breaker.

    Transient transport errors always count. A 404 counts only when
    `count_not_found` is set. Decode errors and other 4xx responses mean the
    backend answered, so they do not.
    """
    if isinstance(exc, NotFoundError):
        return count_not_found
    if isinstance(exc, TransportError):
        return exc.is_transient
    return False


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker with a single half-open probe.

    Parameters
    ----------
    name : str
        Target name, reported in errors and logs.
    failure_threshold : int
        Consecutive qualifying failures that open the circuit.
    break_seconds : float
        How long the circuit stays open before a probe is admitted.
    count_not_found : bool
        Whether HTTP 404 counts as a qualifying failure.
    clock : callable
        Monotonic time source in seconds.
    on_state_change : callable, optional
        Called with (name, old_state, new_state) after every transition.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        break_seconds: float = 30.0,
        count_not_found: bool = False,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Optional[StateChangeCallback] = None,
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.break_seconds = break_seconds
        self.count_not_found = count_not_found
        self._clock = clock
        self._on_state_change = on_state_change

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_until: Optional[float] = None
        self._probe_in_flight = False
        # Bumped on every transition; outcomes from an older generation are ignored.
        self._generation = 0
        self._total_calls = 0
        self._rejected_calls = 0
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        name: str,
        config: BreakerConfig,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Optional[StateChangeCallback] = None,
    ) -> "CircuitBreaker":
        return cls(
            name=name,
            failure_threshold=config.failure_threshold,
            break_seconds=config.break_seconds,
            count_not_found=config.count_not_found,
            clock=clock,
            on_state_change=on_state_change,
        )

    @property
    def state(self) -> CircuitState:
        with self._lock:
            transitions = self._check_recovery_transition()
            state = self._state
        self._notify(transitions)
        return state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    def stats(self) -> CircuitStats:
        with self._lock:
            transitions = self._check_recovery_transition()
            snapshot = CircuitStats(
                name=self.name,
                state=self._state,
                failure_count=self._failure_count,
                opened_until=self._opened_until,
                total_calls=self._total_calls,
                rejected_calls=self._rejected_calls,
            )
        self._notify(transitions)
        return snapshot

    def _transition(self, new_state: CircuitState) -> Tuple[CircuitState, CircuitState]:
        """Must be called while holding self._lock."""
        old_state = self._state
        self._state = new_state
        self._generation += 1
        return old_state, new_state

    def _is_stale(self, generation: Optional[int]) -> bool:
        """Must be called while holding self._lock."""
        return generation is not None and generation != self._generation

    def _check_recovery_transition(self) -> List[Tuple[CircuitState, CircuitState]]:
        """
        Move OPEN -> HALF_OPEN once the break has elapsed.

        Must be called while holding self._lock.
        """
        if (
            self._state == CircuitState.OPEN
            and self._opened_until is not None
            and self._clock() >= self._opened_until
        ):
            self._probe_in_flight = False
            return [self._transition(CircuitState.HALF_OPEN)]
        return []

    def _open(self) -> Tuple[CircuitState, CircuitState]:
        """Must be called while holding self._lock."""
        self._opened_until = self._clock() + self.break_seconds
        self._probe_in_flight = False
        return self._transition(CircuitState.OPEN)

    def _notify(self, transitions: List[Tuple[CircuitState, CircuitState]]) -> None:
        for old_state, new_state in transitions:
            if new_state == CircuitState.OPEN:
                log.warning(
                    f"[CIRCUIT OPEN] {self.name}: {old_state.value} -> {new_state.value} "
                    f"for {self.break_seconds:.1f}s",
                    extra={"target": self.name, "failure_count": self._failure_count},
                )
            else:
                log.info(
                    f"[CIRCUIT {new_state.name}] {self.name}: {old_state.value} -> {new_state.value}",
                    extra={"target": self.name},
                )
            if self._on_state_change is not None:
                try:
                    self._on_state_change(self.name, old_state, new_state)
                except Exception:  # noqa: BLE001
                    log.exception(
                        f"Circuit breaker state-change callback failed for {self.name}",
                        extra={"target": self.name},
                    )

    def acquire(self) -> int:
        """
        Admit a call or raise CircuitOpenError.

        In HALF_OPEN only one call (the probe) is admitted until it completes.
        Returns the generation the call was admitted under; pass it back to
        `record_success` / `record_failure` / `release`.
        """
        with self._lock:
            transitions = self._check_recovery_transition()
            self._total_calls += 1
            admitted = True
            retry_after = 0.0
            if self._state == CircuitState.OPEN:
                admitted = False
                retry_after = max(0.0, (self._opened_until or 0.0) - self._clock())
            elif self._state == CircuitState.HALF_OPEN:
                if self._probe_in_flight:
                    admitted = False
                else:
                    self._probe_in_flight = True
            if not admitted:
                self._rejected_calls += 1
            generation = self._generation
        self._notify(transitions)
        if not admitted:
            raise CircuitOpenError(self.name, retry_after)
        return generation

    def record_success(self, generation: Optional[int] = None) -> None:
        with self._lock:
            if self._is_stale(generation):
                return
            transitions = []
            if self._state == CircuitState.HALF_OPEN:
                self._failure_count = 0
                self._opened_until = None
                self._probe_in_flight = False
                transitions.append(self._transition(CircuitState.CLOSED))
            elif self._state == CircuitState.CLOSED:
                self._failure_count = 0
        self._notify(transitions)

    def record_failure(self, generation: Optional[int] = None) -> None:
        with self._lock:
            if self._is_stale(generation):
                return
            transitions = []
            if self._state == CircuitState.HALF_OPEN:
                self._failure_count += 1
                transitions.append(self._open())
            elif self._state == CircuitState.CLOSED:
                self._failure_count += 1
                if self._failure_count >= self.failure_threshold:
                    transitions.append(self._open())
        self._notify(transitions)

    def release(self, generation: Optional[int] = None) -> None:
        """Give back an admitted call that ended without an outcome (cancellation)."""
        with self._lock:
            if self._state == CircuitState.HALF_OPEN and not self._is_stale(generation):
                self._probe_in_flight = False

    def record_outcome(self, exc: Optional[BaseException], generation: Optional[int] = None) -> None:
        """Classify the outcome of an admitted call and update state."""
        if exc is not None and qualifies_as_failure(exc, self.count_not_found):
            self.record_failure(generation)
        else:
            self.record_success(generation)

    def reset(self) -> None:
        """Force the breaker back to CLOSED."""
        with self._lock:
            transitions = []
            if self._state != CircuitState.CLOSED:
                transitions.append(self._transition(CircuitState.CLOSED))
            self._failure_count = 0
            self._opened_until = None
            self._probe_in_flight = False
        self._notify(transitions)

    async def call(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run `operation` under breaker protection.

        Raises CircuitOpenError without running it when the circuit is open.
        """
        generation = self.acquire()
        try:
            result = await operation()
        except asyncio.CancelledError:
            self.release(generation)
            raise
        except Exception as exc:
            self.record_outcome(exc, generation)
            raise
        self.record_success(generation)
        return result


__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "CircuitStats",
    "StateChangeCallback",
    "qualifies_as_failure",
]
