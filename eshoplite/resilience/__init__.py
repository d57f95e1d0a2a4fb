"""
Resilience package for the eShopLite storefront clients.

Exports the circuit breaker, the retry policy and the per-target policy that
composes them. Nothing in here knows about domain models; policies
wrap any awaitable operation.
"""

from eshoplite.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    CircuitStats,
    qualifies_as_failure,
)
from eshoplite.resilience.policy import ResiliencePolicy
from eshoplite.resilience.retry import RetryPolicy

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "CircuitStats",
    "ResiliencePolicy",
    "RetryPolicy",
    "qualifies_as_failure",
]
