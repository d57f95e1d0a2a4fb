"""
Storefront wiring: builds the per-target client stacks and runs health checks
and diagnostics across them.

Usage (example from CLI):
    from eshoplite.storefront import Storefront

    async with Storefront.from_settings() as storefront:
        products = await storefront.products.list()
        health = await storefront.check_health()

Each target (products, stores) gets its own transport, resilience policy and
typed client, built from that target's `TargetConfig`.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx

from eshoplite.clients.abstract import ResilientFetcher
from eshoplite.clients.products import ProductApiClient
from eshoplite.clients.stores import StoreInfoApiClient
from eshoplite.config import PRODUCTS_TARGET, STORES_TARGET, Settings, TargetConfig, get_settings
from eshoplite.errors import ApiError, TransportError
from eshoplite.infrastructure.http_transport import HttpTransport
from eshoplite.resilience.circuit_breaker import StateChangeCallback
from eshoplite.resilience.policy import ResiliencePolicy
from eshoplite.resilience.retry import Sleeper
from eshoplite.utils.logging import get_logger

log = get_logger(__name__)


def _round_float(value: float, decimals: int = 2) -> float:
    """Round a float to specified decimal places for human-readable output."""
    return round(value, decimals)


@dataclass
class HealthStatus:
    """Result of probing one backend's health endpoint."""

    target: str
    healthy: bool
    circuit_state: str
    status_code: Optional[int] = None
    latency_ms: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "healthy": self.healthy,
            "circuit_state": self.circuit_state,
            "status_code": self.status_code,
            "latency_ms": self.latency_ms,
            "error": self.error,
        }


@dataclass
class TargetStack:
    """Transport, policy and fetcher owned by one backend target."""

    config: TargetConfig
    transport: HttpTransport
    policy: ResiliencePolicy
    fetcher: ResilientFetcher = field(init=False)

    def __post_init__(self) -> None:
        self.fetcher = ResilientFetcher(self.transport, self.policy)


def available_targets() -> List[str]:
    """List known backend target names."""
    return sorted([PRODUCTS_TARGET, STORES_TARGET])


def build_target(
    config: TargetConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    sleep: Sleeper = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
    on_state_change: Optional[StateChangeCallback] = None,
) -> TargetStack:
    """Build the transport + policy stack for one target."""
    return TargetStack(
        config=config,
        transport=HttpTransport(
            target=config.name,
            base_url=config.base_url,
            timeout=config.attempt_timeout_seconds,
            transport=transport,
        ),
        policy=ResiliencePolicy.from_config(
            config, sleep=sleep, clock=clock, on_state_change=on_state_change
        ),
    )


class Storefront:
    """
    Owns the Products and StoreInfo clients and their lifecycles.
    """

    def __init__(self, stacks: Dict[str, TargetStack]) -> None:
        missing = set(available_targets()) - set(stacks)
        if missing:
            raise ValueError(f"Missing target stacks: {', '.join(sorted(missing))}")
        self.stacks = stacks
        self.products = ProductApiClient(stacks[PRODUCTS_TARGET].fetcher)
        self.stores = StoreInfoApiClient(stacks[STORES_TARGET].fetcher)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleeper = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Optional[StateChangeCallback] = None,
    ) -> "Storefront":
        """
        Build a storefront with one independent stack per target.

        Parameters
        ----------
        settings : Settings | None
            Configuration source. Defaults to the cached `get_settings()`.
        transport : httpx.AsyncBaseTransport | None
            Optional shared httpx transport (stub backends, tests).
        sleep, clock
            Time sources for retry backoff and breaker timers.
        on_state_change : callable, optional
            Listener for circuit state transitions on any target.
        """
        settings = settings or get_settings()
        stacks = {
            name: build_target(
                settings.target(name),
                transport=transport,
                sleep=sleep,
                clock=clock,
                on_state_change=on_state_change,
            )
            for name in available_targets()
        }
        for name, stack in stacks.items():
            log.info(
                f"[TARGET] {name} -> {stack.config.base_url}",
                extra={"target": name, "base_url": stack.config.base_url},
            )
        return cls(stacks)

    async def _probe(self, stack: TargetStack) -> HealthStatus:
        config = stack.config
        start = time.perf_counter()
        try:
            status_code = await stack.transport.probe(
                config.health_path, timeout=config.health_timeout_seconds
            )
        except TransportError as exc:
            latency_ms = _round_float((time.perf_counter() - start) * 1000)
            log.warning(
                f"[HEALTH] {config.name} unreachable: {exc}",
                extra={"target": config.name, "error": str(exc)},
            )
            return HealthStatus(
                target=config.name,
                healthy=False,
                circuit_state=stack.policy.breaker.state.value,
                latency_ms=latency_ms,
                error=str(exc),
            )
        latency_ms = _round_float((time.perf_counter() - start) * 1000)
        healthy = 200 <= status_code < 300
        log.info(
            f"[HEALTH] {config.name} status={status_code}",
            extra={"target": config.name, "status": status_code, "latency_ms": latency_ms},
        )
        return HealthStatus(
            target=config.name,
            healthy=healthy,
            circuit_state=stack.policy.breaker.state.value,
            status_code=status_code,
            latency_ms=latency_ms,
            error=None if healthy else f"HTTP {status_code}",
        )

    async def check_health(self) -> Dict[str, HealthStatus]:
        """
        Probe every target's health endpoint concurrently.

        Probes bypass the resilience policy and never affect breaker state.
        """
        names = available_targets()
        results = await asyncio.gather(*(self._probe(self.stacks[name]) for name in names))
        return dict(zip(names, results))

    async def diagnostics(self) -> Dict[str, Any]:
        """
        Summarize what the storefront can currently see on each backend.

        A failed fetch is recorded in `errors` instead of raised.
        """
        products_result, stores_result = await asyncio.gather(
            self.products.list(), self.stores.list(), return_exceptions=True
        )
        errors: Dict[str, str] = {}
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "product_count": None,
            "store_count": None,
            "products": [],
        }

        for name, result in ((PRODUCTS_TARGET, products_result), (STORES_TARGET, stores_result)):
            if isinstance(result, ApiError):
                errors[name] = str(result)
            elif isinstance(result, BaseException):
                raise result

        if PRODUCTS_TARGET not in errors:
            payload["product_count"] = len(products_result)
            payload["products"] = [p.model_dump(mode="json", by_alias=True) for p in products_result]
        if STORES_TARGET not in errors:
            payload["store_count"] = len(stores_result)

        payload["success"] = not errors
        payload["errors"] = errors
        payload["circuits"] = {
            name: self.stacks[name].policy.breaker.stats().to_dict() for name in available_targets()
        }
        return payload

    async def aclose(self) -> None:
        """Close every target's HTTP client."""
        for stack in self.stacks.values():
            await stack.fetcher.aclose()

    async def __aenter__(self) -> "Storefront":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        del exc_type, exc, tb
        await self.aclose()


__all__ = [
    "HealthStatus",
    "Storefront",
    "TargetStack",
    "available_targets",
    "build_target",
]
