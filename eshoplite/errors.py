"""
Error taxonomy for the storefront API clients.

Every failure raised by the transport, the resilience layer or the typed
clients derives from `ApiError`, so callers can render a degraded state with a
single `except ApiError`.
"""

from __future__ import annotations

from typing import Optional


class ApiError(Exception):
    """Base class for failures surfaced by the API client layer."""

    def __init__(self, message: str, target: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.target = target


class TransportError(ApiError):
    """
    The request did not produce a 2xx response.

    `status` is None for connection, DNS and timeout failures.
    """

    def __init__(
        self,
        message: str,
        target: Optional[str] = None,
        status: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, target)
        self.status = status
        self.cause = cause

    @property
    def is_transient(self) -> bool:
        if self.status is None:
            return True
        return self.status == 408 or self.status >= 500


class NotFoundError(TransportError):
    """The backend answered 404 for the requested resource."""

    def __init__(
        self,
        message: str,
        target: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, target, status=404, cause=cause)


class DecodeError(ApiError):
    """The response body was not valid JSON of the expected shape."""

    def __init__(
        self,
        message: str,
        target: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, target)
        self.cause = cause


class CircuitOpenError(ApiError):
    """The target's circuit breaker is open; no request was sent."""

    def __init__(self, target: str, retry_after: float = 0.0) -> None:
        super().__init__(
            f"Circuit breaker for '{target}' is open (retry in {retry_after:.1f}s)", target
        )
        self.retry_after = retry_after


__all__ = [
    "ApiError",
    "CircuitOpenError",
    "DecodeError",
    "NotFoundError",
    "TransportError",
]
