"""
eShopLite storefront - resilient API clients for the Products and StoreInfo services.

This package provides the client layer a storefront uses to read from its
backend services:

- An HTTP transport that decodes JSON into typed, case-insensitive models
- Retry with exponential backoff for transient failures
- A per-target circuit breaker that fails fast while a backend is down
- Typed Products and StoreInfo clients with graceful not-found handling
- Health checks and a diagnostics summary across both backends
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from eshoplite.clients import ProductApiClient, ResourceFetcher, StoreInfoApiClient
from eshoplite.config import Settings, TargetConfig, get_settings
from eshoplite.domain import Product, StoreInfo
from eshoplite.errors import (
    ApiError,
    CircuitOpenError,
    DecodeError,
    NotFoundError,
    TransportError,
)
from eshoplite.storefront import HealthStatus, Storefront, available_targets
from eshoplite.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "TargetConfig",
    "get_settings",
    # Domain
    "Product",
    "StoreInfo",
    # Clients
    "ProductApiClient",
    "ResourceFetcher",
    "StoreInfoApiClient",
    # Storefront
    "HealthStatus",
    "Storefront",
    "available_targets",
    # Errors
    "ApiError",
    "CircuitOpenError",
    "DecodeError",
    "NotFoundError",
    "TransportError",
    # Logging
    "configure_logging",
    "get_logger",
]
