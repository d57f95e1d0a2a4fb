"""
Infrastructure package for the eShopLite storefront clients.

Centralizes HTTP connectivity concerns (pooled clients, decoding, error
normalization). Keep this layer focused on I/O, decoupled from retry and
circuit-breaker policy.
"""

from eshoplite.infrastructure.http_transport import HttpTransport

__all__ = [
    "HttpTransport",
]
