"""
Clients package for the eShopLite storefront.

This module re-exports the fetcher interface and the typed resource clients
so downstream code can import from `eshoplite.clients` directly.
"""

from eshoplite.clients.abstract import ResilientFetcher, ResourceEndpoint, ResourceFetcher
from eshoplite.clients.products import ProductApiClient
from eshoplite.clients.stores import StoreInfoApiClient

__all__ = [
    # Abstracts
    "ResilientFetcher",
    "ResourceEndpoint",
    "ResourceFetcher",
    # Typed clients
    "ProductApiClient",
    "StoreInfoApiClient",
]
