"""
Typed client for the Products service (`/api/products`).
"""

from __future__ import annotations

from typing import List, Optional

from eshoplite.clients.abstract import ResourceEndpoint, ResourceFetcher
from eshoplite.domain.models import Product

PRODUCTS_ENDPOINT = "api/products"


class ProductApiClient:
    """
    Read-only access to products.

    `list()` propagates every unrecovered failure; `get_by_id()` returns None
    for a product the backend does not know.
    """

    def __init__(self, fetcher: ResourceFetcher) -> None:
        self._endpoint = ResourceEndpoint(fetcher, PRODUCTS_ENDPOINT, Product, "product")

    async def list(self) -> List[Product]:
        return await self._endpoint.list()

    async def get_by_id(self, product_id: int) -> Optional[Product]:
        return await self._endpoint.get_by_id(product_id)


__all__ = ["PRODUCTS_ENDPOINT", "ProductApiClient"]
