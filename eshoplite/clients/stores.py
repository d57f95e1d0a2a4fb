"""
Typed client for the StoreInfo service (`/api/stores`).
"""

from __future__ import annotations

from typing import List, Optional

from eshoplite.clients.abstract import ResourceEndpoint, ResourceFetcher
from eshoplite.domain.models import StoreInfo

STORES_ENDPOINT = "api/stores"


class StoreInfoApiClient:
    def __init__(self, fetcher: ResourceFetcher) -> None:
        self._endpoint = ResourceEndpoint(fetcher, STORES_ENDPOINT, StoreInfo, "store")

    async def list(self) -> List[StoreInfo]:
        """Fetch every store."""
        return await self._endpoint.list()

    async def get_by_id(self, store_id: int) -> Optional[StoreInfo]:
        """Fetch one store, or None if the backend answers 404."""
        return await self._endpoint.get_by_id(store_id)


__all__ = ["STORES_ENDPOINT", "StoreInfoApiClient"]
