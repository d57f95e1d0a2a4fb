"""
Pytest configuration for the eShopLite storefront clients.

Provides fixtures for:
- A stub Products/StoreInfo backend served through `httpx.MockTransport`
- Seed data matching the sample catalogue (nine products, nine stores)
- Deterministic time: a manual clock and a sleep that only records delays
- Settings pointed at the stub backend hosts
"""

from __future__ import annotations

import re
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Set, Union

import httpx
import pytest

from eshoplite.config import Settings
from eshoplite.storefront import Storefront

PRODUCTS_URL = "http://products.test"
STORES_URL = "http://stores.test"

PRODUCTS: List[Dict[str, Any]] = [
    {
        "id": 1,
        "name": "Solar Powered Flashlight",
        "description": "A fantastic product for outdoor enthusiasts",
        "price": 19.99,
        "imageUrl": "product1.png",
    },
    {"id": 2, "name": "Hiking Poles", "description": "Ideal for camping and hiking trips", "price": 24.99, "imageUrl": "product2.png"},
    {"id": 3, "name": "Outdoor Rain Jacket", "description": "This product will keep you warm and dry in all weathers", "price": 49.99, "imageUrl": "product3.png"},
    {"id": 4, "name": "Survival Kit", "description": "A must-have for any outdoor adventurer", "price": 99.99, "imageUrl": "product4.png"},
    {"id": 5, "name": "Outdoor Backpack", "description": "This backpack is perfect for carrying all your outdoor essentials", "price": 39.99, "imageUrl": "product5.png"},
    {"id": 6, "name": "Camping Cookware", "description": "This cookware set is ideal for cooking outdoors", "price": 29.99, "imageUrl": "product6.png"},
    {"id": 7, "name": "Camping Stove", "description": "This stove is perfect for cooking outdoors", "price": 49.99, "imageUrl": "product7.png"},
    {"id": 8, "name": "Camping Lantern", "description": "This lantern is perfect for lighting up your campsite", "price": 19.99, "imageUrl": "product8.png"},
    {"id": 9, "name": "Camping Tent", "description": "This tent is perfect for camping trips", "price": 99.99, "imageUrl": "product9.png"},
]

STORES: List[Dict[str, Any]] = [
    {"id": 1, "name": "Outdoor Store", "city": "Seattle", "state": "WA", "hours": "9am - 5pm"},
    {"id": 2, "name": "Camping Supplies", "city": "Portland", "state": "OR", "hours": "10am - 6pm"},
    {"id": 3, "name": "Hiking Gear", "city": "San Francisco", "state": "CA", "hours": "11am - 7pm"},
    {"id": 4, "name": "Fishing Equipment", "city": "Los Angeles", "state": "CA", "hours": "8am - 4pm"},
    {"id": 5, "name": "Climbing Gear", "city": "Denver", "state": "CO", "hours": "9am - 5pm"},
    {"id": 6, "name": "Cycling Supplies", "city": "Austin", "state": "TX", "hours": "10am - 6pm"},
    {"id": 7, "name": "Winter Sports Gear", "city": "Salt Lake City", "state": "UT", "hours": "11am - 7pm"},
    {"id": 8, "name": "Water Sports Equipment", "city": "Miami", "state": "FL", "hours": "8am - 4pm"},
    {"id": 9, "name": "Outdoor Clothing", "city": "New York", "state": "NY", "hours": "9am - 5pm"},
]

_LABELS = {"products": "Product", "stores": "Store"}
_ITEM_PATH = re.compile(r"^/api/(?P<target>products|stores)/(?P<id>-?\d+)$")

Scripted = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class StubBackend:
    """
    In-memory Products and StoreInfo services.

    Requests are routed by host (`products.test`, `stores.test`) and every
    request is recorded, so tests can assert how many network calls were made.
    """

    def __init__(self) -> None:
        self.collections: Dict[str, List[Dict[str, Any]]] = {
            "products": [dict(item) for item in PRODUCTS],
            "stores": [dict(item) for item in STORES],
        }
        self.health_status: Dict[str, int] = {"products": 200, "stores": 200}
        self.down: Set[str] = set()
        self.scripted: Dict[str, List[Scripted]] = defaultdict(list)
        self.requests: List[httpx.Request] = []

    def calls(self, target: Optional[str] = None, path: Optional[str] = None) -> int:
        return sum(
            1
            for request in self.requests
            if (target is None or self._target(request) == target)
            and (path is None or request.url.path == path)
        )

    def script(self, target: str, *responses: Scripted) -> None:
        """Queue responses served before normal routing resumes."""
        self.scripted[target].extend(responses)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @staticmethod
    def _target(request: httpx.Request) -> str:
        return request.url.host.split(".")[0]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        target = self._target(request)
        path = request.url.path

        if target in self.down:
            raise httpx.ConnectError("Connection refused", request=request)

        if self.scripted[target]:
            scripted = self.scripted[target].pop(0)
            if isinstance(scripted, Exception):
                raise scripted
            if isinstance(scripted, httpx.Response):
                return scripted
            return scripted(request)

        if path == "/health":
            return httpx.Response(self.health_status[target], text="Healthy")

        if path == f"/api/{target}":
            return httpx.Response(200, json=self.collections[target])

        match = _ITEM_PATH.match(path)
        if match and match.group("target") == target:
            record_id = int(match.group("id"))
            for item in self.collections[target]:
                if item["id"] == record_id:
                    return httpx.Response(200, json=item)
            return httpx.Response(
                404, json={"message": f"{_LABELS[target]} with ID {record_id} not found"}
            )

        return httpx.Response(404)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records requested delays and returns at once."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def backend() -> StubBackend:
    return StubBackend()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings pointed at the stub backend, ignoring any local `.env` file.
    """
    return Settings(
        _env_file=None,
        products_api_url=PRODUCTS_URL,
        stores_api_url=STORES_URL,
        log_level="DEBUG",
    )


@pytest.fixture
def make_storefront(
    backend: StubBackend,
    clock: FakeClock,
    sleeper: RecordingSleep,
    test_settings: Settings,
) -> Callable[..., Storefront]:
    """
    Factory building a storefront wired to the stub backend and fake time.

    Keyword arguments override settings fields, e.g. `retry_on_not_found=False`.
    """

    def factory(**overrides: Any) -> Storefront:
        settings = test_settings.model_copy(update=overrides) if overrides else test_settings
        return Storefront.from_settings(
            settings,
            transport=backend.transport(),
            sleep=sleeper,
            clock=clock,
        )

    return factory
