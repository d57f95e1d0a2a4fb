"""
Fetcher interface and shared endpoint logic for the typed resource clients.

Typed clients do not subclass a base client. They are handed a
`ResourceFetcher` (anything with `fetch_one` / `fetch_many`) and compose a
`ResourceEndpoint` that carries the list/get-by-id semantics, including the
404-to-None downgrade and the structured start/success/failure log entries.
"""

from __future__ import annotations

from typing import Generic, List, Optional, Protocol, Type, TypeVar, runtime_checkable

from eshoplite.domain.models import Resource
from eshoplite.errors import ApiError, NotFoundError
from eshoplite.infrastructure.http_transport import HttpTransport
from eshoplite.resilience.policy import ResiliencePolicy
from eshoplite.utils.logging import get_logger

log = get_logger(__name__)

ResourceT = TypeVar("ResourceT", bound=Resource)


@runtime_checkable
class ResourceFetcher(Protocol):
    """
    Capability the typed clients depend on.

    Attributes
    ----------
    target : str
        Logical backend name used in logs and errors.
    """

    target: str

    async def fetch_one(self, path: str, model: Type[ResourceT]) -> Optional[ResourceT]:
        """Fetch one record, or None when the backend returns an empty body."""
        ...

    async def fetch_many(self, path: str, model: Type[ResourceT]) -> List[ResourceT]:
        """Fetch a collection of records."""
        ...


class ResilientFetcher:
    """
    `ResourceFetcher` that runs every transport call through a resilience policy.
    """

    def __init__(self, transport: HttpTransport, policy: ResiliencePolicy) -> None:
        self.transport = transport
        self.policy = policy
        self.target = transport.target

    async def fetch_one(self, path: str, model: Type[ResourceT]) -> Optional[ResourceT]:
        return await self.policy.execute(lambda: self.transport.get_one(path, model))

    async def fetch_many(self, path: str, model: Type[ResourceT]) -> List[ResourceT]:
        return await self.policy.execute(lambda: self.transport.get_many(path, model))

    async def aclose(self) -> None:
        await self.transport.aclose()


class ResourceEndpoint(Generic[ResourceT]):
    """
    List/get-by-id operations for one REST collection, e.g. `api/products`.
    """

    def __init__(
        self,
        fetcher: ResourceFetcher,
        path: str,
        model: Type[ResourceT],
        label: str,
    ) -> None:
        self.fetcher = fetcher
        self.path = path.strip("/")
        self.model = model
        self.label = label

    async def list(self) -> List[ResourceT]:
        """
        Fetch every record. Unrecovered failures propagate as ApiError.
        """
        extra = {"target": self.fetcher.target, "path": self.path}
        log.info(f"[FETCH START] all {self.label}s", extra=extra)
        try:
            records = await self.fetcher.fetch_many(self.path, self.model)
        except ApiError as exc:
            log.error(f"[FETCH FAILED] all {self.label}s: {exc}", extra={**extra, "error": str(exc)})
            raise
        log.info(f"[FETCH SUCCESS] all {self.label}s", extra={**extra, "count": len(records)})
        return records

    async def get_by_id(self, record_id: int) -> Optional[ResourceT]:
        """
        Fetch one record by id.

        Returns None when the backend still answers 404 after retries; every
        other unrecovered failure propagates.
        """
        path = f"{self.path}/{record_id}"
        extra = {"target": self.fetcher.target, "path": path, "id": record_id}
        log.info(f"[FETCH START] {self.label} {record_id}", extra=extra)
        try:
            record = await self.fetcher.fetch_one(path, self.model)
        except NotFoundError:
            log.warning(f"[FETCH NOT FOUND] {self.label} {record_id}", extra=extra)
            return None
        except ApiError as exc:
            log.error(
                f"[FETCH FAILED] {self.label} {record_id}: {exc}",
                extra={**extra, "error": str(exc)},
            )
            raise
        log.info(f"[FETCH SUCCESS] {self.label} {record_id}", extra={**extra, "found": record is not None})
        return record


__all__ = [
    "ResilientFetcher",
    "ResourceEndpoint",
    "ResourceFetcher",
]
