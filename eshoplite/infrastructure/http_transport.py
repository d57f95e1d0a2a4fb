"""
HTTP transport for the storefront's backend services.

Wraps a lazily created `httpx.AsyncClient` per backend target. A transport
issues exactly one GET per call, decodes the JSON body into a domain model and
normalizes every failure into the `eshoplite.errors` taxonomy. Retries and
circuit breaking are layered on top by `eshoplite.resilience`.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, List, Optional, Type, TypeVar

import httpx
from pydantic import ValidationError

from eshoplite.errors import DecodeError, NotFoundError, TransportError
from eshoplite.utils.logging import get_logger

log = get_logger(__name__)

ModelT = TypeVar("ModelT")


class HttpTransport:
    """
    Single-attempt GET + JSON decode against one backend base URL.

    Parameters
    ----------
    target : str
        Logical name of the backend (used in errors and logs).
    base_url : str
        Root URL of the backend service.
    timeout : float
        Per-request timeout in seconds.
    transport : httpx.AsyncBaseTransport | None
        Optional injected transport (stub backends, tests).
    """

    def __init__(
        self,
        target: str,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.target = target
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the pooled HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _url(self, path: str) -> str:
        return "/" + path.lstrip("/")

    async def _send(self, path: str, timeout: Optional[float] = None) -> httpx.Response:
        client = self._get_client()
        try:
            if timeout is None:
                return await client.get(self._url(path))
            return await client.get(self._url(path), timeout=timeout)
        except httpx.TimeoutException as exc:
            raise TransportError(
                f"GET {path} on '{self.target}' timed out", self.target, cause=exc
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(
                f"GET {path} on '{self.target}' failed: {exc}", self.target, cause=exc
            ) from exc

    def _raise_for_status(self, path: str, response: httpx.Response) -> None:
        if response.is_success:
            return
        if response.status_code == 404:
            raise NotFoundError(self._not_found_message(path, response), self.target)
        raise TransportError(
            f"GET {path} on '{self.target}' returned HTTP {response.status_code}",
            self.target,
            status=response.status_code,
        )

    def _not_found_message(self, path: str, response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key, value in body.items():
                if isinstance(key, str) and key.lower() == "message" and isinstance(value, str):
                    return value
        return f"GET {path} on '{self.target}' returned HTTP 404"

    def _decode_body(self, path: str, response: httpx.Response) -> Any:
        if not response.content.strip():
            return None
        try:
            return response.json(parse_float=Decimal)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DecodeError(
                f"GET {path} on '{self.target}' returned malformed JSON", self.target, cause=exc
            ) from exc

    async def get_one(self, path: str, model: Type[ModelT]) -> Optional[ModelT]:
        """
        GET a single object and decode it into `model`.

        Returns None when the backend answers 2xx with an empty or null body.

        Raises
        ------
        NotFoundError
            The backend answered 404.
        TransportError
            Connection failure, timeout or any other non-2xx status.
        DecodeError
            The body is not a JSON object matching `model`.
        """
        response = await self._send(path)
        self._raise_for_status(path, response)
        body = self._decode_body(path, response)
        if body is None:
            return None
        if not isinstance(body, dict):
            raise DecodeError(
                f"GET {path} on '{self.target}' expected a JSON object, got {type(body).__name__}",
                self.target,
            )
        return self._validate(path, model, body)

    async def get_many(self, path: str, model: Type[ModelT]) -> List[ModelT]:
        """
        GET a JSON array and decode every element into `model`.

        Returns an empty list when the body is empty, null or `[]`.
        """
        response = await self._send(path)
        self._raise_for_status(path, response)
        body = self._decode_body(path, response)
        if body is None:
            return []
        if not isinstance(body, list):
            raise DecodeError(
                f"GET {path} on '{self.target}' expected a JSON array, got {type(body).__name__}",
                self.target,
            )
        return [self._validate(path, model, item) for item in body]

    def _validate(self, path: str, model: Type[ModelT], item: Any) -> ModelT:
        try:
            return model.model_validate(item)  # type: ignore[attr-defined]
        except ValidationError as exc:
            raise DecodeError(
                f"GET {path} on '{self.target}' returned an unexpected {model.__name__} shape",
                self.target,
                cause=exc,
            ) from exc

    async def probe(self, path: str, timeout: float) -> int:
        """
        Issue one bare GET and return its status code (health checks).
        """
        response = await self._send(path, timeout=timeout)
        return response.status_code

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
        log.debug("Transport closed", extra={"target": self.target})


__all__ = ["HttpTransport"]
