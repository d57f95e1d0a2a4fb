from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer

from eshoplite.config import get_settings
from eshoplite.errors import ApiError
from eshoplite.reporter import print_health, print_products, print_stores
from eshoplite.storefront import Storefront, available_targets
from eshoplite.utils.logging import configure_logging

app = typer.Typer(help="eShopLite storefront API client CLI.")

T = TypeVar("T")


def _run(action: Callable[[Storefront], Awaitable[T]]) -> T:
    """
    Build a storefront from settings, run one async action against it and close it.

    An unrecovered `ApiError` is reported and mapped to exit status 2.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    async def _go() -> T:
        async with Storefront.from_settings(settings) as storefront:
            return await action(storefront)

    try:
        return asyncio.run(_go())
    except ApiError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2) from exc


def _not_found(kind: str, record_id: int) -> None:
    typer.echo(f"{kind} {record_id} not found.", err=True)
    raise typer.Exit(code=1)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    urls = settings.base_urls()
    typer.echo(
        " | ".join(f"{name}={urls[name]}" for name in available_targets())
        + f" | timeout={settings.request_timeout_seconds}s"
        f" retries={settings.retry_max_retries} backoff={settings.retry_backoff_base}"
        f" breaker={settings.breaker_failure_threshold}/{settings.breaker_break_seconds}s"
        f" retry_404={settings.retry_on_not_found} breaker_404={settings.breaker_count_not_found}"
    )


@app.command()
def products(
    product_id: Optional[int] = typer.Option(
        None,
        "--id",
        "-i",
        help="Show a single product instead of the full list.",
    ),
) -> None:
    """
    List products, or show one product by id.
    """
    if product_id is None:
        print_products(_run(lambda storefront: storefront.products.list()))
        return

    product = _run(lambda storefront: storefront.products.get_by_id(product_id))
    if product is None:
        _not_found("Product", product_id)
    print_products([product])


@app.command()
def stores(
    store_id: Optional[int] = typer.Option(
        None,
        "--id",
        "-i",
        help="Show a single store instead of the full list.",
    ),
) -> None:
    """
    List stores, or show one store by id.
    """
    if store_id is None:
        print_stores(_run(lambda storefront: storefront.stores.list()))
        return

    store = _run(lambda storefront: storefront.stores.get_by_id(store_id))
    if store is None:
        _not_found("Store", store_id)
    print_stores([store])


@app.command()
def health() -> None:
    """
    Probe each backend's health endpoint. Exits 2 when any backend is unhealthy.
    """
    statuses = _run(lambda storefront: storefront.check_health())
    print_health(statuses)
    if not all(status.healthy for status in statuses.values()):
        raise typer.Exit(code=2)


@app.command()
def diagnostics() -> None:
    """
    Print product/store counts, the product list and breaker stats as JSON.
    """
    payload: Any = _run(lambda storefront: storefront.diagnostics())
    typer.echo(json.dumps(payload, indent=2, default=str))


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
