from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from eshoplite.domain.models import Product, StoreInfo
from eshoplite.storefront import HealthStatus


def _format_price(price: Decimal) -> str:
    return f"${price:,.2f}"


def print_products(products: List[Product], console: Optional[Console] = None) -> None:
    """
    Render products as a rich table, ordered by id.
    """
    console = console or Console()

    if not products:
        console.print("[yellow]No products to display.[/yellow]")
        return

    table = Table(title="Products", box=box.ROUNDED)
    table.add_column("Id", justify="right", style="magenta")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Price", justify="right", style="bold green")
    table.add_column("Image", style="dim")

    for product in sorted(products, key=lambda p: p.id):
        table.add_row(
            str(product.id),
            product.name or "",
            product.description or "",
            _format_price(product.price),
            product.image_url or "",
        )

    console.print(table)


def print_stores(stores: List[StoreInfo], console: Optional[Console] = None) -> None:
    """
    Render stores as a rich table, ordered by id.
    """
    console = console or Console()

    if not stores:
        console.print("[yellow]No stores to display.[/yellow]")
        return

    table = Table(title="Stores", box=box.ROUNDED)
    table.add_column("Id", justify="right", style="magenta")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("City")
    table.add_column("State", justify="center")
    table.add_column("Hours", style="green")

    for store in sorted(stores, key=lambda s: s.id):
        table.add_row(
            str(store.id),
            store.name or "",
            store.city or "",
            store.state or "",
            store.hours or "",
        )

    console.print(table)


def print_health(statuses: Dict[str, HealthStatus], console: Optional[Console] = None) -> None:
    """
    Render health probe results, one row per target.

    Unhealthy targets are highlighted and carry their error text.
    """
    console = console or Console()

    table = Table(title="Backend Health", box=box.ROUNDED)
    table.add_column("Target", style="cyan", no_wrap=True)
    table.add_column("Healthy", justify="center")
    table.add_column("Status", justify="right", style="magenta")
    table.add_column("Latency (ms)", justify="right", style="green")
    table.add_column("Circuit", justify="center", style="blue")
    table.add_column("Error", style="red")

    for name in sorted(statuses):
        status = statuses[name]
        healthy = "[green]yes[/green]" if status.healthy else "[bold red]no[/bold red]"
        code = str(status.status_code) if status.status_code is not None else "N/A"
        table.add_row(
            status.target,
            healthy,
            code,
            f"{status.latency_ms:.2f}",
            status.circuit_state,
            status.error or "",
        )

    console.print(table)


__all__ = ["print_health", "print_products", "print_stores"]
