# src/cli/runner.py

"""Headless command runners: refresh, track and list."""

import asyncio
import json
import logging
import sys
from decimal import Decimal

from rich.console import Console
from rich.table import Table

from src.models.notification import NotificationEvent, NotificationKind
from src.models.product import TrackedProduct
from src.notifications.email_dispatcher import EmailDispatcher
from src.notifications.templates import render_message
from src.scrapers.fetcher import SnapshotFetcher
from src.services.batch_coordinator import BatchCoordinator, BatchResult
from src.services.errors import (
    BatchError,
    DispatchError,
    FetchError,
    StoreError,
)
from src.services.product_refresher import ProductRefresher
from src.storage.product_store import ProductStore, normalize_url

logger = logging.getLogger("price_tracker.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def _fmt(product: TrackedProduct, value: Decimal) -> str:
    return f"{product.currency}{value:,.2f}"


def _print_products(title: str, products: list[TrackedProduct]) -> None:
    """Render a Rich table of products with their statistics."""
    table = Table(title=title, show_lines=True, title_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", max_width=50)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Low", justify="right")
    table.add_column("High", justify="right")
    table.add_column("Avg", justify="right")
    table.add_column("Stock", justify="center")
    table.add_column("Subs", justify="right", style="magenta")
    table.add_column("URL", overflow="fold", style="dim")

    for idx, p in enumerate(products, 1):
        table.add_row(
            str(idx),
            p.title[:50],
            _fmt(p, p.current_price),
            _fmt(p, p.lowest_price),
            _fmt(p, p.highest_price),
            _fmt(p, p.average_price),
            "[green]yes[/green]" if p.is_available else "[red]no[/red]",
            str(len(p.subscribers)),
            p.locator,
        )

    Console().print(table)


def _report(result: BatchResult, output_format: str) -> None:
    """Print the batch summary as JSON or tables."""
    for failure in result.failed:
        _err.print(f"[red]Failed: {failure.locator} ({failure.reason})[/red]")
    for failure in result.dispatch_failures:
        _err.print(f"[yellow]Email not sent: {failure.reason}[/yellow]")
    for locator, kind in result.notifications:
        _err.print(f"[cyan]{kind.value}[/cyan] {locator}")
    _err.print(
        f"[green]✓ {len(result.succeeded)} updated[/green], "
        f"{len(result.failed)} failed"
        + (" [yellow](deadline hit)[/yellow]" if result.timed_out else "")
    )

    if output_format == "table":
        _print_products("Refreshed Products", result.succeeded)
    else:
        json.dump(result.to_payload(), sys.stdout, indent=2)
        sys.stdout.write("\n")


async def run_refresh(
    output_format: str = "json",
    concurrency: int | None = None,
    deadline: float | None = None,
) -> int:
    """Run one refresh batch; exit code 0 on (partial) success."""
    try:
        store = ProductStore()
    except StoreError as exc:
        _err.print(f"[red]Product store unreachable: {exc}[/red]")
        return 1

    refresher = ProductRefresher(
        fetcher=SnapshotFetcher(),
        store=store,
        dispatcher=EmailDispatcher(),
    )
    coordinator = BatchCoordinator(
        store,
        refresher,
        max_concurrency=concurrency,
        deadline=deadline,
    )
    try:
        result = await coordinator.run_batch()
    except BatchError as exc:
        _err.print(f"[red]Batch aborted: {exc}[/red]")
        return 1
    finally:
        store.close()

    _report(result, output_format)
    return 0


async def run_track(
    url: str,
    email: str | None = None,
    target_price: Decimal | None = None,
) -> int:
    """Start tracking *url*, optionally subscribing *email*."""
    locator = normalize_url(url)
    try:
        snapshot = await asyncio.to_thread(SnapshotFetcher().fetch, locator)
    except FetchError as exc:
        _err.print(f"[red]Could not fetch {locator}: {exc}[/red]")
        return 1

    address = email.strip().lower() if email else ""
    added = False
    try:
        store = ProductStore()
        try:
            product = store.add_product(snapshot, target_price=target_price)
            if address:
                added = store.add_subscriber(product.locator, address)
        finally:
            store.close()
    except StoreError as exc:
        _err.print(f"[red]Could not store {locator}: {exc}[/red]")
        return 1

    _err.print(f"[green]✓ Tracking[/green] {product.title}")
    if added:
        message = render_message(NotificationEvent(
            kind=NotificationKind.WELCOME,
            locator=product.locator,
            title=product.title,
        ))
        try:
            await asyncio.to_thread(
                EmailDispatcher().send, message, [address]
            )
        except DispatchError as exc:
            logger.error("Welcome email to %s failed: %s", address, exc)
            _err.print(f"[yellow]Welcome email not sent: {exc}[/yellow]")
        else:
            _err.print(f"[dim]Subscribed {address}[/dim]")
    return 0


def run_list() -> int:
    """Print every tracked product with its statistics."""
    try:
        store = ProductStore()
        try:
            products = store.list_all()
        finally:
            store.close()
    except StoreError as exc:
        _err.print(f"[red]Product store unreachable: {exc}[/red]")
        return 1

    if not products:
        _err.print("[yellow]No products tracked.[/yellow]")
        return 0
    _print_products("Tracked Products", products)
    return 0
