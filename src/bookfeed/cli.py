"""Typer-based CLI for Deribit trading operations."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import load_settings
from .rest.client import DeribitApiError, DeribitRestClient

T = TypeVar("T")


def _load_settings(config_path: Optional[Path] = None):
    return load_settings(config_path)


def _create_rest_client(settings) -> DeribitRestClient:
    rest = settings.rest
    creds = rest.credentials
    return DeribitRestClient(
        creds.client_id.get_secret_value() if creds else None,
        creds.client_secret.get_secret_value() if creds else None,
        testnet=rest.testnet,
        timeout=rest.timeout,
    )


app = typer.Typer(help="Deribit order-book and trading CLI")
console = Console()
logger = logging.getLogger(__name__)

MENU_CHOICES = (
    "Authenticate",
    "Place Order",
    "Get Positions",
    "Get Order Book",
    "Modify Order",
    "Cancel Order",
    "Exit",
)


def run_cli(argv: list[str] | None = None) -> None:
    """Run CLI with optional argv parameter."""
    app(argv)


async def _with_client(
    config: Optional[Path],
    action: Callable[[DeribitRestClient], Awaitable[T]],
    *,
    authenticate: bool = False,
) -> T:
    client = _create_rest_client(_load_settings(config))
    try:
        if authenticate:
            await client.authenticate()
        return await action(client)
    finally:
        await client.close()


def _describe(error: Exception) -> str:
    if isinstance(error, TimeoutError) and not str(error):
        return "request timed out"
    return str(error)


def _execute(
    description: str,
    config: Optional[Path],
    action: Callable[[DeribitRestClient], Awaitable[T]],
    *,
    authenticate: bool = False,
) -> T:
    try:
        return asyncio.run(_with_client(config, action, authenticate=authenticate))
    except (DeribitApiError, ValueError, TimeoutError) as e:
        logger.error("Failed to %s: %s", description, e)
        console.print(f"[red]Error:[/red] {_describe(e)}")
        raise typer.Exit(1)


def _print_result(result: Any, title: str) -> None:
    console.print(f"[bold]{title}[/bold]")
    console.print_json(data=result)


def _print_positions(positions: list[dict[str, Any]]) -> None:
    if not positions:
        console.print("[yellow]No open positions[/yellow]")
        return

    table = Table(title="Positions")
    table.add_column("Instrument", style="cyan")
    table.add_column("Direction")
    table.add_column("Size", justify="right")
    table.add_column("Avg Price", justify="right")
    table.add_column("Mark Price", justify="right")
    table.add_column("Floating PnL", justify="right")

    for position in positions:
        direction = position.get("direction", "zero")
        style = {"buy": "green", "sell": "red"}.get(direction, "white")
        table.add_row(
            str(position.get("instrument_name", "")),
            f"[{style}]{direction.upper()}[/{style}]",
            str(position.get("size", "")),
            str(position.get("average_price", "")),
            str(position.get("mark_price", "")),
            str(position.get("floating_profit_loss", "")),
        )

    console.print(table)


@app.command()
def auth(
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Obtain an access token with the configured credentials."""

    async def action(client: DeribitRestClient):
        return client.token

    token = _execute("authenticate", config, action, authenticate=True)
    console.print(Panel.fit(
        f"[green]✓ Authenticated[/green]\n"
        f"Scope: {token.scope}\n"
        f"Expires in: {token.expires_in}s",
        title="Auth",
    ))


@app.command()
def order_place(
    instrument: str = typer.Argument(..., help="Instrument name, e.g. BTC-PERPETUAL"),
    side: str = typer.Option(..., help="buy or sell"),
    amount: float = typer.Option(..., help="Order amount"),
    price: Optional[float] = typer.Option(None, help="Limit price"),
    order_type: str = typer.Option("limit", "--type", help="Order type (limit/market)"),
    label: Optional[str] = typer.Option(None, help="Client label for the order"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Place a buy or sell order."""

    async def action(client: DeribitRestClient):
        return await client.place_order(
            instrument, side, amount, order_type=order_type, price=price, label=label
        )

    _print_result(_execute("place order", config, action, authenticate=True), "Order placed")


@app.command()
def positions(
    currency: str = typer.Option("BTC", help="Currency (BTC, ETH, ...)"),
    kind: Optional[str] = typer.Option("future", help="Instrument kind filter"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """List open positions."""

    async def action(client: DeribitRestClient):
        return await client.get_positions(currency, kind)

    _print_positions(_execute("get positions", config, action, authenticate=True))


@app.command()
def order_book(
    instrument: str = typer.Argument(..., help="Instrument name, e.g. BTC-PERPETUAL"),
    depth: Optional[int] = typer.Option(None, help="Number of price levels"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Fetch an order-book snapshot."""

    async def action(client: DeribitRestClient):
        return await client.get_order_book(instrument, depth)

    _print_result(_execute("get order book", config, action), f"Order book {instrument}")


@app.command()
def order_modify(
    order_id: str = typer.Argument(..., help="Order ID to modify"),
    amount: float = typer.Option(..., help="New amount"),
    price: Optional[float] = typer.Option(None, help="New price"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Change the amount and price of an open order."""

    async def action(client: DeribitRestClient):
        return await client.modify_order(order_id, amount, price)

    _print_result(_execute("modify order", config, action, authenticate=True), "Order modified")


@app.command()
def order_cancel(
    order_id: str = typer.Argument(..., help="Order ID to cancel"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Cancel an open order."""

    async def action(client: DeribitRestClient):
        return await client.cancel_order(order_id)

    _print_result(_execute("cancel order", config, action, authenticate=True), "Order cancelled")


@app.command()
def menu(
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Interactive menu sharing one client and token across actions."""
    client = _create_rest_client(_load_settings(config))
    asyncio.run(_menu_loop(client))


async def _menu_loop(client: DeribitRestClient) -> None:
    try:
        while True:
            console.print("Select an action:")
            for number, label in enumerate(MENU_CHOICES, start=1):
                console.print(f"{number}. {label}")

            choice = typer.prompt("Choice", type=int)
            if choice == len(MENU_CHOICES):
                return
            try:
                await _menu_action(client, choice)
            except (DeribitApiError, ValueError, TimeoutError) as e:
                logger.error("Menu action %s failed: %s", choice, e)
                console.print(f"[red]Error:[/red] {_describe(e)}")
    finally:
        await client.close()


async def _menu_action(client: DeribitRestClient, choice: int) -> None:
    if choice == 1:
        token = await client.authenticate()
        console.print(f"[green]✓ Authenticated[/green] (expires in {token.expires_in}s)")
    elif choice == 2:
        instrument = typer.prompt("Instrument")
        side = typer.prompt("Side (buy/sell)")
        amount = typer.prompt("Amount", type=float)
        price = typer.prompt("Price", type=float)
        _print_result(await client.place_order(instrument, side, amount, price=price), "Order placed")
    elif choice == 3:
        currency = typer.prompt("Currency", default="BTC")
        _print_positions(await client.get_positions(currency))
    elif choice == 4:
        instrument = typer.prompt("Instrument")
        _print_result(await client.get_order_book(instrument), f"Order book {instrument}")
    elif choice == 5:
        order_id = typer.prompt("Order ID")
        amount = typer.prompt("New amount", type=float)
        price = typer.prompt("New price", type=float)
        _print_result(await client.modify_order(order_id, amount, price), "Order modified")
    elif choice == 6:
        order_id = typer.prompt("Order ID")
        _print_result(await client.cancel_order(order_id), "Order cancelled")
    else:
        console.print("[yellow]Invalid choice! Please try again.[/yellow]")
