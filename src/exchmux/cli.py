"""Typer-based CLI for multi-exchange operations."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from .di import AppContainer


# Import with local function to avoid circular imports
def _load_settings(config_path: Optional[Path] = None):
    from .config import load_settings
    return load_settings(config_path)


def _build_container(settings):
    from .di import build_container
    return build_container(settings)


app = typer.Typer(help="Multi-exchange trading CLI")
console = Console()
logger = logging.getLogger(__name__)


def run_cli(argv: list[str] | None = None) -> None:
    """Run CLI with optional argv parameter."""
    app(argv)


def init_components(config_path: Optional[Path] = None) -> "AppContainer":
    """Load settings and build the container (starts the shared runtime)."""
    settings = _load_settings(config_path)
    return _build_container(settings)


@app.command()
def balances(
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Show balances summed across every configured exchange."""
    container = init_components(config)
    try:
        result = container.client.get_balances()
    finally:
        container.close()

    table = Table(title="Balances")
    table.add_column("Asset", style="green")
    table.add_column("Free", style="cyan", justify="right")
    table.add_column("Locked", style="magenta", justify="right")
    table.add_column("Exchanges", style="blue")

    for asset in sorted(result):
        balance = result[asset]
        if balance.total == 0:
            continue
        holders = [name for name, per in result.per_exchange.items() if asset in per]
        table.add_row(asset, f"{balance.free:.8f}", f"{balance.locked:.8f}", ", ".join(holders))

    console.print(table)

    for name, error in result.errors.items():
        console.print(f"[yellow]⚠ {name}:[/yellow] {error}")
    if result.failed:
        raise typer.Exit(2)


@app.command()
def balance(
    asset: str = typer.Argument(..., help="Asset code, e.g. BTC"),
    symbol: Optional[str] = typer.Option(None, help="Only ask the exchange routing this symbol"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Show the balance of a single asset."""
    container = init_components(config)
    try:
        result = container.client.get_balance(asset, symbol=symbol)
    except KeyError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    finally:
        container.close()

    if result is None:
        console.print(f"[yellow]No balance available for {asset.upper()}[/yellow]")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"Asset: [green]{result.asset}[/green]\n"
        f"Free: [bold]{result.free:.8f}[/bold]\n"
        f"Locked: [bold]{result.locked:.8f}[/bold]",
        title="Balance",
    ))


@app.command()
def exists(
    symbol: str = typer.Argument(..., help="Trading symbol, e.g. BTCUSDT"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Check whether the exchange routing SYMBOL currently trades it."""
    container = init_components(config)
    try:
        found = container.client.symbol_exists(symbol)
    except KeyError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    finally:
        container.close()

    if found:
        console.print(f"[green]✓[/green] {symbol.upper()} is tradable")
    else:
        console.print(f"[red]✗[/red] {symbol.upper()} is not available")
        raise typer.Exit(1)


def _submit(side: str, symbol: str, quantity: float, price: float, config: Optional[Path], timeout: float) -> None:
    container = init_components(config)
    try:
        submit = container.client.buy_order if side == "buy" else container.client.sell_order
        future = submit(symbol, quantity, price)
        console.print(f"Submitted {side} {quantity} {symbol.upper()} @ {price}")
        # The CLI owns the runtime, so it waits before shutting it down
        order = future.result(timeout)
    except KeyError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    finally:
        container.close()

    if order is None:
        console.print("[red]✗ Order was not accepted, see log for details[/red]")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"Order ID: [cyan]{order.order_id}[/cyan]\n"
        f"Symbol: [green]{order.symbol}[/green]\n"
        f"Side: {order.side}\n"
        f"Quantity: {order.quantity}\n"
        f"Price: {order.price}\n"
        f"Status: {order.status}",
        title="Order",
    ))


@app.command()
def buy(
    symbol: str = typer.Argument(..., help="Trading symbol"),
    quantity: float = typer.Argument(..., help="Order quantity"),
    price: float = typer.Argument(..., help="Limit price"),
    timeout: float = typer.Option(30.0, help="Seconds to wait for the exchange"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Place a GTC limit buy order."""
    _submit("buy", symbol, quantity, price, config, timeout)


@app.command()
def sell(
    symbol: str = typer.Argument(..., help="Trading symbol"),
    quantity: float = typer.Argument(..., help="Order quantity"),
    price: float = typer.Argument(..., help="Limit price"),
    timeout: float = typer.Option(30.0, help="Seconds to wait for the exchange"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Place a GTC limit sell order."""
    _submit("sell", symbol, quantity, price, config, timeout)


@app.command()
def snapshot(
    symbols: Optional[List[str]] = typer.Argument(None, help="Symbols to show (default: all)"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Poll every exchange once and show top of book."""
    container = init_components(config)
    try:
        counts = asyncio.run(container.observer.poll_once())
        snapshots = container.observer.snapshots()
    finally:
        container.close()

    wanted = {s.upper() for s in symbols} if symbols else None

    table = Table(title="Market Snapshot")
    table.add_column("Symbol", style="green")
    table.add_column("Exchange", style="blue")
    table.add_column("Bid", style="cyan", justify="right")
    table.add_column("Ask", style="magenta", justify="right")
    table.add_column("Mid", style="yellow", justify="right")

    for symbol in sorted(snapshots):
        if wanted is not None and symbol not in wanted:
            continue
        snap = snapshots[symbol]
        table.add_row(
            symbol,
            snap.exchange,
            f"{snap.bid}" if snap.bid is not None else "",
            f"{snap.ask}" if snap.ask is not None else "",
            f"{snap.price}" if snap.price is not None else "",
        )

    console.print(table)

    for name, count in counts.items():
        if count == 0:
            console.print(f"[yellow]⚠ No data from {name}[/yellow]")


@app.command("watch")
def watch_command(
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Poll market data from every exchange until interrupted."""
    from .app import watch

    container = init_components(config)
    try:
        asyncio.run(watch(container))
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")
    finally:
        container.close()


def main():
    """CLI main entry point."""
    app()


if __name__ == "__main__":
    main()
