"""Inventory commands. Technicians can list; only admins can change stock."""

from __future__ import annotations

from typing import Optional

import typer

from cli.session import console, get_context, handle_errors
from cli.ui_components import build_inventory_table
from core.services.state_reducers import (
    add_inventory_item,
    change_inventory_quantity,
    delete_inventory_item,
    low_stock,
)

app = typer.Typer(no_args_is_help=True, help="Chemical inventory.")


@app.command(name="list")
@handle_errors
def list_items(ctx: typer.Context) -> None:
    cli = get_context(ctx)
    cli.current_user()
    items = cli.load_state().inventory
    if not items:
        console.print("[dim]Inventory is empty.[/dim]")
        return
    console.print(build_inventory_table(items))


@app.command()
@handle_errors
def low(ctx: typer.Context) -> None:
    """Items at or below their minimum threshold."""

    cli = get_context(ctx)
    cli.current_user()
    items = low_stock(cli.load_state())
    if not items:
        console.print("[green]Nothing below threshold.[/green]")
        return
    console.print(build_inventory_table(items))


@app.command()
@handle_errors
def add(
    ctx: typer.Context,
    name: str = typer.Argument(...),
    quantity: float = typer.Option(..., "--quantity", "-q"),
    unit: str = typer.Option("lbs", "--unit"),
    vendor: Optional[str] = typer.Option(None, "--vendor"),
    vendor_url: Optional[str] = typer.Option(None, "--vendor-url"),
    min_threshold: Optional[float] = typer.Option(None, "--min"),
) -> None:
    cli = get_context(ctx)
    admin = cli.current_user(admin_mode=True)
    state, item = add_inventory_item(
        cli.load_state(),
        admin,
        name=name,
        quantity=quantity,
        unit=unit,
        vendor=vendor,
        vendor_url=vendor_url,
        min_threshold=min_threshold,
    )
    cli.save_state(state)
    console.print(f"[green]Added[/green] {item.name} ({item.quantity:g} {item.unit}) as {item.id}.")


@app.command()
@handle_errors
def adjust(
    ctx: typer.Context,
    item_id: str = typer.Argument(...),
    delta: float = typer.Argument(..., help="Positive to restock, negative to use."),
) -> None:
    cli = get_context(ctx)
    admin = cli.current_user(admin_mode=True)
    cli.save_state(change_inventory_quantity(cli.load_state(), admin, item_id, delta))
    console.print(f"[green]Updated[/green] {item_id}.")


@app.command()
@handle_errors
def remove(ctx: typer.Context, item_id: str = typer.Argument(...)) -> None:
    cli = get_context(ctx)
    admin = cli.current_user(admin_mode=True)
    cli.save_state(delete_inventory_item(cli.load_state(), admin, item_id))
    console.print(f"[green]Removed[/green] {item_id}.")
