"""Admin commands: pools and user access."""

from __future__ import annotations

from typing import Optional

import typer

from cli.session import console, get_context, handle_errors
from cli.ui_components import build_pools_table, build_users_table
from core.domain.models import PoolCategory, PoolConfig, SanitizerType, Surface
from core.services.state_reducers import (
    add_pool,
    delete_pool,
    delete_user,
    get_pool,
    set_pool_access,
    update_pool,
)

app = typer.Typer(no_args_is_help=True, help="Admin: manage pools, users and access.")


@app.command()
@handle_errors
def users(ctx: typer.Context) -> None:
    cli = get_context(ctx)
    cli.current_user(admin_mode=True)
    console.print(build_users_table(cli.load_state().users))


@app.command(name="pools")
@handle_errors
def list_pools(ctx: typer.Context) -> None:
    cli = get_context(ctx)
    cli.current_user(admin_mode=True)
    state = cli.load_state()
    console.print(build_pools_table(state.pools, state.users))


@app.command(name="pool-add")
@handle_errors
def pool_add(
    ctx: typer.Context,
    name: str = typer.Argument(...),
    volume: float = typer.Option(..., "--volume", help="Gallons."),
    sanitizer: SanitizerType = typer.Option(SanitizerType.CHLORINE, "--type"),
    surface: Surface = typer.Option(Surface.PLASTER, "--surface"),
    category: PoolCategory = typer.Option(PoolCategory.POOL, "--category"),
    notes: str = typer.Option("", "--notes"),
) -> None:
    cli = get_context(ctx)
    admin = cli.current_user(admin_mode=True)
    config = PoolConfig(name=name, volume=volume, sanitizer=sanitizer, surface=surface, category=category)
    state, pool = add_pool(cli.load_state(), admin, config, notes=notes)
    cli.save_state(state)
    console.print(f"[green]Created pool[/green] {pool.id} ({pool.config.name}).")


@app.command(name="pool-update")
@handle_errors
def pool_update(
    ctx: typer.Context,
    pool_id: str = typer.Argument(...),
    name: Optional[str] = typer.Option(None, "--name"),
    volume: Optional[float] = typer.Option(None, "--volume"),
    sanitizer: Optional[SanitizerType] = typer.Option(None, "--type"),
    surface: Optional[Surface] = typer.Option(None, "--surface"),
    category: Optional[PoolCategory] = typer.Option(None, "--category"),
    notes: Optional[str] = typer.Option(None, "--notes"),
) -> None:
    """Edit a pool. Technicians may edit pools assigned to them."""

    cli = get_context(ctx)
    user = cli.current_user()
    state = cli.load_state()
    current = get_pool(state, pool_id).config
    changes = {
        "name": name,
        "volume": volume,
        "sanitizer": sanitizer,
        "surface": surface,
        "category": category,
    }
    merged = current.model_dump()
    merged.update({k: v for k, v in changes.items() if v is not None})
    config = PoolConfig.model_validate(merged)
    cli.save_state(update_pool(state, user, pool_id, config=config, notes=notes))
    console.print(f"[green]Updated pool[/green] {pool_id}.")


@app.command(name="pool-delete")
@handle_errors
def pool_delete(
    ctx: typer.Context,
    pool_id: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y"),
) -> None:
    """Delete a pool. Its logs remain but the pool becomes inaccessible."""

    cli = get_context(ctx)
    admin = cli.current_user(admin_mode=True)
    if not yes and not typer.confirm(
        "Delete this pool? All logs associated with it will remain but the pool will be inaccessible."
    ):
        raise typer.Abort()
    cli.save_state(delete_pool(cli.load_state(), admin, pool_id))
    console.print(f"[green]Deleted pool[/green] {pool_id}.")


@app.command()
@handle_errors
def grant(ctx: typer.Context, user_id: str = typer.Argument(...), pool_id: str = typer.Argument(...)) -> None:
    cli = get_context(ctx)
    admin = cli.current_user(admin_mode=True)
    cli.save_state(set_pool_access(cli.load_state(), admin, user_id, pool_id, granted=True))
    console.print(f"[green]Granted[/green] {pool_id} to user {user_id}.")


@app.command()
@handle_errors
def revoke(ctx: typer.Context, user_id: str = typer.Argument(...), pool_id: str = typer.Argument(...)) -> None:
    cli = get_context(ctx)
    admin = cli.current_user(admin_mode=True)
    cli.save_state(set_pool_access(cli.load_state(), admin, user_id, pool_id, granted=False))
    console.print(f"[green]Revoked[/green] {pool_id} from user {user_id}.")


@app.command(name="user-delete")
@handle_errors
def user_delete(
    ctx: typer.Context,
    user_id: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y"),
) -> None:
    cli = get_context(ctx)
    admin = cli.current_user(admin_mode=True)
    if not yes and not typer.confirm("Delete this user?"):
        raise typer.Abort()
    cli.save_state(delete_user(cli.load_state(), admin, user_id))
    console.print(f"[green]Deleted user[/green] {user_id}.")
