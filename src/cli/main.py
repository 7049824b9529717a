"""CLI principal (Typer).

Comandos de técnico: pools, dashboard, history, measure.
Sub-apps: `admin`, `inventory`, `doctor`.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import typer

from adapters.ai_chemist import OpenAIChemist
from cli import admin, doctor, inventory
from cli.session import (
    CliContext,
    configure_logging,
    console,
    get_context,
    handle_errors,
)
from cli.ui_components import (
    build_adjustments_table,
    build_analysis_panel,
    build_dashboard_panel,
    build_history_table,
    build_pools_table,
    print_banner,
)
from core.domain.errors import ValidationError
from core.domain.models import ChemicalReading, SanitizerType, WaterEvents
from core.services.measurement_session import MeasurementSession
from core.services.state_reducers import (
    accessible_pools,
    get_accessible_pool,
    pool_logs,
    register_user,
)

app = typer.Typer(no_args_is_help=True, help="NeuPool: pool & spa maintenance tracking.")
app.add_typer(admin.app, name="admin")
app.add_typer(inventory.app, name="inventory")
app.add_typer(doctor.app, name="doctor")


@app.callback()
def main(
    ctx: typer.Context,
    username: Optional[str] = typer.Option(None, "--username", "-u", envvar="NEUPOOL_USERNAME"),
    password: Optional[str] = typer.Option(None, "--password", "-p", envvar="NEUPOOL_PASSWORD"),
    state_path: Optional[Path] = typer.Option(None, "--state-path", help="Override the state file location."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    cli_ctx = CliContext.build(state_path=state_path, username=username, password=password)
    configure_logging("DEBUG" if verbose else cli_ctx.settings.log_level)
    ctx.obj = cli_ctx


@app.command()
@handle_errors
def register(
    ctx: typer.Context,
    new_username: str = typer.Argument(..., metavar="USERNAME"),
    new_password: str = typer.Option(..., "--new-password", prompt=True, hide_input=True, confirmation_prompt=True),
) -> None:
    """Create a technician account (no pools assigned until an admin grants them)."""

    cli = get_context(ctx)
    state, user = register_user(cli.load_state(), new_username, new_password)
    cli.save_state(state)
    console.print(f"[green]Account created![/green] Please log in as {user.username}.")


@app.command()
@handle_errors
def whoami(ctx: typer.Context) -> None:
    cli = get_context(ctx)
    user = cli.current_user()
    print_banner(console)
    console.print(f"{user.username} ({user.role.value})")


@app.command()
@handle_errors
def pools(ctx: typer.Context) -> None:
    """List the pools you can access."""

    cli = get_context(ctx)
    user = cli.current_user()
    state = cli.load_state()
    available = accessible_pools(state, user)
    if not available:
        console.print("[yellow]No pools assigned. Ask an admin for access.[/yellow]")
        return
    console.print(build_pools_table(available))


@app.command()
@handle_errors
def dashboard(ctx: typer.Context, pool_id: str = typer.Argument(...)) -> None:
    cli = get_context(ctx)
    user = cli.current_user()
    state = cli.load_state()
    pool = get_accessible_pool(state, user, pool_id)
    logs = pool_logs(state, pool.id)
    console.print(build_dashboard_panel(pool, logs))
    if logs:
        console.print(build_history_table(logs[-5:]))


@app.command()
@handle_errors
def history(ctx: typer.Context, pool_id: str = typer.Argument(...)) -> None:
    """Maintenance log for a pool. Admins can read logs of deleted pools."""

    cli = get_context(ctx)
    user = cli.current_user()
    state = cli.load_state()
    if not user.is_admin:
        get_accessible_pool(state, user, pool_id)
    logs = pool_logs(state, pool_id)
    if not logs:
        console.print("[dim]No log entries.[/dim]")
        return
    console.print(build_history_table(logs))


def _parse_manual(spec: str) -> tuple[str, float | None, str]:
    """Parse `NAME:AMOUNT[:UNIT]`."""

    parts = [p.strip() for p in spec.split(":")]
    if len(parts) not in (2, 3):
        raise ValidationError(f"Manual adjustment must be NAME:AMOUNT[:UNIT], got {spec!r}")
    name, amount_s = parts[0], parts[1]
    unit = parts[2] if len(parts) == 3 else "lbs"
    try:
        amount = float(amount_s) if amount_s else None
    except ValueError as exc:
        raise ValidationError(f"Invalid amount in {spec!r}") from exc
    if not name or amount is None:
        raise ValidationError(f"Chemical name and amount are required, got {spec!r}")
    if amount < 0:
        raise ValidationError(f"Amount must be zero or more, got {spec!r}")
    return name, amount, unit


@app.command()
@handle_errors
def measure(
    ctx: typer.Context,
    pool_id: str = typer.Argument(...),
    ph: float = typer.Option(..., "--ph", prompt="pH"),
    fc: float = typer.Option(..., "--fc", prompt="Free Chlorine (ppm)"),
    ta: float = typer.Option(..., "--ta", prompt="Total Alkalinity (ppm)"),
    cya: float = typer.Option(..., "--cya", prompt="Cyanuric Acid (ppm)"),
    ch: Optional[float] = typer.Option(None, "--ch", help="Calcium hardness (ppm)."),
    salt: Optional[float] = typer.Option(None, "--salt", help="Salt level (ppm); salt pools only."),
    temp: Optional[float] = typer.Option(None, "--temp", help="Temperature (F)."),
    water_added: bool = typer.Option(False, "--water-added"),
    water_drained: bool = typer.Option(False, "--water-drained"),
    drained_half: bool = typer.Option(False, "--drained-half", help="More than 50% drained and refilled."),
    analyze: bool = typer.Option(False, "--analyze", help="Ask the AI service for adjustments."),
    manual: List[str] = typer.Option([], "--manual", "-m", help="NAME:AMOUNT[:UNIT], repeatable."),
    notes: str = typer.Option("", "--notes"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Commit without confirmation."),
) -> None:
    """Record a reading, optionally get AI adjustments, and commit the log."""

    cli = get_context(ctx)
    user = cli.current_user()
    state = cli.load_state()
    pool = get_accessible_pool(state, user, pool_id)

    reading = ChemicalReading(
        ph=ph,
        free_chlorine=fc,
        total_alkalinity=ta,
        cyanuric_acid=cya,
        calcium_hardness=ch,
        salt_level=salt if pool.config.sanitizer == SanitizerType.SALT else None,
        temperature=temp,
    )
    water_events = WaterEvents(added=water_added, drained=water_drained, drained_half=drained_half)
    # Parsed before any AI call so bad input never throws away a result.
    manual_specs = [_parse_manual(spec) for spec in manual]
    session = MeasurementSession(OpenAIChemist(cli.settings), pool=pool, user=user)

    if analyze:
        with console.status("Calculating adjustments..."):
            result = asyncio.run(
                session.analyze(reading=reading, inventory=state.inventory, water_events=water_events)
            )
        if result is not None:
            console.print(build_analysis_panel(result))

    for name, amount, unit in manual_specs:
        session.add_manual_adjustment(name, amount, unit)

    adjustments = session.final_adjustments()
    if adjustments:
        console.print(build_adjustments_table(adjustments, title="Adjustments to apply"))

    if not yes and not typer.confirm("Save log entry?", default=True):
        console.print("[dim]Discarded.[/dim]")
        return

    new_state, entry = session.commit(state, reading=reading, water_events=water_events, notes=notes)
    cli.save_state(new_state)
    console.print(f"[green]Saved log entry[/green] {entry.id} for {pool.config.name}.")


def run() -> None:
    app()
