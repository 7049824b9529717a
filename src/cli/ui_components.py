"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from typing import Sequence

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.chemistry import reading_status
from core.domain.models import (
    ChemicalAdjustment,
    InventoryItem,
    LogEntry,
    PoolData,
    RecommendationResult,
    User,
)


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida."""

    title = Text("- NeuPool +", style="bold blue")
    subtitle = Text("Pool & spa maintenance • Chemistry • Inventory", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="blue", padding=(1, 4)))


def _fmt(value: float | None, unit: str = "") -> str:
    if value is None:
        return "--"
    return f"{value:g}{unit}"


def build_pools_table(pools: Sequence[PoolData], users: Sequence[User] = ()) -> Table:
    table = Table(title="Pools")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Category", style="magenta")
    table.add_column("Type")
    table.add_column("Surface")
    table.add_column("Volume (gal)", justify="right")
    if users:
        table.add_column("Technicians", style="dim")
    for pool in pools:
        row = [
            pool.id,
            pool.config.name,
            pool.config.category.value,
            pool.config.sanitizer.value,
            pool.config.surface.value,
            f"{pool.config.volume:,.0f}",
        ]
        if users:
            techs = [u.username for u in users if pool.id in u.assigned_pools]
            row.append(", ".join(techs) or "none assigned")
        table.add_row(*row)
    return table


def build_users_table(users: Sequence[User]) -> Table:
    table = Table(title="Users")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Username", style="white")
    table.add_column("Role", style="magenta")
    table.add_column("Assigned pools", style="dim")
    for u in users:
        pools = "all" if u.is_admin else (", ".join(u.assigned_pools) or "-")
        table.add_row(u.id, u.username, u.role.value, pools)
    return table


def build_inventory_table(items: Sequence[InventoryItem]) -> Table:
    table = Table(title="Chemical Inventory")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Quantity", justify="right")
    table.add_column("Unit")
    table.add_column("Vendor", style="dim")
    table.add_column("Last purchased", style="dim")
    for item in items:
        qty = Text(f"{item.quantity:g}", style="red" if item.is_low else "green")
        purchased = item.last_purchased.date().isoformat() if item.last_purchased else "-"
        vendor = item.vendor or "-"
        if item.vendor_url:
            vendor = f"{vendor} ({item.vendor_url})"
        table.add_row(item.id, item.name, qty, item.unit, vendor, purchased)
    return table


def build_adjustments_table(adjustments: Sequence[ChemicalAdjustment], *, title: str = "Adjustments") -> Table:
    table = Table(title=title)
    table.add_column("Chemical", style="white")
    table.add_column("Amount", justify="right")
    table.add_column("Unit")
    table.add_column("Source", style="magenta")
    table.add_column("Reason", style="dim")
    for adj in adjustments:
        table.add_row(adj.chemical_name, f"{adj.amount:g}", adj.unit, adj.source, adj.reason)
    return table


def build_history_table(logs: Sequence[LogEntry]) -> Table:
    """Most recent entry first."""

    table = Table(title="Maintenance Log")
    table.add_column("When", style="cyan", no_wrap=True)
    table.add_column("By")
    table.add_column("pH", justify="right")
    table.add_column("FC", justify="right")
    table.add_column("TA", justify="right")
    table.add_column("CYA", justify="right")
    table.add_column("Water", style="yellow")
    table.add_column("Adjustments")
    table.add_column("Notes", style="dim")
    for entry in reversed(list(logs)):
        r = entry.readings
        water = []
        if entry.water_events.added:
            water.append("added")
        if entry.water_events.drained_half:
            water.append(">50% drained")
        elif entry.water_events.drained:
            water.append("drained")
        adjustments = "\n".join(f"{a.amount:g} {a.unit} {a.chemical_name}" for a in entry.adjustments)
        table.add_row(
            entry.timestamp.astimezone().strftime("%Y-%m-%d %H:%M"),
            entry.user,
            _fmt(r.ph),
            _fmt(r.free_chlorine),
            _fmt(r.total_alkalinity),
            _fmt(r.cyanuric_acid),
            ", ".join(water) or "-",
            adjustments or "-",
            entry.notes or "",
        )
    return table


def build_dashboard_panel(pool: PoolData, logs: Sequence[LogEntry]) -> Panel:
    body = Text()
    body.append(f"Volume: {pool.config.volume:,.0f} gal\n")
    body.append(f"Category: {pool.config.category.value}  Type: {pool.config.sanitizer.value}\n")
    last = logs[-1] if logs else None
    if last is None:
        body.append("\nNo readings yet.", style="dim")
    else:
        status = reading_status(last.readings)
        body.append("\nLast pH: ")
        body.append(_fmt(last.readings.ph), style="green" if status["ph"] else "red")
        body.append("\nLast Free Chlorine: ")
        body.append(_fmt(last.readings.free_chlorine, " ppm"), style="green" if status["free_chlorine"] else "red")
        body.append(f"\nLast service: {last.timestamp.astimezone():%Y-%m-%d %H:%M} by {last.user}")
    body.append(f"\nTotal visits: {len(logs)}", style="dim")
    return Panel(body, title=Text(pool.config.name, style="bold blue"), border_style="blue")


def build_analysis_panel(result: RecommendationResult) -> Panel:
    """Panel para presentar la recomendación IA."""

    title = Text("AI Analysis", style="bold yellow")
    body = Text()
    body.append(result.analysis.strip() + "\n")
    if result.adjustments:
        body.append("\nRecommended:\n", style="bold")
        for a in result.adjustments:
            body.append(f"- {a.amount:g} {a.unit} {a.chemical_name}: {a.reason}\n")
    else:
        body.append("\nNo adjustments needed.\n", style="green")
    if result.model:
        body.append(f"\nModel: {result.model}", style="dim")
    return Panel(body, title=title, border_style="yellow")
