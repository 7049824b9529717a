"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.table import Table

from adapters.http_client import check_endpoint
from cli.session import console, get_context
from core.config import write_user_env_vars
from core.domain.errors import StateLoadError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")


def _check_state(ctx: typer.Context) -> tuple[bool, str]:
    cli = get_context(ctx)
    if not cli.store.exists():
        return True, f"{cli.store.path} (not created yet, demo data will be used)"
    try:
        state = cli.store.load()
    except StateLoadError as exc:
        return False, str(exc)
    return True, f"{cli.store.path}: {len(state.pools)} pools, {len(state.logs)} logs"


@app.command()
def run(ctx: typer.Context) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = get_context(ctx).settings

    table = Table(title="NeuPool Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    has_key = bool((settings.ai_api_key or "").strip())
    if has_key:
        table.add_row("AI key", "OK", "AI analysis enabled")
    else:
        table.add_row("AI key", "MISSING", "Run `neupool doctor setup-ai`; manual adjustments still work")
    table.add_row("AI base_url", "OK", settings.ai_base_url)
    table.add_row("AI model", "OK", settings.ai_model)

    # Connectivity (best-effort)
    ok_http, detail_http = asyncio.run(check_endpoint(settings.ai_base_url, settings=settings))
    table.add_row("AI endpoint", "OK" if ok_http else "FAIL", detail_http)

    ok_state, detail_state = _check_state(ctx)
    table.add_row("State file", "OK" if ok_state else "FAIL", detail_state)

    console.print(table)

    if not ok_state:
        console.print(
            "\n[yellow]Note:[/yellow] The state file is unreadable. Fix or move it; it is never partially loaded."
        )


@app.command(name="setup-ai")
def setup_ai() -> None:
    """Interactive AI setup (stores config in the user config .env)."""

    provider = typer.prompt(
        "AI provider",
        default="gemini",
        show_default=True,
    ).strip().lower()

    presets: dict[str, dict[str, str]] = {
        "gemini": {
            "NEUPOOL_AI_BASE_URL": "https://generativelanguage.googleapis.com/v1beta/openai/",
            "NEUPOOL_AI_MODEL": "gemini-2.5-flash",
        },
        "openai": {"NEUPOOL_AI_BASE_URL": "https://api.openai.com/v1", "NEUPOOL_AI_MODEL": "gpt-4o-mini"},
        "openrouter": {"NEUPOOL_AI_BASE_URL": "https://openrouter.ai/api/v1", "NEUPOOL_AI_MODEL": "openai/gpt-4o-mini"},
        "ollama": {"NEUPOOL_AI_BASE_URL": "http://localhost:11434/v1", "NEUPOOL_AI_MODEL": "llama3"},
    }

    values = presets.get(provider, {}).copy()
    if not values:
        console.print("[yellow]Unknown provider preset. You can still enter custom values.[/yellow]")

    base_url = typer.prompt("AI base URL", default=values.get("NEUPOOL_AI_BASE_URL", ""), show_default=True).strip()
    model = typer.prompt("AI model", default=values.get("NEUPOOL_AI_MODEL", ""), show_default=True).strip()
    api_key = typer.prompt("AI API key", hide_input=True, confirmation_prompt=False).strip()

    if not base_url or not model:
        raise typer.BadParameter("base_url and model are required")

    env_path = write_user_env_vars(
        {
            "NEUPOOL_AI_BASE_URL": base_url,
            "NEUPOOL_AI_MODEL": model,
            "NEUPOOL_AI_API_KEY": api_key,
        }
    )

    console.print(f"[green]Saved AI config to:[/green] {env_path}")
