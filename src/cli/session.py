"""Shared CLI plumbing: settings, state store, credentials and error display.

Lives apart from `cli.main` so sub-apps (admin, inventory, doctor) can use it
without circular imports.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, TypeVar

import typer
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.logging import RichHandler

from adapters.state_store import JsonStateStore
from core.config import AppSettings
from core.domain.errors import NeuPoolError, ValidationError
from core.domain.models import AppState, User
from core.services.state_reducers import authenticate

console = Console()
err_console = Console(stderr=True)

F = TypeVar("F", bound=Callable[..., Any])


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@dataclass
class CliContext:
    settings: AppSettings
    store: JsonStateStore
    username: str | None = None
    password: str | None = None
    _state: AppState | None = field(default=None, repr=False)

    @classmethod
    def build(
        cls,
        *,
        state_path: Path | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> "CliContext":
        settings = AppSettings()
        if state_path is not None:
            settings = settings.model_copy(update={"state_path": state_path})
        return cls(
            settings=settings,
            store=JsonStateStore.from_settings(settings),
            username=username,
            password=password,
        )

    def load_state(self) -> AppState:
        if self._state is None:
            self._state = self.store.load()
        return self._state

    def save_state(self, state: AppState) -> None:
        self.store.save(state)
        self._state = state

    def current_user(self, *, admin_mode: bool = False) -> User:
        """Authenticate with the global credentials, prompting when missing."""

        username = self.username or typer.prompt("Username")
        password = self.password or typer.prompt("Password", hide_input=True)
        return authenticate(self.load_state(), username, password, admin_mode=admin_mode)


def get_context(ctx: typer.Context) -> CliContext:
    obj = ctx.find_root().obj
    if not isinstance(obj, CliContext):
        obj = CliContext.build()
        ctx.find_root().obj = obj
    return obj


def describe_invalid_input(exc: PydanticValidationError) -> str:
    """One-line `field: reason` summary of a pydantic validation error."""

    parts = []
    for error in exc.errors():
        field_name = ".".join(str(p) for p in error.get("loc", ())) or "input"
        parts.append(f"{field_name}: {error.get('msg', 'invalid value')}")
    return "Invalid input. " + "; ".join(parts)


def handle_errors(func: F) -> F:
    """Print `NeuPoolError` as a message and exit 1; nothing is committed.

    Out-of-range form values rejected by the models surface as
    `ValidationError` too.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            try:
                return func(*args, **kwargs)
            except PydanticValidationError as exc:
                raise ValidationError(describe_invalid_input(exc)) from exc
        except NeuPoolError as exc:
            err_console.print(f"[red]Error:[/red] {exc}")
            if exc.retryable:
                err_console.print("[yellow]Nothing was saved. You can retry the operation.[/yellow]")
            raise typer.Exit(code=1) from exc

    return wrapper  # type: ignore[return-value]
