"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (IA/estado) lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias).

    Aquí viven el `.env` global y, por defecto, el fichero de estado.
    """

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "neupool"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "neupool"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "neupool"
    return Path.home() / ".config" / "neupool"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# NeuPool user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="NEUPOOL_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    ai_api_key: str | None = Field(
        default=None,
        description="API key del servicio de razonamiento químico (compatible OpenAI).",
    )
    ai_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai/",
        min_length=8,
        description="Base URL compatible OpenAI (Gemini por defecto).",
    )
    ai_model: str = Field(
        default="gemini-2.5-flash",
        min_length=1,
        description="Modelo usado para calcular ajustes.",
    )
    ai_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Temperatura baja: queremos cálculos de dosis estables.",
    )
    ai_timeout_seconds: float = Field(
        default=45.0,
        gt=0,
        description="Timeout para llamadas al proveedor IA (segundos).",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout por request del cliente de diagnóstico (segundos).",
    )
    user_agent: str = Field(
        default="neupool/0.1 (+https://local)",
        min_length=1,
        description="User-Agent para peticiones HTTP de diagnóstico.",
    )

    state_path: Path | None = Field(
        default=None,
        description="Ruta del fichero de estado. Por defecto <config dir>/state.json.",
    )
    state_key: str = Field(
        default="neuPoolState",
        min_length=1,
        description="Clave de espacio de nombres bajo la que se guarda el snapshot.",
    )

    log_level: str = Field(
        default="WARNING",
        description="Nivel de logging de la CLI (DEBUG, INFO, WARNING, ...).",
    )

    def resolved_state_path(self) -> Path:
        return self.state_path or (get_user_config_dir() / "state.json")
