"""Persistencia del agregado `AppState`.

Por qué JSON en un único fichero:
- El estado se lee una vez al arrancar y se reescribe completo en cada
  mutación; nunca hay escrituras parciales.
- El snapshot vive bajo una clave de espacio de nombres (`state_key`), así
  el mismo fichero puede alojar otras claves sin pisarlas.

Sin versionado ni migraciones: una forma incompatible es un error fatal
(`StateLoadError`), nunca se mezcla parcialmente.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from core.config import AppSettings
from core.domain.errors import StateLoadError
from core.domain.models import AppState
from core.services.state_reducers import initial_state

logger = logging.getLogger(__name__)


def serialize_state(state: AppState) -> dict[str, Any]:
    return state.model_dump(mode="json", by_alias=True, exclude_none=True)


def deserialize_state(data: Any) -> AppState:
    try:
        return AppState.model_validate(data)
    except PydanticValidationError as exc:
        raise StateLoadError(f"Stored state has an incompatible shape: {exc.error_count()} error(s)") from exc


class JsonStateStore:
    """Almacén de snapshot completo sobre un fichero JSON UTF-8."""

    def __init__(self, path: Path, *, key: str = "neuPoolState") -> None:
        self.path = path
        self.key = key

    @classmethod
    def from_settings(cls, settings: AppSettings | None = None) -> "JsonStateStore":
        settings = settings or AppSettings()
        return cls(settings.resolved_state_path(), key=settings.state_key)

    def _read_document(self) -> dict[str, Any]:
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StateLoadError(f"Cannot read state file {self.path}: {exc}") from exc
        if not isinstance(document, dict):
            raise StateLoadError(f"State file {self.path} does not contain a JSON object")
        return document

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> AppState:
        """Carga el snapshot; si no hay nada guardado devuelve el estado demo."""

        if not self.exists():
            logger.info("No state at %s; using initial demo state", self.path)
            return initial_state()

        document = self._read_document()
        if self.key not in document:
            logger.info("State file %s has no %r key; using initial demo state", self.path, self.key)
            return initial_state()

        state = deserialize_state(document[self.key])
        logger.debug(
            "Loaded state from %s: %d users, %d pools, %d items, %d logs",
            self.path,
            len(state.users),
            len(state.pools),
            len(state.inventory),
            len(state.logs),
        )
        return state

    def save(self, state: AppState) -> Path:
        """Reescribe el snapshot completo de forma atómica (tmp + rename)."""

        self.path.parent.mkdir(parents=True, exist_ok=True)
        document = self._read_document() if self.exists() else {}
        document[self.key] = serialize_state(state)

        fd, tmp_name = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(json.dumps(document, ensure_ascii=False, indent=2, sort_keys=True) + "\n")
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved state to %s", self.path)
        return self.path
