"""Adaptador para el cálculo de ajustes químicos (API compatible OpenAI).

Responsabilidad:
- Construir la petición (piscina, lecturas, eventos de agua, inventario y
  rangos objetivo según categoría) y el esquema estricto de salida.
- Llamar al proveedor IA (SDK OpenAI compatible) y parsear salida en JSON.
- Normalizar el resultado como `RecommendationResult`.

Importante:
- El cálculo de dosis lo hace el proveedor; aquí no se hace química.
- No se reintenta nunca de forma automática: una llamada nueva implica
  entradas nuevas (la sesión de medición decide cuándo volver a pedir).
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Sequence

from openai import APIError, AsyncOpenAI
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.config import ConfigDict

from core.config import AppSettings
from core.domain.chemistry import target_ranges
from core.domain.errors import ConfigurationError, RecommendationError
from core.domain.models import (
    ChemicalReading,
    InventoryItem,
    PoolConfig,
    RecommendationResult,
    RecommendedAdjustment,
    WaterEvents,
)

logger = logging.getLogger(__name__)


def build_openai_client(*, api_key: str, base_url: str, timeout: float) -> AsyncOpenAI:
    # max_retries=0: los reintentos son decisión explícita del usuario.
    return AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)


_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)


ADJUSTMENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "chemicalName": {
            "type": "string",
            "description": "Name of the chemical to add (e.g., Muriatic Acid, Calcium Hypochlorite).",
        },
        "amount": {"type": "number", "description": "Numeric amount to add."},
        "unit": {
            "type": "string",
            "description": "Unit of measurement (e.g., oz, lbs, cups, gallons).",
        },
        "reason": {"type": "string", "description": "Short explanation for why this is needed."},
    },
    "required": ["chemicalName", "amount", "unit", "reason"],
    "additionalProperties": False,
}

ANALYSIS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "analysis": {"type": "string", "description": "A brief summary of the water balance status."},
        "adjustments": {
            "type": "array",
            "items": ADJUSTMENT_SCHEMA,
            "description": "List of recommended chemical adjustments.",
        },
    },
    "required": ["analysis", "adjustments"],
    "additionalProperties": False,
}


class _AdjustmentPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    chemical_name: str = Field(..., alias="chemicalName", min_length=1)
    amount: float = Field(..., ge=0)
    unit: str = Field(..., min_length=1)
    reason: str


class _RecommendationPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    analysis: str
    adjustments: list[_AdjustmentPayload]


def _extract_json_object(text: str) -> str:
    """Obtiene el primer objeto JSON presente en la respuesta del proveedor."""
    match = _JSON_FENCE_RE.search(text)
    if match:
        return match.group(1).strip()

    stripped = text.strip()
    if stripped.startswith("{") and stripped.endswith("}"):
        return stripped

    start = stripped.find("{")
    end = stripped.rfind("}")
    if 0 <= start < end:
        candidate = stripped[start : end + 1]
        try:
            json.loads(candidate)
            return candidate
        except json.JSONDecodeError:
            pass

    raise ValueError("Could not locate a valid JSON object in the AI provider response.")


def describe_water_events(water_events: WaterEvents) -> str:
    parts = [
        "Fresh water was added." if water_events.added else "",
        "Water was drained." if water_events.drained else "",
        "More than 50% of the water was drained and refilled." if water_events.drained_half else "",
    ]
    return " ".join(p for p in parts if p)


def describe_inventory(inventory: Sequence[InventoryItem]) -> str:
    return ", ".join(f"{i.name} ({i.quantity:g} {i.unit} available)" for i in inventory)


def build_adjustment_request(
    *,
    pool: PoolConfig,
    reading: ChemicalReading,
    inventory: Sequence[InventoryItem],
    water_events: WaterEvents,
) -> dict[str, Any]:
    """Petición estructurada para el servicio de razonamiento.

    Los rangos objetivo dependen de la categoría; son entradas del prompt y no
    se aplican localmente.
    """

    targets = target_ranges(pool.category)
    return {
        "pool": pool.model_dump(mode="json", by_alias=True),
        "readings": reading.model_dump(mode="json", by_alias=True, exclude_none=True),
        "inventory": [
            {"name": i.name, "quantity": i.quantity, "unit": i.unit} for i in inventory
        ],
        "waterEvents": water_events.model_dump(mode="json", by_alias=True),
        "targets": {
            "ph": targets.ph.as_list(),
            "freeChlorine": targets.free_chlorine.as_list(),
            "totalAlkalinity": targets.total_alkalinity.as_list(),
        },
        # Tras vaciar >50% las lecturas de CYA y sal están diluidas.
        "dilutionWarning": water_events.drained_half,
    }


def _optional_line(label: str, value: float | None, unit: str, *, missing: str | None) -> str:
    if value is not None:
        return f"- {label}: {value:g}{unit}"
    return f"- {label}: {missing}" if missing else ""


def build_adjustment_prompt(
    request: dict[str, Any],
    *,
    pool: PoolConfig,
    reading: ChemicalReading,
    water_events: WaterEvents,
    inventory: Sequence[InventoryItem],
) -> str:
    category = pool.category.value
    targets = target_ranges(pool.category)
    fc_note = " (or higher if heavy use)" if category == "spa" else ""

    readings_lines = [
        f"- pH: {reading.ph:g}",
        f"- Free Chlorine: {reading.free_chlorine:g} ppm",
        f"- Total Alkalinity: {reading.total_alkalinity:g} ppm",
        f"- Cyanuric Acid: {reading.cyanuric_acid:g} ppm",
        _optional_line("Calcium Hardness", reading.calcium_hardness, " ppm", missing="Not Measured"),
        _optional_line("Salt Level", reading.salt_level, " ppm", missing=None),
        _optional_line("Temperature", reading.temperature, " F", missing="Not Measured"),
    ]

    lines = [
        "Act as a professional pool technician.",
        "Pool Configuration:",
        f"- Name: {pool.name}",
        f"- Volume: {pool.volume:g} gallons",
        f"- Category: {category.upper()} (Important: adjust targets accordingly for Pool vs Spa)",
        f"- Type: {pool.sanitizer.value}",
        f"- Surface: {pool.surface.value}",
        "",
        "Water Adjustments Today:",
        describe_water_events(water_events) or "None",
        "",
        "Current Readings:",
        *[line for line in readings_lines if line],
        "",
        f"Available Inventory: {describe_inventory(inventory) or 'None'}",
        "",
        "Task:",
        f"Calculate the exact chemical adjustments needed to balance this {category} to ideal levels.",
        f"Targets for {category}:",
        f"- pH: {targets.ph.label()}",
        f"- FC: {targets.free_chlorine.label()}{fc_note}",
        f"- TA: {targets.total_alkalinity.label()}",
        "",
        "Prioritize using chemicals from the Available Inventory if possible.",
        "If a chemical is needed but not in inventory, recommend a generic standard pool chemical.",
        "Use the same name and unit as the inventory item when recommending an inventory chemical.",
    ]
    if request.get("dilutionWarning"):
        lines.append(
            "More than 50% of the water was replaced: the Cyanuric Acid (stabilizer) and Salt readings "
            "are likely understated due to dilution. Account for the loss of stabilizer and salt."
        )
    else:
        lines.append("If water was drained significantly, account for the loss of stabilizer (CYA) and Salt.")
    lines += [
        "",
        "Structured request:",
        json.dumps(request, ensure_ascii=False),
        "",
        "Return the result as JSON.",
    ]
    return "\n".join(lines)


def parse_recommendation(content: str, *, model: str | None = None) -> RecommendationResult:
    """Valida la respuesta del proveedor contra el contrato de salida.

    Raises:
        RecommendationError: respuesta vacía, sin JSON o sin campos requeridos.
    """

    if not content or not content.strip():
        raise RecommendationError("No response from AI")
    try:
        data: Any = json.loads(_extract_json_object(content))
        parsed = _RecommendationPayload.model_validate(data)
    except (ValueError, PydanticValidationError) as exc:
        # json.JSONDecodeError es subclase de ValueError.
        raise RecommendationError("Failed to calculate adjustments. Please try again.") from exc

    return RecommendationResult(
        analysis=parsed.analysis,
        adjustments=[
            RecommendedAdjustment(
                chemical_name=a.chemical_name,
                amount=a.amount,
                unit=a.unit,
                reason=a.reason,
            )
            for a in parsed.adjustments
        ],
        model=model,
    )


class OpenAIChemist:
    """Implementación de `AdjustmentRecommender` sobre el SDK OpenAI."""

    def __init__(self, settings: AppSettings | None = None, *, client: Any | None = None) -> None:
        self._settings = settings or AppSettings()
        self._client = client

    def _get_client(self) -> Any:
        api_key = (self._settings.ai_api_key or "").strip()
        if not api_key:
            raise ConfigurationError(
                "API key is missing. Set NEUPOOL_AI_API_KEY or run `neupool doctor setup-ai`."
            )
        if self._client is None:
            self._client = build_openai_client(
                api_key=api_key,
                base_url=self._settings.ai_base_url,
                timeout=self._settings.ai_timeout_seconds,
            )
        return self._client

    async def recommend(
        self,
        *,
        pool: PoolConfig,
        reading: ChemicalReading,
        inventory: Sequence[InventoryItem],
        water_events: WaterEvents,
    ) -> RecommendationResult:
        # La credencial se comprueba antes de construir nada.
        client = self._get_client()
        model = self._settings.ai_model

        request = build_adjustment_request(
            pool=pool, reading=reading, inventory=inventory, water_events=water_events
        )
        prompt = build_adjustment_prompt(
            request, pool=pool, reading=reading, water_events=water_events, inventory=inventory
        )
        logger.info("Requesting adjustments for %r (%s) from %s", pool.name, pool.category.value, model)

        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._settings.ai_temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": "pool_adjustments", "schema": ANALYSIS_SCHEMA, "strict": True},
                },
            )
        except APIError as exc:
            logger.warning("AI provider error: %s", exc)
            raise RecommendationError("Failed to calculate adjustments. Please try again.") from exc

        if not response.choices:
            raise RecommendationError("No response from AI")
        content = (response.choices[0].message.content or "").strip()
        return parse_recommendation(content, model=model)
