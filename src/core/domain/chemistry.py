"""Rangos objetivo de química del agua.

Por qué aquí:
- Los rangos son entradas del prompt del servicio de razonamiento; aquí no
  se calcula ninguna dosis.
- El dashboard reutiliza los rangos para marcar lecturas fuera de rango.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.domain.models import ChemicalReading, PoolCategory


@dataclass(frozen=True)
class TargetRange:
    low: float
    high: float
    unit: str = ""

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high

    def as_list(self) -> list[float]:
        return [self.low, self.high]

    def label(self) -> str:
        low = f"{self.low:g}"
        high = f"{self.high:g}"
        return f"{low}-{high}{self.unit}"


@dataclass(frozen=True)
class TargetRanges:
    ph: TargetRange
    free_chlorine: TargetRange
    total_alkalinity: TargetRange


_POOL_PH = TargetRange(7.4, 7.6)
_SPA_PH = TargetRange(7.2, 7.8)
_FREE_CHLORINE = TargetRange(3, 5, "ppm")
_TOTAL_ALKALINITY = TargetRange(80, 120, "ppm")

# Umbrales del dashboard, más amplios que los objetivos de dosificación.
DASHBOARD_PH = TargetRange(7.2, 7.8)
DASHBOARD_FREE_CHLORINE = TargetRange(1, 10, "ppm")


def target_ranges(category: PoolCategory) -> TargetRanges:
    """Rangos objetivo según la categoría (piscina o spa)."""

    return TargetRanges(
        ph=_SPA_PH if category == PoolCategory.SPA else _POOL_PH,
        free_chlorine=_FREE_CHLORINE,
        total_alkalinity=_TOTAL_ALKALINITY,
    )


def reading_status(reading: ChemicalReading) -> dict[str, bool]:
    """Devuelve `{"ph": en_rango, "free_chlorine": en_rango}` para el dashboard."""

    return {
        "ph": DASHBOARD_PH.contains(reading.ph),
        "free_chlorine": DASHBOARD_FREE_CHLORINE.contains(reading.free_chlorine),
    }
