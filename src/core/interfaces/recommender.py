"""Contrato del servicio de razonamiento químico.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Permite sustituir el adaptador OpenAI por un doble en tests sin acoplar
  la sesión de medición a un SDK concreto.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from core.domain.models import (
    ChemicalReading,
    InventoryItem,
    PoolConfig,
    RecommendationResult,
    WaterEvents,
)


@runtime_checkable
class AdjustmentRecommender(Protocol):
    """Contrato mínimo para obtener ajustes recomendados.

    Reglas de diseño:
    - `recommend` es asíncrono porque hace I/O con un servicio externo.
    - No es idempotente: dos llamadas con las mismas entradas pueden devolver
      cantidades distintas.
    - Falla con `ConfigurationError` o `RecommendationError`; nunca devuelve
      un resultado parcial.
    """

    async def recommend(
        self,
        *,
        pool: PoolConfig,
        reading: ChemicalReading,
        inventory: Sequence[InventoryItem],
        water_events: WaterEvents,
    ) -> RecommendationResult:
        ...
