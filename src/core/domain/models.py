"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- El mismo modelo valida el snapshot persistido y la respuesta del servicio IA.

Nota:
- Todos los modelos son inmutables (`frozen=True`). Las transiciones de estado
  crean copias nuevas; nunca se muta un snapshot en sitio.
- Los alias camelCase son el formato persistido/intercambiado.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Model(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class Role(str, Enum):
    """Roles de usuario. No hay permisos más finos que estos dos."""

    ADMIN = "admin"
    USER = "user"


class SanitizerType(str, Enum):
    CHLORINE = "chlorine"
    SALT = "salt"


class Surface(str, Enum):
    PLASTER = "plaster"
    VINYL = "vinyl"
    FIBERGLASS = "fiberglass"


class PoolCategory(str, Enum):
    """Piscina o spa: cambia los rangos objetivo de la química."""

    POOL = "pool"
    SPA = "spa"


class User(_Model):
    id: str = Field(default_factory=new_id)
    username: str = Field(..., min_length=1, max_length=128)
    password_hash: str = Field(
        ...,
        min_length=1,
        description="Hash PBKDF2 con sal (ver `core.security`). Nunca texto plano.",
    )
    role: Role = Role.USER
    assigned_pools: list[str] = Field(
        default_factory=list,
        description="IDs de piscinas accesibles. Los admin acceden a todas implícitamente.",
    )

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


class PoolConfig(_Model):
    name: str = Field(..., min_length=1, max_length=256)
    volume: float = Field(..., gt=0, description="Volumen en galones.")
    sanitizer: SanitizerType = Field(default=SanitizerType.CHLORINE, alias="type")
    surface: Surface = Surface.PLASTER
    category: PoolCategory = PoolCategory.POOL


class PoolData(_Model):
    """Piscina registrada.

    Borrar una piscina no borra sus registros: los `LogEntry` conservan el
    `pool_id` colgante a propósito.
    """

    id: str = Field(default_factory=new_id)
    config: PoolConfig
    notes: str = ""


class ChemicalReading(_Model):
    ph: float = Field(..., ge=0, le=14)
    free_chlorine: float = Field(..., ge=0, description="Cloro libre (ppm).")
    total_alkalinity: float = Field(..., ge=0, description="Alcalinidad total (ppm).")
    cyanuric_acid: float = Field(..., ge=0, description="Ácido cianúrico / estabilizador (ppm).")
    calcium_hardness: float | None = Field(default=None, ge=0)
    salt_level: float | None = Field(
        default=None,
        ge=0,
        description="Solo tiene sentido en piscinas de sal (ppm).",
    )
    temperature: float | None = Field(default=None, description="Temperatura (°F).")


class InventoryItem(_Model):
    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=256)
    quantity: float = Field(..., ge=0)
    unit: str = Field(default="lbs", min_length=1)
    vendor: str | None = None
    vendor_url: str | None = None
    last_purchased: datetime | None = None
    min_threshold: float | None = Field(default=None, ge=0)

    @property
    def is_low(self) -> bool:
        return self.min_threshold is not None and self.quantity <= self.min_threshold


class _AdjustmentBase(_Model):
    id: str = Field(default_factory=new_id)
    chemical_name: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)
    unit: str = Field(..., min_length=1)
    reason: str = ""


class RecommendedAdjustment(_AdjustmentBase):
    """Ajuste sugerido por el servicio de razonamiento."""

    source: Literal["ai"] = "ai"
    inventory_item_id: str | None = Field(
        default=None,
        description="Referencia opcional a un `InventoryItem` cuando se conoce.",
    )


class ManualAdjustment(_AdjustmentBase):
    """Ajuste introducido a mano por el técnico."""

    source: Literal["manual"] = "manual"
    reason: str = "Manual Addition"


ChemicalAdjustment = Annotated[
    Union[RecommendedAdjustment, ManualAdjustment],
    Field(discriminator="source"),
]


class WaterEvents(_Model):
    added: bool = False
    drained: bool = False
    drained_half: bool = Field(
        default=False,
        description="Se vació más del 50%. Implica `drained`.",
    )

    @model_validator(mode="before")
    @classmethod
    def _half_implies_drained(cls, data: Any) -> Any:
        if isinstance(data, dict):
            half = data.get("drained_half", data.get("drainedHalf"))
            if half:
                data = {k: v for k, v in data.items() if k != "drained"}
                data["drained"] = True
        return data

    @property
    def any_event(self) -> bool:
        return self.added or self.drained or self.drained_half


class LogEntry(_Model):
    """Registro inmutable de una visita de servicio."""

    id: str = Field(default_factory=new_id)
    pool_id: str
    timestamp: datetime = Field(default_factory=utcnow)
    user: str = Field(..., min_length=1)
    readings: ChemicalReading
    adjustments: tuple[ChemicalAdjustment, ...] = Field(default_factory=tuple)
    water_events: WaterEvents = Field(default_factory=WaterEvents)
    notes: str = ""


class AppState(_Model):
    """Agregado raíz: se persiste y restaura siempre como una unidad."""

    users: list[User] = Field(default_factory=list)
    pools: list[PoolData] = Field(default_factory=list)
    inventory: list[InventoryItem] = Field(default_factory=list)
    logs: list[LogEntry] = Field(default_factory=list)


class RecommendationResult(_Model):
    """Resultado normalizado del servicio de razonamiento."""

    analysis: str
    adjustments: list[RecommendedAdjustment] = Field(default_factory=list)
    model: str | None = None
    generated_at: datetime = Field(default_factory=utcnow)
