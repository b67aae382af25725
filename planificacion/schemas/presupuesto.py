"""
Pydantic v2 schemas for area budget ceilings and commitment rollups.

The external budget service has answered with two shapes over time
(English ``ceiling/committed/available`` and Spanish
``presupuesto_total/presupuesto_comprometido/presupuesto_disponible``);
both are accepted through validation aliases and always serialised with
the Spanish field names below.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from planificacion.parsers.cantidades import parse_quantity
from planificacion.utils.constants import ESTADOS_TECHO, MONEDA_DEFAULT
from planificacion.utils.formato import redondear


class EstadoTecho(str, Enum):
    PROPUESTO = "Propuesto"
    APROBADO = "Aprobado"
    MODIFICADO = "Modificado"
    SUSPENDIDO = "Suspendido"
    CERRADO = "Cerrado"


def _iso_date(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value[:10] or None
    return value


# ---------------------------------------------------------------------------
# Ceiling record
# ---------------------------------------------------------------------------


class TechoPresupuestal(BaseModel):
    """A versioned budget ceiling for one area and fiscal year.

    Attributes:
        total: Assigned ceiling amount.
        version: Monotonic version number of the ceiling.
        valido_desde: Start of the validity window (inclusive).
        valido_hasta: End of the validity window (exclusive).
        estado: Lifecycle state, normalised to its canonical capitalisation
            when it is one of the known states.
        vigencia: Fiscal year as a 4-digit string.
        es_actual: Whether the backend flags this record as current.
    """

    total: float = Field(
        default=0.0,
        validation_alias=AliasChoices("total", "presupuesto_asignado", "presupuesto_total"),
    )
    version: int | None = None
    valido_desde: date | None = Field(
        default=None,
        validation_alias=AliasChoices("valido_desde", "validFrom"),
    )
    valido_hasta: date | None = Field(
        default=None,
        validation_alias=AliasChoices("valido_hasta", "validTo"),
    )
    estado: str | None = Field(default=None, validation_alias=AliasChoices("estado", "status"))
    vigencia: str | None = None
    area_id: int | str | None = None
    moneda: str = MONEDA_DEFAULT
    es_actual: bool = Field(default=False, validation_alias=AliasChoices("es_actual", "isCurrent"))

    model_config = ConfigDict(frozen=True)

    @field_validator("total", mode="before")
    @classmethod
    def _parse_total(cls, value: Any) -> float:
        parsed = parse_quantity(value)
        return parsed if parsed is not None else 0.0

    @field_validator("valido_desde", "valido_hasta", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Any:
        return _iso_date(value)

    @field_validator("estado", mode="before")
    @classmethod
    def _normalize_estado(cls, value: Any) -> str | None:
        if value is None or str(value).strip() == "":
            return None
        texto = str(value).strip()
        for estado in ESTADOS_TECHO:
            if estado.lower() == texto.lower():
                return estado
        return texto

    @field_validator("vigencia", mode="before")
    @classmethod
    def _vigencia_str(cls, value: Any) -> str | None:
        if value is None or isinstance(value, bool):
            return None
        return str(value).strip() or None

    @field_validator("moneda", mode="before")
    @classmethod
    def _moneda_upper(cls, value: Any) -> str:
        if not value:
            return MONEDA_DEFAULT
        return str(value).strip().upper()


# ---------------------------------------------------------------------------
# External service answer
# ---------------------------------------------------------------------------


class RespuestaResumenArea(BaseModel):
    """Payload returned by the budget service for one area and fiscal year.

    ``comprometido`` and ``disponible`` are required: an answer without them
    is treated as a failed fetch.
    """

    techo: TechoPresupuestal | None = Field(
        default=None,
        validation_alias=AliasChoices("techo", "ceiling"),
    )
    total_techo: float | None = Field(
        default=None,
        validation_alias=AliasChoices("total_techo", "presupuesto_total"),
    )
    comprometido: float = Field(
        ...,
        validation_alias=AliasChoices("comprometido", "committed", "presupuesto_comprometido"),
    )
    disponible: float = Field(
        ...,
        validation_alias=AliasChoices("disponible", "available", "presupuesto_disponible"),
    )
    total_actividades: int | None = Field(
        default=None,
        validation_alias=AliasChoices("total_actividades", "activityCount", "totalActividades"),
    )

    @field_validator("total_techo", "comprometido", "disponible", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Any:
        # Unreadable values pass through so float validation rejects them
        if value is None or isinstance(value, bool):
            return value
        parsed = parse_quantity(value)
        return parsed if parsed is not None else value

    @property
    def monto_techo(self) -> float:
        if self.techo is not None:
            return self.techo.total
        return self.total_techo or 0.0


# ---------------------------------------------------------------------------
# Derived rollup
# ---------------------------------------------------------------------------


class ResumenCompromiso(BaseModel):
    """Snapshot of an area's ceiling vs. committed budget for one fiscal year.

    Immutable: the ledger replaces it wholesale on every resolved fetch and
    every draft-budget change.

    Attributes:
        total_techo: Ceiling amount (0 when the area has none).
        comprometido: Sum of saved activity budgets, excluding the one being
            edited.
        disponible: Available balance as reported by the service.
        base_disponible: ``disponible`` captured at fetch time.
        presupuesto_programado: Draft budget of the activity being edited.
        disponible_tras_edicion: ``base_disponible - presupuesto_programado``.
        secuencia: Sequence number of the request this rollup answers.
    """

    area_id: str
    vigencia: str
    techo: TechoPresupuestal | None = None
    total_techo: float = 0.0
    comprometido: float = 0.0
    disponible: float = 0.0
    base_disponible: float = 0.0
    presupuesto_programado: float = 0.0
    disponible_tras_edicion: float = 0.0
    total_actividades: int | None = None
    moneda: str = MONEDA_DEFAULT
    secuencia: int = 0

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "area_id": "7",
                "vigencia": "2025",
                "total_techo": 1000.0,
                "comprometido": 900.0,
                "disponible": 100.0,
                "base_disponible": 100.0,
                "presupuesto_programado": 150.0,
                "disponible_tras_edicion": -50.0,
                "total_actividades": 4,
                "moneda": "COP",
                "secuencia": 3,
            }
        },
    )

    def with_draft_budget(self, draft_budget: float) -> "ResumenCompromiso":
        """Return a copy re-estimated for a new draft budget (no fetch)."""
        borrador = redondear(draft_budget or 0)
        return self.model_copy(
            update={
                "presupuesto_programado": borrador,
                "disponible_tras_edicion": redondear(self.base_disponible - borrador),
            }
        )


class FeedbackPresupuesto(BaseModel):
    """Live-panel message for the area budget.

    Attributes:
        nivel: ``ok``, ``advertencia`` or ``error``.
        mensaje: Text to show; empty when there is nothing to report.
        semaforo: Colour of the available balance (VERDE/AMARILLO/ROJO).
        semaforo_tras_edicion: Colour of the balance after this activity.
        porcentaje_comprometido: ``comprometido / total_techo × 100``.
    """

    nivel: str
    mensaje: str = ""
    semaforo: str
    semaforo_tras_edicion: str
    porcentaje_comprometido: float = 0.0


# ---------------------------------------------------------------------------
# HTTP request / response bodies
# ---------------------------------------------------------------------------


class ResumenAreaRequest(BaseModel):
    area_id: int | str = Field(..., description="Área cuyo techo se consulta.")
    vigencia: str | None = Field(
        default=None,
        description="Año fiscal (YYYY). Si se omite se deriva de la fecha de referencia.",
    )
    fecha_referencia: str | None = Field(
        default=None,
        description="Fecha de inicio planeada de la actividad (ISO 8601).",
    )
    presupuesto_programado: float = Field(default=0.0, description="Presupuesto en edición.")
    actividad_id: int | str | None = Field(
        default=None,
        description="Actividad en edición; se excluye del comprometido.",
    )

    @field_validator("presupuesto_programado", mode="before")
    @classmethod
    def _parse_budget(cls, value: Any) -> float:
        parsed = parse_quantity(value)
        return parsed if parsed is not None else 0.0


class ResumenAreaResponse(BaseModel):
    resumen: ResumenCompromiso
    feedback: FeedbackPresupuesto


class TechoBorrador(BaseModel):
    """Ceiling record as typed in the administration form (raw values)."""

    area_id: int | str | None = None
    vigencia: int | str | None = None
    presupuesto_asignado: Any = None
    valido_desde: str | None = None
    valido_hasta: str | None = None
    estado: str | None = None
    moneda: str | None = None
    es_actual: bool = False


class TechoValidacionResponse(BaseModel):
    valido: bool
    errores: list[str] = Field(default_factory=list)
