"""
Pydantic v2 schemas for activity drafts and their bimester distribution.

Numeric fields accept whatever the user typed ("1.234,56", "$ 1.500.000")
and are normalised through the quantity parser before validation, so the
services always work with plain floats.  Negative values are
not rejected here: the save gate reports them with a domain message that
names the offending bimester.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from planificacion.parsers.cantidades import parse_quantity, parse_target_value
from planificacion.schemas.common import MessageResponse
from planificacion.schemas.presupuesto import ResumenCompromiso
from planificacion.utils.constants import BIMESTRES, TOTAL_BIMESTRES


def _to_amount(value: Any) -> float:
    parsed = parse_quantity(value)
    return parsed if parsed is not None else 0.0


# ---------------------------------------------------------------------------
# Draft input
# ---------------------------------------------------------------------------


class BimestreAsignacion(BaseModel):
    """Budget, target and free-text breakdown for one bimester.

    Attributes:
        index: Position of the bimester in the year (1 = Enero-Febrero).
        bimestre: Canonical label, filled from ``index`` when omitted.
        presupuesto: Budget assigned to the bimester.
        meta: Target (number of deliverables) for the bimester.
        descripcion: Free text describing how the target is broken down.
        descripcion_cantidad_total: Sum of the quantities found in
            ``descripcion``.  Recomputed by the services; any client value is
            informational only.
    """

    index: int = Field(..., ge=1, le=TOTAL_BIMESTRES, description="Índice del bimestre (1–6).")
    bimestre: str = Field(default="", description="Etiqueta del bimestre, ej. 'Enero-Febrero'.")
    presupuesto: float = Field(default=0.0, description="Presupuesto asignado al bimestre.")
    meta: float = Field(default=0.0, description="Meta programada para el bimestre.")
    descripcion: str = Field(default="", description="Desglose de entregables en texto libre.")
    descripcion_cantidad_total: float = Field(
        default=0.0,
        description="Suma de cantidades detectadas en la descripción.",
    )

    @field_validator("presupuesto", "meta", "descripcion_cantidad_total", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> float:
        return _to_amount(value)

    @field_validator("descripcion", mode="before")
    @classmethod
    def _normalize_descripcion(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).replace("\r\n", "\n").strip()

    @model_validator(mode="after")
    def _fill_label(self) -> "BimestreAsignacion":
        if not self.bimestre:
            self.bimestre = BIMESTRES[self.index - 1].value
        return self


class ActividadBorrador(BaseModel):
    """An activity as currently edited, before it is persisted.

    ``bimestres`` is not forced to six entries here; a short or padded list
    is a save-gate violation with its own message.
    """

    id: int | str | None = Field(default=None, description="ID de la actividad (solo en edición).")
    area_id: int | str | None = Field(default=None, description="Área responsable.")
    presupuesto_programado: float = Field(
        default=0.0,
        description="Presupuesto anual programado para la actividad.",
    )
    meta_indicador_valor: float = Field(
        default=0.0,
        validation_alias=AliasChoices("meta_indicador_valor", "meta_valor"),
        description="Meta anual del indicador.",
    )
    fecha_inicio_planeada: date | None = Field(
        default=None,
        description="Fecha de inicio planeada; define la vigencia del techo.",
    )
    bimestres: list[BimestreAsignacion] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "area_id": 7,
                "presupuesto_programado": "1.200",
                "meta_indicador_valor": "12 talleres",
                "fecha_inicio_planeada": "2025-02-01",
                "bimestres": [
                    {"index": i, "presupuesto": 200, "meta": 2, "descripcion": "2 talleres"}
                    for i in range(1, 7)
                ],
            }
        }
    )

    @field_validator("presupuesto_programado", mode="before")
    @classmethod
    def _parse_budget(cls, value: Any) -> float:
        return _to_amount(value)

    @field_validator("meta_indicador_valor", mode="before")
    @classmethod
    def _parse_target(cls, value: Any) -> float:
        if isinstance(value, str):
            return parse_target_value(value)
        return _to_amount(value)

    @field_validator("fecha_inicio_planeada", mode="before")
    @classmethod
    def _blank_date(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value[:10] or None
        return value


# ---------------------------------------------------------------------------
# Distribution summary
# ---------------------------------------------------------------------------


class EstadoBalance(str, Enum):
    BALANCED = "balanced"
    SHORT = "short"
    OVER = "over"


class EstadoDescripcionTipo(str, Enum):
    NONE = "none"
    ZERO_TARGET_VIOLATION = "zero_target_violation"
    OVER_TARGET = "over_target"
    UNDER_TARGET = "under_target"
    COMPLETE = "complete"


class EstadoDescripcion(BaseModel):
    """Consistency of one bimester's breakdown text against its target."""

    index: int
    bimestre: str
    estado: EstadoDescripcionTipo
    descripcion_total: float = Field(..., description="Cantidades detectadas en la descripción.")
    meta: float
    restante: float = Field(default=0.0, description="Meta − descripción, cuando es positiva.")
    mensaje: str = Field(default="", description="Texto para mostrar bajo el campo.")
    bloquea_guardado: bool = False
    mensaje_validacion: str | None = Field(
        default=None,
        description="Mensaje de validación del campo cuando bloquea el guardado.",
    )


class ResumenGrupo(BaseModel):
    """Declared total vs. distributed sum for budget or target.

    Attributes:
        total_declarado: Total typed at activity level.
        total_distribuido: Sum of the six bimester values.
        diferencia: ``total_distribuido - total_declarado`` rounded to 2 dp.
        estado: ``balanced`` / ``short`` / ``over``.
        mensaje: Short label, e.g. "Faltan $ 50".
        feedback: Longer guidance when not balanced.
    """

    total_declarado: float
    total_distribuido: float
    diferencia: float
    estado: EstadoBalance
    mensaje: str
    feedback: str | None = None


class ResumenDistribucion(BaseModel):
    presupuesto: ResumenGrupo
    meta: ResumenGrupo
    descripciones: list[EstadoDescripcion] = Field(default_factory=list)
    bloquea_guardado: bool = Field(
        default=False,
        description="True si alguna descripción impide guardar.",
    )


# ---------------------------------------------------------------------------
# Save gate
# ---------------------------------------------------------------------------


class ValidacionActividadRequest(BaseModel):
    """Draft to validate plus, optionally, the area rollup already shown to the user."""

    actividad: ActividadBorrador
    resumen_area: ResumenCompromiso | None = Field(
        default=None,
        description="Resumen de presupuesto del área obtenido previamente.",
    )


class ValidacionActividadResponse(MessageResponse):
    payload: dict[str, Any] = Field(..., description="Carga lista para persistir la actividad.")
