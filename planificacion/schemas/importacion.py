"""
Pydantic v2 schemas for the bimester-programming workbook import.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from planificacion.schemas.actividad import ActividadBorrador


class ImportacionProgramacionResponse(BaseModel):
    """Summary returned after parsing an uploaded programming workbook.

    Nothing is persisted: ``actividades`` holds the drafts that passed the
    save gate so the caller can review and submit them.
    """

    formato_detectado: str = Field(..., description="Etiqueta del formato procesado.")
    registros_validos: int = Field(..., ge=0)
    registros_error: int = Field(..., ge=0)
    actividades: list[ActividadBorrador] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    metadata: dict = Field(default_factory=dict)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "formato_detectado": "PROGRAMACION_BIMESTRAL",
                "registros_validos": 12,
                "registros_error": 1,
                "actividades": [],
                "warnings": [],
                "errors": [
                    "Fila 5 (ACT-003): La distribución por bimestres es menor al "
                    "presupuesto programado por $ 50."
                ],
                "metadata": {"archivo": "programacion_2025.xlsx", "total_filas_leidas": 13},
            }
        }
    )
