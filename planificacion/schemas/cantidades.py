"""
Pydantic v2 schemas for the quantity parsing endpoint.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CantidadParseRequest(BaseModel):
    texto: str | float | None = Field(
        default=None,
        description="Valor o texto libre a interpretar, ej. '$ 1.234,56' o '40 informes en 2025'.",
    )
    anio_referencia: int | None = Field(
        default=None,
        ge=1900,
        le=2200,
        description="Año de referencia para descartar años en el texto. Por defecto, el actual.",
    )

    model_config = ConfigDict(
        json_schema_extra={"example": {"texto": "Se entregaron 10 y 15 informes durante 2025"}}
    )


class CantidadParseResponse(BaseModel):
    """Every reading of the same input.

    Attributes:
        valor: The input read as a single quantity (``None`` if it is prose).
        cantidades: Non-negative quantities found in the text, years excluded.
        total: Sum of ``cantidades``.
        meta: First non-year quantity, as used for a target typed as prose.
    """

    valor: float | None = None
    cantidades: list[float] = Field(default_factory=list)
    total: float = 0.0
    meta: float = 0.0
