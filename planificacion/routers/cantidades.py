"""
Quantity parsing router.

Mounts under ``/api/cantidades`` (prefix set in ``main.py``).

Endpoints
---------
POST /parse — Read a raw value or free text every way the engine does.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, status

from planificacion.parsers.cantidades import (
    parse_all_quantities,
    parse_quantity,
    parse_target_value,
    sum_quantities,
)
from planificacion.schemas.cantidades import CantidadParseRequest, CantidadParseResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Cantidades"])


@router.post(
    "/parse",
    response_model=CantidadParseResponse,
    status_code=status.HTTP_200_OK,
    summary="Interpretar un valor o texto libre",
    description=(
        "Devuelve el valor como cantidad única, las cantidades encontradas en el "
        "texto (sin años), su suma y la meta que se tomaría del texto."
    ),
)
def parse_cantidades(body: CantidadParseRequest) -> CantidadParseResponse:
    anio = body.anio_referencia
    return CantidadParseResponse(
        valor=parse_quantity(body.texto),
        cantidades=parse_all_quantities(body.texto, current_year=anio),
        total=sum_quantities(body.texto, current_year=anio),
        meta=parse_target_value(body.texto, current_year=anio),
    )
