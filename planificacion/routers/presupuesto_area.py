"""
Area budget router.

Mounts under ``/api/presupuesto-area`` (prefix set in ``main.py``).

Endpoints
---------
POST /resumen         — Ceiling vs. committed for an area, with the
                        "after this activity" estimate and panel feedback.
POST /techos/validar  — Validate a ceiling record from the admin form.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from planificacion.config import Settings, get_settings
from planificacion.schemas.presupuesto import (
    ResumenAreaRequest,
    ResumenAreaResponse,
    TechoBorrador,
    TechoValidacionResponse,
)
from planificacion.services.budget_client import BudgetServiceClient, get_budget_client
from planificacion.services.presupuesto_area_service import (
    AreaBudgetLedger,
    area_budget_feedback,
)
from planificacion.services.techo_service import validate_techo

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Presupuesto por área"])


@router.post(
    "/resumen",
    response_model=ResumenAreaResponse,
    status_code=status.HTTP_200_OK,
    summary="Resumen del presupuesto del área",
    responses={
        200: {"description": "Techo, comprometido, disponible y estimado tras la edición."},
        502: {"description": "El servicio de presupuesto no respondió correctamente."},
    },
)
async def resumen_area(
    body: ResumenAreaRequest,
    client: Annotated[BudgetServiceClient, Depends(get_budget_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ResumenAreaResponse:
    """Fetch the area rollup from the budget service.

    Raises:
        HTTPException 502: When the budget service fails or answers an
            unexpected shape.
    """
    if not str(body.area_id).strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Selecciona un área para consultar su presupuesto.",
        )

    ledger = AreaBudgetLedger(client, moneda=settings.MONEDA)
    rollup = await ledger.resolve(
        body.area_id,
        body.vigencia or body.fecha_referencia,
        body.presupuesto_programado,
        actividad_id=body.actividad_id,
    )
    if rollup is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=ledger.last_error or "No fue posible obtener el presupuesto del área.",
        )
    return ResumenAreaResponse(resumen=rollup, feedback=area_budget_feedback(rollup))


@router.post(
    "/techos/validar",
    response_model=TechoValidacionResponse,
    status_code=status.HTTP_200_OK,
    summary="Validar un techo presupuestal",
)
def validar_techo(body: TechoBorrador) -> TechoValidacionResponse:
    errores = validate_techo(body)
    return TechoValidacionResponse(valido=not errores, errores=errores)
