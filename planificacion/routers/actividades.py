"""
Activities router.

Mounts under ``/api/actividades`` (prefix set in ``main.py``).

Nothing is stored here: the endpoints recompute the bimester summary while
the user edits and run the save gate right before the host persists the
activity.

Endpoints
---------
POST /resumen-bimestres — Budget/target balance and breakdown feedback.
POST /validar           — Save gate; returns the payload to persist.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from planificacion.config import Settings, get_settings
from planificacion.exceptions import ValidationError
from planificacion.schemas.actividad import (
    ActividadBorrador,
    ResumenDistribucion,
    ValidacionActividadRequest,
    ValidacionActividadResponse,
)
from planificacion.services import bimestres_service
from planificacion.services.presupuesto_area_service import validate_against_ceiling

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Actividades"])


# ---------------------------------------------------------------------------
# POST /resumen-bimestres
# ---------------------------------------------------------------------------


@router.post(
    "/resumen-bimestres",
    response_model=ResumenDistribucion,
    status_code=status.HTTP_200_OK,
    summary="Resumen de la distribución por bimestres",
)
def resumen_bimestres(
    actividad: ActividadBorrador,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ResumenDistribucion:
    """Recompute the distribution summary for a draft activity."""
    return bimestres_service.recompute_summary(actividad, moneda=settings.MONEDA)


# ---------------------------------------------------------------------------
# POST /validar
# ---------------------------------------------------------------------------


@router.post(
    "/validar",
    response_model=ValidacionActividadResponse,
    status_code=status.HTTP_200_OK,
    summary="Validar una actividad antes de guardarla",
    description=(
        "Ejecuta las validaciones de distribución por bimestres y, si se envía el "
        "resumen del área, la validación contra el techo presupuestal."
    ),
    responses={
        200: {"description": "Actividad válida; incluye la carga a persistir."},
        422: {"description": "Primera regla incumplida, con código y bimestre."},
    },
)
def validar_actividad(
    body: ValidacionActividadRequest,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ValidacionActividadResponse:
    """Run the save gate for a draft activity.

    Raises:
        HTTPException 422: With ``ValidationError.to_detail()`` as detail.
    """
    actividad = body.actividad
    try:
        bimestres_service.validate_for_save(actividad, moneda=settings.MONEDA)
        resumen = body.resumen_area
        if resumen is not None and str(actividad.area_id or "").strip() == resumen.area_id:
            validate_against_ceiling(resumen, actividad.presupuesto_programado)
    except ValidationError as exc:
        logger.info("validar_actividad: rejected (%s) %s", exc.code, exc.message)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.to_detail(),
        ) from exc

    return ValidacionActividadResponse(
        message="La actividad cumple las validaciones de distribución y presupuesto.",
        payload=bimestres_service.build_save_payload(actividad),
    )
