"""
Import (Importacion) router.

Mounts under ``/api/importacion`` (prefix set in ``main.py``).

Endpoints
---------
POST /programacion-bimestral — Upload a bimester-programming workbook.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from planificacion.parsers.programacion_bimestral_parser import ProgramacionBimestralParser
from planificacion.schemas.actividad import ActividadBorrador
from planificacion.schemas.importacion import ImportacionProgramacionResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Importación"])

_ALLOWED_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",  # .xlsx
        "application/octet-stream",  # some browsers send this for .xlsx
    }
)


def _validate_excel_file(file: UploadFile) -> None:
    """Log a warning when the upload does not look like an ``.xlsx`` workbook.

    The actual format check happens inside openpyxl.
    """
    content_type = file.content_type or ""
    if content_type not in _ALLOWED_CONTENT_TYPES:
        logger.warning(
            "Unexpected content_type='%s' for file='%s', proceeding anyway",
            content_type,
            file.filename,
        )


@router.post(
    "/programacion-bimestral",
    response_model=ImportacionProgramacionResponse,
    status_code=status.HTTP_200_OK,
    summary="Importar programación bimestral",
    description=(
        "Lee un archivo Excel con una actividad por fila y su distribución en los "
        "seis bimestres. Cada fila pasa por las mismas validaciones del guardado; "
        "no se persiste nada."
    ),
    responses={
        200: {"description": "Actividades válidas y errores por fila."},
        400: {"description": "Archivo vacío."},
    },
)
async def upload_programacion_bimestral(
    file: Annotated[UploadFile, File(description="Archivo Excel de programación (.xlsx)")],
) -> ImportacionProgramacionResponse:
    """Parse an uploaded programming workbook.

    Raises:
        HTTPException 400: If the uploaded file is empty.
    """
    _validate_excel_file(file)
    content = await file.read()
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El archivo está vacío.",
        )

    logger.info("upload_programacion_bimestral: file='%s' (%d bytes)", file.filename, len(content))
    result = ProgramacionBimestralParser(content).parse()
    result.metadata.setdefault("archivo", file.filename)

    return ImportacionProgramacionResponse(
        formato_detectado=result.format_name,
        registros_validos=result.record_count,
        registros_error=len(result.errors),
        actividades=[ActividadBorrador.model_validate(r) for r in result.records],
        warnings=result.warnings,
        errors=result.errors,
        metadata=result.metadata,
    )
