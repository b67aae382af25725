"""
Area budget ceiling (techo presupuestal) rules.

Validation of a ceiling record as entered in the administration form, and
selection of the current ceiling from the version list the budget service
returns.  Nothing here persists; storage belongs to the budget service.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Iterable

from planificacion.parsers.cantidades import parse_quantity
from planificacion.schemas.presupuesto import TechoBorrador, TechoPresupuestal
from planificacion.utils.constants import ESTADOS_TECHO

logger = logging.getLogger(__name__)

_VIGENCIA_PATTERN = re.compile(r"^\d{4}$")


def _parse_date(value: str | None) -> date | None:
    if not value or not str(value).strip():
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def validate_techo(data: TechoBorrador) -> list[str]:
    """Return every problem with a ceiling record; empty when it is valid.

    Rules:
        - an area is selected;
        - ``vigencia`` is a 4-digit year;
        - ``presupuesto_asignado`` parses to a number greater than zero;
        - validity dates, when present, are ISO dates and ``valido_hasta``
          is not before ``valido_desde``;
        - ``estado``, when present, is one of the lifecycle states.
    """
    errores: list[str] = []

    if data.area_id is None or str(data.area_id).strip() == "":
        errores.append("Selecciona un área para el presupuesto.")

    vigencia = "" if data.vigencia is None else str(data.vigencia).strip()
    if not _VIGENCIA_PATTERN.match(vigencia):
        errores.append("La vigencia debe tener el formato YYYY.")

    monto = parse_quantity(data.presupuesto_asignado)
    if monto is None or monto <= 0:
        errores.append("El presupuesto asignado debe ser un número mayor a cero.")

    desde = _parse_date(data.valido_desde)
    hasta = _parse_date(data.valido_hasta)
    if data.valido_desde and desde is None:
        errores.append('La fecha "Válido desde" no es una fecha válida.')
    if data.valido_hasta and hasta is None:
        errores.append('La fecha "Válido hasta" no es una fecha válida.')
    if desde and hasta and hasta < desde:
        errores.append('La fecha "Válido hasta" debe ser posterior a "Válido desde".')

    if data.estado and data.estado.strip().lower() not in {e.lower() for e in ESTADOS_TECHO}:
        errores.append(
            f"Estado '{data.estado}' inválido. Valores válidos: {ESTADOS_TECHO}."
        )

    if errores:
        logger.debug("Ceiling record rejected: %s", errores)
    return errores


def _vigente_en(techo: TechoPresupuestal, dia: date) -> bool:
    if techo.valido_desde and dia < techo.valido_desde:
        return False
    if techo.valido_hasta and dia >= techo.valido_hasta:
        return False
    return True


def select_current_techo(
    records: Iterable[TechoPresupuestal],
    vigencia: str,
    on: date | None = None,
) -> TechoPresupuestal | None:
    """Pick the ceiling the backend reports as current for a fiscal year.

    Among records of ``vigencia`` flagged ``es_actual`` whose validity window
    contains ``on`` (when given), the highest version wins.  Uniqueness of
    the flag is not enforced.

    Returns:
        The selected record, or ``None`` if no record qualifies.
    """
    candidatos = [
        r
        for r in records
        if r.es_actual
        and (r.vigencia is None or r.vigencia == str(vigencia))
        and (on is None or _vigente_en(r, on))
    ]
    if not candidatos:
        return None
    if len(candidatos) > 1:
        logger.info(
            "%d ceilings flagged as current for vigencia %s; using highest version",
            len(candidatos),
            vigencia,
        )
    return max(candidatos, key=lambda r: r.version or 0)
