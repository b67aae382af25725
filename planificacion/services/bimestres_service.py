"""
Bimester distribution service.

Reconciles an activity's declared totals (budget and target) against the
six bimester allocations, and checks each bimester's free-text breakdown
against its own target.

Design notes
------------
- Every function is pure: the summary is recomputed from the draft on each
  call instead of being kept as mutable state, so calling it twice on the
  same draft yields the same result.
- Differences are ``round(sum - total, 2)``.  The live summary calls a
  difference balanced when ``|diff| < TOLERANCIA``; the save gate only
  rejects when ``|diff| > TOLERANCIA``.  A difference of exactly one cent
  therefore shows as short/over but still saves.
- Budget amounts are formatted as currency, targets as plain numbers.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from pydantic import BaseModel

from planificacion.exceptions import ValidationError
from planificacion.parsers.cantidades import sum_quantities
from planificacion.schemas.actividad import (
    ActividadBorrador,
    BimestreAsignacion,
    EstadoBalance,
    EstadoDescripcion,
    EstadoDescripcionTipo,
    ResumenDistribucion,
    ResumenGrupo,
)
from planificacion.utils.constants import (
    BIMESTRES,
    DESCRIPCION_ALIASES,
    MONEDA_DEFAULT,
    TOLERANCIA,
    TOTAL_BIMESTRES,
)
from planificacion.utils.formato import formatear_monto, formatear_numero, redondear

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _nombre_bimestre(asignacion: BimestreAsignacion) -> str:
    return f"bimestre {asignacion.bimestre or asignacion.index}"


def _clasificar(diferencia: float) -> EstadoBalance:
    if abs(diferencia) < TOLERANCIA:
        return EstadoBalance.BALANCED
    if diferencia < 0:
        return EstadoBalance.SHORT
    return EstadoBalance.OVER


def _resumen_presupuesto(total: float, distribuido: float, moneda: str) -> ResumenGrupo:
    diferencia = redondear(distribuido - total)
    estado = _clasificar(diferencia)
    if estado is EstadoBalance.BALANCED:
        mensaje, feedback = "Distribución equilibrada", None
    elif estado is EstadoBalance.SHORT:
        mensaje = f"Faltan {formatear_monto(abs(diferencia), moneda)}"
        feedback = (
            "La suma de los bimestres es menor al presupuesto programado. "
            "Debes completar el total."
        )
    else:
        mensaje = f"Exceso de {formatear_monto(diferencia, moneda)}"
        feedback = (
            "La suma de los bimestres supera el presupuesto programado. "
            "Ajusta los valores antes de guardar."
        )
    return ResumenGrupo(
        total_declarado=redondear(total),
        total_distribuido=redondear(distribuido),
        diferencia=diferencia,
        estado=estado,
        mensaje=mensaje,
        feedback=feedback,
    )


def _resumen_meta(total: float, distribuido: float) -> ResumenGrupo:
    diferencia = redondear(distribuido - total)
    estado = _clasificar(diferencia)
    if estado is EstadoBalance.BALANCED:
        mensaje, feedback = "Meta equilibrada", None
    elif estado is EstadoBalance.SHORT:
        mensaje = f"Faltan {formatear_numero(abs(diferencia))}"
        feedback = (
            "La suma de la meta programada por bimestre es menor a la meta del "
            f"indicador por {formatear_numero(abs(diferencia))}."
        )
    else:
        mensaje = f"Exceso de {formatear_numero(diferencia)}"
        feedback = (
            "La suma de la meta programada por bimestre excede la meta del "
            f"indicador en {formatear_numero(diferencia)}."
        )
    return ResumenGrupo(
        total_declarado=redondear(total),
        total_distribuido=redondear(distribuido),
        diferencia=diferencia,
        estado=estado,
        mensaje=mensaje,
        feedback=feedback,
    )


# ---------------------------------------------------------------------------
# Per-bimester breakdown
# ---------------------------------------------------------------------------


def check_breakdown(
    asignacion: BimestreAsignacion,
    current_year: int | None = None,
) -> EstadoDescripcion:
    """Classify a bimester's breakdown text against its target.

    Precedence:
        1. empty text                          → ``none``
        2. target ≤ 0 and quantities > 0       → ``zero_target_violation``
        3. quantities > target + tolerance     → ``over_target``
        4. quantities < target − tolerance     → ``under_target``
        5. otherwise                           → ``complete``

    Only the zero-target and over-target states block saving; falling
    short of the target is informational.

    Args:
        asignacion: The bimester allocation to check.
        current_year: Reference year for the parser's year heuristic.

    Returns:
        An ``EstadoDescripcion`` with the message to show under the field.
    """
    texto = asignacion.descripcion or ""
    meta = redondear(asignacion.meta)
    total = sum_quantities(texto, current_year=current_year) if texto else 0.0

    base = {
        "index": asignacion.index,
        "bimestre": asignacion.bimestre,
        "descripcion_total": total,
        "meta": meta,
    }

    if not texto:
        return EstadoDescripcion(estado=EstadoDescripcionTipo.NONE, **base)

    if meta <= 0 and total > 0:
        return EstadoDescripcion(
            estado=EstadoDescripcionTipo.ZERO_TARGET_VIOLATION,
            mensaje=(
                f"La meta es 0 pero la descripción incluye "
                f"{formatear_numero(total)} entregables."
            ),
            bloquea_guardado=True,
            mensaje_validacion=(
                "La descripción no puede incluir entregables cuando la meta es 0."
            ),
            **base,
        )

    if total > meta + TOLERANCIA:
        return EstadoDescripcion(
            estado=EstadoDescripcionTipo.OVER_TARGET,
            mensaje=(
                f"Excediste la meta: {formatear_numero(total)} > {formatear_numero(meta)}."
            ),
            bloquea_guardado=True,
            mensaje_validacion=(
                "La suma de entregables de la descripción excede la meta del bimestre."
            ),
            **base,
        )

    if total < meta - TOLERANCIA:
        restante = redondear(meta - total)
        if total == 0:
            mensaje = f"Describe cómo se distribuyen los {formatear_numero(meta)} entregables."
        else:
            mensaje = (
                f"Has detallado {formatear_numero(total)} de {formatear_numero(meta)} "
                f"entregables. Faltan {formatear_numero(restante)}."
            )
        return EstadoDescripcion(
            estado=EstadoDescripcionTipo.UNDER_TARGET,
            restante=restante,
            mensaje=mensaje,
            **base,
        )

    return EstadoDescripcion(
        estado=EstadoDescripcionTipo.COMPLETE,
        mensaje=(
            f"Descripción completa: {formatear_numero(total)} de "
            f"{formatear_numero(meta)} entregables."
        ),
        **base,
    )


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def recompute_summary(
    actividad: ActividadBorrador,
    current_year: int | None = None,
    moneda: str = MONEDA_DEFAULT,
) -> ResumenDistribucion:
    """Recompute budget/target balance and every breakdown state.

    Args:
        actividad: Current draft.
        current_year: Reference year for the parser's year heuristic.
        moneda: Currency used in budget messages.

    Returns:
        A fresh ``ResumenDistribucion``; the draft is not modified.
    """
    bimestres = actividad.bimestres
    presupuesto = _resumen_presupuesto(
        actividad.presupuesto_programado,
        sum(b.presupuesto for b in bimestres),
        moneda,
    )
    meta = _resumen_meta(
        actividad.meta_indicador_valor,
        sum(b.meta for b in bimestres),
    )
    descripciones = [
        check_breakdown(b, current_year=current_year)
        for b in sorted(bimestres, key=lambda item: item.index)
    ]
    return ResumenDistribucion(
        presupuesto=presupuesto,
        meta=meta,
        descripciones=descripciones,
        bloquea_guardado=any(d.bloquea_guardado for d in descripciones),
    )


# ---------------------------------------------------------------------------
# Save gate
# ---------------------------------------------------------------------------


def validate_for_save(
    actividad: ActividadBorrador,
    current_year: int | None = None,
    moneda: str = MONEDA_DEFAULT,
) -> None:
    """Authoritative distribution check run right before persisting.

    Everything is re-derived from the submitted values; the first violation
    found is raised, in this order: bimester count and indices, negative
    values, budget sum, target sum, per-bimester breakdown.

    Raises:
        ValidationError: On the first violated rule.
    """
    bimestres = actividad.bimestres

    indices = sorted(b.index for b in bimestres)
    if len(bimestres) != TOTAL_BIMESTRES:
        raise ValidationError(
            "Debes ingresar la información de los 6 bimestres.",
            code="bimestres_incompletos",
            field="bimestres",
        )
    if indices != list(range(1, TOTAL_BIMESTRES + 1)):
        raise ValidationError(
            "Los bimestres deben cubrir los índices 1 a 6 sin repetirse.",
            code="bimestres_incompletos",
            field="bimestres",
        )

    if actividad.presupuesto_programado < 0 or actividad.meta_indicador_valor < 0:
        raise ValidationError(
            "El presupuesto programado y la meta del indicador no pueden ser negativos.",
            code="valores_negativos",
            field=(
                "presupuesto_programado"
                if actividad.presupuesto_programado < 0
                else "meta_indicador_valor"
            ),
        )

    for asignacion in sorted(bimestres, key=lambda item: item.index):
        if asignacion.presupuesto < 0 or asignacion.meta < 0:
            raise ValidationError(
                f"El presupuesto o la meta del {_nombre_bimestre(asignacion)} "
                "no pueden ser negativos.",
                code="valores_negativos",
                bimestre=asignacion.index,
                field="presupuesto" if asignacion.presupuesto < 0 else "meta",
            )

    diferencia = redondear(
        sum(b.presupuesto for b in bimestres) - actividad.presupuesto_programado
    )
    if abs(diferencia) > TOLERANCIA:
        if diferencia < 0:
            mensaje = (
                "La distribución por bimestres es menor al presupuesto programado "
                f"por {formatear_monto(abs(diferencia), moneda)}."
            )
        else:
            mensaje = (
                "La distribución por bimestres excede el presupuesto programado "
                f"en {formatear_monto(diferencia, moneda)}."
            )
        raise ValidationError(mensaje, code="presupuesto_descuadrado", field="presupuesto")

    meta_diferencia = redondear(
        sum(b.meta for b in bimestres) - actividad.meta_indicador_valor
    )
    if abs(meta_diferencia) > TOLERANCIA:
        if meta_diferencia < 0:
            mensaje = (
                "La suma de la meta programada por bimestre es menor a la meta del "
                f"indicador por {formatear_numero(abs(meta_diferencia))}."
            )
        else:
            mensaje = (
                "La suma de la meta programada por bimestre excede la meta del "
                f"indicador en {formatear_numero(meta_diferencia)}."
            )
        raise ValidationError(mensaje, code="meta_descuadrada", field="meta")

    for asignacion in sorted(bimestres, key=lambda item: item.index):
        estado = check_breakdown(asignacion, current_year=current_year)
        if estado.estado is EstadoDescripcionTipo.ZERO_TARGET_VIOLATION:
            raise ValidationError(
                f"La meta del {_nombre_bimestre(asignacion)} es 0 pero la descripción "
                f"incluye {formatear_numero(estado.descripcion_total)} entregables.",
                code="descripcion_meta_cero",
                bimestre=asignacion.index,
                field="descripcion",
            )
        if estado.estado is EstadoDescripcionTipo.OVER_TARGET:
            raise ValidationError(
                f"La descripción del {_nombre_bimestre(asignacion)} excede la meta "
                f"programada: {formatear_numero(estado.descripcion_total)} > "
                f"{formatear_numero(estado.meta)}.",
                code="descripcion_excede_meta",
                bimestre=asignacion.index,
                field="descripcion",
            )


def build_save_payload(
    actividad: ActividadBorrador,
    current_year: int | None = None,
) -> dict[str, Any]:
    """Build the persistence payload for a validated draft.

    ``descripcion_cantidad_total`` is recomputed from each description.
    Run ``validate_for_save`` first; this function does not validate.
    """
    bimestres = [
        {
            "index": b.index,
            "bimestre": BIMESTRES[b.index - 1].value,
            "presupuesto": redondear(b.presupuesto),
            "meta": redondear(b.meta),
            "descripcion": b.descripcion,
            "descripcion_cantidad_total": (
                sum_quantities(b.descripcion, current_year=current_year)
                if b.descripcion
                else 0.0
            ),
        }
        for b in sorted(actividad.bimestres, key=lambda item: item.index)
    ]

    payload: dict[str, Any] = {
        "area_id": actividad.area_id,
        "presupuesto_programado": redondear(actividad.presupuesto_programado),
        "meta_indicador_valor": redondear(actividad.meta_indicador_valor),
        "bimestres": bimestres,
    }
    if actividad.id is not None:
        payload["id"] = actividad.id
    if actividad.fecha_inicio_planeada is not None:
        payload["fecha_inicio_planeada"] = actividad.fecha_inicio_planeada.isoformat()
    return payload


# ---------------------------------------------------------------------------
# Loading saved allocations
# ---------------------------------------------------------------------------


def resolve_bimestre_index(descriptor: Any) -> int | None:
    """Map a bimester label ("Enero-Febrero", "enero - febrero", "Bimestre 1") to 1..6."""
    if descriptor is None or isinstance(descriptor, bool):
        return None
    normalizado = str(descriptor).strip().lower()
    if not normalizado:
        return None
    for cfg in BIMESTRES:
        candidatos = (cfg.value, cfg.periodo, cfg.label, cfg.short_label)
        if normalizado in (c.lower() for c in candidatos):
            return cfg.index
    return None


def _coerce_index(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    texto = str(value).strip()
    return int(texto) if texto.isdigit() else None


def _descripcion(data: Mapping[str, Any]) -> str:
    valor = data.get("descripcion")
    if valor is not None:
        return str(valor)
    for alias in DESCRIPCION_ALIASES[1:]:
        if data.get(alias):
            return str(data[alias])
    return ""


def normalize_bimestres(items: Iterable[Any] | None) -> list[BimestreAsignacion]:
    """Turn loosely-shaped saved allocations into exactly six allocations.

    Items are matched by ``index`` or, failing that, by their
    ``bimestre`` / ``periodo`` / ``label``.  Unmatched items are dropped;
    missing bimesters come back empty.  Later duplicates win.
    """
    mapa: dict[int, Mapping[str, Any]] = {}
    for item in items or []:
        if not item:
            continue
        data = item.model_dump() if isinstance(item, BaseModel) else dict(item)
        idx = _coerce_index(data.get("index"))
        if idx is None:
            idx = resolve_bimestre_index(
                data.get("bimestre") or data.get("periodo") or data.get("label")
            )
        if idx is None or not 1 <= idx <= TOTAL_BIMESTRES:
            logger.debug("Ignoring bimester item without a valid index: %r", data)
            continue
        mapa[idx] = data

    resultado: list[BimestreAsignacion] = []
    for cfg in BIMESTRES:
        data = mapa.get(cfg.index, {})
        resultado.append(
            BimestreAsignacion(
                index=cfg.index,
                bimestre=cfg.value,
                presupuesto=data.get("presupuesto"),
                meta=data.get("meta"),
                descripcion=_descripcion(data),
            )
        )
    return resultado


def empty_bimestres() -> list[BimestreAsignacion]:
    """Six blank allocations, one per bimester."""
    return [BimestreAsignacion(index=cfg.index, bimestre=cfg.value) for cfg in BIMESTRES]
