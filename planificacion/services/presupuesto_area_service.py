"""
Area budget ledger.

Resolves an area's ceiling and committed total for a fiscal year through
the external budget service and keeps an "as if saved" estimate for the
activity being edited.

Design notes
------------
- Every fetch is tagged with a monotonically increasing sequence number.
  When a response arrives for a request older than the latest one issued,
  it is dropped, so a slow answer for a previous area or year can never
  overwrite the current one.
- The cached rollup is an immutable ``ResumenCompromiso``; it is replaced
  as a whole, never mutated.
- A failed fetch leaves the ledger "unknown" and only disables the ceiling
  check.  Distribution invariants keep being enforced by
  ``bimestres_service``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Protocol

from planificacion.exceptions import LedgerFetchError, ValidationError
from planificacion.schemas.presupuesto import (
    FeedbackPresupuesto,
    RespuestaResumenArea,
    ResumenCompromiso,
)
from planificacion.utils.constants import MONEDA_DEFAULT, TOLERANCIA
from planificacion.utils.formato import formatear_monto, redondear, safe_pct, semaforo_saldo

logger = logging.getLogger(__name__)


class BudgetClient(Protocol):
    async def fetch_area_summary(
        self,
        area_id: int | str,
        vigencia: str,
        presupuesto_planeado: float,
        actividad_id: int | str | None = None,
    ) -> RespuestaResumenArea: ...


# ---------------------------------------------------------------------------
# Fiscal year
# ---------------------------------------------------------------------------


def resolve_vigencia(fecha_referencia: Any = None, today: date | None = None) -> str:
    """Fiscal year to query for a reference date.

    A 4-digit string is taken as the year itself; a date, datetime or ISO
    date string gives its year; anything else falls back to the current
    year.

    Example::

        resolve_vigencia("2026")        # "2026"
        resolve_vigencia("2025-03-15")  # "2025"
        resolve_vigencia(None)          # current year
    """
    if isinstance(fecha_referencia, (date, datetime)):
        return str(fecha_referencia.year)
    if isinstance(fecha_referencia, int) and not isinstance(fecha_referencia, bool):
        return str(fecha_referencia)

    if fecha_referencia:
        texto = str(fecha_referencia).strip()
        if len(texto) == 4 and texto.isdigit():
            return texto
        try:
            return str(datetime.fromisoformat(texto.replace("Z", "+00:00")).year)
        except ValueError:
            logger.warning("Could not read a fiscal year from %r; using current year", texto)

    return str((today or date.today()).year)


# ---------------------------------------------------------------------------
# Ceiling rules
# ---------------------------------------------------------------------------


def validate_against_ceiling(rollup: ResumenCompromiso, draft_budget: float) -> None:
    """Check a draft budget against an area rollup.

    Raises:
        ValidationError: When the area has no ceiling, its balance is
            already fully committed, or the draft exceeds the balance.
    """
    borrador = redondear(draft_budget or 0)
    disponible_tras_edicion = redondear(rollup.base_disponible - borrador)

    if rollup.total_techo <= 0 and borrador > 0:
        raise ValidationError(
            "El área seleccionada no tiene un presupuesto vigente configurado. "
            "Ajusta el presupuesto global del área desde Administración antes de "
            "programar recursos.",
            code="techo_no_configurado",
            field="presupuesto_programado",
        )

    if rollup.base_disponible <= 0 and borrador > 0:
        raise ValidationError(
            "El presupuesto del área ya se encuentra comprometido en su totalidad.",
            code="techo_comprometido",
            field="presupuesto_programado",
        )

    if disponible_tras_edicion < 0:
        exceso = formatear_monto(abs(disponible_tras_edicion), rollup.moneda)
        raise ValidationError(
            f"El presupuesto programado excede el saldo disponible del área por {exceso}. "
            "Reduce el monto o ajusta el presupuesto del área en Administración.",
            code="saldo_insuficiente",
            field="presupuesto_programado",
        )


def area_budget_feedback(rollup: ResumenCompromiso | None) -> FeedbackPresupuesto:
    """Message and colours for the live area-budget panel.

    Checked in order: no ceiling, committed above ceiling, this activity
    above the balance, balance exactly used up.  Otherwise ``ok`` with an
    empty message.
    """
    if rollup is None:
        return FeedbackPresupuesto(
            nivel="advertencia",
            mensaje="No hay un presupuesto vigente configurado para esta área.",
            semaforo=semaforo_saldo(0),
            semaforo_tras_edicion=semaforo_saldo(0),
        )

    moneda = rollup.moneda
    base = {
        "semaforo": semaforo_saldo(rollup.disponible),
        "semaforo_tras_edicion": semaforo_saldo(rollup.disponible_tras_edicion),
        "porcentaje_comprometido": safe_pct(rollup.comprometido, rollup.total_techo),
    }

    if rollup.total_techo <= 0:
        return FeedbackPresupuesto(
            nivel="advertencia",
            mensaje="No hay un presupuesto vigente configurado para esta área.",
            **base,
        )
    if rollup.disponible < 0:
        return FeedbackPresupuesto(
            nivel="error",
            mensaje=(
                "El presupuesto comprometido excede el tope del área por "
                f"{formatear_monto(abs(rollup.disponible), moneda)}."
            ),
            **base,
        )
    if rollup.disponible_tras_edicion < 0:
        return FeedbackPresupuesto(
            nivel="error",
            mensaje=(
                "Esta actividad supera el saldo disponible del área en "
                f"{formatear_monto(abs(rollup.disponible_tras_edicion), moneda)}."
            ),
            **base,
        )
    if abs(rollup.disponible) < TOLERANCIA:
        return FeedbackPresupuesto(
            nivel="advertencia",
            mensaje="El presupuesto del área se encuentra completamente asignado.",
            **base,
        )
    return FeedbackPresupuesto(nivel="ok", **base)


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class AreaBudgetLedger:
    """Cached area rollup for the activity being edited.

    One ledger per editing session.  ``resolve`` is awaited whenever the
    area, the fiscal year or the activity changes; ``update_draft_budget``
    is called on every budget keystroke and never hits the network.

    Attributes:
        last_error: Message of the last failed fetch, for the host to show.
    """

    def __init__(self, client: BudgetClient, moneda: str = MONEDA_DEFAULT) -> None:
        self._client = client
        self._moneda = moneda
        self._secuencia = 0
        self._rollup: ResumenCompromiso | None = None
        self.last_error: str | None = None

    @property
    def rollup(self) -> ResumenCompromiso | None:
        return self._rollup

    @property
    def is_known(self) -> bool:
        return self._rollup is not None

    @property
    def secuencia(self) -> int:
        """Sequence number of the latest request issued."""
        return self._secuencia

    def reset(self) -> None:
        """Forget the cached rollup and invalidate in-flight requests."""
        self._secuencia += 1
        self._rollup = None

    async def resolve(
        self,
        area_id: int | str | None,
        year: Any,
        draft_budget: float,
        actividad_id: int | str | None = None,
    ) -> ResumenCompromiso | None:
        """Fetch the rollup for an area and fiscal year.

        Args:
            area_id: Selected area; empty clears the ledger.
            year: Fiscal year or a reference date (see ``resolve_vigencia``).
            draft_budget: Budget currently typed for the activity.
            actividad_id: Activity being edited, excluded from the committed
                total by the service.

        Returns:
            The new rollup, or ``None`` when the area is empty, the fetch
            failed, or a newer request superseded this one.
        """
        area = "" if area_id is None else str(area_id).strip()
        if not area:
            self.reset()
            return None

        self._secuencia += 1
        secuencia = self._secuencia
        vigencia = resolve_vigencia(year)
        borrador = redondear(draft_budget or 0)

        try:
            respuesta = await self._client.fetch_area_summary(
                area, vigencia, borrador, actividad_id
            )
        except LedgerFetchError as exc:
            if secuencia != self._secuencia:
                logger.debug("Ignoring failure of superseded request #%d", secuencia)
                return None
            logger.warning(
                "Area budget fetch failed area_id=%s vigencia=%s: %s",
                area,
                vigencia,
                exc.message,
            )
            self._rollup = None
            self.last_error = exc.message
            return None

        if secuencia != self._secuencia:
            logger.debug(
                "Discarding stale rollup #%d (latest is #%d)", secuencia, self._secuencia
            )
            return None

        techo = respuesta.techo
        disponible = redondear(respuesta.disponible)
        rollup = ResumenCompromiso(
            area_id=area,
            vigencia=vigencia,
            techo=techo,
            total_techo=redondear(respuesta.monto_techo),
            comprometido=redondear(respuesta.comprometido),
            disponible=disponible,
            base_disponible=disponible,
            presupuesto_programado=borrador,
            disponible_tras_edicion=redondear(disponible - borrador),
            total_actividades=respuesta.total_actividades,
            moneda=techo.moneda if techo is not None else self._moneda,
            secuencia=secuencia,
        )
        self._rollup = rollup
        self.last_error = None
        logger.info(
            "Area %s vigencia %s: techo=%.2f comprometido=%.2f disponible=%.2f",
            area,
            vigencia,
            rollup.total_techo,
            rollup.comprometido,
            rollup.disponible,
        )
        return rollup

    def update_draft_budget(self, draft_budget: float) -> ResumenCompromiso | None:
        """Re-estimate the balance after a draft-budget change, without fetching."""
        if self._rollup is None:
            return None
        self._rollup = self._rollup.with_draft_budget(draft_budget)
        return self._rollup

    def validate_for_save(self, area_id: int | str | None, draft_budget: float) -> None:
        """Ceiling check for the save gate.

        Skipped when the ledger is unknown or holds another area's rollup.

        Raises:
            ValidationError: See ``validate_against_ceiling``.
        """
        rollup = self._rollup
        if rollup is None:
            return
        area = "" if area_id is None else str(area_id).strip()
        if not area or area != rollup.area_id:
            return
        validate_against_ceiling(rollup, draft_budget)
