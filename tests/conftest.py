from __future__ import annotations

from typing import Any, Callable

import pytest

from planificacion.exceptions import LedgerFetchError
from planificacion.schemas.actividad import ActividadBorrador
from planificacion.schemas.presupuesto import RespuestaResumenArea


# Fixed reference year so the year heuristic does not depend on the clock.
ANIO_REFERENCIA = 2025


class FakeBudgetClient:
    """In-memory stand-in for ``BudgetServiceClient``.

    ``answers`` maps an area id to a ``RespuestaResumenArea`` or to an
    exception to raise.  Every call is recorded in ``calls``.
    """

    def __init__(self, answers: dict[str, Any]):
        self.answers = answers
        self.calls: list[dict[str, Any]] = []

    async def fetch_area_summary(self, area_id, vigencia, presupuesto_planeado, actividad_id=None):
        self.calls.append(
            {
                "area_id": area_id,
                "vigencia": vigencia,
                "presupuesto_planeado": presupuesto_planeado,
                "actividad_id": actividad_id,
            }
        )
        answer = self.answers[str(area_id)]
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def anio() -> int:
    return ANIO_REFERENCIA


@pytest.fixture
def make_actividad() -> Callable[..., ActividadBorrador]:
    """Factory for a draft activity with six bimesters.

    Defaults to a balanced draft: budget 1200 (6 × 200) and target 12 (6 × 2).
    """

    def _make(
        presupuesto_programado: Any = 1200,
        meta_indicador_valor: Any = 12,
        presupuestos: list[Any] | None = None,
        metas: list[Any] | None = None,
        descripciones: list[str] | None = None,
        **extra: Any,
    ) -> ActividadBorrador:
        presupuestos = presupuestos if presupuestos is not None else [200] * 6
        metas = metas if metas is not None else [2] * 6
        descripciones = descripciones if descripciones is not None else [""] * 6
        bimestres = [
            {"index": i + 1, "presupuesto": p, "meta": m, "descripcion": d}
            for i, (p, m, d) in enumerate(zip(presupuestos, metas, descripciones))
        ]
        data = {
            "area_id": 7,
            "presupuesto_programado": presupuesto_programado,
            "meta_indicador_valor": meta_indicador_valor,
            "bimestres": bimestres,
        }
        data.update(extra)
        return ActividadBorrador.model_validate(data)

    return _make


@pytest.fixture
def respuesta_area() -> Callable[..., RespuestaResumenArea]:
    """Factory for a budget-service answer in the ``ceiling/committed/available`` shape."""

    def _make(total: float = 1000, committed: float = 900, available: float = 100, **ceiling):
        body = {
            "ceiling": {"total": total, "version": 2, "status": "aprobado", **ceiling},
            "committed": committed,
            "available": available,
        }
        return RespuestaResumenArea.model_validate(body)

    return _make


@pytest.fixture
def fake_client_factory() -> Callable[[dict[str, Any]], FakeBudgetClient]:
    return FakeBudgetClient


@pytest.fixture
def ledger_error() -> LedgerFetchError:
    return LedgerFetchError("No fue posible consultar el presupuesto del área.", status=503)
