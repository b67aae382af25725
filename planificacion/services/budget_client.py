"""
HTTP client for the external area-budget service.

The service owns ceilings and saved activities; this client only asks it
for the rollup of one area and fiscal year:

    POST {BUDGET_SERVICE_URL}/{BUDGET_SERVICE_PATH}
    {"area_id": "7", "vigencia": "2025", "presupuesto_planeado": 150.0,
     "actividad_id": "42"}

Accepted answers (optionally wrapped in ``{"success": true, "data": ...}``):

    {"ceiling": {"total": 1000, "version": 2, "validFrom": ..., "validTo": ...,
                 "status": "Aprobado"},
     "committed": 900, "available": 100}

    {"resumen": {"presupuesto_total": 1000, "presupuesto_comprometido": 900,
                 "presupuesto_disponible": 100, "vigencia": "2025", ...},
     "actividades": [...], "meta": {"totalActividades": 4}}

Anything else, a ``success: false`` envelope, a non-2xx status, a timeout or
a transport error raises ``LedgerFetchError``.  Retries are left to the
caller.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp
from pydantic import ValidationError as PydanticValidationError

from planificacion.config import get_settings
from planificacion.exceptions import LedgerFetchError
from planificacion.schemas.presupuesto import RespuestaResumenArea

logger = logging.getLogger(__name__)

_DEFAULT_ERROR = "No fue posible consultar el presupuesto del área."


def _error_message(body: dict[str, Any]) -> str:
    errores = body.get("errors")
    if isinstance(errores, list) and errores:
        return str(errores[0])
    return str(body.get("message") or body.get("error") or _DEFAULT_ERROR)


def _unwrap(body: Any) -> dict[str, Any]:
    """Strip the ``success``/``data`` envelope and flatten the legacy shape."""
    if not isinstance(body, dict):
        raise LedgerFetchError("Respuesta inesperada del servicio de presupuesto.")
    if body.get("success") is False:
        raise LedgerFetchError(_error_message(body))

    data = body.get("data", body)
    if not isinstance(data, dict):
        raise LedgerFetchError("Respuesta inesperada del servicio de presupuesto.")

    resumen = data.get("resumen")
    if not isinstance(resumen, dict):
        return data

    meta = data.get("meta")
    if not isinstance(meta, dict):
        meta = {}
    actividades = data.get("actividades")
    total_actividades = meta.get("totalActividades")
    if total_actividades is None and isinstance(actividades, list):
        total_actividades = len(actividades)

    return {
        "techo": {
            "total": resumen.get("presupuesto_total"),
            "version": resumen.get("version"),
            "estado": resumen.get("estado"),
            "vigencia": resumen.get("vigencia"),
            "area_id": resumen.get("area_id"),
            "moneda": resumen.get("moneda"),
            "valido_desde": resumen.get("valido_desde"),
            "valido_hasta": resumen.get("valido_hasta"),
            "es_actual": True,
        },
        "comprometido": resumen.get("presupuesto_comprometido"),
        "disponible": resumen.get("presupuesto_disponible"),
        "total_actividades": total_actividades,
    }


def parse_area_summary(body: Any) -> RespuestaResumenArea:
    """Validate a decoded service answer.

    Raises:
        LedgerFetchError: On an error envelope or an unexpected shape.
    """
    data = _unwrap(body)
    try:
        return RespuestaResumenArea.model_validate(data)
    except PydanticValidationError as exc:
        logger.warning("Unexpected budget service payload: %s", exc)
        raise LedgerFetchError(
            "Respuesta inesperada del servicio de presupuesto.",
            body=json.dumps(data, default=str)[:500],
        ) from exc


class BudgetServiceClient:
    """Async client for the area-budget rollup endpoint.

    A new ``aiohttp.ClientSession`` is opened per call unless one is
    injected, so the client can be created per request by FastAPI.

    Args:
        base_url: Service root, e.g. ``http://presupuesto/api``.
        path: Rollup endpoint path relative to ``base_url``.
        timeout: Total request timeout in seconds.
        session: Optional shared session (caller owns its lifecycle).
    """

    def __init__(
        self,
        base_url: str,
        path: str = "presupuestos/resumenArea",
        timeout: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
        self.timeout = timeout
        self._session = session

    async def fetch_area_summary(
        self,
        area_id: int | str,
        vigencia: str,
        presupuesto_planeado: float,
        actividad_id: int | str | None = None,
    ) -> RespuestaResumenArea:
        """Ask the service for an area's ceiling and committed total.

        Raises:
            LedgerFetchError: On any transport, status or shape failure.
        """
        payload: dict[str, Any] = {
            "area_id": str(area_id),
            "vigencia": vigencia,
            "presupuesto_planeado": presupuesto_planeado,
        }
        if actividad_id not in (None, ""):
            payload["actividad_id"] = str(actividad_id)

        logger.debug("POST %s area_id=%s vigencia=%s", self.url, area_id, vigencia)
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            if self._session is not None:
                status, text = await self._post(self._session, payload, timeout)
            else:
                async with aiohttp.ClientSession() as session:
                    status, text = await self._post(session, payload, timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Budget service timed out after %.1fs", self.timeout)
            raise LedgerFetchError(
                "El servicio de presupuesto no respondió a tiempo."
            ) from exc
        except aiohttp.ClientError as exc:
            logger.warning("Budget service unreachable: %s", exc)
            raise LedgerFetchError(_DEFAULT_ERROR) from exc

        if status >= 400:
            logger.warning("Budget service returned %d: %s", status, text[:200])
            try:
                body = json.loads(text) if text else {}
            except ValueError:
                body = {}
            mensaje = _error_message(body) if isinstance(body, dict) else _DEFAULT_ERROR
            raise LedgerFetchError(mensaje, status=status, body=text)

        try:
            body = json.loads(text) if text else None
        except ValueError as exc:
            raise LedgerFetchError(
                "Respuesta inesperada del servicio de presupuesto.",
                status=status,
                body=text,
            ) from exc
        return parse_area_summary(body)

    async def _post(
        self,
        session: aiohttp.ClientSession,
        payload: dict[str, Any],
        timeout: aiohttp.ClientTimeout,
    ) -> tuple[int, str]:
        async with session.post(
            self.url,
            json=payload,
            headers={"Accept": "application/json"},
            timeout=timeout,
        ) as response:
            return response.status, await response.text()


def get_budget_client() -> BudgetServiceClient:
    """FastAPI dependency building a client from settings."""
    settings = get_settings()
    return BudgetServiceClient(
        base_url=settings.BUDGET_SERVICE_URL,
        path=settings.BUDGET_SERVICE_PATH,
        timeout=settings.BUDGET_SERVICE_TIMEOUT,
    )
