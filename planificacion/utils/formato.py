"""
Shared numeric-formatting helpers.

Amounts and quantities are rendered the way the es-CO locale writes them
(``.`` for thousands, ``,`` for decimals) so that every validation message
reads the same regardless of the server locale.  Percentages and the
available-balance semaphore live here too because they share the
reconciliation tolerance.
"""

from __future__ import annotations

from planificacion.utils.constants import (
    MONEDA_DEFAULT,
    SEMAFORO_AMARILLO,
    SEMAFORO_ROJO,
    SEMAFORO_VERDE,
    SIMBOLOS_MONEDA,
    TOLERANCIA,
)


def redondear(valor: float) -> float:
    """Round to two decimals, normalising ``-0.0`` to ``0.0``."""
    resultado = round(float(valor), 2)
    return resultado if resultado != 0 else 0.0


def formatear_numero(
    valor: float | int | None = 0,
    min_decimales: int = 0,
    max_decimales: int = 2,
) -> str:
    """Format a number with es-CO separators.

    Trailing zeros beyond ``min_decimales`` are dropped, so ``1234.5``
    becomes ``"1.234,5"`` and ``50.0`` becomes ``"50"``.

    Args:
        valor: Number to format.  ``None`` is treated as zero.
        min_decimales: Minimum fraction digits to keep.
        max_decimales: Maximum fraction digits to show (rounded).

    Returns:
        The formatted string, with a leading ``-`` for negative values.
    """
    numero = float(valor or 0)
    texto = f"{abs(numero):,.{max_decimales}f}"
    entero, _, decimales = texto.partition(".")
    decimales = decimales.rstrip("0")
    if len(decimales) < min_decimales:
        decimales = decimales.ljust(min_decimales, "0")

    resultado = entero.replace(",", ".")
    if decimales:
        resultado = f"{resultado},{decimales}"

    es_cero = not any(ch in "123456789" for ch in resultado)
    if numero < 0 and not es_cero:
        resultado = f"-{resultado}"
    return resultado


def formatear_monto(
    valor: float | int | None = 0,
    moneda: str = MONEDA_DEFAULT,
    min_decimales: int = 0,
    max_decimales: int = 2,
) -> str:
    """Format an amount as currency, e.g. ``"$ 1.234.567,5"`` for COP."""
    codigo = (moneda or MONEDA_DEFAULT).upper()
    simbolo = SIMBOLOS_MONEDA.get(codigo, codigo)
    numero = formatear_numero(valor, min_decimales, max_decimales)
    if numero.startswith("-"):
        return f"-{simbolo} {numero[1:]}"
    return f"{simbolo} {numero}"


def safe_pct(numerator: float, denominator: float) -> float:
    """Return numerator / denominator × 100, or 0.0 if denominator is zero.

    Not capped at 100 so that an over-committed ceiling stays visible.
    """
    if abs(denominator) < TOLERANCIA:
        return 0.0
    return round((numerator / denominator) * 100, 2)


def semaforo_saldo(disponible: float) -> str:
    """Traffic-light colour for an available balance.

    - below zero            → ``"ROJO"``
    - zero (within tolerance) → ``"AMARILLO"``
    - positive              → ``"VERDE"``
    """
    if disponible <= -TOLERANCIA:
        return SEMAFORO_ROJO
    if abs(disponible) < TOLERANCIA:
        return SEMAFORO_AMARILLO
    return SEMAFORO_VERDE
