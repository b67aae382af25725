"""
Application-wide constants for the bimester planning engine.

Defines the fixed bimester calendar, the numeric tolerance shared by every
reconciliation check, the lifecycle states of an area budget ceiling, and
the lexicons used by the quantity parser.
"""

from __future__ import annotations

import re
from typing import Final, NamedTuple

# ---------------------------------------------------------------------------
# Numeric tolerance (two-decimal currency / quantity precision)
# ---------------------------------------------------------------------------

TOLERANCIA: Final[float] = 0.01

# ---------------------------------------------------------------------------
# Bimester calendar
# ---------------------------------------------------------------------------


class BimestreConfig(NamedTuple):
    index: int
    label: str
    periodo: str
    short_label: str
    value: str
    meses: tuple[int, int]


BIMESTRES: Final[list[BimestreConfig]] = [
    BimestreConfig(1, "Enero-Febrero", "Enero - Febrero", "Bimestre 1", "Enero-Febrero", (1, 2)),
    BimestreConfig(2, "Marzo-Abril", "Marzo - Abril", "Bimestre 2", "Marzo-Abril", (3, 4)),
    BimestreConfig(3, "Mayo-Junio", "Mayo - Junio", "Bimestre 3", "Mayo-Junio", (5, 6)),
    BimestreConfig(4, "Julio-Agosto", "Julio - Agosto", "Bimestre 4", "Julio-Agosto", (7, 8)),
    BimestreConfig(5, "Septiembre-Octubre", "Septiembre - Octubre", "Bimestre 5", "Septiembre-Octubre", (9, 10)),
    BimestreConfig(6, "Noviembre-Diciembre", "Noviembre - Diciembre", "Bimestre 6", "Noviembre-Diciembre", (11, 12)),
]

TOTAL_BIMESTRES: Final[int] = len(BIMESTRES)

# Aliases accepted for the free-text breakdown when loading saved activities
DESCRIPCION_ALIASES: Final[tuple[str, ...]] = (
    "descripcion",
    "detalle",
    "descripcion_detalle",
    "desglose",
)

# ---------------------------------------------------------------------------
# Area budget ceiling lifecycle
# ---------------------------------------------------------------------------

ESTADOS_TECHO: Final[list[str]] = [
    "Propuesto",
    "Aprobado",
    "Modificado",
    "Suspendido",
    "Cerrado",
]

ESTADO_TECHO_DEFAULT: Final[str] = "Propuesto"

MONEDA_DEFAULT: Final[str] = "COP"

SIMBOLOS_MONEDA: Final[dict[str, str]] = {
    "COP": "$",
    "USD": "US$",
    "MXN": "$",
    "PEN": "S/",
    "EUR": "€",
}

# ---------------------------------------------------------------------------
# Quantity parser
# ---------------------------------------------------------------------------

# Calendar-year heuristic: integers in [ANIO_MINIMO, current year + margin]
ANIO_MINIMO: Final[int] = 1900
MARGEN_ANIOS_FUTUROS: Final[int] = 10

# Words that, right before a four-digit token, mark it as a year / period
LEXICO_ANIO: Final[re.Pattern[str]] = re.compile(
    r"\b(?:año|ano|anio|vigencia|periodo|período|durante|desde|hasta)\b",
    re.IGNORECASE,
)

# How many characters before a token are inspected for the year lexicon
VENTANA_CONTEXTO_ANIO: Final[int] = 30

# ---------------------------------------------------------------------------
# Available-balance semaphore
# ---------------------------------------------------------------------------

SEMAFORO_VERDE: Final[str] = "VERDE"
SEMAFORO_AMARILLO: Final[str] = "AMARILLO"
SEMAFORO_ROJO: Final[str] = "ROJO"
