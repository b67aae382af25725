"""Quantity parser for locale-ambiguous numeric input.

Turns what users type into budget and target fields ("$ 1.234.567",
"1.234,56", "40 informes durante 2025") into canonical floats.

Rules
-----
* Currency symbols, whitespace (including non-breaking spaces) and any
  character other than digits, ``,``, ``.`` and a leading ``-`` are removed.
* When both ``,`` and ``.`` appear, the rightmost one is the decimal
  separator and the other is a thousands separator.
* A lone ``,`` is a decimal separator.
* A lone ``.`` is a thousands separator when there is more than one of them
  or the value is shaped like ``1.234`` / ``12.345.678``; otherwise it is a
  decimal separator.

Nothing here raises: malformed input degrades to ``None`` (single value) or
to an empty list / ``0.0`` (free-text scans).
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date
from decimal import Decimal
from typing import Any, NamedTuple

from planificacion.utils.constants import (
    ANIO_MINIMO,
    LEXICO_ANIO,
    MARGEN_ANIOS_FUTUROS,
    VENTANA_CONTEXTO_ANIO,
)
from planificacion.utils.formato import redondear

logger = logging.getLogger(__name__)

_DISALLOWED_CHARS = re.compile(r"[^0-9,.\-]")
_THOUSANDS_SHAPE = re.compile(r"^\d{1,3}(\.\d{3})+$")
_FOUR_DIGITS = re.compile(r"^\d{4}$")
_TOKEN_EDGES = re.compile(r"^[^0-9-]+|[^0-9-]+$")

# Breakdown scans ignore signs: in prose a hyphen is a separator ("Enero-Febrero 10")
_UNSIGNED_TOKEN = re.compile(r"\d+(?:[.,]\d+)*")
_SIGNED_TOKEN = re.compile(r"-?\d+(?:[.,]\d+)*")


class QuantityToken(NamedTuple):
    raw: str
    value: float
    start: int


# ---------------------------------------------------------------------------
# Single values
# ---------------------------------------------------------------------------


def _normalize_segment(raw: str) -> float | None:
    """Apply the separator rules to one raw segment."""
    sanitized = _DISALLOWED_CHARS.sub("", raw.strip())
    if not sanitized:
        return None

    negative = sanitized.startswith("-")
    body = sanitized[1:] if negative else sanitized
    if not body or "-" in body:
        return None

    last_comma = body.rfind(",")
    last_dot = body.rfind(".")

    if last_comma > -1 and last_dot > -1:
        if last_comma > last_dot:
            body = body.replace(".", "").replace(",", ".")
        else:
            body = body.replace(",", "")
    elif last_comma > -1:
        body = body.replace(",", ".")
    elif body.count(".") > 1 or _THOUSANDS_SHAPE.match(body):
        body = body.replace(".", "")

    try:
        value = float(body)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return -value if negative else value


def parse_quantity(raw: Any) -> float | None:
    """Parse a single free-form numeric input.

    Args:
        raw: String typed by a user, or an already numeric value.

    Returns:
        The canonical float, or ``None`` for empty / non-numeric input.

    Example::

        parse_quantity("1.234,56")   # 1234.56
        parse_quantity("$ 1.500.000")  # 1500000.0
        parse_quantity("")           # None
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float, Decimal)):
        value = float(raw)
        return value if math.isfinite(value) else None
    return _normalize_segment(str(raw))


# ---------------------------------------------------------------------------
# Year heuristic
# ---------------------------------------------------------------------------


def is_likely_year_token(
    raw_token: str,
    value: float,
    *,
    index: int,
    total: int,
    context: str = "",
    current_year: int | None = None,
) -> bool:
    """Decide whether a token scanned from prose is a calendar year.

    A token is a year when its value is an integer between 1900 and
    ``current_year + 10``, it is written as exactly four digits, and either
    it is the last token of a multi-token scan or the words right before it
    belong to the year/period lexicon (``año``, ``vigencia``, ``durante`` …).

    Args:
        raw_token: The token as it appears in the text.
        value: Its parsed value.
        index: 0-based position of the token in the scan.
        total: Number of tokens in the scan.
        context: Text immediately preceding the token.
        current_year: Reference year; defaults to today's.
    """
    if not float(value).is_integer():
        return False
    year = current_year or date.today().year
    if value < ANIO_MINIMO or value > year + MARGEN_ANIOS_FUTUROS:
        return False

    trimmed = (raw_token or "").strip()
    if not trimmed:
        return False
    core = _TOKEN_EDGES.sub("", trimmed)
    if not _FOUR_DIGITS.match(core):
        return False

    if total > 1 and index == total - 1:
        return True
    return bool(LEXICO_ANIO.search(f"{context} {trimmed}"))


# ---------------------------------------------------------------------------
# Free-text scans
# ---------------------------------------------------------------------------


def _scan_tokens(text: str, pattern: re.Pattern[str]) -> list[QuantityToken]:
    tokens: list[QuantityToken] = []
    for match in pattern.finditer(text):
        value = _normalize_segment(match.group())
        if value is None:
            continue
        tokens.append(QuantityToken(match.group(), value, match.start()))
    return tokens


def _without_years(
    text: str,
    tokens: list[QuantityToken],
    current_year: int | None,
) -> list[QuantityToken]:
    """Drop year-like tokens; keep everything if nothing would survive."""
    kept: list[QuantityToken] = []
    previous_end = 0
    for idx, token in enumerate(tokens):
        window_start = max(previous_end, token.start - VENTANA_CONTEXTO_ANIO)
        context = text[window_start:token.start]
        previous_end = token.start + len(token.raw)
        if is_likely_year_token(
            token.raw,
            token.value,
            index=idx,
            total=len(tokens),
            context=context,
            current_year=current_year,
        ):
            logger.debug("Excluding year-like token %r from %r", token.raw, text)
            continue
        kept.append(token)
    return kept or tokens


def parse_all_quantities(raw: Any, current_year: int | None = None) -> list[float]:
    """Extract every non-negative quantity from free text.

    Tokens that look like calendar years are excluded, so
    ``"durante 2025 se entregaron 40 informes"`` yields ``[40.0]``.

    Args:
        raw: Free text (or a number).
        current_year: Reference year for the year heuristic.

    Returns:
        Quantities rounded to two decimals, in order of appearance.
    """
    if raw is None or isinstance(raw, bool):
        return []
    if isinstance(raw, (int, float, Decimal)):
        value = parse_quantity(raw)
        return [redondear(value)] if value is not None and value >= 0 else []

    text = str(raw)
    tokens = _scan_tokens(text, _UNSIGNED_TOKEN)
    if not tokens:
        return []
    return [redondear(t.value) for t in _without_years(text, tokens, current_year)]


def sum_quantities(raw: Any, current_year: int | None = None) -> float:
    """Sum of :func:`parse_all_quantities`, rounded to two decimals."""
    cantidades = parse_all_quantities(raw, current_year=current_year)
    if not cantidades:
        return 0.0
    return redondear(sum(cantidades))


def parse_target_value(raw: Any, current_year: int | None = None) -> float:
    """Read a target ("meta") typed as prose and return its value.

    The first non-year quantity wins: ``"40 informes en 2025"`` → ``40.0``.
    Falls back to parsing the whole string, and to ``0.0`` when nothing
    parses.
    """
    if raw is None or raw == "" or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float, Decimal)):
        value = parse_quantity(raw)
        return redondear(value) if value is not None else 0.0

    text = str(raw)
    if not text.strip():
        return 0.0

    tokens = _scan_tokens(text, _SIGNED_TOKEN)
    if tokens:
        return redondear(_without_years(text, tokens, current_year)[0].value)

    value = _normalize_segment(text)
    return redondear(value) if value is not None else 0.0
