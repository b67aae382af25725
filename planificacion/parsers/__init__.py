"""Quantity parsing and workbook import.

Public API
----------
parse_quantity        — One free-form numeric value → float | None.
parse_all_quantities  — Every non-year quantity found in free text.
sum_quantities        — Sum of ``parse_all_quantities``.
parse_target_value    — First non-year quantity of a target typed as prose.
is_likely_year_token  — Year heuristic used by the free-text scans.
BaseParser            — Abstract base; inherit to create a workbook parser.
ParseResult           — Dataclass returned by every ``parser.parse()`` call.

Concrete parsers live in their own modules and are imported directly, e.g.::

    from planificacion.parsers.programacion_bimestral_parser import (
        ProgramacionBimestralParser,
    )

    result = ProgramacionBimestralParser("/path/to/programacion.xlsx").parse()
    print(result.summary())
"""

from .base_parser import BaseParser, ParseResult
from .cantidades import (
    is_likely_year_token,
    parse_all_quantities,
    parse_quantity,
    parse_target_value,
    sum_quantities,
)

__all__: list[str] = [
    "BaseParser",
    "ParseResult",
    "is_likely_year_token",
    "parse_all_quantities",
    "parse_quantity",
    "parse_target_value",
    "sum_quantities",
]
