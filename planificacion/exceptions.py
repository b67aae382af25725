"""Domain exceptions raised by the reconciliation engine.

None of these are fatal to the host: routers translate them into
``HTTPException`` responses and callers surface the message next to the
offending field or at form level.
"""

from __future__ import annotations


class ConciliacionError(Exception):
    """Base class for every error raised by the engine."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ParseFailure(ConciliacionError):
    """A raw value could not be turned into a quantity.

    The public parser functions never raise it (they degrade to ``None`` or
    ``0.0``); it is used by the workbook importer to reject a row whose
    required numeric cell is unreadable.
    """

    def __init__(self, message: str, raw: object = None):
        super().__init__(message)
        self.raw = raw


class ValidationError(ConciliacionError):
    """A draft activity violates a distribution or ceiling invariant.

    Attributes:
        code: Stable machine-readable identifier of the violated rule.
        bimestre: 1-based bimester index when the violation is period-scoped.
        field: Name of the offending field, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str,
        bimestre: int | None = None,
        field: str | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.bimestre = bimestre
        self.field = field

    def to_detail(self) -> dict[str, object]:
        return {
            "mensaje": self.message,
            "codigo": self.code,
            "bimestre": self.bimestre,
            "campo": self.field,
        }


class LedgerFetchError(ConciliacionError):
    """The external budget service could not provide an area rollup."""

    def __init__(self, message: str, status: int = 0, body: str | None = None):
        super().__init__(message)
        self.status = status
        self.body = body
