"""Abstract base class for workbook parsers.

Provides shared infrastructure for loading workbooks, locating the header
row, and normalising cell values before format-specific subclasses do their
domain logic.
"""

from __future__ import annotations

import io
import logging
import unicodedata
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, BinaryIO

import pandas as pd

from planificacion.parsers.cantidades import parse_quantity

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------


@dataclass
class ParseResult:
    """Container returned by every parser after processing a workbook.

    Attributes:
        records: List of dicts ready for Pydantic validation.
            Each dict key matches a schema field name.
        errors: Fatal row-level or structural problems (row was skipped).
        warnings: Non-fatal oddities (row was kept but may need review).
        metadata: Header context extracted from the file (year, file name …).
        format_name: Detected or assumed format identifier string.
    """

    records: list[dict[str, Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    format_name: str = "DESCONOCIDO"

    @property
    def ok(self) -> bool:
        """True when no fatal errors were collected."""
        return len(self.errors) == 0

    @property
    def record_count(self) -> int:
        """Number of successfully parsed data records."""
        return len(self.records)

    def summary(self) -> str:
        """One-line human-readable summary of the parse run."""
        status = "OK" if self.ok else "ERROR"
        return (
            f"[{status}] format={self.format_name} "
            f"records={self.record_count} "
            f"errors={len(self.errors)} "
            f"warnings={len(self.warnings)}"
        )


# ---------------------------------------------------------------------------
# Base parser
# ---------------------------------------------------------------------------


class BaseParser(ABC):
    """Abstract base for all workbook parsers.

    Subclasses must implement:
        * ``validate_structure(df)`` — check expected columns / shape.
        * ``parse()``               — extract domain records.

    The constructor accepts a file path string, raw bytes, or an open
    binary-mode file object so it works both from the filesystem and from
    FastAPI ``UploadFile.read()``.

    Attributes:
        file_source: The original argument passed to the constructor.
        workbook_bytes: Raw bytes of the workbook, kept for re-parsing.
        result: Accumulated ``ParseResult`` (populated during ``parse()``).
    """

    # Name to assign in ``ParseResult.format_name``; override in subclasses.
    FORMAT_NAME: str = "DESCONOCIDO"

    def __init__(self, file_path_or_bytes: str | Path | bytes | BinaryIO) -> None:
        self.file_source = file_path_or_bytes
        self.workbook_bytes: bytes = self._read_source(file_path_or_bytes)
        self.result: ParseResult = ParseResult(format_name=self.FORMAT_NAME)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_source(source: str | Path | bytes | BinaryIO) -> bytes:
        """Normalise any input type to raw bytes."""
        if isinstance(source, bytes):
            return source
        if isinstance(source, (str, Path)):
            return Path(source).read_bytes()
        # File-like object (e.g. SpooledTemporaryFile from FastAPI)
        data = source.read()
        return data if isinstance(data, bytes) else data.encode()

    def _open_excel(self) -> io.BytesIO:
        """Return a BytesIO handle positioned at byte 0."""
        return io.BytesIO(self.workbook_bytes)

    # ------------------------------------------------------------------
    # Sheet loading
    # ------------------------------------------------------------------

    def _load_sheet(
        self,
        sheet_name: str | int = 0,
        header: int | None = None,
        nrows: int | None = None,
        dtype: type | dict | None = object,
    ) -> pd.DataFrame:
        """Load a worksheet into a DataFrame using the openpyxl engine.

        Cells keep their native type (``dtype=object``) so numeric cells
        reach the quantity parser as numbers and are never re-read as
        locale-ambiguous text.

        Args:
            sheet_name: Sheet index (0-based) or exact sheet name.
            header:  Row index (0-based) to use as column names, or None for
                     no header (columns become 0, 1, 2 …).
            nrows:   Maximum number of data rows to read.
            dtype:   dtype override passed to ``pd.read_excel``.

        Returns:
            The loaded DataFrame, or an empty one when the sheet cannot be
            read (the error is appended to ``self.result.errors``).
        """
        try:
            return pd.read_excel(
                self._open_excel(),
                sheet_name=sheet_name,
                header=header,
                nrows=nrows,
                dtype=dtype,
                engine="openpyxl",
            )
        except Exception as exc:
            msg = f"No se pudo leer la hoja '{sheet_name}': {exc}"
            logger.error(msg)
            self.result.errors.append(msg)
            return pd.DataFrame()

    def _detect_header_row(
        self,
        raw_df: pd.DataFrame,
        keyword: str,
        search_rows: int = 15,
    ) -> int | None:
        """Return the 0-based index of the first row containing ``keyword``."""
        target = self._normalize_label(keyword)
        for r in range(min(search_rows, len(raw_df))):
            for val in raw_df.iloc[r]:
                if target in self._normalize_label(val):
                    return r
        return None

    def _scan_for_value(
        self,
        raw_df: pd.DataFrame,
        label: str,
        search_rows: int = 15,
        col_offset: int = 1,
    ) -> str:
        """Scan header rows for a label and return the adjacent cell value.

        Args:
            raw_df: Raw DataFrame (no header).
            label: Text to search for (case/accent-insensitive, partial match).
            search_rows: How many rows from the top to scan.
            col_offset: Column offset from the found label cell to the value.

        Returns:
            Stripped value string, or empty string if not found.
        """
        target = self._normalize_label(label)
        for r in range(min(search_rows, len(raw_df))):
            for c in range(len(raw_df.columns)):
                if target in self._normalize_label(raw_df.iloc[r, c]):
                    try:
                        return self._clean_str(raw_df.iloc[r, c + col_offset])
                    except IndexError:
                        return ""
        return ""

    # ------------------------------------------------------------------
    # Value normalisation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _clean_str(value: Any) -> str:
        """Return a stripped string, converting NaN/None to empty string."""
        if value is None:
            return ""
        if isinstance(value, float) and pd.isna(value):
            return ""
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value).strip()

    @staticmethod
    def _normalize_label(value: Any) -> str:
        """Lower-case, accent-free, single-spaced version of a header cell."""
        text = BaseParser._clean_str(value).lower()
        text = unicodedata.normalize("NFKD", text)
        text = "".join(ch for ch in text if not unicodedata.combining(ch))
        return " ".join(text.split())

    @staticmethod
    def _to_quantity(value: Any) -> float | None:
        """Parse a cell through the quantity parser; NaN and blanks are ``None``."""
        if value is None:
            return None
        if isinstance(value, float) and pd.isna(value):
            return None
        return parse_quantity(value)

    @staticmethod
    def _to_date(value: Any) -> date | None:
        """Read a date cell (native datetime or ISO text)."""
        if value is None:
            return None
        if isinstance(value, float) and pd.isna(value):
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        text = str(value).strip()[:10]
        if not text:
            return None
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None

    # ------------------------------------------------------------------
    # Row-filtering helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _is_empty_row(row: pd.Series) -> bool:
        """True when every cell in the row is blank or NaN."""
        for val in row:
            if BaseParser._clean_str(val):
                return False
        return True

    # ------------------------------------------------------------------
    # Abstract interface
    # ------------------------------------------------------------------

    @abstractmethod
    def validate_structure(self, df: pd.DataFrame) -> list[str]:
        """Verify that the DataFrame has the required columns / shape.

        Args:
            df: The main data DataFrame (already loaded by the subclass).

        Returns:
            List of error messages.  Empty list means structure is valid.
        """

    @abstractmethod
    def parse(self) -> ParseResult:
        """Execute the full parsing pipeline and return a ``ParseResult``."""
