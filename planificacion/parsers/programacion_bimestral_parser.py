"""Parser for the bimester programming workbook.

Sheet layout:
    Rows above the table: optional title block; a "Vigencia" label followed
        by the fiscal year in the next cell is picked up as metadata.
    Header row: first row containing "Codigo".
    Data rows: one activity per row.

Expected columns (header text is matched case- and accent-insensitively):
    Codigo actividad | Area | Presupuesto programado | Meta |
    Fecha inicio (optional) |
    Presupuesto B1 … Presupuesto B6 |
    Meta B1 … Meta B6 |
    Descripcion B1 … Descripcion B6 (optional)

Every numeric cell goes through the quantity parser, so "1.234,56",
"$ 1.500.000" and native numbers are all accepted; the activity meta may be
typed as prose ("12 talleres en 2025").

Mapped to:
    - One save payload per activity row (``build_save_payload``).

Validation rules:
    - Activity code and area must be non-empty.
    - Presupuesto programado must be a readable number.
    - The row must pass the bimester save gate (six bimesters, no negatives,
      sums reconcile, breakdowns within their target).
"""

from __future__ import annotations

import logging
import re
from typing import Any

import pandas as pd

from planificacion.exceptions import ParseFailure, ValidationError
from planificacion.parsers.base_parser import BaseParser, ParseResult
from planificacion.parsers.cantidades import parse_target_value
from planificacion.schemas.actividad import ActividadBorrador, BimestreAsignacion
from planificacion.services.bimestres_service import build_save_payload, validate_for_save
from planificacion.utils.constants import BIMESTRES, TOTAL_BIMESTRES

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_HEADER_KEYWORD = "codigo"

_COL_ALIASES: dict[str, list[str]] = {
    "codigo": ["codigo actividad", "codigo", "cod actividad", "id actividad"],
    "area": ["area", "area responsable", "area id"],
    "presupuesto": ["presupuesto programado", "presupuesto anual", "presupuesto total"],
    "meta": ["meta", "meta indicador", "meta del indicador", "meta anual"],
    "fecha": ["fecha inicio", "fecha inicio planeada", "fecha de inicio"],
}

_BIMESTRE_COLUMN = re.compile(r"^(presupuesto|meta|descripcion|detalle)\s*b\s*([1-6])$")


def _match_column(columns: dict[str, str], aliases: list[str]) -> str | None:
    for alias in aliases:
        if alias in columns:
            return columns[alias]
    return None


class ProgramacionBimestralParser(BaseParser):
    """Parse a workbook of activities with their six-bimester programming.

    Args:
        file_path_or_bytes: File path string, raw bytes, or binary file object.
        sheet_name: Sheet index or name.  Defaults to 0.
        current_year: Reference year for the quantity parser's year
            heuristic.  Defaults to the workbook's vigencia when present.
    """

    FORMAT_NAME = "PROGRAMACION_BIMESTRAL"

    def __init__(
        self,
        file_path_or_bytes: Any,
        sheet_name: str | int = 0,
        current_year: int | None = None,
    ) -> None:
        super().__init__(file_path_or_bytes)
        self.sheet_name = sheet_name
        self.current_year = current_year
        self._columns: dict[str, str | None] = {}
        self._bimestre_columns: dict[tuple[str, int], str] = {}

    # ------------------------------------------------------------------
    # Structure validation
    # ------------------------------------------------------------------

    def _map_columns(self, df: pd.DataFrame) -> None:
        normalized = {self._normalize_label(c): c for c in df.columns}
        self._columns = {
            key: _match_column(normalized, aliases) for key, aliases in _COL_ALIASES.items()
        }
        self._bimestre_columns = {}
        for label, original in normalized.items():
            match = _BIMESTRE_COLUMN.match(label)
            if not match:
                continue
            kind = "descripcion" if match.group(1) == "detalle" else match.group(1)
            self._bimestre_columns.setdefault((kind, int(match.group(2))), original)

    def validate_structure(self, df: pd.DataFrame) -> list[str]:
        """Verify that the activity and per-bimester columns are present."""
        self._map_columns(df)
        errors: list[str] = []
        for key in ("codigo", "area", "presupuesto", "meta"):
            if self._columns.get(key) is None:
                errors.append(
                    f"Programación bimestral: columna '{key}' no encontrada. "
                    f"Columnas detectadas: {list(df.columns)}"
                )
        faltantes = [
            f"{kind.capitalize()} B{idx}"
            for kind in ("presupuesto", "meta")
            for idx in range(1, TOTAL_BIMESTRES + 1)
            if (kind, idx) not in self._bimestre_columns
        ]
        if faltantes:
            errors.append(
                "Programación bimestral: faltan columnas de bimestre: " + ", ".join(faltantes)
            )
        return errors

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    def _cell(self, row: pd.Series, column: str | None) -> Any:
        if column is None:
            return None
        return row.get(column)

    def _row_to_actividad(self, row: pd.Series) -> ActividadBorrador:
        """Build a draft from one data row.

        Raises:
            ParseFailure: When the code, the area or the budget is unreadable.
        """
        codigo = self._clean_str(self._cell(row, self._columns["codigo"]))
        area = self._clean_str(self._cell(row, self._columns["area"]))
        if not area:
            raise ParseFailure("el área es obligatoria.")

        presupuesto_raw = self._cell(row, self._columns["presupuesto"])
        presupuesto = self._to_quantity(presupuesto_raw)
        if presupuesto is None:
            raise ParseFailure(
                f"presupuesto programado ilegible: '{self._clean_str(presupuesto_raw)}'.",
                raw=presupuesto_raw,
            )

        meta_raw = self._cell(row, self._columns["meta"])
        if isinstance(meta_raw, str):
            meta = parse_target_value(meta_raw, current_year=self.current_year)
        else:
            meta = self._to_quantity(meta_raw) or 0.0

        bimestres = []
        for cfg in BIMESTRES:
            descripcion_col = self._bimestre_columns.get(("descripcion", cfg.index))
            bimestres.append(
                BimestreAsignacion(
                    index=cfg.index,
                    bimestre=cfg.value,
                    presupuesto=self._to_quantity(
                        self._cell(row, self._bimestre_columns.get(("presupuesto", cfg.index)))
                    ),
                    meta=self._to_quantity(
                        self._cell(row, self._bimestre_columns.get(("meta", cfg.index)))
                    ),
                    descripcion=self._clean_str(self._cell(row, descripcion_col)),
                )
            )

        return ActividadBorrador(
            id=codigo,
            area_id=area,
            presupuesto_programado=presupuesto,
            meta_indicador_valor=meta,
            fecha_inicio_planeada=self._to_date(self._cell(row, self._columns["fecha"])),
            bimestres=bimestres,
        )

    # ------------------------------------------------------------------
    # Parse
    # ------------------------------------------------------------------

    def parse(self) -> ParseResult:
        """Execute the bimester-programming parsing pipeline."""
        self.result.format_name = self.FORMAT_NAME

        # ----------------------------------------------------------------
        # 1. Header area: locate the table and the fiscal year
        # ----------------------------------------------------------------
        raw_head = self._load_sheet(sheet_name=self.sheet_name, header=None, nrows=15)
        if raw_head.empty:
            if self.result.ok:
                self.result.errors.append("Programación bimestral: la hoja está vacía.")
            return self.result

        header_row_idx = self._detect_header_row(raw_head, _HEADER_KEYWORD)
        if header_row_idx is None:
            self.result.errors.append(
                "Programación bimestral: no se encontró la fila de encabezados "
                "(se esperaba una columna 'Codigo actividad')."
            )
            return self.result

        vigencia = self._scan_for_value(raw_head.iloc[:header_row_idx], "vigencia")
        if vigencia:
            self.result.metadata["vigencia"] = vigencia
            if self.current_year is None and vigencia.isdigit() and len(vigencia) == 4:
                self.current_year = int(vigencia)

        # ----------------------------------------------------------------
        # 2. Load main DataFrame
        # ----------------------------------------------------------------
        df = self._load_sheet(sheet_name=self.sheet_name, header=header_row_idx)
        if df.empty:
            if self.result.ok:
                self.result.errors.append("Programación bimestral: la hoja no tiene filas.")
            return self.result

        # ----------------------------------------------------------------
        # 3. Validate structure
        # ----------------------------------------------------------------
        structure_errors = self.validate_structure(df)
        if structure_errors:
            self.result.errors.extend(structure_errors)
            return self.result

        # ----------------------------------------------------------------
        # 4. Iterate data rows
        # ----------------------------------------------------------------
        leidas = 0
        vistos: set[str] = set()
        for offset, (_, row) in enumerate(df.iterrows()):
            excel_row = header_row_idx + 2 + offset
            if self._is_empty_row(row):
                continue
            leidas += 1

            codigo = self._clean_str(self._cell(row, self._columns["codigo"]))
            etiqueta = f"Fila {excel_row} ({codigo or 'sin código'})"
            if not codigo:
                self.result.errors.append(f"{etiqueta}: el código de actividad es obligatorio.")
                continue
            if codigo in vistos:
                self.result.warnings.append(
                    f"{etiqueta}: código repetido; se conserva también esta fila."
                )
            vistos.add(codigo)

            try:
                actividad = self._row_to_actividad(row)
                validate_for_save(actividad, current_year=self.current_year)
            except (ParseFailure, ValidationError) as exc:
                self.result.errors.append(f"{etiqueta}: {exc.message}")
                continue

            self.result.records.append(
                build_save_payload(actividad, current_year=self.current_year)
            )

        self.result.metadata["total_filas_leidas"] = leidas
        logger.info("ProgramacionBimestralParser: %s", self.result.summary())
        return self.result
