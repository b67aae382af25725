"""
Tests for the bimester programming workbook parser.

Workbooks are built in memory with openpyxl.  Layout used by ``_workbook``:

    row 1  title
    row 2  Vigencia | 2025
    row 3  header
    row 4+ data
"""

import io
from datetime import datetime

import pytest
from openpyxl import Workbook

from planificacion.parsers.programacion_bimestral_parser import ProgramacionBimestralParser

HEADER = (
    ["Código actividad", "Área", "Presupuesto programado", "Meta", "Fecha inicio"]
    + [f"Presupuesto B{i}" for i in range(1, 7)]
    + [f"Meta B{i}" for i in range(1, 7)]
    + [f"Descripción B{i}" for i in range(1, 7)]
)


def _fila(codigo, area=7, presupuesto=1200, meta=12, fecha=None, presupuestos=None,
          metas=None, descripciones=None):
    presupuestos = presupuestos if presupuestos is not None else [200] * 6
    metas = metas if metas is not None else [2] * 6
    descripciones = descripciones if descripciones is not None else ["2 talleres"] * 6
    return [codigo, area, presupuesto, meta, fecha] + presupuestos + metas + descripciones


def _workbook(rows, header=HEADER, vigencia=2025):
    wb = Workbook()
    ws = wb.active
    ws.append(["Programación bimestral de actividades"])
    ws.append(["Vigencia", vigencia])
    ws.append(header)
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def resultado():
    contenido = _workbook(
        [
            _fila("ACT-001", fecha=datetime(2025, 2, 1)),
            _fila("ACT-002", presupuestos=[200, 200, 200, 200, 200, 150]),
            _fila(None, area="Planeación"),
            _fila("ACT-004", presupuesto="abc"),
            _fila("ACT-005", area=None),
            _fila("ACT-006", presupuesto="1.200", meta="12 talleres en 2025"),
        ]
    )
    return ProgramacionBimestralParser(contenido).parse()


class TestProgramacionBimestralParser:
    def test_valid_rows_become_payloads(self, resultado):
        assert resultado.format_name == "PROGRAMACION_BIMESTRAL"
        assert [r["id"] for r in resultado.records] == ["ACT-001", "ACT-006"]

        primero = resultado.records[0]
        assert primero["area_id"] == "7"
        assert primero["presupuesto_programado"] == 1200.0
        assert primero["meta_indicador_valor"] == 12.0
        assert primero["fecha_inicio_planeada"] == "2025-02-01"
        assert len(primero["bimestres"]) == 6
        assert primero["bimestres"][0]["bimestre"] == "Enero-Febrero"
        assert primero["bimestres"][0]["descripcion_cantidad_total"] == 2.0

    def test_text_cells_go_through_quantity_parser(self, resultado):
        sexto = resultado.records[1]
        assert sexto["presupuesto_programado"] == 1200.0
        assert sexto["meta_indicador_valor"] == 12.0

    def test_row_errors_carry_excel_row_and_code(self, resultado):
        assert resultado.errors == [
            "Fila 5 (ACT-002): La distribución por bimestres es menor al "
            "presupuesto programado por $ 50.",
            "Fila 6 (sin código): el código de actividad es obligatorio.",
            "Fila 7 (ACT-004): presupuesto programado ilegible: 'abc'.",
            "Fila 8 (ACT-005): el área es obligatoria.",
        ]
        assert not resultado.ok

    def test_metadata(self, resultado):
        assert resultado.metadata["vigencia"] == "2025"
        assert resultado.metadata["total_filas_leidas"] == 6

    def test_repeated_code_is_a_warning(self):
        contenido = _workbook([_fila("ACT-001"), _fila("ACT-001")])
        resultado = ProgramacionBimestralParser(contenido).parse()

        assert resultado.ok
        assert resultado.record_count == 2
        assert resultado.warnings == [
            "Fila 5 (ACT-001): código repetido; se conserva también esta fila."
        ]

    def test_breakdown_over_target_rejected(self):
        descripciones = ["3 talleres y 2 charlas"] + ["2 talleres"] * 5
        contenido = _workbook([_fila("ACT-001", descripciones=descripciones)])
        resultado = ProgramacionBimestralParser(contenido).parse()

        assert resultado.records == []
        assert resultado.errors == [
            "Fila 4 (ACT-001): La descripción del bimestre Enero-Febrero excede la meta "
            "programada: 5 > 2."
        ]

    def test_vigencia_sets_reference_year(self):
        contenido = _workbook([_fila("ACT-001")], vigencia=2031)
        parser = ProgramacionBimestralParser(contenido)
        parser.parse()
        assert parser.current_year == 2031

    def test_explicit_reference_year_wins(self):
        contenido = _workbook([_fila("ACT-001")])
        parser = ProgramacionBimestralParser(contenido, current_year=2024)
        parser.parse()
        assert parser.current_year == 2024

    def test_missing_columns(self):
        contenido = _workbook(
            [["ACT-001", 7, 1200]],
            header=["Código actividad", "Área", "Presupuesto programado"],
        )
        resultado = ProgramacionBimestralParser(contenido).parse()

        assert resultado.records == []
        assert any("columna 'meta' no encontrada" in e for e in resultado.errors)
        assert any(e.startswith("Programación bimestral: faltan columnas de bimestre") for e in resultado.errors)

    def test_missing_header_row(self):
        wb = Workbook()
        wb.active.append(["Actividad", "Presupuesto"])
        wb.active.append(["Taller", 100])
        buffer = io.BytesIO()
        wb.save(buffer)

        resultado = ProgramacionBimestralParser(buffer.getvalue()).parse()

        assert resultado.errors == [
            "Programación bimestral: no se encontró la fila de encabezados "
            "(se esperaba una columna 'Codigo actividad')."
        ]

    def test_unreadable_file(self):
        resultado = ProgramacionBimestralParser(b"not a workbook").parse()
        assert not resultado.ok
        assert resultado.errors[0].startswith("No se pudo leer la hoja")
