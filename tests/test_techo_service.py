from datetime import date

from planificacion.schemas.presupuesto import TechoBorrador, TechoPresupuestal
from planificacion.services.techo_service import select_current_techo, validate_techo


def _borrador(**overrides):
    data = {
        "area_id": 7,
        "vigencia": "2025",
        "presupuesto_asignado": "1.500.000",
        "valido_desde": "2025-01-01",
        "valido_hasta": "2026-01-01",
        "estado": "aprobado",
    }
    data.update(overrides)
    return TechoBorrador(**data)


def _techo(version, **overrides):
    data = {"total": 1000, "version": version, "vigencia": "2025", "es_actual": True}
    data.update(overrides)
    return TechoPresupuestal.model_validate(data)


def test_valid_record_has_no_errors():
    assert validate_techo(_borrador()) == []


def test_every_problem_is_reported():
    errores = validate_techo(
        _borrador(
            area_id="",
            vigencia="25",
            presupuesto_asignado="abc",
            valido_desde="2025-06-01",
            valido_hasta="2025-01-01",
            estado="Borrador",
        )
    )
    assert errores[:4] == [
        "Selecciona un área para el presupuesto.",
        "La vigencia debe tener el formato YYYY.",
        "El presupuesto asignado debe ser un número mayor a cero.",
        'La fecha "Válido hasta" debe ser posterior a "Válido desde".',
    ]
    assert errores[4].startswith("Estado 'Borrador' inválido.")


def test_zero_or_negative_budget_rejected():
    assert validate_techo(_borrador(presupuesto_asignado=0)) == [
        "El presupuesto asignado debe ser un número mayor a cero."
    ]
    assert validate_techo(_borrador(presupuesto_asignado="-5")) == [
        "El presupuesto asignado debe ser un número mayor a cero."
    ]


def test_numeric_vigencia_accepted():
    assert validate_techo(_borrador(vigencia=2025)) == []


def test_unreadable_dates():
    errores = validate_techo(_borrador(valido_desde="31/12/2025", valido_hasta="mañana"))
    assert errores == [
        'La fecha "Válido desde" no es una fecha válida.',
        'La fecha "Válido hasta" no es una fecha válida.',
    ]


def test_optional_fields_may_be_blank():
    assert validate_techo(_borrador(valido_desde=None, valido_hasta="", estado=None)) == []


def test_highest_current_version_wins():
    registros = [_techo(1), _techo(3), _techo(2), _techo(5, es_actual=False)]
    assert select_current_techo(registros, "2025").version == 3


def test_other_fiscal_year_ignored():
    registros = [_techo(4, vigencia="2024"), _techo(1)]
    assert select_current_techo(registros, "2025").version == 1
    assert select_current_techo(registros, "2026") is None


def test_validity_window_on_date():
    registros = [
        _techo(1, valido_desde="2025-01-01", valido_hasta="2025-07-01"),
        _techo(2, valido_desde="2025-07-01", valido_hasta="2026-01-01"),
    ]
    assert select_current_techo(registros, "2025", on=date(2025, 3, 1)).version == 1
    assert select_current_techo(registros, "2025", on=date(2025, 7, 1)).version == 2
    assert select_current_techo(registros, "2025", on=date(2026, 1, 1)) is None


def test_no_records():
    assert select_current_techo([], "2025") is None
