"""
Tests for the bimester distribution service.
"""

from datetime import date

import pytest

from planificacion.exceptions import ValidationError
from planificacion.schemas.actividad import (
    ActividadBorrador,
    BimestreAsignacion,
    EstadoBalance,
    EstadoDescripcionTipo,
)
from planificacion.services.bimestres_service import (
    build_save_payload,
    check_breakdown,
    empty_bimestres,
    normalize_bimestres,
    recompute_summary,
    resolve_bimestre_index,
    validate_for_save,
)


class TestRecomputeSummary:
    def test_balanced_draft(self, make_actividad):
        resumen = recompute_summary(make_actividad())

        assert resumen.presupuesto.estado is EstadoBalance.BALANCED
        assert resumen.presupuesto.diferencia == 0.0
        assert resumen.presupuesto.mensaje == "Distribución equilibrada"
        assert resumen.presupuesto.feedback is None
        assert resumen.meta.estado is EstadoBalance.BALANCED
        assert resumen.meta.mensaje == "Meta equilibrada"
        assert resumen.bloquea_guardado is False

    def test_budget_short_by_fifty(self, make_actividad):
        actividad = make_actividad(presupuestos=[200, 200, 200, 200, 200, 150])
        resumen = recompute_summary(actividad)

        assert resumen.presupuesto.estado is EstadoBalance.SHORT
        assert resumen.presupuesto.diferencia == -50.0
        assert resumen.presupuesto.total_distribuido == 1150.0
        assert resumen.presupuesto.mensaje == "Faltan $ 50"
        assert resumen.presupuesto.feedback.startswith(
            "La suma de los bimestres es menor al presupuesto programado"
        )

    def test_budget_over(self, make_actividad):
        actividad = make_actividad(presupuestos=[200, 200, 200, 200, 200, 250])
        resumen = recompute_summary(actividad)

        assert resumen.presupuesto.estado is EstadoBalance.OVER
        assert resumen.presupuesto.mensaje == "Exceso de $ 50"

    def test_target_short_uses_plain_numbers(self, make_actividad):
        actividad = make_actividad(metas=[2, 2, 2, 2, 1, 1])
        resumen = recompute_summary(actividad)

        assert resumen.meta.estado is EstadoBalance.SHORT
        assert resumen.meta.mensaje == "Faltan 2"
        assert resumen.meta.feedback == (
            "La suma de la meta programada por bimestre es menor a la meta del indicador por 2."
        )

    def test_recompute_is_idempotent(self, make_actividad):
        actividad = make_actividad(
            presupuestos=[100, 200, 300, 200, 200, 150],
            descripciones=["3 talleres", "", "1 taller", "", "", "2 talleres"],
        )
        assert recompute_summary(actividad) == recompute_summary(actividad)

    def test_blocking_breakdown_flags_summary(self, make_actividad):
        actividad = make_actividad(descripciones=["5 talleres", "", "", "", "", ""])
        resumen = recompute_summary(actividad)

        assert resumen.bloquea_guardado is True
        assert resumen.descripciones[0].estado is EstadoDescripcionTipo.OVER_TARGET


class TestCheckBreakdown:
    def _asignacion(self, meta, descripcion):
        return BimestreAsignacion(index=1, meta=meta, descripcion=descripcion)

    def test_empty_text(self):
        estado = check_breakdown(self._asignacion(2, ""))
        assert estado.estado is EstadoDescripcionTipo.NONE
        assert estado.mensaje == ""

    def test_zero_target_violation(self):
        estado = check_breakdown(self._asignacion(0, "3 eventos"))
        assert estado.estado is EstadoDescripcionTipo.ZERO_TARGET_VIOLATION
        assert estado.bloquea_guardado is True
        assert estado.mensaje == "La meta es 0 pero la descripción incluye 3 entregables."

    def test_over_target(self):
        estado = check_breakdown(self._asignacion(2, "3 talleres y 2 charlas"))
        assert estado.estado is EstadoDescripcionTipo.OVER_TARGET
        assert estado.bloquea_guardado is True
        assert estado.mensaje == "Excediste la meta: 5 > 2."

    def test_under_target_without_quantities(self):
        estado = check_breakdown(self._asignacion(2, "talleres regionales"))
        assert estado.estado is EstadoDescripcionTipo.UNDER_TARGET
        assert estado.bloquea_guardado is False
        assert estado.mensaje == "Describe cómo se distribuyen los 2 entregables."

    def test_under_target_partial(self):
        estado = check_breakdown(self._asignacion(3, "1 taller"))
        assert estado.estado is EstadoDescripcionTipo.UNDER_TARGET
        assert estado.restante == 2.0
        assert estado.mensaje == "Has detallado 1 de 3 entregables. Faltan 2."

    def test_complete_ignores_year(self, anio):
        estado = check_breakdown(self._asignacion(2, "2 talleres durante 2025"), current_year=anio)
        assert estado.estado is EstadoDescripcionTipo.COMPLETE
        assert estado.descripcion_total == 2.0
        assert estado.mensaje == "Descripción completa: 2 de 2 entregables."


class TestValidateForSave:
    def test_balanced_draft_passes(self, make_actividad):
        validate_for_save(make_actividad())

    def test_one_cent_difference_is_tolerated(self, make_actividad):
        actividad = make_actividad(presupuestos=[200, 200, 200, 200, 200, 200.01])
        validate_for_save(actividad)

    def test_requires_six_bimesters(self, make_actividad):
        actividad = make_actividad(presupuestos=[240] * 5, metas=[2, 2, 2, 3, 3])
        with pytest.raises(ValidationError) as exc_info:
            validate_for_save(actividad)
        assert exc_info.value.code == "bimestres_incompletos"
        assert exc_info.value.message == "Debes ingresar la información de los 6 bimestres."

    def test_repeated_index_rejected(self):
        actividad = ActividadBorrador(
            presupuesto_programado=600,
            meta_indicador_valor=6,
            bimestres=[
                BimestreAsignacion(index=i, presupuesto=100, meta=1) for i in (1, 1, 3, 4, 5, 6)
            ],
        )
        with pytest.raises(ValidationError) as exc_info:
            validate_for_save(actividad)
        assert exc_info.value.code == "bimestres_incompletos"

    def test_negative_value_names_bimester(self, make_actividad):
        actividad = make_actividad(presupuestos=[200, 200, -10, 200, 200, 200])
        with pytest.raises(ValidationError) as exc_info:
            validate_for_save(actividad)
        error = exc_info.value
        assert error.code == "valores_negativos"
        assert error.bimestre == 3
        assert error.field == "presupuesto"
        assert "Mayo-Junio" in error.message

    def test_budget_short_message(self, make_actividad):
        actividad = make_actividad(presupuestos=[200, 200, 200, 200, 200, 150])
        with pytest.raises(ValidationError) as exc_info:
            validate_for_save(actividad)
        assert exc_info.value.code == "presupuesto_descuadrado"
        assert exc_info.value.message == (
            "La distribución por bimestres es menor al presupuesto programado por $ 50."
        )

    def test_budget_over_message(self, make_actividad):
        actividad = make_actividad(presupuestos=[200, 200, 200, 200, 200, 300])
        with pytest.raises(ValidationError) as exc_info:
            validate_for_save(actividad)
        assert exc_info.value.message == (
            "La distribución por bimestres excede el presupuesto programado en $ 100."
        )

    def test_target_mismatch_message(self, make_actividad):
        actividad = make_actividad(metas=[2, 2, 2, 2, 1, 1])
        with pytest.raises(ValidationError) as exc_info:
            validate_for_save(actividad)
        assert exc_info.value.code == "meta_descuadrada"
        assert exc_info.value.message == (
            "La suma de la meta programada por bimestre es menor a la meta del indicador por 2."
        )

    def test_zero_target_with_breakdown(self, make_actividad):
        actividad = make_actividad(
            meta_indicador_valor=10,
            metas=[2, 0, 2, 2, 2, 2],
            descripciones=["", "3 eventos", "", "", "", ""],
        )
        with pytest.raises(ValidationError) as exc_info:
            validate_for_save(actividad)
        error = exc_info.value
        assert error.code == "descripcion_meta_cero"
        assert error.bimestre == 2
        assert error.message == (
            "La meta del bimestre Marzo-Abril es 0 pero la descripción incluye 3 entregables."
        )

    def test_breakdown_over_target(self, make_actividad):
        actividad = make_actividad(descripciones=["3 talleres y 2 charlas", "", "", "", "", ""])
        with pytest.raises(ValidationError) as exc_info:
            validate_for_save(actividad)
        assert exc_info.value.code == "descripcion_excede_meta"
        assert exc_info.value.message == (
            "La descripción del bimestre Enero-Febrero excede la meta programada: 5 > 2."
        )

    def test_breakdown_under_target_does_not_block(self, make_actividad):
        actividad = make_actividad(descripciones=["1 taller", "", "", "", "", ""])
        validate_for_save(actividad)

    def test_sum_checks_run_before_breakdown(self, make_actividad):
        actividad = make_actividad(
            presupuestos=[200, 200, 200, 200, 200, 150],
            descripciones=["9 talleres", "", "", "", "", ""],
        )
        with pytest.raises(ValidationError) as exc_info:
            validate_for_save(actividad)
        assert exc_info.value.code == "presupuesto_descuadrado"


class TestSavePayload:
    def test_payload_shape(self, make_actividad):
        actividad = make_actividad(
            id=42,
            fecha_inicio_planeada=date(2025, 2, 1),
            descripciones=["2 talleres\r\n", "1 taller\r\n1 charla ", "", "", "", ""],
        )
        payload = build_save_payload(actividad)

        assert payload["id"] == 42
        assert payload["area_id"] == 7
        assert payload["fecha_inicio_planeada"] == "2025-02-01"
        assert payload["presupuesto_programado"] == 1200.0
        assert len(payload["bimestres"]) == 6
        segundo = payload["bimestres"][1]
        assert segundo["bimestre"] == "Marzo-Abril"
        assert segundo["descripcion"] == "1 taller\n1 charla"
        assert segundo["descripcion_cantidad_total"] == 2.0
        assert payload["bimestres"][5]["descripcion_cantidad_total"] == 0.0

    def test_new_activity_has_no_id(self, make_actividad):
        payload = build_save_payload(make_actividad())
        assert "id" not in payload
        assert "fecha_inicio_planeada" not in payload


class TestLoadingHelpers:
    @pytest.mark.parametrize(
        "descriptor, esperado",
        [
            ("enero-febrero", 1),
            ("Marzo - Abril", 2),
            ("Bimestre 6", 6),
            ("  NOVIEMBRE-DICIEMBRE ", 6),
            ("", None),
            (None, None),
            ("Trimestre 1", None),
        ],
    )
    def test_resolve_bimestre_index(self, descriptor, esperado):
        assert resolve_bimestre_index(descriptor) == esperado

    def test_normalize_bimestres(self):
        items = [
            {"bimestre": "Mayo-Junio", "presupuesto": "1.500", "detalle": "3 kits"},
            {"index": "1", "meta": 2},
            {"index": 9, "presupuesto": 10},
            None,
        ]
        resultado = normalize_bimestres(items)

        assert [b.index for b in resultado] == [1, 2, 3, 4, 5, 6]
        assert resultado[0].meta == 2.0
        assert resultado[2].presupuesto == 1500.0
        assert resultado[2].descripcion == "3 kits"
        assert resultado[5].presupuesto == 0.0
        assert resultado[5].descripcion == ""

    def test_empty_bimestres(self):
        vacios = empty_bimestres()
        assert len(vacios) == 6
        assert vacios[0].bimestre == "Enero-Febrero"
        assert all(b.presupuesto == 0 and b.meta == 0 and b.descripcion == "" for b in vacios)


class TestDraftSchema:
    def test_raw_inputs_are_parsed(self):
        actividad = ActividadBorrador.model_validate(
            {
                "presupuesto_programado": "$ 1.200",
                "meta_valor": "12 talleres en 2025",
                "fecha_inicio_planeada": "",
                "bimestres": [{"index": 1, "presupuesto": "1.234,56", "meta": "abc"}],
            }
        )
        assert actividad.presupuesto_programado == 1200.0
        assert actividad.meta_indicador_valor == 12.0
        assert actividad.fecha_inicio_planeada is None
        assert actividad.bimestres[0].presupuesto == 1234.56
        assert actividad.bimestres[0].meta == 0.0
        assert actividad.bimestres[0].bimestre == "Enero-Febrero"
