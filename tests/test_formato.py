import math

import pytest

from planificacion.utils.formato import (
    formatear_monto,
    formatear_numero,
    redondear,
    safe_pct,
    semaforo_saldo,
)


@pytest.mark.parametrize(
    "valor, esperado",
    [
        (1234.5, "1.234,5"),
        (50, "50"),
        (50.0, "50"),
        (1234567.891, "1.234.567,89"),
        (-50, "-50"),
        (-0.001, "0"),
        (None, "0"),
    ],
)
def test_formatear_numero(valor, esperado):
    assert formatear_numero(valor) == esperado


def test_formatear_numero_min_decimales():
    assert formatear_numero(50, min_decimales=2) == "50,00"


def test_formatear_monto():
    assert formatear_monto(50) == "$ 50"
    assert formatear_monto(-50) == "-$ 50"
    assert formatear_monto(1500000, "USD") == "US$ 1.500.000"
    assert formatear_monto(10, "xyz") == "XYZ 10"


def test_redondear_normalizes_negative_zero():
    resultado = redondear(-0.001)
    assert resultado == 0.0
    assert math.copysign(1, resultado) == 1


def test_safe_pct():
    assert safe_pct(900, 1000) == 90.0
    assert safe_pct(1200, 1000) == 120.0
    assert safe_pct(5, 0) == 0.0


def test_semaforo_saldo():
    assert semaforo_saldo(-5) == "ROJO"
    assert semaforo_saldo(0) == "AMARILLO"
    assert semaforo_saldo(0.005) == "AMARILLO"
    assert semaforo_saldo(10) == "VERDE"
