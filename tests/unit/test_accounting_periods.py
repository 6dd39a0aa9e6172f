"""
Tests para los períodos de las herramientas de contabilidad.
"""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from src.services.tools.accounting import PeriodArgs, period_range


class TestPeriodRange:
    """Tests para el rango [desde, hasta) de cada período."""

    def test_dia(self):
        assert period_range("day", date(2024, 3, 15)) == (
            datetime(2024, 3, 15), datetime(2024, 3, 16),
        )

    def test_semana_empieza_el_lunes(self):
        # 2024-03-15 es viernes
        assert period_range("week", date(2024, 3, 15)) == (
            datetime(2024, 3, 11), datetime(2024, 3, 18),
        )

    def test_mes_actual(self):
        assert period_range("month", date(2024, 2, 10)) == (
            datetime(2024, 2, 1), datetime(2024, 3, 1),
        )

    def test_mes_pedido(self):
        assert period_range("month", date(2024, 2, 10), year=2023, month=12) == (
            datetime(2023, 12, 1), datetime(2024, 1, 1),
        )

    def test_anio(self):
        assert period_range("year", date(2024, 6, 1)) == (
            datetime(2024, 1, 1), datetime(2025, 1, 1),
        )

    def test_periodo_desconocido(self):
        with pytest.raises(ValueError):
            period_range("quarter", date(2024, 6, 1))


class TestPeriodArgs:
    """Tests para los argumentos de GetSalesForPeriod."""

    @pytest.mark.parametrize("raw,expected", [
        ("day", "day"),
        ("d", "day"),
        ("Week", "week"),
        ("mes", "month"),
        ("y", "year"),
    ])
    def test_normaliza_periodo(self, raw, expected):
        assert PeriodArgs(period=raw).period == expected

    def test_periodo_invalido(self):
        with pytest.raises(ValidationError):
            PeriodArgs(period="quarter")

    def test_mes_fuera_de_rango(self):
        with pytest.raises(ValidationError):
            PeriodArgs(period="month", month=13)
