"""Tests for Decimal money helpers."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

import pytest

from cartctl.domain.money import (
    apply_percent,
    format_percent,
    quantize,
    to_decimal,
    valid_percent,
)


class TestQuantize:
    def test_half_up(self) -> None:
        assert quantize(Decimal("4.505")) == Decimal("4.51")
        assert quantize(Decimal("4.504")) == Decimal("4.50")

    def test_pads_places(self) -> None:
        assert str(quantize(Decimal("8"))) == "8.00"

    def test_custom_places(self) -> None:
        assert quantize(Decimal("1.0005"), 3) == Decimal("1.001")


class TestPercent:
    def test_apply_percent(self) -> None:
        assert apply_percent(Decimal("10.00"), Decimal("20")) == Decimal("8")

    @pytest.mark.parametrize(
        ("pct", "expected"),
        [("20", "20"), ("20.00", "20"), ("12.50", "12.5"), ("1E+2", "100")],
    )
    def test_format_percent(self, pct: str, expected: str) -> None:
        assert format_percent(Decimal(pct)) == expected

    @pytest.mark.parametrize(
        ("pct", "expected"),
        [
            ("0.01", True),
            ("100", True),
            ("0", False),
            ("-50", False),
            ("100.5", False),
            ("NaN", False),
            ("Infinity", False),
        ],
    )
    def test_valid_percent(self, pct: str, expected: bool) -> None:
        assert valid_percent(Decimal(pct)) is expected


class TestToDecimal:
    def test_float_goes_through_str(self) -> None:
        assert to_decimal(0.1) == Decimal("0.1")

    def test_passthrough(self) -> None:
        d = Decimal("2.50")
        assert to_decimal(d) is d

    def test_invalid_string(self) -> None:
        with pytest.raises(InvalidOperation):
            to_decimal("abc")
