"""Tests for order total recomputation."""

from dataclasses import dataclass
from decimal import Decimal

import pytest

from app.core.exceptions import ValidationError
from app.services.order_totals import money, recompute


@dataclass
class Line:
    unit_price: Decimal
    quantity: int


RATE = Decimal("0.025")


class TestRecompute:
    def test_two_items_at_two_and_a_half_percent_each(self):
        totals = recompute([Line(Decimal("100"), 2)], Decimal("0"), rate_primary=RATE, rate_secondary=RATE)

        assert totals.subtotal == Decimal("200.00")
        assert totals.tax_primary == Decimal("5.00")
        assert totals.tax_secondary == Decimal("5.00")
        assert totals.grand_total == Decimal("210.00")

    def test_idempotent(self):
        lines = [Line(Decimal("99.99"), 3), Line(Decimal("12.50"), 1)]
        first = recompute(lines, Decimal("10"), rate_primary=RATE, rate_secondary=RATE)
        second = recompute(lines, Decimal("10"), rate_primary=RATE, rate_secondary=RATE)
        assert first == second

    def test_taxes_apply_after_discount(self):
        totals = recompute([Line(Decimal("100"), 2)], Decimal("40"), rate_primary=RATE, rate_secondary=RATE)

        assert totals.discount == Decimal("40.00")
        assert totals.tax_primary == Decimal("4.00")
        assert totals.grand_total == Decimal("168.00")

    def test_rates_are_independent(self):
        totals = recompute(
            [Line(Decimal("100"), 1)], rate_primary=Decimal("0.09"), rate_secondary=Decimal("0")
        )
        assert totals.tax_primary == Decimal("9.00")
        assert totals.tax_secondary == Decimal("0.00")
        assert totals.grand_total == Decimal("109.00")

    def test_half_cent_rounds_up(self):
        # 2.5% of 10.10 is 0.2525
        totals = recompute([Line(Decimal("10.10"), 1)], rate_primary=RATE, rate_secondary=RATE)
        assert totals.tax_primary == Decimal("0.25")
        # 2.5% of 10.30 is 0.2575
        totals = recompute([Line(Decimal("10.30"), 1)], rate_primary=RATE, rate_secondary=RATE)
        assert totals.tax_primary == Decimal("0.26")

    def test_discount_above_subtotal_is_clamped(self):
        totals = recompute(
            [Line(Decimal("50"), 1)], Decimal("80"),
            rate_primary=RATE, rate_secondary=RATE, discount_overflow="clamp",
        )
        assert totals.discount == Decimal("50.00")
        assert totals.grand_total == Decimal("0.00")

    def test_discount_above_subtotal_can_be_rejected(self):
        with pytest.raises(ValidationError):
            recompute(
                [Line(Decimal("50"), 1)], Decimal("80"),
                rate_primary=RATE, rate_secondary=RATE, discount_overflow="reject",
            )

    def test_negative_discount_rejected(self):
        with pytest.raises(ValidationError):
            recompute([Line(Decimal("50"), 1)], Decimal("-1"), rate_primary=RATE, rate_secondary=RATE)

    def test_delivery_charges_added_to_grand_total(self):
        totals = recompute(
            [Line(Decimal("100"), 1)], rate_primary=RATE, rate_secondary=RATE, delivery_charges=Decimal("30")
        )
        assert totals.delivery_charges == Decimal("30.00")
        assert totals.grand_total == Decimal("135.00")

    def test_default_rates_come_from_settings(self):
        totals = recompute([Line(Decimal("100"), 2)])
        assert totals.grand_total == Decimal("210.00")

    def test_money_quantizes(self):
        assert money(1) == Decimal("1.00")
        assert money("2.345") == Decimal("2.35")
