import pytest
from datetime import datetime
from decimal import Decimal

from rentauto.services.rental import pricing

START = datetime(2030, 1, 10, 10, 0)
END = datetime(2030, 1, 12, 10, 0)


class TestMoney:

    def test_rounds_half_up_to_cents(self):
        assert pricing.money("10.005") == Decimal("10.01")
        assert pricing.money(Decimal("10.004")) == Decimal("10.00")

    def test_accepts_floats_and_none(self):
        assert pricing.money(0.1) == Decimal("0.10")
        assert pricing.money(None) == Decimal("0.00")


class TestRentalDays:

    def test_whole_days(self):
        assert pricing.rental_days(START, END) == 2

    def test_partial_day_rounds_up(self):
        assert pricing.rental_days(START, datetime(2030, 1, 12, 10, 1)) == 3
        assert pricing.rental_days(START, datetime(2030, 1, 10, 11, 0)) == 1

    @pytest.mark.parametrize("end", [START, datetime(2030, 1, 9, 10, 0)])
    def test_end_not_after_start(self, end):
        with pytest.raises(ValueError):
            pricing.rental_days(START, end)


class TestLateReturn:

    def test_on_time(self):
        assert pricing.late_days(END, END) == 0
        assert pricing.late_days(END, datetime(2030, 1, 11, 9, 0)) == 0

    def test_late_hours_count_as_day(self):
        assert pricing.late_days(END, datetime(2030, 1, 12, 20, 0)) == 1
        assert pricing.late_days(END, datetime(2030, 1, 14, 10, 30)) == 3

    def test_late_fee(self):
        assert pricing.late_fee(1, "100.00") == Decimal("150.00")
        assert pricing.late_fee(2, Decimal("33.33"), multiplier=Decimal("2")) == Decimal("133.32")
        assert pricing.late_fee(0, "100.00") == Decimal("0.00")


class TestCharges:

    def test_basic_booking(self):
        charges = pricing.calculate_charges("100.00", 2)
        assert charges.subtotal == Decimal("200.00")
        assert charges.tax_amount == Decimal("38.00")
        assert charges.additional_charges == Decimal("0.00")
        assert charges.discount_amount == Decimal("0.00")
        assert charges.total_amount == Decimal("238.00")

    def test_extras_and_discount(self):
        charges = pricing.calculate_charges("100.00", 2, additional_charges="50", discount_amount="20")
        assert charges.total_amount == Decimal("268.00")

    def test_tax_rate_override(self):
        charges = pricing.calculate_charges("45.50", 3, tax_rate=Decimal("0"))
        assert charges.subtotal == Decimal("136.50")
        assert charges.total_amount == Decimal("136.50")

    def test_total_amount(self):
        assert pricing.total_amount("200", "38", "150", "0") == Decimal("388.00")


class TestPeriodsOverlap:

    def test_disjoint(self):
        assert not pricing.periods_overlap(START, END, datetime(2030, 1, 13), datetime(2030, 1, 15))

    def test_partial_overlap(self):
        assert pricing.periods_overlap(START, END, datetime(2030, 1, 11), datetime(2030, 1, 15))
        assert pricing.periods_overlap(START, END, datetime(2030, 1, 5), datetime(2030, 1, 11))

    def test_contained_and_spanning(self):
        assert pricing.periods_overlap(START, END, datetime(2030, 1, 11), datetime(2030, 1, 11, 12))
        assert pricing.periods_overlap(START, END, datetime(2030, 1, 1), datetime(2030, 1, 31))

    def test_touching_boundary_conflicts(self):
        assert pricing.periods_overlap(START, END, END, datetime(2030, 1, 14))
        assert pricing.periods_overlap(START, END, datetime(2030, 1, 8), START)
