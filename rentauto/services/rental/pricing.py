"""
Rental charge arithmetic and the booking overlap test.

Everything here is pure so it can be used both by the rental service and
by the availability search without touching the database.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from rentauto.core.config import settings

CENT = Decimal("0.01")
ONE_DAY = timedelta(days=1)


def money(value) -> Decimal:
    """Quantize any numeric value to cents"""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _ceil_days(delta: timedelta) -> int:
    return math.ceil(delta / ONE_DAY)


def rental_days(start_date: datetime, end_date: datetime) -> int:
    """Billable days between pickup and scheduled return, partial days round up"""
    if end_date <= start_date:
        raise ValueError("end_date must be after start_date")
    return _ceil_days(end_date - start_date)


def late_days(end_date: datetime, returned_at: datetime) -> int:
    if returned_at <= end_date:
        return 0
    return _ceil_days(returned_at - end_date)


def late_fee(days_late: int, daily_rate, multiplier: Optional[Decimal] = None) -> Decimal:
    multiplier = settings.LATE_FEE_MULTIPLIER if multiplier is None else multiplier
    return money(Decimal(days_late) * money(daily_rate) * multiplier)


@dataclass(frozen=True)
class RentalCharges:
    daily_rate: Decimal
    total_days: int
    subtotal: Decimal
    tax_amount: Decimal
    additional_charges: Decimal
    discount_amount: Decimal
    total_amount: Decimal


def calculate_charges(
    daily_rate,
    total_days: int,
    additional_charges=None,
    discount_amount=None,
    tax_rate: Optional[Decimal] = None,
) -> RentalCharges:
    """total = subtotal + tax + additional - discount"""
    tax_rate = settings.TAX_RATE if tax_rate is None else tax_rate
    rate = money(daily_rate)
    subtotal = money(rate * total_days)
    tax_amount = money(subtotal * tax_rate)
    additional = money(additional_charges)
    discount = money(discount_amount)
    return RentalCharges(
        daily_rate=rate,
        total_days=total_days,
        subtotal=subtotal,
        tax_amount=tax_amount,
        additional_charges=additional,
        discount_amount=discount,
        total_amount=total_amount(subtotal, tax_amount, additional, discount),
    )


def total_amount(subtotal, tax_amount, additional_charges, discount_amount) -> Decimal:
    return money(money(subtotal) + money(tax_amount) + money(additional_charges) - money(discount_amount))


def periods_overlap(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime,
) -> bool:
    """
    Inclusive overlap: B starts inside A, ends inside A, or spans A entirely.
    Touching boundaries count as a conflict.
    """
    starts_inside = start_a <= start_b <= end_a
    ends_inside = start_a <= end_b <= end_a
    spans = start_b <= start_a and end_b >= end_a
    return starts_inside or ends_inside or spans
