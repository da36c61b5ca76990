# app/domain/money.py
"""
Integer minor-unit money helpers.

Amounts are whole paise (or cents). Percentages go through Decimal and are
rounded half-up to a whole minor unit; money is never divided by money.
"""
from decimal import Decimal, ROUND_HALF_UP


def to_rate(rate) -> Decimal:
    return rate if isinstance(rate, Decimal) else Decimal(str(rate))


def percent_of(amount: int, rate) -> int:
    value = Decimal(amount) * to_rate(rate) / Decimal(100)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def clamp_zero(amount: int) -> int:
    return amount if amount > 0 else 0
