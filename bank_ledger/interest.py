"""
Interest Calculation Module

Simple (non-compounding) interest accrued on a savings balance between
settlements, using actual elapsed time over a fixed day-count year.
"""

from datetime import datetime
from decimal import Decimal

from .currency import Currency, quantize


SECONDS_PER_DAY = Decimal('86400')
ZERO = Decimal('0')


def elapsed_days(since: datetime, as_of: datetime) -> Decimal:
    """Fractional days between two instants, never negative"""
    seconds = Decimal(str((as_of - since).total_seconds()))
    if seconds <= ZERO:
        return ZERO
    return seconds / SECONDS_PER_DAY


def calculate_accrued_interest(
    principal: Decimal,
    annual_rate: Decimal,
    since: datetime,
    as_of: datetime,
    currency: Currency,
    days_per_year: int = 365
) -> Decimal:
    """
    Interest accrued on principal from since to as_of

    accrued = principal * annual_rate * (elapsed_days / days_per_year),
    rounded half-up to the currency precision.

    Args:
        principal: Balance the interest is earned on
        annual_rate: Annual rate as a fraction (0.05 for 5%)
        since: Last time interest was settled
        as_of: Instant the accrual is measured at
        currency: Currency whose precision the result is rounded to
        days_per_year: Day-count basis

    Returns:
        Accrued interest, zero if nothing accrued
    """
    if principal <= ZERO or annual_rate <= ZERO:
        return quantize(ZERO, currency)

    days = elapsed_days(since, as_of)
    if days == ZERO:
        return quantize(ZERO, currency)

    accrued = principal * annual_rate * days / Decimal(days_per_year)
    return quantize(accrued, currency)
