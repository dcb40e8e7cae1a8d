"""Utility functions for the loan payoff engine.

This module provides helpers for parsing user input into Python data types and
for handling dates, including adding whole or fractional months to a
``datetime.date``. Money values are kept as ``Decimal`` and rounded to the cent
with round-half-up, the way the amortization tables display them.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Context, Decimal, ROUND_HALF_UP, getcontext, InvalidOperation
from fractions import Fraction
import calendar
from typing import Union

from .exceptions import InvalidInputError

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM`` or ``YYYY-MM-DD`` string into a ``date``.

    A bare year-month is normalized to the first day of that month.

    Raises
    ------
    InvalidInputError
        If the string is not a valid calendar date.
    """
    try:
        parts = value.strip().split("-")
        if len(parts) not in (2, 3):
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        day = int(parts[2]) if len(parts) == 3 else 1
        return date(year, month, day)
    except (AttributeError, ValueError) as exc:
        raise InvalidInputError(f"Invalid date string: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def add_fractional_months(dt: date, months: Union[Fraction, int]) -> date:
    """Return ``dt`` advanced by a possibly fractional number of months.

    The whole part is applied with :func:`add_months`. The remainder is
    applied as the same fraction of the days between that date and one
    month later, truncated to whole days, so a weekly step of 3/13 month
    from January 1st lands on January 8th.
    """
    months = Fraction(months)
    whole = months.numerator // months.denominator
    anchor = add_months(dt, whole)
    remainder = months - whole
    if not remainder:
        return anchor
    span = (add_months(dt, whole + 1) - anchor).days
    return anchor + timedelta(days=int(remainder * span))


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``InvalidInputError`` if conversion fails.
    """
    try:
        cleaned = value.replace(",", "").strip()
        result = Decimal(cleaned)
    except (AttributeError, InvalidOperation) as exc:
        raise InvalidInputError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise InvalidInputError(f"Invalid numeric value: {value}")
    return result


def to_decimal(value: Number) -> Decimal:
    """Coerce ints, floats and numeric strings to ``Decimal``.

    Floats go through ``str`` first so ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return decimal_from_str(str(value))
    return decimal_from_str(value)


def round_money(value: Decimal) -> Decimal:
    """Round a money amount to the cent, halves away from zero.

    The precision is widened for very large values (a balance that keeps
    growing for a hundred years) so quantizing never overflows the context.
    """
    digits = max(getcontext().prec, value.adjusted() + 3)
    return value.quantize(CENT, rounding=ROUND_HALF_UP, context=Context(prec=digits))
