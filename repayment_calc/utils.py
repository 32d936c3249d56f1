"""Utility functions for the repayment calculator.

This module provides helpers for parsing user input into Python data types,
for date arithmetic (adding months to a disbursement date) and for the
presentation-time rounding of currency values. It also generates the
human-readable reference numbers given to new loan drafts.
"""

from __future__ import annotations

import calendar
import secrets
import time
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, getcontext

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

CENT = Decimal("0.01")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Parameters
    ----------
    ym: str
        A string in the form ``"YYYY-MM"``. The day component, if present,
        will be ignored.

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.split("-")
        if len(parts) < 2:
            raise ValueError
        return date(int(parts[0]), int(parts[1]), 1)
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string; a bare ``YYYY-MM`` means the first day."""
    try:
        parts = value.strip().split("-")
        if len(parts) == 2:
            return parse_year_month(value.strip())
        if len(parts) != 3:
            raise ValueError
        return date(int(parts[0]), int(parts[1]), int(parts[2]))
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except ArithmeticError as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def round_currency(value: Decimal) -> Decimal:
    """Round a monetary value to cents, half up. Only used for display."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_loan_number() -> str:
    """Return a new loan reference such as ``LN-LXJ3K2A1-9F0QZ``.

    The middle part is the current time in milliseconds and the last part five
    random characters, both in base 36.
    """
    timestamp = _to_base36(int(time.time() * 1000))
    random_part = "".join(secrets.choice(_BASE36) for _ in range(5))
    return f"LN-{timestamp}-{random_part}".upper()
