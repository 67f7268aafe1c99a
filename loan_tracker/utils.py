"""Utility functions for the loan tracker.

This module provides helpers for parsing user input into Python data types and
for handling dates, including adding months and counting the whole months
elapsed between two dates. It uses Python's ``datetime`` and ``calendar``
modules to calculate month offsets.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal, InvalidOperation


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` or ``YYYY-MM`` string into a ``date``.

    The year-month form is normalized to the first day of the month.

    Raises
    ------
    ValueError
        If the string is not a valid date.
    """
    try:
        parts = value.strip().split("-")
        if len(parts) not in (2, 3):
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        day = int(parts[2]) if len(parts) == 3 else 1
        return date(year, month, day)
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


def months_elapsed(start: date, as_of: date) -> int:
    """Return the number of whole calendar months from ``start`` to ``as_of``.

    A month only counts once its day of month has been reached, so
    2024-01-15 to 2024-03-14 is one month and to 2024-03-15 is two. Dates
    before ``start`` give zero.
    """
    months = (as_of.year - start.year) * 12 + (as_of.month - start.month)
    if months > 0 and as_of < add_months(start, months):
        months -= 1
    return max(months, 0)


def to_decimal(value):
    """Return ``value`` as a ``Decimal``; ints and floats go through ``str``.

    Raises ``ValueError`` for NaN and infinite values.
    """
    if value is None:
        return value
    if isinstance(value, str):
        return decimal_from_str(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = Decimal(str(value))
    if isinstance(value, Decimal) and not value.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return value


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = str(value).strip().replace(",", "")
        result = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result
