"""Pure leave-balance rules.  ZERO I/O."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable

ZERO = Decimal("0")


def name_matches(leave_type_name: str, keywords: Iterable[str]) -> bool:
    """True if the leave type name contains any keyword (case-insensitive)."""
    upper = leave_type_name.upper()
    return any(keyword.upper() in upper for keyword in keywords)


def remaining_days(allocated: Decimal, used: Decimal) -> Decimal:
    return (allocated or ZERO) - (used or ZERO)


def carry_over(remaining: Decimal, limit: Decimal) -> tuple[Decimal, Decimal]:
    """
    ``(carry_over_days, excess_days)`` for ``remaining`` days.

    All remaining days carry over; the excess above ``limit`` is reported so
    that it can be acknowledged.
    """
    if remaining <= 0:
        return ZERO, ZERO
    return remaining, max(ZERO, remaining - limit)


def replenished_allocation(
    default_days: Decimal, carry_over_days: Decimal = ZERO,
) -> Decimal:
    return (default_days or ZERO) + (carry_over_days or ZERO)


def leave_days(start: date, end: date, session: str) -> Decimal:
    """Inclusive day count of a request; half-day sessions count 0.5 per day."""
    days = Decimal((end - start).days + 1)
    if session == "FULL_DAY":
        return days
    return days * Decimal("0.5")
