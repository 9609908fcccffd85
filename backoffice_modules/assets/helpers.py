"""
Asset Helpers (``backoffice_modules.assets.helpers``).

Responsibility
--------------
Pure calculation functions for monthly depreciation (straight-line,
declining-balance, sum-of-years'-digits, units-of-production), period
calculation with the salvage floor, full remaining-life projections,
calendar helpers for the end-of-month window, and disposal gain/loss.

Architecture position
---------------------
**Modules layer** -- pure helper functions.  No I/O, no session, no
clock.  Called by ``AssetService`` and ``DepreciationService``.

Invariants enforced
-------------------
* All money is ``Decimal`` -- NEVER ``float``.
* Monthly amounts are quantized to 0.01.
* A period never depreciates below salvage value and never produces a
  negative amount.
* An asset is fully depreciated exactly when its book value is at or
  below salvage value.

Failure modes
-------------
* Zero or negative useful life  -> monthly amount ``Decimal("0")``.
* Zero expected units  -> per-unit rate ``Decimal("0")``.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from backoffice_modules.assets.models import DepreciationMethod

ZERO = Decimal("0")
CENT = Decimal("0.01")


def _q(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# Calendar
# =============================================================================


def end_of_month(d: date) -> date:
    return date(d.year, d.month, calendar.monthrange(d.year, d.month)[1])


def is_last_day_of_month(d: date) -> bool:
    return d == end_of_month(d)


def add_months(d: date, months: int) -> date:
    """Shift ``d`` by whole months, clamping the day to the target month's end."""
    index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def first_of_month(d: date) -> date:
    return d.replace(day=1)


def first_of_next_month(d: date) -> date:
    return first_of_month(add_months(first_of_month(d), 1))


def months_between(start: date, end: date) -> int:
    """Whole calendar months from ``start``'s month to ``end``'s month."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def is_end_of_month_window(d: date, window_days: tuple[int, ...] = (30, 31)) -> bool:
    """
    True on the days batch depreciation may run.

    The last day of the month always qualifies (28th/29th in February).
    """
    return d.day in window_days or is_last_day_of_month(d)


def clamp_day(year: int, month: int, day: int) -> date:
    """``date(year, month, day)`` with ``day`` clamped to the month length."""
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


# =============================================================================
# Monthly formulas
# =============================================================================


def straight_line_monthly(
    cost: Decimal,
    salvage_value: Decimal,
    useful_life_years: int,
    useful_life_months: int = 0,
) -> Decimal:
    """
    Monthly straight-line depreciation.

    Postconditions:
        - (cost - salvage) / (years * 12 + months), quantized to 0.01.
        - ``Decimal("0")`` when the total life is not positive.
    """
    total_months = useful_life_years * 12 + useful_life_months
    if total_months <= 0:
        return ZERO
    return _q((cost - salvage_value) / Decimal(total_months))


def declining_balance_monthly(book_value: Decimal, rate_percent: Decimal) -> Decimal:
    """Monthly declining-balance depreciation: book value * rate / 100 / 12."""
    if rate_percent <= ZERO or book_value <= ZERO:
        return ZERO
    return _q(book_value * rate_percent / Decimal("100") / Decimal("12"))


def sum_of_years_digits_monthly(
    cost: Decimal,
    salvage_value: Decimal,
    useful_life_years: int,
    year_number: int = 1,
) -> Decimal:
    """
    Monthly sum-of-years'-digits depreciation for depreciation year ``year_number``.

    Annual amount = (cost - salvage) * remaining_years / (n(n+1)/2); the
    monthly amount is one twelfth of it.  Returns ``Decimal("0")`` past the
    end of the useful life.
    """
    if useful_life_years <= 0 or year_number < 1 or year_number > useful_life_years:
        return ZERO
    sum_digits = Decimal(useful_life_years * (useful_life_years + 1) // 2)
    remaining_years = Decimal(useful_life_years - year_number + 1)
    annual = (cost - salvage_value) * remaining_years / sum_digits
    return _q(annual / Decimal("12"))


def depreciation_per_unit(
    cost: Decimal,
    salvage_value: Decimal,
    total_expected_units: Decimal | int | None,
) -> Decimal:
    """Units-of-production rate, or zero without an expected unit count."""
    if not total_expected_units or Decimal(total_expected_units) <= ZERO:
        return ZERO
    return (cost - salvage_value) / Decimal(total_expected_units)


def units_of_production_amount(units_used: Decimal | int, per_unit: Decimal) -> Decimal:
    if per_unit <= ZERO:
        return ZERO
    return _q(Decimal(units_used) * per_unit)


def syd_life_years(useful_life_years: int, useful_life_months: int = 0) -> int:
    """Whole depreciation years used by sum-of-years'-digits (partial year rounds up)."""
    total_months = useful_life_years * 12 + useful_life_months
    return -(-total_months // 12) if total_months > 0 else 0


def disposal_gain_loss(
    disposal_value: Decimal,
    disposal_cost: Decimal,
    book_value: Decimal,
) -> tuple[Decimal, Decimal]:
    """
    Net proceeds and gain (positive) or loss (negative) on disposal.

    net = value - cost; gain_loss = net - book value.
    """
    net = disposal_value - disposal_cost
    return net, net - book_value


# =============================================================================
# Terms and period calculation
# =============================================================================


@dataclass(frozen=True)
class DepreciationTerms:
    """Depreciation setup of one asset."""

    method: DepreciationMethod
    cost: Decimal
    salvage_value: Decimal
    useful_life_years: int
    useful_life_months: int
    start_date: date
    depreciation_rate: Decimal | None = None
    monthly_depreciation: Decimal | None = None
    total_expected_units: Decimal | None = None

    @property
    def total_life_months(self) -> int:
        return self.useful_life_years * 12 + self.useful_life_months

    @property
    def per_unit(self) -> Decimal:
        return depreciation_per_unit(self.cost, self.salvage_value, self.total_expected_units)


@dataclass(frozen=True)
class PeriodDepreciation:
    """Result of depreciating one asset for one period."""

    period_start: date
    period_end: date
    book_value_start: Decimal
    depreciation_amount: Decimal
    book_value_end: Decimal
    accumulated_depreciation: Decimal
    is_fully_depreciated: bool
    next_depreciation_date: date | None
    months: int = 1


@dataclass(frozen=True)
class ScheduleLine:
    """One month of a projected depreciation schedule."""

    period_number: int
    period_start: date
    period_end: date
    depreciation_amount: Decimal
    accumulated_depreciation: Decimal
    book_value: Decimal


def initial_monthly_depreciation(terms: DepreciationTerms) -> Decimal:
    """
    Monthly amount stored on the asset at creation.

    Straight-line uses the full life in months; declining-balance applies
    the annual rate to the purchase price; sum-of-years'-digits uses the
    first year's share; units-of-production has no fixed monthly amount.
    """
    if terms.method == DepreciationMethod.STRAIGHT_LINE:
        return straight_line_monthly(
            terms.cost, terms.salvage_value,
            terms.useful_life_years, terms.useful_life_months,
        )
    if terms.method == DepreciationMethod.DECLINING_BALANCE:
        return declining_balance_monthly(terms.cost, terms.depreciation_rate or ZERO)
    if terms.method == DepreciationMethod.SUM_OF_YEARS_DIGITS:
        return sum_of_years_digits_monthly(
            terms.cost, terms.salvage_value,
            syd_life_years(terms.useful_life_years, terms.useful_life_months), 1,
        )
    return ZERO


def depreciation_for_month(
    terms: DepreciationTerms,
    book_value: Decimal,
    month_number: int,
) -> Decimal:
    """
    Unclamped depreciation for the ``month_number``-th month (1-based) of life.

    Straight-line honours a stored ``monthly_depreciation`` override.
    """
    if terms.method == DepreciationMethod.STRAIGHT_LINE:
        if month_number > terms.total_life_months > 0 and terms.monthly_depreciation is None:
            return ZERO
        if terms.monthly_depreciation is not None:
            return terms.monthly_depreciation
        return straight_line_monthly(
            terms.cost, terms.salvage_value,
            terms.useful_life_years, terms.useful_life_months,
        )
    if terms.method == DepreciationMethod.DECLINING_BALANCE:
        return declining_balance_monthly(book_value, terms.depreciation_rate or ZERO)
    if terms.method == DepreciationMethod.SUM_OF_YEARS_DIGITS:
        year_number = (month_number - 1) // 12 + 1
        return sum_of_years_digits_monthly(
            terms.cost, terms.salvage_value,
            syd_life_years(terms.useful_life_years, terms.useful_life_months),
            year_number,
        )
    return terms.monthly_depreciation or ZERO


def _clamp(amount: Decimal, book_value: Decimal, salvage_value: Decimal) -> Decimal:
    return max(ZERO, min(amount, book_value - salvage_value))


def calculate_period_depreciation(
    terms: DepreciationTerms,
    book_value: Decimal,
    accumulated_depreciation: Decimal,
    calculation_date: date,
    last_depreciation_date: date | None = None,
    period_months: int = 1,
    units_used: Decimal | None = None,
) -> PeriodDepreciation:
    """
    Depreciate one asset for one period ending in ``calculation_date``'s month.

    Preconditions:
        - ``period_months`` is 1 (monthly), 3 (quarterly) or 12 (annual).
    Postconditions:
        - period_start is the 1st of the month after the last depreciation
          (or after the start date when never depreciated).  A calculation
          month at or before the last depreciation raises ValueError.
        - period_end is the last day of the period's final month.
        - The amount is capped at book value - salvage and floored at 0.
        - next_depreciation_date is the 1st of the month following the
          period, or None once fully depreciated.
        - Units-of-production with ``units_used`` uses units x rate for the
          whole period; without it, the stored monthly amount applies.
    """
    anchor = last_depreciation_date or terms.start_date
    period_start = first_of_next_month(anchor)
    period_end = end_of_month(add_months(calculation_date, period_months - 1))
    if last_depreciation_date is not None and (
        first_of_month(last_depreciation_date) >= first_of_month(calculation_date)
    ):
        raise ValueError(
            f"{calculation_date:%Y-%m} is already covered by the depreciation "
            f"of {last_depreciation_date}"
        )
    if period_start > period_end:
        period_start = first_of_month(calculation_date)

    salvage = terms.salvage_value
    remaining = book_value
    total = ZERO

    if terms.method == DepreciationMethod.UNITS_OF_PRODUCTION and units_used is not None:
        total = _clamp(units_of_production_amount(units_used, terms.per_unit), remaining, salvage)
        remaining -= total
    else:
        first_month = max(1, months_between(terms.start_date, period_start))
        for i in range(period_months):
            amount = _clamp(
                depreciation_for_month(terms, remaining, first_month + i),
                remaining, salvage,
            )
            total += amount
            remaining -= amount

    fully_depreciated = remaining <= salvage
    next_date = None if fully_depreciated else first_of_month(
        add_months(calculation_date, period_months)
    )

    return PeriodDepreciation(
        period_start=period_start,
        period_end=period_end,
        book_value_start=book_value,
        depreciation_amount=total,
        book_value_end=remaining,
        accumulated_depreciation=accumulated_depreciation + total,
        is_fully_depreciated=fully_depreciated,
        next_depreciation_date=next_date,
        months=period_months,
    )


def build_depreciation_schedule(
    terms: DepreciationTerms,
    book_value: Decimal | None = None,
    accumulated_depreciation: Decimal = ZERO,
    first_period_start: date | None = None,
    max_periods: int = 600,
) -> tuple[ScheduleLine, ...]:
    """
    Project the remaining monthly schedule until salvage value is reached.

    Starts from ``book_value`` (default: cost) in the month
    ``first_period_start`` (default: the month after the start date) and
    stops when the book value hits salvage, the monthly amount rounds to
    zero, or ``max_periods`` lines have been produced.
    """
    remaining = terms.cost if book_value is None else book_value
    accumulated = accumulated_depreciation
    start = first_period_start or first_of_next_month(terms.start_date)
    month_number = max(1, months_between(terms.start_date, start))

    lines: list[ScheduleLine] = []
    period_start = first_of_month(start)
    while remaining > terms.salvage_value and len(lines) < max_periods:
        if terms.method == DepreciationMethod.UNITS_OF_PRODUCTION:
            break
        amount = _clamp(
            depreciation_for_month(terms, remaining, month_number),
            remaining, terms.salvage_value,
        )
        if amount <= ZERO:
            break
        remaining -= amount
        accumulated += amount
        lines.append(ScheduleLine(
            period_number=len(lines) + 1,
            period_start=period_start,
            period_end=end_of_month(period_start),
            depreciation_amount=amount,
            accumulated_depreciation=accumulated,
            book_value=remaining,
        ))
        period_start = first_of_next_month(period_start)
        month_number += 1

    return tuple(lines)
