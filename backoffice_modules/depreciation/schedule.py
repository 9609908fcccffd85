"""
Pure schedule evaluation functions.

Contract:
    ``is_schedule_due``, ``next_execution_date`` and ``should_depreciate``
    are PURE -- no I/O, no clock.  The caller passes ``as_of``.

Architecture: backoffice_modules/depreciation.  ZERO I/O.

Rules:
    - MONTHLY schedules run every month, QUARTERLY in March, June,
      September and December, ANNUALLY in December.
    - The execution day is clamped to the month length (31 runs on the
      30th in April and the 28th/29th in February).
    - A schedule runs at most once per calendar month.
"""

from __future__ import annotations

from datetime import date

from backoffice_modules.assets.helpers import add_months, clamp_day, months_between
from backoffice_modules.depreciation.models import ScheduleType

_RUN_MONTHS = {
    ScheduleType.MONTHLY: frozenset(range(1, 13)),
    ScheduleType.QUARTERLY: frozenset({3, 6, 9, 12}),
    ScheduleType.ANNUALLY: frozenset({12}),
}


def is_run_month(schedule_type: ScheduleType, month: int) -> bool:
    return month in _RUN_MONTHS[schedule_type]


def execution_date_in_month(
    schedule_type: ScheduleType,
    execution_day: int,
    year: int,
    month: int,
) -> date | None:
    """The run date in ``year``/``month``, or None if the schedule skips that month."""
    if not is_run_month(schedule_type, month):
        return None
    return clamp_day(year, month, execution_day)


def is_schedule_due(
    schedule_type: ScheduleType,
    execution_day: int,
    as_of: date,
    last_executed_on: date | None = None,
    is_active: bool = True,
) -> bool:
    """True if the schedule should run on ``as_of``.

    Due when active, ``as_of`` is on or after this month's run date, and the
    schedule has not already run this month.
    """
    if not is_active:
        return False
    run_date = execution_date_in_month(schedule_type, execution_day, as_of.year, as_of.month)
    if run_date is None or as_of < run_date:
        return False
    if last_executed_on is not None and (
        last_executed_on.year, last_executed_on.month
    ) == (as_of.year, as_of.month):
        return False
    return True


def next_execution_date(
    schedule_type: ScheduleType,
    execution_day: int,
    after: date,
) -> date:
    """First run date strictly after ``after``."""
    cursor = after.replace(day=1)
    for _ in range(25):
        run_date = execution_date_in_month(
            schedule_type, execution_day, cursor.year, cursor.month,
        )
        if run_date is not None and run_date > after:
            return run_date
        cursor = add_months(cursor, 1)
    raise ValueError(f"No execution date found for {schedule_type.value} after {after}")


def should_depreciate(
    as_of: date,
    period_months: int,
    start_date: date | None,
    last_depreciation_date: date | None,
    is_fully_depreciated: bool,
    next_depreciation_date: date | None = None,
) -> tuple[bool, str]:
    """Whether an asset is due for a period of ``period_months`` on ``as_of``.

    Monthly and quarterly periods count calendar months since the last
    depreciation, annual periods count calendar years.  An asset whose
    ``next_depreciation_date`` has been reached is due regardless.
    Returns ``(should, reason)``.
    """
    if start_date is None:
        return False, "Depreciation start date not set"
    if start_date > as_of:
        return False, "Depreciation start date not reached"
    if is_fully_depreciated:
        return False, "Asset is fully depreciated"
    if last_depreciation_date is None:
        return True, "First depreciation calculation"
    if period_months >= 12:
        years = as_of.year - last_depreciation_date.year
        if years >= 1:
            return True, f"{years} year(s) since last calculation"
        elapsed_text = "less than a year"
    else:
        elapsed = months_between(last_depreciation_date, as_of)
        if elapsed >= period_months:
            return True, f"{elapsed} month(s) since last calculation"
        elapsed_text = f"only {elapsed} month(s)"
    if next_depreciation_date is not None and as_of >= next_depreciation_date:
        return True, "Next depreciation date reached"
    return False, f"Not due: {elapsed_text} since last calculation"
