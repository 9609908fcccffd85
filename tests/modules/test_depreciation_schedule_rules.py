"""Tests for the pure schedule timing rules (backoffice_modules.depreciation.schedule)."""

from datetime import date

import pytest

from backoffice_modules.depreciation.models import ScheduleType
from backoffice_modules.depreciation.schedule import (
    execution_date_in_month,
    is_run_month,
    is_schedule_due,
    next_execution_date,
    should_depreciate,
)


class TestRunMonths:
    def test_period_months(self):
        assert ScheduleType.MONTHLY.period_months == 1
        assert ScheduleType.QUARTERLY.period_months == 3
        assert ScheduleType.ANNUALLY.period_months == 12

    @pytest.mark.parametrize("month", [3, 6, 9, 12])
    def test_quarter_end_months(self, month):
        assert is_run_month(ScheduleType.QUARTERLY, month)

    def test_quarterly_skips_other_months(self):
        assert not is_run_month(ScheduleType.QUARTERLY, 1)
        assert execution_date_in_month(ScheduleType.QUARTERLY, 30, 2024, 2) is None

    def test_annual_runs_in_december(self):
        assert is_run_month(ScheduleType.ANNUALLY, 12)
        assert not is_run_month(ScheduleType.ANNUALLY, 6)

    def test_execution_day_clamped(self):
        assert execution_date_in_month(ScheduleType.MONTHLY, 31, 2024, 2) == date(2024, 2, 29)
        assert execution_date_in_month(ScheduleType.MONTHLY, 31, 2024, 4) == date(2024, 4, 30)


class TestIsScheduleDue:
    def test_due_on_execution_day(self):
        assert is_schedule_due(ScheduleType.MONTHLY, 30, date(2024, 1, 30))

    def test_due_after_execution_day(self):
        assert is_schedule_due(ScheduleType.MONTHLY, 30, date(2024, 1, 31))

    def test_not_due_before_execution_day(self):
        assert not is_schedule_due(ScheduleType.MONTHLY, 30, date(2024, 1, 29))

    def test_once_per_month(self):
        assert not is_schedule_due(
            ScheduleType.MONTHLY, 30, date(2024, 1, 31), last_executed_on=date(2024, 1, 30),
        )
        assert is_schedule_due(
            ScheduleType.MONTHLY, 30, date(2024, 2, 29), last_executed_on=date(2024, 1, 30),
        )

    def test_inactive(self):
        assert not is_schedule_due(ScheduleType.MONTHLY, 1, date(2024, 1, 31), is_active=False)

    def test_february_clamp(self):
        assert is_schedule_due(ScheduleType.MONTHLY, 31, date(2023, 2, 28))

    def test_quarterly_off_month(self):
        assert not is_schedule_due(ScheduleType.QUARTERLY, 30, date(2024, 1, 31))
        assert is_schedule_due(ScheduleType.QUARTERLY, 30, date(2024, 3, 30))


class TestNextExecutionDate:
    def test_monthly(self):
        assert next_execution_date(ScheduleType.MONTHLY, 30, date(2024, 1, 30)) == date(2024, 2, 29)
        assert next_execution_date(ScheduleType.MONTHLY, 30, date(2024, 1, 29)) == date(2024, 1, 30)

    def test_quarterly(self):
        assert next_execution_date(ScheduleType.QUARTERLY, 30, date(2024, 1, 31)) == date(2024, 3, 30)

    def test_annual_rolls_over_year(self):
        assert next_execution_date(ScheduleType.ANNUALLY, 31, date(2024, 12, 31)) == date(2025, 12, 31)


class TestShouldDepreciate:
    def test_first_calculation(self):
        should, reason = should_depreciate(date(2024, 1, 31), 1, date(2024, 1, 15), None, False)
        assert should
        assert reason == "First depreciation calculation"

    def test_start_not_reached(self):
        should, _ = should_depreciate(date(2024, 1, 31), 1, date(2024, 3, 1), None, False)
        assert not should

    def test_no_start_date(self):
        should, reason = should_depreciate(date(2024, 1, 31), 1, None, None, False)
        assert not should
        assert "not set" in reason

    def test_fully_depreciated(self):
        should, _ = should_depreciate(date(2024, 1, 31), 1, date(2020, 1, 1), None, True)
        assert not should

    def test_quarterly_elapsed(self):
        start = date(2023, 1, 1)
        assert not should_depreciate(date(2024, 2, 29), 3, start, date(2023, 12, 31), False)[0]
        assert should_depreciate(date(2024, 3, 31), 3, start, date(2023, 12, 31), False)[0]

    def test_next_depreciation_date_reached(self):
        # depreciated by hand at January month end; quarterly run in March
        should, reason = should_depreciate(
            date(2024, 3, 31), 3, date(2024, 1, 15), date(2024, 1, 31), False,
            next_depreciation_date=date(2024, 2, 1),
        )
        assert should
        assert reason == "Next depreciation date reached"

    def test_next_depreciation_date_in_future(self):
        should, reason = should_depreciate(
            date(2024, 3, 31), 3, date(2024, 1, 15), date(2024, 1, 31), False,
            next_depreciation_date=date(2024, 4, 1),
        )
        assert not should
        assert "only 2 month(s)" in reason

    @pytest.mark.parametrize(
        "as_of, last_run, expected",
        [
            (date(2024, 12, 31), date(2023, 12, 31), True),
            (date(2024, 1, 31), date(2023, 12, 31), True),
            (date(2024, 12, 31), date(2024, 1, 31), False),
        ],
    )
    def test_annual_counts_calendar_years(self, as_of, last_run, expected):
        should, _ = should_depreciate(as_of, 12, date(2020, 1, 1), last_run, False)
        assert should is expected
