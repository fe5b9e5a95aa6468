"""
Unit tests for phin_reports/periods.py

Period tokens resolve to half-open UTC windows built from local midnights.
"""

from datetime import date, timedelta

import pytest

from phin_reports.errors import InvalidConfiguration, InvalidPeriod
from phin_reports.periods import previous_period, resolve

LA = "America/Los_Angeles"


class TestResolveDay:
    def test_summer_day_is_utc_minus_7(self):
        tr = resolve("day", "2025-06-10", LA)
        assert tr.begin_iso == "2025-06-10T07:00:00Z"
        assert tr.end_iso == "2025-06-11T07:00:00Z"
        assert tr.label == "2025-06-10"
        assert tr.start_date == tr.end_date == date(2025, 6, 10)

    def test_winter_day_is_utc_minus_8(self):
        tr = resolve("day", "2025-01-15", LA)
        assert tr.begin_iso == "2025-01-15T08:00:00Z"

    def test_spring_forward_day_is_23_hours(self):
        tr = resolve("day", "2025-03-09", LA)
        assert tr.duration == timedelta(hours=23)

    def test_fall_back_day_is_25_hours(self):
        tr = resolve("day", "2025-11-02", LA)
        assert tr.duration == timedelta(hours=25)

    def test_utc_store(self):
        tr = resolve("day", "2025-06-10", "UTC")
        assert tr.begin_iso == "2025-06-10T00:00:00Z"
        assert tr.duration == timedelta(days=1)

    def test_surrounding_whitespace_is_ignored(self):
        assert resolve("day", " 2025-06-10 ", LA).label == "2025-06-10"


class TestResolveWeek:
    def test_midweek_date_snaps_to_monday(self):
        tr = resolve("week", "2025-06-11", LA)
        assert tr.start_date == date(2025, 6, 9)
        assert tr.end_date == date(2025, 6, 15)
        assert tr.label == "2025-06-09 to 2025-06-15"

    def test_sunday_belongs_to_previous_monday(self):
        tr = resolve("week", "2025-06-15", LA)
        assert tr.start_date == date(2025, 6, 9)

    def test_monday_is_its_own_week(self):
        assert resolve("week", "2025-06-09", LA).start_date == date(2025, 6, 9)


class TestResolveMonth:
    def test_february_non_leap(self):
        tr = resolve("month", "2025-02", LA)
        assert tr.start_date == date(2025, 2, 1)
        assert tr.end_date == date(2025, 2, 28)
        assert tr.duration == timedelta(days=28)

    def test_february_leap(self):
        assert resolve("month", "2024-02", LA).end_date == date(2024, 2, 29)

    def test_december_rolls_into_next_year(self):
        tr = resolve("month", "2025-12", LA)
        assert tr.end_date == date(2025, 12, 31)
        assert tr.end_iso == "2026-01-01T08:00:00Z"

    def test_as_dict(self):
        assert resolve("month", "2025-03", LA).as_dict() == {"start": "2025-03-01", "end": "2025-03-31"}


class TestResolveYear:
    def test_whole_year(self):
        tr = resolve("year", "2024", LA)
        assert tr.start_date == date(2024, 1, 1)
        assert tr.end_date == date(2024, 12, 31)
        assert tr.label == "2024-01-01 to 2024-12-31"
        assert tr.begin_iso == "2024-01-01T08:00:00Z"


class TestInvalidPeriods:
    @pytest.mark.parametrize("kind,value", [
        ("day", "2025-13-01"),
        ("day", "2025-02-30"),
        ("day", "2025/06/10"),
        ("day", "20250610"),
        ("week", "June 10"),
        ("month", "2025-13"),
        ("month", "2025-6"),
        ("year", "25"),
        ("year", "abcd"),
        ("year", "1999"),
        ("year", "2101"),
    ])
    def test_malformed_values_raise(self, kind, value):
        with pytest.raises(InvalidPeriod):
            resolve(kind, value, LA)

    def test_missing_value_names_parameter(self):
        with pytest.raises(InvalidPeriod) as exc:
            resolve("day", None, LA)
        assert exc.value.message == "Missing date=YYYY-MM-DD"

    def test_missing_month(self):
        with pytest.raises(InvalidPeriod) as exc:
            resolve("month", "", LA)
        assert exc.value.message == "Missing month=YYYY-MM"

    def test_unknown_kind(self):
        with pytest.raises(InvalidPeriod):
            resolve("quarter", "2025-01", LA)

    def test_unknown_timezone(self):
        with pytest.raises(InvalidConfiguration):
            resolve("day", "2025-06-10", "Mars/Olympus_Mons")

    def test_error_status_is_400(self):
        with pytest.raises(InvalidPeriod) as exc:
            resolve("day", "nope", LA)
        assert exc.value.status_code == 400


class TestPreviousPeriod:
    def test_day_compares_same_weekday_last_week(self):
        prev = previous_period(resolve("day", "2025-06-10", LA))
        assert prev.label == "2025-06-03"
        assert prev.kind == "day"

    def test_week_goes_back_seven_days(self):
        prev = previous_period(resolve("week", "2025-06-11", LA))
        assert prev.start_date == date(2025, 6, 2)
        assert prev.end_date == date(2025, 6, 8)

    def test_month_snaps_to_previous_calendar_month(self):
        prev = previous_period(resolve("month", "2025-03", LA))
        assert prev.start_date == date(2025, 2, 1)
        assert prev.end_date == date(2025, 2, 28)

    def test_january_goes_to_december(self):
        prev = previous_period(resolve("month", "2025-01", LA))
        assert prev.as_dict() == {"start": "2024-12-01", "end": "2024-12-31"}

    def test_year(self):
        prev = previous_period(resolve("year", "2025", LA))
        assert prev.as_dict() == {"start": "2024-01-01", "end": "2024-12-31"}

    def test_previous_day_across_dst_keeps_local_midnight(self):
        prev = previous_period(resolve("day", "2025-03-12", LA))
        assert prev.label == "2025-03-05"
        assert prev.begin_iso == "2025-03-05T08:00:00Z"
