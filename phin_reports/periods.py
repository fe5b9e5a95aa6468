"""
Period resolution: turn a report period (day/week/month/year) into a
half-open UTC query window.

Every range is built from local midnights in the store timezone and only then
converted to UTC, so a day that crosses a DST change is 23 or 25 hours long.
Weeks are ISO weeks starting on Monday.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from phin_reports.config import load_zone
from phin_reports.errors import InvalidPeriod

PERIOD_KINDS = ("day", "week", "month", "year")

# Query parameter each period kind is read from, and the format hint shown
# when it is missing.
PERIOD_PARAMS = {
    "day": ("date", "YYYY-MM-DD"),
    "week": ("week", "YYYY-MM-DD"),
    "month": ("month", "YYYY-MM"),
    "year": ("year", "YYYY"),
}

MIN_YEAR = 2000
MAX_YEAR = 2100

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")
_YEAR_RE = re.compile(r"^\d{4}$")


@dataclass(frozen=True)
class TimeRange:
    begin_utc: datetime
    end_utc: datetime
    label: str
    timezone: str
    kind: str
    start_date: date
    end_date: date  # inclusive, local

    def __post_init__(self):
        if not self.begin_utc < self.end_utc:
            raise ValueError("TimeRange begin must be before end")

    @property
    def begin_iso(self):
        return _rfc3339(self.begin_utc)

    @property
    def end_iso(self):
        return _rfc3339(self.end_utc)

    @property
    def duration(self):
        return self.end_utc - self.begin_utc

    def as_dict(self):
        return {"start": self.start_date.isoformat(), "end": self.end_date.isoformat()}


def _rfc3339(dt):
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def local_midnight(d, tz):
    """Start of calendar day `d` in `tz`, as an aware UTC datetime."""
    return datetime.combine(d, time.min, tzinfo=tz).astimezone(timezone.utc)


def build_range(kind, start, end_exclusive, tz_name):
    """Build a TimeRange covering local dates [start, end_exclusive)."""
    tz = load_zone(tz_name)
    last_day = end_exclusive - timedelta(days=1)
    if kind == "day":
        label = start.isoformat()
    else:
        label = f"{start.isoformat()} to {last_day.isoformat()}"
    return TimeRange(
        begin_utc=local_midnight(start, tz),
        end_utc=local_midnight(end_exclusive, tz),
        label=label,
        timezone=tz_name,
        kind=kind,
        start_date=start,
        end_date=last_day,
    )


def _add_months(d, months):
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def _parse_date(value):
    if not value or not _DATE_RE.match(value):
        raise InvalidPeriod("Invalid date format", {"value": value, "expected": "YYYY-MM-DD"})
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidPeriod("Invalid date format", {"value": value, "expected": "YYYY-MM-DD"})


def _parse_month(value):
    if not value or not _MONTH_RE.match(value):
        raise InvalidPeriod("Invalid month format", {"value": value, "expected": "YYYY-MM"})
    year, month = int(value[:4]), int(value[5:])
    if not 1 <= month <= 12:
        raise InvalidPeriod("Invalid month format", {"value": value, "expected": "YYYY-MM"})
    return date(year, month, 1)


def _parse_year(value):
    if not value or not _YEAR_RE.match(value):
        raise InvalidPeriod("Invalid year format", {"value": value, "expected": "YYYY"})
    year = int(value)
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidPeriod(f"Year must be between {MIN_YEAR} and {MAX_YEAR}", {"value": value})
    return date(year, 1, 1)


def _bounds(kind, anchor):
    if kind == "day":
        return anchor, anchor + timedelta(days=1)
    if kind == "week":
        start = anchor - timedelta(days=anchor.weekday())
        return start, start + timedelta(days=7)
    if kind == "month":
        start = anchor.replace(day=1)
        return start, _add_months(start, 1)
    if kind == "year":
        start = anchor.replace(month=1, day=1)
        return start, start.replace(year=start.year + 1)
    raise InvalidPeriod(f"Unknown period kind: {kind}")


def resolve(kind, value, tz_name):
    """Resolve a period token in the store timezone into a TimeRange."""
    if kind not in PERIOD_KINDS:
        raise InvalidPeriod(f"Unknown period kind: {kind}")
    if not value:
        param, fmt = PERIOD_PARAMS[kind]
        raise InvalidPeriod(f"Missing {param}={fmt}")

    value = value.strip()
    if kind in ("day", "week"):
        anchor = _parse_date(value)
    elif kind == "month":
        anchor = _parse_month(value)
    else:
        anchor = _parse_year(value)

    start, end_exclusive = _bounds(kind, anchor)
    return build_range(kind, start, end_exclusive, tz_name)


def previous_period(time_range):
    """
    The period a report is compared against.

    Days compare against the same weekday one week earlier, not yesterday.
    Months and years snap to the previous calendar month/year, since they
    vary in length.
    """
    kind = time_range.kind
    start = time_range.start_date
    if kind in ("day", "week"):
        prev_start = start - timedelta(days=7)
        prev_end = time_range.end_date + timedelta(days=1) - timedelta(days=7)
    elif kind == "month":
        prev_start = _add_months(start, -1)
        prev_end = start
    elif kind == "year":
        prev_start = start.replace(year=start.year - 1)
        prev_end = start
    else:
        raise InvalidPeriod(f"Unknown period kind: {kind}")
    return build_range(kind, prev_start, prev_end, time_range.timezone)


def today(tz_name):
    """Today's calendar date in the store timezone."""
    return datetime.now(load_zone(tz_name)).date()
