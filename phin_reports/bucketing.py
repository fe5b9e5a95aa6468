"""
Bucketing engine.

Records are grouped by hour of day, location or item into Buckets holding
integer minor-unit totals. Expected keys are seeded before any record is
seen, so empty hours and quiet locations still show up with 0.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Tuple

from phin_reports.money import minor_units, to_major
from phin_reports.periods import TimeRange
from phin_reports.records import LocationRef

# Fixed heatmap window, 05:00-20:59 local. Not configurable.
BUSINESS_HOURS = range(5, 21)


@dataclass
class Bucket:
    key: Any
    total_minor: int = 0
    count: int = 0
    quantity: Decimal = Decimal(0)
    label: Optional[str] = None

    def add(self, amount_minor, count=1, quantity=None):
        self.total_minor += amount_minor
        self.count += count
        if quantity is not None:
            self.quantity += quantity

    @property
    def total(self):
        return to_major(self.total_minor)


class BucketTable:
    """Ordered key -> Bucket accumulator with running grand totals."""

    def __init__(self, expected_keys=(), restrict=False):
        self._buckets = {}
        self.restrict = restrict
        for key in expected_keys:
            self._buckets[key] = Bucket(key)

    def add(self, key, amount_minor, count=1, quantity=None, label=None):
        """Accumulate into `key`. Returns False if the key was dropped."""
        bucket = self._buckets.get(key)
        if bucket is None:
            if self.restrict:
                return False
            bucket = self._buckets[key] = Bucket(key, label=label)
        elif bucket.label is None and label is not None:
            bucket.label = label
        bucket.add(amount_minor, count, quantity)
        return True

    def merge(self, other):
        for bucket in other:
            self.add(bucket.key, bucket.total_minor, bucket.count, bucket.quantity, bucket.label)
        return self

    def __getitem__(self, key):
        return self._buckets[key]

    def __contains__(self, key):
        return key in self._buckets

    def __iter__(self):
        return iter(self._buckets.values())

    def __len__(self):
        return len(self._buckets)

    def keys(self):
        return list(self._buckets)

    @property
    def total_minor(self):
        return sum(b.total_minor for b in self._buckets.values())

    @property
    def count(self):
        return sum(b.count for b in self._buckets.values())

    @property
    def max_bucket_minor(self):
        return max((b.total_minor for b in self._buckets.values()), default=0)

    def by_total(self):
        """Buckets, largest total first."""
        return sorted(self._buckets.values(), key=lambda b: b.total_minor, reverse=True)


def aggregate(records, key_fn, expected_keys=(), amount_fn=minor_units, restrict=False):
    """
    Bucket `records` by `key_fn`.

    `amount_fn` returns a record's minor-unit amount, or None to skip it
    (non-COMPLETED records by default).
    """
    table = BucketTable(expected_keys, restrict=restrict)
    for record in records:
        amount = amount_fn(record)
        if amount is None:
            continue
        key = key_fn(record)
        if key is None:
            continue
        table.add(key, amount)
    return table


def hour_of_day(instant, tz):
    """Local hour (0-23) of an aware UTC instant."""
    return instant.astimezone(tz).hour


def hour_key(tz):
    def key(record):
        if record.created_at is None:
            return None
        return hour_of_day(record.created_at, tz)
    return key


def location_key(record):
    return record.location_id


def aggregate_items(line_items, table=None):
    """Accumulate line items by normalized (case-folded) name."""
    table = table if table is not None else BucketTable()
    for li in line_items:
        table.add(li.key, li.amount_minor, quantity=li.quantity, label=li.normalized_name)
    return table


# ── Results ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LocationAggregate:
    location: LocationRef
    total_minor: int
    count: int
    buckets: Tuple[Bucket, ...] = ()
    records: Tuple[Any, ...] = ()

    @property
    def total(self):
        return to_major(self.total_minor)


@dataclass(frozen=True)
class AggregateResult:
    range: TimeRange
    per_location: Tuple[LocationAggregate, ...]
    buckets: Tuple[Bucket, ...] = ()
    max_bucket_minor: int = 0

    @property
    def grand_total_minor(self):
        return sum(loc.total_minor for loc in self.per_location)

    @property
    def grand_count(self):
        return sum(loc.count for loc in self.per_location)

    @property
    def grand_total(self):
        return to_major(self.grand_total_minor)

    @property
    def max_bucket(self):
        return to_major(self.max_bucket_minor)

    def location(self, location_id):
        for loc in self.per_location:
            if loc.location.id == location_id:
                return loc
        return None


def location_result(location, table, records=()):
    """Freeze one location's bucket table into a LocationAggregate."""
    return LocationAggregate(
        location=location,
        total_minor=table.total_minor,
        count=table.count,
        buckets=tuple(table),
        records=tuple(records),
    )
