"""
Report pipeline: resolve -> fetch (parallel per location) -> normalize -> bucket.

Every sales, refunds, hourly and item endpoint runs through ReportService;
the period kind and resource kind are parameters, not separate code paths.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, time, timedelta

from phin_reports import periods
from phin_reports.bucketing import (
    BUSINESS_HOURS,
    AggregateResult,
    BucketTable,
    LocationAggregate,
    aggregate,
    aggregate_items,
    hour_key,
    location_key,
    location_result,
)
from phin_reports.config import load_zone
from phin_reports.errors import ReportError, UpstreamUnavailable
from phin_reports.money import counts
from phin_reports.records import (
    LOCATION_ID_FIELDS,
    LocationRef,
    pick,
    line_items_from_order,
    location_from_payload,
    shift_from_payload,
    team_member_name,
    transaction_from_payload,
)

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, client, config):
        self.client = client
        self.config = config
        self.timezone = config.store_timezone

    @property
    def tz(self):
        return load_zone(self.timezone)

    def resolve(self, kind, value):
        return periods.resolve(kind, value, self.timezone)

    def locations(self):
        """All store locations known to Square."""
        return [
            location_from_payload(p)
            for p in self.client.list_locations()
            if p and p.get("id")
        ]

    def _fan_out(self, fn, locations):
        """Run `fn` for every location concurrently; the first failure wins."""
        if not locations:
            return []
        workers = max(1, min(self.config.max_fetch_workers, len(locations)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(fn, locations))

    def _fetch_transactions(self, resource, time_range, location):
        return [
            transaction_from_payload(payload, location.id)
            for payload in self.client.fetch_all(resource, time_range, [location.id])
        ]

    # ── Totals by location ──────────────────────────────────────────────────

    def transaction_report(self, resource, time_range, locations=None, keep_records=False):
        """Payments or refunds in `time_range`, totalled per location."""
        if locations is None:
            locations = self.locations()

        fetched = self._fan_out(
            lambda loc: self._fetch_transactions(resource, time_range, loc), locations
        )
        records = [r for batch in fetched for r in batch]
        logger.info(f"{resource}: {len(records)} records across {len(locations)} locations ({time_range.label})")

        table = aggregate(records, location_key, expected_keys=[loc.id for loc in locations])

        by_id = {loc.id: loc for loc in locations}
        per_location = []
        for bucket in table:
            location = by_id.get(bucket.key) or LocationRef(bucket.key, bucket.key)
            kept = ()
            if keep_records:
                kept = tuple(r for r in records if r.location_id == bucket.key and counts(r))
            per_location.append(LocationAggregate(
                location=location,
                total_minor=bucket.total_minor,
                count=bucket.count,
                records=kept,
            ))

        return AggregateResult(
            range=time_range,
            per_location=tuple(per_location),
            buckets=tuple(table),
            max_bucket_minor=table.max_bucket_minor,
        )

    def sales_report(self, time_range, locations=None, keep_records=False):
        return self.transaction_report("payments", time_range, locations, keep_records)

    def refunds_report(self, time_range, locations=None, keep_records=False):
        return self.transaction_report("refunds", time_range, locations, keep_records)

    # ── Hour of day ─────────────────────────────────────────────────────────

    def hourly_report(self, time_range, locations=None, hours=BUSINESS_HOURS):
        """Payments bucketed by local hour of day, per location and overall."""
        if locations is None:
            locations = self.locations()
        tz = self.tz

        def per_location(location):
            records = self._fetch_transactions("payments", time_range, location)
            table = aggregate(records, hour_key(tz), expected_keys=hours, restrict=True)
            return location, table

        overall = BucketTable(hours, restrict=True)
        results = []
        for location, table in self._fan_out(per_location, locations):
            overall.merge(table)
            results.append(location_result(location, table))

        return AggregateResult(
            range=time_range,
            per_location=tuple(results),
            buckets=tuple(overall),
            max_bucket_minor=overall.max_bucket_minor,
        )

    # ── Items ───────────────────────────────────────────────────────────────

    def item_report(self, time_range, locations=None):
        """Line-item revenue and quantity grouped by normalized item name."""
        if locations is None:
            locations = self.locations()

        overall = BucketTable()
        tables = {loc.id: BucketTable() for loc in locations}
        by_id = {loc.id: loc for loc in locations}
        order_count = 0

        for order in self.client.fetch_all("orders", time_range, [loc.id for loc in locations]):
            state = order.get("state")
            if state and state != "COMPLETED":
                continue
            order_count += 1
            line_items = line_items_from_order(order)
            if not line_items:
                continue
            loc_id = pick(order, LOCATION_ID_FIELDS, "UNKNOWN")
            if loc_id not in tables:
                tables[loc_id] = BucketTable()
                by_id[loc_id] = LocationRef(loc_id, loc_id)
            aggregate_items(line_items, tables[loc_id])
            aggregate_items(line_items, overall)

        logger.info(f"orders: {order_count} orders, {len(overall)} distinct items ({time_range.label})")

        per_location = tuple(
            LocationAggregate(
                location=by_id[loc_id],
                total_minor=table.total_minor,
                count=table.count,
                buckets=tuple(table.by_total()),
            )
            for loc_id, table in tables.items()
        )
        return AggregateResult(
            range=time_range,
            per_location=per_location,
            buckets=tuple(overall.by_total()),
            max_bucket_minor=overall.max_bucket_minor,
        )

    # ── Labor ───────────────────────────────────────────────────────────────

    def shifts(self, time_range, locations):
        shifts = []
        for payload in self.client.fetch_all("shifts", time_range, [loc.id for loc in locations]):
            try:
                shifts.append(shift_from_payload(payload, self.timezone))
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping shift {payload.get('id')} with unparseable times: {e}")
        return shifts

    def team_members(self):
        """team_member_id -> raw team member payload."""
        members = {}
        for member in self.client.search_team_members():
            member_id = member.get("id")
            if member_id:
                members[member_id] = member
        return members

    def staff_shifts(self, time_range, locations=None):
        """Shifts starting in `time_range`, paired with team member names."""
        if locations is None:
            locations = self.locations()
        shifts = self.shifts(time_range, locations)
        logger.info(f"shifts: {len(shifts)} shifts ({time_range.label})")

        try:
            members = self.team_members()
        except UpstreamUnavailable as e:
            logger.warning(f"Could not fetch team members: {e.details}")
            members = {}

        return [
            (shift, team_member_name(members.get(shift.team_member_id), shift.team_member_id))
            for shift in shifts
        ]

    def staff_by_hour(self, time_range, locations, hours=BUSINESS_HOURS):
        """
        hour -> location_id -> distinct [{teamMemberId, jobTitle}] on shift
        during that hour. Labor data is a nice-to-have on the heatmap, so a
        failed fetch leaves every slot empty instead of failing the report.
        """
        staff = {h: {loc.id: [] for loc in locations} for h in hours}
        try:
            shifts = self.shifts(time_range, locations)
        except ReportError as e:
            logger.warning(f"Labor shifts unavailable for staffByHour: {e.message} {e.details}")
            return staff
        except (ValueError, TypeError) as e:
            logger.warning(f"Labor shifts unreadable for staffByHour: {e}")
            return staff

        tz = self.tz
        day_start = datetime.combine(time_range.start_date, time.min, tzinfo=tz)
        for shift in shifts:
            if not shift.location_id or not shift.start_at:
                continue
            start = shift.start_at
            end = shift.end_at or time_range.end_utc
            for h in hours:
                block_start = day_start.replace(hour=h)
                block_end = block_start + timedelta(hours=1)
                if not (start < block_end and end > block_start):
                    continue
                slot = staff[h].setdefault(shift.location_id, [])
                entry = {"teamMemberId": shift.team_member_id, "jobTitle": shift.job_title}
                if entry not in slot:
                    slot.append(entry)
        return staff
