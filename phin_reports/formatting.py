"""
JSON response shapes consumed by the dashboard.

Totals go out twice: as a plain number the frontend can do math with, and as
an en-US currency string ready for display. Both come from the exact Decimal.
"""

from decimal import ROUND_HALF_UP, Decimal

from phin_reports.comparison import percent_change
from phin_reports.money import to_major

TYPE_NAMES = {"day": "daily", "week": "weekly", "month": "monthly", "year": "yearly"}

CURRENCY_SYMBOLS = {"USD": "$"}

CENT = Decimal("0.01")


def format_currency(amount, currency="USD"):
    """en-US currency string: Decimal('1234.5') -> '$1,234.50'."""
    amount = Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def to_number(value):
    """Decimal -> JSON number. Whole quantities stay ints."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def to_float(amount):
    return float(Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP))


def money(amount, key="total"):
    return {key: to_float(amount), f"{key}Formatted": format_currency(amount)}


def report_type(kind, suffix=None):
    name = TYPE_NAMES[kind]
    return f"{name}-{suffix}" if suffix else name


# ── Records ─────────────────────────────────────────────────────────────────

def _iso(dt):
    return dt.isoformat().replace("+00:00", "Z") if dt else None


def payment_dict(record):
    return {
        "id": record.id,
        "createdAt": _iso(record.created_at),
        "status": record.status,
        "amount": to_float(to_major(record.amount_minor)),
        "currency": record.currency,
        "orderId": record.order_id,
        "receiptUrl": record.receipt_url,
        "locationId": record.location_id,
    }


def refund_dict(record):
    return {
        "id": record.id,
        "paymentId": record.payment_id,
        "createdAt": _iso(record.created_at),
        "status": record.status,
        "amount": to_float(to_major(record.amount_minor)),
        "currency": record.currency,
        "reason": record.reason,
        "locationId": record.location_id,
    }


# ── Sales / refunds ─────────────────────────────────────────────────────────

def location_summary(loc, records_key=None, record_fn=None):
    body = {
        "locationId": loc.location.id,
        "locationName": loc.location.name,
        **money(loc.total),
        "count": loc.count,
    }
    if records_key:
        body[records_key] = [record_fn(r) for r in loc.records]
    return body


def transaction_response(result, kind, refunds=False):
    """Sales or refunds totals by location for one period."""
    tr = result.range
    records_key, record_fn = None, None
    if kind == "day":
        records_key, record_fn = ("refunds", refund_dict) if refunds else ("payments", payment_dict)

    locations = [location_summary(loc, records_key, record_fn) for loc in result.per_location]
    body = {
        "timezone": tr.timezone,
        **money(result.grand_total, "grandTotal"),
        "grandCount": result.grand_count,
        "locationsCount": len(locations),
        "locations": locations,
    }
    if kind == "day":
        body["date"] = tr.label
    else:
        body["range"] = tr.as_dict()
    if refunds:
        body["type"] = report_type(kind, "refunds")
    elif kind != "day":
        body["type"] = report_type(kind)
    return body


def single_location_response(result, location_id):
    loc = result.location(location_id)
    return {
        "locationId": location_id,
        "date": result.range.label,
        **money(loc.total),
        "count": loc.count,
        "payments": [payment_dict(r) for r in loc.records],
    }


# ── Hourly ──────────────────────────────────────────────────────────────────

def hourly_summary(result):
    by_location = {
        loc.location.id: {b.key: b for b in loc.buckets} for loc in result.per_location
    }
    hourly = {}
    for bucket in result.buckets:
        hourly[str(bucket.key)] = {
            "totalsByLocation": {
                loc_id: to_float(buckets[bucket.key].total) for loc_id, buckets in by_location.items()
            },
            "countByLocation": {
                loc_id: buckets[bucket.key].count for loc_id, buckets in by_location.items()
            },
            "totalAllLocations": to_float(bucket.total),
            "countAllLocations": bucket.count,
        }
    return {
        "range": result.range.as_dict(),
        "timezone": result.range.timezone,
        "locations": [loc.location.as_dict() for loc in result.per_location],
        "hourly": hourly,
        "maxHourAllLocations": to_float(result.max_bucket),
        "totalAllLocations": to_float(result.grand_total),
        "totalCountAllLocations": result.grand_count,
    }


def hourly_response(comparison, kind, staff_by_hour=None):
    current = comparison.current
    body = {"type": report_type(kind), **hourly_summary(current)}
    if kind == "day":
        body["date"] = current.range.label
    body["staffByHour"] = (
        {str(h): slots for h, slots in staff_by_hour.items()} if staff_by_hour is not None else None
    )

    previous = comparison.previous
    if previous is None:
        body["comparison"] = None
    else:
        body["comparison"] = {
            **hourly_summary(previous),
            "changePct": percent_change(current.grand_total, previous.grand_total),
        }
    return body


# ── Items ───────────────────────────────────────────────────────────────────

def item_dict(bucket):
    return {
        "itemName": bucket.label,
        "quantity": to_number(bucket.quantity),
        **money(bucket.total),
    }


def location_items(loc):
    return {
        "locationId": loc.location.id,
        "locationName": loc.location.name,
        **money(loc.total),
        "count": loc.count,
        "items": [item_dict(b) for b in loc.buckets],
    }


def items_response(result, kind):
    tr = result.range
    body = {
        "type": report_type(kind),
        "range": tr.as_dict(),
        "timezone": tr.timezone,
        **money(result.grand_total, "grandTotal"),
        "overallItems": [item_dict(b) for b in result.buckets],
        "locations": [location_items(loc) for loc in result.per_location],
    }
    if kind == "day":
        body["date"] = tr.label
    return body


def item_sales_response(result, location_id):
    loc = result.location(location_id)
    items = [item_dict(b) for b in loc.buckets] if loc else []
    return {
        "locationId": location_id,
        "date": result.range.label,
        "timezone": result.range.timezone,
        "totalItems": len(items),
        "items": items,
    }


# ── Labor ───────────────────────────────────────────────────────────────────

def shift_dict(shift, name, tz):
    hours = shift.hours
    cost = None
    if hours is not None and shift.hourly_rate_minor is not None:
        cost = round(hours * float(to_major(shift.hourly_rate_minor)), 2)
    return {
        "id": shift.id,
        "locationId": shift.location_id,
        "teamMemberId": shift.team_member_id,
        "teamMemberName": name,
        "jobTitle": shift.job_title,
        "status": shift.status,
        "startAt": shift.start_at.astimezone(tz).isoformat() if shift.start_at else None,
        "endAt": shift.end_at.astimezone(tz).isoformat() if shift.end_at else None,
        "hours": round(hours, 2) if hours is not None else None,
        "hourlyRate": (
            to_float(to_major(shift.hourly_rate_minor))
            if shift.hourly_rate_minor is not None else None
        ),
        "laborCost": cost,
    }
