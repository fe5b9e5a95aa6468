"""
HTTP endpoints.

Each report family has one handler; the period kind comes from the URL
(`/weekly`, `/monthly`, `/yearly`, or none for daily) and the period value
from the matching query parameter (date/week/month/year).
"""

from functools import partial

from flask import Blueprint, current_app, jsonify, request

from phin_reports import __version__, formatting
from phin_reports.comparison import Comparison, with_comparison
from phin_reports.errors import InvalidPeriod, LocationNotFound
from phin_reports.insights import build_item_insights
from phin_reports.periods import PERIOD_PARAMS, resolve, today
from phin_reports.records import LocationRef, team_member_name

reports_bp = Blueprint("reports", __name__)


def _ext():
    return current_app.extensions["phin_reports"]


def _service():
    return _ext()["service"]


def _resolve(kind):
    param, _ = PERIOD_PARAMS[kind]
    return _service().resolve(kind, request.args.get(param))


def _required(name):
    value = request.args.get(name)
    if not value:
        raise InvalidPeriod(f"Missing {name}")
    return value


def _flag(name):
    return request.args.get(name, "false").strip().lower() == "true"


# ── Health ──────────────────────────────────────────────────────────────────

@reports_bp.route("/", methods=["GET"])
def health():
    config = _ext()["config"]
    return jsonify({
        "ok": True,
        "message": "Square Reports backend running",
        "version": __version__,
        "environment": config.square_environment,
        "timezone": config.store_timezone,
    })


# ── Sales & refunds ─────────────────────────────────────────────────────────

@reports_bp.route("/api/sales", methods=["GET"], defaults={"kind": "day"})
@reports_bp.route("/api/sales/weekly", methods=["GET"], defaults={"kind": "week"})
@reports_bp.route("/api/sales/monthly", methods=["GET"], defaults={"kind": "month"})
@reports_bp.route("/api/sales/yearly", methods=["GET"], defaults={"kind": "year"})
def sales_report(kind):
    """Completed payments totalled per location."""
    time_range = _resolve(kind)
    result = _service().sales_report(time_range, keep_records=(kind == "day"))
    return jsonify(formatting.transaction_response(result, kind))


@reports_bp.route("/api/refunds", methods=["GET"], defaults={"kind": "day"})
@reports_bp.route("/api/refunds/weekly", methods=["GET"], defaults={"kind": "week"})
@reports_bp.route("/api/refunds/monthly", methods=["GET"], defaults={"kind": "month"})
@reports_bp.route("/api/refunds/yearly", methods=["GET"], defaults={"kind": "year"})
def refunds_report(kind):
    """Completed refunds totalled per location."""
    time_range = _resolve(kind)
    result = _service().refunds_report(time_range, keep_records=(kind == "day"))
    return jsonify(formatting.transaction_response(result, kind, refunds=True))


@reports_bp.route("/api/sales/location", methods=["GET"])
def sales_for_location():
    """One location's payments for one day, with the payment detail."""
    location_id = _required("locationId")
    time_range = _resolve("day")
    location = LocationRef(location_id, location_id)
    result = _service().sales_report(time_range, locations=[location], keep_records=True)
    return jsonify(formatting.single_location_response(result, location_id))


# ── Hourly heatmap ──────────────────────────────────────────────────────────

@reports_bp.route("/api/sales/hourly", methods=["GET"], defaults={"kind": "day"})
@reports_bp.route("/api/sales/hourly/weekly", methods=["GET"], defaults={"kind": "week"})
@reports_bp.route("/api/sales/hourly/monthly", methods=["GET"], defaults={"kind": "month"})
@reports_bp.route("/api/sales/hourly/yearly", methods=["GET"], defaults={"kind": "year"})
def hourly_report(kind):
    """Sales by hour of day (05:00-20:59), optionally against the prior period."""
    service = _service()
    time_range = _resolve(kind)
    locations = service.locations()
    aggregate_fn = partial(service.hourly_report, locations=locations)

    if _flag("comparePrev"):
        comparison = with_comparison(time_range, aggregate_fn)
    else:
        comparison = Comparison(current=aggregate_fn(time_range), previous=None)

    staff_by_hour = service.staff_by_hour(time_range, locations) if kind == "day" else None
    return jsonify(formatting.hourly_response(comparison, kind, staff_by_hour))


# ── Items ───────────────────────────────────────────────────────────────────

@reports_bp.route("/api/items/daily", methods=["GET"], defaults={"kind": "day"})
@reports_bp.route("/api/items/weekly", methods=["GET"], defaults={"kind": "week"})
@reports_bp.route("/api/items/monthly", methods=["GET"], defaults={"kind": "month"})
@reports_bp.route("/api/items/yearly", methods=["GET"], defaults={"kind": "year"})
def items_report(kind):
    """Item revenue across all locations, variations merged."""
    time_range = _resolve(kind)
    result = _service().item_report(time_range)
    return jsonify(formatting.items_response(result, kind))


@reports_bp.route("/api/itemsales", methods=["GET"])
def item_sales_for_location():
    location_id = _required("locationId")
    time_range = _resolve("day")
    location = LocationRef(location_id, location_id)
    result = _service().item_report(time_range, locations=[location])
    return jsonify(formatting.item_sales_response(result, location_id))


@reports_bp.route("/api/items/insights/daily", methods=["GET"], defaults={"kind": "day"})
@reports_bp.route("/api/items/insights/weekly", methods=["GET"], defaults={"kind": "week"})
@reports_bp.route("/api/items/insights/monthly", methods=["GET"], defaults={"kind": "month"})
@reports_bp.route("/api/items/insights/yearly", methods=["GET"], defaults={"kind": "year"})
def items_insights(kind):
    """Item report plus a short written summary, for all locations or one."""
    location_id = request.args.get("locationId") or None
    time_range = _resolve(kind)
    result = _service().item_report(time_range)

    scope_label = "All Locations"
    items = [formatting.item_dict(b) for b in result.buckets]
    total = result.grand_total
    if location_id:
        loc = result.location(location_id)
        if loc is None:
            raise LocationNotFound(location_id)
        scope_label = loc.location.name
        items = [formatting.item_dict(b) for b in loc.buckets]
        total = loc.total

    insights = build_item_insights(
        scope_label, time_range.label, items, float(total), generator=_ext()["insights"]
    )
    return jsonify({
        "type": formatting.report_type(kind, "insights"),
        "range": time_range.as_dict(),
        "timezone": time_range.timezone,
        "scope": {"locationId": location_id or "ALL", "label": scope_label},
        **formatting.money(total, "grandTotal"),
        "items": items,
        "insights": insights,
    })


# ── Staff ───────────────────────────────────────────────────────────────────

@reports_bp.route("/api/staff/shifts", methods=["GET"])
def staff_shifts():
    """Shifts starting on `date` (default: today), with team member names."""
    service = _service()
    date_str = request.args.get("date") or today(service.timezone).isoformat()
    time_range = resolve("day", date_str, service.timezone)
    locations = service.locations()
    shifts = service.staff_shifts(time_range, locations)
    tz = service.tz
    return jsonify({
        "date": time_range.label,
        "timezone": time_range.timezone,
        "locations": [loc.as_dict() for loc in locations],
        "count": len(shifts),
        "shifts": [formatting.shift_dict(shift, name, tz) for shift, name in shifts],
    })


@reports_bp.route("/api/staff/team-members", methods=["GET"])
def team_members():
    members = _service().team_members()
    return jsonify({
        "count": len(members),
        "teamMembers": [
            {
                "id": member_id,
                "name": team_member_name(member, member_id),
                "status": member.get("status", ""),
            }
            for member_id, member in members.items()
        ],
    })
