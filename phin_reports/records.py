"""
Typed records built from raw Square payloads.

Square's REST API answers in snake_case, but payloads proxied through the SDK
(or older labor endpoints) use camelCase or legacy `employee_*` names. All of
that fallback lives here as explicit priority-ordered field lists so the rest
of the code only ever sees one shape.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional

from phin_reports.config import load_zone
from phin_reports.errors import InvalidConfiguration

ID_FIELDS = ("id",)
LOCATION_ID_FIELDS = ("location_id", "locationId")
CREATED_AT_FIELDS = ("created_at", "createdAt")
AMOUNT_MONEY_FIELDS = ("amount_money", "amountMoney")
LINE_ITEMS_FIELDS = ("line_items", "lineItems")
LINE_MONEY_FIELDS = ("gross_sales_money", "grossSalesMoney", "total_money", "totalMoney")
CATALOG_ID_FIELDS = ("catalog_object_id", "catalogObjectId")
ORDER_ID_FIELDS = ("order_id", "orderId")
PAYMENT_ID_FIELDS = ("payment_id", "paymentId")
RECEIPT_URL_FIELDS = ("receipt_url", "receiptUrl")
TEAM_MEMBER_ID_FIELDS = ("team_member_id", "teamMemberId", "employee_id", "employeeId")
START_AT_FIELDS = ("start_at", "startAt")
END_AT_FIELDS = ("end_at", "endAt")
HOURLY_RATE_FIELDS = ("hourly_rate", "hourlyRate")
JOB_TITLE_FIELDS = ("title", "job_title", "jobTitle")

GIVEN_NAME_FIELDS = ("given_name", "givenName", "first_name", "firstName")
FAMILY_NAME_FIELDS = ("family_name", "familyName", "last_name", "lastName")
NICKNAME_FIELDS = ("nickname", "nick_name")
REFERENCE_ID_FIELDS = ("reference_id", "referenceId")
EMAIL_FIELDS = ("email_address", "emailAddress")

UNNAMED_ITEM = "Unnamed item"
DEFAULT_JOB_TITLE = "Team Member"

_TRAILING_PARENS = re.compile(r"\s*\([^)]*\)\s*$")
_TRAILING_SIZE = re.compile(r"\s*-\s*(small|medium|large|hot|cold|iced)$", re.IGNORECASE)


def pick(payload, fields, default=None):
    """First non-empty value among `fields`, in priority order."""
    if not payload:
        return default
    for name in fields:
        value = payload.get(name)
        if value is not None and value != "":
            return value
    return default


def money_amount(money):
    """Integer minor units from a Square Money object; missing means 0."""
    if not money:
        return 0
    raw = money.get("amount")
    if raw is None or raw == "":
        return 0
    return int(raw)


def money_currency(money, default="USD"):
    return (money or {}).get("currency") or default


def parse_timestamp(value, default_tz=None):
    """
    Parse an RFC 3339 timestamp into an aware datetime.

    Naive values are read as wall-clock time in `default_tz` (UTC if none).
    """
    if not value:
        return None
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=default_tz or timezone.utc)
    return dt


def normalize_item_name(raw_name):
    """
    Collapse item variations onto one display name.

    "Egg Coffee (Hot)", "Egg Coffee (Cold)" and "Egg Coffee - Large" all
    become "Egg Coffee". Lossy: two different items can collide.
    """
    if not raw_name or not raw_name.strip():
        return UNNAMED_ITEM
    name = raw_name.strip()
    name = _TRAILING_PARENS.sub("", name)
    name = _TRAILING_SIZE.sub("", name)
    return name.strip() or UNNAMED_ITEM


# ── Records ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LocationRef:
    id: str
    name: str

    def as_dict(self):
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class TransactionRecord:
    id: Optional[str]
    location_id: Optional[str]
    created_at: Optional[datetime]
    status: Optional[str]
    amount_minor: int
    currency: str
    order_id: Optional[str] = None
    payment_id: Optional[str] = None
    receipt_url: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class LineItemRecord:
    raw_name: str
    normalized_name: str
    quantity: Decimal
    amount_minor: int
    catalog_id: Optional[str]
    location_id: Optional[str]

    @property
    def key(self):
        return self.normalized_name.casefold()


@dataclass(frozen=True)
class ShiftRecord:
    id: Optional[str]
    location_id: Optional[str]
    team_member_id: Optional[str]
    job_title: str
    status: Optional[str]
    start_at: Optional[datetime]
    end_at: Optional[datetime]
    timezone: Optional[str]
    hourly_rate_minor: Optional[int]
    currency: Optional[str]
    break_seconds: float = 0.0

    @property
    def hours(self):
        """Worked hours, breaks excluded. None while the shift is open."""
        if not self.start_at or not self.end_at:
            return None
        seconds = (self.end_at - self.start_at).total_seconds() - self.break_seconds
        return max(0.0, seconds / 3600)


def location_from_payload(payload):
    loc_id = pick(payload, ID_FIELDS)
    return LocationRef(id=loc_id, name=payload.get("name") or loc_id)


def transaction_from_payload(payload, location_id=None):
    """Payment or refund payload -> TransactionRecord.

    `location_id` is the location the fetch was scoped to, used when the
    payload itself does not say.
    """
    money = pick(payload, AMOUNT_MONEY_FIELDS, {})
    return TransactionRecord(
        id=pick(payload, ID_FIELDS),
        location_id=pick(payload, LOCATION_ID_FIELDS, location_id),
        created_at=parse_timestamp(pick(payload, CREATED_AT_FIELDS)),
        status=payload.get("status"),
        amount_minor=money_amount(money),
        currency=money_currency(money),
        order_id=pick(payload, ORDER_ID_FIELDS),
        payment_id=pick(payload, PAYMENT_ID_FIELDS),
        receipt_url=pick(payload, RECEIPT_URL_FIELDS),
        reason=payload.get("reason"),
    )


def _quantity(raw):
    if raw is None or raw == "":
        return Decimal(0)
    try:
        return Decimal(str(raw))
    except InvalidOperation:
        return Decimal(0)


def line_items_from_order(order):
    """Every line item of an order, normalized."""
    location_id = pick(order, LOCATION_ID_FIELDS)
    items = []
    for li in pick(order, LINE_ITEMS_FIELDS, []):
        if not li:
            continue
        raw_name = li.get("name") or UNNAMED_ITEM
        items.append(LineItemRecord(
            raw_name=raw_name,
            normalized_name=normalize_item_name(raw_name),
            quantity=_quantity(li.get("quantity")),
            amount_minor=money_amount(pick(li, LINE_MONEY_FIELDS)),
            catalog_id=pick(li, CATALOG_ID_FIELDS),
            location_id=location_id,
        ))
    return items


def shift_from_payload(payload, store_tz_name):
    shift_tz = payload.get("timezone")
    try:
        tz = load_zone(shift_tz or store_tz_name)
    except InvalidConfiguration:
        tz = load_zone(store_tz_name)
    wage = payload.get("wage") or {}
    rate = pick(wage, HOURLY_RATE_FIELDS)
    return ShiftRecord(
        id=pick(payload, ID_FIELDS),
        location_id=pick(payload, LOCATION_ID_FIELDS),
        team_member_id=pick(payload, TEAM_MEMBER_ID_FIELDS),
        job_title=pick(wage, JOB_TITLE_FIELDS, DEFAULT_JOB_TITLE),
        status=payload.get("status"),
        start_at=parse_timestamp(pick(payload, START_AT_FIELDS), tz),
        end_at=parse_timestamp(pick(payload, END_AT_FIELDS), tz),
        timezone=shift_tz,
        hourly_rate_minor=money_amount(rate) if rate else None,
        currency=money_currency(rate) if rate else None,
        break_seconds=_break_seconds(payload.get("breaks") or [], tz),
    )


def _break_seconds(breaks, tz):
    total = 0.0
    for brk in breaks:
        start = parse_timestamp(pick(brk, START_AT_FIELDS), tz)
        end = parse_timestamp(pick(brk, END_AT_FIELDS), tz)
        if start and end:
            total += (end - start).total_seconds()
    return total


def team_member_name(member, fallback_id=None):
    """Best display name for a team member payload."""
    if not member:
        return fallback_id or "Unknown"
    given = pick(member, GIVEN_NAME_FIELDS)
    family = pick(member, FAMILY_NAME_FIELDS)
    full = " ".join(part for part in (given, family) if part).strip()
    return (
        full
        or pick(member, NICKNAME_FIELDS)
        or pick(member, REFERENCE_ID_FIELDS)
        or pick(member, EMAIL_FIELDS)
        or fallback_id
        or "Unknown"
    )
