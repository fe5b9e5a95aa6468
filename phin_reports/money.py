"""Money normalization: Square minor units (cents) to exact decimal dollars."""

from decimal import Decimal

COMPLETED = "COMPLETED"


def counts(record):
    """A record counts unless it carries a status other than COMPLETED."""
    return not record.status or record.status == COMPLETED


def to_major(amount_minor):
    """Exact major units: 1050 -> Decimal('10.50'). No float ever involved."""
    return Decimal(int(amount_minor or 0)).scaleb(-2)


def minor_units(record):
    """Integer amount of a record in minor units, or None to skip it."""
    if not counts(record):
        return None
    return int(record.amount_minor or 0)


def normalize(record):
    """Decimal major-unit amount of a record, or None to skip it."""
    amount = minor_units(record)
    if amount is None:
        return None
    return to_major(amount)
