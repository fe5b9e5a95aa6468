"""Pairing a report with the same report for the prior period."""

import logging
from dataclasses import dataclass
from typing import Optional

from phin_reports.bucketing import AggregateResult
from phin_reports.periods import previous_period

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Comparison:
    current: AggregateResult
    previous: Optional[AggregateResult]


def with_comparison(current_range, aggregate_fn):
    """
    Run `aggregate_fn` for `current_range` and for its prior period.

    Failures on the current period propagate. A failed prior period only
    costs the comparison: `previous` is None and the current report stands.
    """
    current = aggregate_fn(current_range)
    prior_range = previous_period(current_range)
    try:
        previous = aggregate_fn(prior_range)
    except Exception as e:
        logger.warning(f"Comparison period {prior_range.label} unavailable: {e}")
        previous = None
    return Comparison(current=current, previous=previous)


def percent_change(current, previous):
    """Percentage change from `previous` to `current`, None if undefined."""
    if previous is None or not previous:
        return None
    return round(float((current - previous) / previous * 100), 1)
