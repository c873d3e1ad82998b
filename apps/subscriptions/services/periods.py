"""
Billing period arithmetic.

Periods are half-open intervals ``[start, end)``. Months are calendar
months: the day of month is kept and clamped to the last day of a
shorter month, so Jan 31 + 1 month is Feb 28 (or 29).
"""

from datetime import datetime
from typing import Tuple

from dateutil.relativedelta import relativedelta

from apps.subscriptions.models import Period

PERIOD_STEPS = {
    Period.DAY: relativedelta(days=1),
    Period.WEEK: relativedelta(days=7),
    Period.MONTH: relativedelta(months=1),
}


def compute_period_end(start: datetime, period: str, count: int = 1) -> datetime:
    """
    End of the period starting at ``start``.

    ``count`` advances several periods from the same anchor, which avoids
    the drift of chaining clamped month ends (Jan 31 -> Feb 28 -> Mar 28).

    Raises:
        ValueError: If ``period`` is not day, week or month
    """
    try:
        step = PERIOD_STEPS[period]
    except KeyError:
        raise ValueError(f"Unknown billing period: {period!r}")
    return start + step * count


def compute_period(start: datetime, period: str) -> Tuple[datetime, datetime]:
    return start, compute_period_end(start, period)
