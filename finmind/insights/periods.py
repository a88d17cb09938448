"""
Period Resolver

Maps a symbolic period token to a concrete window ending now.
Unknown tokens (including "all") mean "no lower bound".
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from finmind.models.insights import PeriodWindow

LAST_30D = "last_30d"
LAST_90D = "last_90d"
YTD = "ytd"

# Per-day normalization for unbounded periods
UNBOUNDED_DAYS = 90

_ROLLING_WINDOWS = {
    LAST_30D: 30,
    LAST_90D: 90,
}


def resolve_period(token: str, now: Optional[datetime] = None) -> PeriodWindow:
    """
    Resolve a period token.

    Args:
        token: last_30d, last_90d, ytd, or anything else for "all time"
        now: Reference time (defaults to the current UTC time)

    Returns:
        PeriodWindow with start=None for unbounded periods
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    if token in _ROLLING_WINDOWS:
        days = _ROLLING_WINDOWS[token]
        return PeriodWindow(token=token, start=now - timedelta(days=days), end=now, days=days)

    if token == YTD:
        start = datetime(now.year, 1, 1, tzinfo=now.tzinfo)
        elapsed_days = math.ceil((now - start) / timedelta(days=1))
        return PeriodWindow(token=token, start=start, end=now, days=max(1, elapsed_days))

    return PeriodWindow(token=token, start=None, end=now, days=UNBOUNDED_DAYS)
