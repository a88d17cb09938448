"""
Tests for the period resolver.
"""

from datetime import datetime, timedelta, timezone

from finmind.insights import LAST_30D, LAST_90D, YTD, resolve_period
from finmind.insights.periods import UNBOUNDED_DAYS

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class TestResolvePeriod:

    def test_last_30d(self):
        window = resolve_period(LAST_30D, NOW)
        assert window.start == NOW - timedelta(days=30)
        assert window.end == NOW
        assert window.days == 30

    def test_last_90d(self):
        window = resolve_period(LAST_90D, NOW)
        assert window.start == NOW - timedelta(days=90)
        assert window.days == 90

    def test_ytd_starts_on_january_first(self):
        window = resolve_period(YTD, NOW)
        assert window.start == datetime(2024, 1, 1, tzinfo=timezone.utc)
        # 166.5 days elapsed, rounded up
        assert window.days == 167

    def test_ytd_on_new_year_is_at_least_one_day(self):
        """Per-day figures never divide by zero."""
        window = resolve_period(YTD, datetime(2024, 1, 1, tzinfo=timezone.utc))
        assert window.days == 1

    def test_unknown_token_is_unbounded(self):
        window = resolve_period("all", NOW)
        assert window.start is None
        assert window.days == UNBOUNDED_DAYS
        assert window.contains(datetime(1990, 1, 1, tzinfo=timezone.utc))

    def test_window_bounds_are_inclusive(self):
        window = resolve_period(LAST_30D, NOW)
        assert window.contains(NOW)
        assert window.contains(NOW - timedelta(days=30))
        assert not window.contains(NOW - timedelta(days=30, seconds=1))
        assert not window.contains(NOW + timedelta(seconds=1))

    def test_naive_reference_time_is_utc(self):
        window = resolve_period(LAST_30D, datetime(2024, 6, 15, 12, 0))
        assert window.end == NOW
