"""Unit tests for recurring cadence helpers."""

from datetime import date, timedelta

import pytest

from txnflow.core.types import Interval
from txnflow.services.recurring import amount_variance, classify_interval, next_expected_date


def _every(days: int, count: int = 3, start: date = date(2024, 1, 1)) -> list[date]:
    return [start + timedelta(days=days * i) for i in range(count)]


class TestClassifyInterval:
    @pytest.mark.parametrize(
        "gap,expected",
        [
            (7, Interval.WEEKLY),
            (14, Interval.BIWEEKLY),
            (30, Interval.MONTHLY),
            (91, Interval.QUARTERLY),
            (365, Interval.YEARLY),
        ],
    )
    def test_cadences(self, gap, expected):
        assert classify_interval(_every(gap)) == expected

    def test_uneven_monthly_gaps(self):
        assert classify_interval([date(2024, 1, 1), date(2024, 1, 31), date(2024, 3, 2)]) == Interval.MONTHLY

    def test_order_does_not_matter(self):
        assert classify_interval([date(2024, 3, 2), date(2024, 1, 1), date(2024, 1, 31)]) == Interval.MONTHLY

    def test_irregular_gap(self):
        assert classify_interval(_every(20)) is None

    def test_needs_two_dates(self):
        assert classify_interval([date(2024, 1, 1)]) is None
        assert classify_interval([]) is None


class TestNextExpectedDate:
    def test_month_end_clamps(self):
        assert next_expected_date(date(2024, 1, 31), Interval.MONTHLY) == date(2024, 2, 29)

    def test_leap_day_yearly(self):
        assert next_expected_date(date(2024, 2, 29), "yearly") == date(2025, 2, 28)

    def test_weekly(self):
        assert next_expected_date(date(2024, 3, 2), Interval.WEEKLY) == date(2024, 3, 9)


class TestAmountVariance:
    def test_relative_distance(self):
        assert amount_variance(65000, 50000) == pytest.approx(0.3)
        assert amount_variance(51000, 50000) == pytest.approx(0.02)

    def test_zero_average(self):
        assert amount_variance(0, 0) == 0.0
        assert amount_variance(100, 0) == float("inf")
