"""Tests for shared date and amount parsing."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from txnflow.normalization.base import BaseNormalizer


@pytest.fixture
def normalizer() -> BaseNormalizer:
    return BaseNormalizer()


class TestParseDate:
    """Date parsing never raises."""

    @pytest.mark.parametrize(
        "value",
        ["15/03/2024", "2024-03-15", "15-03-2024", "15 Mar 2024"],
    )
    def test_supported_formats(self, normalizer, value):
        issues: list[str] = []

        assert normalizer._parse_date(value, issues).date() == date(2024, 3, 15)
        assert issues == []

    def test_day_first_is_preferred(self, normalizer):
        assert normalizer._parse_date("03/04/2024", []).date() == date(2024, 4, 3)

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-05-01T19:30:00+05:30", date(2024, 5, 1)),
            ("2024-03-07T10:00:00Z", date(2024, 3, 7)),
            ("2024-03-07 10:00:00", date(2024, 3, 7)),
            ("2024/03/07 10:00", date(2024, 3, 7)),
        ],
    )
    def test_year_first_timestamps_keep_month_before_day(self, normalizer, value, expected):
        issues: list[str] = []

        assert normalizer._parse_date(value, issues).date() == expected
        assert issues == []

    def test_offset_is_preserved(self, normalizer):
        parsed = normalizer._parse_date("2024-05-01T19:30:00+05:30", [])

        assert parsed.utcoffset() == timedelta(hours=5, minutes=30)

    def test_epoch_seconds_and_milliseconds(self, normalizer):
        expected = datetime(2024, 5, 1, tzinfo=timezone.utc)

        assert normalizer._parse_date(1714521600, []) == expected
        assert normalizer._parse_date(1714521600000, []) == expected
        assert normalizer._parse_date("1714521600", []) == expected

    def test_date_objects(self, normalizer):
        assert normalizer._parse_date(date(2024, 1, 2), []) == datetime(2024, 1, 2, tzinfo=timezone.utc)
        moment = datetime(2024, 1, 2, 10, 30, tzinfo=timezone.utc)
        assert normalizer._parse_date(moment, []) is moment

    def test_unparseable_falls_back_to_now(self, normalizer):
        issues: list[str] = []
        before = datetime.now(timezone.utc)

        parsed = normalizer._parse_date("not a date", issues)

        assert issues == ["date"]
        assert parsed - before < timedelta(seconds=5)

    def test_missing_is_now_without_issue(self, normalizer):
        issues: list[str] = []

        normalizer._parse_date(None, issues)

        assert issues == []


class TestParseAmount:
    def test_indian_format(self, normalizer):
        assert normalizer._parse_amount("₹1,23,456.00") == Decimal("123456.00")
        assert normalizer._parse_amount("Rs. 500") == Decimal("500")
        assert normalizer._parse_amount("INR 5000") == Decimal("5000")

    def test_signs(self, normalizer):
        assert normalizer._parse_amount("(1,234.56)") == Decimal("-1234.56")
        assert normalizer._parse_amount("-45") == Decimal("-45")
        assert normalizer._parse_amount("45-") == Decimal("-45")

    def test_numbers_pass_through(self, normalizer):
        assert normalizer._parse_amount(299) == Decimal("299")
        assert normalizer._parse_amount(Decimal("1.50")) == Decimal("1.50")

    def test_blank_is_none(self, normalizer):
        assert normalizer._parse_amount(None) is None
        assert normalizer._parse_amount("  ") is None

    def test_placeholder_dash_is_blank(self, normalizer):
        assert normalizer._parse_amount("-") is None
        assert normalizer._parse_amount(" -- ") is None

    def test_garbage_raises(self, normalizer):
        with pytest.raises(ValueError, match="Could not parse amount"):
            normalizer._parse_amount("abc")


class TestAccountHelpers:
    def test_extract_last4(self, normalizer):
        assert normalizer._extract_last4("XXXX1234") == "1234"
        assert normalizer._extract_last4("card") is None
        assert normalizer._extract_last4(None) is None

    def test_extract_bank_name_whole_word(self, normalizer):
        assert normalizer._extract_bank_name("Dear ICICI Bank customer") == "ICICI"
        assert normalizer._extract_bank_name("reunion dinner") is None
