import sys
from datetime import date, datetime, time, timedelta, timezone

import pytest

from furniture_stock.exceptions import InvalidInputError
from furniture_stock.utils.clock import FixedClock, to_naive_utc
from furniture_stock.utils.codes import norm_code
from furniture_stock.utils.dates import day_key, isoformat_or_none, parse_date_bound


class TestParseDateBound:
    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_means_no_bound(self, value):
        assert parse_date_bound(value) is None

    def test_date_only_lower_bound_is_midnight(self):
        assert parse_date_bound("2025-03-10") == datetime(2025, 3, 10)

    def test_date_only_upper_bound_is_end_of_day(self):
        assert parse_date_bound("2025-03-10", end_of_day=True) == datetime.combine(date(2025, 3, 10), time.max)

    @pytest.mark.skipif(sys.version_info < (3, 11), reason="compact ISO dates need Python 3.11")
    def test_compact_date_upper_bound_is_end_of_day(self):
        assert parse_date_bound("20250310", end_of_day=True) == datetime.combine(date(2025, 3, 10), time.max)
        assert parse_date_bound("20250310") == datetime(2025, 3, 10)

    def test_datetime_upper_bound_is_kept(self):
        assert parse_date_bound("2025-03-10T12:30:00", end_of_day=True) == datetime(2025, 3, 10, 12, 30)

    def test_aware_value_converted_to_naive_utc(self):
        assert parse_date_bound("2025-03-10T12:00:00+02:00") == datetime(2025, 3, 10, 10, 0)

    def test_date_objects(self):
        assert parse_date_bound(date(2025, 3, 10), end_of_day=True).hour == 23

    @pytest.mark.parametrize("value", ["10/03/2025", "yesterday", "2025-13-01"])
    def test_malformed(self, value):
        with pytest.raises(InvalidInputError):
            parse_date_bound(value)


def test_day_key():
    assert day_key("2025-03-10") == "2025-03-10"
    assert day_key(datetime(2025, 3, 10, 23, 0)) == "2025-03-10"
    assert day_key(date(2025, 3, 10)) == "2025-03-10"


def test_isoformat_or_none():
    assert isoformat_or_none(None) is None
    assert isoformat_or_none("  ") is None
    assert isoformat_or_none(" 2025-03-10 ") == "2025-03-10"


def test_fixed_clock():
    clock = FixedClock(datetime(2025, 3, 10, 9, 0, tzinfo=timezone(timedelta(hours=1))))
    assert clock.now() == datetime(2025, 3, 10, 8, 0)
    assert clock.advance(hours=2) == datetime(2025, 3, 10, 10, 0)
    assert to_naive_utc(datetime(2025, 1, 1)) == datetime(2025, 1, 1)


@pytest.mark.parametrize("raw, expected", [(" fur-001 ", "FUR-001"), ("", None), (None, None), ("  ", None)])
def test_norm_code(raw, expected):
    assert norm_code(raw) == expected
