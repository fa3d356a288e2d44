from datetime import date, datetime, timezone

from delivery_ledger.core.timeutils import day_bounds


def test_day_bounds_utc() -> None:
    start, end = day_bounds(date(2026, 3, 14))

    assert start == datetime(2026, 3, 14, 0, 0, 0, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 3, 14, 23, 59, 59, 999999, tzinfo=timezone.utc)


def test_day_bounds_business_timezone() -> None:
    start, end = day_bounds(date(2026, 1, 10), "Africa/Cairo")

    # Cairo is UTC+2 in January.
    assert start == datetime(2026, 1, 9, 22, 0, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 1, 10, 21, 59, 59, 999999, tzinfo=timezone.utc)
    assert start.tzinfo == timezone.utc
