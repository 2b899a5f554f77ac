# Overview: Pytest coverage for UTC parsing and serialization helpers.

from datetime import datetime, time

from lotledger.time_utils import parse_iso_bound, parse_iso_datetime, to_utc_z


def test_offset_normalized_to_utc_naive():
    assert parse_iso_datetime("2026-03-01T12:00:00+02:00") == datetime(2026, 3, 1, 10, 0, 0)
    assert parse_iso_datetime("2026-03-01T12:00:00Z") == datetime(2026, 3, 1, 12, 0, 0)


def test_unparseable_is_none():
    assert parse_iso_datetime("yesterday") is None
    assert parse_iso_datetime("  ") is None


def test_date_only_upper_bound_covers_day():
    assert parse_iso_bound("2026-01-31", upper=True) == datetime.combine(datetime(2026, 1, 31).date(), time.max)
    assert parse_iso_bound("2026-01-31") == datetime(2026, 1, 31)
    assert parse_iso_bound("2026-01-31T08:00:00Z", upper=True) == datetime(2026, 1, 31, 8, 0, 0)


def test_to_utc_z():
    assert to_utc_z(datetime(2026, 1, 2, 3, 4, 5, 678)) == "2026-01-02T03:04:05Z"
    assert to_utc_z(None) is None
