from datetime import date, datetime, timezone

from app.core.time import kst_today, to_kst_iso, week_bounds


def test_kst_today_rolls_over_at_midnight_kst():
    """15:00 UTC is already the next day in Korea."""
    assert kst_today(datetime(2026, 10, 19, 14, 59, tzinfo=timezone.utc)) == date(2026, 10, 19)
    assert kst_today(datetime(2026, 10, 19, 15, 0, tzinfo=timezone.utc)) == date(2026, 10, 20)


def test_week_bounds():
    assert week_bounds(date(2026, 10, 19)) == (date(2026, 10, 19), date(2026, 10, 25))
    assert week_bounds(date(2026, 10, 25)) == (date(2026, 10, 19), date(2026, 10, 25))


def test_to_kst_iso():
    assert to_kst_iso(None) is None
    assert to_kst_iso(datetime(2026, 1, 1, 0, 0)) == "2026-01-01T09:00:00+09:00"
