from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple

KST = timezone(timedelta(hours=9))


def kst_today(now: Optional[datetime] = None) -> date:
    """Calendar date in Korea; study records are keyed by this day"""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(KST).date()


def week_bounds(day: date) -> Tuple[date, date]:
    """Monday and Sunday of the week containing day"""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def to_kst_iso(value: Optional[datetime]) -> Optional[str]:
    if not value:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(KST).isoformat()
