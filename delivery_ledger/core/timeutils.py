from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo


def day_bounds(day: date, tz_name: str = "UTC") -> tuple[datetime, datetime]:
    """Inclusive [00:00:00.000000, 23:59:59.999999] of `day` in `tz_name`, as UTC."""
    tz = ZoneInfo(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time.max, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def today(tz_name: str = "UTC") -> date:
    return datetime.now(ZoneInfo(tz_name)).date()
