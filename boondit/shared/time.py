from datetime import date, datetime, timedelta, timezone


def now_utc() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utcnow_naive() -> datetime:
    """Current UTC time without tzinfo, matching how DateTime columns store it."""
    return now_utc().replace(tzinfo=None)


def seconds_ago(seconds: int) -> datetime:
    return utcnow_naive() - timedelta(seconds=seconds)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return [start, end) naive UTC datetimes covering ``day``."""
    start = datetime.combine(day, datetime.min.time())
    return start, start + timedelta(days=1)


def fmt_date(value: datetime | date | str | None) -> str:
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return value
    return value.strftime("%-d %b %Y")
