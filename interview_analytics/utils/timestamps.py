from datetime import datetime, date, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value):
    """Normalize a datetime to an aware UTC value. Naive values (SQLite drops
    tzinfo on the way back) are taken to already be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat_utc(value):
    value = as_utc(value)
    if value is None:
        return None
    return value.isoformat().replace('+00:00', 'Z')


def parse_date(value):
    """Parse a YYYY-MM-DD query value. Empty input yields None."""
    if not value:
        return None
    return datetime.strptime(value, '%Y-%m-%d').date()


def day_start(d: date) -> datetime:
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
