"""Date-time helpers for ledger timestamps."""

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime, matching stored columns."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_utc(now: datetime | None = None) -> date:
    """Return the calendar date in UTC for the provided timestamp."""

    current = now.astimezone(timezone.utc) if now else datetime.now(timezone.utc)
    return current.date()
