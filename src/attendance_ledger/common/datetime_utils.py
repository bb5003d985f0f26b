from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Union

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 timestamp into a naive local datetime.

    Offline clients send `toISOString()`-style values ("...Z"); aware values are
    converted to the server's local time so day boundaries match the ledger.
    """

    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid timestamp: {value!r}") from None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_clock_time(value: object, fallback: time) -> time:
    """Parse 'HH:MM' / 'HH:MM:SS' (or a time) with a fallback for bad input."""

    if isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        # mysql-connector returns TIME columns as timedelta
        total_seconds = int(value.total_seconds()) % 86400
        return time(total_seconds // 3600, (total_seconds % 3600) // 60, total_seconds % 60)
    if not value:
        return fallback
    parts = str(value).strip().split(":")
    try:
        hh = int(parts[0])
        mm = int(parts[1]) if len(parts) > 1 else 0
        ss = int(parts[2]) if len(parts) > 2 else 0
        return time(hh, mm, ss)
    except ValueError:
        return fallback


def minutes_since_midnight(value: Union[datetime, time]) -> int:
    return value.hour * 60 + value.minute


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open interval [midnight, next midnight) of a calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
