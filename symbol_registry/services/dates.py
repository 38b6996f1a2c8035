from __future__ import annotations

import re
import time
from datetime import datetime, timedelta, timezone

from symbol_registry.errors import InvalidDateError

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

YearMonthDay = tuple[int, int, int]


def now_millis() -> int:
    return int(time.time() * 1000)


def year_month_day(timestamp_ms: int) -> YearMonthDay:
    """Return the UTC calendar date of a millisecond Unix timestamp."""
    try:
        moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError) as exc:
        raise ValueError(f"timestamp out of range: {timestamp_ms}") from exc
    return moment.year, moment.month, moment.day


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def previous_date(instant: datetime) -> YearMonthDay:
    """Return the UTC calendar day immediately before ``instant``."""
    prev = _as_utc(instant) - timedelta(days=1)
    return prev.year, prev.month, prev.day


def today_utc(now: datetime | None = None) -> YearMonthDay:
    current = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    return current.year, current.month, current.day


def parse_date(value: str) -> YearMonthDay:
    cleaned = value.strip()
    if not _DATE_RE.match(cleaned):
        raise InvalidDateError(f"date must be in YYYY-MM-DD format: {value!r}")
    try:
        parsed = datetime.strptime(cleaned, "%Y-%m-%d")
    except ValueError as exc:
        raise InvalidDateError(f"invalid calendar date: {value!r}") from exc
    return parsed.year, parsed.month, parsed.day
