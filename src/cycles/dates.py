"""Calendar-day helpers shared by every engine component.

All comparisons in the engine happen on plain ``date`` values that have been
normalized into the caller's location first.  The same UTC instant can fall
on different calendar days in different locations.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from functools import reduce
from typing import Iterable
from zoneinfo import ZoneInfo

from src.config import get_settings
from src.cycles.records import DayRecord, Flow


def resolve_location(location: tzinfo | str | None) -> tzinfo:
    """Return a tzinfo for ``location``, defaulting to the configured zone.

    Args:
        location: A tzinfo, an IANA zone name, or None.

    Returns:
        tzinfo instance.
    """
    if location is None:
        location = get_settings().default_timezone
    if isinstance(location, str):
        return ZoneInfo(location)
    return location


def date_at_location(value: date | datetime, location: tzinfo | str | None = None) -> date:
    """Normalize ``value`` to the calendar day it falls on in ``location``.

    Plain dates are already calendar days and are returned unchanged.  Naive
    datetimes are read as UTC instants.

    Args:
        value:    Date or datetime to normalize.
        location: Target location.

    Returns:
        The calendar day in ``location``.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(resolve_location(location)).date()
    return value


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def days_between(start: date, end: date) -> int:
    """Whole days from ``start`` to ``end`` (negative if ``end`` is earlier)."""
    return (end - start).days


def between_inclusive(day: date, start: date | None, end: date | None) -> bool:
    if start is None or end is None:
        return False
    return start <= day <= end


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up.

    ``round()`` uses banker's rounding (``round(2.5) == 2``); cycle and period
    lengths must round 27.5 to 28 and 28.5 to 29.
    """
    return math.floor(value + 0.5)


def record_timestamp(record: DayRecord) -> datetime:
    """Return the record's wall-clock timestamp as an aware datetime."""
    value = record.date
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def pick_latest(existing: DayRecord | None, candidate: DayRecord) -> DayRecord:
    """Choose the winning record between two entries for the same day.

    The later timestamp wins; on equal timestamps the higher id wins.  On a
    full tie the record already held is kept.
    """
    if existing is None:
        return candidate
    candidate_ts = record_timestamp(candidate)
    existing_ts = record_timestamp(existing)
    if candidate_ts > existing_ts:
        return candidate
    if candidate_ts == existing_ts and candidate.id > existing.id:
        return candidate
    return existing


def latest_records_by_day(
    records: Iterable[DayRecord], location: tzinfo | str | None = None
) -> dict[date, DayRecord]:
    """Reduce records to one per calendar day using ``pick_latest``.

    Args:
        records:  Records in any order.
        location: Location used to normalize each record's day.

    Returns:
        Mapping of calendar day to the winning record.
    """
    tz = resolve_location(location)

    def _fold(acc: dict[date, DayRecord], record: DayRecord) -> dict[date, DayRecord]:
        key = date_at_location(record.date, tz)
        acc[key] = pick_latest(acc.get(key), record)
        return acc

    return reduce(_fold, records, {})


def day_has_data(record: DayRecord) -> bool:
    """Return True if the record carries anything worth showing."""
    if record.is_period:
        return True
    if record.symptom_ids:
        return True
    if record.notes.strip():
        return True
    return Flow(record.flow) != Flow.none
