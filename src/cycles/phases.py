"""Classify "today" into a cycle phase."""

from __future__ import annotations

from datetime import date, tzinfo
from typing import Iterable

from src.cycles.dates import add_days, between_inclusive, latest_records_by_day, round_half_up
from src.cycles.records import CycleStats, DayRecord, Phase


def detect_current_phase(
    stats: CycleStats,
    records: Iterable[DayRecord],
    today: date,
    location: tzinfo | str | None = None,
    default_period_length: int = 5,
) -> Phase:
    """Return the phase for ``today``; the first matching rule wins.

    1. menstrual: today is logged as a period day, or falls inside the
       period that opened the current cycle.
    2. unknown: ovulation was marked impossible.
    3. ovulation: today is the ovulation day.
    4. fertile: today is inside the fertility window.
    5. follicular: today is before ovulation.
    6. luteal: today is after ovulation.
    7. unknown: there is no ovulation date at all.

    Args:
        stats:                 Statistics holding the current predictions.
        records:               The user's DayRecords.
        today:                 Calendar day already normalized to ``location``.
        location:              Location used to normalize record days.
        default_period_length: Used when no average period length is known.
    """
    winner = latest_records_by_day(records, location).get(today)
    if winner is not None and winner.is_period:
        return Phase.menstrual

    period_length = round_half_up(stats.average_period_length)
    if period_length <= 0:
        period_length = default_period_length
    if stats.last_period_start is not None:
        period_end = add_days(stats.last_period_start, period_length - 1)
        if between_inclusive(today, stats.last_period_start, period_end):
            return Phase.menstrual

    if stats.ovulation_impossible:
        return Phase.unknown

    if stats.ovulation_date is not None:
        if today == stats.ovulation_date:
            return Phase.ovulation
        if between_inclusive(today, stats.fertility_window_start, stats.fertility_window_end):
            return Phase.fertile
        if today < stats.ovulation_date:
            return Phase.follicular
        return Phase.luteal

    return Phase.unknown
