"""Month calendar grid with logged and projected cycle days.

The grid runs from the Sunday on or before the first of the month to the
Saturday on or after its last day, so it always holds whole weeks (28 to
42 cells).  Predicted periods, fertile days and ovulation days are repeated
forward from the next predicted period using the recurring cycle length
until the grid is covered.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Iterable

from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.dates import (
    add_days,
    date_at_location,
    day_has_data,
    latest_records_by_day,
    resolve_location,
    round_half_up,
)
from src.cycles.ovulation import OvulationPredictor
from src.cycles.records import CycleStats, DayRecord

logger = logging.getLogger("cyclewise.cycles.calendar")


@dataclass(frozen=True)
class CalendarDayState:
    date: date
    in_month: bool
    is_today: bool
    is_period: bool
    is_predicted: bool
    is_fertility: bool
    is_ovulation: bool
    has_data: bool

    @property
    def date_string(self) -> str:
        return self.date.isoformat()

    @property
    def day(self) -> int:
        return self.date.day


def _days_since_sunday(day: date) -> int:
    return (day.weekday() + 1) % 7


def calendar_grid_bounds(month_start: date) -> tuple[date, date]:
    """Return the first and last day of the Sunday-first grid for a month."""
    first = month_start.replace(day=1)
    last = first.replace(day=calendar.monthrange(first.year, first.month)[1])
    grid_start = add_days(first, -_days_since_sunday(first))
    grid_end = add_days(last, 6 - _days_since_sunday(last))
    return grid_start, grid_end


def _date_range(start: date, end: date) -> Iterable[date]:
    day = start
    while day <= end:
        yield day
        day = add_days(day, 1)


class CalendarProjector:
    """Paint one month of day states from logs and CycleStats.

    Usage::

        projector = CalendarProjector()
        days = projector.build_day_states(date(2026, 3, 1), records, stats, now, "UTC")
    """

    def __init__(
        self, config: CycleConfig | None = None, predictor: OvulationPredictor | None = None
    ) -> None:
        self._config = config or get_cycle_config()
        self._predictor = predictor or OvulationPredictor(self._config)

    def predicted_cycle_length(self, stats: CycleStats) -> int:
        if stats.median_cycle_length > 0:
            return stats.median_cycle_length
        rounded = round_half_up(stats.average_cycle_length)
        return rounded if rounded > 0 else self._config.default_cycle_length

    def predicted_period_length(self, stats: CycleStats) -> int:
        rounded = round_half_up(stats.average_period_length)
        return rounded if rounded > 0 else self._config.default_period_length

    def build_day_states(
        self,
        month_start: date,
        records: Iterable[DayRecord],
        stats: CycleStats,
        now: date | datetime,
        location: tzinfo | str | None = None,
    ) -> list[CalendarDayState]:
        """Return one CalendarDayState per grid cell, in date order.

        Args:
            month_start: Any day of the month to render.
            records:     DayRecords in or near the month.
            stats:       Reconciled statistics for the user.
            now:         Caller-supplied current moment.
            location:    Location used for every date normalization.
        """
        tz = resolve_location(location)
        records = list(records)
        grid_start, grid_end = calendar_grid_bounds(month_start)
        month = month_start.month

        latest_by_day = latest_records_by_day(records, tz)
        has_data: set[date] = {
            date_at_location(record.date, tz) for record in records if day_has_data(record)
        }

        predicted: set[date] = set()
        fertility: set[date] = set()
        ovulation: set[date] = set()

        if stats.fertility_window_start is not None and stats.fertility_window_end is not None:
            fertility.update(_date_range(stats.fertility_window_start, stats.fertility_window_end))
        if stats.ovulation_date is not None:
            ovulation.add(stats.ovulation_date)

        cycle_length = self.predicted_cycle_length(stats)
        period_length = self.predicted_period_length(stats)

        if stats.next_period_start is not None:
            cycle_start = stats.next_period_start
            projected = 0
            while cycle_start <= grid_end:
                predicted.update(add_days(cycle_start, offset) for offset in range(period_length))

                window = self._predictor.predict(cycle_start, cycle_length, period_length)
                if window.calculable:
                    ovulation.add(window.ovulation_date)
                    if window.has_fertility_window:
                        fertility.update(_date_range(window.fertility_start, window.fertility_end))

                cycle_start = add_days(cycle_start, cycle_length)
                projected += 1
            logger.debug("Projected %d cycle(s) of %d days onto the grid", projected, cycle_length)

        today = date_at_location(now, tz)
        days: list[CalendarDayState] = []
        for day in _date_range(grid_start, grid_end):
            entry = latest_by_day.get(day)
            is_ovulation = day in ovulation
            days.append(
                CalendarDayState(
                    date=day,
                    in_month=day.month == month,
                    is_today=day == today,
                    is_period=entry is not None and entry.is_period,
                    is_predicted=day in predicted,
                    is_fertility=day in fertility and not is_ovulation,
                    is_ovulation=is_ovulation,
                    has_data=day in has_data,
                )
            )
        return days
