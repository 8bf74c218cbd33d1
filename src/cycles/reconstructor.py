"""Reconstruct cycles from a raw stream of daily period flags.

A cycle starts on the first period day after a run of at least
``new_cycle_gap_days`` days without a period record.  Shorter holes inside
a period (one to four unlogged days) keep the run together, so a user who
forgot to log day 3 does not get two cycles.  Non-period days never break
a run on their own.
"""

from __future__ import annotations

import logging
from datetime import date, tzinfo
from typing import Iterable

from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.dates import add_days, days_between, latest_records_by_day
from src.cycles.records import Cycle, DayRecord

logger = logging.getLogger("cyclewise.cycles.reconstructor")


class CycleReconstructor:
    """Turn DayRecords into cycle starts, cycles and cycle lengths.

    Usage::

        reconstructor = CycleReconstructor()
        starts = reconstructor.detect_cycle_starts(records, "Europe/Berlin")
        cycles = reconstructor.build_cycles(records, "Europe/Berlin")
    """

    def __init__(self, config: CycleConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    def period_days(
        self, records: Iterable[DayRecord], location: tzinfo | str | None = None
    ) -> list[date]:
        """Return the sorted calendar days whose winning record is a period day."""
        by_day = latest_records_by_day(records, location)
        return sorted(day for day, record in by_day.items() if record.is_period)

    def detect_cycle_starts(
        self, records: Iterable[DayRecord], location: tzinfo | str | None = None
    ) -> list[date]:
        """Return cycle start days in ascending order.

        Args:
            records:  DayRecords for one user, any order.
            location: Location used to normalize record days.

        Returns:
            Ascending list of cycle start days (empty if no period days).
        """
        gap_threshold = self._config.reconstruction.new_cycle_gap_days
        starts: list[date] = []
        previous: date | None = None

        for day in self.period_days(records, location):
            if previous is None:
                starts.append(day)
            elif days_between(previous, day) - 1 >= gap_threshold:
                starts.append(day)
            previous = day

        return starts

    def build_cycles(
        self, records: Iterable[DayRecord], location: tzinfo | str | None = None
    ) -> list[Cycle]:
        """Return one Cycle per detected start, oldest first.

        A cycle ends the day before the next start; the newest cycle ends on
        its own start day.  Its period length counts consecutive period days
        from the start, scanning at most ``period_lookahead_days`` ahead.
        """
        records = list(records)
        period_set = set(self.period_days(records, location))
        starts = self.detect_cycle_starts(records, location)
        lookahead = self._config.reconstruction.period_lookahead_days

        cycles: list[Cycle] = []
        for i, start in enumerate(starts):
            end = add_days(starts[i + 1], -1) if i + 1 < len(starts) else start

            period_length = 0
            for offset in range(lookahead + 1):
                if add_days(start, offset) not in period_set:
                    break
                period_length += 1

            cycles.append(Cycle(start_date=start, end_date=end, period_length_days=period_length))

        logger.debug("Reconstructed %d cycle(s) from %d period day(s)", len(cycles), len(period_set))
        return cycles

    def cycle_lengths(
        self, records: Iterable[DayRecord], location: tzinfo | str | None = None
    ) -> list[int]:
        """Return the day count between each pair of consecutive starts."""
        return self.lengths_between(self.detect_cycle_starts(records, location))

    @staticmethod
    def lengths_between(starts: list[date]) -> list[int]:
        """Return ``starts[i+1] - starts[i]`` in days for each adjacent pair."""
        return [days_between(prev, cur) for prev, cur in zip(starts, starts[1:])]
