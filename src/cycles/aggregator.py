"""Robust cycle statistics from reconstructed cycles.

Averages and the median use the most recent ``window_cycles`` (6) cycles,
which keeps old irregular cycles from dominating while staying responsive
to recent patterns.  With no inter-start gaps every statistic is zero and
the caller supplies fallbacks.
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass, replace
from datetime import date, datetime, tzinfo
from typing import Iterable

from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.dates import (
    add_days,
    date_at_location,
    days_between,
    resolve_location,
    round_half_up,
)
from src.cycles.ovulation import OvulationPredictor
from src.cycles.phases import detect_current_phase
from src.cycles.reconstructor import CycleReconstructor
from src.cycles.records import Cycle, CycleStats, DayRecord

logger = logging.getLogger("cyclewise.cycles.aggregator")


@dataclass(frozen=True)
class CycleSummary:
    """Central-tendency statistics over the recent window."""

    average_cycle_length: float = 0.0
    median_cycle_length: int = 0
    average_period_length: float = 0.0


def median_half_up(values: list[int]) -> int:
    """Median of ``values``; even-sized inputs round the midpoint half-up."""
    if not values:
        return 0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 1:
        return ordered[mid]
    return round_half_up((ordered[mid - 1] + ordered[mid]) / 2)


class StatisticsAggregator:
    """Compute CycleStats from a user's DayRecords.

    Usage::

        aggregator = StatisticsAggregator()
        stats = aggregator.build_stats(records, now=datetime.now(tz), location=tz)
        print(stats.median_cycle_length, stats.next_period_start)
    """

    def __init__(
        self,
        config: CycleConfig | None = None,
        reconstructor: CycleReconstructor | None = None,
        predictor: OvulationPredictor | None = None,
    ) -> None:
        self._config = config or get_cycle_config()
        self._reconstructor = reconstructor or CycleReconstructor(self._config)
        self._predictor = predictor or OvulationPredictor(self._config)

    def summarize(self, starts: list[date], cycles: list[Cycle]) -> CycleSummary:
        """Return averages and median over the most recent window.

        Args:
            starts: Ascending cycle starts.
            cycles: Cycles built from the same starts.

        Returns:
            CycleSummary; all zero when fewer than two starts exist.
        """
        window = self._config.statistics.window_cycles
        lengths = CycleReconstructor.lengths_between(starts)[-window:]
        if not lengths:
            return CycleSummary()

        period_lengths = [c.period_length_days for c in cycles if c.period_length_days > 0][-window:]
        return CycleSummary(
            average_cycle_length=float(statistics.mean(lengths)),
            median_cycle_length=median_half_up(lengths),
            average_period_length=float(statistics.mean(period_lengths)) if period_lengths else 0.0,
        )

    def build_stats(
        self,
        records: Iterable[DayRecord],
        now: date | datetime,
        location: tzinfo | str | None = None,
    ) -> CycleStats:
        """Compute observed-only statistics and predictions.

        Args:
            records:  DayRecords for one user, any order.
            now:      Caller-supplied current moment.
            location: Location used for every date normalization.

        Returns:
            CycleStats; an empty one with phase "unknown" if no period day
            was ever logged.
        """
        tz = resolve_location(location)
        records = list(records)
        starts = self._reconstructor.detect_cycle_starts(records, tz)
        if not starts:
            return CycleStats()

        cycles = self._reconstructor.build_cycles(records, tz)
        summary = self.summarize(starts, cycles)

        last_start = starts[-1]
        cycle_length = summary.median_cycle_length or self._config.default_cycle_length
        period_length = round_half_up(summary.average_period_length)
        if period_length <= 0:
            period_length = self._config.default_period_length

        window = self._predictor.predict(last_start, cycle_length, period_length)

        today = date_at_location(now, tz)
        cycle_day = days_between(last_start, today) + 1 if today >= last_start else 0

        stats = CycleStats(
            current_cycle_day=cycle_day,
            average_cycle_length=summary.average_cycle_length,
            median_cycle_length=summary.median_cycle_length,
            average_period_length=summary.average_period_length,
            last_period_start=last_start,
            next_period_start=add_days(last_start, cycle_length),
            ovulation_date=window.ovulation_date,
            ovulation_exact=window.exact,
            ovulation_impossible=not window.calculable,
            fertility_window_start=window.fertility_start,
            fertility_window_end=window.fertility_end,
        )
        phase = detect_current_phase(
            stats, records, today, tz, default_period_length=self._config.default_period_length
        )
        logger.debug(
            "Observed stats: %d start(s), median %d, phase %s",
            len(starts),
            summary.median_cycle_length,
            phase.value,
        )
        return replace(stats, current_phase=phase)

    def completed_trend_lengths(
        self,
        records: Iterable[DayRecord],
        now: date | datetime,
        location: tzinfo | str | None = None,
    ) -> list[int]:
        """Return completed cycle lengths for charting, oldest first.

        A length counts only once the start that closes it is before today.
        """
        tz = resolve_location(location)
        starts = self._reconstructor.detect_cycle_starts(records, tz)
        today = date_at_location(now, tz)

        lengths: list[int] = []
        for previous, current in zip(starts, starts[1:]):
            if current >= today:
                break
            lengths.append(days_between(previous, current))
        return lengths
