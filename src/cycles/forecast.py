"""Forward projection of predictions for the dashboard.

A stored last period start can lie several cycles in the past when the user
has not logged for a while.  Adding a single cycle length to it can still
land in the past, so the dashboard re-anchors the cycle start forward by
whole cycle lengths until "next period" and "ovulation" are ahead of today.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, tzinfo

from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.dates import add_days, date_at_location, days_between, resolve_location, round_half_up
from src.cycles.ovulation import OvulationPredictor
from src.cycles.records import CycleStats, UserBaseline


def project_cycle_start(
    last_start: date | None, cycle_length: int, today: date
) -> tuple[date, int] | None:
    """Return ``(current_cycle_start, cycle_day)`` projected up to ``today``.

    Args:
        last_start:   Last known period start.
        cycle_length: Cycle length used to step forward.
        today:        Current calendar day.

    Returns:
        The start of the cycle containing ``today`` and the 1-based day
        within it; ``(last_start, 0)`` if ``today`` precedes ``last_start``;
        None when there is no start or no usable cycle length.
    """
    if last_start is None or cycle_length <= 0:
        return None
    if today < last_start:
        return last_start, 0

    elapsed = days_between(last_start, today)
    cycles_elapsed = elapsed // cycle_length
    projected_start = add_days(last_start, cycles_elapsed * cycle_length)
    return projected_start, elapsed % cycle_length + 1


def shift_to_future_ovulation(
    cycle_start: date, ovulation_date: date, cycle_length: int, today: date
) -> date:
    """Move ``cycle_start`` forward by whole cycles until ovulation is not past.

    Returns ``cycle_start`` unchanged when the ovulation is today or later.
    """
    if cycle_length <= 0 or ovulation_date >= today:
        return cycle_start
    lag = days_between(ovulation_date, today)
    shift_cycles = lag // cycle_length + 1
    return add_days(cycle_start, shift_cycles * cycle_length)


@dataclass(frozen=True)
class UpcomingPrediction:
    next_period_start: date | None
    ovulation_date: date | None
    ovulation_exact: bool
    ovulation_impossible: bool


@dataclass(frozen=True)
class DashboardCycleContext:
    """What the dashboard shows about the current cycle.

    Attributes:
        cycle_day_reference:          Cycle length the current day is compared with.
        cycle_day_warning:            Current day runs well past the reference.
        cycle_data_stale:             The last known start is over a cycle old.
        display_next_period_start:    Next period start, never in the past.
        display_ovulation_date:       Upcoming ovulation, None if impossible.
        display_ovulation_exact:      Ovulation computed from the luteal rule.
        display_ovulation_impossible: No viable luteal phase.
    """

    cycle_day_reference: int
    cycle_day_warning: bool
    cycle_data_stale: bool
    display_next_period_start: date | None
    display_ovulation_date: date | None
    display_ovulation_exact: bool
    display_ovulation_impossible: bool


class DashboardForecaster:
    """Build dashboard predictions that never point into the past."""

    def __init__(
        self, config: CycleConfig | None = None, predictor: OvulationPredictor | None = None
    ) -> None:
        self._config = config or get_cycle_config()
        self._predictor = predictor or OvulationPredictor(self._config)

    def _owner(self, baseline: UserBaseline | None) -> UserBaseline | None:
        return baseline if baseline is not None and baseline.is_owner else None

    def reference_length(self, baseline: UserBaseline | None, stats: CycleStats) -> int:
        owner = self._owner(baseline)
        if owner is not None and self._config.is_valid_cycle_length(owner.cycle_length):
            return owner.cycle_length
        if stats.median_cycle_length > 0:
            return stats.median_cycle_length
        if stats.average_cycle_length > 0:
            return round_half_up(stats.average_cycle_length)
        return self._config.default_cycle_length

    def predicted_period_length(self, baseline: UserBaseline | None, stats: CycleStats) -> int:
        owner = self._owner(baseline)
        if owner is not None and self._config.is_valid_period_length(owner.period_length):
            return owner.period_length
        predicted = round_half_up(stats.average_period_length)
        if predicted > 0:
            return predicted
        return self._config.default_period_length

    def cycle_day_looks_long(self, current_day: int, reference_length: int) -> bool:
        if current_day <= 0 or reference_length <= 0:
            return False
        return current_day > reference_length + self._config.dashboard.long_cycle_margin_days

    @staticmethod
    def cycle_data_looks_stale(anchor: date | None, today: date, reference_length: int) -> bool:
        if anchor is None or reference_length <= 0 or today < anchor:
            return False
        return days_between(anchor, today) + 1 > reference_length

    def stale_anchor(
        self, baseline: UserBaseline | None, stats: CycleStats, location: tzinfo | str | None = None
    ) -> date | None:
        """Prefer the declared last period start over the observed one."""
        owner = self._owner(baseline)
        if owner is None or owner.last_period_start is None:
            return stats.last_period_start
        return date_at_location(owner.last_period_start, location)

    def upcoming_predictions(
        self,
        stats: CycleStats,
        baseline: UserBaseline | None,
        today: date,
        cycle_length: int,
    ) -> UpcomingPrediction:
        """Re-anchor next period and ovulation so neither lies before today."""
        fallback = UpcomingPrediction(
            next_period_start=stats.next_period_start,
            ovulation_date=stats.ovulation_date,
            ovulation_exact=stats.ovulation_exact,
            ovulation_impossible=stats.ovulation_impossible,
        )
        projection = project_cycle_start(stats.last_period_start, cycle_length, today)
        if projection is None:
            return fallback

        cycle_start = projection[0]
        period_length = self.predicted_period_length(baseline, stats)
        window = self._predictor.predict(cycle_start, cycle_length, period_length)
        if window.calculable and window.ovulation_date < today:
            cycle_start = shift_to_future_ovulation(cycle_start, window.ovulation_date, cycle_length, today)
            window = self._predictor.predict(cycle_start, cycle_length, period_length)

        next_period_start = add_days(cycle_start, cycle_length)
        if not window.calculable:
            return UpcomingPrediction(next_period_start, None, False, True)
        return UpcomingPrediction(next_period_start, window.ovulation_date, window.exact, False)

    def build_context(
        self,
        baseline: UserBaseline | None,
        stats: CycleStats,
        now: date | datetime,
        location: tzinfo | str | None = None,
    ) -> DashboardCycleContext:
        tz = resolve_location(location)
        today = date_at_location(now, tz)
        reference = self.reference_length(baseline, stats)
        upcoming = self.upcoming_predictions(stats, baseline, today, reference)
        return DashboardCycleContext(
            cycle_day_reference=reference,
            cycle_day_warning=self.cycle_day_looks_long(stats.current_cycle_day, reference),
            cycle_data_stale=self.cycle_data_looks_stale(
                self.stale_anchor(baseline, stats, tz), today, reference
            ),
            display_next_period_start=upcoming.next_period_start,
            display_ovulation_date=upcoming.ovulation_date,
            display_ovulation_exact=upcoming.ovulation_exact,
            display_ovulation_impossible=upcoming.ovulation_impossible,
        )
