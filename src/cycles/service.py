"""Cycle statistics service: the engine wired to its data sources.

The service reads DayRecords from a ``LogSource`` and the onboarding values
from a ``BaselineSource``, then runs aggregation, reconciliation and the
calendar or dashboard projection.  It never writes and never reads the
clock; ``now`` and the location are always passed in.

Usage::

    service = CycleStatsService(log_source, baseline_source)
    stats, records = service.build_stats(user_id, now, "Europe/Berlin")
    trend = service.build_trend(user_id, records, now, "Europe/Berlin")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Hashable, Protocol

from src.cycles.aggregator import StatisticsAggregator
from src.cycles.baseline import BaselineReconciler
from src.cycles.calendar_projector import CalendarDayState, CalendarProjector, calendar_grid_bounds
from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.dates import date_at_location, resolve_location
from src.cycles.forecast import DashboardCycleContext, DashboardForecaster
from src.cycles.ovulation import OvulationPredictor
from src.cycles.reconstructor import CycleReconstructor
from src.cycles.records import CycleStats, DayRecord, UserBaseline

logger = logging.getLogger("cyclewise.cycles.service")


class LogSource(Protocol):
    """Read-only access to a user's DayRecords."""

    def list_all(self, user_id: Hashable) -> list[DayRecord]: ...

    def list_in_range(
        self, user_id: Hashable, date_from: date | None = None, date_to: date | None = None
    ) -> list[DayRecord]: ...


class BaselineSource(Protocol):
    """Read-only access to a user's onboarding baseline."""

    def get_baseline(self, user_id: Hashable) -> UserBaseline | None: ...


@dataclass(frozen=True)
class CycleTrend:
    """Completed cycle lengths for charting, oldest first."""

    lengths: list[int] = field(default_factory=list)
    baseline_cycle_length: int = 0

    @property
    def point_count(self) -> int:
        return len(self.lengths)


@dataclass(frozen=True)
class StatsFlags:
    has_observed_cycle_data: bool = False
    has_trend_data: bool = False
    has_reliable_trend: bool = False
    cycle_data_stale: bool = False


class CycleStatsService:
    """Build statistics, trend, calendar and dashboard views for one user."""

    def __init__(
        self,
        log_source: LogSource,
        baseline_source: BaselineSource,
        config: CycleConfig | None = None,
    ) -> None:
        self._logs = log_source
        self._baselines = baseline_source
        self._config = config or get_cycle_config()

        predictor = OvulationPredictor(self._config)
        reconstructor = CycleReconstructor(self._config)
        self._reconstructor = reconstructor
        self._aggregator = StatisticsAggregator(self._config, reconstructor, predictor)
        self._reconciler = BaselineReconciler(self._config, reconstructor, predictor)
        self._calendar = CalendarProjector(self._config, predictor)
        self._forecaster = DashboardForecaster(self._config, predictor)

    def _records(
        self, user_id: Hashable, date_from: date | None, date_to: date | None
    ) -> list[DayRecord]:
        if date_from is None and date_to is None:
            return list(self._logs.list_all(user_id))
        return list(self._logs.list_in_range(user_id, date_from, date_to))

    def build_stats(
        self,
        user_id: Hashable,
        now: date | datetime,
        location: tzinfo | str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> tuple[CycleStats, list[DayRecord]]:
        """Return reconciled CycleStats and the records they came from.

        Args:
            user_id:   Opaque user identifier.
            now:       Caller-supplied current moment.
            location:  Location used for every date normalization.
            date_from: Optional first day of records to read.
            date_to:   Optional last day of records to read.
        """
        tz = resolve_location(location)
        records = self._records(user_id, date_from, date_to)
        baseline = self._baselines.get_baseline(user_id)

        stats = self._aggregator.build_stats(records, now, tz)
        stats = self._reconciler.apply(baseline, records, stats, now, tz)
        logger.debug(
            "Built stats for user %s from %d record(s): day=%d phase=%s",
            user_id,
            len(records),
            stats.current_cycle_day,
            stats.current_phase.value,
        )
        return stats, records

    def build_trend(
        self,
        user_id: Hashable,
        records: list[DayRecord],
        now: date | datetime,
        location: tzinfo | str | None = None,
        max_points: int | None = None,
    ) -> CycleTrend:
        """Return the trailing completed cycle lengths and the owner's baseline length.

        ``max_points`` defaults to the dashboard config; zero or less keeps
        every point.
        """
        if max_points is None:
            max_points = self._config.dashboard.max_trend_points
        lengths = self._aggregator.completed_trend_lengths(records, now, location)
        if 0 < max_points < len(lengths):
            lengths = lengths[-max_points:]

        baseline = self._baselines.get_baseline(user_id)
        baseline_length = 0
        if (
            baseline is not None
            and baseline.is_owner
            and self._config.is_valid_cycle_length(baseline.cycle_length)
        ):
            baseline_length = baseline.cycle_length
        return CycleTrend(lengths=lengths, baseline_cycle_length=baseline_length)

    def build_flags(
        self,
        user_id: Hashable,
        records: list[DayRecord],
        stats: CycleStats,
        now: date | datetime,
        location: tzinfo | str | None = None,
        trend_point_count: int = 0,
    ) -> StatsFlags:
        tz = resolve_location(location)
        baseline = self._baselines.get_baseline(user_id)
        today = date_at_location(now, tz)
        reference = self._forecaster.reference_length(baseline, stats)
        anchor = self._forecaster.stale_anchor(baseline, stats, tz)

        return StatsFlags(
            has_observed_cycle_data=len(self._reconstructor.cycle_lengths(records, tz)) > 0,
            has_trend_data=trend_point_count > 0,
            has_reliable_trend=trend_point_count >= self._config.dashboard.reliable_trend_points,
            cycle_data_stale=self._forecaster.cycle_data_looks_stale(anchor, today, reference),
        )

    def build_calendar(
        self,
        user_id: Hashable,
        month_start: date,
        now: date | datetime,
        location: tzinfo | str | None = None,
    ) -> list[CalendarDayState]:
        """Return the day states of the month grid containing ``month_start``."""
        tz = resolve_location(location)
        stats, _ = self.build_stats(user_id, now, tz)
        grid_start, grid_end = calendar_grid_bounds(month_start)
        records = list(self._logs.list_in_range(user_id, grid_start, grid_end))
        days = self._calendar.build_day_states(month_start, records, stats, now, tz)
        logger.debug(
            "Built calendar for user %s: %s..%s (%d cells)",
            user_id,
            grid_start.isoformat(),
            grid_end.isoformat(),
            len(days),
        )
        return days

    def build_dashboard(
        self,
        user_id: Hashable,
        now: date | datetime,
        location: tzinfo | str | None = None,
    ) -> tuple[CycleStats, DashboardCycleContext]:
        """Return reconciled stats with the forward-projected dashboard context."""
        tz = resolve_location(location)
        stats, _ = self.build_stats(user_id, now, tz)
        baseline = self._baselines.get_baseline(user_id)
        context = self._forecaster.build_context(baseline, stats, now, tz)
        logger.debug(
            "Built dashboard for user %s: next=%s warning=%s stale=%s",
            user_id,
            context.display_next_period_start,
            context.cycle_day_warning,
            context.cycle_data_stale,
        )
        return stats, context
