"""Reconcile observed statistics with the user's onboarding baseline.

Observed data counts as reliable once ``reliable_min_gaps`` (2) completed
inter-start gaps exist.  Until then the onboarding cycle and period lengths
(or the global defaults) replace the observed ones, and the prediction is
recomputed from the most recent logged start or the declared last period
start.  Reliable observed results are kept as they are.

Only owners produce predictions.  A partner baseline, or no baseline at
all, leaves the statistics untouched.
"""

from __future__ import annotations

import logging
from dataclasses import replace
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
from src.cycles.forecast import project_cycle_start
from src.cycles.ovulation import OvulationPredictor
from src.cycles.phases import detect_current_phase
from src.cycles.reconstructor import CycleReconstructor
from src.cycles.records import CycleStats, DayRecord, UserBaseline

logger = logging.getLogger("cyclewise.cycles.baseline")


# ---------------------------------------------------------------------------
# Settings validation
# ---------------------------------------------------------------------------


class BaselineValidationError(ValueError):
    """Raised when declared cycle settings cannot be accepted."""


class CycleLengthOutOfRange(BaselineValidationError):
    pass


class PeriodLengthOutOfRange(BaselineValidationError):
    pass


class PeriodLengthIncompatible(BaselineValidationError):
    """The period leaves no room for a luteal phase in the declared cycle."""


def validate_cycle_settings(
    cycle_length: int, period_length: int, config: CycleConfig | None = None
) -> tuple[int, int]:
    """Check declared cycle settings before they are stored.

    Args:
        cycle_length:  Declared cycle length in days.
        period_length: Declared period length in days.
        config:        Engine config (defaults to the global one).

    Returns:
        The accepted ``(cycle_length, period_length)``.

    Raises:
        CycleLengthOutOfRange:    Cycle length outside the accepted range.
        PeriodLengthOutOfRange:   Period length outside the accepted range.
        PeriodLengthIncompatible: No ovulation day fits the combination.
    """
    config = config or get_cycle_config()
    if not config.is_valid_cycle_length(cycle_length):
        raise CycleLengthOutOfRange(
            f"cycle length {cycle_length} is outside "
            f"{config.cycle_length_range.min}-{config.cycle_length_range.max}"
        )
    if not config.is_valid_period_length(period_length):
        raise PeriodLengthOutOfRange(
            f"period length {period_length} is outside "
            f"{config.period_length_range.min}-{config.period_length_range.max}"
        )
    if OvulationPredictor(config).ovulation_day_offset(cycle_length, period_length) is None:
        raise PeriodLengthIncompatible(
            f"period length {period_length} is incompatible with cycle length {cycle_length}"
        )
    return cycle_length, period_length


class CycleStartDateInvalid(BaselineValidationError):
    """The declared last period start lies outside the accepted bounds."""


def settings_start_date_bounds(
    now: date | datetime, location: tzinfo | str | None = None
) -> tuple[date, date]:
    """Return the accepted last-period-start range on the settings form.

    From January 1 of the current year through today, both inclusive,
    with "today" taken at ``location``.
    """
    today = date_at_location(now, resolve_location(location))
    return date(today.year, 1, 1), today


def onboarding_start_date_bounds(
    now: date | datetime,
    location: tzinfo | str | None = None,
    config: CycleConfig | None = None,
) -> tuple[date, date]:
    """Return the accepted last-period-start range during onboarding.

    The settings range, further limited to the last
    ``onboarding_lookback_days`` (60) days.
    """
    config = config or get_cycle_config()
    year_start, today = settings_start_date_bounds(now, location)
    return max(year_start, add_days(today, -config.onboarding_lookback_days)), today


def validate_cycle_start_date(
    start: date,
    now: date | datetime,
    location: tzinfo | str | None = None,
    *,
    onboarding: bool = False,
    config: CycleConfig | None = None,
) -> date:
    """Check a declared last period start against today's bounds.

    Raises:
        CycleStartDateInvalid: ``start`` is in the future or too far back.
    """
    if onboarding:
        lower, upper = onboarding_start_date_bounds(now, location, config)
    else:
        lower, upper = settings_start_date_bounds(now, location)
    if start < lower or start > upper:
        raise CycleStartDateInvalid(
            f"last period start {start.isoformat()} is outside "
            f"{lower.isoformat()}..{upper.isoformat()}"
        )
    return start


def resolve_cycle_defaults(
    cycle_length: int | None, period_length: int | None, config: CycleConfig | None = None
) -> tuple[int, int]:
    """Replace out-of-range values with the global defaults."""
    config = config or get_cycle_config()
    resolved_cycle = cycle_length if config.is_valid_cycle_length(cycle_length) else config.default_cycle_length
    resolved_period = (
        period_length if config.is_valid_period_length(period_length) else config.default_period_length
    )
    return resolved_cycle, resolved_period


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------


class BaselineReconciler:
    """Merge observed CycleStats with an owner's onboarding baseline.

    Usage::

        reconciler = BaselineReconciler()
        stats = reconciler.apply(baseline, records, observed_stats, now, "Europe/Berlin")
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

    def is_reliable(self, records: Iterable[DayRecord], location: tzinfo | str | None = None) -> bool:
        """Return True if enough completed cycles were observed to trust them."""
        gaps = self._reconstructor.cycle_lengths(records, location)
        return len(gaps) >= self._config.statistics.reliable_min_gaps

    def apply(
        self,
        baseline: UserBaseline | None,
        records: Iterable[DayRecord],
        stats: CycleStats,
        now: date | datetime,
        location: tzinfo | str | None = None,
    ) -> CycleStats:
        """Return ``stats`` reconciled with ``baseline`` at ``now``.

        Args:
            baseline: The user's onboarding values; None or a partner role
                      returns ``stats`` unchanged.
            records:  The DayRecords ``stats`` was computed from.
            stats:    Observed statistics from the StatisticsAggregator.
            now:      Caller-supplied current moment.
            location: Location used for every date normalization.

        Returns:
            A new CycleStats; the input is never modified.
        """
        if baseline is None or not baseline.is_owner:
            return stats

        tz = resolve_location(location)
        records = list(records)
        config = self._config

        detected = self._reconstructor.detect_cycle_starts(records, tz)
        latest_logged_start = detected[-1] if detected else None
        reliable = len(CycleReconstructor.lengths_between(detected)) >= config.statistics.reliable_min_gaps

        cycle_length, period_length = resolve_cycle_defaults(
            baseline.cycle_length, baseline.period_length, config
        )

        updates: dict = {}
        if not reliable:
            updates["average_cycle_length"] = float(cycle_length)
            updates["median_cycle_length"] = cycle_length
            updates["average_period_length"] = float(period_length)
            if latest_logged_start is not None:
                updates["last_period_start"] = latest_logged_start
            elif baseline.last_period_start is not None:
                updates["last_period_start"] = date_at_location(baseline.last_period_start, tz)
        elif latest_logged_start is not None:
            updates["last_period_start"] = latest_logged_start
        stats = replace(stats, **updates)

        if stats.last_period_start is not None and (not reliable or stats.next_period_start is None):
            predicted_period_length = round_half_up(stats.average_period_length)
            if predicted_period_length <= 0:
                predicted_period_length = period_length
            window = self._predictor.predict(stats.last_period_start, cycle_length, predicted_period_length)
            stats = replace(
                stats,
                next_period_start=add_days(stats.last_period_start, cycle_length),
                ovulation_date=window.ovulation_date,
                ovulation_exact=window.exact,
                ovulation_impossible=not window.calculable,
                fertility_window_start=window.fertility_start,
                fertility_window_end=window.fertility_end,
            )

        # only a declared cycle length projects the current day; otherwise it is a raw count
        projection_length = baseline.cycle_length if config.is_valid_cycle_length(baseline.cycle_length) else 0

        today = date_at_location(now, tz)
        projection = project_cycle_start(stats.last_period_start, projection_length, today)
        if projection is not None:
            current_cycle_day = projection[1]
        elif stats.last_period_start is not None and today >= stats.last_period_start:
            current_cycle_day = days_between(stats.last_period_start, today) + 1
        else:
            current_cycle_day = 0

        stats = replace(stats, current_cycle_day=current_cycle_day)
        phase = detect_current_phase(
            stats, records, today, tz, default_period_length=config.default_period_length
        )
        logger.debug(
            "Reconciled stats: reliable=%s cycle_length=%d day=%d phase=%s",
            reliable,
            projection_length,
            current_cycle_day,
            phase.value,
        )
        return replace(stats, current_phase=phase)
