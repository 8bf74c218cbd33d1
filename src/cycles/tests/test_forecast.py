"""Tests for dashboard forward projection."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from src.cycles.config_loader import CycleConfig
from src.cycles.forecast import (
    DashboardForecaster,
    UpcomingPrediction,
    project_cycle_start,
    shift_to_future_ovulation,
)
from src.cycles.records import CycleStats, Role, UserBaseline


@pytest.fixture
def forecaster(cycle_config: CycleConfig) -> DashboardForecaster:
    return DashboardForecaster(cycle_config)


STALE_STATS = CycleStats(
    current_cycle_day=40,
    median_cycle_length=28,
    average_cycle_length=28.0,
    average_period_length=5.0,
    last_period_start=date(2026, 1, 1),
    next_period_start=date(2026, 1, 29),
    ovulation_date=date(2026, 1, 15),
    ovulation_exact=True,
)


class TestProjectCycleStart:
    def test_whole_cycles_elapsed(self) -> None:
        assert project_cycle_start(date(2026, 1, 1), 28, date(2026, 3, 5)) == (date(2026, 2, 26), 8)

    def test_same_day(self) -> None:
        assert project_cycle_start(date(2026, 1, 1), 28, date(2026, 1, 1)) == (date(2026, 1, 1), 1)

    def test_today_before_start(self) -> None:
        assert project_cycle_start(date(2026, 1, 10), 28, date(2026, 1, 5)) == (date(2026, 1, 10), 0)

    def test_nothing_to_project(self) -> None:
        assert project_cycle_start(None, 28, date(2026, 1, 5)) is None
        assert project_cycle_start(date(2026, 1, 1), 0, date(2026, 1, 5)) is None


class TestShiftToFutureOvulation:
    def test_past_ovulation_moves_forward(self) -> None:
        assert shift_to_future_ovulation(
            date(2026, 2, 26), date(2026, 3, 12), 28, date(2026, 3, 20)
        ) == date(2026, 3, 26)

    def test_upcoming_ovulation_unchanged(self) -> None:
        start = date(2026, 2, 26)
        assert shift_to_future_ovulation(start, date(2026, 3, 12), 28, date(2026, 3, 12)) == start


class TestUpcomingPredictions:
    def test_reanchored_past_today(self, forecaster: DashboardForecaster) -> None:
        upcoming = forecaster.upcoming_predictions(STALE_STATS, None, date(2026, 3, 20), 28)
        assert upcoming == UpcomingPrediction(
            next_period_start=date(2026, 4, 23),
            ovulation_date=date(2026, 4, 9),
            ovulation_exact=True,
            ovulation_impossible=False,
        )

    def test_ovulation_still_ahead(self, forecaster: DashboardForecaster) -> None:
        upcoming = forecaster.upcoming_predictions(STALE_STATS, None, date(2026, 3, 10), 28)
        assert upcoming.next_period_start == date(2026, 3, 26)
        assert upcoming.ovulation_date == date(2026, 3, 12)

    def test_never_in_the_past(self, forecaster: DashboardForecaster) -> None:
        for offset in range(0, 120, 7):
            today = date.fromordinal(date(2026, 1, 1).toordinal() + offset)
            upcoming = forecaster.upcoming_predictions(STALE_STATS, None, today, 28)
            assert upcoming.next_period_start > today
            assert upcoming.ovulation_date >= today

    def test_impossible_pair(self, forecaster: DashboardForecaster) -> None:
        baseline = UserBaseline(role=Role.owner, cycle_length=15, period_length=10)
        stats = CycleStats(last_period_start=date(2026, 2, 10))
        upcoming = forecaster.upcoming_predictions(stats, baseline, date(2026, 2, 12), 15)
        assert upcoming == UpcomingPrediction(date(2026, 2, 25), None, False, True)

    def test_falls_back_without_last_start(self, forecaster: DashboardForecaster) -> None:
        stats = CycleStats(next_period_start=date(2026, 3, 1))
        upcoming = forecaster.upcoming_predictions(stats, None, date(2026, 2, 12), 28)
        assert upcoming.next_period_start == date(2026, 3, 1)
        assert upcoming.ovulation_date is None


class TestReferenceLength:
    def test_owner_baseline_wins(self, forecaster: DashboardForecaster) -> None:
        baseline = UserBaseline(role=Role.owner, cycle_length=29)
        assert forecaster.reference_length(baseline, STALE_STATS) == 29

    def test_partner_baseline_ignored(
        self, forecaster: DashboardForecaster, partner_baseline: UserBaseline
    ) -> None:
        assert forecaster.reference_length(partner_baseline, STALE_STATS) == 28

    def test_rounded_average(self, forecaster: DashboardForecaster) -> None:
        assert forecaster.reference_length(None, CycleStats(average_cycle_length=27.5)) == 28

    def test_default(self, forecaster: DashboardForecaster) -> None:
        assert forecaster.reference_length(None, CycleStats()) == 28

    def test_period_length(self, forecaster: DashboardForecaster) -> None:
        baseline = UserBaseline(role=Role.owner, period_length=6)
        assert forecaster.predicted_period_length(baseline, STALE_STATS) == 6
        assert forecaster.predicted_period_length(None, CycleStats(average_period_length=4.5)) == 5
        assert forecaster.predicted_period_length(None, CycleStats()) == 5


class TestWarnings:
    @pytest.mark.parametrize(
        "day, reference, expected",
        [(36, 28, True), (35, 28, False), (0, 28, False), (40, 0, False)],
    )
    def test_cycle_day_looks_long(
        self, forecaster: DashboardForecaster, day: int, reference: int, expected: bool
    ) -> None:
        assert forecaster.cycle_day_looks_long(day, reference) is expected

    @pytest.mark.parametrize(
        "anchor, today, expected",
        [
            (date(2026, 1, 1), date(2026, 1, 29), True),
            (date(2026, 1, 1), date(2026, 1, 28), False),
            (date(2026, 1, 10), date(2026, 1, 5), False),
            (None, date(2026, 1, 5), False),
        ],
    )
    def test_cycle_data_looks_stale(self, anchor: date | None, today: date, expected: bool) -> None:
        assert DashboardForecaster.cycle_data_looks_stale(anchor, today, 28) is expected

    def test_declared_start_is_the_stale_anchor(self, forecaster: DashboardForecaster) -> None:
        baseline = UserBaseline(
            role=Role.owner, last_period_start=datetime(2026, 1, 20, 22, 0, tzinfo=timezone.utc)
        )
        assert forecaster.stale_anchor(baseline, STALE_STATS, "UTC") == date(2026, 1, 20)
        assert forecaster.stale_anchor(baseline, STALE_STATS, "Asia/Tokyo") == date(2026, 1, 21)
        assert forecaster.stale_anchor(None, STALE_STATS, "UTC") == date(2026, 1, 1)


class TestBuildContext:
    def test_stale_dashboard(self, forecaster: DashboardForecaster) -> None:
        context = forecaster.build_context(None, STALE_STATS, date(2026, 2, 9), "UTC")
        assert context.cycle_day_reference == 28
        assert context.cycle_day_warning is True
        assert context.cycle_data_stale is True
        assert context.display_next_period_start == date(2026, 2, 26)
        assert context.display_ovulation_date == date(2026, 2, 12)
        assert context.display_ovulation_exact is True
        assert context.display_ovulation_impossible is False
