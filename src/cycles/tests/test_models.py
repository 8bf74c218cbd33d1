"""Tests for the pydantic read/write schemas of the cycle engine."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from src.cycles.aggregator import StatisticsAggregator
from src.cycles.calendar_projector import CalendarProjector
from src.cycles.config_loader import CycleConfig
from src.cycles.forecast import DashboardForecaster
from src.cycles.records import DayRecord, Flow, Role
from src.models.cycles import (
    CalendarDayRead,
    CycleSettingsUpdate,
    CycleStatsRead,
    DashboardCycleRead,
    DayRecordIn,
)


class TestDayRecordIn:
    def test_parse_date_only(self) -> None:
        record = DayRecordIn.model_validate(
            {"date": "2026-02-10", "is_period": True, "flow": "heavy", "symptom_ids": [2, 1, 2]}
        ).to_record()
        assert record == DayRecord(
            date=date(2026, 2, 10), is_period=True, flow=Flow.heavy, symptom_ids=frozenset({1, 2})
        )

    def test_parse_timestamp(self) -> None:
        record = DayRecordIn.model_validate({"date": "2026-02-10T23:30:00+00:00", "id": 4}).to_record()
        assert isinstance(record.date, datetime)
        assert record.id == 4

    def test_notes_are_stripped(self) -> None:
        assert DayRecordIn(date=date(2026, 2, 10), notes="  cramps ").notes == "cramps"

    def test_unknown_flow_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DayRecordIn.model_validate({"date": "2026-02-10", "flow": "torrential"})


class TestCycleSettingsUpdate:
    def test_valid(self) -> None:
        baseline = CycleSettingsUpdate(cycle_length=30, period_length=6).to_baseline()
        assert baseline.role == Role.owner
        assert (baseline.cycle_length, baseline.period_length) == (30, 6)

    @pytest.mark.parametrize("cycle_length, period_length", [(14, 5), (91, 5), (28, 0), (28, 15)])
    def test_out_of_range(self, cycle_length: int, period_length: int) -> None:
        with pytest.raises(ValidationError):
            CycleSettingsUpdate(cycle_length=cycle_length, period_length=period_length)

    def test_incompatible_pair(self) -> None:
        with pytest.raises(ValidationError, match="incompatible"):
            CycleSettingsUpdate(cycle_length=15, period_length=10)

    def test_last_period_start_in_range(self) -> None:
        update = CycleSettingsUpdate.model_validate(
            {"cycle_length": 28, "period_length": 5, "last_period_start": "2026-03-01"},
            context={"now": date(2026, 3, 10)},
        )
        assert update.to_baseline().last_period_start == date(2026, 3, 1)

    def test_future_last_period_start_rejected(self) -> None:
        with pytest.raises(ValidationError, match="outside"):
            CycleSettingsUpdate.model_validate(
                {"cycle_length": 28, "period_length": 5, "last_period_start": "2999-01-01"},
                context={"now": date(2026, 3, 10)},
            )

    def test_last_period_start_needs_now(self) -> None:
        with pytest.raises(ValidationError, match="now"):
            CycleSettingsUpdate(cycle_length=28, period_length=5, last_period_start=date(2999, 1, 1))

    def test_onboarding_context_narrows_range(self) -> None:
        form = {"cycle_length": 28, "period_length": 5, "last_period_start": "2026-01-05"}
        CycleSettingsUpdate.model_validate(form, context={"now": date(2026, 3, 10)})
        with pytest.raises(ValidationError, match="outside"):
            CycleSettingsUpdate.model_validate(
                form, context={"now": date(2026, 3, 10), "onboarding": True}
            )

    def test_location_from_context(self) -> None:
        now = datetime(2026, 1, 1, 3, 0, tzinfo=timezone.utc)
        form = {"cycle_length": 28, "period_length": 5, "last_period_start": "2026-01-01"}
        CycleSettingsUpdate.model_validate(form, context={"now": now, "location": "UTC"})
        with pytest.raises(ValidationError):
            CycleSettingsUpdate.model_validate(
                form, context={"now": now, "location": "America/New_York"}
            )


class TestReadModels:
    def test_stats_json(
        self,
        cycle_config: CycleConfig,
        scenario_a_records: list[DayRecord],
        scenario_a_now: datetime,
    ) -> None:
        stats = StatisticsAggregator(cycle_config).build_stats(scenario_a_records, scenario_a_now, "UTC")
        payload = json.loads(CycleStatsRead.model_validate(stats).model_dump_json())
        assert payload["current_phase"] == "follicular"
        assert payload["next_period_start"] == "2025-03-26"
        assert payload["average_period_length"] == 4.0
        assert payload["fertility_window_start"] == "2025-03-07"

    def test_stats_json_is_byte_identical(
        self,
        cycle_config: CycleConfig,
        scenario_a_records: list[DayRecord],
        scenario_a_now: datetime,
    ) -> None:
        aggregator = StatisticsAggregator(cycle_config)
        first = CycleStatsRead.model_validate(
            aggregator.build_stats(scenario_a_records, scenario_a_now, "UTC")
        ).model_dump_json()
        second = CycleStatsRead.model_validate(
            aggregator.build_stats(list(reversed(scenario_a_records)), scenario_a_now, "UTC")
        ).model_dump_json()
        assert first.encode() == second.encode()

    def test_calendar_day_json(
        self,
        cycle_config: CycleConfig,
        scenario_a_records: list[DayRecord],
        scenario_a_now: datetime,
    ) -> None:
        stats = StatisticsAggregator(cycle_config).build_stats(scenario_a_records, scenario_a_now, "UTC")
        days = CalendarProjector(cycle_config).build_day_states(
            date(2025, 3, 1), scenario_a_records, stats, scenario_a_now, "UTC"
        )
        rows = [CalendarDayRead.model_validate(d).model_dump(mode="json") for d in days]
        today = next(r for r in rows if r["is_today"])
        assert today["date_string"] == "2025-03-05"
        assert today["day"] == 5
        assert next(r for r in rows if r["date"] == "2025-03-12")["is_ovulation"]

    def test_dashboard_json(self, cycle_config: CycleConfig, scenario_a_records: list[DayRecord]) -> None:
        now = date(2025, 3, 20)
        stats = StatisticsAggregator(cycle_config).build_stats(scenario_a_records, now, "UTC")
        context = DashboardForecaster(cycle_config).build_context(None, stats, now, "UTC")
        payload = DashboardCycleRead.model_validate(context).model_dump(mode="json")
        assert payload["display_next_period_start"] == "2025-04-23"
        assert payload["display_ovulation_date"] == "2025-04-09"
