"""Pydantic models for cycle engine input and output.

Read models are built from the engine's dataclasses with
``Model.model_validate(obj)`` and serialized with ``model_dump_json()``.
Identical engine results always produce identical JSON bytes.
"""

from __future__ import annotations

import datetime as dt

from pydantic import Field, ValidationInfo, model_validator

from src.cycles.baseline import (
    BaselineValidationError,
    validate_cycle_settings,
    validate_cycle_start_date,
)
from src.cycles.records import DayRecord, Flow, Phase, Role, UserBaseline
from src.models.base import CyclewiseBase


# ---------- Day records ----------

class DayRecordIn(CyclewiseBase):
    date: dt.date | dt.datetime
    is_period: bool = False
    flow: Flow = Flow.none
    symptom_ids: list[int] = Field(default_factory=list)
    notes: str = ""
    id: int = Field(default=0, ge=0)

    def to_record(self) -> DayRecord:
        return DayRecord(
            date=self.date,
            is_period=self.is_period,
            flow=self.flow,
            symptom_ids=frozenset(self.symptom_ids),
            notes=self.notes,
            id=self.id,
        )


# ---------- Baseline / settings ----------

class CycleSettingsUpdate(CyclewiseBase):
    """Onboarding or settings form values for an owner.

    A ``last_period_start`` is checked against the current day, so it needs
    a validation context: ``now`` (required), ``location`` and
    ``onboarding`` (narrower range)::

        CycleSettingsUpdate.model_validate(form, context={"now": now, "location": "Europe/Berlin"})
    """

    cycle_length: int = Field(default=28, ge=15, le=90)
    period_length: int = Field(default=5, ge=1, le=14)
    auto_period_fill: bool = True
    last_period_start: dt.date | None = None

    @model_validator(mode="after")
    def _check_settings(self, info: ValidationInfo) -> CycleSettingsUpdate:
        try:
            validate_cycle_settings(self.cycle_length, self.period_length)
            if self.last_period_start is not None:
                context = info.context or {}
                if context.get("now") is None:
                    raise ValueError("last_period_start needs a 'now' in the validation context")
                validate_cycle_start_date(
                    self.last_period_start,
                    context["now"],
                    context.get("location"),
                    onboarding=bool(context.get("onboarding", False)),
                )
        except BaselineValidationError as exc:
            raise ValueError(str(exc)) from exc
        return self

    def to_baseline(self, role: Role = Role.owner) -> UserBaseline:
        return UserBaseline(
            role=role,
            cycle_length=self.cycle_length,
            period_length=self.period_length,
            auto_period_fill=self.auto_period_fill,
            last_period_start=self.last_period_start,
        )


# ---------- Statistics ----------

class CycleStatsRead(CyclewiseBase):
    current_cycle_day: int
    current_phase: Phase
    average_cycle_length: float
    median_cycle_length: int
    average_period_length: float
    last_period_start: dt.date | None = None
    next_period_start: dt.date | None = None
    ovulation_date: dt.date | None = None
    ovulation_exact: bool = False
    ovulation_impossible: bool = False
    fertility_window_start: dt.date | None = None
    fertility_window_end: dt.date | None = None


class CycleTrendRead(CyclewiseBase):
    lengths: list[int] = Field(default_factory=list)
    baseline_cycle_length: int = 0


class StatsFlagsRead(CyclewiseBase):
    has_observed_cycle_data: bool
    has_trend_data: bool
    has_reliable_trend: bool
    cycle_data_stale: bool


# ---------- Calendar ----------

class CalendarDayRead(CyclewiseBase):
    date: dt.date
    date_string: str
    day: int
    in_month: bool
    is_today: bool
    is_period: bool
    is_predicted: bool
    is_fertility: bool
    is_ovulation: bool
    has_data: bool


# ---------- Dashboard ----------

class DashboardCycleRead(CyclewiseBase):
    cycle_day_reference: int
    cycle_day_warning: bool
    cycle_data_stale: bool
    display_next_period_start: dt.date | None = None
    display_ovulation_date: dt.date | None = None
    display_ovulation_exact: bool = False
    display_ovulation_impossible: bool = False
