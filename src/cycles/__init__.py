"""Menstrual cycle engine for Cyclewise.

Turns a user's daily period log (plus an optional onboarding baseline) into
cycle statistics, a current phase, ovulation and fertile-window predictions,
and month calendar projections.  Everything is computed per request from the
records passed in; ``now`` and the location are always explicit.

Modules:
    reconstructor      Gap-based segmentation of period days into cycles
    aggregator         Windowed averages and median, observed predictions
    ovulation          Ovulation day and fertile window with infeasibility
    baseline           Onboarding baseline reconciliation and validation
    calendar_projector Month grid of logged and projected day states
    forecast           Dashboard predictions re-anchored past today
    reminders          Due period and fertility reminders
    service            The engine wired to log and baseline sources
"""

from src.cycles.aggregator import StatisticsAggregator
from src.cycles.baseline import (
    BaselineReconciler,
    BaselineValidationError,
    validate_cycle_settings,
    validate_cycle_start_date,
)
from src.cycles.calendar_projector import CalendarDayState, CalendarProjector
from src.cycles.forecast import DashboardCycleContext, DashboardForecaster
from src.cycles.ovulation import OvulationPredictor, OvulationWindow
from src.cycles.reconstructor import CycleReconstructor
from src.cycles.records import Cycle, CycleStats, DayRecord, Flow, Phase, Role, UserBaseline
from src.cycles.reminders import Reminder, ReminderPlanner, SentReminderCache
from src.cycles.service import CycleStatsService

__all__ = [
    "BaselineReconciler",
    "BaselineValidationError",
    "CalendarDayState",
    "CalendarProjector",
    "Cycle",
    "CycleReconstructor",
    "CycleStats",
    "CycleStatsService",
    "DashboardCycleContext",
    "DashboardForecaster",
    "DayRecord",
    "Flow",
    "OvulationPredictor",
    "OvulationWindow",
    "Phase",
    "Reminder",
    "ReminderPlanner",
    "Role",
    "SentReminderCache",
    "StatisticsAggregator",
    "UserBaseline",
    "validate_cycle_settings",
    "validate_cycle_start_date",
]
