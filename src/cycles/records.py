"""Core data types for the cycle engine.

``DayRecord`` and ``UserBaseline`` arrive from external collaborators (the
log store and the settings store) and are never modified here.  ``Cycle``
and ``CycleStats`` are derived on every request and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class Flow(str, Enum):
    none = "none"
    light = "light"
    medium = "medium"
    heavy = "heavy"


class Role(str, Enum):
    owner = "owner"
    partner = "partner"


class Phase(str, Enum):
    menstrual = "menstrual"
    follicular = "follicular"
    fertile = "fertile"
    ovulation = "ovulation"
    luteal = "luteal"
    unknown = "unknown"


@dataclass(frozen=True)
class DayRecord:
    """One logged day for one user.

    Attributes:
        date:        Calendar day, or the stored timestamp of the entry.  A
                     ``datetime`` is normalized into the caller's location
                     before any day comparison and doubles as the wall-clock
                     timestamp for duplicate resolution.
        is_period:   True if the user flagged this day as a period day.
        flow:        Flow intensity.
        symptom_ids: Opaque symptom identifiers.
        notes:       Free-form notes.
        id:          Store identifier; breaks ties between duplicates.
    """

    date: date | datetime
    is_period: bool = False
    flow: Flow = Flow.none
    symptom_ids: frozenset[int] = field(default_factory=frozenset)
    notes: str = ""
    id: int = 0


@dataclass(frozen=True)
class UserBaseline:
    """Onboarding values declared by the user.

    Only ``owner`` baselines take part in prediction.
    """

    role: Role = Role.owner
    cycle_length: int = 28
    period_length: int = 5
    auto_period_fill: bool = True
    last_period_start: date | datetime | None = None

    @property
    def is_owner(self) -> bool:
        return self.role == Role.owner


@dataclass(frozen=True)
class Cycle:
    """A reconstructed cycle: start day to the day before the next start."""

    start_date: date
    end_date: date
    period_length_days: int


@dataclass(frozen=True)
class CycleStats:
    """Cycle statistics and predictions for one user at one moment.

    Absent dates are ``None``; zero lengths mean "not observed".
    """

    current_cycle_day: int = 0
    current_phase: Phase = Phase.unknown
    average_cycle_length: float = 0.0
    median_cycle_length: int = 0
    average_period_length: float = 0.0
    last_period_start: date | None = None
    next_period_start: date | None = None
    ovulation_date: date | None = None
    ovulation_exact: bool = False
    ovulation_impossible: bool = False
    fertility_window_start: date | None = None
    fertility_window_end: date | None = None
