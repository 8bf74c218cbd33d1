"""Shared fixtures and record builders for cycle engine tests."""

from __future__ import annotations

import json
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Hashable

import pytest

from src.cycles.config_loader import CycleConfig, load_cycle_config
from src.cycles.dates import date_at_location
from src.cycles.records import DayRecord, Flow, Role, UserBaseline
from src.models.cycles import DayRecordIn

# Fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Canonical test user and day
TEST_USER_ID = "user-1"
TEST_DATE = date(2026, 2, 17)


def period_run(start: date, days: int, first_id: int = 1) -> list[DayRecord]:
    """Consecutive period days starting at ``start``."""
    return [
        DayRecord(date=start + timedelta(days=i), is_period=True, flow=Flow.medium, id=first_id + i)
        for i in range(days)
    ]


def period_days(*days: date) -> list[DayRecord]:
    return [DayRecord(date=d, is_period=True, flow=Flow.light, id=i + 1) for i, d in enumerate(days)]


def cycles_from_lengths(first_start: date, lengths: list[int], period_length: int = 4) -> list[DayRecord]:
    """Period runs separated by the given cycle lengths."""
    records: list[DayRecord] = []
    start = first_start
    for length in [*lengths, None]:
        records.extend(period_run(start, period_length, first_id=len(records) + 1))
        if length is not None:
            start = start + timedelta(days=length)
    return records


class InMemoryLogSource:
    """Log source over a dict of user id to DayRecords."""

    def __init__(self, records: dict[Hashable, list[DayRecord]] | None = None) -> None:
        self._records = records or {}
        self.range_calls: list[tuple] = []

    def list_all(self, user_id: Hashable) -> list[DayRecord]:
        return list(self._records.get(user_id, []))

    def list_in_range(
        self, user_id: Hashable, date_from: date | None = None, date_to: date | None = None
    ) -> list[DayRecord]:
        self.range_calls.append((user_id, date_from, date_to))
        selected = []
        for record in self._records.get(user_id, []):
            day = date_at_location(record.date, timezone.utc)
            if date_from is not None and day < date_from:
                continue
            if date_to is not None and day > date_to:
                continue
            selected.append(record)
        return selected


class InMemoryBaselineSource:
    def __init__(self, baselines: dict[Hashable, UserBaseline] | None = None) -> None:
        self._baselines = baselines or {}

    def get_baseline(self, user_id: Hashable) -> UserBaseline | None:
        return self._baselines.get(user_id)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cycle_config() -> CycleConfig:
    """Load the real cycle config for tests."""
    return load_cycle_config()


# ---------------------------------------------------------------------------
# Scenario fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def scenario_a_raw() -> dict:
    return json.loads((FIXTURES_DIR / "scenario_a.json").read_text())


@pytest.fixture
def scenario_a_records(scenario_a_raw: dict) -> list[DayRecord]:
    """Period days 2025-01-01..04, 01-29..02-01, 02-26..03-01 plus a symptom-only day."""
    return [DayRecordIn.model_validate(r).to_record() for r in scenario_a_raw["records"]]


@pytest.fixture
def scenario_a_now(scenario_a_raw: dict) -> datetime:
    return datetime.fromisoformat(scenario_a_raw["now"])


@pytest.fixture
def scenario_d_records() -> list[DayRecord]:
    """Two single logged period days: one observed gap only."""
    return period_days(date(2026, 2, 7), date(2026, 2, 16))


# ---------------------------------------------------------------------------
# Baseline fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def owner_baseline() -> UserBaseline:
    return UserBaseline(role=Role.owner, cycle_length=28, period_length=5)


@pytest.fixture
def partner_baseline() -> UserBaseline:
    return UserBaseline(role=Role.partner, cycle_length=29, period_length=6)
