"""Decide which cycle reminders are due today.

Delivery (push, email) is someone else's job.  The planner only answers
"what should go out for this user today", and remembers what it already
planned through a bounded LRU cache the caller owns, so a scheduler that
runs several times a day does not send the same reminder twice.

Reminder kinds:
    - period:    ``period_lead_days`` (2) days before the next period
    - fertility: on the first day of the fertile window
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Hashable

from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.dates import days_between
from src.cycles.records import CycleStats, UserBaseline

logger = logging.getLogger("cyclewise.cycles.reminders")


class ReminderKind(str, Enum):
    period = "period"
    fertility = "fertility"


@dataclass(frozen=True)
class Reminder:
    """One reminder to hand to a delivery channel.

    Attributes:
        kind:        Reminder kind.
        user_id:     Opaque user identifier.
        send_on:     Day the reminder goes out.
        target_date: Day the reminder is about (period start, window start).
    """

    kind: ReminderKind
    user_id: Hashable
    send_on: date
    target_date: date

    @property
    def key(self) -> tuple[str, Hashable, date]:
        return self.kind.value, self.user_id, self.target_date


class SentReminderCache:
    """Bounded LRU of reminder keys already planned.

    Usage::

        cache = SentReminderCache(capacity=500)
        if not cache.is_sent(key):
            cache.mark_sent(key)
            # hand the reminder to a delivery channel
    """

    def __init__(self, capacity: int = 500) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._keys: OrderedDict[tuple, None] = OrderedDict()

    @property
    def capacity(self) -> int:
        return self._capacity

    def is_sent(self, key: tuple) -> bool:
        """Return True if ``key`` was marked, refreshing its recency."""
        if key not in self._keys:
            return False
        self._keys.move_to_end(key)
        return True

    def mark_sent(self, key: tuple) -> None:
        """Remember ``key``, evicting the least recently used one when full."""
        self._keys[key] = None
        self._keys.move_to_end(key)
        while len(self._keys) > self._capacity:
            self._keys.popitem(last=False)

    def clear(self) -> None:
        self._keys.clear()

    def __contains__(self, key: tuple) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)


class ReminderPlanner:
    """Plan due reminders from reconciled CycleStats."""

    def __init__(self, config: CycleConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    def new_cache(self) -> SentReminderCache:
        """Return an empty cache sized from the reminder config."""
        return SentReminderCache(self._config.reminders.cache_size)

    def due(
        self, user_id: Hashable, baseline: UserBaseline | None, stats: CycleStats, today: date
    ) -> list[Reminder]:
        """Return the reminders due on ``today``, ignoring what was sent."""
        if baseline is not None and not baseline.is_owner:
            return []

        rc = self._config.reminders
        due: list[Reminder] = []
        if (
            stats.next_period_start is not None
            and days_between(today, stats.next_period_start) == rc.period_lead_days
        ):
            due.append(Reminder(ReminderKind.period, user_id, today, stats.next_period_start))

        if rc.fertility_window and stats.fertility_window_start == today:
            due.append(Reminder(ReminderKind.fertility, user_id, today, today))
        return due

    def plan(
        self,
        user_id: Hashable,
        baseline: UserBaseline | None,
        stats: CycleStats,
        today: date,
        cache: SentReminderCache,
    ) -> list[Reminder]:
        """Return reminders due today that were not planned before.

        Args:
            user_id:  Opaque user identifier.
            baseline: The user's baseline; partners never get reminders.
            stats:    Reconciled statistics for the user.
            today:    Calendar day in the user's location.
            cache:    Keys already planned; updated in place.

        Returns:
            New reminders, period first.
        """
        planned: list[Reminder] = []
        for reminder in self.due(user_id, baseline, stats, today):
            if cache.is_sent(reminder.key):
                logger.debug("Skipping already planned reminder: %s", reminder.key)
                continue
            cache.mark_sent(reminder.key)
            planned.append(reminder)

        if planned:
            logger.info(
                "Planned %d reminder(s) for user %s: %s",
                len(planned),
                user_id,
                ", ".join(r.kind.value for r in planned),
            )
        return planned
