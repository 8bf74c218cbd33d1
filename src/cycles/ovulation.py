"""Ovulation day and fertile window prediction.

Algorithm:
1. ``remaining = cycle_length - period_length``.  Below ``min_remaining_days``
   (8) there is no room for a luteal phase: the prediction is infeasible.
2. Below ``exact_remaining_days`` (15) the 14-day luteal rule has no margin;
   ovulation falls back to ``period_length + 1`` days after the period start
   and is flagged as approximate.
3. Otherwise ovulation is ``cycle_length - luteal_phase_days`` days after the
   period start, kept after the period and before the next period.

The fertile window is five days before ovulation through one day after,
clamped into the days strictly between the period end and the next period.
An ovulation date that cannot sit strictly inside that span makes the whole
prediction infeasible.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.dates import add_days


@dataclass(frozen=True)
class OvulationWindow:
    """Prediction for one cycle.

    Attributes:
        ovulation_date:  Predicted ovulation day, None if infeasible.
        fertility_start: First fertile day, None if the window collapsed.
        fertility_end:   Last fertile day, None if the window collapsed.
        exact:           True if computed from the luteal-phase rule.
        calculable:      False if the cycle/period pair leaves no luteal phase.
    """

    ovulation_date: date | None = None
    fertility_start: date | None = None
    fertility_end: date | None = None
    exact: bool = False
    calculable: bool = False

    @property
    def has_fertility_window(self) -> bool:
        return self.fertility_start is not None and self.fertility_end is not None


_INFEASIBLE = OvulationWindow()


class OvulationPredictor:
    """Map (cycle length, period length) to an ovulation day and fertile window.

    Usage::

        predictor = OvulationPredictor()
        window = predictor.predict(date(2026, 2, 10), cycle_length=28, period_length=5)
        if window.calculable:
            print(window.ovulation_date, window.fertility_start, window.fertility_end)
    """

    def __init__(self, config: CycleConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    @property
    def _ov_config(self):
        return self._config.ovulation

    def ovulation_day_offset(self, cycle_length: int, period_length: int) -> tuple[int, bool] | None:
        """Return ``(offset, exact)`` counted in days from the period start.

        Args:
            cycle_length:  Cycle length in days.
            period_length: Period length in days.

        Returns:
            ``(offset, exact)``, or None when no luteal phase fits.

        Raises:
            ValueError: If either length is not positive.
        """
        if cycle_length <= 0 or period_length <= 0:
            raise ValueError(
                f"cycle_length and period_length must be positive, "
                f"got {cycle_length} and {period_length}"
            )

        oc = self._ov_config
        remaining = cycle_length - period_length
        if remaining < oc.min_remaining_days:
            return None
        if remaining < oc.exact_remaining_days:
            return period_length + 1, False

        offset = cycle_length - oc.luteal_phase_days
        if offset <= period_length:
            offset = period_length + 1
        if offset >= cycle_length:
            offset = cycle_length - 1
        return offset, True

    def predict(self, period_start: date, cycle_length: int, period_length: int) -> OvulationWindow:
        """Predict ovulation and the fertile window for the cycle at ``period_start``.

        Args:
            period_start:  First day of the period opening the cycle.
            cycle_length:  Cycle length in days.
            period_length: Period length in days.

        Returns:
            OvulationWindow; ``calculable`` is False and all dates are None
            when the pair leaves no viable luteal phase.
        """
        result = self.ovulation_day_offset(cycle_length, period_length)
        if result is None:
            return _INFEASIBLE
        offset, exact = result

        period_end = add_days(period_start, period_length - 1)
        next_period_start = add_days(period_start, cycle_length)

        ovulation = add_days(period_start, offset)
        if ovulation >= next_period_start:
            ovulation = add_days(next_period_start, -1)
        if ovulation <= period_end:
            return _INFEASIBLE

        oc = self._ov_config
        fertility_start = max(add_days(ovulation, -oc.fertile_days_before), add_days(period_end, 1))
        fertility_end = min(add_days(ovulation, oc.fertile_days_after), add_days(next_period_start, -1))
        if fertility_start > fertility_end:
            return OvulationWindow(ovulation_date=ovulation, exact=exact, calculable=True)

        return OvulationWindow(
            ovulation_date=ovulation,
            fertility_start=fertility_start,
            fertility_end=fertility_end,
            exact=exact,
            calculable=True,
        )
