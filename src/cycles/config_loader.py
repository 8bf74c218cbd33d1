"""Load, validate, and hot-reload the Cyclewise cycle engine configuration.

The config lives in ``cycle_config.yaml`` alongside this module.  A different
file can be selected with the ``CYCLE_CONFIG_PATH`` setting.  At first use it
is loaded once and cached.  Call ``reload_cycle_config()`` to re-read from
disk after an admin update without a restart.

Usage::

    from src.cycles.config_loader import get_cycle_config

    config = get_cycle_config()
    gap = config.reconstruction.new_cycle_gap_days     # 5
    window = config.statistics.window_cycles           # 6
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

from src.config import get_settings

logger = logging.getLogger("cyclewise.cycles.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "cycle_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class ReconstructionConfig:
    """Gap-based segmentation of period days into cycles."""

    new_cycle_gap_days: int = 5
    period_lookahead_days: int = 10


@dataclass
class StatisticsConfig:
    """Rolling window used for cycle statistics."""

    window_cycles: int = 6
    reliable_min_gaps: int = 2


@dataclass
class OvulationConfig:
    """Ovulation day and fertile window policy."""

    luteal_phase_days: int = 14
    min_remaining_days: int = 8
    exact_remaining_days: int = 15
    fertile_days_before: int = 5
    fertile_days_after: int = 1


@dataclass
class LengthRange:
    """Inclusive range of accepted onboarding values."""

    min: int
    max: int

    def contains(self, value: int | None) -> bool:
        return value is not None and self.min <= value <= self.max


@dataclass
class DashboardConfig:
    """Dashboard warnings and trend sizing."""

    long_cycle_margin_days: int = 7
    reliable_trend_points: int = 3
    max_trend_points: int = 12


@dataclass
class ReminderConfig:
    """Which reminders are due and how many sent keys are remembered."""

    period_lead_days: int = 2
    fertility_window: bool = True
    cache_size: int = 500


@dataclass
class CycleConfig:
    """Complete, validated cycle engine configuration.

    This is the single in-memory representation of cycle_config.yaml.
    Every engine component reads its policy constants from this object.

    Attributes:
        version:               Config schema version string.
        reconstruction:        Cycle segmentation settings.
        statistics:            Rolling window settings.
        ovulation:             Ovulation prediction thresholds.
        default_cycle_length:  Global fallback cycle length in days.
        default_period_length: Global fallback period length in days.
        cycle_length_range:    Accepted onboarding cycle lengths.
        period_length_range:   Accepted onboarding period lengths.
        dashboard:             Dashboard warning settings.
        reminders:             Reminder planning settings.
        onboarding_lookback_days: Oldest declared last period start accepted
                               during onboarding, in days before today.
    """

    version: str
    reconstruction: ReconstructionConfig
    statistics: StatisticsConfig
    ovulation: OvulationConfig
    default_cycle_length: int
    default_period_length: int
    cycle_length_range: LengthRange
    period_length_range: LengthRange
    dashboard: DashboardConfig
    reminders: ReminderConfig
    onboarding_lookback_days: int = 60
    _raw: dict = field(default_factory=dict, repr=False)

    def is_valid_cycle_length(self, value: int | None) -> bool:
        """Return True if ``value`` is an acceptable onboarding cycle length."""
        return self.cycle_length_range.contains(value)

    def is_valid_period_length(self, value: int | None) -> bool:
        """Return True if ``value`` is an acceptable onboarding period length."""
        return self.period_length_range.contains(value)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when cycle_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    import yaml  # pyyaml

    if not path.exists():
        raise FileNotFoundError(f"Cycle config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> CycleConfig:
    """Validate the raw YAML dict and construct a CycleConfig.

    Missing sections fall back to the built-in defaults; present values must
    be positive integers (booleans where noted).

    Args:
        raw: Parsed YAML dict.

    Returns:
        Validated CycleConfig instance.

    Raises:
        ConfigValidationError: If any value is missing or invalid.
    """
    errors: list[str] = []

    def _positive_int(section: dict, key: str, path: str, default: int) -> int:
        value = section.get(key, default)
        if isinstance(value, bool) or not isinstance(value, int):
            errors.append(f"{path}.{key} must be an integer, got {value!r}")
            return default
        if value <= 0:
            errors.append(f"{path}.{key} must be a positive integer, got {value!r}")
        return value

    def _section(key: str) -> dict:
        value = raw.get(key) or {}
        if not isinstance(value, dict):
            errors.append(f"'{key}' must be a mapping")
            return {}
        return value

    version = str(raw.get("version", "1.0"))

    # ── Reconstruction ──
    rc_raw = _section("cycle_reconstruction")
    reconstruction = ReconstructionConfig(
        new_cycle_gap_days=_positive_int(rc_raw, "new_cycle_gap_days", "cycle_reconstruction", 5),
        period_lookahead_days=_positive_int(
            rc_raw, "period_lookahead_days", "cycle_reconstruction", 10
        ),
    )

    # ── Statistics ──
    st_raw = _section("statistics")
    statistics = StatisticsConfig(
        window_cycles=_positive_int(st_raw, "window_cycles", "statistics", 6),
        reliable_min_gaps=_positive_int(st_raw, "reliable_min_gaps", "statistics", 2),
    )

    # ── Ovulation ──
    ov_raw = _section("ovulation")
    ovulation = OvulationConfig(
        luteal_phase_days=_positive_int(ov_raw, "luteal_phase_days", "ovulation", 14),
        min_remaining_days=_positive_int(ov_raw, "min_remaining_days", "ovulation", 8),
        exact_remaining_days=_positive_int(ov_raw, "exact_remaining_days", "ovulation", 15),
        fertile_days_before=_positive_int(ov_raw, "fertile_days_before", "ovulation", 5),
        fertile_days_after=_positive_int(ov_raw, "fertile_days_after", "ovulation", 1),
    )
    if ovulation.exact_remaining_days < ovulation.min_remaining_days:
        errors.append(
            "ovulation.exact_remaining_days must be >= ovulation.min_remaining_days"
        )

    # ── Defaults and ranges ──
    df_raw = _section("defaults")
    default_cycle_length = _positive_int(df_raw, "cycle_length", "defaults", 28)
    default_period_length = _positive_int(df_raw, "period_length", "defaults", 5)

    br_raw = _section("baseline_ranges")
    ranges: dict[str, LengthRange] = {}
    for key, (lo, hi) in {"cycle_length": (15, 90), "period_length": (1, 14)}.items():
        r_raw = br_raw.get(key) or {}
        if not isinstance(r_raw, dict):
            errors.append(f"baseline_ranges.{key} must be a mapping with min/max")
            r_raw = {}
        bounds = LengthRange(
            min=_positive_int(r_raw, "min", f"baseline_ranges.{key}", lo),
            max=_positive_int(r_raw, "max", f"baseline_ranges.{key}", hi),
        )
        if bounds.min > bounds.max:
            errors.append(f"baseline_ranges.{key}: min {bounds.min} > max {bounds.max}")
        ranges[key] = bounds

    if not ranges["cycle_length"].contains(default_cycle_length):
        errors.append(
            f"defaults.cycle_length = {default_cycle_length} is outside baseline_ranges.cycle_length"
        )
    if not ranges["period_length"].contains(default_period_length):
        errors.append(
            f"defaults.period_length = {default_period_length} is outside baseline_ranges.period_length"
        )

    # ── Dashboard ──
    db_raw = _section("dashboard")
    dashboard = DashboardConfig(
        long_cycle_margin_days=_positive_int(db_raw, "long_cycle_margin_days", "dashboard", 7),
        reliable_trend_points=_positive_int(db_raw, "reliable_trend_points", "dashboard", 3),
        max_trend_points=_positive_int(db_raw, "max_trend_points", "dashboard", 12),
    )

    # ── Reminders ──
    rm_raw = _section("reminders")
    period_lead_days = rm_raw.get("period_lead_days", 2)
    if isinstance(period_lead_days, bool) or not isinstance(period_lead_days, int):
        errors.append(f"reminders.period_lead_days must be an integer, got {period_lead_days!r}")
        period_lead_days = 2
    if period_lead_days < 0:
        errors.append(f"reminders.period_lead_days must be >= 0, got {period_lead_days}")
    reminders = ReminderConfig(
        period_lead_days=period_lead_days,
        fertility_window=bool(rm_raw.get("fertility_window", True)),
        cache_size=_positive_int(rm_raw, "cache_size", "reminders", 500),
    )

    # ── Cycle start date ──
    sd_raw = _section("cycle_start_date")
    onboarding_lookback_days = _positive_int(
        sd_raw, "onboarding_lookback_days", "cycle_start_date", 60
    )

    if errors:
        raise ConfigValidationError(
            f"cycle_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return CycleConfig(
        version=version,
        reconstruction=reconstruction,
        statistics=statistics,
        ovulation=ovulation,
        default_cycle_length=default_cycle_length,
        default_period_length=default_period_length,
        cycle_length_range=ranges["cycle_length"],
        period_length_range=ranges["period_length"],
        dashboard=dashboard,
        reminders=reminders,
        onboarding_lookback_days=onboarding_lookback_days,
        _raw=raw,
    )


def _configured_path() -> Path:
    override = get_settings().cycle_config_path
    return Path(override) if override else _CONFIG_PATH


def load_cycle_config(path: Path | None = None) -> CycleConfig:
    """Load and validate the cycle config from disk.

    Args:
        path: Override path to YAML. Uses ``CYCLE_CONFIG_PATH`` or the bundled
              cycle_config.yaml by default.

    Returns:
        Validated CycleConfig instance.
    """
    target = path or _configured_path()
    raw = _load_yaml(target)
    if not isinstance(raw, dict):
        raise ConfigValidationError(f"{target} must contain a YAML mapping")
    config = _validate_and_build(raw)
    logger.info("Loaded cycle config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: CycleConfig | None = None
_config_lock = threading.Lock()


def get_cycle_config() -> CycleConfig:
    """Return the global CycleConfig singleton, loading it on first call.

    Thread-safe.  Use ``reload_cycle_config()`` to refresh after YAML changes.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_cycle_config()
    return _config


def reload_cycle_config(path: Path | None = None) -> CycleConfig:
    """Reload the cycle config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is
    re-raised.

    Args:
        path: Override path to YAML.

    Returns:
        The newly loaded CycleConfig.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_cycle_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded cycle config: %s → %s", old_version, new_config.version)
    return new_config
