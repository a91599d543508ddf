"""Load, validate, and hot-reload the cycle engine configuration.

The config lives in ``cycle_config.yaml`` alongside this module.  At startup
it is loaded once and cached.  Call ``reload_cycle_config()`` to re-read from
disk after an admin update, no restart required.

Usage::

    from src.cycles.config_loader import get_cycle_config

    config = get_cycle_config()
    window = config.cycle_length.rolling_average_cycles   # 6
    luteal = config.ovulation.luteal_phase_days           # 14
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger("periodtracker.cycles.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "cycle_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProfileFallbacks:
    """Values substituted for missing profile fields."""

    average_cycle_length: int = 28
    average_period_length: int = 5


@dataclass(frozen=True)
class CycleLengthConfig:
    """Observed cycle length sampling and outlier bounds."""

    rolling_average_cycles: int = 6
    min_valid_days: int = 1
    max_valid_days: int = 60
    plausible_min_days: int = 20
    plausible_max_days: int = 45


@dataclass(frozen=True)
class OvulationConfig:
    """Fixed luteal phase and fertile window offsets around ovulation."""

    luteal_phase_days: int = 14
    fertile_days_before: int = 5
    fertile_days_after: int = 1


@dataclass(frozen=True)
class AccuracyConfig:
    """Accuracy score coefficients and label thresholds.

    score = base_score
            + per_cycle_bonus * min(cycles, saturation_cycles)
            - variability_penalty_per_day * variability

    clamped to [0, 100].
    """

    base_score: int = 40
    per_cycle_bonus: int = 10
    saturation_cycles: int = 6
    variability_penalty_per_day: float = 5.0
    high_threshold: int = 80  # ≥ this = high
    good_threshold: int = 60  # ≥ this = good


@dataclass(frozen=True)
class IrregularityConfig:
    """Deviation from the profile average that flags a cycle as irregular."""

    deviation_threshold_days: int = 7


@dataclass(frozen=True)
class BBTConfig:
    """Basal body temperature shift detection settings."""

    min_samples: int = 6
    shift_threshold: float = 0.2
    rolling_window: int = 3
    plausible_min: float = 95.0
    plausible_max: float = 101.5


@dataclass(frozen=True)
class CalendarConfig:
    """Calendar export envelope and deep-link settings."""

    product_id: str = "-//Period Tracker//Cycle Events//EN"
    calendar_name: str = "Period Tracker"
    uid_domain: str = "periodtracker.app"
    google_calendar_url: str = "https://calendar.google.com/calendar/render"
    default_months_ahead: int = 3


@dataclass(frozen=True)
class CycleConfig:
    """Complete, validated cycle engine configuration.

    This is the single in-memory representation of cycle_config.yaml.
    The prediction engine, BBT detector, and calendar projector all read
    from this object.

    Attributes:
        version:       Config schema version string.
        defaults:      Profile fallbacks (28 / 5).
        cycle_length:  Rolling window and outlier bounds.
        ovulation:     Luteal phase and fertile window offsets.
        accuracy:      Accuracy score coefficients and band thresholds.
        irregularity:  Irregular-cycle deviation threshold.
        bbt:           Temperature shift detection settings.
        calendar:      Calendar export settings.
    """

    version: str = "1.0"
    defaults: ProfileFallbacks = field(default_factory=ProfileFallbacks)
    cycle_length: CycleLengthConfig = field(default_factory=CycleLengthConfig)
    ovulation: OvulationConfig = field(default_factory=OvulationConfig)
    accuracy: AccuracyConfig = field(default_factory=AccuracyConfig)
    irregularity: IrregularityConfig = field(default_factory=IrregularityConfig)
    bbt: BBTConfig = field(default_factory=BBTConfig)
    calendar: CalendarConfig = field(default_factory=CalendarConfig)


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
    try:
        import yaml  # pyyaml
    except ImportError as exc:
        raise ImportError(
            "pyyaml is required for config loading. Install with: pip install pyyaml"
        ) from exc

    if not path.exists():
        raise FileNotFoundError(f"Cycle config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> CycleConfig:
    """Validate the raw YAML dict and construct a CycleConfig.

    Missing sections and keys fall back to the dataclass defaults.  All
    problems are collected before raising so the admin sees every error
    at once.

    Args:
        raw: Parsed YAML dict.

    Returns:
        Validated CycleConfig instance.

    Raises:
        ConfigValidationError: If any value is non-numeric or out of range.
    """
    errors: list[str] = []

    def _section(name: str) -> dict:
        value = raw.get(name) or {}
        if not isinstance(value, dict):
            errors.append(f"'{name}' must be a mapping")
            return {}
        return value

    def _number(section: dict, key: str, section_name: str, default, cast=int):
        value = section.get(key, default)
        try:
            return cast(value)
        except (TypeError, ValueError):
            errors.append(f"{section_name}.{key} must be a number, got {value!r}")
            return default

    def _positive(value, label: str) -> None:
        if value <= 0:
            errors.append(f"{label} = {value} must be positive")

    version = str(raw.get("version", "1.0"))

    # ── Profile fallbacks ──
    d_raw = _section("defaults")
    d_def = ProfileFallbacks()
    defaults = ProfileFallbacks(
        average_cycle_length=_number(d_raw, "average_cycle_length", "defaults", d_def.average_cycle_length),
        average_period_length=_number(d_raw, "average_period_length", "defaults", d_def.average_period_length),
    )
    _positive(defaults.average_cycle_length, "defaults.average_cycle_length")
    _positive(defaults.average_period_length, "defaults.average_period_length")

    # ── Cycle length ──
    cl_raw = _section("cycle_length")
    cl_def = CycleLengthConfig()
    cycle_length = CycleLengthConfig(
        rolling_average_cycles=_number(cl_raw, "rolling_average_cycles", "cycle_length", cl_def.rolling_average_cycles),
        min_valid_days=_number(cl_raw, "min_valid_days", "cycle_length", cl_def.min_valid_days),
        max_valid_days=_number(cl_raw, "max_valid_days", "cycle_length", cl_def.max_valid_days),
        plausible_min_days=_number(cl_raw, "plausible_min_days", "cycle_length", cl_def.plausible_min_days),
        plausible_max_days=_number(cl_raw, "plausible_max_days", "cycle_length", cl_def.plausible_max_days),
    )
    _positive(cycle_length.rolling_average_cycles, "cycle_length.rolling_average_cycles")
    _positive(cycle_length.min_valid_days, "cycle_length.min_valid_days")
    if cycle_length.min_valid_days > cycle_length.max_valid_days:
        errors.append(
            f"cycle_length.min_valid_days ({cycle_length.min_valid_days}) "
            f"exceeds max_valid_days ({cycle_length.max_valid_days})"
        )
    if cycle_length.plausible_min_days > cycle_length.plausible_max_days:
        errors.append(
            f"cycle_length.plausible_min_days ({cycle_length.plausible_min_days}) "
            f"exceeds plausible_max_days ({cycle_length.plausible_max_days})"
        )

    # ── Ovulation ──
    ov_raw = _section("ovulation")
    ov_def = OvulationConfig()
    ovulation = OvulationConfig(
        luteal_phase_days=_number(ov_raw, "luteal_phase_days", "ovulation", ov_def.luteal_phase_days),
        fertile_days_before=_number(ov_raw, "fertile_days_before", "ovulation", ov_def.fertile_days_before),
        fertile_days_after=_number(ov_raw, "fertile_days_after", "ovulation", ov_def.fertile_days_after),
    )
    _positive(ovulation.luteal_phase_days, "ovulation.luteal_phase_days")
    if ovulation.fertile_days_before < 0 or ovulation.fertile_days_after < 0:
        errors.append("ovulation fertile window offsets must be non-negative")

    # ── Accuracy ──
    ac_raw = _section("accuracy")
    ac_def = AccuracyConfig()
    accuracy = AccuracyConfig(
        base_score=_number(ac_raw, "base_score", "accuracy", ac_def.base_score),
        per_cycle_bonus=_number(ac_raw, "per_cycle_bonus", "accuracy", ac_def.per_cycle_bonus),
        saturation_cycles=_number(ac_raw, "saturation_cycles", "accuracy", ac_def.saturation_cycles),
        variability_penalty_per_day=_number(
            ac_raw, "variability_penalty_per_day", "accuracy",
            ac_def.variability_penalty_per_day, cast=float,
        ),
        high_threshold=_number(ac_raw, "high_threshold", "accuracy", ac_def.high_threshold),
        good_threshold=_number(ac_raw, "good_threshold", "accuracy", ac_def.good_threshold),
    )
    if accuracy.per_cycle_bonus < 0 or accuracy.variability_penalty_per_day < 0:
        errors.append("accuracy bonus and penalty coefficients must be non-negative")
    _positive(accuracy.saturation_cycles, "accuracy.saturation_cycles")
    if not (0 <= accuracy.good_threshold < accuracy.high_threshold <= 100):
        errors.append(
            f"accuracy thresholds out of order: good={accuracy.good_threshold}, "
            f"high={accuracy.high_threshold} (expected 0 <= good < high <= 100)"
        )

    # ── Irregularity ──
    ir_raw = _section("irregularity")
    irregularity = IrregularityConfig(
        deviation_threshold_days=_number(
            ir_raw, "deviation_threshold_days", "irregularity",
            IrregularityConfig().deviation_threshold_days,
        ),
    )
    _positive(irregularity.deviation_threshold_days, "irregularity.deviation_threshold_days")

    # ── BBT ──
    bbt_raw = _section("bbt")
    bbt_def = BBTConfig()
    bbt = BBTConfig(
        min_samples=_number(bbt_raw, "min_samples", "bbt", bbt_def.min_samples),
        shift_threshold=_number(bbt_raw, "shift_threshold", "bbt", bbt_def.shift_threshold, cast=float),
        rolling_window=_number(bbt_raw, "rolling_window", "bbt", bbt_def.rolling_window),
        plausible_min=_number(bbt_raw, "plausible_min", "bbt", bbt_def.plausible_min, cast=float),
        plausible_max=_number(bbt_raw, "plausible_max", "bbt", bbt_def.plausible_max, cast=float),
    )
    _positive(bbt.rolling_window, "bbt.rolling_window")
    if bbt.min_samples < 2 * bbt.rolling_window:
        errors.append(
            f"bbt.min_samples ({bbt.min_samples}) must be at least twice "
            f"bbt.rolling_window ({bbt.rolling_window})"
        )
    if bbt.plausible_min >= bbt.plausible_max:
        errors.append(
            f"bbt.plausible_min ({bbt.plausible_min}) must be below "
            f"plausible_max ({bbt.plausible_max})"
        )

    # ── Calendar ──
    cal_raw = _section("calendar")
    cal_def = CalendarConfig()
    calendar = CalendarConfig(
        product_id=str(cal_raw.get("product_id", cal_def.product_id)),
        calendar_name=str(cal_raw.get("calendar_name", cal_def.calendar_name)),
        uid_domain=str(cal_raw.get("uid_domain", cal_def.uid_domain)),
        google_calendar_url=str(cal_raw.get("google_calendar_url", cal_def.google_calendar_url)),
        default_months_ahead=_number(cal_raw, "default_months_ahead", "calendar", cal_def.default_months_ahead),
    )
    if calendar.default_months_ahead < 0:
        errors.append("calendar.default_months_ahead must be non-negative")

    if errors:
        raise ConfigValidationError(
            f"cycle_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return CycleConfig(
        version=version,
        defaults=defaults,
        cycle_length=cycle_length,
        ovulation=ovulation,
        accuracy=accuracy,
        irregularity=irregularity,
        bbt=bbt,
        calendar=calendar,
    )


def load_cycle_config(path: Path | None = None) -> CycleConfig:
    """Load and validate the cycle config from disk.

    Args:
        path: Override path to YAML. Uses the bundled cycle_config.yaml by default.

    Returns:
        Validated CycleConfig instance.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
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

    If validation fails, the old config is retained and the error is re-raised.

    Args:
        path: Override path to YAML. Defaults to bundled cycle_config.yaml.

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
    logger.info(
        "Reloaded cycle config: %s → %s",
        old_version,
        new_config.version,
    )
    return new_config
