"""Menstrual cycle prediction engine.

Turns a history of logged period starts plus profile defaults into:
- Next period start date
- Next ovulation date and fertile window
- Cycle-length variability and a 0–100 accuracy score
- An irregularity flag for the most recent cycle

Predictions use the mean of the last 6 valid observed cycle lengths
(configurable).  With no usable history the profile average is used
instead.  Every function here is a pure computation over its arguments;
fetching rows and persisting anything is the caller's job.
"""

from __future__ import annotations

import logging
import math
import statistics
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Sequence

from src.cycles.base import (
    Cycle,
    add_days,
    days_between,
    is_plausible_cycle_length,
    sort_cycles,
)
from src.cycles.config_loader import CycleConfig, get_cycle_config

logger = logging.getLogger("periodtracker.cycles.cycle_tracker")


def round_half_up(value: float) -> int:
    """Round to the nearest whole day, halves away from zero (27.5 → 28)."""
    return math.floor(value + 0.5)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


class AccuracyLevel(str, Enum):
    """Qualitative band for an accuracy score.

    Thresholds (configurable):
        HIGH      >= 80  — consistent cycles, plenty of history
        GOOD      >= 60  — a clear pattern is emerging
        MODERATE   < 60  — little data or noticeable variation
    """

    HIGH = "high"
    GOOD = "good"
    MODERATE = "moderate"

    @classmethod
    def from_score(cls, score: int, config: CycleConfig | None = None) -> "AccuracyLevel":
        ac = (config or get_cycle_config()).accuracy
        if score >= ac.high_threshold:
            return cls.HIGH
        if score >= ac.good_threshold:
            return cls.GOOD
        return cls.MODERATE

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class CyclePrediction:
    """Prediction for the user's next cycle.

    Attributes:
        next_period_date:       Anchor + effective cycle length.
        next_ovulation_date:    Next period minus the luteal phase (14 days).
        fertility_window_start: Ovulation minus 5 days.
        fertility_window_end:   Ovulation plus 1 day (inclusive).
        cycle_variability:      Population std dev of the sampled lengths (days).
        accuracy_score:         0–100 confidence in the prediction.
        effective_cycle_length: Unrounded mean length used for projection.
        cycles_used:            Number of valid observed lengths sampled.
        accuracy_level:         Band of accuracy_score under the tracker's thresholds.
    """

    next_period_date: date
    next_ovulation_date: date
    fertility_window_start: date
    fertility_window_end: date
    cycle_variability: float
    accuracy_score: int
    effective_cycle_length: float
    cycles_used: int
    accuracy_level: AccuracyLevel = AccuracyLevel.MODERATE


@dataclass(frozen=True)
class IrregularityResult:
    """Comparison of the latest cycle against the profile average.

    Attributes:
        is_irregular:        True if the deviation reaches the threshold (7 days).
        latest_cycle_length: Newest valid start-to-start length (days).
        average_length:      Profile average the latest cycle was compared to.
        deviation:           Absolute difference in days.
        deviation_type:      'short' or 'long' when irregular, else None.
    """

    is_irregular: bool
    latest_cycle_length: int
    average_length: int
    deviation: int
    deviation_type: str | None = None


@dataclass(frozen=True)
class PeriodCountdown:
    """Days remaining until the next predicted period.

    Attributes:
        predicted_date: Latest start + average cycle length.
        days_until:     Negative when the period is overdue.
        is_late:        True once the predicted date has passed.
        days_late:      How many days overdue (0 when not late).
        status:         'late_soon', 'late', 'approaching', or 'on_track'.
    """

    predicted_date: date
    days_until: int
    is_late: bool
    days_late: int
    status: str


@dataclass(frozen=True)
class PhaseInfo:
    """Where a given day falls within the projected cycle.

    Attributes:
        phase:               'menstrual', 'follicular', 'ovulation', 'luteal', 'unknown'.
        cycle_day:           Day within the cycle (1-indexed), None if unknown.
        ovulation_date:      Ovulation date of the cycle containing ``as_of``.
        days_until_ovulation: Negative once ovulation has passed.
    """

    phase: str
    cycle_day: int | None = None
    ovulation_date: date | None = None
    days_until_ovulation: int | None = None


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class CycleTracker:
    """Predict menstrual cycles from logged period starts.

    Usage::

        tracker = CycleTracker()
        prediction = tracker.predict(
            cycles=logged_cycles,
            last_period_date=date(2024, 2, 25),
            average_cycle_length=28,
        )
        if prediction is not None:
            print(prediction.next_period_date, prediction.accuracy_level.label)
    """

    def __init__(self, config: CycleConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    @property
    def config(self) -> CycleConfig:
        return self._config

    # ------------------------------------------------------------------
    # Observed lengths
    # ------------------------------------------------------------------

    def observed_cycle_lengths(self, cycles: Sequence[Cycle]) -> list[int]:
        """Return valid start-to-start lengths, oldest first.

        Cycles may arrive in any order (storage hands them back newest
        first).  Lengths outside the plausible bounds are dropped.
        """
        ordered = sort_cycles(cycles)
        lengths: list[int] = []
        for previous, current in zip(ordered, ordered[1:]):
            length = days_between(previous.start_date, current.start_date)
            if not is_plausible_cycle_length(length, self._config):
                logger.warning(
                    "Discarding implausible cycle length %d days (%s → %s)",
                    length, previous.start_date, current.start_date,
                )
                continue
            lengths.append(length)
        return lengths

    def recent_sample(self, cycles: Sequence[Cycle]) -> list[int]:
        """The trailing window of valid lengths used for statistics."""
        n = self._config.cycle_length.rolling_average_cycles
        return self.observed_cycle_lengths(cycles)[-n:]

    # ------------------------------------------------------------------
    # Accuracy
    # ------------------------------------------------------------------

    def accuracy_score(self, cycle_count: int, variability: float) -> int:
        """Map sample size and spread to a 0–100 score.

        Non-decreasing in ``cycle_count`` (saturating at 6) and
        non-increasing in ``variability``.
        """
        ac = self._config.accuracy
        counted = min(max(cycle_count, 0), ac.saturation_cycles)
        raw = (
            ac.base_score
            + ac.per_cycle_bonus * counted
            - ac.variability_penalty_per_day * max(variability, 0.0)
        )
        return int(min(100, max(0, round_half_up(raw))))

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict(
        self,
        cycles: Sequence[Cycle],
        last_period_date: date | None,
        average_cycle_length: int | None = None,
    ) -> CyclePrediction | None:
        """Generate a prediction from historical data.

        Args:
            cycles:               Logged cycles, any order.
            last_period_date:     Anchor to project forward from.
            average_cycle_length: Profile average, used when no valid
                                  observed length exists.

        Returns:
            CyclePrediction, or None when there is no anchor date.
        """
        if last_period_date is None:
            logger.debug("No anchor date; prediction unavailable")
            return None

        cfg = self._config
        fallback = average_cycle_length or cfg.defaults.average_cycle_length

        sample = self.recent_sample(cycles)
        if sample:
            effective = statistics.mean(sample)
        else:
            effective = float(fallback)
        variability = statistics.pstdev(sample) if len(sample) >= 2 else 0.0

        logger.debug(
            "Cycle stats: sample=%s mean=%.2f std=%.2f",
            sample, effective, variability,
        )

        score = self.accuracy_score(len(sample), variability)
        ov = cfg.ovulation
        next_period = add_days(last_period_date, round_half_up(effective))
        ovulation = add_days(next_period, -ov.luteal_phase_days)

        return CyclePrediction(
            next_period_date=next_period,
            next_ovulation_date=ovulation,
            fertility_window_start=add_days(ovulation, -ov.fertile_days_before),
            fertility_window_end=add_days(ovulation, ov.fertile_days_after),
            cycle_variability=float(variability),
            accuracy_score=score,
            effective_cycle_length=float(effective),
            cycles_used=len(sample),
            accuracy_level=AccuracyLevel.from_score(score, cfg),
        )

    # ------------------------------------------------------------------
    # Irregularity
    # ------------------------------------------------------------------

    def detect_irregularity(
        self,
        cycles: Sequence[Cycle],
        average_cycle_length: int | None = None,
    ) -> IrregularityResult | None:
        """Compare the latest cycle length against the profile average.

        The latest length is the newest valid start-to-start gap, so an
        outlier gap (a missed log) falls back to the one before it.
        Returns None with fewer than two valid lengths.
        """
        lengths = self.observed_cycle_lengths(cycles)
        if len(lengths) < 2:
            return None

        latest = lengths[-1]
        average = average_cycle_length or self._config.defaults.average_cycle_length
        deviation = abs(latest - average)
        is_irregular = deviation >= self._config.irregularity.deviation_threshold_days

        deviation_type = None
        if is_irregular:
            deviation_type = "short" if latest < average else "long"

        return IrregularityResult(
            is_irregular=is_irregular,
            latest_cycle_length=latest,
            average_length=average,
            deviation=deviation,
            deviation_type=deviation_type,
        )

    # ------------------------------------------------------------------
    # Countdown / phase / trend
    # ------------------------------------------------------------------

    def countdown(
        self,
        latest_start: date,
        average_cycle_length: int | None = None,
        as_of_date: date | None = None,
    ) -> PeriodCountdown:
        """Days until the next period, or how late it is."""
        today = as_of_date or date.today()
        length = average_cycle_length or self._config.defaults.average_cycle_length
        predicted = add_days(latest_start, length)
        days_until = days_between(today, predicted)

        is_late = days_until < 0
        days_late = abs(days_until) if is_late else 0
        if is_late:
            status = "late_soon" if days_late <= 7 else "late"
        elif 0 < days_until <= 3:
            status = "approaching"
        else:
            status = "on_track"

        return PeriodCountdown(
            predicted_date=predicted,
            days_until=days_until,
            is_late=is_late,
            days_late=days_late,
            status=status,
        )

    def current_phase(
        self,
        last_period_date: date | None,
        average_cycle_length: int | None = None,
        average_period_length: int | None = None,
        as_of_date: date | None = None,
    ) -> PhaseInfo:
        """Determine the cycle phase for ``as_of_date``.

        Days past the end of the anchored cycle roll into the next
        projected cycle.
        """
        if last_period_date is None:
            return PhaseInfo(phase="unknown")

        today = as_of_date or date.today()
        elapsed = days_between(last_period_date, today)
        if elapsed < 0:
            return PhaseInfo(phase="unknown")

        cfg = self._config
        cycle_length = average_cycle_length or cfg.defaults.average_cycle_length
        period_length = average_period_length or cfg.defaults.average_period_length

        cycles_elapsed, offset = divmod(elapsed, cycle_length)
        cycle_start = add_days(last_period_date, cycles_elapsed * cycle_length)
        cycle_day = offset + 1

        ovulation = add_days(cycle_start, cycle_length - cfg.ovulation.luteal_phase_days)
        days_to_ov = days_between(today, ovulation)

        if cycle_day <= period_length:
            phase = "menstrual"
        elif days_to_ov > 1:
            phase = "follicular"
        elif days_to_ov >= -1:
            phase = "ovulation"
        else:
            phase = "luteal"

        return PhaseInfo(
            phase=phase,
            cycle_day=cycle_day,
            ovulation_date=ovulation,
            days_until_ovulation=days_to_ov,
        )

    def cycle_length_trend(self, cycles: Sequence[Cycle]) -> list[tuple[int, int]]:
        """Return (cycle number, length) pairs for charting, oldest first."""
        return list(enumerate(self.observed_cycle_lengths(cycles), start=1))


# ---------------------------------------------------------------------------
# Functional entry points
# ---------------------------------------------------------------------------


def compute_prediction(
    cycles: Sequence[Cycle],
    last_period_date: date | None,
    average_cycle_length: int | None = None,
    config: CycleConfig | None = None,
) -> CyclePrediction | None:
    """Predict the next cycle; see ``CycleTracker.predict``."""
    return CycleTracker(config).predict(cycles, last_period_date, average_cycle_length)


def detect_irregularity(
    cycles: Sequence[Cycle],
    average_cycle_length: int | None = None,
    config: CycleConfig | None = None,
) -> IrregularityResult | None:
    return CycleTracker(config).detect_irregularity(cycles, average_cycle_length)


def compute_accuracy_score(
    cycle_count: int,
    variability: float,
    config: CycleConfig | None = None,
) -> int:
    return CycleTracker(config).accuracy_score(cycle_count, variability)
