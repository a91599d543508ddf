"""Basal body temperature ovulation-shift detection.

A sustained-threshold-crossing detector, not a statistical change-point
algorithm:

1. Drop readings outside the plausible band (95.0–101.5 °F by default).
2. Require at least 6 remaining readings.
3. Baseline = mean of the earlier half of the series.
4. Walk the later half; the first index whose trailing 3-reading average
   (that reading plus the next two) exceeds ``baseline + 0.2`` is the
   suspected shift day.

Good enough to annotate a chart.  It will miss shifts that happen in the
first half of the series and it does not confirm that the rise is
sustained past the window.
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from src.cycles.config_loader import CycleConfig, get_cycle_config

logger = logging.getLogger("periodtracker.cycles.temp_ovulation")


@dataclass(frozen=True)
class TemperatureSample:
    """One morning basal temperature reading.

    Attributes:
        date:        Calendar date of the reading.
        temperature: Reading in the stored unit (°F).
    """

    date: date
    temperature: float


@dataclass(frozen=True)
class OvulationShift:
    """A detected temperature shift.

    Attributes:
        shift_date:    Date of the first reading in the elevated window.
        shift_index:   Index of that reading within the plausible samples.
        baseline_mean: Mean of the earlier half.
        threshold:     baseline_mean + shift threshold.
        window_mean:   Trailing average that crossed the threshold.
    """

    shift_date: date
    shift_index: int
    baseline_mean: float
    threshold: float
    window_mean: float


@dataclass(frozen=True)
class TemperatureSummary:
    """Chart summary for a temperature series.

    Attributes:
        sample_count:        Plausible readings considered.
        average_temperature: Mean rounded to 2 decimals, None when empty.
        shift:               Detected shift, None when not found.
    """

    sample_count: int
    average_temperature: float | None
    shift: OvulationShift | None


class TempOvulationDetector:
    """Detect a post-ovulation temperature rise.

    Usage::

        detector = TempOvulationDetector()
        shift = detector.detect(samples)
        if shift is not None:
            print(f"Suspected ovulation shift: {shift.shift_date}")
    """

    def __init__(self, config: CycleConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    def plausible_samples(self, samples: Sequence[TemperatureSample]) -> list[TemperatureSample]:
        """Chronological readings inside the plausible band."""
        bbt = self._config.bbt
        kept = []
        for sample in sorted(samples, key=lambda s: s.date):
            if bbt.plausible_min <= sample.temperature <= bbt.plausible_max:
                kept.append(sample)
            else:
                logger.warning(
                    "Discarding implausible temperature %.2f on %s",
                    sample.temperature, sample.date,
                )
        return kept

    def detect(self, samples: Sequence[TemperatureSample]) -> OvulationShift | None:
        """Find the first sustained rise above the baseline.

        Args:
            samples: Daily readings; sorted by date before use.

        Returns:
            OvulationShift, or None with too few readings or no crossing.
        """
        bbt = self._config.bbt
        temps = self.plausible_samples(samples)

        if len(temps) < bbt.min_samples:
            logger.debug(
                "Insufficient temperature data: %d readings (need %d+)",
                len(temps), bbt.min_samples,
            )
            return None

        half = len(temps) // 2
        baseline = statistics.mean(s.temperature for s in temps[:half])
        threshold = baseline + bbt.shift_threshold
        window = bbt.rolling_window

        logger.debug("BBT baseline=%.3f threshold=%.3f", baseline, threshold)

        for i in range(half, len(temps) - window + 1):
            window_mean = statistics.mean(s.temperature for s in temps[i:i + window])
            if window_mean > threshold:
                logger.info(
                    "Temperature shift detected on %s (window mean %.2f > %.2f)",
                    temps[i].date, window_mean, threshold,
                )
                return OvulationShift(
                    shift_date=temps[i].date,
                    shift_index=i,
                    baseline_mean=baseline,
                    threshold=threshold,
                    window_mean=window_mean,
                )

        return None

    def summarize(self, samples: Sequence[TemperatureSample]) -> TemperatureSummary:
        temps = self.plausible_samples(samples)
        average = (
            round(statistics.mean(s.temperature for s in temps), 2) if temps else None
        )
        return TemperatureSummary(
            sample_count=len(temps),
            average_temperature=average,
            shift=self.detect(temps),
        )


def detect_ovulation_shift(
    samples: Sequence[TemperatureSample],
    config: CycleConfig | None = None,
) -> OvulationShift | None:
    return TempOvulationDetector(config).detect(samples)
