"""Tests for the cycle prediction engine: predictions, accuracy scoring,
irregularity, countdown, and phase detection."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta

import pytest

from src.cycles.base import Cycle, resolve_profile_defaults
from src.cycles.config_loader import CycleConfig
from src.cycles.cycle_tracker import (
    AccuracyLevel,
    CycleTracker,
    compute_accuracy_score,
    compute_prediction,
    detect_irregularity,
    round_half_up,
)
from src.cycles.tests.conftest import TEST_DATE, cycles_from_lengths, cycles_from_starts


# ---------------------------------------------------------------------------
# Prediction
# ---------------------------------------------------------------------------


class TestComputePrediction:
    def test_no_history_uses_profile_average(self, cycle_config: CycleConfig) -> None:
        prediction = compute_prediction([], date(2024, 1, 1), 28, config=cycle_config)
        assert prediction is not None
        assert prediction.next_period_date == date(2024, 1, 29)
        assert prediction.next_ovulation_date == date(2024, 1, 15)
        assert prediction.fertility_window_start == date(2024, 1, 10)
        assert prediction.fertility_window_end == date(2024, 1, 16)
        assert prediction.cycle_variability == 0.0
        assert prediction.cycles_used == 0

    def test_no_anchor_returns_none(self, cycle_config: CycleConfig) -> None:
        assert compute_prediction([], None, 28, config=cycle_config) is None

    def test_no_anchor_with_history_returns_none(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_starts("2024-01-01", "2024-01-30")
        assert compute_prediction(cycles, None, 28, config=cycle_config) is None

    def test_missing_profile_average_falls_back_to_28(self, cycle_config: CycleConfig) -> None:
        prediction = compute_prediction([], date(2024, 1, 1), None, config=cycle_config)
        assert prediction is not None
        assert prediction.next_period_date == date(2024, 1, 29)

    def test_mean_and_population_std_of_observed_lengths(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_starts("2024-01-01", "2024-01-30", "2024-02-25")
        prediction = compute_prediction(cycles, date(2024, 2, 25), 28, config=cycle_config)
        assert prediction is not None
        assert prediction.effective_cycle_length == pytest.approx(27.5)
        assert prediction.cycle_variability == pytest.approx(1.5)
        assert prediction.cycles_used == 2
        # 27.5 rounds half up to 28
        assert prediction.next_period_date == date(2024, 3, 24)
        assert prediction.next_ovulation_date == date(2024, 3, 10)

    def test_observed_lengths_override_profile_average(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_lengths([32, 32, 32])
        anchor = cycles[-1].start_date
        prediction = compute_prediction(cycles, anchor, 28, config=cycle_config)
        assert prediction is not None
        assert prediction.next_period_date == anchor + timedelta(days=32)

    def test_input_order_does_not_matter(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_lengths([29, 26, 31])
        anchor = cycles[-1].start_date
        forward = compute_prediction(cycles, anchor, 28, config=cycle_config)
        backward = compute_prediction(list(reversed(cycles)), anchor, 28, config=cycle_config)
        assert forward == backward

    def test_rolling_window_uses_last_six_lengths(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_lengths([40] * 6 + [28] * 6)
        anchor = cycles[-1].start_date
        prediction = compute_prediction(cycles, anchor, 28, config=cycle_config)
        assert prediction is not None
        assert prediction.cycles_used == 6
        assert prediction.effective_cycle_length == pytest.approx(28.0)
        assert prediction.cycle_variability == 0.0

    def test_outlier_lengths_are_discarded(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_lengths([28, 90, 28])
        anchor = cycles[-1].start_date
        prediction = compute_prediction(cycles, anchor, 28, config=cycle_config)
        assert prediction is not None
        assert prediction.cycles_used == 2
        assert prediction.effective_cycle_length == pytest.approx(28.0)

    def test_duplicate_start_dates_are_discarded(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_starts("2024-01-01", "2024-01-01", "2024-01-29")
        tracker = CycleTracker(cycle_config)
        assert tracker.observed_cycle_lengths(cycles) == [28]

    def test_all_outliers_fall_back_to_profile(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_lengths([75])
        anchor = cycles[-1].start_date
        prediction = compute_prediction(cycles, anchor, 30, config=cycle_config)
        assert prediction is not None
        assert prediction.cycles_used == 0
        assert prediction.next_period_date == anchor + timedelta(days=30)

    @pytest.mark.parametrize(
        "lengths",
        [[], [28], [21, 35], [26, 27, 29, 30, 31], [45, 22, 30, 28, 33, 25, 29]],
    )
    def test_ovulation_and_fertile_window_offsets(
        self, cycle_config: CycleConfig, lengths: list[int]
    ) -> None:
        cycles = cycles_from_lengths(lengths)
        prediction = compute_prediction(cycles, cycles[-1].start_date, 28, config=cycle_config)
        assert prediction is not None
        assert prediction.next_ovulation_date == prediction.next_period_date - timedelta(days=14)
        assert prediction.fertility_window_start == prediction.next_ovulation_date - timedelta(days=5)
        assert prediction.fertility_window_end == prediction.next_ovulation_date + timedelta(days=1)

    def test_prediction_is_deterministic(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_lengths([29, 26, 31, 27])
        anchor = cycles[-1].start_date
        first = compute_prediction(cycles, anchor, 28, config=cycle_config)
        second = compute_prediction(cycles, anchor, 28, config=cycle_config)
        assert first == second

    def test_prediction_is_immutable(self, cycle_config: CycleConfig) -> None:
        prediction = compute_prediction([], TEST_DATE, 28, config=cycle_config)
        with pytest.raises(AttributeError):
            prediction.accuracy_score = 100  # type: ignore[misc]


class TestRoundHalfUp:
    @pytest.mark.parametrize(
        "value, expected",
        [(27.5, 28), (26.5, 27), (27.49, 27), (28.0, 28), (27.6, 28)],
    )
    def test_rounding(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected


# ---------------------------------------------------------------------------
# Accuracy
# ---------------------------------------------------------------------------


class TestAccuracyScore:
    def test_no_history_baseline(self, cycle_config: CycleConfig) -> None:
        assert CycleTracker(cycle_config).accuracy_score(0, 0.0) == 40

    def test_saturates_at_100(self, cycle_config: CycleConfig) -> None:
        tracker = CycleTracker(cycle_config)
        assert tracker.accuracy_score(6, 0.0) == 100
        assert tracker.accuracy_score(50, 0.0) == 100

    def test_clamped_at_zero(self, cycle_config: CycleConfig) -> None:
        assert CycleTracker(cycle_config).accuracy_score(1, 40.0) == 0

    def test_functional_entry_point_matches_tracker(self, cycle_config: CycleConfig) -> None:
        assert compute_accuracy_score(2, 1.5, config=cycle_config) == 53
        assert compute_accuracy_score(3, 0.0, config=cycle_config) == (
            CycleTracker(cycle_config).accuracy_score(3, 0.0)
        )

    def test_non_decreasing_as_consistent_cycles_are_appended(
        self, cycle_config: CycleConfig
    ) -> None:
        scores = []
        for n in range(0, 10):
            cycles = cycles_from_lengths([28] * n)
            prediction = compute_prediction(cycles, cycles[-1].start_date, 28, config=cycle_config)
            scores.append(prediction.accuracy_score)
        assert scores == sorted(scores)
        assert scores[-1] == 100

    def test_non_increasing_as_variance_is_injected(self, cycle_config: CycleConfig) -> None:
        histories = [
            [28, 28, 28, 28, 28, 28],
            [27, 29, 27, 29, 27, 29],
            [25, 31, 25, 31, 25, 31],
            [21, 35, 21, 35, 21, 35],
        ]
        scores = []
        for lengths in histories:
            cycles = cycles_from_lengths(lengths)
            prediction = compute_prediction(cycles, cycles[-1].start_date, 28, config=cycle_config)
            scores.append(prediction.accuracy_score)
        assert scores == sorted(scores, reverse=True)
        assert scores[0] > scores[-1]

    def test_score_for_two_lengths(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_starts("2024-01-01", "2024-01-30", "2024-02-25")
        prediction = compute_prediction(cycles, date(2024, 2, 25), 28, config=cycle_config)
        # 40 + 2 * 10 - 1.5 * 5 = 52.5
        assert prediction.accuracy_score == 53


class TestAccuracyLevel:
    @pytest.mark.parametrize(
        "score, level",
        [
            (100, AccuracyLevel.HIGH),
            (80, AccuracyLevel.HIGH),
            (79, AccuracyLevel.GOOD),
            (60, AccuracyLevel.GOOD),
            (59, AccuracyLevel.MODERATE),
            (0, AccuracyLevel.MODERATE),
        ],
    )
    def test_bands(self, cycle_config: CycleConfig, score: int, level: AccuracyLevel) -> None:
        assert AccuracyLevel.from_score(score, cycle_config) is level

    def test_labels(self) -> None:
        assert AccuracyLevel.HIGH.label == "High"
        assert AccuracyLevel.GOOD.label == "Good"
        assert AccuracyLevel.MODERATE.label == "Moderate"

    def test_prediction_banded_with_tracker_thresholds(self, cycle_config: CycleConfig) -> None:
        strict = replace(cycle_config, accuracy=replace(cycle_config.accuracy, high_threshold=95))
        cycles = cycles_from_lengths([28] * 5)

        default_pred = compute_prediction(cycles, cycles[-1].start_date, 28, config=cycle_config)
        strict_pred = compute_prediction(cycles, cycles[-1].start_date, 28, config=strict)

        assert default_pred.accuracy_score == strict_pred.accuracy_score == 90
        assert default_pred.accuracy_level is AccuracyLevel.HIGH
        assert strict_pred.accuracy_level is AccuracyLevel.GOOD


# ---------------------------------------------------------------------------
# Irregularity
# ---------------------------------------------------------------------------


class TestDetectIrregularity:
    def test_short_cycle_flagged(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_lengths([28, 21])
        result = detect_irregularity(cycles, 28, config=cycle_config)
        assert result is not None
        assert result.is_irregular
        assert result.latest_cycle_length == 21
        assert result.deviation == 7
        assert result.deviation_type == "short"

    def test_long_cycle_flagged(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_lengths([28, 36])
        result = detect_irregularity(cycles, 28, config=cycle_config)
        assert result.is_irregular
        assert result.deviation_type == "long"

    def test_small_deviation_not_flagged(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_lengths([28, 34])
        result = detect_irregularity(cycles, 28, config=cycle_config)
        assert not result.is_irregular
        assert result.deviation == 6
        assert result.deviation_type is None

    def test_newest_first_input(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_starts("2024-01-01", "2024-01-29", "2024-02-19")
        result = detect_irregularity(cycles, 28, config=cycle_config)
        assert result.latest_cycle_length == 21

    def test_fewer_than_two_cycles_returns_none(self, cycle_config: CycleConfig) -> None:
        assert detect_irregularity([Cycle(TEST_DATE)], 28, config=cycle_config) is None
        assert detect_irregularity([], 28, config=cycle_config) is None

    def test_outlier_latest_gap_falls_back_to_latest_valid_length(
        self, cycle_config: CycleConfig
    ) -> None:
        # A missed log leaves a 90-day gap; the 21-day cycle before it still counts
        cycles = cycles_from_lengths([28, 21, 90])
        result = detect_irregularity(cycles, 28, config=cycle_config)
        assert result is not None
        assert result.latest_cycle_length == 21
        assert result.is_irregular
        assert result.deviation_type == "short"

    def test_single_valid_length_returns_none(self, cycle_config: CycleConfig) -> None:
        assert detect_irregularity(cycles_from_lengths([21]), 28, config=cycle_config) is None
        assert detect_irregularity(cycles_from_lengths([28, 61]), 28, config=cycle_config) is None

    def test_missing_average_uses_default(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_lengths([28, 21])
        result = detect_irregularity(cycles, None, config=cycle_config)
        assert result.average_length == 28
        assert result.is_irregular


# ---------------------------------------------------------------------------
# Countdown / phase / trend
# ---------------------------------------------------------------------------


class TestCountdown:
    @pytest.mark.parametrize(
        "as_of, days_until, status",
        [
            (date(2024, 1, 10), 19, "on_track"),
            (date(2024, 1, 27), 2, "approaching"),
            (date(2024, 1, 29), 0, "on_track"),
            (date(2024, 2, 2), -4, "late_soon"),
            (date(2024, 2, 10), -12, "late"),
        ],
    )
    def test_status(
        self, cycle_config: CycleConfig, as_of: date, days_until: int, status: str
    ) -> None:
        countdown = CycleTracker(cycle_config).countdown(TEST_DATE, 28, as_of_date=as_of)
        assert countdown.predicted_date == date(2024, 1, 29)
        assert countdown.days_until == days_until
        assert countdown.status == status
        assert countdown.is_late == (days_until < 0)
        assert countdown.days_late == max(0, -days_until)


class TestCurrentPhase:
    @pytest.mark.parametrize(
        "as_of, phase, cycle_day",
        [
            (date(2024, 1, 3), "menstrual", 3),
            (date(2024, 1, 10), "follicular", 10),
            (date(2024, 1, 14), "ovulation", 14),
            (date(2024, 1, 16), "ovulation", 16),
            (date(2024, 1, 20), "luteal", 20),
            (date(2024, 2, 1), "menstrual", 4),
        ],
    )
    def test_phase(
        self, cycle_config: CycleConfig, as_of: date, phase: str, cycle_day: int
    ) -> None:
        info = CycleTracker(cycle_config).current_phase(TEST_DATE, 28, 5, as_of_date=as_of)
        assert info.phase == phase
        assert info.cycle_day == cycle_day

    def test_ovulation_date_rolls_forward(self, cycle_config: CycleConfig) -> None:
        info = CycleTracker(cycle_config).current_phase(
            TEST_DATE, 28, 5, as_of_date=date(2024, 2, 1)
        )
        assert info.ovulation_date == date(2024, 2, 12)
        assert info.days_until_ovulation == 11

    def test_unknown_without_anchor(self, cycle_config: CycleConfig) -> None:
        assert CycleTracker(cycle_config).current_phase(None).phase == "unknown"

    def test_unknown_before_anchor(self, cycle_config: CycleConfig) -> None:
        info = CycleTracker(cycle_config).current_phase(
            TEST_DATE, 28, 5, as_of_date=date(2023, 12, 25)
        )
        assert info.phase == "unknown"
        assert info.cycle_day is None


class TestCycleLengthTrend:
    def test_trend_points(self, cycle_config: CycleConfig) -> None:
        cycles = cycles_from_starts("2024-01-01", "2024-01-30", "2024-02-25")
        assert CycleTracker(cycle_config).cycle_length_trend(cycles) == [(1, 29), (2, 26)]

    def test_trend_empty_for_single_cycle(self, cycle_config: CycleConfig) -> None:
        assert CycleTracker(cycle_config).cycle_length_trend([Cycle(TEST_DATE)]) == []


# ---------------------------------------------------------------------------
# Shared date model
# ---------------------------------------------------------------------------


class TestDateModel:
    def test_end_before_start_rejected(self) -> None:
        with pytest.raises(ValueError, match="before start_date"):
            Cycle(start_date=date(2024, 1, 5), end_date=date(2024, 1, 1))

    def test_period_length_inclusive(self) -> None:
        cycle = Cycle(start_date=date(2024, 1, 1), end_date=date(2024, 1, 5))
        assert cycle.period_length == 5
        assert not cycle.is_open
        assert Cycle(start_date=TEST_DATE).period_length is None

    def test_resolve_defaults_fill_missing_values(self, cycle_config: CycleConfig) -> None:
        profile = resolve_profile_defaults(None, 0, None, config=cycle_config)
        assert profile.average_cycle_length == 28
        assert profile.average_period_length == 5
        assert profile.last_period_date is None

    def test_resolve_defaults_promotes_newer_logged_start(
        self, cycle_config: CycleConfig
    ) -> None:
        cycles = cycles_from_starts("2024-01-01", "2024-01-29")
        profile = resolve_profile_defaults(30, 4, date(2024, 1, 1), cycles, config=cycle_config)
        assert profile.last_period_date == date(2024, 1, 29)
        assert profile.average_cycle_length == 30
        assert profile.average_period_length == 4

    def test_resolve_defaults_keeps_newer_profile_anchor(
        self, cycle_config: CycleConfig
    ) -> None:
        cycles = cycles_from_starts("2024-01-01")
        profile = resolve_profile_defaults(28, 5, date(2024, 2, 1), cycles, config=cycle_config)
        assert profile.last_period_date == date(2024, 2, 1)

    def test_resolve_defaults_rejects_negative_lengths(self, cycle_config: CycleConfig) -> None:
        with pytest.raises(ValueError, match="average_cycle_length"):
            resolve_profile_defaults(-3, 5, config=cycle_config)
