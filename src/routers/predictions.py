"""Cycle prediction endpoints.

Callers send the rows they already fetched (cycles, profile, temperature
readings); nothing here touches storage.  Missing data is not an error:
responses carry ``available: false`` instead.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter

from src.cycles.symptom_frequency import mood_frequency, symptom_frequency
from src.dependencies import TempDetector, Tracker
from src.models.cycles import (
    CountdownRead,
    CycleHistoryRequest,
    CycleLengthPoint,
    IrregularityRead,
    PhaseRead,
    PredictionRead,
    SymptomFrequencyRead,
    SymptomFrequencyRequest,
    TagCountRead,
    TemperatureAnalysisRead,
    TemperatureRequest,
)

router = APIRouter(prefix="/predictions", tags=["predictions"])
logger = logging.getLogger("periodtracker.routers.predictions")


@router.post("", response_model=PredictionRead)
async def predict_cycle(body: CycleHistoryRequest, tracker: Tracker) -> Any:
    profile = body.resolved_profile(tracker.config)
    cycles = body.domain_cycles()

    prediction = tracker.predict(
        cycles,
        last_period_date=profile.last_period_date,
        average_cycle_length=profile.average_cycle_length,
    )
    if prediction is None:
        return PredictionRead(available=False)

    irregularity = tracker.detect_irregularity(cycles, profile.average_cycle_length)
    return PredictionRead(
        available=True,
        next_period_date=prediction.next_period_date,
        next_ovulation_date=prediction.next_ovulation_date,
        fertility_window_start=prediction.fertility_window_start,
        fertility_window_end=prediction.fertility_window_end,
        cycle_variability=prediction.cycle_variability,
        accuracy_score=prediction.accuracy_score,
        accuracy_label=prediction.accuracy_level.label,
        effective_cycle_length=prediction.effective_cycle_length,
        cycles_used=prediction.cycles_used,
        irregularity=IrregularityRead.model_validate(irregularity) if irregularity else None,
    )


@router.post("/irregularity", response_model=IrregularityRead | None)
async def check_irregularity(body: CycleHistoryRequest, tracker: Tracker) -> Any:
    profile = body.resolved_profile(tracker.config)
    return tracker.detect_irregularity(body.domain_cycles(), profile.average_cycle_length)


@router.post("/countdown", response_model=CountdownRead)
async def period_countdown(body: CycleHistoryRequest, tracker: Tracker) -> Any:
    profile = body.resolved_profile(tracker.config)
    if profile.last_period_date is None:
        return CountdownRead(available=False)

    countdown = tracker.countdown(
        profile.last_period_date,
        profile.average_cycle_length,
        as_of_date=body.as_of_date,
    )
    return CountdownRead(available=True, **asdict(countdown))


@router.post("/phase", response_model=PhaseRead)
async def current_phase(body: CycleHistoryRequest, tracker: Tracker) -> Any:
    profile = body.resolved_profile(tracker.config)
    return tracker.current_phase(
        profile.last_period_date,
        profile.average_cycle_length,
        profile.average_period_length,
        as_of_date=body.as_of_date,
    )


@router.post("/trend", response_model=list[CycleLengthPoint])
async def cycle_length_trend(body: CycleHistoryRequest, tracker: Tracker) -> Any:
    return [
        CycleLengthPoint(cycle=n, length=length)
        for n, length in tracker.cycle_length_trend(body.domain_cycles())
    ]


@router.post("/bbt-shift", response_model=TemperatureAnalysisRead)
async def temperature_shift(body: TemperatureRequest, detector: TempDetector) -> Any:
    summary = detector.summarize([r.to_domain() for r in body.readings])
    shift = summary.shift
    return TemperatureAnalysisRead(
        available=shift is not None,
        sample_count=summary.sample_count,
        average_temperature=summary.average_temperature,
        shift_date=shift.shift_date if shift else None,
        baseline_mean=round(shift.baseline_mean, 2) if shift else None,
        threshold=round(shift.threshold, 2) if shift else None,
    )


@router.post("/symptoms/frequency", response_model=SymptomFrequencyRead)
async def symptom_counts(body: SymptomFrequencyRequest) -> Any:
    return SymptomFrequencyRead(
        symptoms=[
            TagCountRead(name=t.name, count=t.count)
            for t in symptom_frequency(body.symptoms, top_n=body.top_n)
        ],
        moods=[
            TagCountRead(name=t.name, count=t.count)
            for t in mood_frequency(body.moods, top_n=body.top_n)
        ],
    )
