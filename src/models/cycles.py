"""Pydantic models for cycle predictions, temperature analysis, symptom
counts, and calendar export."""

from __future__ import annotations

from datetime import date

from pydantic import Field, model_validator

from src.cycles.base import Cycle, ProfileDefaults, resolve_profile_defaults
from src.cycles.calendar_export import CycleEvent, EventType
from src.cycles.config_loader import CycleConfig
from src.cycles.temp_ovulation import TemperatureSample
from src.models.base import PeriodTrackerBase


# ---------- Inputs ----------

class CycleIn(PeriodTrackerBase):
    start_date: date
    end_date: date | None = None

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "CycleIn":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self

    def to_domain(self) -> Cycle:
        return Cycle(start_date=self.start_date, end_date=self.end_date)


class ProfileIn(PeriodTrackerBase):
    # 0 / None mean "not set" and fall back to the configured defaults
    average_cycle_length: int | None = Field(default=None, ge=0, le=120)
    average_period_length: int | None = Field(default=None, ge=0, le=30)
    last_period_date: date | None = None


class CycleHistoryRequest(PeriodTrackerBase):
    profile: ProfileIn = Field(default_factory=ProfileIn)
    cycles: list[CycleIn] = Field(default_factory=list)
    as_of_date: date | None = None

    def domain_cycles(self) -> list[Cycle]:
        return [c.to_domain() for c in self.cycles]

    def resolved_profile(self, config: CycleConfig) -> ProfileDefaults:
        return resolve_profile_defaults(
            average_cycle_length=self.profile.average_cycle_length,
            average_period_length=self.profile.average_period_length,
            last_period_date=self.profile.last_period_date,
            cycles=self.domain_cycles(),
            config=config,
        )


class TemperatureIn(PeriodTrackerBase):
    # stored rows call this column "date", which would shadow the type here
    reading_date: date = Field(alias="date")
    temperature: float

    def to_domain(self) -> TemperatureSample:
        return TemperatureSample(date=self.reading_date, temperature=self.temperature)


class TemperatureRequest(PeriodTrackerBase):
    readings: list[TemperatureIn] = Field(default_factory=list)


class SymptomFrequencyRequest(PeriodTrackerBase):
    symptoms: list[list[str] | None] = Field(default_factory=list)
    moods: list[str | None] = Field(default_factory=list)
    top_n: int = Field(default=5, ge=1, le=50)


class CalendarRequest(CycleHistoryRequest):
    months_ahead: int = Field(default=3, ge=0, le=24)
    include_period: bool = True
    include_fertile: bool = True
    include_ovulation: bool = True


# ---------- Outputs ----------

class IrregularityRead(PeriodTrackerBase):
    is_irregular: bool
    latest_cycle_length: int
    average_length: int
    deviation: int
    deviation_type: str | None = None


class PredictionRead(PeriodTrackerBase):
    available: bool
    next_period_date: date | None = None
    next_ovulation_date: date | None = None
    fertility_window_start: date | None = None
    fertility_window_end: date | None = None
    cycle_variability: float = 0.0
    accuracy_score: int | None = None
    accuracy_label: str | None = None
    effective_cycle_length: float | None = None
    cycles_used: int = 0
    irregularity: IrregularityRead | None = None


class CountdownRead(PeriodTrackerBase):
    available: bool
    predicted_date: date | None = None
    days_until: int | None = None
    is_late: bool = False
    days_late: int = 0
    status: str | None = None


class PhaseRead(PeriodTrackerBase):
    phase: str
    cycle_day: int | None = None
    ovulation_date: date | None = None
    days_until_ovulation: int | None = None


class TemperatureAnalysisRead(PeriodTrackerBase):
    available: bool
    sample_count: int
    average_temperature: float | None = None
    shift_date: date | None = None
    baseline_mean: float | None = None
    threshold: float | None = None


class CycleLengthPoint(PeriodTrackerBase):
    cycle: int
    length: int


class TagCountRead(PeriodTrackerBase):
    name: str
    count: int


class SymptomFrequencyRead(PeriodTrackerBase):
    symptoms: list[TagCountRead]
    moods: list[TagCountRead]


class CycleEventRead(PeriodTrackerBase):
    title: str = Field(min_length=1)
    description: str = ""
    start_date: date
    end_date: date
    type: EventType

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "CycleEventRead":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self

    def to_domain(self) -> CycleEvent:
        return CycleEvent(
            title=self.title,
            description=self.description,
            start_date=self.start_date,
            end_date=self.end_date,
            type=self.type,
        )


class GoogleCalendarLinkRead(PeriodTrackerBase):
    url: str
