"""Cycle prediction and calendar export core.

Pure computations over already-fetched rows: no I/O, no shared mutable
state.  Safe to call concurrently.

Modules:
    base              — Cycle / ProfileDefaults value objects and date helpers
    config_loader     — Load/validate/hot-reload cycle_config.yaml
    cycle_tracker     — Next period, ovulation, fertile window, accuracy, irregularity
    temp_ovulation    — Basal temperature shift detection
    calendar_export   — Event projection, iCalendar and Google Calendar export
    symptom_frequency — Symptom and mood tag counts
"""

from src.cycles.base import Cycle, ProfileDefaults, resolve_profile_defaults
from src.cycles.calendar_export import (
    CycleEvent,
    EventType,
    generate_google_calendar_url,
    generate_ics_content,
    project_events,
)
from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.cycle_tracker import (
    AccuracyLevel,
    CyclePrediction,
    CycleTracker,
    compute_accuracy_score,
    compute_prediction,
    detect_irregularity,
)
from src.cycles.temp_ovulation import TempOvulationDetector, detect_ovulation_shift

__all__ = [
    "Cycle",
    "ProfileDefaults",
    "resolve_profile_defaults",
    "CycleConfig",
    "get_cycle_config",
    "CycleTracker",
    "CyclePrediction",
    "AccuracyLevel",
    "compute_accuracy_score",
    "compute_prediction",
    "detect_irregularity",
    "TempOvulationDetector",
    "detect_ovulation_shift",
    "CycleEvent",
    "EventType",
    "project_events",
    "generate_ics_content",
    "generate_google_calendar_url",
]
