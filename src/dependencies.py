"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from src.config import Settings, get_settings
from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.cycle_tracker import CycleTracker
from src.cycles.temp_ovulation import TempOvulationDetector


def get_cycle_tracker(config: Annotated[CycleConfig, Depends(get_cycle_config)]) -> CycleTracker:
    return CycleTracker(config)


def get_temp_detector(
    config: Annotated[CycleConfig, Depends(get_cycle_config)],
) -> TempOvulationDetector:
    return TempOvulationDetector(config)


# Annotated shortcuts for route signatures
AppSettings = Annotated[Settings, Depends(get_settings)]
EngineConfig = Annotated[CycleConfig, Depends(get_cycle_config)]
Tracker = Annotated[CycleTracker, Depends(get_cycle_tracker)]
TempDetector = Annotated[TempOvulationDetector, Depends(get_temp_detector)]
