"""Shared fixtures for the cycle engine tests."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from src.cycles.base import Cycle
from src.cycles.config_loader import CycleConfig, load_cycle_config
from src.cycles.temp_ovulation import TemperatureSample

TEST_DATE = date(2024, 1, 1)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cycle_config() -> CycleConfig:
    """Load the real cycle config for tests."""
    return load_cycle_config()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def cycles_from_starts(*starts: str) -> list[Cycle]:
    """Cycles newest first, the order storage returns them in."""
    return [Cycle(start_date=date.fromisoformat(s)) for s in reversed(starts)]


def cycles_from_lengths(lengths: list[int], first_start: date = TEST_DATE) -> list[Cycle]:
    """Build len(lengths) + 1 cycles whose consecutive gaps are ``lengths``."""
    starts = [first_start]
    for length in lengths:
        starts.append(starts[-1] + timedelta(days=length))
    return [Cycle(start_date=s) for s in starts]


def make_temps(values: list[float], first_day: date = TEST_DATE) -> list[TemperatureSample]:
    return [
        TemperatureSample(date=first_day + timedelta(days=i), temperature=v)
        for i, v in enumerate(values)
    ]


@pytest.fixture
def regular_cycles() -> list[Cycle]:
    """Seven starts exactly 28 days apart (six lengths of 28)."""
    return cycles_from_lengths([28] * 6)


@pytest.fixture
def biphasic_temps() -> list[TemperatureSample]:
    """Ten follicular readings around 97.2 °F, then a luteal rise to ~97.7 °F."""
    follicular = [97.2, 97.1, 97.3, 97.2, 97.2, 97.1, 97.3, 97.2, 97.2, 97.1]
    luteal = [97.7, 97.8, 97.7, 97.8, 97.9, 97.8]
    return make_temps(follicular + luteal)
