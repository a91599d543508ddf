"""Shared date model for the cycle engine.

Value objects consumed by both the statistics engine and the calendar
projector, plus the small date helpers they share.  Everything here is
immutable; rows fetched from storage are converted into these types once
at the edge and never mutated by the engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Sequence

from src.cycles.config_loader import CycleConfig, get_cycle_config

logger = logging.getLogger("periodtracker.cycles.base")


@dataclass(frozen=True)
class Cycle:
    """A completed or in-progress menstrual cycle observation.

    Attributes:
        start_date: First day of menstrual bleeding.
        end_date:   Last day of bleeding, or None while the cycle is open.
    """

    start_date: date
    end_date: date | None = None

    def __post_init__(self) -> None:
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError(
                f"Cycle end_date {self.end_date} is before start_date {self.start_date}"
            )

    @property
    def is_open(self) -> bool:
        return self.end_date is None

    @property
    def period_length(self) -> int | None:
        """Inclusive bleeding length in days, None while open."""
        if self.end_date is None:
            return None
        return days_between(self.start_date, self.end_date) + 1


@dataclass(frozen=True)
class ProfileDefaults:
    """Per-user fallback parameters, already resolved.

    Attributes:
        average_cycle_length:  Days from one period start to the next.
        average_period_length: Days of bleeding.
        last_period_date:      Most recent known period start, if any.
    """

    average_cycle_length: int = 28
    average_period_length: int = 5
    last_period_date: date | None = None

    def __post_init__(self) -> None:
        if self.average_cycle_length <= 0:
            raise ValueError(
                f"average_cycle_length must be positive, got {self.average_cycle_length}"
            )
        if self.average_period_length <= 0:
            raise ValueError(
                f"average_period_length must be positive, got {self.average_period_length}"
            )


def days_between(earlier: date, later: date) -> int:
    """Signed whole days from ``earlier`` to ``later``."""
    return (later - earlier).days


def add_days(d: date, days: int) -> date:
    return d + timedelta(days=days)


def is_plausible_cycle_length(length: int, config: CycleConfig | None = None) -> bool:
    """True if an observed cycle length is a usable sample.

    Lengths of zero or less, or longer than ``max_valid_days`` (60), point to
    a data-entry error or a missed cycle boundary.
    """
    cl = (config or get_cycle_config()).cycle_length
    return cl.min_valid_days <= length <= cl.max_valid_days


def sort_cycles(cycles: Iterable[Cycle]) -> list[Cycle]:
    """Return cycles ordered oldest first, whatever order they arrived in."""
    return sorted(cycles, key=lambda c: c.start_date)


def resolve_profile_defaults(
    average_cycle_length: int | None = None,
    average_period_length: int | None = None,
    last_period_date: date | None = None,
    cycles: Sequence[Cycle] = (),
    config: CycleConfig | None = None,
) -> ProfileDefaults:
    """Fill missing profile fields once, before any engine call.

    Missing or zero lengths fall back to the configured defaults (28 / 5).
    If the logged history has a start later than the stored anchor, that
    start becomes the anchor, since the profile copy is only refreshed
    lazily.

    Args:
        average_cycle_length:  Profile value, may be None or 0.
        average_period_length: Profile value, may be None or 0.
        last_period_date:      Profile anchor, may be None.
        cycles:                Logged history in any order.
        config:                Engine config (defaults to the singleton).

    Returns:
        ProfileDefaults with every length populated.
    """
    cfg = config or get_cycle_config()

    cycle_length = average_cycle_length or cfg.defaults.average_cycle_length
    period_length = average_period_length or cfg.defaults.average_period_length

    cl = cfg.cycle_length
    if not (cl.plausible_min_days <= cycle_length <= cl.plausible_max_days):
        logger.warning(
            "Profile average cycle length %d is outside the plausible range %d-%d",
            cycle_length, cl.plausible_min_days, cl.plausible_max_days,
        )

    anchor = last_period_date
    if cycles:
        newest = max(c.start_date for c in cycles)
        if anchor is None or newest > anchor:
            anchor = newest

    return ProfileDefaults(
        average_cycle_length=cycle_length,
        average_period_length=period_length,
        last_period_date=anchor,
    )
