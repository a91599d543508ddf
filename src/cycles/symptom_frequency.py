"""Symptom and mood frequency counts for the symptom chart.

Symptom logs store free-form string arrays.  Known tags are normalized to
the ``Symptom`` enum so "cramps" and "Cramps" count together; anything
else is counted under its stripped raw text.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class Symptom(str, Enum):
    CRAMPS = "Cramps"
    HEADACHE = "Headache"
    FATIGUE = "Fatigue"
    MOOD_SWINGS = "Mood swings"
    BLOATING = "Bloating"
    ACNE = "Acne"

    @classmethod
    def parse(cls, raw: str) -> "Symptom | None":
        key = raw.strip().casefold()
        for member in cls:
            if member.value.casefold() == key:
                return member
        return None


@dataclass(frozen=True)
class TagCount:
    name: str
    count: int


def _normalize_symptom(raw: str) -> str:
    known = Symptom.parse(raw)
    return known.value if known else raw.strip()


def symptom_frequency(
    logs: Iterable[Iterable[str] | None],
    top_n: int = 5,
) -> list[TagCount]:
    """Count symptom tags across logs, most frequent first.

    Args:
        logs:  One entry per symptom log; each is that day's tag list
               (None for a log with no symptoms).
        top_n: Maximum number of tags to return.

    Returns:
        Up to ``top_n`` TagCount entries.  Ties keep first-seen order.
    """
    counter: Counter[str] = Counter()
    for tags in logs:
        if not tags:
            continue
        counter.update(
            name for name in (_normalize_symptom(t) for t in tags) if name
        )
    return [TagCount(name, count) for name, count in counter.most_common(top_n)]


def mood_frequency(moods: Iterable[str | None], top_n: int = 5) -> list[TagCount]:
    """Count free-text moods case-insensitively, keeping the first spelling seen."""
    counter: Counter[str] = Counter()
    spelling: dict[str, str] = {}
    for mood in moods:
        if not mood or not mood.strip():
            continue
        key = mood.strip().casefold()
        spelling.setdefault(key, mood.strip())
        counter[key] += 1
    return [TagCount(spelling[key], count) for key, count in counter.most_common(top_n)]
