"""Project future cycle events and export them for calendar apps.

``project_events`` walks forward one cycle at a time from an anchor date
and emits period, ovulation and fertile-window events.  The results can be
written out as an iCalendar document (bulk import) or turned into a Google
Calendar deep link (one event at a time).

All events are all-day: dates only, no time-of-day and no timezone
conversion.  Event end dates are inclusive in memory and become exclusive
(one day later) on export, as RFC 5545 requires for VALUE=DATE.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, Iterable, Sequence
from urllib.parse import urlencode

from src.cycles.base import add_days
from src.cycles.config_loader import CycleConfig, get_cycle_config

logger = logging.getLogger("periodtracker.cycles.calendar_export")

ICS_MEDIA_TYPE = "text/calendar; charset=utf-8"

# RFC 5545 §3.1: content lines SHOULD NOT exceed 75 octets
_MAX_LINE_OCTETS = 75


class EventType(str, Enum):
    PERIOD = "period"
    FERTILE = "fertile"
    OVULATION = "ovulation"
    PREDICTION = "prediction"


@dataclass(frozen=True)
class CycleEvent:
    """One all-day calendar entry.

    Attributes:
        title:       Summary line shown in the calendar.
        description: Longer free text.
        start_date:  First day of the event.
        end_date:    Last day of the event (inclusive).
        type:        Event category.
    """

    title: str
    description: str
    start_date: date
    end_date: date
    type: EventType


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


def project_events(
    anchor_date: date | None,
    average_cycle_length: int,
    average_period_length: int,
    months_ahead: int | None = None,
    config: CycleConfig | None = None,
) -> list[CycleEvent]:
    """Project period, ovulation and fertile-window events.

    Each iteration covers one projected cycle; "months ahead" is the
    user-facing name for the number of cycles.

    Args:
        anchor_date:           Start of the first projected period.  None
                               yields no events.
        average_cycle_length:  Days between period starts.
        average_period_length: Days of bleeding.
        months_ahead:          Cycles to project (default 3).
        config:                Engine config (defaults to the singleton).

    Returns:
        Events ordered by cycle, period → ovulation → fertile within each.

    Raises:
        ValueError: On non-positive lengths, a cycle too short to fit the
                    luteal phase and fertile window, or a negative horizon.
    """
    cfg = config or get_cycle_config()
    if months_ahead is None:
        months_ahead = cfg.calendar.default_months_ahead

    if average_cycle_length <= 0 or average_period_length <= 0:
        raise ValueError(
            "Cycle and period lengths must be positive, got "
            f"{average_cycle_length} and {average_period_length}"
        )
    shortest = cfg.ovulation.luteal_phase_days + cfg.ovulation.fertile_days_before
    if average_cycle_length < shortest:
        raise ValueError(
            f"Cycle length {average_cycle_length} leaves no room for the luteal phase "
            f"and fertile window (minimum {shortest} days)"
        )
    if months_ahead < 0:
        raise ValueError(f"months_ahead must be non-negative, got {months_ahead}")

    if anchor_date is None:
        return []

    ov = cfg.ovulation
    events: list[CycleEvent] = []
    cycle_start = anchor_date

    for _ in range(months_ahead):
        events.append(
            CycleEvent(
                title="🩸 Period",
                description=f"Predicted period (Day 1-{average_period_length} of cycle)",
                start_date=cycle_start,
                end_date=add_days(cycle_start, average_period_length - 1),
                type=EventType.PERIOD,
            )
        )

        ovulation_day = add_days(cycle_start, average_cycle_length - ov.luteal_phase_days)
        events.append(
            CycleEvent(
                title="🥚 Ovulation Day",
                description="Predicted ovulation - highest fertility",
                start_date=ovulation_day,
                end_date=ovulation_day,
                type=EventType.OVULATION,
            )
        )

        events.append(
            CycleEvent(
                title="🌸 Fertile Window",
                description="Fertile window - higher chance of conception",
                start_date=add_days(ovulation_day, -ov.fertile_days_before),
                end_date=add_days(ovulation_day, ov.fertile_days_after),
                type=EventType.FERTILE,
            )
        )

        cycle_start = add_days(cycle_start, average_cycle_length)

    logger.debug("Projected %d events from %s", len(events), anchor_date)
    return events


def filter_events(
    events: Iterable[CycleEvent],
    include_period: bool = True,
    include_fertile: bool = True,
    include_ovulation: bool = True,
) -> list[CycleEvent]:
    """Keep only the event types the user opted into."""
    excluded = set()
    if not include_period:
        excluded.add(EventType.PERIOD)
    if not include_fertile:
        excluded.add(EventType.FERTILE)
    if not include_ovulation:
        excluded.add(EventType.OVULATION)
    return [e for e in events if e.type not in excluded]


# ---------------------------------------------------------------------------
# iCalendar
# ---------------------------------------------------------------------------


def format_ics_date(d: date) -> str:
    return d.strftime("%Y%m%d")


def escape_ics_text(value: str) -> str:
    """Escape a TEXT value per RFC 5545 §3.3.11."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def fold_line(line: str) -> str:
    """Fold a content line at 75 octets without splitting a UTF-8 character."""
    if len(line.encode("utf-8")) <= _MAX_LINE_OCTETS:
        return line

    parts: list[str] = []
    current = ""
    limit = _MAX_LINE_OCTETS
    for char in line:
        if len((current + char).encode("utf-8")) > limit:
            parts.append(current)
            current = char
            # continuation lines start with a space, which counts toward the limit
            limit = _MAX_LINE_OCTETS - 1
        else:
            current += char
    parts.append(current)
    return "\r\n ".join(parts)


def _default_uid(domain: str) -> str:
    return f"{uuid.uuid4()}@{domain}"


def generate_ics_content(
    events: Sequence[CycleEvent],
    stamp: datetime | None = None,
    uid_factory: Callable[[], str] | None = None,
    config: CycleConfig | None = None,
) -> str:
    """Serialize events into an iCalendar document.

    Args:
        events:      Events to export (already filtered).
        stamp:       DTSTAMP for every event; defaults to now (UTC).
        uid_factory: Returns a unique UID per call; defaults to uuid4@domain.
        config:      Engine config (defaults to the singleton).

    Returns:
        The document text with CRLF line endings.
    """
    cal = (config or get_cycle_config()).calendar
    stamp = stamp or datetime.now(timezone.utc)
    if stamp.tzinfo is not None:
        stamp = stamp.astimezone(timezone.utc)
    dtstamp = stamp.strftime("%Y%m%dT%H%M%SZ")
    next_uid = uid_factory or (lambda: _default_uid(cal.uid_domain))

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{cal.product_id}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{escape_ics_text(cal.calendar_name)}",
        "X-WR-TIMEZONE:UTC",
    ]
    for event in events:
        lines.extend(
            [
                "BEGIN:VEVENT",
                f"UID:{next_uid()}",
                f"DTSTAMP:{dtstamp}",
                f"DTSTART;VALUE=DATE:{format_ics_date(event.start_date)}",
                # exclusive end
                f"DTEND;VALUE=DATE:{format_ics_date(add_days(event.end_date, 1))}",
                f"SUMMARY:{escape_ics_text(event.title)}",
                f"DESCRIPTION:{escape_ics_text(event.description)}",
                f"CATEGORIES:{EventType(event.type).value.upper()}",
                "STATUS:CONFIRMED",
                "TRANSP:TRANSPARENT",
                "END:VEVENT",
            ]
        )
    lines.append("END:VCALENDAR")

    logger.info("Generated iCalendar document with %d events", len(events))
    return "\r\n".join(fold_line(line) for line in lines) + "\r\n"


def ics_filename(export_date: date | None = None) -> str:
    return f"cycle-events-{(export_date or date.today()).isoformat()}.ics"


# ---------------------------------------------------------------------------
# Deep link
# ---------------------------------------------------------------------------


def generate_google_calendar_url(
    event: CycleEvent,
    config: CycleConfig | None = None,
) -> str:
    """Build a Google Calendar "create event" link for a single event.

    Bulk export should go through ``generate_ics_content`` instead.
    """
    cal = (config or get_cycle_config()).calendar
    start = format_ics_date(event.start_date)
    end = format_ics_date(add_days(event.end_date, 1))
    params = urlencode(
        {
            "action": "TEMPLATE",
            "text": event.title,
            "dates": f"{start}/{end}",
            "details": event.description,
            "trp": "false",
        }
    )
    return f"{cal.google_calendar_url}?{params}"
