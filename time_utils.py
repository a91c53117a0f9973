"""Time arithmetic and human-friendly formatting for the print scheduler.

All timestamps are naive ``datetime`` values on the local wall clock. Calendar
comparisons use the local date components, never a 24-hour threshold.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Optional, Tuple

COMPLETED = "Completed"

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_HOURS_MINUTES_RE = re.compile(r"^(?:(\d+)\s*h)?\s*(?:(\d+)\s*m)?$", re.IGNORECASE)
_MINUTE = timedelta(minutes=1)


def add_duration(ts: datetime, minutes: int) -> datetime:
    """Return ``ts`` offset by ``minutes`` (zero and negative values included)."""
    return ts + timedelta(minutes=minutes)


def format_duration(minutes: int) -> str:
    """Render minutes as ``"45m"``, ``"2h"`` or ``"1h 30m"``.

    ``minutes`` must be non-negative; negative input is not supported.
    """
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def format_clock(ts: datetime) -> str:
    """12-hour clock without a leading zero, e.g. ``9:05 AM``."""
    hour = ts.hour % 12 or 12
    suffix = "AM" if ts.hour < 12 else "PM"
    return f"{hour}:{ts.minute:02d} {suffix}"


def format_relative_timestamp(ts: datetime, now: datetime) -> str:
    """Clock time for today, ``Tomorrow <clock>`` for the next day, else ``Jan 3, <clock>``."""
    day = ts.date()
    today = now.date()
    if day == today:
        return format_clock(ts)
    if day == today + timedelta(days=1):
        return f"Tomorrow {format_clock(ts)}"
    return f"{ts.strftime('%b')} {ts.day}, {format_clock(ts)}"


def remaining_minutes(end_time: datetime, now: datetime) -> int:
    """Whole minutes left until ``end_time``, rounded up; 0 once it has passed."""
    if end_time <= now:
        return 0
    # Ceiling division on timedelta stays exact (no float rounding)
    return -((now - end_time) // _MINUTE)


def remaining_duration(end_time: datetime, now: datetime) -> str:
    """Return ``COMPLETED`` once ``end_time`` is reached, else the time left.

    One second left still renders as ``"1m"``.
    """
    if end_time <= now:
        return COMPLETED
    return format_duration(remaining_minutes(end_time, now))


def parse_clock_time(text: str) -> Tuple[int, int]:
    """Parse a 24-hour ``HH:MM`` string into ``(hour, minute)``."""
    m = _HHMM_RE.match(text.strip()) if isinstance(text, str) else None
    if not m:
        raise ValueError(f"Invalid HH:MM: {text!r}")
    hh = int(m.group(1))
    mm = int(m.group(2))
    if not (0 <= hh <= 23 and 0 <= mm <= 59):
        raise ValueError(f"Invalid HH:MM: {text!r}")
    return hh, mm


def is_valid_clock_time(text: str) -> bool:
    try:
        parse_clock_time(text)
    except ValueError:
        return False
    return True


def normalize_clock_time(text: str) -> str:
    """``"8:00"`` -> ``"08:00"``; raises ``ValueError`` like ``parse_clock_time``."""
    hh, mm = parse_clock_time(text)
    return f"{hh:02d}:{mm:02d}"


def parse_duration_text(text: str | None) -> Optional[int]:
    """Parse user-typed durations into positive minutes.

    Accepts ``"90"``, ``"90m"``, ``"2h"``, ``"1h30m"``, ``"1h 30m"`` and ``"1:30"``.
    Returns None for anything else, including zero.
    """
    if not text:
        return None
    raw = text.strip()
    if not raw:
        return None

    total: int
    if raw.isdigit():
        total = int(raw)
    elif ":" in raw:
        hh, _, mm = raw.partition(":")
        if not (hh.isdigit() and mm.isdigit() and len(mm) == 2 and int(mm) < 60):
            return None
        total = int(hh) * 60 + int(mm)
    else:
        m = _HOURS_MINUTES_RE.match(raw)
        if not m or not (m.group(1) or m.group(2)):
            return None
        total = int(m.group(1) or 0) * 60 + int(m.group(2) or 0)

    return total if total > 0 else None


def parse_completion_time(text: str | None, now: datetime) -> Optional[datetime]:
    """Parse ``"HH:MM"`` (on today's date) or ``"YYYY-MM-DD HH:MM"``.

    Returns None when the text cannot be parsed.
    """
    if not text:
        return None
    raw = text.strip()
    date_part, _, clock_part = raw.rpartition(" ")
    if not date_part:
        clock_part = raw
    try:
        hh, mm = parse_clock_time(clock_part)
        if date_part:
            day = datetime.strptime(date_part.strip(), "%Y-%m-%d").date()
        else:
            day = now.date()
    except ValueError:
        return None
    return datetime(day.year, day.month, day.day, hh, mm)
