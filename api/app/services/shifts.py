"""Shift schedule resolution for a club day.

Pure calculation module: no database, no async, no FastAPI dependencies.

A club either configures a weekly shift map keyed by ISO weekday ("1" = Monday
... "7" = Sunday) with one or more {"start": "HH:MM", "end": "HH:MM"} windows
per day, or leaves it empty and falls back to a single opening/closing hour
window. Windows are returned verbatim; parsing happens when they are consumed.
"""

import logging
from datetime import UTC, date, datetime, time, timedelta, tzinfo

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def weekday_key(query_date: date) -> str:
    """Shift map key for a date: Monday "1" through Sunday "7"."""
    return str(query_date.isoweekday())


def resolve_shifts_for_date(
    shifts: dict | None,
    query_date: date,
    opening_hour: int,
    closing_hour: int,
) -> list[dict]:
    """Return the shift windows that apply on query_date.

    A non-empty list under the day's key wins and is returned as stored.
    Anything else (no map, missing key, empty or non-list value) yields one
    fallback window from opening_hour:00 to closing_hour:00.
    """
    day_shifts = (shifts or {}).get(weekday_key(query_date))
    if isinstance(day_shifts, list) and day_shifts:
        return list(day_shifts)

    return [{"start": f"{opening_hour:02d}:00", "end": f"{closing_hour:02d}:00"}]


def parse_hhmm(value) -> int | None:
    """Parse a wall-clock "HH:MM" string into minutes after midnight.

    Accepts "H", "HH:MM" and "HH:MM:SS" (seconds ignored). "24:00" is allowed
    and means end of day. Returns None for anything unparsable or out of range.
    """
    if not isinstance(value, str):
        return None

    parts = value.strip().split(":")
    if not 1 <= len(parts) <= 3:
        return None
    try:
        hours = int(parts[0])
        minutes = int(parts[1]) if len(parts) > 1 else 0
    except ValueError:
        return None

    if not (0 <= hours <= 24 and 0 <= minutes < 60):
        return None
    total = hours * 60 + minutes
    if total > MINUTES_PER_DAY:
        return None
    return total


def localize_instant(instant: datetime, tz: tzinfo) -> datetime:
    """The instant expressed in tz with the offset actually in force there.

    Going through UTC matters on DST days: a wall-clock time that does not
    exist (02:30 on spring-forward) comes back as its real equivalent (03:30),
    so equal instants always compare and hash equal.
    """
    return instant.astimezone(UTC).astimezone(tz)


def wall_clock(query_date: date, minutes: int, tz: tzinfo) -> datetime:
    """Aware datetime for a wall-clock time given as minutes after midnight ("24:00" = next midnight)."""
    day = query_date + timedelta(days=minutes // MINUTES_PER_DAY)
    minutes %= MINUTES_PER_DAY
    return localize_instant(datetime.combine(day, time(minutes // 60, minutes % 60), tzinfo=tz), tz)


def window_bounds(window, query_date: date, tz: tzinfo) -> tuple[datetime, datetime] | None:
    """Resolve a shift window to aware (start, end) datetimes on query_date.

    Malformed windows are skipped (None) rather than raised, so a club with a
    broken entry still gets slots from its other shifts.
    """
    if not isinstance(window, dict):
        logger.debug("Skipping shift entry that is not a mapping: %r", window)
        return None

    start = parse_hhmm(window.get("start"))
    end = parse_hhmm(window.get("end"))
    if start is None or end is None:
        logger.debug("Skipping shift with unparsable bounds: %r", window)
        return None

    return wall_clock(query_date, start, tz), wall_clock(query_date, end, tz)


def resolve_window_bounds(windows: list, query_date: date, tz: tzinfo) -> list[tuple[datetime, datetime]]:
    """Parse every usable window for the day, in input order."""
    bounds = []
    for window in windows:
        resolved = window_bounds(window, query_date, tz)
        if resolved is not None:
            bounds.append(resolved)
    return bounds
