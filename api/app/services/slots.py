"""Slot generation for a club day.

Pure calculation module: no database, no async, no FastAPI dependencies.

A day's slots are the regular grid walked through each shift in steps of the
club's booking duration, merged with the start and end instants of the day's
reservations ("anchors"). Anchors keep reservations that were placed off-grid
visible as rows, along with any free gap before or after them.
"""

from collections.abc import Iterable
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.services.booking_rules import active_reservations
from app.services.shifts import localize_instant, resolve_shifts_for_date, resolve_window_bounds


def club_timezone(club) -> ZoneInfo:
    return ZoneInfo(getattr(club, "timezone", None) or settings.default_timezone)


def day_bounds(query_date: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """[midnight, next midnight) of query_date in tz."""
    start = datetime.combine(query_date, time(0, 0), tzinfo=tz)
    end = datetime.combine(query_date + timedelta(days=1), time(0, 0), tzinfo=tz)
    return start, end


def _truncate(instant: datetime, tz: tzinfo) -> datetime:
    return localize_instant(instant, tz).replace(second=0, microsecond=0)


def base_slots(bounds: list[tuple[datetime, datetime]], duration_minutes: int) -> list[datetime]:
    """Regular grid: every step from a shift's start whose full slot fits before the shift ends.

    Steps are elapsed time, walked in UTC, so a DST change inside a shift
    neither repeats nor skips an instant.
    """
    if duration_minutes <= 0:
        raise ValueError(f"Slot duration must be positive, got {duration_minutes}")

    step = timedelta(minutes=duration_minutes)
    slots: list[datetime] = []
    for shift_start, shift_end in bounds:
        tz = shift_start.tzinfo
        current, end = shift_start.astimezone(UTC), shift_end.astimezone(UTC)
        while current + step <= end:
            slots.append(current.astimezone(tz))
            current += step
    return slots


def anchor_instants(reservations: Iterable, query_date: date, tz: tzinfo) -> list[datetime]:
    """Start and end (seconds dropped) of each live reservation touching query_date."""
    day_start, day_end = day_bounds(query_date, tz)
    anchors: list[datetime] = []
    for r in active_reservations(reservations):
        if r.start_time < day_end and r.end_time > day_start:
            anchors.append(_truncate(r.start_time, tz))
            anchors.append(_truncate(r.end_time, tz))
    return anchors


def fits_in_shift(instant: datetime, duration_minutes: int, bounds: list[tuple[datetime, datetime]]) -> bool:
    """True if [instant, instant + duration) lies entirely inside some shift."""
    start = instant.astimezone(UTC)
    end = start + timedelta(minutes=duration_minutes)
    return any(
        shift_start.astimezone(UTC) <= start and end <= shift_end.astimezone(UTC) for shift_start, shift_end in bounds
    )


def generate_slots(
    windows: list,
    duration_minutes: int,
    query_date: date,
    reservations: Iterable,
    tz: tzinfo,
    within_shifts: bool = False,
) -> list[datetime]:
    """Build the ascending, de-duplicated slot list for a day.

    windows are shift dicts as returned by resolve_shifts_for_date; malformed
    ones are skipped. With within_shifts (the player view) every candidate,
    anchors included, must leave room for a whole slot inside a shift.
    """
    bounds = resolve_window_bounds(windows, query_date, tz)

    # Union and order by UTC instant: wall-clock fields repeat on fall-back days
    instants = {_truncate(s, UTC) for s in base_slots(bounds, duration_minutes)}
    instants.update(a.astimezone(UTC) for a in anchor_instants(reservations, query_date, tz))

    slots = [s.astimezone(tz) for s in sorted(instants)]
    if within_shifts:
        slots = [s for s in slots if fits_in_shift(s, duration_minutes, bounds)]
    return slots


def club_day_slots(club, query_date: date, reservations: Iterable, within_shifts: bool = False) -> list[datetime]:
    """generate_slots driven by a club's own shift and duration config."""
    windows = resolve_shifts_for_date(club.shifts, query_date, club.opening_hour, club.closing_hour)
    return generate_slots(
        windows,
        club.booking_duration,
        query_date,
        reservations,
        club_timezone(club),
        within_shifts=within_shifts,
    )
