"""Booking rules enforcement.

All reservation validation logic lives here, separate from the route handlers.
Each rule returns a clear violation or None if the rule passes.
The main validate_reservation() function runs all rules and collects violations.

Every function takes an already-fetched snapshot of reservations and ignores
cancelled ones itself, so callers may pass a day's rows unfiltered. The check
is advisory: two clients holding stale snapshots can both pass it, which is why
the reservations table carries its own uniqueness guard.
"""

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from app.models.reservation import ReservationStatus


class BookingViolation(Exception):
    """Raised when a booking rule is violated."""

    def __init__(self, rule: str, message: str):
        self.rule = rule
        self.message = message
        super().__init__(message)


def active_reservations(reservations: Iterable) -> list:
    """Drop cancelled reservations. Cancelling frees the slot."""
    return [r for r in reservations if r.status != ReservationStatus.CANCELLED]


def calc_end_time(start_time: datetime, duration_minutes: int) -> datetime:
    """Calculate end time from start time and duration (elapsed minutes, so DST-safe)."""
    if start_time.tzinfo is None:
        return start_time + timedelta(minutes=duration_minutes)
    end = start_time.astimezone(UTC) + timedelta(minutes=duration_minutes)
    return end.astimezone(start_time.tzinfo)


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open interval overlap: [a) and [b) share at least one instant.

    Back-to-back intervals (end_a == start_b) do not overlap.
    """
    return start_a < end_b and end_a > start_b


def find_conflict(
    court_id,
    start_time: datetime,
    duration_minutes: int,
    reservations: Iterable,
    exclude_reservation_id=None,
):
    """Return the first live reservation on court_id overlapping the proposal, or None."""
    end_time = calc_end_time(start_time, duration_minutes)
    for r in active_reservations(reservations):
        if exclude_reservation_id is not None and r.id == exclude_reservation_id:
            continue
        if r.court_id != court_id:
            continue
        if overlaps(start_time, end_time, r.start_time, r.end_time):
            return r
    return None


def has_conflict(
    court_id,
    start_time: datetime,
    duration_minutes: int,
    reservations: Iterable,
    exclude_reservation_id=None,
) -> bool:
    """True if [start, start + duration) overlaps a live reservation on the same court.

    exclude_reservation_id lets a reservation being moved ignore itself.
    """
    return find_conflict(court_id, start_time, duration_minutes, reservations, exclude_reservation_id) is not None


def check_court_conflict(
    court_id,
    start_time: datetime,
    duration_minutes: int,
    reservations: Iterable,
    exclude_reservation_id=None,
) -> BookingViolation | None:
    """No two confirmed reservations can overlap on the same court."""
    conflict = find_conflict(court_id, start_time, duration_minutes, reservations, exclude_reservation_id)

    if conflict:
        tz = start_time.tzinfo
        return BookingViolation(
            "court_conflict",
            f"Court already booked from {conflict.start_time.astimezone(tz).strftime('%H:%M')} "
            f"to {conflict.end_time.astimezone(tz).strftime('%H:%M')}.",
        )

    return None


def check_not_in_past(start_time: datetime, now: datetime) -> BookingViolation | None:
    """Cannot book a slot that has already started."""
    if start_time <= now:
        return BookingViolation("past_booking", "Cannot book a slot in the past.")

    return None


def validate_reservation(
    court_id,
    start_time: datetime,
    duration_minutes: int,
    reservations: Iterable,
    now: datetime,
    exclude_reservation_id=None,
) -> list[BookingViolation]:
    """Run all booking rules and return a list of violations (empty = valid)."""
    reservations = list(reservations)
    violations: list[BookingViolation] = []

    # 1. Not in the past
    v = check_not_in_past(start_time, now)
    if v:
        violations.append(v)

    # 2. Court conflict (double booking)
    v = check_court_conflict(court_id, start_time, duration_minutes, reservations, exclude_reservation_id)
    if v:
        violations.append(v)

    return violations
