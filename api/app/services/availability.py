"""Court availability projection.

Pure calculation module: no database, no async, no FastAPI dependencies.

Given slot instants and a reservation snapshot, works out which courts are free
at each slot and what the caller should offer: a one-tap booking when a single
court is free, a court picker when several are, nothing when the slot is full.
The clock is always passed in as `now`; nothing here reads the system time.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from app.models.reservation import PaymentStatus, ReservationType
from app.services.booking_rules import active_reservations, has_conflict

OFFER_DIRECT = "direct"
OFFER_CHOOSE = "choose"
OFFER_FULL = "full"

CELL_FREE = "free"
CELL_RESERVED = "reserved"  # a reservation starts exactly at this slot
CELL_OCCUPIED = "occupied"  # the slot falls strictly inside a reservation


def free_courts_at(instant: datetime, duration_minutes: int, courts: Iterable, reservations: Iterable) -> list:
    """Active courts with no reservation overlapping [instant, instant + duration), input order kept."""
    reservations = active_reservations(reservations)
    return [
        court
        for court in courts
        if getattr(court, "is_active", True) and not has_conflict(court.id, instant, duration_minutes, reservations)
    ]


def slot_offer(free_courts: list) -> str:
    if not free_courts:
        return OFFER_FULL
    if len(free_courts) == 1:
        return OFFER_DIRECT
    return OFFER_CHOOSE


@dataclass
class SlotAvailability:
    start_time: datetime
    free_courts: list
    offer: str
    is_past: bool


def project_availability(
    slots: list[datetime],
    duration_minutes: int,
    courts: Iterable,
    reservations: Iterable,
    now: datetime,
    hide_past: bool = False,
) -> list[SlotAvailability]:
    """Free courts and offer for every slot. Past slots are marked full, or dropped with hide_past."""
    courts = list(courts)
    reservations = active_reservations(reservations)

    result: list[SlotAvailability] = []
    for slot in slots:
        is_past = slot < now
        if is_past and hide_past:
            continue
        free = [] if is_past else free_courts_at(slot, duration_minutes, courts, reservations)
        result.append(SlotAvailability(start_time=slot, free_courts=free, offer=slot_offer(free), is_past=is_past))
    return result


# ---------------------------------------------------------------------------
# Staff grid: slots as rows, courts as columns
# ---------------------------------------------------------------------------


def _minute(instant: datetime) -> datetime:
    # Slot rows are whole minutes; a start stored with seconds belongs to its minute's row
    return instant.replace(second=0, microsecond=0)


def starting_reservation(court_id, slot: datetime, reservations: Iterable):
    """The reservation on court_id that begins at slot (to the minute), if any."""
    return next((r for r in reservations if r.court_id == court_id and _minute(r.start_time) == slot), None)


def covering_reservation(court_id, slot: datetime, reservations: Iterable):
    """The reservation on court_id that started before slot and is still running."""
    return next(
        (r for r in reservations if r.court_id == court_id and _minute(r.start_time) < slot < r.end_time),
        None,
    )


def is_payment_overdue(reservation, now: datetime, grace_minutes: int) -> bool:
    """Finished more than grace_minutes ago and still not fully paid.

    Maintenance blocks carry no payment and are never overdue.
    """
    if reservation.type == ReservationType.MAINTENANCE:
        return False
    finished = now > reservation.end_time + timedelta(minutes=grace_minutes)
    return finished and reservation.payment_status != PaymentStatus.COMPLETED


@dataclass
class GridCell:
    court_id: int
    state: str
    reservation: object | None = None
    payment_overdue: bool = False


@dataclass
class GridRow:
    start_time: datetime
    is_past: bool
    cells: list[GridCell] = field(default_factory=list)


def build_day_grid(
    slots: list[datetime],
    courts: Iterable,
    reservations: Iterable,
    now: datetime,
    grace_minutes: int,
) -> list[GridRow]:
    """One row per slot, one cell per court, as the club reservation grid shows it."""
    courts = list(courts)
    reservations = active_reservations(reservations)

    rows: list[GridRow] = []
    for slot in slots:
        row = GridRow(start_time=slot, is_past=slot < now)
        for court in courts:
            starting = starting_reservation(court.id, slot, reservations)
            if starting is not None:
                cell = GridCell(
                    court_id=court.id,
                    state=CELL_RESERVED,
                    reservation=starting,
                    payment_overdue=is_payment_overdue(starting, now, grace_minutes),
                )
            elif covering_reservation(court.id, slot, reservations) is not None:
                cell = GridCell(court_id=court.id, state=CELL_OCCUPIED)
            else:
                cell = GridCell(court_id=court.id, state=CELL_FREE)
            row.cells.append(cell)
        rows.append(row)
    return rows
