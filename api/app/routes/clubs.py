"""Club, court, schedule and availability routes."""

import logging
from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import get_club, get_now
from app.models.club import Club
from app.schemas import (
    ClubOut,
    ClubUpdate,
    CourtOut,
    DayAvailabilityOut,
    GridCellOut,
    GridOut,
    GridRowOut,
    ScheduleOut,
    SlotAvailabilityOut,
    SlotsOut,
)
from app.services.availability import build_day_grid, project_availability
from app.services.club_data import load_active_courts, load_view_reservations
from app.services.shifts import resolve_shifts_for_date, weekday_key
from app.services.slots import club_day_slots

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clubs", tags=["clubs"])

VIEW_PATTERN = "^(club|player)$"
JSON_FIELDS = {"shifts", "extras", "price_templates"}


@router.get("/{slug}", response_model=ClubOut)
async def get_club_detail(club: Club = Depends(get_club)):
    return club


@router.patch("/{slug}", response_model=ClubOut)
async def update_club(
    body: ClubUpdate,
    club: Club = Depends(get_club),
    db: AsyncSession = Depends(get_db),
):
    """Update booking configuration: duration, hours, weekly shifts, prices, extras.

    Sending "shifts": null switches the club back to its opening/closing hours.
    """
    changes = body.model_dump(exclude_unset=True)
    # JSON columns need plain JSON values (Decimal prices become strings)
    json_changes = body.model_dump(exclude_unset=True, include=JSON_FIELDS, mode="json")
    changes.update(json_changes)
    for field, value in changes.items():
        setattr(club, field, value)
    await db.flush()
    await db.refresh(club)

    logger.info("Club %s config updated: %s", club.slug, ", ".join(sorted(changes)) or "nothing")
    return club


@router.get("/{slug}/courts", response_model=list[CourtOut])
async def list_courts(club: Club = Depends(get_club), db: AsyncSession = Depends(get_db)):
    return await load_active_courts(db, club.id)


@router.get("/{slug}/schedule", response_model=ScheduleOut)
async def get_schedule(
    query_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    club: Club = Depends(get_club),
):
    """Shift windows in force on a date, exactly as configured (or the opening-hours fallback)."""
    windows = resolve_shifts_for_date(club.shifts, query_date, club.opening_hour, club.closing_hour)
    return ScheduleOut(club_id=club.id, date=query_date, weekday=weekday_key(query_date), windows=windows)


@router.get("/{slug}/slots", response_model=SlotsOut)
async def get_slots(
    query_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    view: str = Query("club", pattern=VIEW_PATTERN),
    club: Club = Depends(get_club),
    db: AsyncSession = Depends(get_db),
):
    """Slot starts for a day: the shift grid merged with reservation boundaries.

    The player view only keeps slots that leave room for a full booking inside a shift.
    """
    reservations = await load_view_reservations(db, club, query_date)
    slots = club_day_slots(club, query_date, reservations, within_shifts=view == "player")
    return SlotsOut(
        club_id=club.id,
        date=query_date,
        view=view,
        duration_minutes=club.booking_duration,
        slots=slots,
    )


@router.get("/{slug}/availability", response_model=DayAvailabilityOut)
async def get_availability(
    query_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    view: str = Query("player", pattern=VIEW_PATTERN),
    club: Club = Depends(get_club),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Free courts per slot, with the offer the booking screen should make.

    offer is "direct" when exactly one court is free (one-tap booking),
    "choose" when several are, "full" when none is. The player view hides
    slots that have already started.
    """
    is_player = view == "player"
    courts = await load_active_courts(db, club.id)
    reservations = await load_view_reservations(db, club, query_date)
    slots = club_day_slots(club, query_date, reservations, within_shifts=is_player)

    projected = project_availability(
        slots, club.booking_duration, courts, reservations, now, hide_past=is_player
    )
    duration = timedelta(minutes=club.booking_duration)
    return DayAvailabilityOut(
        club_id=club.id,
        date=query_date,
        view=view,
        duration_minutes=club.booking_duration,
        slots=[
            SlotAvailabilityOut(
                start_time=s.start_time,
                end_time=s.start_time + duration,
                is_past=s.is_past,
                offer=s.offer,
                free_courts=[CourtOut.model_validate(c) for c in s.free_courts],
            )
            for s in projected
        ],
    )


@router.get("/{slug}/grid", response_model=GridOut)
async def get_grid(
    query_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    club: Club = Depends(get_club),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Staff reservation grid: slots as rows, courts as columns.

    Used by the desk view where each cell is free, the start of a
    reservation, or covered by one that started earlier.
    """
    courts = await load_active_courts(db, club.id)
    reservations = await load_view_reservations(db, club, query_date)
    slots = club_day_slots(club, query_date, reservations)

    rows = build_day_grid(slots, courts, reservations, now, settings.overdue_payment_grace_minutes)
    return GridOut(
        club_id=club.id,
        date=query_date,
        courts=[CourtOut.model_validate(c) for c in courts],
        rows=[
            GridRowOut(
                start_time=row.start_time,
                is_past=row.is_past,
                cells=[
                    GridCellOut(
                        court_id=cell.court_id,
                        state=cell.state,
                        reservation_id=cell.reservation.id if cell.reservation is not None else None,
                        payment_overdue=cell.payment_overdue,
                    )
                    for cell in row.cells
                ],
            )
            for row in rows
        ],
    )
