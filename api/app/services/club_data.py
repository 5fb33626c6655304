"""Snapshot loaders: fetch the courts and reservations the pure engine works on."""

from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.club import Club, Court
from app.models.reservation import Reservation
from app.services.booking_rules import calc_end_time
from app.services.slots import club_timezone, day_bounds


async def load_active_courts(db: AsyncSession, club_id: int) -> list[Court]:
    result = await db.execute(
        select(Court)
        .where(Court.club_id == club_id, Court.is_active.is_(True))
        .order_by(Court.sort_order, Court.name)
    )
    return list(result.scalars().all())


async def load_reservations_between(
    db: AsyncSession,
    club_id: int,
    window_start: datetime,
    window_end: datetime,
    court_id: int | None = None,
) -> list[Reservation]:
    """Reservations of any status whose [start, end) intersects the window.

    Cancelled rows are returned too; the engine drops them itself.
    """
    query = select(Reservation).where(
        Reservation.club_id == club_id,
        Reservation.start_time < window_end,
        Reservation.end_time > window_start,
    )
    if court_id is not None:
        query = query.where(Reservation.court_id == court_id)

    result = await db.execute(query.order_by(Reservation.start_time, Reservation.court_id))
    return list(result.scalars().all())


async def load_day_reservations(db: AsyncSession, club: Club, query_date: date) -> list[Reservation]:
    """Every reservation touching query_date in the club's timezone."""
    day_start, day_end = day_bounds(query_date, club_timezone(club))
    return await load_reservations_between(db, club.id, day_start, day_end)


async def load_view_reservations(db: AsyncSession, club: Club, query_date: date) -> list[Reservation]:
    """The day's reservations plus any starting within one slot after midnight.

    A late slot (an anchor at 23:30, say) runs into the next day, and its free
    courts must account for what is booked there.
    """
    day_start, day_end = day_bounds(query_date, club_timezone(club))
    overrun = calc_end_time(day_end, club.booking_duration)
    return await load_reservations_between(db, club.id, day_start, overrun)
