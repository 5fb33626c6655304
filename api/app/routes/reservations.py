"""Reservation routes: create, list, edit, settle, cancel. Every write is conflict-checked first."""

import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_club, get_now
from app.models.club import Club, Court
from app.models.reservation import Reservation, ReservationStatus
from app.schemas import (
    PlayerBalanceOut,
    ReservationBalanceOut,
    ReservationCreate,
    ReservationOut,
    ReservationUpdate,
)
from app.services.booking_rules import (
    BookingViolation,
    active_reservations,
    calc_end_time,
    check_court_conflict,
    validate_reservation,
)
from app.services.club_data import load_day_reservations, load_reservations_between
from app.services.pricing import (
    clean_players,
    derive_payment_status,
    mark_all_paid,
    player_share,
    reservation_total,
    resolve_court_price,
)
from app.services.slots import club_timezone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clubs/{slug}/reservations", tags=["reservations"])


def _localize(value: datetime, club: Club) -> datetime:
    """Naive datetimes from clients are wall-clock times at the club. Seconds are dropped."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=club_timezone(club))
    return value.replace(second=0, microsecond=0)


def _reject(violations: list[BookingViolation]) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=[{"rule": v.rule, "message": v.message} for v in violations],
    )


def _double_booking() -> HTTPException:
    return _reject([BookingViolation("court_conflict", "Court was booked by someone else at this time.")])


async def _get_court(db: AsyncSession, club: Club, court_id: int) -> Court:
    result = await db.execute(
        select(Court).where(Court.id == court_id, Court.club_id == club.id, Court.is_active.is_(True))
    )
    court = result.scalar_one_or_none()
    if not court:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Court not found or not bookable")
    return court


async def _get_reservation(db: AsyncSession, club: Club, reservation_id: int) -> Reservation:
    result = await db.execute(
        select(Reservation).where(Reservation.id == reservation_id, Reservation.club_id == club.id)
    )
    reservation = result.scalar_one_or_none()
    if not reservation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reservation not found")
    return reservation


def _ensure_editable(reservation: Reservation) -> None:
    if reservation.status == ReservationStatus.CANCELLED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cancelled reservations cannot be edited")


@router.post("", response_model=ReservationOut, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    body: ReservationCreate,
    club: Club = Depends(get_club),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    court = await _get_court(db, club, body.court_id)

    start_time = _localize(body.start_time, club)
    end_time = calc_end_time(start_time, club.booking_duration)

    existing = await load_reservations_between(db, club.id, start_time, end_time, court_id=court.id)
    violations = validate_reservation(court.id, start_time, club.booking_duration, existing, now)
    if violations:
        raise _reject(violations)

    players = clean_players([p.model_dump(mode="json") for p in body.players])
    reservation = Reservation(
        club_id=club.id,
        court_id=court.id,
        user_id=body.user_id,
        start_time=start_time,
        end_time=end_time,
        status=ReservationStatus.CONFIRMED,
        type=body.type,
        price=body.price if body.price is not None else resolve_court_price(court, club),
        notes=body.notes,
        players=players,
        items=[i.model_dump(mode="json") for i in body.items],
        payment_status=derive_payment_status(players),
    )
    db.add(reservation)
    try:
        await db.flush()
    except IntegrityError:
        raise _double_booking() from None

    logger.info("Reservation %s created: court %s at %s", reservation.id, court.id, start_time.isoformat())
    return reservation


@router.get("", response_model=list[ReservationOut])
async def list_reservations(
    query_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    include_cancelled: bool = Query(False),
    club: Club = Depends(get_club),
    db: AsyncSession = Depends(get_db),
):
    reservations = await load_day_reservations(db, club, query_date)
    if not include_cancelled:
        reservations = active_reservations(reservations)
    return reservations


@router.get("/{reservation_id}", response_model=ReservationOut)
async def get_reservation(
    reservation_id: int,
    club: Club = Depends(get_club),
    db: AsyncSession = Depends(get_db),
):
    return await _get_reservation(db, club, reservation_id)


@router.patch("/{reservation_id}", response_model=ReservationOut)
async def update_reservation(
    reservation_id: int,
    body: ReservationUpdate,
    club: Club = Depends(get_club),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Edit a reservation in place: move it (court and/or time), reprice it, change players or extras.

    A move is checked against the court's other reservations; the reservation
    never conflicts with its own current interval.
    """
    reservation = await _get_reservation(db, club, reservation_id)
    _ensure_editable(reservation)

    changes = body.model_dump(exclude_unset=True)
    moving_court = changes.get("court_id") not in (None, reservation.court_id)
    new_start = _localize(body.start_time, club) if body.start_time is not None else None
    moving_time = new_start is not None and new_start != reservation.start_time

    if moving_court or moving_time:
        court_id = body.court_id if moving_court else reservation.court_id
        await _get_court(db, club, court_id)
        start_time = new_start if moving_time else reservation.start_time
        end_time = calc_end_time(start_time, club.booking_duration)

        existing = await load_reservations_between(db, club.id, start_time, end_time, court_id=court_id)
        if moving_time:
            violations = validate_reservation(
                court_id, start_time, club.booking_duration, existing, now, exclude_reservation_id=reservation.id
            )
        else:
            v = check_court_conflict(
                court_id, start_time, club.booking_duration, existing, exclude_reservation_id=reservation.id
            )
            violations = [v] if v else []
        if violations:
            raise _reject(violations)

        reservation.court_id = court_id
        reservation.start_time = start_time
        reservation.end_time = end_time

    if body.price is not None:
        reservation.price = body.price
    if "notes" in changes:
        reservation.notes = body.notes
    if body.players is not None:
        reservation.players = clean_players([p.model_dump(mode="json") for p in body.players])
        reservation.payment_status = derive_payment_status(reservation.players)
    if body.items is not None:
        reservation.items = [i.model_dump(mode="json") for i in body.items]

    try:
        await db.flush()
    except IntegrityError:
        raise _double_booking() from None

    logger.info("Reservation %s updated: %s", reservation.id, ", ".join(sorted(changes)) or "nothing")
    return reservation


@router.post("/{reservation_id}/pay-all", response_model=ReservationOut)
async def settle_reservation(
    reservation_id: int,
    club: Club = Depends(get_club),
    db: AsyncSession = Depends(get_db),
):
    """Mark every player as paid."""
    reservation = await _get_reservation(db, club, reservation_id)
    _ensure_editable(reservation)

    reservation.players = mark_all_paid(reservation.players)
    reservation.payment_status = derive_payment_status(reservation.players)
    await db.flush()

    logger.info("Reservation %s settled (%s)", reservation.id, reservation.payment_status)
    return reservation


@router.get("/{reservation_id}/balance", response_model=ReservationBalanceOut)
async def get_reservation_balance(
    reservation_id: int,
    club: Club = Depends(get_club),
    db: AsyncSession = Depends(get_db),
):
    """What each player owes: their court share plus their part of the extras."""
    reservation = await _get_reservation(db, club, reservation_id)
    players = reservation.players or []
    items = reservation.items or []

    return ReservationBalanceOut(
        reservation_id=reservation.id,
        total=reservation_total(reservation.price, items),
        payment_status=reservation.payment_status,
        players=[
            PlayerBalanceOut(
                index=i,
                name=p.get("name", ""),
                paid=bool(p.get("paid")),
                owes=player_share(players, items, i),
            )
            for i, p in enumerate(players)
        ],
    )


@router.delete("/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_reservation(
    reservation_id: int,
    club: Club = Depends(get_club),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Soft cancel: the row stays for history, the slot becomes free. Repeating it is a no-op."""
    reservation = await _get_reservation(db, club, reservation_id)
    if reservation.status == ReservationStatus.CANCELLED:
        return

    reservation.status = ReservationStatus.CANCELLED
    reservation.cancelled_at = now
    logger.info("Reservation %s cancelled", reservation.id)
