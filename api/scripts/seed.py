"""Seed the database with a demo padel club.

Run with: python -m scripts.seed
Creates the club with a split weekday schedule, its courts, and a couple of
reservations for today so the grid has something to show.
"""

import asyncio
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from sqlalchemy import select

from app.core.database import async_session_factory, engine
from app.models import Base, Club, Court, CourtSurface, CourtType, Reservation, ReservationType
from app.services.pricing import derive_payment_status, split_court_price

CLUB = {
    "name": "Padel Indoor Norte",
    "slug": "padel-indoor-norte",
    "location": "Calle del Deporte 12, Madrid",
    "timezone": "Europe/Madrid",
    "booking_duration": 90,
    "opening_hour": 8,
    "closing_hour": 23,
    "default_price": Decimal("32.00"),
    "extras": [
        {"name": "Tubo de bolas", "price": "6.00"},
        {"name": "Alquiler de pala", "price": "3.00"},
        {"name": "Agua", "price": "1.50"},
    ],
    "price_templates": [
        {"label": "Socio", "price": "6.00"},
        {"label": "No socio", "price": "8.00"},
    ],
}

# Weekdays run a morning and an evening shift; weekends one long day.
WEEKDAY_SHIFTS = [{"start": "08:00", "end": "14:00"}, {"start": "16:00", "end": "23:00"}]
WEEKEND_SHIFTS = [{"start": "09:00", "end": "21:00"}]

COURTS = [
    {"name": "Pista 1", "court_type": CourtType.INDOOR, "surface": CourtSurface.CRYSTAL},
    {"name": "Pista 2", "court_type": CourtType.INDOOR, "surface": CourtSurface.CRYSTAL},
    {"name": "Pista 3", "court_type": CourtType.INDOOR, "surface": CourtSurface.WALL},
    {"name": "Pista Central", "court_type": CourtType.OUTDOOR, "surface": CourtSurface.CRYSTAL, "price": Decimal("40.00")},
    # Closed for resurfacing
    {"name": "Pista 5", "court_type": CourtType.OUTDOOR, "surface": CourtSurface.SYNTHETIC, "is_active": False},
]


async def seed():
    # Create tables (in dev; production manages its schema separately)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as db:
        # Check if already seeded
        result = await db.execute(select(Club).where(Club.slug == CLUB["slug"]))
        if result.scalar_one_or_none():
            print("Database already seeded, skipping.")
            return

        shifts = {str(d): WEEKDAY_SHIFTS for d in range(1, 6)}
        shifts.update({"6": WEEKEND_SHIFTS, "7": WEEKEND_SHIFTS})
        club = Club(shifts=shifts, **CLUB)
        db.add(club)
        await db.flush()

        courts = []
        for i, court_data in enumerate(COURTS):
            court = Court(club_id=club.id, sort_order=i, **court_data)
            db.add(court)
            courts.append(court)
        await db.flush()

        # Two reservations for today: one on the grid, one placed off-grid by hand
        tz = ZoneInfo(club.timezone)
        today = date.today()
        duration = timedelta(minutes=club.booking_duration)
        share = str(split_court_price(club.default_price))
        players = [
            {"name": "Lucía", "paid": True, "amount": share, "court_price": share},
            {"name": "Marcos", "paid": True, "amount": share, "court_price": share},
            {"name": "Inés", "paid": False, "amount": "0", "court_price": share},
            {"name": "Pablo", "paid": False, "amount": "0", "court_price": share},
        ]
        for court, start in ((courts[0], time(9, 30)), (courts[1], time(18, 15))):
            start_dt = datetime.combine(today, start, tzinfo=tz)
            db.add(
                Reservation(
                    club_id=club.id,
                    court_id=court.id,
                    start_time=start_dt,
                    end_time=start_dt + duration,
                    type=ReservationType.BOOKING,
                    price=club.default_price,
                    players=players,
                    items=[{"name": "Tubo de bolas", "quantity": 1, "price": "6.00", "assigned_to": []}],
                    payment_status=derive_payment_status(players),
                )
            )

        await db.commit()

        active = sum(1 for c in COURTS if c.get("is_active", True))
        print(f"Seeded: {club.name}")
        print(f"  {active} bookable courts, {len(COURTS) - active} inactive")
        print(f"  {club.booking_duration}-minute slots, split weekday shifts")
        print("  2 reservations today")


if __name__ == "__main__":
    asyncio.run(seed())
