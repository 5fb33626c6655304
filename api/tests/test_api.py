"""API tests: health, club config, schedule, slots, availability, reservations, grid."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from app.core.dependencies import get_now
from app.main import app
from app.models import Club, Court, CourtSurface, CourtType

MADRID = ZoneInfo("Europe/Madrid")
TUESDAY = date(2026, 3, 17)  # the day after the pinned clock in conftest
MONDAY = date(2026, 3, 16)

CLUB_URL = "/api/v1/clubs/test-club"
RES_URL = f"{CLUB_URL}/reservations"


def local(hour: int, minute: int = 0, day: date = TUESDAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=MADRID)


def parse(value: str) -> datetime:
    return datetime.fromisoformat(value)


def pin_clock(instant: datetime) -> None:
    app.dependency_overrides[get_now] = lambda: instant


@pytest.fixture
async def seed_club(session_factory):
    """A club open 08:00-12:00 with 90-minute slots, two bookable courts and one closed."""
    async with session_factory() as db:
        club = Club(
            name="Test Club",
            slug="test-club",
            timezone="Europe/Madrid",
            booking_duration=90,
            opening_hour=8,
            closing_hour=12,
            default_price=Decimal("32.00"),
        )
        db.add(club)
        await db.flush()

        court_1 = Court(club_id=club.id, name="Pista 1", sort_order=0)
        court_2 = Court(
            club_id=club.id,
            name="Pista 2",
            sort_order=1,
            court_type=CourtType.OUTDOOR,
            surface=CourtSurface.WALL,
            price=Decimal("40.00"),
        )
        closed = Court(club_id=club.id, name="Pista 3", sort_order=2, is_active=False)
        db.add_all([court_1, court_2, closed])
        await db.commit()

        return {"club": club.id, "court_1": court_1.id, "court_2": court_2.id, "closed": closed.id}


async def _book(client, court_id: int, start: datetime, **extra):
    return await client.post(RES_URL, json={"court_id": court_id, "start_time": start.isoformat(), **extra})


def _slot_times(body: dict) -> list[datetime]:
    return [parse(s) for s in body["slots"]]


# ---------------------------------------------------------------------------
# Health and club config
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_get_club(client, seed_club):
    resp = await client.get(CLUB_URL)
    assert resp.status_code == 200
    body = resp.json()
    assert body["slug"] == "test-club"
    assert body["timezone"] == "Europe/Madrid"
    assert body["booking_duration"] == 90
    assert body["shifts"] is None
    assert Decimal(body["default_price"]) == Decimal("32")


@pytest.mark.asyncio
async def test_unknown_club_404(client, seed_club):
    resp = await client.get("/api/v1/clubs/nowhere")
    assert resp.status_code == 404
    resp = await client.get("/api/v1/clubs/nowhere/slots?date=2026-03-17")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_courts_exclude_inactive(client, seed_club):
    resp = await client.get(f"{CLUB_URL}/courts")
    assert resp.status_code == 200
    courts = resp.json()
    assert [c["name"] for c in courts] == ["Pista 1", "Pista 2"]
    assert courts[1]["court_type"] == "outdoor"
    assert Decimal(courts[1]["price"]) == Decimal("40")


@pytest.mark.asyncio
async def test_schedule_falls_back_to_opening_hours(client, seed_club):
    resp = await client.get(f"{CLUB_URL}/schedule?date=2026-03-17")
    assert resp.status_code == 200
    body = resp.json()
    assert body["weekday"] == "2"
    assert body["windows"] == [{"start": "08:00", "end": "12:00"}]


@pytest.mark.asyncio
async def test_patch_shifts_drives_schedule_and_slots(client, seed_club):
    tuesday = [{"start": "09:00", "end": "12:00"}, {"start": "17:00", "end": "20:00"}]
    sunday = [{"start": "10:00", "end": "13:00"}]
    resp = await client.patch(CLUB_URL, json={"shifts": {"2": tuesday, "7": sunday}})
    assert resp.status_code == 200
    assert resp.json()["shifts"] == {"2": tuesday, "7": sunday}

    resp = await client.get(f"{CLUB_URL}/schedule?date=2026-03-17")
    assert resp.json()["windows"] == tuesday

    resp = await client.get(f"{CLUB_URL}/schedule?date=2026-03-22")
    assert resp.json()["weekday"] == "7"
    assert resp.json()["windows"] == sunday

    # Monday has no entry: opening hours apply
    resp = await client.get(f"{CLUB_URL}/schedule?date=2026-03-16")
    assert resp.json()["windows"] == [{"start": "08:00", "end": "12:00"}]

    resp = await client.get(f"{CLUB_URL}/slots?date=2026-03-17")
    assert _slot_times(resp.json()) == [local(9), local(10, 30), local(17), local(18, 30)]


@pytest.mark.asyncio
async def test_patch_shifts_null_restores_fallback(client, seed_club):
    await client.patch(CLUB_URL, json={"shifts": {"2": [{"start": "18:00", "end": "21:00"}]}})
    resp = await client.patch(CLUB_URL, json={"shifts": None})
    assert resp.status_code == 200
    assert resp.json()["shifts"] is None

    resp = await client.get(f"{CLUB_URL}/schedule?date=2026-03-17")
    assert resp.json()["windows"] == [{"start": "08:00", "end": "12:00"}]


@pytest.mark.asyncio
async def test_patch_duration_and_price(client, seed_club):
    resp = await client.patch(CLUB_URL, json={"booking_duration": 60, "default_price": "30.50"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["booking_duration"] == 60
    assert Decimal(body["default_price"]) == Decimal("30.50")

    resp = await client.get(f"{CLUB_URL}/slots?date=2026-03-17")
    assert resp.json()["duration_minutes"] == 60
    assert _slot_times(resp.json()) == [local(8), local(9), local(10), local(11)]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"shifts": {"0": [{"start": "09:00", "end": "12:00"}]}},
        {"shifts": {"monday": [{"start": "09:00", "end": "12:00"}]}},
        {"booking_duration": 0},
        {"opening_hour": 25},
        {"timezone": "Mars/Olympus"},
        {"booking_duration": None},
        {"opening_hour": None},
        {"closing_hour": None},
        {"default_price": None},
        {"timezone": None},
    ],
)
async def test_patch_club_rejects_invalid_config(client, seed_club, payload):
    resp = await client.patch(CLUB_URL, json=payload)
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Slots and availability
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_slots_no_reservations(client, seed_club):
    resp = await client.get(f"{CLUB_URL}/slots?date=2026-03-17")
    assert resp.status_code == 200
    body = resp.json()
    assert body["view"] == "club"
    assert body["duration_minutes"] == 90
    assert _slot_times(body) == [local(8), local(9, 30)]


@pytest.mark.asyncio
async def test_slots_include_off_grid_reservation(client, seed_club):
    resp = await _book(client, seed_club["court_1"], local(10, 15))
    assert resp.status_code == 201

    resp = await client.get(f"{CLUB_URL}/slots?date=2026-03-17")
    assert _slot_times(resp.json()) == [local(8), local(9, 30), local(10, 15), local(11, 45)]

    # 11:45 + 90 min would run past closing
    resp = await client.get(f"{CLUB_URL}/slots?date=2026-03-17&view=player")
    assert resp.json()["view"] == "player"
    assert _slot_times(resp.json()) == [local(8), local(9, 30), local(10, 15)]


@pytest.mark.asyncio
async def test_slots_invalid_view(client, seed_club):
    resp = await client.get(f"{CLUB_URL}/slots?date=2026-03-17&view=admin")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_availability_offers(client, seed_club):
    court_1, court_2 = seed_club["court_1"], seed_club["court_2"]
    assert (await _book(client, court_1, local(8))).status_code == 201
    assert (await _book(client, court_1, local(9, 30))).status_code == 201
    assert (await _book(client, court_2, local(9, 30))).status_code == 201

    resp = await client.get(f"{CLUB_URL}/availability?date=2026-03-17&view=club")
    assert resp.status_code == 200
    slots = resp.json()["slots"]
    assert [parse(s["start_time"]) for s in slots] == [local(8), local(9, 30), local(11)]
    assert [s["offer"] for s in slots] == ["direct", "full", "choose"]
    assert [c["id"] for c in slots[0]["free_courts"]] == [court_2]
    assert slots[1]["free_courts"] == []
    assert [c["id"] for c in slots[2]["free_courts"]] == [court_1, court_2]
    assert parse(slots[0]["end_time"]) == local(9, 30)

    # The player view drops 11:00, a whole slot does not fit before closing
    resp = await client.get(f"{CLUB_URL}/availability?date=2026-03-17")
    assert resp.json()["view"] == "player"
    assert [s["offer"] for s in resp.json()["slots"]] == ["direct", "full"]


@pytest.mark.asyncio
async def test_availability_past_slots(client, seed_club):
    pin_clock(local(8, 30, day=MONDAY))

    resp = await client.get(f"{CLUB_URL}/availability?date=2026-03-16&view=club")
    slots = resp.json()["slots"]
    assert [s["is_past"] for s in slots] == [True, False]
    assert slots[0]["offer"] == "full"
    assert slots[1]["offer"] == "choose"

    resp = await client.get(f"{CLUB_URL}/availability?date=2026-03-16&view=player")
    assert [parse(s["start_time"]) for s in resp.json()["slots"]] == [local(9, 30, day=MONDAY)]


@pytest.mark.asyncio
async def test_late_slot_sees_next_day_reservation(client, seed_club):
    court_1, court_2 = seed_club["court_1"], seed_club["court_2"]
    # Anchors a 23:30 row whose slot runs past midnight
    assert (await _book(client, court_2, local(22))).status_code == 201
    assert (await _book(client, court_1, local(0, day=date(2026, 3, 18)))).status_code == 201

    resp = await client.get(f"{CLUB_URL}/availability?date=2026-03-17&view=club")
    late = {parse(s["start_time"]): s for s in resp.json()["slots"]}[local(23, 30)]
    assert late["offer"] == "direct"
    assert [c["id"] for c in late["free_courts"]] == [court_2]


# ---------------------------------------------------------------------------
# Reservations
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_reservation(client, seed_club):
    resp = await _book(client, seed_club["court_1"], local(9, 30), user_id="player-7", notes="Partido semanal")
    assert resp.status_code == 201
    body = resp.json()
    assert body["court_id"] == seed_club["court_1"]
    assert parse(body["start_time"]) == local(9, 30)
    assert parse(body["end_time"]) == local(11)
    assert body["status"] == "confirmed"
    assert body["type"] == "booking"
    assert body["payment_status"] == "pending"
    assert body["cancelled_at"] is None
    # Club default price
    assert Decimal(body["price"]) == Decimal("32")


@pytest.mark.asyncio
async def test_create_uses_court_price_override(client, seed_club):
    resp = await _book(client, seed_club["court_2"], local(8))
    assert resp.status_code == 201
    assert Decimal(resp.json()["price"]) == Decimal("40")

    resp = await _book(client, seed_club["court_1"], local(8), price="25.00")
    assert Decimal(resp.json()["price"]) == Decimal("25")


@pytest.mark.asyncio
async def test_naive_start_is_club_wall_clock(client, seed_club):
    resp = await client.post(RES_URL, json={"court_id": seed_club["court_1"], "start_time": "2026-03-17T10:00:00"})
    assert resp.status_code == 201
    assert parse(resp.json()["start_time"]) == local(10)


@pytest.mark.asyncio
async def test_start_seconds_are_dropped(client, seed_club):
    resp = await _book(client, seed_club["court_1"], local(10).replace(second=30))
    assert resp.status_code == 201
    booked = resp.json()
    assert parse(booked["start_time"]) == local(10)
    assert parse(booked["end_time"]) == local(11, 30)

    resp = await client.get(f"{CLUB_URL}/grid?date=2026-03-17")
    row = {parse(r["start_time"]): r for r in resp.json()["rows"]}[local(10)]
    assert row["cells"][0]["state"] == "reserved"
    assert row["cells"][0]["reservation_id"] == booked["id"]


@pytest.mark.asyncio
async def test_unknown_player_fields_not_stored(client, seed_club):
    players = [{"name": "Ana", "email": "ana@example.com", "id": "u-1"}]
    resp = await _book(client, seed_club["court_1"], local(8), players=players)
    assert resp.status_code == 201
    assert set(resp.json()["players"][0]) == {"name", "paid", "amount", "court_price"}


@pytest.mark.asyncio
async def test_create_conflict(client, seed_club):
    court_1 = seed_club["court_1"]
    assert (await _book(client, court_1, local(9))).status_code == 201

    resp = await _book(client, court_1, local(9, 30))
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail[0]["rule"] == "court_conflict"
    assert "09:00" in detail[0]["message"]

    # Same start on the same court
    resp = await _book(client, court_1, local(9))
    assert resp.status_code == 422

    # Back-to-back on either side is fine, and so is another court
    assert (await _book(client, court_1, local(10, 30))).status_code == 201
    assert (await _book(client, court_1, local(7, 30))).status_code == 201
    assert (await _book(client, seed_club["court_2"], local(9, 30))).status_code == 201


@pytest.mark.asyncio
async def test_create_in_past(client, seed_club):
    resp = await _book(client, seed_club["court_1"], local(7, day=MONDAY))
    assert resp.status_code == 422
    assert [v["rule"] for v in resp.json()["detail"]] == ["past_booking"]


@pytest.mark.asyncio
async def test_create_on_unbookable_court(client, seed_club):
    resp = await _book(client, seed_club["closed"], local(9))
    assert resp.status_code == 404

    resp = await _book(client, 9999, local(9))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_reservation_404(client, seed_club):
    resp = await client.get(f"{RES_URL}/9999")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_move_reservation(client, seed_club):
    court_1, court_2 = seed_club["court_1"], seed_club["court_2"]
    first = (await _book(client, court_1, local(8))).json()
    await _book(client, court_1, local(10, 30))

    # Overlaps its own old interval only
    resp = await client.patch(f"{RES_URL}/{first['id']}", json={"start_time": local(8, 30).isoformat()})
    assert resp.status_code == 200
    assert parse(resp.json()["end_time"]) == local(10)

    # 09:30-11:00 would overlap the 10:30 reservation
    resp = await client.patch(f"{RES_URL}/{first['id']}", json={"start_time": local(9, 30).isoformat()})
    assert resp.status_code == 422
    assert resp.json()["detail"][0]["rule"] == "court_conflict"

    resp = await client.patch(f"{RES_URL}/{first['id']}", json={"court_id": court_2})
    assert resp.status_code == 200
    assert resp.json()["court_id"] == court_2
    assert parse(resp.json()["start_time"]) == local(8, 30)


@pytest.mark.asyncio
async def test_move_onto_busy_court(client, seed_club):
    court_1, court_2 = seed_club["court_1"], seed_club["court_2"]
    mine = (await _book(client, court_1, local(9))).json()
    await _book(client, court_2, local(9, 30))

    resp = await client.patch(f"{RES_URL}/{mine['id']}", json={"court_id": court_2})
    assert resp.status_code == 422

    resp = await client.patch(f"{RES_URL}/{mine['id']}", json={"court_id": seed_club["closed"]})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_cancel_frees_the_slot(client, seed_club):
    court_1 = seed_club["court_1"]
    booked = (await _book(client, court_1, local(9, 30))).json()

    resp = await client.delete(f"{RES_URL}/{booked['id']}")
    assert resp.status_code == 204
    # Cancelling twice is a no-op
    resp = await client.delete(f"{RES_URL}/{booked['id']}")
    assert resp.status_code == 204

    resp = await client.get(f"{RES_URL}/{booked['id']}")
    assert resp.json()["status"] == "cancelled"
    assert resp.json()["cancelled_at"] is not None

    # Same court, same start
    resp = await _book(client, court_1, local(9, 30))
    assert resp.status_code == 201
    rebooked = resp.json()

    resp = await client.get(f"{RES_URL}?date=2026-03-17")
    assert [r["id"] for r in resp.json()] == [rebooked["id"]]

    resp = await client.get(f"{RES_URL}?date=2026-03-17&include_cancelled=true")
    assert {r["id"] for r in resp.json()} == {booked["id"], rebooked["id"]}

    resp = await client.patch(f"{RES_URL}/{booked['id']}", json={"notes": "too late"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_cancelled_reservation_leaves_no_anchor(client, seed_club):
    booked = (await _book(client, seed_club["court_1"], local(10, 15))).json()
    await client.delete(f"{RES_URL}/{booked['id']}")

    resp = await client.get(f"{CLUB_URL}/slots?date=2026-03-17")
    assert _slot_times(resp.json()) == [local(8), local(9, 30)]


@pytest.mark.asyncio
async def test_list_reservations_by_day(client, seed_club):
    await _book(client, seed_club["court_2"], local(9, 30))
    await _book(client, seed_club["court_1"], local(8))
    await _book(client, seed_club["court_1"], local(9, day=date(2026, 3, 18)))

    resp = await client.get(f"{RES_URL}?date=2026-03-17")
    assert resp.status_code == 200
    assert [parse(r["start_time"]) for r in resp.json()] == [local(8), local(9, 30)]


@pytest.mark.asyncio
async def test_players_drive_payment_status(client, seed_club):
    players = [
        {"name": "Ana", "paid": True, "amount": "8.00", "court_price": "8.00"},
        {"name": "Bea", "court_price": "8.00"},
        {"name": "   "},
    ]
    resp = await _book(client, seed_club["court_1"], local(8), players=players)
    body = resp.json()
    assert [p["name"] for p in body["players"]] == ["Ana", "Bea"]
    assert body["payment_status"] == "partial"

    resp = await client.post(f"{RES_URL}/{body['id']}/pay-all")
    assert resp.status_code == 200
    assert resp.json()["payment_status"] == "completed"
    assert all(p["paid"] for p in resp.json()["players"])

    resp = await client.patch(f"{RES_URL}/{body['id']}", json={"players": [{"name": "Carla"}]})
    assert resp.json()["payment_status"] == "pending"


@pytest.mark.asyncio
async def test_reservation_balance(client, seed_club):
    players = [{"name": n, "court_price": "8.00"} for n in ("Ana", "Bea", "Carla", "Dani")]
    items = [
        {"name": "Tubo de bolas", "quantity": 1, "price": "6.00"},
        {"name": "Alquiler de pala", "quantity": 2, "price": "3.00", "assigned_to": ["0", "2"]},
    ]
    booked = (await _book(client, seed_club["court_1"], local(8), players=players, items=items)).json()

    resp = await client.get(f"{RES_URL}/{booked['id']}/balance")
    assert resp.status_code == 200
    body = resp.json()
    assert Decimal(body["total"]) == Decimal("44")
    assert [Decimal(p["owes"]) for p in body["players"]] == [
        Decimal("12.50"),
        Decimal("9.50"),
        Decimal("12.50"),
        Decimal("9.50"),
    ]
    assert body["payment_status"] == "pending"


# ---------------------------------------------------------------------------
# Staff grid
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_grid(client, seed_club):
    court_1, court_2 = seed_club["court_1"], seed_club["court_2"]
    booked = (await _book(client, court_1, local(8, 45))).json()

    resp = await client.get(f"{CLUB_URL}/grid?date=2026-03-17")
    assert resp.status_code == 200
    body = resp.json()
    assert [c["id"] for c in body["courts"]] == [court_1, court_2]
    rows = body["rows"]
    assert [parse(r["start_time"]) for r in rows] == [local(8), local(8, 45), local(9, 30), local(10, 15)]
    assert [r["cells"][0]["state"] for r in rows] == ["free", "reserved", "occupied", "free"]
    assert all(r["cells"][1]["state"] == "free" for r in rows)
    assert rows[1]["cells"][0]["reservation_id"] == booked["id"]
    assert not rows[1]["cells"][0]["payment_overdue"]
    assert not any(r["is_past"] for r in rows)


@pytest.mark.asyncio
async def test_grid_flags_unpaid_finished_reservation(client, seed_club):
    unpaid = (await _book(client, seed_club["court_1"], local(8))).json()
    paid = (
        await _book(client, seed_club["court_2"], local(8), players=[{"name": "Ana", "paid": True}])
    ).json()

    pin_clock(local(9, 30) + timedelta(minutes=10))
    resp = await client.get(f"{CLUB_URL}/grid?date=2026-03-17")
    first = resp.json()["rows"][0]
    assert first["is_past"]
    cells = {c["reservation_id"]: c for c in first["cells"]}
    assert cells[unpaid["id"]]["payment_overdue"]
    assert not cells[paid["id"]]["payment_overdue"]
