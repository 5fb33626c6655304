"""Pydantic schemas for API serialisation."""

from datetime import date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.reservation import ReservationType

WEEKDAY_KEYS = {"1", "2", "3", "4", "5", "6", "7"}

# --- Club ---


class ShiftWindowIn(BaseModel):
    start: str  # "HH:MM", parsed when slots are generated
    end: str


class ExtraIn(BaseModel):
    name: str
    price: Decimal = Field(ge=0)


class PriceTemplateIn(BaseModel):
    label: str
    price: Decimal = Field(ge=0)


class ClubOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    is_active: bool
    description: str | None
    location: str | None
    logo_url: str | None
    timezone: str
    booking_duration: int
    opening_hour: int
    closing_hour: int
    shifts: dict | None
    default_price: Decimal
    extras: list | None
    price_templates: list | None


class ClubUpdate(BaseModel):
    """Partial update of a club's booking configuration. Omitted fields are left alone."""

    booking_duration: int | None = Field(default=None, gt=0, le=24 * 60)
    opening_hour: int | None = Field(default=None, ge=0, le=24)
    closing_hour: int | None = Field(default=None, ge=0, le=24)
    shifts: dict[str, list[ShiftWindowIn]] | None = None
    default_price: Decimal | None = Field(default=None, ge=0)
    extras: list[ExtraIn] | None = None
    price_templates: list[PriceTemplateIn] | None = None
    timezone: str | None = None

    @field_validator("booking_duration", "opening_hour", "closing_hour", "default_price", "timezone", mode="before")
    @classmethod
    def _not_null(cls, v, info):
        # These columns are NOT NULL: omit the field to leave it alone
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("shifts")
    @classmethod
    def _weekday_keys(cls, v):
        if v is not None and not set(v) <= WEEKDAY_KEYS:
            raise ValueError("shift keys must be ISO weekdays '1' (Monday) to '7' (Sunday)")
        return v

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, v):
        if v is not None:
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError):
                raise ValueError(f"unknown timezone: {v}") from None
        return v


class CourtOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    court_type: str
    surface: str
    is_active: bool
    price: Decimal | None


# --- Schedule & availability ---


class ScheduleOut(BaseModel):
    club_id: int
    date: date
    weekday: str
    windows: list[dict]


class SlotsOut(BaseModel):
    club_id: int
    date: date
    view: str
    duration_minutes: int
    slots: list[datetime]


class SlotAvailabilityOut(BaseModel):
    start_time: datetime
    end_time: datetime
    is_past: bool
    offer: str  # direct | choose | full
    free_courts: list[CourtOut]


class DayAvailabilityOut(BaseModel):
    club_id: int
    date: date
    view: str
    duration_minutes: int
    slots: list[SlotAvailabilityOut]


class GridCellOut(BaseModel):
    court_id: int
    state: str  # free | reserved | occupied
    reservation_id: int | None = None
    payment_overdue: bool = False


class GridRowOut(BaseModel):
    start_time: datetime
    is_past: bool
    cells: list[GridCellOut]


class GridOut(BaseModel):
    club_id: int
    date: date
    courts: list[CourtOut]
    rows: list[GridRowOut]


# --- Reservation ---


class PlayerIn(BaseModel):
    name: str
    paid: bool = False
    amount: Decimal = Decimal("0")
    court_price: Decimal | None = None


class ItemIn(BaseModel):
    name: str
    quantity: int = Field(default=1, ge=1)
    price: Decimal = Field(ge=0)
    assigned_to: list[str] = Field(default_factory=list)  # player indices


class ReservationCreate(BaseModel):
    court_id: int
    start_time: datetime
    user_id: str | None = None
    type: ReservationType = ReservationType.BOOKING
    price: Decimal | None = Field(default=None, ge=0)  # None = court or club price
    notes: str | None = None
    players: list[PlayerIn] = Field(default_factory=list)
    items: list[ItemIn] = Field(default_factory=list)


class ReservationUpdate(BaseModel):
    court_id: int | None = None
    start_time: datetime | None = None
    price: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None
    players: list[PlayerIn] | None = None
    items: list[ItemIn] | None = None


class ReservationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    club_id: int
    court_id: int
    user_id: str | None
    start_time: datetime
    end_time: datetime
    status: str
    type: str
    price: Decimal
    payment_status: str
    players: list | None
    items: list | None
    notes: str | None
    cancelled_at: datetime | None
    created_at: datetime


class PlayerBalanceOut(BaseModel):
    index: int
    name: str
    paid: bool
    owes: Decimal


class ReservationBalanceOut(BaseModel):
    reservation_id: int
    total: Decimal
    payment_status: str
    players: list[PlayerBalanceOut]
