"""Club and court models.

Club = a padel club with its weekly shift configuration and booking defaults.
Court = an individual bookable court at a club.
"""

import enum
from decimal import Decimal

from sqlalchemy import Boolean, Enum, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.config import settings
from app.models.base import Base, JSONType, TimestampMixin


class CourtType(enum.StrEnum):
    INDOOR = "indoor"
    OUTDOOR = "outdoor"


class CourtSurface(enum.StrEnum):
    CRYSTAL = "crystal"
    WALL = "wall"
    SYNTHETIC = "synthetic"


class Club(TimestampMixin, Base):
    __tablename__ = "clubs"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    description: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(String(300))
    logo_url: Mapped[str | None] = mapped_column(String(500))

    # Wall-clock reference for shifts and slot instants (IANA name)
    timezone: Mapped[str] = mapped_column(String(64), default=lambda: settings.default_timezone, nullable=False)

    # Booking config (duration in minutes per slot)
    booking_duration: Mapped[int] = mapped_column(default=lambda: settings.default_booking_duration, nullable=False)
    opening_hour: Mapped[int] = mapped_column(default=lambda: settings.default_opening_hour, nullable=False)
    closing_hour: Mapped[int] = mapped_column(default=lambda: settings.default_closing_hour, nullable=False)
    # {"1": [{"start": "09:00", "end": "14:00"}, ...], ..., "7": [...]}; null = use opening/closing hour
    shifts: Mapped[dict | None] = mapped_column(JSONType)
    default_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)

    # Sale catalogue and per-player price presets
    extras: Mapped[list | None] = mapped_column(JSONType, default=list)
    price_templates: Mapped[list | None] = mapped_column(JSONType, default=list)

    # Relationships
    courts: Mapped[list["Court"]] = relationship(back_populates="club", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Club {self.slug}>"


class Court(TimestampMixin, Base):
    """A bookable padel court."""

    __tablename__ = "courts"

    id: Mapped[int] = mapped_column(primary_key=True)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    court_type: Mapped[CourtType] = mapped_column(
        Enum(CourtType, name="court_type", values_callable=lambda e: [x.value for x in e]),
        default=CourtType.INDOOR,
        nullable=False,
    )
    surface: Mapped[CourtSurface] = mapped_column(
        Enum(CourtSurface, name="court_surface", values_callable=lambda e: [x.value for x in e]),
        default=CourtSurface.CRYSTAL,
        nullable=False,
    )

    # Overrides club.default_price when set
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))

    # Display ordering
    sort_order: Mapped[int] = mapped_column(default=0, nullable=False)

    # Relationships
    club: Mapped["Club"] = relationship(back_populates="courts")

    __table_args__ = (Index("ix_courts_club_name", "club_id", "name", unique=True),)

    def __repr__(self) -> str:
        return f"<Court {self.name} @ club {self.club_id}>"
