"""Reservation model.

A reservation holds a court at a club for one booking-duration interval.
Reservations are never deleted: cancelling flips the status and frees the slot.
"""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Enum, ForeignKey, Index, Numeric, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType, TimestampMixin, UTCDateTime


class ReservationStatus(enum.StrEnum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class ReservationType(enum.StrEnum):
    BOOKING = "booking"
    MATCH = "match"
    MAINTENANCE = "maintenance"
    CLASS = "class"


class PaymentStatus(enum.StrEnum):
    PENDING = "pending"  # nobody has paid
    PARTIAL = "partial"  # some players have paid
    COMPLETED = "completed"  # every player has paid


class Reservation(TimestampMixin, Base):
    __tablename__ = "reservations"

    id: Mapped[int] = mapped_column(primary_key=True)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id"), nullable=False)
    court_id: Mapped[int] = mapped_column(ForeignKey("courts.id"), nullable=False)
    # Opaque reference to the player account, if any (identity lives elsewhere)
    user_id: Mapped[str | None] = mapped_column(Text)

    # When (end_time = start_time + club.booking_duration)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus, name="reservation_status", values_callable=lambda e: [x.value for x in e]),
        default=ReservationStatus.CONFIRMED,
        nullable=False,
    )
    type: Mapped[ReservationType] = mapped_column(
        Enum(ReservationType, name="reservation_type", values_callable=lambda e: [x.value for x in e]),
        default=ReservationType.BOOKING,
        nullable=False,
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime())

    # Money
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status", values_callable=lambda e: [x.value for x in e]),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    # [{"name", "paid", "amount", "court_price"}]
    players: Mapped[list | None] = mapped_column(JSONType, default=list)
    # [{"name", "quantity", "price", "assigned_to": ["0", "2"]}]
    items: Mapped[list | None] = mapped_column(JSONType, default=list)

    notes: Mapped[str | None] = mapped_column(Text)

    # Relationships
    court: Mapped["Court"] = relationship()

    __table_args__ = (
        # Last line of defence against double booking: no two confirmed
        # reservations may start at the same instant on one court. Overlapping
        # starts need an exclusion constraint on tstzrange(start_time, end_time).
        Index(
            "ix_reservations_no_double",
            "court_id",
            "start_time",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
            sqlite_where=text("status = 'confirmed'"),
        ),
        # The day grid: club + time window
        Index("ix_reservations_club_start", "club_id", "start_time"),
    )

    def __repr__(self) -> str:
        return f"<Reservation {self.start_time:%Y-%m-%d %H:%M} court={self.court_id} {self.status}>"


# Import for type hints
from app.models.club import Court  # noqa: E402
